"""
Parse session.

Drives the two-phase construction over one document: every entry is built
in document order (later entries consult earlier ones), then the patch
pass runs over everything, then the criteria are exported.
"""

from __future__ import annotations

import logging

from lxml import etree

from hqmf.knowledge import KnowledgeBase, get_knowledge
from hqmf.models import DataCriteriaModel
from hqmf.parser.context import ParseContext
from hqmf.parser.data_criteria import DataCriteria
from hqmf.parser.derivation import extract_variable_grouper
from hqmf.parser.nodes import xpath
from hqmf.parser.patch import patch_all

logger = logging.getLogger(__name__)

ENTRY_XPATH = "//cda:dataCriteriaSection/cda:entry"


def iter_criteria_entries(document: etree._ElementTree | etree._Element) -> list[etree._Element]:
    """Data criteria entries of a measure document, in document order."""
    return xpath(document, ENTRY_XPATH)


def is_source_data_criteria(criteria: DataCriteria) -> bool:
    """Whether criteria is a plain data requirement with no qualifiers."""
    return not (
        criteria.temporal_references
        or criteria.subset_operators
        or criteria.field_values
        or criteria.value is not None
        or criteria.negation
        or criteria.children_criteria
        or criteria.specific_occurrence
    )


class DataCriteriaSession:
    """
    Builds, patches and exports the data criteria of one document.

    Example:
        session = DataCriteriaSession()
        models = session.parse_document(etree.parse("measure.xml"))
    """

    def __init__(self, knowledge: KnowledgeBase | None = None):
        self.context = ParseContext(knowledge=knowledge or get_knowledge())
        self._patched = False

    @property
    def references(self):
        return self.context.references

    @property
    def occurrences(self):
        return self.context.occurrences

    def build(self, entry: etree._Element) -> DataCriteria:
        """Build one entry and register it (and its grouping, for variables)."""
        criteria = DataCriteria(entry, self.context)
        criteria.is_source_data_criteria = is_source_data_criteria(criteria)
        self.references.register(criteria)

        split = extract_variable_grouper(criteria)
        if split is not None:
            leaf, grouper = split
            grouper.is_source_data_criteria = criteria.is_source_data_criteria
            self.references.register(leaf)
            self.references.replace(grouper.id, grouper)
            return grouper

        logger.debug("Built %s", criteria, extra={"criteria_id": criteria.id})
        return criteria

    def patch(self) -> None:
        """Run the patch pass; only the first call has any effect."""
        if self._patched:
            return
        patch_all(self.references)
        self._patched = True

    def export(self) -> list[DataCriteriaModel]:
        return [criteria.to_model() for criteria in self.references.values()]

    def parse_document(self, document: etree._ElementTree | etree._Element) -> list[DataCriteriaModel]:
        """Build every entry of a measure document, patch, and export."""
        entries = iter_criteria_entries(document)
        logger.debug("Parsing %d data criteria entries", len(entries))
        for entry in entries:
            self.build(entry)
        self.patch()
        return self.export()
