"""
Cross-reference patch pass.

Runs once after every criteria in the document is registered. Corrections
are made in place on the registered entities so every holder of a
reference sees them.
"""

from __future__ import annotations

import logging
import re
from typing import TYPE_CHECKING

from hqmf.models import DERIVED, DerivationOperator
from hqmf.parser.context import ReferenceRegistry
from hqmf.parser.derivation import group_id, group_variable_children
from hqmf.parser.nodes import CRITERIA_GLOB, attr_val
from hqmf.parser.tokens import normalize

if TYPE_CHECKING:
    from hqmf.parser.data_criteria import DataCriteria

logger = logging.getLogger(__name__)

OCCURRENCE_PREFIX = "Occurrence"
_OCCURRENCE_TAG = re.compile(r"Occurrence[A-Z]_")


def patch_code_list_id(criteria: DataCriteria, references: ReferenceRegistry) -> None:
    """Specific occurrences share their source's code list."""
    if not criteria.specific_occurrence:
        return
    reference = references.get(normalize(criteria.source_data_criteria))
    if reference is not None:
        criteria.code_list_id = reference.code_list_id


def patch_variable_name(criteria: DataCriteria) -> None:
    """Variables are described by their encoded id extension."""
    if not criteria.variable:
        return
    extension = attr_val(criteria.entry, f"./{CRITERIA_GLOB}/cda:id/@extension")
    if extension is not None:
        criteria.description = extension


def patch_variable_subsets(criteria: DataCriteria) -> None:
    if not criteria.verbose_reference:
        return
    criteria.variable = True
    criteria.children_criteria = group_variable_children(criteria.children_criteria)
    criteria.derivation_operator = DerivationOperator.UNION
    logger.debug(
        "Patched verbose reference %s: %s", criteria.id, criteria.children_criteria,
        extra={"criteria_id": criteria.id},
    )


def patch_variable_data_criteria(criteria: DataCriteria) -> None:
    """A variable standing for a single source criteria wraps its own leaf."""
    if not (criteria.variable and criteria.is_source_data_criteria) or criteria.derivation_operator:
        return
    criteria.derivation_operator = DerivationOperator.UNION
    criteria.definition = DERIVED
    criteria.status = None
    criteria.children_criteria = [group_id(criteria.id)]


def _occurrence_root(reference: DataCriteria | None, references: ReferenceRegistry) -> DataCriteria | None:
    """Follow a specific occurrence back to the criteria it is an occurrence of."""
    if reference is None or not reference.specific_occurrence:
        return reference
    if not reference.id.startswith(OCCURRENCE_PREFIX):
        return reference
    return references.get(_OCCURRENCE_TAG.sub("", reference.id))


def patch_title(criteria: DataCriteria, references: ReferenceRegistry) -> None:
    """
    Replace generated titles with those of the referenced criteria.

    Only titles that still look like identifiers (containing ``_`` or
    ``-``) are replaced.
    """
    title = criteria.title
    if "_" not in title and "-" not in title:
        return

    ref_id = criteria.source_data_criteria or criteria.id

    if criteria.specific_occurrence and OCCURRENCE_PREFIX not in criteria.id:
        reference = None
        if not ref_id.startswith(OCCURRENCE_PREFIX):
            reference = references.get(normalize(f"{OCCURRENCE_PREFIX}{criteria.specific_occurrence}_{ref_id}"))
        if reference is None:
            reference = references.get(normalize(ref_id))
        reference = _occurrence_root(reference, references)
        if reference is not None:
            criteria.title = reference.title
            criteria.description = reference.description
            criteria.source_data_criteria = reference.id
        return

    reference = _occurrence_root(references.get(normalize(ref_id)), references)
    if reference is not None:
        criteria.title = reference.title
        criteria.description = reference.description


def patch_descriptions(criteria: DataCriteria, references: ReferenceRegistry) -> None:
    """Run every correction on one criteria, in order."""
    patch_code_list_id(criteria, references)
    patch_variable_name(criteria)
    patch_variable_subsets(criteria)
    patch_variable_data_criteria(criteria)
    patch_title(criteria, references)


def patch_all(references: ReferenceRegistry) -> None:
    for criteria in references.values():
        patch_descriptions(criteria, references)
