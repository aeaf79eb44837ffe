"""
Specific occurrence resolution.

A criteria linked to a source criteria through an OCCR relationship is one
particular occurrence of that source, tagged with a letter (A, B, ...).
The letter is encoded in the criteria's own id, its local variable name or
the source id, depending on the authoring tool, so each is tried in turn.
The first letter seen for a source is shared by later occurrences that
cannot determine their own.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import TYPE_CHECKING

from hqmf.errors import MissingOccurrenceError
from hqmf.parser.nodes import attr_val, composite_id, first
from hqmf.parser.tokens import normalize

if TYPE_CHECKING:
    from hqmf.parser.data_criteria import DataCriteria

logger = logging.getLogger(__name__)

DEFAULT_OCCURRENCE = "A"

QDM_VARIABLE_ID = "qdm_var_"
QDM_VARIABLE_LVN = "qdm_var"


@dataclass(frozen=True)
class OccurrenceConvention:
    """Prefix patterns and the position of the letter once one matches."""
    id_pattern: str
    lvn_pattern: str
    offset: int


VARIABLE_CONVENTION = OccurrenceConvention(
    id_pattern="occ[A-Z]of_", lvn_pattern="occ[A-Z]of_", offset=3,
)
CRITERIA_CONVENTION = OccurrenceConvention(
    id_pattern="Occurrence[A-Z]_", lvn_pattern="Occurrence[A-Z]of", offset=10,
)


def _tag_at(token: str | None, pattern: str, offset: int) -> str | None:
    if not token or not re.match(pattern, token) or len(token) <= offset:
        return None
    return token[offset]


def find_occurrence_tag(
    own_id: str | None,
    local_variable_name: str | None,
    source_id: str | None,
    is_variable: bool,
) -> str | None:
    """
    Extract the occurrence letter from the first token that carries one.

    All tokens are expected normalized. source_id is the normalized
    extension of the source criteria id. Tried in order: own id, own local
    variable name, (for variables) the generic qdm_var_ forms, source id.
    """
    convention = VARIABLE_CONVENTION if is_variable else CRITERIA_CONVENTION
    source = re.escape(source_id or "")

    candidates = [
        (own_id, convention.id_pattern + source),
        (local_variable_name, convention.lvn_pattern + source),
    ]
    if is_variable:
        candidates += [
            (own_id, convention.id_pattern + QDM_VARIABLE_ID),
            (local_variable_name, convention.lvn_pattern + QDM_VARIABLE_LVN),
        ]
    candidates += [
        (source_id, convention.id_pattern),
        (source_id, convention.lvn_pattern),
    ]

    for token, pattern in candidates:
        tag = _tag_at(token, pattern, convention.offset)
        if tag:
            return tag
    return None


def resolve_specific_occurrence(criteria: DataCriteria) -> None:
    """
    Link criteria to its source criteria and settle its occurrence letter.

    Handles both OCCR (specific occurrence) and SOURCE relationships. Does
    nothing further when the source has not been built yet.

    Raises:
        MissingOccurrenceError: no letter can be found or looked up for a
            non-variable occurrence
    """
    entry = criteria.entry
    specific_def = first(entry, "./*/cda:outboundRelationship[@typeCode='OCCR']")

    if specific_def is None:
        source_def = first(entry, "./*/cda:outboundRelationship[cda:subsetCode/@code='SOURCE']")
        if source_def is not None:
            criteria.source_data_criteria = composite_id(
                attr_val(source_def, "./cda:criteriaReference/cda:id/@extension"),
                attr_val(source_def, "./cda:criteriaReference/cda:id/@root"),
            )
        return

    extension = attr_val(specific_def, "./cda:criteriaReference/cda:id/@extension")
    root = attr_val(specific_def, "./cda:criteriaReference/cda:id/@root")
    criteria.source_data_criteria_extension = extension
    criteria.source_data_criteria_root = root
    criteria.specific_occurrence_const = attr_val(specific_def, "./cda:localVariableName/@controlInformationRoot")
    criteria.specific_occurrence = attr_val(specific_def, "./cda:localVariableName/@controlInformationExtension")

    source = composite_id(extension, root)
    source_key = normalize(source)
    if source_key not in criteria.context.references:
        logger.debug(
            "Source %s of %s not built yet; occurrence skipped", source, criteria.id,
            extra={"criteria_id": criteria.id},
        )
        return

    is_variable = criteria.is_variable()
    tag = find_occurrence_tag(
        normalize(criteria.id),
        normalize(criteria.local_variable_name),
        normalize(extension),
        is_variable,
    )

    occurrences = criteria.context.occurrences
    criteria.source_data_criteria = source

    if tag:
        occurrences.register(source_key, tag)
        criteria.specific_occurrence = criteria.specific_occurrence or tag
        criteria.specific_occurrence_const = source.upper()
    else:
        if is_variable:
            occurrences.register(source_key, occurrences.PLACEHOLDER)
        occurrence = occurrences.lookup(source_key)
        if occurrence is None:
            raise MissingOccurrenceError(source, root, entry_id=criteria.id)
        criteria.specific_occurrence = criteria.specific_occurrence or occurrence

    criteria.specific_occurrence = criteria.specific_occurrence or DEFAULT_OCCURRENCE
    criteria.specific_occurrence_const = criteria.specific_occurrence_const or source.upper()
