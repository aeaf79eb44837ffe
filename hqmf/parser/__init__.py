"""
HQMF R2 data criteria parser.
"""

from .context import OccurrenceRegistry, ParseContext, ReferenceRegistry
from .data_criteria import DataCriteria
from .derivation import extract_variable_grouper
from .nodes import NAMESPACES, load_document, parse_xml
from .occurrence import find_occurrence_tag, resolve_specific_occurrence
from .session import DataCriteriaSession, iter_criteria_entries
from .tokens import normalize
from .values import parse_value

__all__ = [
    "NAMESPACES",
    "DataCriteria",
    "DataCriteriaSession",
    "OccurrenceRegistry",
    "ParseContext",
    "ReferenceRegistry",
    "extract_variable_grouper",
    "find_occurrence_tag",
    "iter_criteria_entries",
    "load_document",
    "normalize",
    "parse_value",
    "parse_xml",
    "resolve_specific_occurrence",
]
