"""
Template classification.

Decides what kind of clinical fact a criteria describes. Template ids are
tried first against the knowledge base; entries with no recognised template
fall back to the name in their definition element.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from lxml import etree

from hqmf.errors import UnknownDemographicError, UnknownTemplateError
from hqmf.models import DERIVED, SATISFIES_ALL, SATISFIES_ANY, VARIABLE, DerivationOperator
from hqmf.parser.nodes import attr_val, first, xpath
from hqmf.parser.references import criteria_reference_id

if TYPE_CHECKING:
    from hqmf.parser.data_criteria import DataCriteria

logger = logging.getLogger(__name__)

VARIABLE_TEMPLATE = "0.1.2.3.4.5.6.7.8.9.1"
SATISFIES_ANY_TEMPLATE = "2.16.840.1.113883.10.20.28.3.108"
SATISFIES_ALL_TEMPLATE = "2.16.840.1.113883.10.20.28.3.109"

# Definition element value -> (definition, default status)
DEFINITION_FALLBACKS: dict[str, tuple[str, str | None]] = {
    "Problem": ("diagnosis", None),
    "Problems": ("diagnosis", None),
    "Encounter": ("encounter", None),
    "Encounters": ("encounter", None),
    "LabResults": ("laboratory_test", None),
    "Results": ("laboratory_test", None),
    "Procedure": ("procedure", None),
    "Procedures": ("procedure", None),
    "Medication": ("medication", "active"),
    "Medications": ("medication", "active"),
    "RX": ("medication", "dispensed"),
    "Derived": (DERIVED, None),
}

DEMOGRAPHICS = "Demographics"

# Observation code -> patient characteristic definition
DEMOGRAPHIC_DEFINITIONS = {
    "21112-8": "patient_characteristic_birthdate",
    "424144002": "patient_characteristic_age",
    "263495000": "patient_characteristic_gender",
    "102902016": "patient_characteristic_languages",
    "125680007": "patient_characteristic_marital_status",
    "103579009": "patient_characteristic_race",
}

REFERENCE_XPATH = "./*/cda:outboundRelationship/cda:criteriaReference"


def extract_template_ids(entry: etree._Element) -> list[str]:
    return [str(root) for root in xpath(entry, "./*/cda:templateId/cda:item/@root")]


def extract_type_from_template_id(criteria: DataCriteria) -> bool:
    """
    Classify criteria from its template ids.

    Returns True when any template was recognised. The first registered
    template wins; sentinel templates apply regardless. A satisfies-any
    template ends classification on the spot.
    """
    found = False
    knowledge = criteria.context.knowledge

    for template_id in criteria.template_ids:
        template = knowledge.definition_for_template_id(template_id)
        if template is not None:
            if not found:
                criteria.definition = template.definition
                criteria.status = template.status
                found = True
        elif template_id == VARIABLE_TEMPLATE:
            if criteria.derivation_operator == DerivationOperator.XPRODUCT:
                criteria.derivation_operator = DerivationOperator.INTERSECT
            criteria.definition = DERIVED
            criteria.negation = False
            criteria.variable = True
            found = True
        elif template_id == SATISFIES_ANY_TEMPLATE:
            criteria.definition = SATISFIES_ANY
            criteria.negation = False
            return True
        elif template_id == SATISFIES_ALL_TEMPLATE:
            criteria.definition = SATISFIES_ALL
            criteria.derivation_operator = DerivationOperator.INTERSECT
            criteria.negation = False
            found = True

    return found


def definition_for_demographic(entry: etree._Element) -> str:
    code = attr_val(entry, "./cda:observationCriteria/cda:code/@code")
    try:
        return DEMOGRAPHIC_DEFINITIONS[code]
    except KeyError:
        raise UnknownDemographicError(code) from None


def _pull_from_variable_reference(criteria: DataCriteria) -> None:
    """A specific occurrence of a variable takes its shape from the variable."""
    references = criteria.context.references
    ref_id = criteria_reference_id(first(criteria.entry, REFERENCE_XPATH))
    reference = references.get(ref_id)
    # Derived variables keep their original shape in the GROUP_ leaf
    if reference is not None and reference.definition == DERIVED:
        reference = references.get(f"GROUP_{ref_id}")
    if reference is None:
        return

    if not reference.children_criteria:
        criteria.children_criteria = [reference.id]
    else:
        criteria.field_values = dict(reference.field_values)
        criteria.temporal_references = list(reference.temporal_references)
        criteria.subset_operators = list(reference.subset_operators)
        criteria.derivation_operator = reference.derivation_operator
        criteria.definition = reference.definition
        criteria.description = reference.description
        criteria.status = reference.status
        criteria.children_criteria = list(reference.children_criteria)


def extract_type_from_definition(criteria: DataCriteria) -> None:
    """
    Classify criteria from its definition element.

    Raises:
        UnknownTemplateError: the definition names nothing recognisable
        UnknownDemographicError: a Demographics entry with an unknown code
    """
    if criteria.variable and criteria.specific_occurrence:
        _pull_from_variable_reference(criteria)

    if first(criteria.entry, "./cda:grouperCriteria") is not None:
        criteria.definition = criteria.definition or DERIVED
        return

    entry_type = attr_val(criteria.entry, "./*/cda:definition/*/cda:id/@extension")

    if criteria.context.knowledge.is_known_definition(entry_type):
        criteria.definition = entry_type
    elif entry_type in DEFINITION_FALLBACKS:
        definition, default_status = DEFINITION_FALLBACKS[entry_type]
        criteria.definition = definition
        criteria.status = criteria.status or default_status
    elif entry_type == DEMOGRAPHICS:
        criteria.definition = definition_for_demographic(criteria.entry)
    elif entry_type is None:
        _definition_from_reference(criteria)
    else:
        raise UnknownTemplateError(entry_type, entry_id=criteria.id)


def _definition_from_reference(criteria: DataCriteria) -> None:
    ref_id = criteria_reference_id(first(criteria.entry, REFERENCE_XPATH))
    reference = criteria.context.references.get(ref_id)
    if reference is None:
        if not criteria.variable:
            logger.warning(
                "MISSING_DC_REF: %s references unknown criteria %s",
                criteria.id, ref_id,
                extra={"criteria_id": criteria.id},
            )
        criteria.definition = VARIABLE
        return

    criteria.definition = reference.definition
    criteria.status = reference.status
    if criteria.specific_occurrence:
        criteria.title = reference.title
        criteria.description = reference.description
        criteria.code_list_id = reference.code_list_id
