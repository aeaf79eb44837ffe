"""
Derivation operators and variable grouping.

Boolean composition comes from the conjunction codes on COMP relationships.
Variables are split into a leaf (keyed ``GROUP_<id>``) holding their own
definition and a grouper (keyed ``<id>``) that wraps the leaf in a UNION.
"""

from __future__ import annotations

import logging
import re
from typing import TYPE_CHECKING

from lxml import etree

from hqmf.errors import ConflictingDerivationError
from hqmf.models import DERIVED, DerivationOperator
from hqmf.parser.nodes import attr_val, first, xpath
from hqmf.parser.references import criteria_reference_id

if TYPE_CHECKING:
    from hqmf.parser.data_criteria import DataCriteria

logger = logging.getLogger(__name__)

GROUP_PREFIX = "GROUP_"

CONJUNCTION_CODES = {
    "OR": DerivationOperator.UNION,
    "AND": DerivationOperator.XPRODUCT,
}

# Occurrence of a variable referencing itself, e.g. occAof_qdm_var_...
_OCCURRENCE_OF_VARIABLE = re.compile(r"^occ[A-Z]of_qdm_var_")
_QDM_VARIABLE = re.compile(r".*qdm_var_")


def group_id(criteria_id: str) -> str:
    return f"{GROUP_PREFIX}{criteria_id}"


def extract_derivation_operator(entry: etree._Element) -> DerivationOperator | None:
    """
    Composition operator from the children's conjunction codes.

    Raises:
        ConflictingDerivationError: children disagree on the operator
    """
    codes = [str(c) for c in xpath(entry, "./*/cda:outboundRelationship[@typeCode='COMP']/cda:conjunctionCode/@code")]
    operator = None
    for code in codes:
        mapped = CONJUNCTION_CODES.get(code)
        if operator is not None and operator != mapped:
            raise ConflictingDerivationError(codes)
        operator = mapped
    return operator


def set_intersection(criteria: DataCriteria) -> None:
    """Template-less groupers compose by INTERSECT rather than XPRODUCT."""
    if criteria.template_ids:
        return
    if criteria.derivation_operator == DerivationOperator.XPRODUCT:
        criteria.derivation_operator = DerivationOperator.INTERSECT
    if criteria.description is None:
        criteria.description = (
            "Intersect" if criteria.derivation_operator == DerivationOperator.INTERSECT else "Union"
        )


def handle_specific_variables(criteria: DataCriteria) -> None:
    """
    Resolve derived criteria that stand for a single other criteria.

    An empty derived criteria adopts its source as sole child. When that
    sole child is its own source, the child's shape is copied forward and
    the criteria is never split into leaf and grouper.
    """
    if criteria.definition != DERIVED:
        return

    children = criteria.children_criteria
    if not children and criteria.source_data_criteria is not None:
        children.append(criteria.source_data_criteria)

    if len(children) == 1 and children[0] and (
        children[0] == criteria.source_data_criteria or criteria.source_data_criteria is None
    ):
        reference = criteria.context.references.get(children[0])
        if reference is not None:
            criteria.do_not_group = True
            if not criteria.subset_operators:
                criteria.subset_operators = list(reference.subset_operators)
            criteria.derivation_operator = criteria.derivation_operator or reference.derivation_operator
            criteria.description = reference.description
            criteria.variable = reference.variable


def detect_verbose_reference(criteria: DataCriteria) -> bool:
    """
    Whether a grouper refers to exactly one existing variable.

    Such groupers are rewritten to point at the variable's leaf during the
    patch pass.
    """
    references = xpath(criteria.entry, "./*/cda:outboundRelationship/cda:criteriaReference")
    if len(references) != 1:
        return False
    if first(criteria.entry, "./cda:grouperCriteria") is None:
        return False

    reference = criteria.context.references.get(criteria_reference_id(references[0]))
    if reference is None or not reference.variable:
        return False

    extension = attr_val(criteria.entry, "./*/cda:id/@extension") or ""
    return not _OCCURRENCE_OF_VARIABLE.match(extension)


def group_variable_children(children: list[str]) -> list[str]:
    """Point references to qdm variables at their GROUP_ leaf."""
    return [
        child if child.startswith(GROUP_PREFIX) or not _QDM_VARIABLE.match(child) else group_id(child)
        for child in children
    ]


def extract_variable_grouper(criteria: DataCriteria) -> tuple[DataCriteria, DataCriteria] | None:
    """
    Split a variable into its leaf and its grouper.

    Returns ``(leaf, grouper)``, or None when the variable is not split. The
    criteria itself is left untouched when it is split; do-not-group
    variables are instead resolved in place.
    """
    if not criteria.variable:
        return None

    references = criteria.context.references
    children = criteria.children_criteria

    if criteria.do_not_group:
        if len(children) == 1 and group_id(children[0]) in references:
            children[0] = group_id(children[0])
        elif len(children) == 1 and children[0]:
            reference = references.get(children[0])
            if reference is not None:
                criteria.duplicate_child_info(reference)
                criteria.children_criteria = list(reference.children_criteria)
        return None

    leaf = criteria.clone()
    leaf.variable = False
    leaf.id = group_id(criteria.id)

    if len(children) == 1 and GROUP_PREFIX in children[0]:
        reference = references.get(children[0])
        if reference is None:
            return None
        # Degenerate grouping: the leaf becomes the referenced group itself
        leaf.duplicate_child_info(reference)
        leaf.definition = reference.definition
        leaf.status = reference.status
        leaf.children_criteria = []

    leaf.specific_occurrence = None
    leaf.specific_occurrence_const = None

    grouper = type(criteria)(criteria.entry, criteria.context).as_grouper()
    logger.debug(
        "Grouped variable %s as %s", criteria.id, leaf.id,
        extra={"criteria_id": criteria.id},
    )
    return leaf, grouper
