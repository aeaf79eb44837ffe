"""
Reference, temporal reference and subset operator extraction.
"""

from __future__ import annotations

from lxml import etree

from hqmf.models import Reference, SubsetOperator, TemporalReference, TypedReference
from hqmf.parser.nodes import attr_val, composite_id, first, xpath
from hqmf.parser.tokens import normalize
from hqmf.parser.values import parse_interval

# Excerpts that encode boolean composition rather than a subset
NON_SUBSET_CODES = ("UNION", "XPRODUCT")


def reference_id(id_node: etree._Element | None) -> str | None:
    """Normalized composite id of a cda:id element."""
    if id_node is None:
        return None
    return normalize(composite_id(id_node.get("extension"), id_node.get("root")))


def criteria_reference_id(node: etree._Element | None) -> str | None:
    """Normalized id of the criteria a criteriaReference points at."""
    if node is None:
        return None
    return reference_id(first(node, "./cda:id"))


def parse_typed_reference(node: etree._Element) -> TypedReference:
    return TypedReference(
        id=criteria_reference_id(node) or "",
        type=node.get("classCode"),
        mood=node.get("moodCode"),
    )


def parse_temporal_reference(node: etree._Element) -> TemporalReference:
    """Parse a temporallyRelatedInformation element."""
    range_def = first(node, "./qdm:temporalInformation/qdm:delta")
    return TemporalReference(
        type=node.get("typeCode"),
        reference=Reference(id=reference_id(first(node, "./*/cda:id")) or ""),
        range=parse_interval(range_def, "IVL_PQ") if range_def is not None else None,
    )


def parse_subset_operator(node: etree._Element) -> SubsetOperator:
    """Parse an excerpt element."""
    value_def = first(node, "./cda:repeatNumber | ./*/cda:repeatNumber")
    return SubsetOperator(
        type=attr_val(node, "./cda:subsetCode/@code"),
        value=parse_interval(value_def, "IVL_INT") if value_def is not None else None,
    )


def extract_temporal_references(entry: etree._Element) -> list[TemporalReference]:
    return [
        parse_temporal_reference(node)
        for node in xpath(entry, "./*/cda:temporallyRelatedInformation")
    ]


def extract_subset_operators(entry: etree._Element) -> list[SubsetOperator]:
    operators = [parse_subset_operator(node) for node in xpath(entry, "./*/cda:excerpt")]
    return [op for op in operators if op.type not in NON_SUBSET_CODES]


def extract_child_criteria(entry: etree._Element) -> list[str]:
    """Ids of the criteria composed into this one through COMP relationships."""
    children = [
        reference_id(node)
        for node in xpath(entry, "./*/cda:outboundRelationship[@typeCode='COMP']/cda:criteriaReference/cda:id")
    ]
    return [child for child in children if child is not None]
