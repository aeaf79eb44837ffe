"""
Value parsing.

Turns a value-bearing element into one of the value variants, keyed on its
xsi:type discriminator.
"""

from __future__ import annotations

from typing import Callable

from lxml import etree

from hqmf.errors import UnrecognizedValueTypeError
from hqmf.models import AnyValue, Coded, Interval, Quantity, Timestamp, Value
from hqmf.parser.nodes import XSI_TYPE, attr_val, first

ANY_NONNULL_FLAVOR = "ANY.NONNULL"

# Units written out in full by some authoring tools
UNIT_ALIASES = {"days": "d"}


def parse_quantity(node: etree._Element, inclusive: bool = False) -> Quantity:
    unit = node.get("unit")
    return Quantity(
        value=node.get("value"),
        unit=UNIT_ALIASES.get(unit, unit),
        inclusive=inclusive or node.get("inclusive") == "true",
    )


def parse_timestamp(node: etree._Element) -> Timestamp:
    return Timestamp(value=node.get("value"))


def parse_interval(node: etree._Element, default_type: str = "IVL_PQ") -> Interval:
    """
    Parse an IVL_PQ / IVL_INT element.

    A bound is inclusive when the interval closes it (lowClosed/highClosed),
    when the bound says so itself, or when both bounds hold the same value.
    """
    low = first(node, "./cda:low")
    high = first(node, "./cda:high")
    width = first(node, "./cda:width")

    equivalent = (
        low is not None and high is not None
        and low.get("value") is not None
        and low.get("value") == high.get("value")
    )

    return Interval(
        type=node.get(XSI_TYPE) or default_type,
        low=parse_quantity(low, node.get("lowClosed") == "true" or equivalent) if low is not None else None,
        high=parse_quantity(high, node.get("highClosed") == "true" or equivalent) if high is not None else None,
        width=parse_quantity(width) if width is not None else None,
    )


def parse_coded(node: etree._Element) -> Coded:
    return Coded(
        code=node.get("code"),
        code_system=node.get("codeSystem"),
        code_list_id=node.get("valueSet"),
        title=attr_val(node, "./cda:displayName/@value") or node.get("displayName"),
    )


def coded_for_code_list(code_list_id: str | None, title: str | None) -> Coded:
    """Coded value standing for a whole value set."""
    return Coded(code_list_id=code_list_id, title=title)


_VALUE_PARSERS: dict[str, Callable[[etree._Element], Value]] = {
    "PQ": lambda node: parse_quantity(node, inclusive=True),
    "TS": parse_timestamp,
    "IVL_PQ": parse_interval,
    "IVL_INT": parse_interval,
    "CD": parse_coded,
    # IVL_TS only ever means "some time is present" in criteria
    "ANY": lambda node: AnyValue(),
    "IVL_TS": lambda node: AnyValue(),
}


def parse_value(node: etree._Element, xpath: str) -> Value | None:
    """
    Parse the value found at xpath below node.

    Returns None when there is no such element or it carries no xsi:type.

    Raises:
        UnrecognizedValueTypeError: the xsi:type is not a supported value kind
    """
    value_def = first(node, xpath)
    if value_def is None or not isinstance(value_def, etree._Element):
        return None
    if value_def.get("flavorId") == ANY_NONNULL_FLAVOR:
        return AnyValue()

    value_type = value_def.get(XSI_TYPE)
    if value_type is None:
        return None

    parser = _VALUE_PARSERS.get(value_type)
    if parser is None:
        raise UnrecognizedValueTypeError(value_type)
    return parser(value_def)
