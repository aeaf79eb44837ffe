"""
XPath helpers over lxml trees.

All queries in the parser go through these helpers so that the HQMF
namespace prefixes are bound in one place.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

from lxml import etree

NAMESPACES = {
    "cda": "urn:hl7-org:v3",
    "xsi": "http://www.w3.org/2001/XMLSchema-instance",
    "qdm": "urn:hhs-qdm:hqmf-r2-extensions:v1",
}

XSI_TYPE = f"{{{NAMESPACES['xsi']}}}type"

# Matches any child element whose name ends in "Criteria"
CRITERIA_GLOB = "*[substring(name(),string-length(name())-7) = 'Criteria']"


def xpath(node: etree._Element, expr: str, **variables: Any) -> list:
    return node.xpath(expr, namespaces=NAMESPACES, **variables)


def first(node: etree._Element, expr: str, **variables: Any) -> Any | None:
    """First result of an XPath query, or None."""
    results = xpath(node, expr, **variables)
    return results[0] if results else None


def attr_val(node: etree._Element | None, expr: str) -> str | None:
    """
    String value of the first node matched by expr.

    Attribute and text results come back as plain strings; element results
    yield their text content.
    """
    if node is None:
        return None
    result = first(node, expr)
    if result is None:
        return None
    if isinstance(result, etree._Element):
        return result.text
    return str(result)


def composite_id(extension: str | None, root: str | None) -> str:
    """Criteria identifier as written in references: ``<extension>_<root>``."""
    return f"{extension or ''}_{root or ''}"


def parse_xml(source: str | bytes) -> etree._Element:
    """Parse an XML string into an element."""
    if isinstance(source, str):
        source = source.encode("utf-8")
    return etree.fromstring(source)


def load_document(path: Path | str) -> etree._ElementTree:
    """Parse an HQMF document from disk."""
    return etree.parse(str(path))
