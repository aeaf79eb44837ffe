"""
Shared fixtures for the HQMF criteria tests.
"""

import logging
import sys
from pathlib import Path

# Add project root to path
ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(ROOT))

import pytest

FIXTURES = Path(__file__).parent / "fixtures"

ENTRY_WRAPPER = (
    '<entry xmlns="urn:hl7-org:v3" '
    'xmlns:xsi="http://www.w3.org/2001/XMLSchema-instance" '
    'xmlns:qdm="urn:hhs-qdm:hqmf-r2-extensions:v1">{body}</entry>'
)


@pytest.fixture(autouse=True)
def reset_state():
    """Fresh configuration, knowledge base and package logger per test."""
    from hqmf.config import reset_config
    from hqmf.knowledge import reset_knowledge

    reset_config()
    reset_knowledge()
    logger = logging.getLogger("hqmf")
    logger.handlers.clear()
    logger.propagate = True
    logger.setLevel(logging.NOTSET)
    yield
    reset_config()
    reset_knowledge()


@pytest.fixture
def make_entry():
    """Build an HQMF entry element from the XML inside <entry>."""
    from hqmf.parser import parse_xml

    def _make(body: str):
        return parse_xml(ENTRY_WRAPPER.format(body=body))

    return _make


@pytest.fixture
def knowledge():
    from hqmf.knowledge import KnowledgeBase
    return KnowledgeBase(ROOT / "knowledge")


@pytest.fixture
def context(knowledge):
    from hqmf.parser import ParseContext
    return ParseContext(knowledge=knowledge)


@pytest.fixture
def session(knowledge):
    from hqmf.parser import DataCriteriaSession
    return DataCriteriaSession(knowledge)


@pytest.fixture
def measure_path():
    return FIXTURES / "simple_measure.xml"
