"""
Session-scoped state shared by every criteria built from one document.

The reference registry maps normalized criteria ids to the live (mutable)
builder entities. The occurrence registry maps normalized source criteria
ids to their canonical specific occurrence letter.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Iterator

from hqmf.knowledge import KnowledgeBase, get_knowledge

if TYPE_CHECKING:
    from hqmf.parser.data_criteria import DataCriteria

logger = logging.getLogger(__name__)


class ReferenceRegistry:
    """Normalized id -> DataCriteria, in registration order."""

    def __init__(self):
        self._entries: dict[str, DataCriteria] = {}

    def register(self, criteria: DataCriteria, key: str | None = None) -> None:
        self._entries[key or criteria.id] = criteria

    def replace(self, key: str, criteria: DataCriteria) -> None:
        """Swap the entity held under key, keeping its position."""
        self._entries[key] = criteria

    def get(self, key: str | None) -> DataCriteria | None:
        if key is None:
            return None
        return self._entries.get(key)

    def values(self) -> list[DataCriteria]:
        return list(self._entries.values())

    def keys(self) -> list[str]:
        return list(self._entries)

    def __contains__(self, key: object) -> bool:
        return key in self._entries

    def __getitem__(self, key: str) -> DataCriteria:
        return self._entries[key]

    def __iter__(self) -> Iterator[str]:
        return iter(self._entries)

    def __len__(self) -> int:
        return len(self._entries)


class OccurrenceRegistry:
    """
    Normalized source criteria id -> occurrence letter.

    The first letter registered for a source is kept for the rest of the
    document. A variable that could not determine its own letter registers
    an empty placeholder, which a later real letter replaces.
    """

    PLACEHOLDER = ""

    def __init__(self):
        self._tags: dict[str, str] = {}

    def register(self, source_id: str, tag: str) -> str:
        """Record tag for source_id unless one is already held; return the held tag."""
        existing = self._tags.get(source_id)
        if existing is None or (existing == self.PLACEHOLDER and tag):
            self._tags[source_id] = tag
            if tag:
                logger.debug("Occurrence %s assigned to %s", tag, source_id)
        return self._tags[source_id]

    def lookup(self, source_id: str) -> str | None:
        return self._tags.get(source_id)

    def as_dict(self) -> dict[str, str]:
        return dict(self._tags)

    def __contains__(self, source_id: object) -> bool:
        return source_id in self._tags

    def __len__(self) -> int:
        return len(self._tags)


@dataclass
class ParseContext:
    """Everything a DataCriteria needs beyond its own entry element."""
    knowledge: KnowledgeBase = field(default_factory=get_knowledge)
    references: ReferenceRegistry = field(default_factory=ReferenceRegistry)
    occurrences: OccurrenceRegistry = field(default_factory=OccurrenceRegistry)
