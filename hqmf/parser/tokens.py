"""
Identifier normalization.

Every id stored in or looked up from a registry passes through normalize().
"""

from __future__ import annotations

import re

_DISALLOWED = re.compile(r"[^.~A-Za-z0-9_]")
_LEADING_DIGIT = re.compile(r"^[0-9]")

PREFIX = "prefix_"


def normalize(raw_id: str | None) -> str | None:
    """
    Canonical registry key for a raw document identifier.

    Strips everything except ASCII letters, digits, ``_``, ``.`` and ``~``,
    then prefixes ids that begin with a digit. Idempotent.

    >>> normalize("2.16.840.1 abc-def")
    'prefix_2.16.840.1abcdef'
    """
    if raw_id is None:
        return None
    token = _DISALLOWED.sub("", raw_id)
    if _LEADING_DIGIT.match(token):
        token = PREFIX + token
    return token
