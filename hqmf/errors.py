"""
Error hierarchy for the HQMF data criteria parser.

Every fatal condition aborts the whole document parse. Each carries the
offending identifier so the malformed entry can be located.

Hierarchy:
    DataCriteriaError                   (base, subclass of ValueError)
    ├── UnrecognizedValueTypeError      (xsi:type not in the value table)
    ├── UnknownTemplateError            (definition element not recognised)
    ├── UnknownDemographicError         (demographic code not recognised)
    ├── ConflictingDerivationError      (mixed conjunction codes)
    └── MissingOccurrenceError          (no occurrence tag for a source)
    ConfigurationError                  (bad environment / knowledge dir)
"""

from __future__ import annotations

from typing import Any


class DataCriteriaError(ValueError):
    """Base exception for malformed or unsupported criteria entries."""

    def __init__(self, message: str, *, entry_id: str | None = None):
        self.entry_id = entry_id
        super().__init__(message)

    def to_dict(self) -> dict[str, Any]:
        """Structured representation for logging."""
        d = {
            "error_type": type(self).__name__,
            "message": str(self),
        }
        if self.entry_id:
            d["entry_id"] = self.entry_id
        return d


class UnrecognizedValueTypeError(DataCriteriaError):
    """A value node carries an xsi:type the parser does not handle."""

    def __init__(self, value_type: str, **kwargs):
        self.value_type = value_type
        super().__init__(f"Unknown value type [{value_type}]", **kwargs)


class UnknownTemplateError(DataCriteriaError):
    """The definition element names no known definition or fallback."""

    def __init__(self, entry_type: str, **kwargs):
        self.entry_type = entry_type
        super().__init__(
            f"Unknown data criteria template identifier [{entry_type}]", **kwargs
        )


class UnknownDemographicError(DataCriteriaError):
    """A Demographics entry carries an unrecognised observation code."""

    def __init__(self, demographic_code: str | None, **kwargs):
        self.demographic_code = demographic_code
        super().__init__(
            f"Unknown demographic identifier [{demographic_code}]", **kwargs
        )


class ConflictingDerivationError(DataCriteriaError):
    """Children of one entry disagree on their conjunction code."""

    def __init__(self, codes: list[str], **kwargs):
        self.codes = codes
        super().__init__(
            f"More than one derivation operator in data criteria {codes}", **kwargs
        )


class MissingOccurrenceError(DataCriteriaError):
    """A specific occurrence points at a source with no registered tag."""

    def __init__(self, source_data_criteria: str, source_root: str | None = None, **kwargs):
        self.source_data_criteria = source_data_criteria
        self.source_root = source_root
        super().__init__(
            f"Could not find occurrence mapping for {source_data_criteria}, {source_root}",
            **kwargs,
        )


class ConfigurationError(Exception):
    """Invalid environment configuration or missing knowledge directory."""
    pass
