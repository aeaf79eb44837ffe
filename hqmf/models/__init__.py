"""
Data models for the HQMF parser.
"""

from .criteria import (
    DERIVED,
    PATIENT_CHARACTERISTIC_PREFIX,
    SATISFIES_ALL,
    SATISFIES_ANY,
    TRANSFER_DEFINITIONS,
    VARIABLE,
    AnyValue,
    Coded,
    DataCriteriaModel,
    DerivationOperator,
    FieldValue,
    Interval,
    Quantity,
    Reference,
    SubsetOperator,
    TemporalReference,
    Timestamp,
    TypedReference,
    Value,
)

__all__ = [
    "DERIVED",
    "PATIENT_CHARACTERISTIC_PREFIX",
    "SATISFIES_ALL",
    "SATISFIES_ANY",
    "TRANSFER_DEFINITIONS",
    "VARIABLE",
    "AnyValue",
    "Coded",
    "DataCriteriaModel",
    "DerivationOperator",
    "FieldValue",
    "Interval",
    "Quantity",
    "Reference",
    "SubsetOperator",
    "TemporalReference",
    "Timestamp",
    "TypedReference",
    "Value",
]
