"""
Data criteria models for the HQMF parser.

These Pydantic models are the read-only output of a parse. The parser builds
mutable working entities and exports them into these models once every
cross-reference in the document has been resolved.
"""

from __future__ import annotations

from enum import Enum
from typing import Literal, Union

from pydantic import BaseModel, ConfigDict, Field


# =============================================================================
# ENUMS & CONSTANTS
# =============================================================================


class DerivationOperator(str, Enum):
    UNION = "UNION"
    XPRODUCT = "XPRODUCT"
    INTERSECT = "INTERSECT"


DERIVED = "derived"
VARIABLE = "variable"
SATISFIES_ANY = "satisfies_any"
SATISFIES_ALL = "satisfies_all"
TRANSFER_DEFINITIONS = ("transfer_to", "transfer_from")
PATIENT_CHARACTERISTIC_PREFIX = "patient_characteristic"


class FrozenModel(BaseModel):
    """Base for every exported model; instances cannot be reassigned."""
    model_config = ConfigDict(frozen=True)


# =============================================================================
# VALUES
# =============================================================================


class Quantity(FrozenModel):
    """A physical quantity, e.g. 140 mm[Hg]."""
    type: Literal["PQ"] = "PQ"
    value: str | None = None
    unit: str | None = None
    inclusive: bool = False

    def __str__(self) -> str:
        return f"{self.value} {self.unit}" if self.unit else str(self.value)


class Timestamp(FrozenModel):
    """A point in time as written in the document (HL7 TS)."""
    type: Literal["TS"] = "TS"
    value: str | None = None


class Interval(FrozenModel):
    """A range over quantities or integers."""
    type: Literal["IVL_PQ", "IVL_INT"] = "IVL_PQ"
    low: Quantity | None = None
    high: Quantity | None = None
    width: Quantity | None = None


class Coded(FrozenModel):
    """A single code or a reference to a value set."""
    type: Literal["CD"] = "CD"
    code: str | None = None
    code_system: str | None = None
    code_list_id: str | None = Field(default=None, description="Value set OID")
    title: str | None = None


class AnyValue(FrozenModel):
    """Wildcard: any non-null value is present."""
    type: Literal["ANYNonNull"] = "ANYNonNull"


Value = Union[Quantity, Timestamp, Interval, Coded, AnyValue]


# =============================================================================
# REFERENCES & OPERATORS
# =============================================================================


class Reference(FrozenModel):
    """Reference to another data criteria by normalized id."""
    id: str


class TypedReference(FrozenModel):
    """Reference carrying the referenced act's class and mood."""
    id: str
    type: str | None = None
    mood: str | None = None


class TemporalReference(FrozenModel):
    """Temporal relationship, e.g. SBS (starts before start) of another criteria."""
    type: str | None = None
    reference: Reference
    range: Interval | None = None


class SubsetOperator(FrozenModel):
    """Non-boolean set operator such as FIRST or RECENT."""
    type: str | None = None
    value: Interval | None = None


FieldValue = Union[Quantity, Timestamp, Interval, Coded, AnyValue, TypedReference]


# =============================================================================
# DATA CRITERIA
# =============================================================================


class DataCriteriaModel(FrozenModel):
    """
    Normalized clinical data requirement.

    One instance per document entry (plus one per variable grouper). Empty
    collections are exported as None.
    """
    id: str
    title: str | None = None
    description: str | None = None
    code_list_id: str | None = None
    definition: str | None = None
    status: str | None = None

    negation: bool = False
    negation_code_list_id: str | None = None

    value: Value | None = None
    field_values: dict[str, FieldValue] | None = None
    inline_code_list: dict[str, list[str]] | None = None

    temporal_references: tuple[TemporalReference, ...] = ()
    subset_operators: tuple[SubsetOperator, ...] = ()
    children_criteria: tuple[str, ...] | None = None
    derivation_operator: DerivationOperator | None = None

    specific_occurrence: str | None = None
    specific_occurrence_const: str | None = None
    source_data_criteria: str | None = None

    comments: tuple[str, ...] | None = None
    variable: bool = False

    @property
    def is_derived(self) -> bool:
        return self.derivation_operator is not None

    @property
    def is_specific_occurrence(self) -> bool:
        return self.specific_occurrence is not None

    def __str__(self) -> str:
        return f"{self.id} ({self.definition or 'unknown'})"
