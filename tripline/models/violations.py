"""Violation models - schedule constraints broken by a candidate block list."""

from enum import Enum
from typing import Any

from pydantic import BaseModel, Field

# JSON-serializable value types for violation details
JsonValue = str | int | float | bool | None | dict[str, Any] | list[Any]


class ViolationCode(str, Enum):
    """Machine-usable rejection codes."""

    DATE_OUT_OF_RANGE = "DATE_OUT_OF_RANGE"
    DUPLICATE_ACTIVITY = "DUPLICATE_ACTIVITY"
    DUPLICATE_MEAL = "DUPLICATE_MEAL"
    POOR_DISTRIBUTION = "POOR_DISTRIBUTION"
    EMPTY_FIRST_DAY = "EMPTY_FIRST_DAY"
    UNKNOWN_ACTIVITY = "UNKNOWN_ACTIVITY"
    UNKNOWN_MEAL = "UNKNOWN_MEAL"
    CROSS_SEGMENT_SELECTION = "CROSS_SEGMENT_SELECTION"
    SELECTION_KIND_MISMATCH = "SELECTION_KIND_MISMATCH"
    DUPLICATE_POSITION = "DUPLICATE_POSITION"
    UNKNOWN_BLOCK = "UNKNOWN_BLOCK"


class Violation(BaseModel):
    """A constraint violation detected during itinerary validation."""

    code: ViolationCode
    message: str  # Human-readable, surfaced verbatim to callers
    details: dict[str, JsonValue] = Field(default_factory=dict)


class ValidationResult(BaseModel):
    """Accept, or reject with the first violated rule."""

    valid: bool
    error: str | None = None
    violation: Violation | None = None

    @classmethod
    def ok(cls) -> "ValidationResult":
        return cls(valid=True)

    @classmethod
    def reject(cls, violation: Violation) -> "ValidationResult":
        return cls(valid=False, error=violation.message, violation=violation)
