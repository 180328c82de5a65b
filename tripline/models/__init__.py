"""Models package - re-exports for convenience."""

from tripline.models.blocks import (
    UNASSIGNED,
    ActivitySelection,
    MealSelection,
    Selection,
    TimeBlock,
    Unassigned,
    order_blocks,
    selection_from_fields,
)
from tripline.models.common import BlockType, Direction, OptionKind, PositionKey
from tripline.models.delta import BlockChange, ScheduleDelta
from tripline.models.trip import ActivityOption, CitySegment, MealOption, Trip
from tripline.models.versions import (
    AtBoundary,
    BlockDiff,
    CommitFailure,
    CommitFailureReason,
    PlanVersion,
    PlanVersionSummary,
)
from tripline.models.violations import ValidationResult, Violation, ViolationCode

__all__ = [
    # Common
    "BlockType",
    "Direction",
    "OptionKind",
    "PositionKey",
    # Trip
    "Trip",
    "CitySegment",
    "ActivityOption",
    "MealOption",
    # Blocks
    "TimeBlock",
    "Selection",
    "Unassigned",
    "ActivitySelection",
    "MealSelection",
    "UNASSIGNED",
    "selection_from_fields",
    "order_blocks",
    # Delta
    "BlockChange",
    "ScheduleDelta",
    # Versions
    "PlanVersion",
    "PlanVersionSummary",
    "AtBoundary",
    "BlockDiff",
    "CommitFailure",
    "CommitFailureReason",
    # Violations
    "Violation",
    "ViolationCode",
    "ValidationResult",
]
