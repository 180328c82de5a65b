"""Common types and enums shared across all models."""

from datetime import date
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class BlockType(str, Enum):
    """Fixed daily slot type."""

    morning = "morning"
    lunch = "lunch"
    afternoon = "afternoon"
    dinner = "dinner"
    evening = "evening"

    @property
    def order(self) -> int:
        """Position of this slot within a day."""
        return _BLOCK_ORDER[self]

    @property
    def is_meal(self) -> bool:
        """Lunch and dinner hold restaurant selections."""
        return self in (BlockType.lunch, BlockType.dinner)


_BLOCK_ORDER = {
    BlockType.morning: 0,
    BlockType.lunch: 1,
    BlockType.afternoon: 2,
    BlockType.dinner: 3,
    BlockType.evening: 4,
}


class Direction(str, Enum):
    """Version navigation direction."""

    prev = "prev"
    next = "next"


class OptionKind(str, Enum):
    """Type of selectable option."""

    activity = "activity"
    meal = "meal"


class PositionKey(BaseModel):
    """Identity of a block within a version: (date, block_type)."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    date: date
    block_type: BlockType = Field(..., alias="blockType")

    def sort_key(self) -> tuple[date, int]:
        return (self.date, self.block_type.order)

    def __str__(self) -> str:
        return f"{self.date.isoformat()}/{self.block_type.value}"
