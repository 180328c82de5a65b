"""Time block models - schedulable slots and their tagged-union selections."""

from datetime import date
from typing import Annotated, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator

from tripline.models.common import BlockType, PositionKey


class Unassigned(BaseModel):
    """Block holds no selection."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["unassigned"] = "unassigned"

    @property
    def activity_id(self) -> str | None:
        return None

    @property
    def meal_id(self) -> str | None:
        return None


class ActivitySelection(BaseModel):
    """Block holds one attraction."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["activity"] = "activity"
    activity_id: str = Field(..., min_length=1)

    @property
    def meal_id(self) -> str | None:
        return None


class MealSelection(BaseModel):
    """Block holds one restaurant."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["meal"] = "meal"
    meal_id: str = Field(..., min_length=1)

    @property
    def activity_id(self) -> str | None:
        return None


Selection = Annotated[
    Union[Unassigned, ActivitySelection, MealSelection],
    Field(discriminator="kind"),
]

UNASSIGNED = Unassigned()


def selection_from_fields(
    activity_id: str | None, meal_id: str | None
) -> Unassigned | ActivitySelection | MealSelection:
    """Build a selection from the two nullable record fields.

    Raises:
        ValueError: If both an activity and a meal are set.
    """
    if activity_id and meal_id:
        raise ValueError(
            f"A block cannot hold both activity {activity_id} and meal {meal_id}"
        )
    if activity_id:
        return ActivitySelection(activity_id=activity_id)
    if meal_id:
        return MealSelection(meal_id=meal_id)
    return UNASSIGNED


def is_assigned(selection: Unassigned | ActivitySelection | MealSelection) -> bool:
    return not isinstance(selection, Unassigned)


class TimeBlock(BaseModel):
    """Atomic schedulable unit belonging to exactly one plan version."""

    model_config = ConfigDict(frozen=True)

    id: str
    date: date
    block_type: BlockType
    start_time: str
    end_time: str
    segment_id: str | None = None
    selection: Selection = UNASSIGNED

    @field_validator("start_time", "end_time", mode="before")
    @classmethod
    def normalize_times(cls, v: object) -> str:
        """Store times in canonical HH:MM form."""
        # Imported lazily: the timeline module depends on this one
        from tripline.scheduling.timeline import normalize_time

        return normalize_time(v)  # type: ignore[arg-type]

    @property
    def position_key(self) -> PositionKey:
        return PositionKey(date=self.date, block_type=self.block_type)

    @property
    def selected_activity_id(self) -> str | None:
        return self.selection.activity_id

    @property
    def selected_meal_id(self) -> str | None:
        return self.selection.meal_id

    def sort_key(self) -> tuple[date, int]:
        return (self.date, self.block_type.order)


def order_blocks(blocks: list[TimeBlock]) -> list[TimeBlock]:
    """Sort blocks by date, then by the fixed daily block-type sequence."""
    return sorted(blocks, key=lambda b: b.sort_key())
