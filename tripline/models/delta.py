"""Schedule delta models - sparse selection changes applied to the current version."""

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, model_validator

from tripline.models.blocks import (
    ActivitySelection,
    MealSelection,
    Unassigned,
    selection_from_fields,
)
from tripline.models.common import PositionKey


class BlockChange(BaseModel):
    """Requested new selection for one block.

    A block is named either by ``block_id`` or by ``position_key``. Within an entry,
    an absent selection field leaves that field unchanged and an explicit ``null``
    clears it.
    """

    model_config = ConfigDict(extra="forbid", frozen=True)

    block_id: str | None = Field(
        default=None, validation_alias=AliasChoices("blockId", "block_id", "id")
    )
    position_key: PositionKey | None = Field(
        default=None, validation_alias=AliasChoices("positionKey", "position_key")
    )
    selected_activity_id: str | None = Field(
        default=None,
        validation_alias=AliasChoices(
            "selectedActivityId", "selected_activity_id", "selectedAttractionId"
        ),
    )
    selected_meal_id: str | None = Field(
        default=None,
        validation_alias=AliasChoices(
            "selectedMealId", "selected_meal_id", "selectedRestaurantId"
        ),
    )

    @model_validator(mode="after")
    def validate_shape(self) -> "BlockChange":
        """Exactly one block reference; never both an activity and a meal."""
        if (self.block_id is None) == (self.position_key is None):
            raise ValueError("each change must name exactly one of blockId or positionKey")

        if self.selected_activity_id and self.selected_meal_id:
            raise ValueError(
                "a block cannot hold both an activity and a meal "
                f"({self.selected_activity_id}, {self.selected_meal_id})"
            )

        if self.position_key is not None:
            block_type = self.position_key.block_type
            if block_type.is_meal and self.selected_activity_id:
                raise ValueError(
                    f"{block_type.value} blocks accept meal selections only "
                    f"(got activity {self.selected_activity_id})"
                )
            if not block_type.is_meal and self.selected_meal_id:
                raise ValueError(
                    f"{block_type.value} blocks accept activity selections only "
                    f"(got meal {self.selected_meal_id})"
                )
        return self

    def apply_to(
        self, current: Unassigned | ActivitySelection | MealSelection
    ) -> Unassigned | ActivitySelection | MealSelection:
        """Overlay this change on a block's current selection."""
        if self.selected_activity_id:
            return ActivitySelection(activity_id=self.selected_activity_id)
        if self.selected_meal_id:
            return MealSelection(meal_id=self.selected_meal_id)

        fields = self.model_fields_set
        activity_id = None if "selected_activity_id" in fields else current.activity_id
        meal_id = None if "selected_meal_id" in fields else current.meal_id
        return selection_from_fields(activity_id, meal_id)


class ScheduleDelta(BaseModel):
    """Parsed, schema-checked edit request ready for the version manager."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    changes: list[BlockChange] = Field(
        default_factory=list, validation_alias=AliasChoices("blocks", "timeBlocks", "changes")
    )
    change_summary: str = Field(
        ...,
        min_length=1,
        max_length=1000,
        validation_alias=AliasChoices("changeSummary", "change_summary", "summary"),
    )
