"""Plan version models - immutable numbered snapshots of a trip's schedule."""

from datetime import datetime
from enum import Enum
from typing import Annotated, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator

from tripline.models.blocks import TimeBlock, order_blocks
from tripline.models.common import PositionKey
from tripline.models.violations import Violation


class PlanVersion(BaseModel):
    """Complete, independently readable schedule snapshot for a trip."""

    model_config = ConfigDict(frozen=True)

    id: str
    trip_id: str
    version_number: Annotated[int, Field(ge=1)]
    created_by: str
    created_at: datetime
    change_summary: str
    blocks: tuple[TimeBlock, ...] = ()

    @field_validator("blocks")
    @classmethod
    def validate_block_order(cls, v: tuple[TimeBlock, ...]) -> tuple[TimeBlock, ...]:
        """Keep blocks in date / daily-sequence order with unique positions and ids."""
        ordered = tuple(order_blocks(list(v)))
        seen_positions: set[tuple] = set()
        seen_ids: set[str] = set()
        for block in ordered:
            key = block.sort_key()
            if key in seen_positions:
                raise ValueError(f"Duplicate block position {block.position_key}")
            if block.id in seen_ids:
                raise ValueError(f"Duplicate block id {block.id}")
            seen_positions.add(key)
            seen_ids.add(block.id)
        return ordered

    def block_at(self, key: PositionKey) -> TimeBlock | None:
        for block in self.blocks:
            if block.date == key.date and block.block_type == key.block_type:
                return block
        return None


class PlanVersionSummary(BaseModel):
    """Version header for listing."""

    id: str
    trip_id: str
    version_number: int
    created_by: str
    created_at: datetime
    change_summary: str
    num_blocks: int
    num_assigned: int


class AtBoundary(BaseModel):
    """Navigation hit the first or last version."""

    at_boundary: Literal[True] = True
    version_number: int


class CommitFailureReason(str, Enum):
    """Why a version was not written."""

    VALIDATION_REJECTED = "validation_rejected"
    VERSION_CONFLICT = "version_conflict"
    INITIAL_VERSION_EXISTS = "initial_version_exists"
    NO_CURRENT_VERSION = "no_current_version"
    VERSION_NOT_FOUND = "version_not_found"


class CommitFailure(BaseModel):
    """Structured failure from the version manager; nothing was persisted."""

    reason: CommitFailureReason
    message: str
    retryable: bool = False
    violation: Violation | None = None


class BlockDiff(BaseModel):
    """Selection change at one position between two versions."""

    position: PositionKey
    before_activity_id: str | None
    before_meal_id: str | None
    after_activity_id: str | None
    after_meal_id: str | None
