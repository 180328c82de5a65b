"""Plan version endpoints - initial version, modifications, history and navigation."""

import uuid
from datetime import date, datetime
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, Query, Request, status
from pydantic import BaseModel, Field

from tripline.api.context import ActorContext, get_actor_context
from tripline.api.dependencies import get_trip_repository, get_version_manager
from tripline.db.repositories import TripRepository
from tripline.models.blocks import TimeBlock, selection_from_fields
from tripline.models.common import BlockType, Direction
from tripline.models.trip import Trip
from tripline.models.versions import (
    AtBoundary,
    BlockDiff,
    CommitFailure,
    CommitFailureReason,
    PlanVersion,
    PlanVersionSummary,
)
from tripline.scheduling.delta_parser import ParseError, parse_delta
from tripline.scheduling.timeline import merge_with_skeleton
from tripline.scheduling.versions import PlanVersionManager

router = APIRouter(prefix="/trips/{trip_id}/versions", tags=["versions"])

_FAILURE_STATUS = {
    CommitFailureReason.VALIDATION_REJECTED: status.HTTP_422_UNPROCESSABLE_ENTITY,
    CommitFailureReason.VERSION_CONFLICT: status.HTTP_409_CONFLICT,
    CommitFailureReason.INITIAL_VERSION_EXISTS: status.HTTP_409_CONFLICT,
    CommitFailureReason.NO_CURRENT_VERSION: status.HTTP_404_NOT_FOUND,
    CommitFailureReason.VERSION_NOT_FOUND: status.HTTP_404_NOT_FOUND,
}


class TimeBlockPayload(BaseModel):
    """Time block as sent and returned over HTTP (flat selection fields)."""

    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    date: date
    block_type: BlockType
    start_time: str
    end_time: str
    segment_id: str | None = None
    selected_activity_id: str | None = None
    selected_meal_id: str | None = None

    @classmethod
    def from_block(cls, block: TimeBlock) -> "TimeBlockPayload":
        return cls(
            id=block.id,
            date=block.date,
            block_type=block.block_type,
            start_time=block.start_time,
            end_time=block.end_time,
            segment_id=block.segment_id,
            selected_activity_id=block.selected_activity_id,
            selected_meal_id=block.selected_meal_id,
        )

    def to_block(self) -> TimeBlock:
        return TimeBlock(
            id=self.id,
            date=self.date,
            block_type=self.block_type,
            start_time=self.start_time,
            end_time=self.end_time,
            segment_id=self.segment_id,
            selection=selection_from_fields(self.selected_activity_id, self.selected_meal_id),
        )


class CreateInitialVersionRequest(BaseModel):
    """Request body for POST /trips/{trip_id}/versions."""

    blocks: list[TimeBlockPayload]
    change_summary: str = Field("Initial itinerary", min_length=1, max_length=1000)
    fill_missing_blocks: bool = Field(
        False, description="Add empty template blocks for positions the schedule omits"
    )


class PlanVersionResponse(BaseModel):
    """Response for a single plan version."""

    id: str
    trip_id: str
    version_number: int
    created_by: str
    created_at: datetime
    change_summary: str
    blocks: list[TimeBlockPayload]

    @classmethod
    def from_version(cls, version: PlanVersion) -> "PlanVersionResponse":
        return cls(
            id=version.id,
            trip_id=version.trip_id,
            version_number=version.version_number,
            created_by=version.created_by,
            created_at=version.created_at,
            change_summary=version.change_summary,
            blocks=[TimeBlockPayload.from_block(b) for b in version.blocks],
        )


async def read_raw_body(request: Request) -> bytes:
    """Request body as sent; edit payloads may arrive wrapped in a Markdown fence."""
    return await request.body()


def _load_trip(trips: TripRepository, trip_id: str) -> Trip:
    trip = trips.get_trip(trip_id)
    if trip is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Trip not found")
    return trip


def _fill_missing_blocks(trip: Trip, blocks: list[TimeBlock]) -> list[TimeBlock]:
    """Add empty template blocks for every segment position the schedule omits."""
    by_position: dict[tuple, TimeBlock] = {}
    for segment in trip.ordered_segments():
        in_segment = [b for b in blocks if segment.contains(b.date)]
        for block in merge_with_skeleton(segment, in_segment):
            # Travel days belong to two segments; the earlier one fills them
            by_position.setdefault(block.sort_key(), block)
    for block in blocks:
        by_position[block.sort_key()] = block
    return list(by_position.values())


def _committed(result: PlanVersion | CommitFailure) -> PlanVersionResponse:
    """Map a manager outcome to a response, raising for failures."""
    if isinstance(result, CommitFailure):
        raise HTTPException(
            status_code=_FAILURE_STATUS[result.reason],
            detail=result.model_dump(mode="json"),
        )
    return PlanVersionResponse.from_version(result)


@router.post("", response_model=PlanVersionResponse, status_code=status.HTTP_201_CREATED)
def create_initial_version(
    trip_id: str,
    request: CreateInitialVersionRequest,
    actor: Annotated[ActorContext, Depends(get_actor_context)],
    trips: Annotated[TripRepository, Depends(get_trip_repository)],
    manager: Annotated[PlanVersionManager, Depends(get_version_manager)],
) -> PlanVersionResponse:
    """Create version 1 from the generated schedule."""
    trip = _load_trip(trips, trip_id)

    try:
        blocks = [payload.to_block() for payload in request.blocks]
    except ValueError as e:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(e)
        ) from e

    if request.fill_missing_blocks:
        blocks = _fill_missing_blocks(trip, blocks)

    result = manager.create_initial_version(
        trip, blocks, created_by=actor.actor_id, change_summary=request.change_summary
    )
    return _committed(result)


@router.post(
    "/modifications", response_model=PlanVersionResponse, status_code=status.HTTP_201_CREATED
)
def apply_modification(
    trip_id: str,
    body: Annotated[bytes, Depends(read_raw_body)],
    actor: Annotated[ActorContext, Depends(get_actor_context)],
    trips: Annotated[TripRepository, Depends(get_trip_repository)],
    manager: Annotated[PlanVersionManager, Depends(get_version_manager)],
) -> PlanVersionResponse:
    """Apply an edit payload (JSON, optionally inside a Markdown fence) as a new version."""
    trip = _load_trip(trips, trip_id)

    parsed = parse_delta(body)
    if isinstance(parsed, ParseError):
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail=parsed.model_dump(mode="json"),
        )

    result = manager.apply_modification(trip, parsed, created_by=actor.actor_id)
    return _committed(result)


@router.get("", response_model=list[PlanVersionSummary])
def list_versions(
    trip_id: str,
    manager: Annotated[PlanVersionManager, Depends(get_version_manager)],
) -> list[PlanVersionSummary]:
    """List version headers, oldest first."""
    return manager.list_versions(trip_id)


@router.get("/current", response_model=PlanVersionResponse)
def get_current_version(
    trip_id: str,
    manager: Annotated[PlanVersionManager, Depends(get_version_manager)],
) -> PlanVersionResponse:
    """Get the highest-numbered version."""
    version = manager.current_version(trip_id)
    if version is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="No plan version")
    return PlanVersionResponse.from_version(version)


@router.get("/{version_number}", response_model=PlanVersionResponse)
def get_version(
    trip_id: str,
    version_number: int,
    manager: Annotated[PlanVersionManager, Depends(get_version_manager)],
) -> PlanVersionResponse:
    """Get a version by number."""
    version = manager.get_version(trip_id, version_number)
    if version is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Version not found")
    return PlanVersionResponse.from_version(version)


@router.get(
    "/{version_number}/navigate", response_model=PlanVersionResponse | AtBoundary
)
def navigate(
    trip_id: str,
    version_number: int,
    direction: Annotated[Direction, Query()],
    manager: Annotated[PlanVersionManager, Depends(get_version_manager)],
) -> PlanVersionResponse | AtBoundary:
    """Step to the previous or next version."""
    result = manager.navigate(trip_id, version_number, direction)
    if result is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Version not found")
    if isinstance(result, AtBoundary):
        return result
    return PlanVersionResponse.from_version(result)


@router.get("/{from_version}/diff/{to_version}", response_model=list[BlockDiff])
def diff_versions(
    trip_id: str,
    from_version: int,
    to_version: int,
    manager: Annotated[PlanVersionManager, Depends(get_version_manager)],
) -> list[BlockDiff]:
    """Selection changes between two versions."""
    diffs = manager.diff_versions(trip_id, from_version, to_version)
    if diffs is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Version not found")
    return diffs


@router.post(
    "/{version_number}/revert",
    response_model=PlanVersionResponse,
    status_code=status.HTTP_201_CREATED,
)
def revert_to_version(
    trip_id: str,
    version_number: int,
    actor: Annotated[ActorContext, Depends(get_actor_context)],
    trips: Annotated[TripRepository, Depends(get_trip_repository)],
    manager: Annotated[PlanVersionManager, Depends(get_version_manager)],
) -> PlanVersionResponse:
    """Append a new version restoring an earlier version's selections."""
    trip = _load_trip(trips, trip_id)
    result = manager.revert_to(trip, version_number, created_by=actor.actor_id)
    return _committed(result)
