"""Timeline endpoints - stateless time arithmetic for schedule generation."""

from fastapi import APIRouter
from pydantic import BaseModel, Field

from tripline.scheduling.timeline import compute_first_activity_start, format_display_time

router = APIRouter(prefix="/timeline", tags=["timeline"])


class FirstActivityStartRequest(BaseModel):
    """Request body for POST /timeline/first-activity-start."""

    flight_arrival: str | None = Field(None, description="Arrival time, HH:MM or ISO timestamp")
    hotel_check_in: str | None = Field(None, description="Check-in time (defaults to 15:00)")


class FirstActivityStartResponse(BaseModel):
    start_time: str
    display_time: str


@router.post("/first-activity-start", response_model=FirstActivityStartResponse)
async def first_activity_start(request: FirstActivityStartRequest) -> FirstActivityStartResponse:
    """Earliest start of the first activity on arrival day."""
    start = compute_first_activity_start(request.flight_arrival, request.hotel_check_in)
    return FirstActivityStartResponse(start_time=start, display_time=format_display_time(start))
