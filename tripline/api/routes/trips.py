"""Trip context endpoints - segments and option pools supplied by the planner."""

from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, status

from tripline.api.dependencies import get_trip_repository
from tripline.db.repositories import TripRepository
from tripline.models.trip import Trip

router = APIRouter(prefix="/trips", tags=["trips"])


@router.put("/{trip_id}", response_model=Trip)
def put_trip(
    trip_id: str,
    trip: Trip,
    trips: Annotated[TripRepository, Depends(get_trip_repository)],
) -> Trip:
    """Register or replace a trip's context.

    Existing plan versions are left untouched; later edits validate against the new
    context.
    """
    if trip.id != trip_id:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Trip id in body ({trip.id}) does not match path ({trip_id})",
        )
    trips.save_trip(trip)
    return trip


@router.get("/{trip_id}", response_model=Trip)
def get_trip(
    trip_id: str,
    trips: Annotated[TripRepository, Depends(get_trip_repository)],
) -> Trip:
    """Get a trip's context."""
    trip = trips.get_trip(trip_id)
    if trip is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Trip not found")
    return trip
