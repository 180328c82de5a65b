"""Repository protocol interfaces for data access."""

from typing import Protocol

from tripline.models.trip import Trip
from tripline.models.versions import PlanVersion


class VersionConflictError(Exception):
    """The trip's current version number changed between read and write."""

    def __init__(self, trip_id: str, expected: int | None, actual: int | None) -> None:
        super().__init__(
            f"Version conflict on trip {trip_id}: expected current {expected}, found {actual}"
        )
        self.trip_id = trip_id
        self.expected = expected
        self.actual = actual


class PlanVersionRepository(Protocol):
    """Append-only store of plan versions, one linear chain per trip."""

    def latest_version_number(self, trip_id: str) -> int | None:
        """Highest version number for the trip, computed at read time.

        Args:
            trip_id: Trip ID

        Returns:
            Highest version number, or None if the trip has no versions
        """
        ...

    def get_latest(self, trip_id: str) -> PlanVersion | None:
        """Get the current (highest-numbered) version with all its blocks."""
        ...

    def get_version(self, trip_id: str, version_number: int) -> PlanVersion | None:
        """Get a specific version by number.

        Args:
            trip_id: Trip ID
            version_number: Version number

        Returns:
            Plan version or None if not found
        """
        ...

    def list_versions(self, trip_id: str) -> list[PlanVersion]:
        """List all versions of a trip ordered by version number."""
        ...

    def append_version(self, version: PlanVersion, expected_current: int | None) -> None:
        """Append a version if the trip's current number still equals expected_current.

        Args:
            version: New version; its number must be expected_current + 1
            expected_current: Version number read before computing the candidate
                (None when no version existed)

        Raises:
            VersionConflictError: If another writer appended first
        """
        ...


class TripRepository(Protocol):
    """Store of trip context (segments and option pools) supplied by collaborators."""

    def save_trip(self, trip: Trip) -> None:
        """Insert or replace a trip."""
        ...

    def get_trip(self, trip_id: str) -> Trip | None:
        """Get trip by ID, or None if not found."""
        ...
