"""In-memory implementations of repository interfaces."""

import threading

from tripline.db.repositories import VersionConflictError
from tripline.models.trip import Trip
from tripline.models.versions import PlanVersion


class InMemoryPlanVersionRepository:
    """In-memory implementation of PlanVersionRepository."""

    def __init__(self) -> None:
        self._versions: dict[str, list[PlanVersion]] = {}
        # Guards the compare-and-set in append_version
        self._lock = threading.Lock()

    def latest_version_number(self, trip_id: str) -> int | None:
        """Highest version number for the trip."""
        chain = self._versions.get(trip_id)
        if not chain:
            return None
        return max(v.version_number for v in chain)

    def get_latest(self, trip_id: str) -> PlanVersion | None:
        """Get the current version."""
        chain = self._versions.get(trip_id)
        if not chain:
            return None
        return max(chain, key=lambda v: v.version_number)

    def get_version(self, trip_id: str, version_number: int) -> PlanVersion | None:
        """Get a specific version by number."""
        for version in self._versions.get(trip_id, []):
            if version.version_number == version_number:
                return version
        return None

    def list_versions(self, trip_id: str) -> list[PlanVersion]:
        """List all versions ordered by number."""
        return sorted(self._versions.get(trip_id, []), key=lambda v: v.version_number)

    def append_version(self, version: PlanVersion, expected_current: int | None) -> None:
        """Append a version if nobody else appended since expected_current was read."""
        with self._lock:
            actual = self.latest_version_number(version.trip_id)
            if actual != expected_current:
                raise VersionConflictError(version.trip_id, expected_current, actual)
            if version.version_number != (expected_current or 0) + 1:
                raise ValueError(
                    f"Version number {version.version_number} does not follow "
                    f"{expected_current or 0}"
                )
            self._versions.setdefault(version.trip_id, []).append(version)


class InMemoryTripRepository:
    """In-memory implementation of TripRepository."""

    def __init__(self) -> None:
        self._trips: dict[str, Trip] = {}

    def save_trip(self, trip: Trip) -> None:
        """Insert or replace a trip."""
        self._trips[trip.id] = trip

    def get_trip(self, trip_id: str) -> Trip | None:
        """Get trip by ID."""
        return self._trips.get(trip_id)
