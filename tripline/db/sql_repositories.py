"""SQL implementations of repository interfaces."""

from datetime import datetime, time, timezone

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, selectinload

from tripline.db.models import PlanVersionRecord, TimeBlockRecord, TripRecord
from tripline.db.repositories import VersionConflictError
from tripline.models.blocks import TimeBlock, selection_from_fields
from tripline.models.common import BlockType
from tripline.models.trip import Trip
from tripline.models.versions import PlanVersion


def _to_time(value: str) -> time:
    return time.fromisoformat(value)


def _block_to_record(block: TimeBlock) -> TimeBlockRecord:
    return TimeBlockRecord(
        block_id=block.id,
        date=block.date,
        block_type=block.block_type.value,
        start_time=_to_time(block.start_time),
        end_time=_to_time(block.end_time),
        segment_id=block.segment_id,
        selected_activity_id=block.selected_activity_id,
        selected_meal_id=block.selected_meal_id,
    )


def _record_to_block(record: TimeBlockRecord) -> TimeBlock:
    return TimeBlock(
        id=record.block_id,
        date=record.date,
        block_type=BlockType(record.block_type),
        start_time=record.start_time,
        end_time=record.end_time,
        segment_id=record.segment_id,
        selection=selection_from_fields(record.selected_activity_id, record.selected_meal_id),
    )


def _as_utc(value: datetime) -> datetime:
    # SQLite drops tzinfo; naive values are stored and read back as UTC
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def _record_to_version(record: PlanVersionRecord) -> PlanVersion:
    return PlanVersion(
        id=record.id,
        trip_id=record.trip_id,
        version_number=record.version_number,
        created_by=record.created_by,
        created_at=_as_utc(record.created_at),
        change_summary=record.change_summary,
        blocks=tuple(_record_to_block(b) for b in record.blocks),
    )


class SqlPlanVersionRepository:
    """SQL implementation of PlanVersionRepository."""

    def __init__(self, session: Session) -> None:
        self._session = session

    def latest_version_number(self, trip_id: str) -> int | None:
        """Highest version number for the trip."""
        return self._session.execute(
            select(func.max(PlanVersionRecord.version_number)).where(
                PlanVersionRecord.trip_id == trip_id
            )
        ).scalar_one_or_none()

    def get_latest(self, trip_id: str) -> PlanVersion | None:
        """Get the current version."""
        record = self._session.execute(
            select(PlanVersionRecord)
            .where(PlanVersionRecord.trip_id == trip_id)
            .options(selectinload(PlanVersionRecord.blocks))
            .order_by(PlanVersionRecord.version_number.desc())
            .limit(1)
        ).scalar_one_or_none()

        if record is None:
            return None

        return _record_to_version(record)

    def get_version(self, trip_id: str, version_number: int) -> PlanVersion | None:
        """Get a specific version by number."""
        record = self._session.execute(
            select(PlanVersionRecord)
            .where(
                PlanVersionRecord.trip_id == trip_id,
                PlanVersionRecord.version_number == version_number,
            )
            .options(selectinload(PlanVersionRecord.blocks))
        ).scalar_one_or_none()

        if record is None:
            return None

        return _record_to_version(record)

    def list_versions(self, trip_id: str) -> list[PlanVersion]:
        """List all versions ordered by number."""
        records = self._session.execute(
            select(PlanVersionRecord)
            .where(PlanVersionRecord.trip_id == trip_id)
            .options(selectinload(PlanVersionRecord.blocks))
            .order_by(PlanVersionRecord.version_number)
        ).scalars()

        return [_record_to_version(r) for r in records]

    def append_version(self, version: PlanVersion, expected_current: int | None) -> None:
        """Append a version; the unique (trip_id, version_number) constraint arbitrates races."""
        actual = self.latest_version_number(version.trip_id)
        if actual != expected_current:
            raise VersionConflictError(version.trip_id, expected_current, actual)

        record = PlanVersionRecord(
            id=version.id,
            trip_id=version.trip_id,
            version_number=version.version_number,
            created_by=version.created_by,
            created_at=_as_utc(version.created_at),
            change_summary=version.change_summary,
            blocks=[_block_to_record(b) for b in version.blocks],
        )
        self._session.add(record)

        try:
            self._session.commit()
        except IntegrityError as e:
            self._session.rollback()
            raise VersionConflictError(
                version.trip_id, expected_current, self.latest_version_number(version.trip_id)
            ) from e


class SqlTripRepository:
    """SQL implementation of TripRepository."""

    def __init__(self, session: Session) -> None:
        self._session = session

    def save_trip(self, trip: Trip) -> None:
        """Insert or replace a trip."""
        record = TripRecord(trip_id=trip.id, data=trip.model_dump(mode="json"))
        self._session.merge(record)
        self._session.commit()

    def get_trip(self, trip_id: str) -> Trip | None:
        """Get trip by ID."""
        record = self._session.get(TripRecord, trip_id)

        if record is None:
            return None

        return Trip.model_validate(record.data)
