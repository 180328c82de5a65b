"""Plan version manager - append-only, copy-on-write schedule history per trip.

Every write follows the same sequence: read the current version, overlay the
requested changes on a copy of its blocks, validate the full candidate, then
append version N+1 with a compare-and-set on N. A concurrent writer that wins
the race forces a reload and a bounded retry; nothing is ever partially written.
"""

import logging
import uuid
from collections.abc import Callable, Iterable, Sequence
from datetime import datetime, timezone

from tripline.config import Settings, get_settings
from tripline.db.repositories import PlanVersionRepository, VersionConflictError
from tripline.models.blocks import (
    ActivitySelection,
    MealSelection,
    TimeBlock,
    is_assigned,
    order_blocks,
)
from tripline.models.common import Direction
from tripline.models.delta import BlockChange, ScheduleDelta
from tripline.models.trip import Trip
from tripline.models.versions import (
    AtBoundary,
    BlockDiff,
    CommitFailure,
    CommitFailureReason,
    PlanVersion,
    PlanVersionSummary,
)
from tripline.models.violations import ValidationResult, Violation, ViolationCode
from tripline.scheduling.validator import (
    ValidationPolicy,
    group_blocks_by_segment,
    validate_trip_schedule,
)
from tripline.utils.logging import StructuredVersionLogger
from tripline.utils.metrics import PrometheusVersionMetrics

logger = logging.getLogger(__name__)

CommitResult = PlanVersion | CommitFailure


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def check_selection_kinds(blocks: Iterable[TimeBlock]) -> ValidationResult:
    """Meal blocks hold restaurants only; activity blocks hold attractions only."""
    for block in blocks:
        selection = block.selection
        if block.block_type.is_meal and isinstance(selection, ActivitySelection):
            wrong_id = selection.activity_id
        elif not block.block_type.is_meal and isinstance(selection, MealSelection):
            wrong_id = selection.meal_id
        else:
            continue
        return ValidationResult.reject(
            Violation(
                code=ViolationCode.SELECTION_KIND_MISMATCH,
                message=(
                    f"Itinerary validation failed: {block.block_type.value} block on "
                    f"{block.date.isoformat()} cannot hold {wrong_id}"
                ),
                details={
                    "block_type": block.block_type.value,
                    "block_date": block.date.isoformat(),
                    "selected_id": wrong_id,
                },
            )
        )
    return ValidationResult.ok()


def check_unique_positions(blocks: Iterable[TimeBlock]) -> ValidationResult:
    """One block per (date, block_type) position and per block id."""
    seen_positions: set[tuple] = set()
    seen_ids: set[str] = set()
    for block in blocks:
        if block.sort_key() in seen_positions or block.id in seen_ids:
            return ValidationResult.reject(
                Violation(
                    code=ViolationCode.DUPLICATE_POSITION,
                    message=(
                        f"Itinerary validation failed: Block {block.position_key} "
                        f"({block.id}) is defined more than once"
                    ),
                    details={"position": str(block.position_key), "block_id": block.id},
                )
            )
        seen_positions.add(block.sort_key())
        seen_ids.add(block.id)
    return ValidationResult.ok()


def _unmatched_rejection(base: PlanVersion, unmatched: list[str]) -> ValidationResult:
    return ValidationResult.reject(
        Violation(
            code=ViolationCode.UNKNOWN_BLOCK,
            message=(
                f"Itinerary validation failed: No block in version {base.version_number} "
                f"matches {', '.join(unmatched)}"
            ),
            details={"version_number": base.version_number, "unmatched": list(unmatched)},
        )
    )


class PlanVersionManager:
    """Owns the version chain of every trip and applies validated deltas."""

    def __init__(
        self,
        repository: PlanVersionRepository,
        *,
        settings: Settings | None = None,
        policy: ValidationPolicy | None = None,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        """Initialize the manager.

        Args:
            repository: Version store (the only shared mutable resource)
            settings: Settings for retry limits and default policy
            policy: Distribution thresholds (defaults from settings)
            clock: Timestamp source for created_at
        """
        settings = settings or get_settings()
        self._repository = repository
        self._max_attempts = max(1, settings.version_commit_max_attempts)
        self._policy = policy or ValidationPolicy.from_settings(settings)
        self._clock = clock
        self._log = StructuredVersionLogger()
        self._metrics = PrometheusVersionMetrics()

    # Commands

    def create_initial_version(
        self,
        trip: Trip,
        blocks: Sequence[TimeBlock],
        *,
        created_by: str,
        change_summary: str = "Initial itinerary",
    ) -> CommitResult:
        """Create version 1 from the initial schedule.

        Returns:
            The new version, or a failure if a version already exists or the
            schedule is rejected
        """
        if self._repository.latest_version_number(trip.id) is not None:
            return self._initial_exists(trip.id)

        candidate = order_blocks(list(blocks))
        result = self._validate(candidate, trip, segment_ids=None)
        if not result.valid:
            return self._reject(trip.id, "initial", result)

        version = self._build_version(trip.id, 1, candidate, created_by, change_summary)
        try:
            self._repository.append_version(version, expected_current=None)
        except VersionConflictError:
            # Someone else created version 1 between the check and the write
            return self._initial_exists(trip.id)

        self._metrics.inc_committed("initial", attempts=1)
        self._log.log_commit(trip.id, "initial", 1, attempts=1, num_changes=len(candidate))
        return version

    def apply_modification(
        self,
        trip: Trip,
        delta: ScheduleDelta,
        *,
        created_by: str,
    ) -> CommitResult:
        """Apply a delta to the current version and append the result as a new version.

        Args:
            trip: Trip context (segments and option pools) for validation
            delta: Parsed selection changes and change summary
            created_by: Actor recorded on the new version

        Returns:
            The new version, or a failure describing why nothing was written
        """
        return self._commit_changes(
            trip, delta.changes, delta.change_summary, created_by, operation="modify"
        )

    def revert_to(self, trip: Trip, version_number: int, *, created_by: str) -> CommitResult:
        """Append a new version whose selections equal those of an earlier version."""
        target = self._repository.get_version(trip.id, version_number)
        if target is None:
            return CommitFailure(
                reason=CommitFailureReason.VERSION_NOT_FOUND,
                message=f"Trip {trip.id} has no version {version_number}",
            )

        changes = [
            BlockChange(
                position_key=block.position_key,
                selected_activity_id=block.selected_activity_id,
                selected_meal_id=block.selected_meal_id,
            )
            for block in target.blocks
        ]
        return self._commit_changes(
            trip,
            changes,
            f"Reverted to version {version_number}",
            created_by,
            operation="revert",
        )

    # Queries

    def current_version(self, trip_id: str) -> PlanVersion | None:
        """Highest-numbered version, looked up at read time."""
        return self._repository.get_latest(trip_id)

    def get_version(self, trip_id: str, version_number: int) -> PlanVersion | None:
        return self._repository.get_version(trip_id, version_number)

    def list_versions(self, trip_id: str) -> list[PlanVersionSummary]:
        return [
            PlanVersionSummary(
                id=v.id,
                trip_id=v.trip_id,
                version_number=v.version_number,
                created_by=v.created_by,
                created_at=v.created_at,
                change_summary=v.change_summary,
                num_blocks=len(v.blocks),
                num_assigned=sum(1 for b in v.blocks if is_assigned(b.selection)),
            )
            for v in self._repository.list_versions(trip_id)
        ]

    def navigate(
        self, trip_id: str, current_version_number: int, direction: Direction
    ) -> PlanVersion | AtBoundary | None:
        """Adjacent version in the given direction.

        Returns:
            The adjacent version, AtBoundary at the first/last version, or None when
            the trip or the current version does not exist
        """
        latest = self._repository.latest_version_number(trip_id)
        if latest is None:
            return None
        if self._repository.get_version(trip_id, current_version_number) is None:
            return None

        step = -1 if direction == Direction.prev else 1
        target = current_version_number + step
        while 1 <= target <= latest:
            version = self._repository.get_version(trip_id, target)
            if version is not None:
                return version
            target += step

        return AtBoundary(version_number=current_version_number)

    def diff_versions(
        self, trip_id: str, from_version: int, to_version: int
    ) -> list[BlockDiff] | None:
        """Selection changes between two versions, by block position.

        Returns:
            Ordered diffs, or None if either version does not exist
        """
        before = self._repository.get_version(trip_id, from_version)
        after = self._repository.get_version(trip_id, to_version)
        if before is None or after is None:
            return None

        before_by_pos = {b.sort_key(): b for b in before.blocks}
        after_by_pos = {b.sort_key(): b for b in after.blocks}

        diffs: list[BlockDiff] = []
        for key in sorted(set(before_by_pos) | set(after_by_pos)):
            old = before_by_pos.get(key)
            new = after_by_pos.get(key)
            old_pair = (old.selected_activity_id, old.selected_meal_id) if old else (None, None)
            new_pair = (new.selected_activity_id, new.selected_meal_id) if new else (None, None)
            if old_pair == new_pair:
                continue
            diffs.append(
                BlockDiff(
                    position=(new or old).position_key,
                    before_activity_id=old_pair[0],
                    before_meal_id=old_pair[1],
                    after_activity_id=new_pair[0],
                    after_meal_id=new_pair[1],
                )
            )
        return diffs

    # Internals

    def _commit_changes(
        self,
        trip: Trip,
        changes: Sequence[BlockChange],
        change_summary: str,
        created_by: str,
        operation: str,
    ) -> CommitResult:
        for attempt in range(1, self._max_attempts + 1):
            base = self._repository.get_latest(trip.id)
            if base is None:
                return CommitFailure(
                    reason=CommitFailureReason.NO_CURRENT_VERSION,
                    message=f"Trip {trip.id} has no plan version to modify",
                )

            candidate, changed, unmatched = self._overlay(base, changes)
            if unmatched and not changed:
                return self._reject(trip.id, operation, _unmatched_rejection(base, unmatched))

            affected = self._affected_segments(changed, trip)
            result = self._validate(candidate, trip, segment_ids=affected)
            if not result.valid:
                return self._reject(trip.id, operation, result)

            version = self._build_version(
                trip.id, base.version_number + 1, candidate, created_by, change_summary
            )
            try:
                self._repository.append_version(version, expected_current=base.version_number)
            except VersionConflictError:
                self._log.log_conflict(trip.id, attempt, self._max_attempts, base.version_number)
                outcome = "retried" if attempt < self._max_attempts else "exhausted"
                self._metrics.inc_conflict(outcome)
                continue

            self._metrics.inc_committed(operation, attempts=attempt)
            self._log.log_commit(
                trip.id, operation, version.version_number, attempts=attempt, num_changes=len(changed)
            )
            return version

        return CommitFailure(
            reason=CommitFailureReason.VERSION_CONFLICT,
            message=(
                f"Trip {trip.id} was modified concurrently; gave up after "
                f"{self._max_attempts} attempts"
            ),
            retryable=True,
        )

    def _overlay(
        self, base: PlanVersion, changes: Sequence[BlockChange]
    ) -> tuple[list[TimeBlock], list[TimeBlock], list[str]]:
        """Copy the base blocks, replacing selections named in the changes.

        Returns:
            (full candidate block list, blocks whose selection was replaced,
            references that named no block in the base)
        """
        by_id: dict[str, BlockChange] = {}
        by_position: dict[tuple, BlockChange] = {}
        for change in changes:
            if change.block_id is not None:
                by_id[change.block_id] = change
            elif change.position_key is not None:
                by_position[change.position_key.sort_key()] = change

        matched_ids: set[str] = set()
        matched_positions: set[tuple] = set()
        candidate: list[TimeBlock] = []
        changed: list[TimeBlock] = []

        for block in base.blocks:
            change = by_id.get(block.id)
            if change is not None:
                matched_ids.add(block.id)
            else:
                change = by_position.get(block.sort_key())
                if change is not None:
                    matched_positions.add(block.sort_key())

            if change is None:
                candidate.append(block)
                continue

            updated = block.model_copy(update={"selection": change.apply_to(block.selection)})
            candidate.append(updated)
            changed.append(updated)

        unmatched = sorted(set(by_id) - matched_ids) + sorted(
            str(by_position[key].position_key) for key in set(by_position) - matched_positions
        )
        if unmatched:
            logger.warning(
                f"Ignored changes for blocks not in version {base.version_number}: {unmatched}",
                extra={"structured": {"trip_id": base.trip_id, "unmatched": unmatched}},
            )

        return candidate, changed, unmatched

    def _affected_segments(self, changed: Sequence[TimeBlock], trip: Trip) -> set[str]:
        grouped, _ = group_blocks_by_segment(changed, trip)
        return {segment_id for segment_id, blocks in grouped.items() if blocks}

    def _validate(
        self, candidate: Sequence[TimeBlock], trip: Trip, segment_ids: set[str] | None
    ) -> ValidationResult:
        for structural_check in (check_unique_positions, check_selection_kinds):
            result = structural_check(candidate)
            if not result.valid:
                return result
        return validate_trip_schedule(candidate, trip, self._policy, segment_ids=segment_ids)

    def _build_version(
        self,
        trip_id: str,
        version_number: int,
        blocks: Sequence[TimeBlock],
        created_by: str,
        change_summary: str,
    ) -> PlanVersion:
        return PlanVersion(
            id=str(uuid.uuid4()),
            trip_id=trip_id,
            version_number=version_number,
            created_by=created_by,
            created_at=self._clock(),
            change_summary=change_summary,
            blocks=tuple(blocks),
        )

    def _reject(self, trip_id: str, operation: str, result: ValidationResult) -> CommitFailure:
        violation = result.violation
        code = violation.code.value if violation else "UNKNOWN"
        message = result.error or "Itinerary validation failed"
        self._metrics.inc_rejection(code)
        self._log.log_rejection(trip_id, operation, code, message)
        return CommitFailure(
            reason=CommitFailureReason.VALIDATION_REJECTED,
            message=message,
            violation=violation,
        )

    def _initial_exists(self, trip_id: str) -> CommitFailure:
        return CommitFailure(
            reason=CommitFailureReason.INITIAL_VERSION_EXISTS,
            message=f"Trip {trip_id} already has an initial plan version",
        )
