"""Itinerary validation - ordered fail-fast checks over a candidate block list."""

import math
from collections.abc import Sequence
from dataclasses import dataclass
from datetime import date

from tripline.config import Settings, get_settings
from tripline.models.blocks import ActivitySelection, MealSelection, TimeBlock, is_assigned
from tripline.models.trip import CitySegment, Trip
from tripline.models.violations import ValidationResult, Violation, ViolationCode

_PREFIX = "Itinerary validation failed"


@dataclass(frozen=True)
class ValidationPolicy:
    """Tunable distribution thresholds; defaults live in Settings."""

    distribution_min_offered: int
    distribution_min_day_fraction: float
    first_day_min_offered: int

    @classmethod
    def from_settings(cls, settings: Settings | None = None) -> "ValidationPolicy":
        settings = settings or get_settings()
        return cls(
            distribution_min_offered=settings.distribution_min_offered,
            distribution_min_day_fraction=settings.distribution_min_day_fraction,
            first_day_min_offered=settings.first_day_min_offered,
        )


def check_date_range(
    blocks: Sequence[TimeBlock], segment_start: date, segment_end: date
) -> Violation | None:
    """Every block must fall inside the segment's date range."""
    for block in blocks:
        if block.date < segment_start or block.date > segment_end:
            return Violation(
                code=ViolationCode.DATE_OUT_OF_RANGE,
                message=(
                    f"{_PREFIX}: Block dated {block.date.isoformat()} is outside city date "
                    f"range ({segment_start.isoformat()} to {segment_end.isoformat()})"
                ),
                details={
                    "block_date": block.date.isoformat(),
                    "range_start": segment_start.isoformat(),
                    "range_end": segment_end.isoformat(),
                },
            )
    return None


def check_unique_activities(blocks: Sequence[TimeBlock]) -> Violation | None:
    """An attraction can be scheduled at most once."""
    used: set[str] = set()
    for block in blocks:
        activity_id = block.selected_activity_id
        if not activity_id:
            continue
        if activity_id in used:
            return Violation(
                code=ViolationCode.DUPLICATE_ACTIVITY,
                message=f"{_PREFIX}: Attraction {activity_id} is assigned to multiple time blocks",
                details={"activity_id": activity_id},
            )
        used.add(activity_id)
    return None


def check_unique_meals(blocks: Sequence[TimeBlock]) -> Violation | None:
    """A restaurant can be scheduled at most once."""
    used: set[str] = set()
    for block in blocks:
        meal_id = block.selected_meal_id
        if not meal_id:
            continue
        if meal_id in used:
            return Violation(
                code=ViolationCode.DUPLICATE_MEAL,
                message=f"{_PREFIX}: Restaurant {meal_id} is assigned to multiple time blocks",
                details={"meal_id": meal_id},
            )
        used.add(meal_id)
    return None


def _num_days(segment_start: date, segment_end: date) -> int:
    return (segment_end - segment_start).days + 1


def check_distribution(
    blocks: Sequence[TimeBlock],
    segment_start: date,
    segment_end: date,
    num_offered: int,
    policy: ValidationPolicy,
) -> Violation | None:
    """Selections must not cluster on too few days when enough options were offered."""
    if num_offered < policy.distribution_min_offered:
        return None

    num_days = _num_days(segment_start, segment_end)
    covered = {block.date for block in blocks if is_assigned(block.selection)}
    required = math.ceil(num_days * policy.distribution_min_day_fraction)

    if len(covered) < required:
        return Violation(
            code=ViolationCode.POOR_DISTRIBUTION,
            message=(
                f"{_PREFIX}: Poor activity distribution - only {len(covered)} of "
                f"{num_days} days have activities"
            ),
            details={
                "days_covered": len(covered),
                "num_days": num_days,
                "days_required": required,
            },
        )
    return None


def check_first_day(
    blocks: Sequence[TimeBlock],
    segment_start: date,
    segment_end: date,
    num_offered: int,
    policy: ValidationPolicy,
) -> Violation | None:
    """A multi-day segment is not a pure travel day: its first day needs a selection."""
    if num_offered < policy.first_day_min_offered:
        return None
    if _num_days(segment_start, segment_end) <= 1:
        return None

    first_day_has_selection = any(
        is_assigned(block.selection) for block in blocks if block.date == segment_start
    )
    if not first_day_has_selection:
        return Violation(
            code=ViolationCode.EMPTY_FIRST_DAY,
            message=(
                f"{_PREFIX}: First day ({segment_start.isoformat()}) has no activities, "
                "but attractions are available"
            ),
            details={"first_day": segment_start.isoformat()},
        )
    return None


def validate_itinerary(
    blocks: Sequence[TimeBlock],
    segment_start: date,
    segment_end: date,
    offered_activity_ids: Sequence[str],
    policy: ValidationPolicy | None = None,
) -> ValidationResult:
    """Validate a candidate block list for one city segment.

    Checks run in a fixed order and the first failure wins:
    1. Every block date within [segment_start, segment_end]
    2. No activity on more than one block
    3. No meal on more than one block
    4. Selections spread over enough days (when enough activities were offered)
    5. First day of a multi-day segment has a selection (when activities were offered)

    Args:
        blocks: Candidate blocks for the segment
        segment_start: First date of the segment
        segment_end: Last date of the segment
        offered_activity_ids: Activity ids offered as selectable
        policy: Distribution thresholds (defaults from settings)

    Returns:
        ValidationResult - valid, or the first violation found
    """
    policy = policy or ValidationPolicy.from_settings()
    num_offered = len(offered_activity_ids)

    violation = (
        check_date_range(blocks, segment_start, segment_end)
        or check_unique_activities(blocks)
        or check_unique_meals(blocks)
        or check_distribution(blocks, segment_start, segment_end, num_offered, policy)
        or check_first_day(blocks, segment_start, segment_end, num_offered, policy)
    )
    if violation is not None:
        return ValidationResult.reject(violation)
    return ValidationResult.ok()


def validate_catalog_scope(blocks: Sequence[TimeBlock], trip: Trip) -> ValidationResult:
    """Selected ids must exist and belong to the segment that owns the block."""
    activity_home = {a.id: s.id for s in trip.segments for a in s.activities}
    meal_home = {m.id: s.id for s in trip.segments for m in s.meals}

    for block in blocks:
        segment = _owning_segment(block, trip)
        selection = block.selection

        if isinstance(selection, ActivitySelection):
            home = activity_home.get(selection.activity_id)
            if home is None:
                return ValidationResult.reject(
                    Violation(
                        code=ViolationCode.UNKNOWN_ACTIVITY,
                        message=f"{_PREFIX}: Unknown attraction {selection.activity_id}",
                        details={"activity_id": selection.activity_id},
                    )
                )
        elif isinstance(selection, MealSelection):
            home = meal_home.get(selection.meal_id)
            if home is None:
                return ValidationResult.reject(
                    Violation(
                        code=ViolationCode.UNKNOWN_MEAL,
                        message=f"{_PREFIX}: Unknown restaurant {selection.meal_id}",
                        details={"meal_id": selection.meal_id},
                    )
                )
        else:
            continue

        if segment is not None and home != segment.id:
            selected_id = block.selected_activity_id or block.selected_meal_id
            return ValidationResult.reject(
                Violation(
                    code=ViolationCode.CROSS_SEGMENT_SELECTION,
                    message=(
                        f"{_PREFIX}: Cannot assign {selected_id} from one city to a time "
                        f"block in another city ({block.position_key})"
                    ),
                    details={
                        "selected_id": selected_id,
                        "option_segment_id": home,
                        "block_segment_id": segment.id,
                        "block_date": block.date.isoformat(),
                    },
                )
            )

    return ValidationResult.ok()


def _owning_segment(block: TimeBlock, trip: Trip) -> CitySegment | None:
    if block.segment_id is not None:
        segment = trip.segment(block.segment_id)
        if segment is not None:
            return segment
    return trip.segment_for_date(block.date)


def group_blocks_by_segment(
    blocks: Sequence[TimeBlock], trip: Trip
) -> tuple[dict[str, list[TimeBlock]], list[TimeBlock]]:
    """Split blocks by owning segment.

    Returns:
        (blocks keyed by segment id, blocks that match no segment)
    """
    grouped: dict[str, list[TimeBlock]] = {s.id: [] for s in trip.segments}
    orphans: list[TimeBlock] = []
    for block in blocks:
        segment = _owning_segment(block, trip)
        if segment is None:
            orphans.append(block)
        else:
            grouped[segment.id].append(block)
    return grouped, orphans


def validate_trip_schedule(
    blocks: Sequence[TimeBlock],
    trip: Trip,
    policy: ValidationPolicy | None = None,
    segment_ids: set[str] | None = None,
) -> ValidationResult:
    """Validate a whole-trip candidate, segment by segment.

    Args:
        blocks: Candidate blocks for the trip
        trip: Trip with segments and option pools
        policy: Distribution thresholds (defaults from settings)
        segment_ids: Restrict per-segment checks to these segments (affected by an edit)

    Returns:
        ValidationResult - valid, or the first violation found
    """
    policy = policy or ValidationPolicy.from_settings()

    if not trip.segments:
        # Single-destination trip without explicit segments: the trip is the segment
        return validate_itinerary(blocks, trip.start_date, trip.end_date, [], policy)

    grouped, orphans = group_blocks_by_segment(blocks, trip)

    if orphans:
        block = orphans[0]
        range_violation = check_date_range([block], trip.start_date, trip.end_date)
        if range_violation is None:
            range_violation = Violation(
                code=ViolationCode.DATE_OUT_OF_RANGE,
                message=(
                    f"{_PREFIX}: Block dated {block.date.isoformat()} is not covered by "
                    "any city segment"
                ),
                details={"block_date": block.date.isoformat()},
            )
        return ValidationResult.reject(range_violation)

    for segment in trip.ordered_segments():
        if segment_ids is not None and segment.id not in segment_ids:
            continue
        result = validate_itinerary(
            grouped[segment.id],
            segment.start_date,
            segment.end_date,
            segment.offered_activity_ids,
            policy,
        )
        if not result.valid:
            return result

    # Uniqueness holds across the whole version, not only within a segment
    cross_segment = check_unique_activities(blocks) or check_unique_meals(blocks)
    if cross_segment is not None:
        return ValidationResult.reject(cross_segment)

    if segment_ids is None:
        return validate_catalog_scope(blocks, trip)
    scoped = [block for sid in sorted(segment_ids) for block in grouped.get(sid, [])]
    return validate_catalog_scope(scoped, trip)
