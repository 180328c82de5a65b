"""Unit tests for itinerary validation."""

from dataclasses import replace
from datetime import date

import pytest

from tripline.models.blocks import TimeBlock
from tripline.models.common import BlockType
from tripline.models.trip import Trip
from tripline.models.violations import ViolationCode
from tripline.scheduling.validator import (
    ValidationPolicy,
    validate_catalog_scope,
    validate_itinerary,
    validate_trip_schedule,
)

START = date(2026, 3, 15)
END = date(2026, 3, 17)
OFFERED = ["louvre", "orsay", "eiffel", "montmartre", "seine"]


class TestValidateItinerary:
    """Test the ordered per-segment checks."""

    def test_valid_schedule(self, initial_blocks: list[TimeBlock]) -> None:
        result = validate_itinerary(initial_blocks, START, END, OFFERED)

        assert result.valid
        assert result.error is None
        assert result.violation is None

    def test_block_outside_range(self, make_block, initial_blocks: list[TimeBlock]) -> None:
        blocks = initial_blocks + [make_block(date(2026, 3, 18), BlockType.morning)]

        result = validate_itinerary(blocks, START, END, OFFERED)

        assert not result.valid
        assert result.error == (
            "Itinerary validation failed: Block dated 2026-03-18 is outside city date "
            "range (2026-03-15 to 2026-03-17)"
        )
        assert result.violation is not None
        assert result.violation.code == ViolationCode.DATE_OUT_OF_RANGE

    def test_duplicate_activity(self, make_block) -> None:
        blocks = [
            make_block(START, BlockType.morning, activity="louvre"),
            make_block(date(2026, 3, 16), BlockType.afternoon, activity="louvre"),
        ]

        result = validate_itinerary(blocks, START, END, OFFERED)

        assert result.error == (
            "Itinerary validation failed: Attraction louvre is assigned to multiple time blocks"
        )
        assert result.violation.code == ViolationCode.DUPLICATE_ACTIVITY

    def test_duplicate_meal(self, make_block) -> None:
        blocks = [
            make_block(START, BlockType.morning, activity="louvre"),
            make_block(START, BlockType.lunch, meal="bistro"),
            make_block(date(2026, 3, 16), BlockType.dinner, meal="bistro"),
        ]

        result = validate_itinerary(blocks, START, END, OFFERED)

        assert result.error == (
            "Itinerary validation failed: Restaurant bistro is assigned to multiple time blocks"
        )
        assert result.violation.code == ViolationCode.DUPLICATE_MEAL

    def test_range_check_runs_before_uniqueness(self, make_block) -> None:
        blocks = [
            make_block(START, BlockType.morning, activity="louvre"),
            make_block(START, BlockType.afternoon, activity="louvre"),
            make_block(date(2026, 3, 20), BlockType.morning),
        ]

        result = validate_itinerary(blocks, START, END, OFFERED)

        assert result.violation.code == ViolationCode.DATE_OUT_OF_RANGE

    def test_only_first_morning_assigned_is_poorly_distributed(self, make_block) -> None:
        blocks = [make_block(START, BlockType.morning, activity="louvre")]
        for day in (START, date(2026, 3, 16), END):
            for block_type in (BlockType.lunch, BlockType.afternoon, BlockType.dinner):
                blocks.append(make_block(day, block_type))
        blocks += [
            make_block(date(2026, 3, 16), BlockType.morning),
            make_block(END, BlockType.morning),
        ]

        result = validate_itinerary(blocks, START, END, OFFERED)

        assert not result.valid
        assert result.error == (
            "Itinerary validation failed: Poor activity distribution - only 1 of 3 days "
            "have activities"
        )
        assert result.violation.details == {
            "days_covered": 1,
            "num_days": 3,
            "days_required": 2,
        }

    def test_distribution_skipped_with_few_offered(self, make_block) -> None:
        blocks = [make_block(START, BlockType.morning, activity="louvre")]

        result = validate_itinerary(blocks, START, END, ["louvre", "orsay"])

        assert result.valid

    def test_meals_count_towards_distribution(self, make_block) -> None:
        blocks = [
            make_block(START, BlockType.morning, activity="louvre"),
            make_block(date(2026, 3, 16), BlockType.dinner, meal="bistro"),
        ]

        assert validate_itinerary(blocks, START, END, OFFERED).valid

    def test_empty_first_day(self, make_block) -> None:
        blocks = [
            make_block(START, BlockType.morning),
            make_block(date(2026, 3, 16), BlockType.morning, activity="louvre"),
            make_block(END, BlockType.morning, activity="orsay"),
        ]

        result = validate_itinerary(blocks, START, END, OFFERED)

        assert result.error == (
            "Itinerary validation failed: First day (2026-03-15) has no activities, but "
            "attractions are available"
        )
        assert result.violation.code == ViolationCode.EMPTY_FIRST_DAY

    def test_single_day_segment_may_be_empty(self, make_block) -> None:
        blocks = [make_block(START, BlockType.morning)]

        assert validate_itinerary(blocks, START, START, ["louvre"]).valid

    def test_no_offered_activities_allows_empty_schedule(self, make_block) -> None:
        blocks = [make_block(START, BlockType.morning), make_block(END, BlockType.morning)]

        assert validate_itinerary(blocks, START, END, []).valid

    def test_policy_is_configurable(self, make_block) -> None:
        blocks = [
            make_block(START, BlockType.morning, activity="louvre"),
            make_block(date(2026, 3, 16), BlockType.morning, activity="orsay"),
        ]
        strict = replace(ValidationPolicy.from_settings(), distribution_min_day_fraction=1.0)

        result = validate_itinerary(blocks, START, END, OFFERED, strict)

        assert result.violation.code == ViolationCode.POOR_DISTRIBUTION

    def test_never_repairs_input(self, make_block) -> None:
        blocks = [
            make_block(START, BlockType.morning, activity="louvre"),
            make_block(START, BlockType.afternoon, activity="louvre"),
        ]
        snapshot = list(blocks)

        validate_itinerary(blocks, START, END, OFFERED)

        assert blocks == snapshot


class TestCatalogScope:
    """Test option pool membership checks."""

    def test_unknown_activity(self, make_block, trip: Trip) -> None:
        result = validate_catalog_scope(
            [make_block(START, BlockType.morning, activity="disneyland")], trip
        )

        assert result.violation.code == ViolationCode.UNKNOWN_ACTIVITY
        assert "disneyland" in result.error

    def test_unknown_meal(self, make_block, trip: Trip) -> None:
        result = validate_catalog_scope([make_block(START, BlockType.lunch, meal="nowhere")], trip)

        assert result.violation.code == ViolationCode.UNKNOWN_MEAL

    def test_cross_segment_selection(self, make_block, two_city_trip: Trip) -> None:
        block = make_block(date(2026, 3, 18), BlockType.morning, activity="louvre")

        result = validate_catalog_scope([block], two_city_trip)

        assert result.violation.code == ViolationCode.CROSS_SEGMENT_SELECTION
        assert result.violation.details["option_segment_id"] == "seg-paris"
        assert result.violation.details["block_segment_id"] == "seg-lyon"

    def test_travel_day_uses_explicit_segment(self, make_block, two_city_trip: Trip) -> None:
        block = make_block(END, BlockType.afternoon, activity="fourviere", segment_id="seg-lyon")

        assert validate_catalog_scope([block], two_city_trip).valid


@pytest.fixture
def lyon_blocks(make_block) -> list[TimeBlock]:
    """Lyon blocks starting on the shared travel day."""
    return [
        make_block(END, BlockType.evening, activity="fourviere", segment_id="seg-lyon"),
        make_block(date(2026, 3, 18), BlockType.morning, activity="traboules"),
        make_block(date(2026, 3, 19), BlockType.dinner, meal="bouchon"),
    ]


class TestValidateTripSchedule:
    """Test whole-trip validation across segments."""

    def test_valid_two_city_schedule(
        self, initial_blocks: list[TimeBlock], lyon_blocks: list[TimeBlock], two_city_trip: Trip
    ) -> None:
        assert validate_trip_schedule(initial_blocks + lyon_blocks, two_city_trip).valid

    def test_block_outside_trip(self, make_block, trip: Trip) -> None:
        result = validate_trip_schedule([make_block(date(2026, 4, 1), BlockType.morning)], trip)

        assert result.violation.code == ViolationCode.DATE_OUT_OF_RANGE
        assert "(2026-03-15 to 2026-03-17)" in result.error

    def test_block_in_gap_between_segments(self, make_block, paris_segment) -> None:
        trip = Trip(
            id="gap",
            destination="France",
            start_date=date(2026, 3, 15),
            end_date=date(2026, 3, 20),
            segments=[paris_segment],
        )

        result = validate_trip_schedule([make_block(date(2026, 3, 19), BlockType.morning)], trip)

        assert result.violation.code == ViolationCode.DATE_OUT_OF_RANGE
        assert "not covered by any city segment" in result.error

    def test_duplicate_across_segments(
        self,
        initial_blocks: list[TimeBlock],
        lyon_blocks: list[TimeBlock],
        make_block,
        two_city_trip: Trip,
    ) -> None:
        blocks = initial_blocks + lyon_blocks + [
            make_block(date(2026, 3, 19), BlockType.lunch, meal="bistro"),
        ]

        result = validate_trip_schedule(blocks, two_city_trip)

        assert result.violation.code == ViolationCode.DUPLICATE_MEAL

    def test_trip_without_segments(self, make_block) -> None:
        trip = Trip(
            id="bare", destination="Oslo", start_date=date(2026, 1, 1), end_date=date(2026, 1, 2)
        )

        assert validate_trip_schedule([make_block(date(2026, 1, 2), BlockType.morning)], trip).valid
        assert not validate_trip_schedule(
            [make_block(date(2026, 1, 3), BlockType.morning)], trip
        ).valid

    def test_segment_filter_skips_untouched_segments(
        self, make_block, two_city_trip: Trip
    ) -> None:
        # Paris has nothing scheduled
        blocks = [
            make_block(START, BlockType.morning),
            make_block(END, BlockType.evening, activity="fourviere", segment_id="seg-lyon"),
        ]

        full = validate_trip_schedule(blocks, two_city_trip)
        scoped = validate_trip_schedule(blocks, two_city_trip, segment_ids={"seg-lyon"})

        assert full.violation.code == ViolationCode.POOR_DISTRIBUTION
        assert scoped.valid
