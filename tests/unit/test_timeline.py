"""Unit tests for timeline arithmetic."""

from datetime import date, datetime, time

import pytest
from prometheus_client import REGISTRY
from pydantic import ValidationError

from tripline.config import Settings
from tripline.models.common import BlockType, OptionKind
from tripline.models.trip import CitySegment
from tripline.scheduling.timeline import (
    build_segment_skeleton,
    compute_activity_end,
    compute_first_activity_start,
    compute_next_start,
    default_day_template,
    default_duration,
    format_display_time,
    is_open_at,
    merge_with_skeleton,
    normalize_time,
    try_parse_time,
)


def _fallback_count() -> float:
    return REGISTRY.get_sample_value("time_normalization_fallbacks_total") or 0.0


class TestNormalizeTime:
    """Test normalize_time."""

    @pytest.mark.parametrize(
        ("raw", "expected"),
        [
            ("09:00", "09:00"),
            ("9:05", "09:05"),
            ("13:30:00", "13:30"),
            ("2026-03-15T14:45:00Z", "14:45"),
            ("arrives 07:10 local", "07:10"),
            (time(18, 5), "18:05"),
            (datetime(2026, 3, 15, 22, 15), "22:15"),
        ],
    )
    def test_valid_inputs(self, raw: object, expected: str) -> None:
        assert normalize_time(raw) == expected  # type: ignore[arg-type]

    @pytest.mark.parametrize("raw", [None, "", "   ", "noon", "25:00", "12:75", "10:00:99"])
    def test_malformed_falls_back_to_default(self, raw: str | None) -> None:
        assert normalize_time(raw) == "09:00"

    def test_idempotent(self) -> None:
        once = normalize_time("16:20:59")
        assert normalize_time(once) == once == "16:20"

    def test_fallback_is_logged_and_counted(self, caplog: pytest.LogCaptureFixture) -> None:
        before = _fallback_count()

        with caplog.at_level("WARNING", logger="tripline.scheduling.timeline"):
            assert normalize_time("not a time") == "09:00"

        assert _fallback_count() == before + 1
        assert "Invalid time format" in caplog.text

    def test_embedded_skips_invalid_match(self) -> None:
        # 99:99 is not a time; the next occurrence is
        assert try_parse_time("99:99 then 10:30") == time(10, 30)

    def test_try_parse_returns_none_for_garbage(self) -> None:
        assert try_parse_time("garbage") is None
        assert try_parse_time(None) is None


class TestTimeArithmetic:
    """Test activity end and next start computation."""

    def test_activity_end(self) -> None:
        assert compute_activity_end("09:00", 120) == "11:00"

    def test_next_start(self) -> None:
        assert compute_next_start("11:00", 30) == "11:30"

    def test_end_clamped_to_same_day(self) -> None:
        assert compute_activity_end("22:30", 120) == "23:59"

    def test_malformed_start_uses_default(self) -> None:
        assert compute_activity_end("??", 60) == "10:00"

    def test_default_time_must_be_hh_mm(self) -> None:
        with pytest.raises(ValidationError):
            Settings(default_time="9am")

    def test_unparseable_default_raises(self, monkeypatch: pytest.MonkeyPatch) -> None:
        broken = Settings.model_construct(default_time="9am")
        monkeypatch.setattr("tripline.scheduling.timeline.get_settings", lambda: broken)

        with pytest.raises(ValueError, match="9am"):
            compute_activity_end("??", 60)


class TestFirstActivityStart:
    """Test first activity start from flight arrival and check-in."""

    def test_arrival_buffer_reaching_check_in_waits_for_check_in(self) -> None:
        # 13:30 + 90 = 15:00, not after check-in
        assert compute_first_activity_start("13:30", "15:00") == "15:30"

    def test_early_arrival_waits_for_check_in(self) -> None:
        assert compute_first_activity_start("08:00", "15:00") == "15:30"

    def test_late_arrival_uses_airport_buffer(self) -> None:
        assert compute_first_activity_start("16:00", "15:00") == "17:30"

    def test_no_flight_uses_check_in(self) -> None:
        assert compute_first_activity_start(None, "14:00") == "14:30"

    def test_missing_check_in_defaults(self) -> None:
        assert compute_first_activity_start(None, None) == "15:30"
        assert compute_first_activity_start("18:00", "") == "19:30"

    def test_iso_arrival(self) -> None:
        assert compute_first_activity_start("2026-03-15T17:00:00+01:00", "15:00") == "18:30"


class TestVenueHelpers:
    """Test durations, opening hours and display formatting."""

    def test_default_durations(self) -> None:
        assert default_duration(OptionKind.activity) == 120
        assert default_duration(OptionKind.meal) == 90

    def test_open_without_hours(self) -> None:
        assert is_open_at("03:00", None, "18:00")

    def test_open_window(self) -> None:
        assert is_open_at("10:00", "09:00", "17:00")
        assert is_open_at("17:00", "09:00", "17:00")
        assert not is_open_at("17:01", "09:00", "17:00")

    def test_overnight_window(self) -> None:
        assert is_open_at("01:00", "18:00", "02:00")
        assert not is_open_at("12:00", "18:00", "02:00")

    def test_unparseable_moment_is_closed(self) -> None:
        assert not is_open_at("later", "09:00", "17:00")

    @pytest.mark.parametrize(
        ("raw", "expected"),
        [
            ("09:00", "9:00 AM"),
            ("13:30:00", "1:30 PM"),
            ("00:05", "12:05 AM"),
            ("12:00", "12:00 PM"),
            ("", ""),
            ("soon", "soon"),
        ],
    )
    def test_format_display_time(self, raw: str, expected: str) -> None:
        assert format_display_time(raw) == expected


class TestSkeleton:
    """Test default day template and segment skeletons."""

    @pytest.fixture
    def segment(self) -> CitySegment:
        return CitySegment(
            id="seg-1", name="Rome", start_date=date(2026, 5, 1), end_date=date(2026, 5, 2)
        )

    def test_day_template_order(self) -> None:
        template = default_day_template()
        assert [t.block_type for t in template] == [
            BlockType.morning,
            BlockType.lunch,
            BlockType.afternoon,
            BlockType.dinner,
        ]
        assert (template[1].start_time, template[1].end_time) == ("12:00", "13:30")

    def test_skeleton_covers_every_day(self, segment: CitySegment) -> None:
        blocks = build_segment_skeleton(segment)

        assert len(blocks) == 8
        assert [b.date for b in blocks[:4]] == [date(2026, 5, 1)] * 4
        assert all(b.segment_id == "seg-1" for b in blocks)
        assert all(b.selected_activity_id is None and b.selected_meal_id is None for b in blocks)
        assert len({b.id for b in blocks}) == 8

    def test_merge_keeps_proposed_blocks(self, segment: CitySegment) -> None:
        proposed = build_segment_skeleton(segment)[0].model_copy(update={"id": "mine"})

        merged = merge_with_skeleton(segment, [proposed])

        assert len(merged) == 8
        assert merged[0].id == "mine"
