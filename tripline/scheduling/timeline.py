"""Timeline arithmetic - canonical HH:MM times, durations and travel buffers.

Every function here is pure and deterministic. Malformed time input never raises:
it degrades to the configured default time (09:00) and is logged and counted so the
caller can flag the degradation.
"""

import logging
import re
import uuid
from collections.abc import Iterable
from dataclasses import dataclass
from datetime import datetime, time

from tripline.config import get_settings
from tripline.models.blocks import UNASSIGNED, TimeBlock, order_blocks
from tripline.models.common import BlockType, OptionKind
from tripline.models.trip import CitySegment
from tripline.utils.metrics import PrometheusVersionMetrics

logger = logging.getLogger(__name__)

_TIME_PATTERN = re.compile(r"(\d{1,2}):(\d{2})(?::(\d{2}))?")

_LAST_MINUTE_OF_DAY = 23 * 60 + 59

_metrics = PrometheusVersionMetrics()


@dataclass(frozen=True)
class BlockTemplate:
    """Default slot boundaries for one block type."""

    block_type: BlockType
    start_time: str
    end_time: str
    label: str


def _time_from_match(match: re.Match[str]) -> time | None:
    hours = int(match.group(1))
    minutes = int(match.group(2))
    seconds = int(match.group(3)) if match.group(3) else 0
    if hours > 23 or minutes > 59 or seconds > 59:
        return None
    return time(hours, minutes, seconds)


def try_parse_time(raw: str | time | datetime | None) -> time | None:
    """Parse HH:MM, HH:MM:SS or a string with an embedded HH:MM[:SS].

    Returns:
        Parsed time, or None when nothing valid can be extracted
    """
    if isinstance(raw, datetime):
        return raw.time()
    if isinstance(raw, time):
        return raw
    if not isinstance(raw, str) or not raw.strip():
        return None

    text = raw.strip()
    exact = _TIME_PATTERN.fullmatch(text)
    if exact:
        return _time_from_match(exact)

    # Embedded time, e.g. an ISO timestamp; first valid occurrence wins
    for match in _TIME_PATTERN.finditer(text):
        parsed = _time_from_match(match)
        if parsed is not None:
            return parsed
    return None


def _format(t: time) -> str:
    return f"{t.hour:02d}:{t.minute:02d}"


def normalize_time(raw: str | time | datetime | None) -> str:
    """Normalize a time representation to HH:MM.

    Falls back to the configured default time (09:00) when the input cannot be parsed.
    """
    parsed = try_parse_time(raw)
    if parsed is None:
        default = get_settings().default_time
        _metrics.inc_time_fallback()
        logger.warning(
            f"Invalid time format: {raw!r}, defaulting to {default}",
            extra={"structured": {"raw": str(raw), "default": default}},
        )
        return default
    return _format(parsed)


def _add_minutes(raw: str | time | None, minutes: int) -> str:
    """Add minutes within a single day, clamping to [00:00, 23:59]."""
    start = try_parse_time(normalize_time(raw))
    if start is None:
        raise ValueError(f"Configured default time is not HH:MM: {get_settings().default_time!r}")
    total = start.hour * 60 + start.minute + minutes
    total = max(0, min(total, _LAST_MINUTE_OF_DAY))
    return f"{total // 60:02d}:{total % 60:02d}"


def compute_activity_end(start: str | time | None, duration_minutes: int) -> str:
    """End time of an activity: start + duration, truncated to the same day."""
    return _add_minutes(start, duration_minutes)


def compute_next_start(previous_end: str | time | None, travel_buffer_minutes: int) -> str:
    """Earliest start of the next activity: previous end + travel buffer."""
    return _add_minutes(previous_end, travel_buffer_minutes)


def compute_first_activity_start(
    flight_arrival: str | time | None = None,
    hotel_check_in: str | time | None = "15:00",
) -> str:
    """Start time of the first activity of a trip.

    With a flight, the arrival gets the airport buffer (customs, baggage, transfer).
    When that buffered time does not come after hotel check-in, the check-in plus the
    settle-in buffer is used instead. Without a flight, check-in plus settle-in is used.
    """
    settings = get_settings()
    check_in = normalize_time(hotel_check_in or settings.default_hotel_check_in)
    after_check_in = compute_next_start(check_in, settings.check_in_settle_min)

    if flight_arrival:
        after_airport = compute_next_start(flight_arrival, settings.airport_buffer_min)
        # HH:MM strings compare in chronological order
        if after_airport <= check_in:
            return after_check_in
        return after_airport

    return after_check_in


def default_duration(kind: OptionKind) -> int:
    """Default minutes for an option without an explicit duration."""
    settings = get_settings()
    if kind == OptionKind.meal:
        return settings.meal_duration_min
    return settings.activity_duration_min


def is_open_at(
    at: str | time | None,
    opening_time: str | time | None,
    closing_time: str | time | None,
) -> bool:
    """Check whether a venue is open at a given time.

    Missing opening or closing hours are treated as always open. A closing time
    earlier than the opening time means the window runs past midnight.
    """
    opening = try_parse_time(opening_time)
    closing = try_parse_time(closing_time)
    if opening is None or closing is None:
        return True

    moment = try_parse_time(at)
    if moment is None:
        return False

    if closing < opening:
        return moment >= opening or moment <= closing
    return opening <= moment <= closing


def format_display_time(raw: str | time | None) -> str:
    """Format a time for display, e.g. "13:30:00" -> "1:30 PM"."""
    if raw is None or raw == "":
        return ""
    parsed = try_parse_time(raw)
    if parsed is None:
        logger.warning(f"Unable to format time: {raw!r}")
        return str(raw)
    hour = parsed.hour % 12 or 12
    suffix = "AM" if parsed.hour < 12 else "PM"
    return f"{hour}:{parsed.minute:02d} {suffix}"


def default_day_template() -> list[BlockTemplate]:
    """Default blocks generated for every day of a segment."""
    return [
        BlockTemplate(BlockType.morning, "09:00", "12:00", "Morning Activity"),
        BlockTemplate(BlockType.lunch, "12:00", "13:30", "Lunch"),
        BlockTemplate(BlockType.afternoon, "13:30", "17:00", "Afternoon Activity"),
        BlockTemplate(BlockType.dinner, "18:00", "20:00", "Dinner"),
    ]


def build_segment_skeleton(segment: CitySegment) -> list[TimeBlock]:
    """Unassigned blocks for every day of a segment, in daily order."""
    blocks: list[TimeBlock] = []
    for day in segment.days():
        for template in default_day_template():
            blocks.append(
                TimeBlock(
                    id=str(uuid.uuid4()),
                    date=day,
                    block_type=template.block_type,
                    start_time=template.start_time,
                    end_time=template.end_time,
                    segment_id=segment.id,
                    selection=UNASSIGNED,
                )
            )
    return blocks


def merge_with_skeleton(segment: CitySegment, proposed: Iterable[TimeBlock]) -> list[TimeBlock]:
    """Fill template positions a proposal left out with unassigned blocks.

    Proposed blocks win on position collisions.
    """
    merged = {block.sort_key(): block for block in build_segment_skeleton(segment)}
    for block in proposed:
        merged[block.sort_key()] = block
    return order_blocks(list(merged.values()))
