"""Trip models - trip, city segments and their selectable option pools."""

from datetime import date, time, timedelta
from typing import Annotated

from pydantic import BaseModel, ConfigDict, Field, ValidationInfo, field_validator, model_validator


class ActivityOption(BaseModel):
    """Attraction offered for a city segment."""

    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    category: str = "general"
    opening_time: time | None = None
    closing_time: time | None = None
    duration_minutes: Annotated[int, Field(gt=0)] | None = None
    is_kid_friendly: bool = False
    min_age: Annotated[int, Field(ge=0)] | None = None


class MealOption(BaseModel):
    """Restaurant offered for a city segment. Meals use a fixed default duration."""

    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    cuisine_type: str = "general"
    opening_time: time | None = None
    closing_time: time | None = None
    price_level: Annotated[int, Field(ge=1, le=4)] = 2
    is_kid_friendly: bool = False


class CitySegment(BaseModel):
    """Contiguous date sub-range of a trip spent in one destination."""

    id: str
    name: str
    start_date: date
    end_date: date
    order_index: int = 0
    activities: list[ActivityOption] = Field(default_factory=list)
    meals: list[MealOption] = Field(default_factory=list)

    @field_validator("end_date")
    @classmethod
    def validate_end_after_start(cls, v: date, info: ValidationInfo) -> date:
        """Ensure end_date >= start_date."""
        if "start_date" in info.data and v < info.data["start_date"]:
            raise ValueError("end_date must be >= start_date")
        return v

    @property
    def offered_activity_ids(self) -> list[str]:
        return [a.id for a in self.activities]

    @property
    def num_days(self) -> int:
        return (self.end_date - self.start_date).days + 1

    def days(self) -> list[date]:
        """All dates in the segment, inclusive."""
        return [self.start_date + timedelta(days=i) for i in range(self.num_days)]

    def contains(self, day: date) -> bool:
        return self.start_date <= day <= self.end_date


class Trip(BaseModel):
    """Root aggregate: destination, overall date range and ordered city segments."""

    id: str
    destination: str
    start_date: date
    end_date: date
    segments: list[CitySegment] = Field(default_factory=list)

    @field_validator("end_date")
    @classmethod
    def validate_end_after_start(cls, v: date, info: ValidationInfo) -> date:
        """Ensure end_date >= start_date."""
        if "start_date" in info.data and v < info.data["start_date"]:
            raise ValueError("end_date must be >= start_date")
        return v

    @model_validator(mode="after")
    def validate_segments(self) -> "Trip":
        """Ensure segments sit inside the trip and do not overlap out of order."""
        for segment in self.segments:
            if segment.start_date < self.start_date or segment.end_date > self.end_date:
                raise ValueError(
                    f"Segment {segment.id} ({segment.start_date} to {segment.end_date}) "
                    f"is outside trip range ({self.start_date} to {self.end_date})"
                )

        ordered = self.ordered_segments()
        for i in range(len(ordered) - 1):
            current_end = ordered[i].end_date
            next_start = ordered[i + 1].start_date
            # A shared boundary date is a travel day and is allowed
            if next_start < current_end:
                raise ValueError(
                    f"Overlapping segments: {ordered[i + 1].id} starts {next_start} "
                    f"before {ordered[i].id} ends {current_end}"
                )
        return self

    def ordered_segments(self) -> list[CitySegment]:
        return sorted(self.segments, key=lambda s: s.order_index)

    def segment(self, segment_id: str) -> CitySegment | None:
        for segment in self.segments:
            if segment.id == segment_id:
                return segment
        return None

    def segment_for_date(self, day: date) -> CitySegment | None:
        """First segment (by order_index) whose range contains the date."""
        for segment in self.ordered_segments():
            if segment.contains(day):
                return segment
        return None
