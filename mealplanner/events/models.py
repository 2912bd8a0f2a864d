"""Data models for aggregated calendar events."""

from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_serializer, model_validator


class CalendarEvent(BaseModel):
    """One event (or one occurrence of a recurring event) from one source.

    Built fresh on every fetch and never mutated. ``source`` is the display
    name of the feed it came from.
    """

    id: str = Field(..., description="Source id + UID (+ occurrence start for recurrences)")
    title: str = Field(..., description="Event title")
    start: datetime = Field(..., description="Start instant (UTC)")
    end: datetime = Field(..., description="End instant (UTC)")
    all_day: bool = Field(default=False, alias="allDay", description="DTSTART was a date value")
    source: str = Field(..., description="Source display name")
    color: str = Field(..., description="Source display colour")

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    @model_validator(mode="after")
    def validate_times(self) -> "CalendarEvent":
        if self.end < self.start:
            raise ValueError(f"Event {self.id} ends before it starts")
        return self

    @field_serializer("start", "end")
    def serialize_datetime(self, dt: datetime) -> str:
        """Serialize datetime fields to ISO format."""
        return dt.isoformat()

    def to_dict(self) -> dict[str, Any]:
        """JSON-ready representation using the public field names."""
        return self.model_dump(by_alias=True)


class SourceResult(BaseModel):
    """Outcome of one source's contribution to an aggregation."""

    success: bool
    count: int = 0
    error: Optional[str] = None
    cached: bool = False


class SourceTestResult(BaseModel):
    """Diagnostic report for one source."""

    success: bool
    error: Optional[str] = None
    event_count: Optional[int] = Field(default=None, alias="eventCount")
    response_size: Optional[int] = Field(default=None, alias="responseSize")
    calendar_name: Optional[str] = Field(default=None, alias="calendarName")
    timezone: Optional[str] = None
    component_count: Optional[int] = Field(default=None, alias="componentCount")
    warnings: Optional[list[str]] = None

    model_config = ConfigDict(populate_by_name=True)

    def to_dict(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_none=True)
