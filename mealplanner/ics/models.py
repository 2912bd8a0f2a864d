"""Data models for ICS calendar processing."""

from collections.abc import Iterator
from datetime import datetime, timedelta
from typing import Any, NamedTuple, Optional

from pydantic import BaseModel, Field

DEFAULT_EVENT_TITLE = "Untitled Event"


class ICSResponse(BaseModel):
    """Body and metadata of a successful ICS download."""

    content: str
    status_code: int
    url: str
    headers: dict[str, str] = Field(default_factory=dict)
    fetch_time: datetime = Field(default_factory=datetime.now)

    @property
    def content_length(self) -> int:
        """Size of the body in characters."""
        return len(self.content)


class Property(BaseModel):
    """One content line of a component, with its decoded value.

    ``value`` holds the Python value icalendar decoded (``str``, ``date``,
    ``datetime``, ``timedelta``), or the property's iCalendar text for
    structured values such as RRULE.
    """

    name: str
    value: Any = None
    params: dict[str, str] = Field(default_factory=dict)
    text: str = ""


class Component(BaseModel):
    """A parsed iCalendar component: its name, properties and children."""

    name: str
    properties: list[Property] = Field(default_factory=list)
    subcomponents: list["Component"] = Field(default_factory=list)

    def get(self, name: str) -> Optional[Property]:
        """First property called ``name`` (case-insensitive)."""
        name = name.upper()
        for prop in self.properties:
            if prop.name == name:
                return prop
        return None

    def get_all(self, name: str) -> list[Property]:
        """All properties called ``name``."""
        name = name.upper()
        return [prop for prop in self.properties if prop.name == name]

    def value(self, name: str, default: Any = None) -> Any:
        """Decoded value of the first property called ``name``."""
        prop = self.get(name)
        return default if prop is None else prop.value

    def children(self, name: str) -> list["Component"]:
        """Direct subcomponents called ``name``."""
        name = name.upper()
        return [sub for sub in self.subcomponents if sub.name == name]

    def walk(self, name: Optional[str] = None) -> Iterator["Component"]:
        """Depth-first iteration over this component and all descendants."""
        if name is None or self.name == name.upper():
            yield self
        for sub in self.subcomponents:
            yield from sub.walk(name)


class VEvent(BaseModel):
    """The VEVENT fields the aggregator uses, normalized to UTC.

    All-day events are anchored at UTC midnight of their calendar dates so
    that they read the same in every viewer zone. ``dtstart`` keeps DTSTART
    as written (aware, in its own zone) so recurrences follow its wall clock.
    """

    uid: str
    summary: str = DEFAULT_EVENT_TITLE
    start: datetime
    end: datetime
    all_day: bool = False
    dtstart: Optional[datetime] = None
    rrule: Optional[str] = None

    @property
    def duration(self) -> timedelta:
        return self.end - self.start

    @property
    def is_recurring(self) -> bool:
        return self.rrule is not None


class Occurrence(NamedTuple):
    """One concrete instance of a recurring event."""

    start: datetime
    end: datetime


class ICSParseResult(BaseModel):
    """Result of extracting events from a parsed calendar."""

    events: list[VEvent] = Field(default_factory=list)
    calendar_name: Optional[str] = None
    timezone: Optional[str] = None

    # Parse statistics
    component_count: int = 0
    event_count: int = 0
    recurring_event_count: int = 0
    skipped_count: int = 0
    warnings: list[str] = Field(default_factory=list)
