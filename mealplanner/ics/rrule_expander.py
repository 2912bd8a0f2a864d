"""RRULE expansion for recurring VEVENTs.

Occurrences are produced by an explicit generator over a dateutil rule.
Iteration ends at the first occurrence starting after the query window, or
once ``max_occurrences`` occurrences have been enumerated (in range or not),
whichever comes first. Occurrences ending before the window are enumerated
and dropped rather than skipped by seeking. The dateutil rule itself is
bounded at the window end, and RRULEs that can never match a date are
rejected while parsing.
"""

import logging
import re
from collections.abc import Iterator
from dataclasses import dataclass, field
from datetime import date, datetime, time, timezone
from typing import Any, Optional

from dateutil.rrule import (
    DAILY,
    FR,
    HOURLY,
    MINUTELY,
    MO,
    MONTHLY,
    SA,
    SECONDLY,
    SU,
    TH,
    TU,
    WE,
    WEEKLY,
    YEARLY,
    rrule,
    weekday,
)

from ..timezone import ensure_utc
from .models import Occurrence, VEvent

UTC = timezone.utc

logger = logging.getLogger(__name__)

DEFAULT_MAX_OCCURRENCES = 100

FREQUENCIES = {
    "SECONDLY": SECONDLY,
    "MINUTELY": MINUTELY,
    "HOURLY": HOURLY,
    "DAILY": DAILY,
    "WEEKLY": WEEKLY,
    "MONTHLY": MONTHLY,
    "YEARLY": YEARLY,
}

WEEKDAYS: dict[str, weekday] = {
    "MO": MO,
    "TU": TU,
    "WE": WE,
    "TH": TH,
    "FR": FR,
    "SA": SA,
    "SU": SU,
}

_BYDAY_PATTERN = re.compile(r"^([+-]?\d{1,2})?(MO|TU|WE|TH|FR|SA|SU)$")

# Integer-list parts: (lowest, highest, whether negative values count from the end)
INTEGER_PARTS: dict[str, tuple[int, int, bool]] = {
    "BYMONTHDAY": (1, 31, True),
    "BYMONTH": (1, 12, False),
    "BYSETPOS": (1, 366, True),
    "BYYEARDAY": (1, 366, True),
    "BYWEEKNO": (1, 53, True),
    "BYHOUR": (0, 23, False),
    "BYMINUTE": (0, 59, False),
    "BYSECOND": (0, 59, False),
}

# Longest each month can be (February in a leap year)
_MONTH_LENGTHS = {1: 31, 2: 29, 3: 31, 4: 30, 5: 31, 6: 30, 7: 31, 8: 31, 9: 30, 10: 31, 11: 30, 12: 31}


class RRuleExpansionError(Exception):
    """Base exception for RRULE expansion errors."""


class RRuleParseError(RRuleExpansionError):
    """Error parsing RRULE string."""


@dataclass(frozen=True)
class RecurrenceRule:
    """The parts of an RRULE the expander understands."""

    freq: str
    interval: int = 1
    count: Optional[int] = None
    until: Optional[datetime] = None
    until_is_date: bool = False
    byday: tuple[str, ...] = field(default_factory=tuple)
    bymonthday: tuple[int, ...] = field(default_factory=tuple)
    bymonth: tuple[int, ...] = field(default_factory=tuple)
    bysetpos: tuple[int, ...] = field(default_factory=tuple)
    byyearday: tuple[int, ...] = field(default_factory=tuple)
    byweekno: tuple[int, ...] = field(default_factory=tuple)
    byhour: tuple[int, ...] = field(default_factory=tuple)
    byminute: tuple[int, ...] = field(default_factory=tuple)
    bysecond: tuple[int, ...] = field(default_factory=tuple)
    wkst: Optional[str] = None


def _int_list(value: str) -> tuple[int, ...]:
    return tuple(int(part) for part in value.split(",") if part.strip())


def _matches_some_month(months: tuple[int, ...], monthdays: tuple[int, ...]) -> bool:
    """False when no listed month is long enough for any listed month day."""
    if not months or not monthdays:
        return True
    return any(abs(day) <= _MONTH_LENGTHS[month] for month in months for day in monthdays)


def _parse_until(value: str) -> tuple[datetime, bool]:
    """Parse an UNTIL value; returns the datetime and whether it was date-only."""
    value = value.strip()
    if len(value) == 8:
        return datetime.strptime(value, "%Y%m%d"), True
    if value.endswith("Z"):
        return datetime.strptime(value[:-1], "%Y%m%dT%H%M%S").replace(tzinfo=UTC), False
    return datetime.strptime(value, "%Y%m%dT%H%M%S"), False


class RRuleExpander:
    """Expands recurring VEVENTs into occurrences within a query window."""

    def __init__(self, settings: Any = None, max_occurrences: Optional[int] = None):
        """Initialize RRuleExpander.

        Args:
            settings: Application settings (supplies ``rrule_max_occurrences``)
            max_occurrences: Explicit enumeration cap, overriding settings
        """
        self.settings = settings
        if max_occurrences is None:
            max_occurrences = getattr(settings, "rrule_max_occurrences", DEFAULT_MAX_OCCURRENCES)
        self.max_occurrences = max_occurrences

    def parse_rrule_string(self, rrule_string: str) -> RecurrenceRule:
        """Parse RRULE text (e.g. "FREQ=WEEKLY;INTERVAL=1;BYDAY=MO").

        Raises:
            RRuleParseError: If the text is empty, lacks FREQ or has malformed parts
        """
        if not rrule_string or not rrule_string.strip():
            raise RRuleParseError("Empty RRULE string")

        text = rrule_string.strip()
        if text.upper().startswith("RRULE:"):
            text = text[len("RRULE:"):]

        parts: dict[str, Any] = {}
        try:
            for part in text.split(";"):
                if "=" not in part:
                    continue
                key, value = part.split("=", 1)
                key = key.strip().upper()
                value = value.strip().upper()

                if key == "FREQ":
                    parts["freq"] = value
                elif key == "INTERVAL":
                    parts["interval"] = int(value)
                elif key == "COUNT":
                    parts["count"] = int(value)
                elif key == "UNTIL":
                    parts["until"], parts["until_is_date"] = _parse_until(value)
                elif key == "BYDAY":
                    parts["byday"] = tuple(day.strip() for day in value.split(",") if day.strip())
                elif key in INTEGER_PARTS:
                    parts[key.lower()] = _int_list(value)
                elif key == "WKST":
                    parts["wkst"] = value
                else:
                    raise RRuleParseError(f"Unsupported RRULE part {key} in: {rrule_string}")
        except ValueError as e:
            raise RRuleParseError(f"Invalid RRULE format: {rrule_string}") from e

        if "freq" not in parts:
            raise RRuleParseError("RRULE missing required FREQ parameter")
        if parts["freq"] not in FREQUENCIES:
            raise RRuleParseError(f"Unsupported frequency: {parts['freq']}")
        if parts.get("interval", 1) < 1:
            raise RRuleParseError(f"Invalid INTERVAL in RRULE: {rrule_string}")

        for day in parts.get("byday", ()):
            if not _BYDAY_PATTERN.match(day):
                raise RRuleParseError(f"Invalid BYDAY value {day!r} in RRULE: {rrule_string}")

        for key, (low, high, allow_negative) in INTEGER_PARTS.items():
            for number in parts.get(key.lower(), ()):
                magnitude = abs(number) if allow_negative else number
                if not low <= magnitude <= high:
                    raise RRuleParseError(f"{key} value {number} out of range in RRULE: {rrule_string}")

        if not _matches_some_month(parts.get("bymonth", ()), parts.get("bymonthday", ())):
            raise RRuleParseError(f"RRULE can never match a calendar date: {rrule_string}")

        return RecurrenceRule(**parts)

    def build_rule(
        self, recurrence: RecurrenceRule, dtstart: datetime, window_end: Optional[datetime] = None
    ) -> rrule:
        """Build the dateutil rule iterating from ``dtstart``.

        With ``window_end`` the rule stops there (or at its own UNTIL, if
        earlier) and COUNT is left to the caller, so iteration never scans
        past the window looking for a match.
        """
        kwargs: dict[str, Any] = {
            "freq": FREQUENCIES[recurrence.freq],
            "dtstart": dtstart,
            "interval": recurrence.interval,
        }

        # UNTIL wins when a feed (against RFC 5545) gives both
        until = self._normalize_until(recurrence, dtstart) if recurrence.until is not None else None
        if window_end is not None:
            window_end = self._align(window_end, dtstart)
            until = window_end if until is None else min(until, window_end)
        if until is not None:
            kwargs["until"] = until
        elif recurrence.count is not None:
            kwargs["count"] = recurrence.count

        if recurrence.byday:
            kwargs["byweekday"] = [self._weekday(day) for day in recurrence.byday]
        for key in INTEGER_PARTS:
            values = getattr(recurrence, key.lower())
            if values:
                kwargs[key.lower()] = list(values)
        if recurrence.wkst:
            kwargs["wkst"] = WEEKDAYS.get(recurrence.wkst, MO)

        try:
            return rrule(**kwargs)
        except (ValueError, TypeError) as e:
            raise RRuleExpansionError(f"Cannot build recurrence: {e}") from e

    def iter_occurrences(
        self, event: VEvent, range_start: datetime, range_end: datetime
    ) -> Iterator[Occurrence]:
        """Yield occurrences of ``event`` intersecting [range_start, range_end].

        Raises:
            RRuleExpansionError: If the event carries no usable RRULE
        """
        if not event.rrule:
            raise RRuleExpansionError(f"Event {event.uid} has no RRULE")

        recurrence = self.parse_rrule_string(event.rrule)
        range_start = ensure_utc(range_start)
        range_end = ensure_utc(range_end)
        rule = self.build_rule(recurrence, event.dtstart or event.start, window_end=range_end)
        duration = event.duration

        limit = self.max_occurrences
        if recurrence.until is None and recurrence.count is not None:
            limit = min(limit, recurrence.count)

        enumerated = 0
        for local_start in rule:
            if enumerated >= limit:
                logger.debug("Stopped expanding %s after %d occurrences", event.uid, limit)
                return
            enumerated += 1

            start = ensure_utc(local_start)
            if start > range_end:
                return

            end = start + duration
            if end < range_start:
                continue

            yield Occurrence(start=start, end=end)

    def expand(self, event: VEvent, range_start: datetime, range_end: datetime) -> list[Occurrence]:
        """All occurrences of ``event`` intersecting the window, in series order."""
        occurrences = list(self.iter_occurrences(event, range_start, range_end))
        logger.debug("Expanded %s into %d occurrences in range", event.uid, len(occurrences))
        return occurrences

    @staticmethod
    def _weekday(day: str) -> weekday:
        match = _BYDAY_PATTERN.match(day)
        if match is None:
            raise RRuleParseError(f"Invalid BYDAY value {day!r}")
        ordinal, name = match.groups()
        base = WEEKDAYS[name]
        return base(int(ordinal)) if ordinal else base

    @staticmethod
    def _align(instant: datetime, dtstart: datetime) -> datetime:
        """Express an aware UTC instant the way ``dtstart`` is expressed."""
        if dtstart.tzinfo is None:
            return instant.astimezone(UTC).replace(tzinfo=None)
        return instant.astimezone(dtstart.tzinfo)

    @staticmethod
    def _normalize_until(recurrence: RecurrenceRule, dtstart: datetime) -> datetime:
        """Make UNTIL comparable with DTSTART.

        A date-only UNTIL includes the whole of that day; a floating UNTIL is
        read in DTSTART's zone.
        """
        until = recurrence.until
        if until is None:
            raise RRuleExpansionError("Recurrence has no UNTIL")
        if recurrence.until_is_date:
            until = datetime.combine(date(until.year, until.month, until.day), time.max)
        if until.tzinfo is None and dtstart.tzinfo is not None:
            until = until.replace(tzinfo=dtstart.tzinfo)
        elif until.tzinfo is not None and dtstart.tzinfo is None:
            until = until.astimezone(UTC).replace(tzinfo=None)
        return until
