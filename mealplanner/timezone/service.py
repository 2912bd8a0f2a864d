"""Core timezone service for the meal planner.

Provides the conversions between UTC instants and a named zone's wall clock,
day-boundary computation and the configurable event visibility predicate.
Uses zoneinfo for all zone arithmetic.

Ambiguous and nonexistent wall-clock times (DST fold and gap) are resolved
with ``fold=0``: the offset in force *before* the transition is used. A
``ZonedWallClock`` produced by :func:`to_zone` carries the fold it was
observed with, so converting it back with :func:`from_zone` always returns
the original instant.
"""

import logging
from dataclasses import dataclass
from datetime import date, datetime, time, timezone
from functools import lru_cache
from typing import Any, NamedTuple, Optional, Union
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

logger = logging.getLogger(__name__)

UTC = timezone.utc

# Fallback zone when neither the caller nor the configuration names a usable one
DEFAULT_TIMEZONE = "America/Los_Angeles"

# Windows zone names seen in TZID parameters of Outlook/Exchange feeds
WINDOWS_TZ_MAP: dict[str, str] = {
    "Pacific Standard Time": "America/Los_Angeles",
    "Mountain Standard Time": "America/Denver",
    "Central Standard Time": "America/Chicago",
    "Eastern Standard Time": "America/New_York",
    "Alaskan Standard Time": "America/Anchorage",
    "Hawaiian Standard Time": "Pacific/Honolulu",
    "US Mountain Standard Time": "America/Phoenix",
    "GMT Standard Time": "Europe/London",
    "Central European Standard Time": "Europe/Warsaw",
    "W. Europe Standard Time": "Europe/Berlin",
    "Romance Standard Time": "Europe/Paris",
    "China Standard Time": "Asia/Shanghai",
    "Tokyo Standard Time": "Asia/Tokyo",
    "India Standard Time": "Asia/Kolkata",
    "AUS Eastern Standard Time": "Australia/Sydney",
    "UTC": "UTC",
}


class TimezoneError(Exception):
    """Raised when timezone operations fail."""


@dataclass(frozen=True)
class ZonedWallClock:
    """Wall-clock fields a person in a given zone would read."""

    year: int
    month: int
    day: int
    hour: int = 0
    minute: int = 0
    second: int = 0
    microsecond: int = 0
    fold: int = 0

    def date(self) -> date:
        """Local calendar date of this wall clock."""
        return date(self.year, self.month, self.day)

    def to_naive(self) -> datetime:
        """Naive datetime with the same fields."""
        return datetime(
            self.year,
            self.month,
            self.day,
            self.hour,
            self.minute,
            self.second,
            self.microsecond,
            fold=self.fold,
        )


class DayBounds(NamedTuple):
    """UTC instants bracketing one local calendar day."""

    start: datetime
    end: datetime


@lru_cache(maxsize=64)
def get_zone(zone_name: str) -> ZoneInfo:
    """Return the ZoneInfo for an IANA zone name.

    Raises:
        TimezoneError: If the name is not a known zone.
    """
    if not zone_name or not isinstance(zone_name, str):
        raise TimezoneError(f"Invalid timezone name: {zone_name!r}")
    try:
        return ZoneInfo(zone_name)
    except (ZoneInfoNotFoundError, ValueError) as e:
        raise TimezoneError(f"Unknown timezone: {zone_name}") from e


def is_valid_timezone(zone_name: Optional[str]) -> bool:
    """Check whether ``zone_name`` names a usable IANA zone."""
    if not zone_name:
        return False
    try:
        get_zone(zone_name)
    except TimezoneError:
        return False
    return True


def windows_tz_to_iana(windows_tz: str) -> Optional[str]:
    """Convert a Windows timezone name to its IANA identifier, if known."""
    return WINDOWS_TZ_MAP.get(windows_tz)


def resolve_timezone(preferred: Optional[str] = None, fallback: Optional[str] = None) -> str:
    """Resolve the zone used to present events to the current viewer.

    The viewer's own zone (``preferred``, typically sent by the browser) wins
    when valid, then the configured ``fallback``, then :data:`DEFAULT_TIMEZONE`.
    Never raises.
    """
    if is_valid_timezone(preferred):
        return str(preferred)
    if preferred:
        logger.debug("Ignoring unknown viewer timezone %r", preferred)
    if is_valid_timezone(fallback):
        return str(fallback)
    if fallback:
        logger.warning("Configured timezone %r is invalid, using %s", fallback, DEFAULT_TIMEZONE)
    return DEFAULT_TIMEZONE


def ensure_utc(dt: datetime, fallback_zone: Optional[str] = None) -> datetime:
    """Normalize a datetime to an aware UTC instant.

    Naive datetimes are read as wall-clock time in ``fallback_zone`` (UTC when
    not given).
    """
    if not isinstance(dt, datetime):
        raise TypeError(f"Expected datetime object, got {type(dt)}")
    if dt.tzinfo is None:
        tz: Any = get_zone(fallback_zone) if fallback_zone else UTC
        dt = dt.replace(tzinfo=tz)
    return dt.astimezone(UTC)


def to_zone(instant: datetime, zone_name: str) -> ZonedWallClock:
    """Project a UTC instant onto the wall clock of ``zone_name``."""
    local = ensure_utc(instant).astimezone(get_zone(zone_name))
    return ZonedWallClock(
        year=local.year,
        month=local.month,
        day=local.day,
        hour=local.hour,
        minute=local.minute,
        second=local.second,
        microsecond=local.microsecond,
        fold=local.fold,
    )


def from_zone(wall_clock: ZonedWallClock, zone_name: str) -> datetime:
    """Interpret wall-clock fields as local time in ``zone_name``.

    Returns:
        The corresponding aware UTC instant.
    """
    local = wall_clock.to_naive().replace(tzinfo=get_zone(zone_name))
    return local.astimezone(UTC)


def day_bounds(day: Union[datetime, date], zone_name: str) -> DayBounds:
    """Compute the UTC instants of 00:00:00.000 and 23:59:59.999 local time.

    Args:
        day: An instant (projected into ``zone_name`` to find its local day) or
            a calendar date taken as the local day directly.
        zone_name: IANA zone whose calendar day is wanted.
    """
    local_date = to_zone(day, zone_name).date() if isinstance(day, datetime) else day

    start = from_zone(ZonedWallClock(local_date.year, local_date.month, local_date.day), zone_name)
    end = from_zone(
        ZonedWallClock(local_date.year, local_date.month, local_date.day, 23, 59, 59, 999000),
        zone_name,
    )
    return DayBounds(start=start, end=end)


def local_date_of(instant: datetime, zone_name: str) -> date:
    """Local calendar date of an instant in ``zone_name``."""
    return to_zone(instant, zone_name).date()


def floating_date(instant: datetime) -> date:
    """Calendar date of an all-day anchor (all-day events are anchored at UTC midnight)."""
    return ensure_utc(instant).date()


def utc_midnight(day: date) -> datetime:
    """Anchor instant of a floating calendar date."""
    return datetime.combine(day, time.min, tzinfo=UTC)


def should_show_event(event: Any, filter_hour: Optional[int], zone_name: Optional[str] = None) -> bool:
    """Decide whether an event passes the configured start-hour filter.

    All-day events always pass. With no filter hour every event passes;
    otherwise a timed event passes iff its local start hour in the viewer's
    zone is at least ``filter_hour``. The zone is resolved on every call
    because it depends on who is looking.
    """
    if filter_hour is None:
        return True

    if event.all_day:
        return True

    local = to_zone(event.start, resolve_timezone(zone_name))
    return local.hour >= filter_hour
