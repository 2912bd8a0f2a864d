"""
Timezone package for the meal planner.

All instant arithmetic happens here so the rest of the code reasons only in
UTC instants plus an explicit IANA zone name.

Example usage:
    >>> from datetime import datetime, timezone
    >>> from mealplanner.timezone import day_bounds, to_zone
    >>>
    >>> instant = datetime(2025, 7, 8, 22, 30, tzinfo=timezone.utc)
    >>> to_zone(instant, "America/Los_Angeles").hour
    15
    >>> bounds = day_bounds(instant, "America/Los_Angeles")
"""

from .service import (
    DEFAULT_TIMEZONE,
    DayBounds,
    TimezoneError,
    ZonedWallClock,
    day_bounds,
    ensure_utc,
    floating_date,
    from_zone,
    get_zone,
    is_valid_timezone,
    local_date_of,
    resolve_timezone,
    should_show_event,
    to_zone,
    utc_midnight,
    windows_tz_to_iana,
)

__all__ = [
    "DEFAULT_TIMEZONE",
    "DayBounds",
    "TimezoneError",
    "ZonedWallClock",
    "day_bounds",
    "ensure_utc",
    "floating_date",
    "from_zone",
    "get_zone",
    "is_valid_timezone",
    "local_date_of",
    "resolve_timezone",
    "should_show_event",
    "to_zone",
    "utc_midnight",
    "windows_tz_to_iana",
]
