"""iCalendar parser producing a typed component tree and normalized VEVENTs."""

import hashlib
import logging
from datetime import date, datetime, timedelta
from typing import Any, Optional

from icalendar import Calendar

from ..timezone import (
    TimezoneError,
    ensure_utc,
    get_zone,
    is_valid_timezone,
    resolve_timezone,
    utc_midnight,
    windows_tz_to_iana,
)
from .exceptions import ICSParseError
from .models import DEFAULT_EVENT_TITLE, Component, ICSParseResult, Property, VEvent

logger = logging.getLogger(__name__)


def _ical_text(raw: Any) -> str:
    """Serialized iCalendar text of an icalendar property value."""
    try:
        text = raw.to_ical()
    except (AttributeError, TypeError, ValueError):
        return str(raw)
    if isinstance(text, bytes):
        return text.decode("utf-8", errors="replace")
    return str(text)


def _decode_value(raw: Any) -> Any:
    """Turn an icalendar property object into a plain Python value."""
    if hasattr(raw, "dt"):
        return raw.dt
    if hasattr(raw, "td"):
        return raw.td
    if isinstance(raw, str):
        return str(raw)
    if isinstance(raw, bool):
        return raw
    if isinstance(raw, int):
        return int(raw)
    if isinstance(raw, float):
        return float(raw)
    return _ical_text(raw)


def _decode_params(raw: Any) -> dict[str, str]:
    params = getattr(raw, "params", None) or {}
    decoded = {}
    for key, value in params.items():
        if isinstance(value, (list, tuple)):
            value = ",".join(str(item) for item in value)
        decoded[str(key).upper()] = str(value)
    return decoded


def convert_component(component: Any) -> Component:
    """Convert an icalendar component (recursively) into a ``Component`` tree."""
    properties = []
    for name, raw_values in component.items():
        values = raw_values if isinstance(raw_values, list) else [raw_values]
        for raw in values:
            properties.append(
                Property(
                    name=str(name).upper(),
                    value=_decode_value(raw),
                    params=_decode_params(raw),
                    text=_ical_text(raw),
                )
            )

    return Component(
        name=str(component.name).upper(),
        properties=properties,
        subcomponents=[convert_component(sub) for sub in component.subcomponents],
    )


class ICSParser:
    """Parses ICS text and extracts the VEVENTs the aggregator works with."""

    def __init__(self, settings: Any = None, default_timezone: Optional[str] = None) -> None:
        """Initialize ICS parser.

        Args:
            settings: Application settings (supplies ``default_timezone``)
            default_timezone: Zone for floating times when the feed names none
        """
        self.settings = settings
        configured = default_timezone or getattr(settings, "default_timezone", None)
        self.default_timezone = resolve_timezone(fallback=configured)

        logger.debug("ICS parser initialized (default zone %s)", self.default_timezone)

    def validate_ics_content(self, ics_content: str) -> bool:
        """Cheap structural check that content looks like an iCalendar stream."""
        if not ics_content or not ics_content.strip():
            return False
        return "BEGIN:VCALENDAR" in ics_content

    def parse_calendar(self, ics_content: str) -> Component:
        """Parse ICS text into a component tree rooted at VCALENDAR.

        Raises:
            ICSParseError: If the text is not valid iCalendar syntax
        """
        if not self.validate_ics_content(ics_content):
            raise ICSParseError("Content is not an iCalendar stream (missing BEGIN:VCALENDAR)")

        try:
            calendar = Calendar.from_ical(ics_content)
        except Exception as e:
            raise ICSParseError(f"Failed to parse ICS data: {e}") from e

        tree = convert_component(calendar)
        if tree.name != "VCALENDAR":
            raise ICSParseError(f"Expected VCALENDAR, found {tree.name}")
        return tree

    def calendar_timezone(self, calendar: Component) -> str:
        """Zone for floating times: the feed's X-WR-TIMEZONE when usable."""
        declared = calendar.value("X-WR-TIMEZONE")
        if declared:
            declared = str(declared).strip()
            if is_valid_timezone(declared):
                return declared
            mapped = windows_tz_to_iana(declared)
            if mapped:
                return mapped
            logger.debug("Ignoring unknown X-WR-TIMEZONE %r", declared)
        return self.default_timezone

    def extract_vevents(self, calendar: Component) -> ICSParseResult:
        """Extract every VEVENT of a calendar, skipping ones that cannot be placed in time.

        Other component types (VTODO, VJOURNAL, VTIMEZONE, ...) are ignored.
        """
        calendar_zone = self.calendar_timezone(calendar)
        calendar_name = calendar.value("X-WR-CALNAME")
        result = ICSParseResult(
            calendar_name=str(calendar_name) if calendar_name else None,
            timezone=calendar_zone,
            component_count=sum(1 for _ in calendar.walk()),
        )

        for component in calendar.children("VEVENT"):
            try:
                event = self._build_vevent(component, calendar_zone)
            except (TimezoneError, ValueError, TypeError, OverflowError) as e:
                warning = f"Skipping malformed event {component.value('UID', '<no uid>')}: {e}"
                logger.warning(warning)
                result.warnings.append(warning)
                result.skipped_count += 1
                continue

            if event is None:
                warning = f"Event {component.value('UID', '<no uid>')} missing DTSTART, skipping"
                logger.warning(warning)
                result.warnings.append(warning)
                result.skipped_count += 1
                continue

            result.events.append(event)
            result.event_count += 1
            if event.is_recurring:
                result.recurring_event_count += 1

        logger.debug(
            "Extracted %d events (%d recurring, %d skipped) from %d components",
            result.event_count,
            result.recurring_event_count,
            result.skipped_count,
            result.component_count,
        )
        return result

    def parse_ics_content(self, ics_content: str) -> ICSParseResult:
        """Parse ICS text and extract its events in one step.

        Raises:
            ICSParseError: If the text is not valid iCalendar syntax
        """
        return self.extract_vevents(self.parse_calendar(ics_content))

    def _build_vevent(self, component: Component, calendar_zone: str) -> Optional[VEvent]:
        dtstart = component.get("DTSTART")
        summary = component.value("SUMMARY")
        summary = str(summary).strip() if summary else ""

        if dtstart is None or dtstart.value is None:
            return None

        if not isinstance(dtstart.value, date):
            raise ValueError(f"Unreadable DTSTART {dtstart.text!r}")

        uid = component.value("UID")
        uid = str(uid).strip() if uid else self._fallback_uid(summary, dtstart.text)

        # All-day is decided by the value type alone, never by clock values
        all_day = not isinstance(dtstart.value, datetime)
        duration = component.value("DURATION")
        if duration is not None and not isinstance(duration, timedelta):
            duration = None
        dtend = component.get("DTEND")

        if all_day:
            local_start = utc_midnight(dtstart.value)
            start = local_start
            if dtend is not None and isinstance(dtend.value, date):
                end_value = dtend.value
                end = utc_midnight(end_value.date() if isinstance(end_value, datetime) else end_value)
            elif duration is not None:
                end = start + duration
            else:
                end = start + timedelta(days=1)
        else:
            local_start = self._localize(dtstart, calendar_zone)
            start = ensure_utc(local_start)
            if dtend is not None and isinstance(dtend.value, date):
                end = ensure_utc(self._localize(dtend, calendar_zone))
            elif duration is not None:
                end = start + duration
            else:
                end = start

        if end < start:
            logger.warning("Event %s ends before it starts, using zero duration", uid)
            end = start

        rrule = component.get("RRULE")
        return VEvent(
            uid=uid,
            summary=summary or DEFAULT_EVENT_TITLE,
            start=start,
            end=end,
            all_day=all_day,
            dtstart=local_start,
            rrule=rrule.text if rrule is not None and rrule.text else None,
        )

    def _localize(self, prop: Property, calendar_zone: str) -> datetime:
        """Aware datetime for a DTSTART/DTEND property, keeping its wall clock."""
        value = prop.value
        if not isinstance(value, datetime):
            value = datetime.combine(value, datetime.min.time())

        if value.tzinfo is not None:
            return value

        zone_name = calendar_zone
        tzid = prop.params.get("TZID")
        if tzid:
            tzid = tzid.strip().strip("/")
            if is_valid_timezone(tzid):
                zone_name = tzid
            elif windows_tz_to_iana(tzid):
                zone_name = windows_tz_to_iana(tzid)
            else:
                logger.debug("Unknown TZID %r, using %s", tzid, calendar_zone)
        return value.replace(tzinfo=get_zone(zone_name))

    @staticmethod
    def _fallback_uid(summary: str, start_text: str) -> str:
        digest = hashlib.sha256(f"{summary}|{start_text}".encode()).hexdigest()
        return f"generated-{digest[:32]}"
