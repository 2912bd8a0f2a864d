"""Event aggregation across calendar sources.

For a query window the service consults every enabled source (cached
result when fresh, else fetch + parse + expand), concatenates the results,
applies the start-hour visibility filter for the viewer's zone and sorts by
start. A failing source contributes no events and never fails the call.
"""

import asyncio
import logging
from collections import Counter
from datetime import date, datetime, timedelta
from typing import Optional, Union

from ..ics import ICSError, RRuleExpansionError, VEvent
from ..sources import CalendarSource
from ..timezone import (
    day_bounds,
    ensure_utc,
    floating_date,
    local_date_of,
    resolve_timezone,
    should_show_event,
)
from .context import CalendarContext
from .models import CalendarEvent, SourceResult

logger = logging.getLogger(__name__)


def _occurrence_id(source_id: str, uid: str, start: datetime) -> str:
    return f"{source_id}-{uid}-{int(start.timestamp() * 1000)}"


def occurs_on(event: CalendarEvent, target: date, zone_name: str) -> bool:
    """Whether ``event`` falls on the local calendar day ``target``.

    All-day events cover the dates of [start, end) (a zero-length one covers
    its start date); timed events fall on the local date of their start.
    """
    if event.all_day:
        return _within_dates(event, target, target)
    return local_date_of(event.start, zone_name) == target


def _within_dates(event: CalendarEvent, first_day: date, last_day: date) -> bool:
    """Whether an event belongs to the inclusive local date range.

    Timed events were already selected by instant. All-day events count only
    when one of their floating dates lies in the range.
    """
    if not event.all_day:
        return True
    first = floating_date(event.start)
    last_exclusive = max(floating_date(event.end), first + timedelta(days=1))
    return first <= last_day and last_exclusive > first_day


class EventService:
    """Aggregates, filters and sorts events from all enabled sources."""

    def __init__(self, context: CalendarContext) -> None:
        """Initialize event service.

        Args:
            context: Shared registry, cache and fetch machinery
        """
        self.context = context

    def viewer_zone(self, zone_name: Optional[str] = None) -> str:
        """Zone used to present events: the viewer's when valid, else the configured one."""
        return resolve_timezone(zone_name, self.context.config.default_zone)

    async def fetch_calendar_events(
        self,
        range_start: Union[date, datetime],
        range_end: Union[date, datetime],
        zone_name: Optional[str] = None,
    ) -> list[CalendarEvent]:
        """Merged, filtered and sorted events of all enabled sources in a window.

        Args:
            range_start: Window start (naive values are read as UTC; a date
                means the start of that local day in the viewer's zone)
            range_end: Window end, inclusive (a date means the end of that local day).
                When both bounds are dates, all-day events must also fall on
                one of those dates.
            zone_name: Viewer's zone for the start-hour filter
        """
        zone = self.viewer_zone(zone_name)
        date_window = None
        if not isinstance(range_start, datetime) and not isinstance(range_end, datetime):
            date_window = (range_start, range_end)
        if not isinstance(range_start, datetime):
            range_start = day_bounds(range_start, zone).start
        if not isinstance(range_end, datetime):
            range_end = day_bounds(range_end, zone).end
        range_start = ensure_utc(range_start)
        range_end = ensure_utc(range_end)
        sources = self.context.registry.list_enabled()
        logger.info(
            "Fetching events from %d calendar sources between %s and %s",
            len(sources),
            range_start.isoformat(),
            range_end.isoformat(),
        )

        if not sources:
            logger.warning("No calendar sources configured")
            return []

        outcomes = await asyncio.gather(
            *(self._events_for_source(source, range_start, range_end) for source in sources)
        )

        all_events: list[CalendarEvent] = []
        source_results: dict[str, SourceResult] = {}
        for source, (events, result) in zip(sources, outcomes):
            all_events.extend(events)
            source_results[source.name] = result

        logger.info(
            "Calendar source results: %s",
            {name: result.model_dump(exclude_none=True) for name, result in source_results.items()},
        )

        filter_hour = self.context.config.filter_hour
        visible = [event for event in all_events if should_show_event(event, filter_hour, zone)]
        if date_window is not None:
            visible = [event for event in visible if _within_dates(event, *date_window)]
        logger.debug("Events before filtering: %d, after: %d", len(all_events), len(visible))

        # sorted() is stable, so ties keep source order
        visible = sorted(visible, key=lambda event: event.start)

        logger.info("Final events by source: %s", dict(Counter(event.source for event in visible)))
        return visible

    async def _events_for_source(
        self, source: CalendarSource, range_start: datetime, range_end: datetime
    ) -> tuple[list[CalendarEvent], SourceResult]:
        """One source's events for the window, containing any failure."""
        cache = self.context.cache
        key = cache.make_key(source.id, range_start, range_end)
        cached = cache.get(key)
        if cached is not None:
            logger.debug("Using cached events for %s: %d events", source.name, len(cached))
            return cached, SourceResult(success=True, count=len(cached), cached=True)

        try:
            vevents = await self.context.handler.fetch_and_parse(source, range_start, range_end)
        except ICSError as e:
            logger.error("Failed to fetch events from %s: %s", source.name, e.message)
            return [], SourceResult(success=False, error=e.message)
        except Exception as e:
            logger.exception("Unexpected error fetching events from %s", source.name)
            return [], SourceResult(success=False, error=str(e) or type(e).__name__)

        # Expansion is CPU-bound; keep it off the event loop
        events = await asyncio.to_thread(self.build_events, source, vevents, range_start, range_end)
        cache.set(key, events)
        logger.debug("Fetched %d events from %s", len(events), source.name)
        return events, SourceResult(success=True, count=len(events))

    def build_events(
        self,
        source: CalendarSource,
        vevents: list[VEvent],
        range_start: datetime,
        range_end: datetime,
    ) -> list[CalendarEvent]:
        """Turn a source's VEVENTs into events, expanding recurring ones."""
        events: list[CalendarEvent] = []
        for vevent in vevents:
            if not vevent.is_recurring:
                if vevent.start <= range_end and vevent.end >= range_start:
                    events.append(
                        CalendarEvent(
                            id=f"{source.id}-{vevent.uid}",
                            title=vevent.summary,
                            start=vevent.start,
                            end=vevent.end,
                            all_day=vevent.all_day,
                            source=source.name,
                            color=source.color,
                        )
                    )
                continue

            try:
                occurrences = self.context.expander.expand(vevent, range_start, range_end)
            except (RRuleExpansionError, ValueError, OverflowError) as e:
                logger.warning(
                    "Error processing recurring event %s in %s: %s", vevent.uid, source.name, e
                )
                continue

            for occurrence in occurrences:
                events.append(
                    CalendarEvent(
                        id=_occurrence_id(source.id, vevent.uid, occurrence.start),
                        title=vevent.summary,
                        start=occurrence.start,
                        end=occurrence.end,
                        all_day=vevent.all_day,
                        source=source.name,
                        color=source.color,
                    )
                )
        return events

    async def get_events_for_date(
        self, day: Union[date, datetime], zone_name: Optional[str] = None
    ) -> list[CalendarEvent]:
        """Events falling on one local calendar day in the viewer's zone.

        Args:
            day: The calendar date, or an instant whose local date is meant
            zone_name: Viewer's zone (the configured zone when omitted)
        """
        zone = self.viewer_zone(zone_name)
        target = local_date_of(day, zone) if isinstance(day, datetime) else day
        bounds = day_bounds(target, zone)

        events = await self.fetch_calendar_events(bounds.start, bounds.end, zone)
        on_day = [event for event in events if occurs_on(event, target, zone)]
        logger.debug("%d of %d events fall on %s (%s)", len(on_day), len(events), target, zone)
        return on_day

    def clear_cache(self) -> None:
        """Drop all cached events; the next fetch goes to the network."""
        self.context.cache.clear()
