"""Command implementations for the CLI."""

import json
import logging
import sys
from datetime import date, datetime
from typing import Any, Optional, TextIO

from ..events import CalendarContext, EventService, check_sources
from ..timezone import get_zone
from ..web import serve

logger = logging.getLogger(__name__)


def _print_json(data: Any, stream: Optional[TextIO] = None) -> None:
    print(json.dumps(data, indent=2), file=stream or sys.stdout)


async def run_serve(settings: Any, context: CalendarContext) -> int:
    """Serve the HTTP API until interrupted."""
    await serve(settings, context=context)
    return 0


async def run_events(
    context: CalendarContext, start: date, end: date, zone_name: Optional[str] = None
) -> int:
    """Print the merged events between two local days (inclusive)."""
    if end < start:
        logger.error("End date %s is before start date %s", end, start)
        return 1

    service = EventService(context)
    zone = service.viewer_zone(zone_name)
    events = await service.fetch_calendar_events(start, end, zone)
    _print_json({"timezone": zone, "events": [event.to_dict() for event in events]})
    return 0


async def run_day(
    context: CalendarContext, day: Optional[date] = None, zone_name: Optional[str] = None
) -> int:
    """Print the events falling on one local day."""
    service = EventService(context)
    zone = service.viewer_zone(zone_name)
    if day is None:
        day = datetime.now(get_zone(zone)).date()

    events = await service.get_events_for_date(day, zone)
    _print_json(
        {"date": day.isoformat(), "timezone": zone, "events": [event.to_dict() for event in events]}
    )
    return 0


async def run_test_sources(context: CalendarContext) -> int:
    """Print per-source diagnostics; non-zero exit when any source fails."""
    results = await check_sources(context)
    _print_json({name: result.to_dict() for name, result in results.items()})
    return 0 if all(result.success for result in results.values()) else 1


def run_list_sources(context: CalendarContext) -> int:
    """Print the configured sources."""
    _print_json([source.model_dump() for source in context.registry.list_sources()])
    return 0
