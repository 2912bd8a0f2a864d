"""Calendar API routes."""

import logging
from datetime import date, datetime, timezone
from typing import Any, Callable, Optional

from aiohttp import web
from dateutil import parser as date_parser
from pydantic import ValidationError

from ..events import CalendarContext, EventService, check_sources
from ..sources import SourceNotFoundError, SourceUpdate
from ..timezone import day_bounds, ensure_utc, get_zone

logger = logging.getLogger(__name__)


class RequestError(ValueError):
    """A request parameter or body is missing or malformed."""


def now_utc() -> datetime:
    return datetime.now(timezone.utc)


def parse_day(value: str) -> date:
    """Parse a YYYY-MM-DD query value."""
    try:
        return date.fromisoformat(value.strip())
    except ValueError as e:
        raise RequestError(f"Invalid date: {value!r}") from e


def parse_instant(value: str, zone_name: str, end_of_day: bool = False) -> datetime:
    """Parse a query value as a UTC instant.

    A bare date stands for the start (or with ``end_of_day`` the end) of that
    local day in ``zone_name``; a date-time without offset is local time there.
    """
    value = value.strip()
    if len(value) == 10:
        bounds = day_bounds(parse_day(value), zone_name)
        return bounds.end if end_of_day else bounds.start
    try:
        parsed = date_parser.isoparse(value)
    except ValueError as e:
        raise RequestError(f"Invalid date-time: {value!r}") from e
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=get_zone(zone_name))
    return ensure_utc(parsed)


async def _json_body(request: web.Request) -> dict[str, Any]:
    try:
        data = await request.json()
    except ValueError as e:
        raise RequestError("Request body must be JSON") from e
    if not isinstance(data, dict):
        raise RequestError("Request body must be a JSON object")
    return data


def _error(message: str, status: int, details: Optional[str] = None) -> web.Response:
    body: dict[str, Any] = {"success": False, "error": message}
    if details:
        body["details"] = details
    return web.json_response(body, status=status)


@web.middleware
async def error_middleware(request: web.Request, handler: Callable) -> web.StreamResponse:
    """Map request errors to 400 and unexpected failures to 500 JSON bodies."""
    try:
        return await handler(request)
    except web.HTTPException:
        raise
    except SourceNotFoundError as e:
        return _error(str(e), 404)
    except (RequestError, ValidationError) as e:
        return _error(str(e), 400)
    except Exception as e:
        logger.exception("Unhandled error serving %s %s", request.method, request.path)
        return _error("Internal server error", 500, str(e))


def register_calendar_routes(
    app: web.Application,
    context: CalendarContext,
    service: EventService,
    time_provider: Callable[[], datetime] = now_utc,
) -> None:
    """Register the calendar, source and diagnostics routes.

    Args:
        app: aiohttp web application
        context: Shared calendar state
        service: Event aggregator bound to ``context``
        time_provider: Clock for response timestamps
    """
    registry = context.registry

    async def health_check(_request: web.Request) -> web.Response:
        """Health check endpoint for monitoring."""
        return web.json_response(
            {
                "status": "ok",
                "server_time_iso": time_provider().isoformat(),
                "sources": {
                    "total": len(registry),
                    "enabled": len(registry.list_enabled()),
                },
                "cache": context.cache.get_stats(),
            }
        )

    async def list_sources(_request: web.Request) -> web.Response:
        return web.json_response([source.model_dump() for source in registry.list_sources()])

    async def get_source(request: web.Request) -> web.Response:
        source_id = request.match_info["source_id"]
        source = registry.get(source_id)
        if source is None:
            raise SourceNotFoundError(f"Calendar source {source_id} not found", source_id)
        return web.json_response(source.model_dump())

    async def add_source(request: web.Request) -> web.Response:
        data = await _json_body(request)
        name = data.get("name")
        url = data.get("url")
        if not name or not url:
            raise RequestError("Name and URL are required")
        source = registry.add_source(
            name=str(name),
            url=str(url),
            color=data.get("color") or context.settings.default_color,
            enabled=True,
        )
        return web.json_response({"success": True, "source": source.model_dump()})

    async def update_source(request: web.Request) -> web.Response:
        data = await _json_body(request)
        source_id = data.pop("id", None)
        if not source_id:
            raise RequestError("Calendar ID is required")
        registry.update_source(str(source_id), SourceUpdate(**data))
        return web.json_response({"success": True})

    async def remove_source(request: web.Request) -> web.Response:
        source_id = request.query.get("id")
        if not source_id:
            raise RequestError("Calendar ID is required")
        registry.remove_source(source_id)
        return web.json_response({"success": True})

    async def get_events(request: web.Request) -> web.Response:
        zone = service.viewer_zone(request.query.get("tz"))
        start = request.query.get("start")
        end = request.query.get("end")
        if not start or not end:
            raise RequestError("start and end are required")
        range_start = parse_instant(start, zone)
        range_end = parse_instant(end, zone, end_of_day=True)
        if range_end < range_start:
            raise RequestError("end must not be before start")

        # Two bare dates select whole local days, all-day events included by date
        if len(start.strip()) == 10 and len(end.strip()) == 10:
            events = await service.fetch_calendar_events(parse_day(start), parse_day(end), zone)
        else:
            events = await service.fetch_calendar_events(range_start, range_end, zone)
        return web.json_response(
            {
                "timezone": zone,
                "start": range_start.isoformat(),
                "end": range_end.isoformat(),
                "events": [event.to_dict() for event in events],
            }
        )

    async def get_day(request: web.Request) -> web.Response:
        zone = service.viewer_zone(request.query.get("tz"))
        value = request.query.get("date")
        day = parse_day(value) if value else time_provider().astimezone(get_zone(zone)).date()

        events = await service.get_events_for_date(day, zone)
        return web.json_response(
            {
                "date": day.isoformat(),
                "timezone": zone,
                "events": [event.to_dict() for event in events],
            }
        )

    async def debug_events(request: web.Request) -> web.Response:
        """Fetch a window with optional cache clearing, for troubleshooting feeds."""
        today = time_provider().date().isoformat()
        start_value = request.query.get("startDate") or today
        end_value = request.query.get("endDate") or start_value
        clear_cache = request.query.get("clearCache") == "true"
        logger.info(
            "Debug API called with start=%s end=%s clearCache=%s", start_value, end_value, clear_cache
        )

        if clear_cache:
            service.clear_cache()

        # Bare dates mean UTC midnight on this endpoint
        range_start = parse_instant(start_value, "UTC")
        range_end = parse_instant(end_value, "UTC")
        events = await service.fetch_calendar_events(range_start, range_end)
        return web.json_response(
            {
                "success": True,
                "dateRange": {"start": range_start.isoformat(), "end": range_end.isoformat()},
                "eventCount": len(events),
                "events": [event.to_dict() for event in events],
                "debug": True,
            }
        )

    async def refresh(_request: web.Request) -> web.Response:
        logger.info("Calendar refresh requested - clearing cache")
        service.clear_cache()
        return web.json_response({"success": True, "message": "Calendar cache cleared successfully"})

    async def test_calendar_sources(_request: web.Request) -> web.Response:
        results = await check_sources(context)
        return web.json_response(
            {
                "success": True,
                "timestamp": time_provider().isoformat(),
                "results": {name: result.to_dict() for name, result in results.items()},
            }
        )

    app.router.add_get("/api/health", health_check)
    app.router.add_get("/api/calendar/sources", list_sources)
    app.router.add_post("/api/calendar/sources", add_source)
    app.router.add_put("/api/calendar/sources", update_source)
    app.router.add_delete("/api/calendar/sources", remove_source)
    app.router.add_get("/api/calendar/sources/{source_id}", get_source)
    app.router.add_get("/api/calendar/events", get_events)
    app.router.add_get("/api/calendar/day", get_day)
    app.router.add_get("/api/calendar/debug", debug_events)
    app.router.add_post("/api/calendar/debug", refresh)
    app.router.add_get("/api/calendar/test", test_calendar_sources)

    logger.debug("Calendar routes registered")
