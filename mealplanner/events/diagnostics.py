"""Per-source connectivity and parse checks for the operational endpoint."""

import asyncio
import logging

from ..ics import ICSError
from ..sources import CalendarSource
from .context import CalendarContext
from .models import SourceTestResult

logger = logging.getLogger(__name__)

DIAGNOSTIC_USER_AGENT = "Meal Planner Calendar Integration Test"


async def check_source(context: CalendarContext, source: CalendarSource) -> SourceTestResult:
    """Fetch and parse one source, bypassing the cache and recurrence expansion."""
    logger.info("Testing calendar source: %s", source.name)
    try:
        response = await context.handler.fetch(
            source, headers={"User-Agent": DIAGNOSTIC_USER_AGENT}
        )
        result = context.handler.parse(source, response)
    except ICSError as e:
        logger.warning("Calendar source %s failed its test: %s", source.name, e.message)
        return SourceTestResult(success=False, error=e.message)
    except Exception as e:
        logger.exception("Unexpected error testing calendar source %s", source.name)
        return SourceTestResult(success=False, error=str(e) or type(e).__name__)

    return SourceTestResult(
        success=True,
        event_count=result.event_count + result.skipped_count,
        response_size=response.content_length,
        calendar_name=result.calendar_name,
        timezone=result.timezone,
        component_count=result.component_count,
        warnings=result.warnings or None,
    )


async def check_sources(context: CalendarContext) -> dict[str, SourceTestResult]:
    """Test every enabled source independently, keyed by source name."""
    sources = context.registry.list_enabled()
    results = await asyncio.gather(*(check_source(context, source) for source in sources))
    return {source.name: result for source, result in zip(sources, results)}
