"""Explicit holder of the process-wide calendar state.

One ``CalendarContext`` owns the source registry, the event cache and the
fetch/parse/expand machinery. The hosting process (web server, CLI) creates
one and shares it; tests create a fresh one per test.
"""

import logging
from dataclasses import dataclass
from typing import Any, Callable, Optional

import httpx

from ..cache import EventCache
from ..config import CalendarConfig, MealPlannerSettings, get_settings
from ..ics import ICSFetcher, ICSParser, RRuleExpander
from ..sources import ICSSourceHandler, SourceRegistry

logger = logging.getLogger(__name__)


@dataclass
class CalendarContext:
    """Shared state the event service and diagnostics operate on."""

    settings: Any
    config: CalendarConfig
    registry: SourceRegistry
    cache: EventCache
    handler: ICSSourceHandler
    expander: RRuleExpander

    async def aclose(self) -> None:
        """Release network resources."""
        await self.handler.close()

    async def __aenter__(self) -> "CalendarContext":
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        await self.aclose()


def create_context(
    settings: Optional[MealPlannerSettings] = None,
    *,
    registry: Optional[SourceRegistry] = None,
    transport: Optional[httpx.AsyncBaseTransport] = None,
    clock: Optional[Callable[[], float]] = None,
) -> CalendarContext:
    """Wire up a calendar context from settings.

    Args:
        settings: Application settings (the global instance when omitted)
        registry: Pre-built registry (seeded from settings when omitted)
        transport: HTTP transport for feed downloads (tests pass a mock)
        clock: Clock used for cache freshness
    """
    settings = settings or get_settings()
    fetcher = ICSFetcher(settings, transport=transport)
    context = CalendarContext(
        settings=settings,
        config=settings.calendar_config(),
        registry=registry or SourceRegistry.from_settings(settings),
        cache=EventCache.from_settings(settings, clock=clock),
        handler=ICSSourceHandler(settings, fetcher=fetcher, parser=ICSParser(settings)),
        expander=RRuleExpander(settings),
    )
    logger.debug(
        "Calendar context created with %d sources (zone %s, filter hour %s)",
        len(context.registry),
        context.config.default_zone,
        context.config.filter_hour,
    )
    return context
