"""ICS calendar source handler."""

import logging
from datetime import datetime
from typing import Any, Optional

from ..ics import ICSFetcher, ICSParser, ICSParseResult, ICSResponse, VEvent
from ..timezone import ensure_utc
from .models import CalendarSource

logger = logging.getLogger(__name__)


class ICSSourceHandler:
    """Turns a calendar source's URL into the VEVENTs of its feed.

    Fetch and parse failures are raised (``ICSFetchError``/``ICSParseError``)
    for the caller to contain per source.
    """

    def __init__(
        self,
        settings: Any = None,
        fetcher: Optional[ICSFetcher] = None,
        parser: Optional[ICSParser] = None,
    ):
        """Initialize ICS source handler.

        Args:
            settings: Application settings
            fetcher: HTTP fetcher (one is created from settings when omitted)
            parser: ICS parser (one is created from settings when omitted)
        """
        self.settings = settings
        self.fetcher = fetcher or ICSFetcher(settings)
        self.parser = parser or ICSParser(settings)

    async def fetch(self, source: CalendarSource, headers: Optional[dict[str, str]] = None) -> ICSResponse:
        """Download the source's feed."""
        logger.debug("Fetching fresh events from %s at %s", source.name, source.url)
        response = await self.fetcher.fetch_ics(source.url, headers=headers)
        logger.debug("Downloaded ICS data for %s: %d characters", source.name, response.content_length)
        return response

    def parse(self, source: CalendarSource, response: ICSResponse) -> ICSParseResult:
        """Parse a downloaded feed into VEVENTs."""
        result = self.parser.parse_ics_content(response.content)
        logger.debug(
            "Found %d VEVENT components in %s",
            result.event_count + result.skipped_count,
            source.name,
        )
        return result

    async def fetch_and_parse(
        self,
        source: CalendarSource,
        range_start: Optional[datetime] = None,
        range_end: Optional[datetime] = None,
    ) -> list[VEvent]:
        """Fetch and parse a source, keeping events that can touch the window.

        Recurring events are always kept (their occurrences are decided by
        expansion). Single events are kept when ``start <= range_end`` and
        ``end >= range_start``. Without a window every event is returned.
        """
        response = await self.fetch(source)
        events = self.parse(source, response).events
        if range_start is None or range_end is None:
            return events

        range_start = ensure_utc(range_start)
        range_end = ensure_utc(range_end)
        in_window = [
            event
            for event in events
            if event.is_recurring or (event.start <= range_end and event.end >= range_start)
        ]
        logger.debug(
            "%s: %d events kept for window, %d out of range",
            source.name,
            len(in_window),
            len(events) - len(in_window),
        )
        return in_window

    async def close(self) -> None:
        """Release the fetcher's HTTP client."""
        await self.fetcher.close()
