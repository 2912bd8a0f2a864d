"""In-memory registry of the calendar feeds the aggregator consults."""

import logging
import time
from collections.abc import Iterable
from typing import Any, Callable, Optional

from .models import DEFAULT_SOURCE_COLOR, CalendarSource, SourceUpdate

logger = logging.getLogger(__name__)

# Built-in feeds used when configuration lists none
DEFAULT_CALENDAR_SOURCES: tuple[CalendarSource, ...] = (
    CalendarSource(
        id="us_holidays",
        name="US Holidays",
        url=(
            "https://calendar.google.com/calendar/ical/"
            "en.usa%23holiday%40group.v.calendar.google.com/public/basic.ics"
        ),
        color="#34a853",
        enabled=True,
    ),
)


def _timestamp_id() -> str:
    return f"calendar-{int(time.time() * 1000)}"


class SourceRegistry:
    """Process-wide list of calendar sources with CRUD operations.

    Duplicate names and URLs are allowed (the same feed may be shown twice
    in different colours). Nothing is persisted: a new registry starts from
    its default list.
    """

    def __init__(
        self,
        sources: Optional[Iterable[CalendarSource]] = None,
        id_factory: Optional[Callable[[], str]] = None,
        default_color: str = DEFAULT_SOURCE_COLOR,
    ) -> None:
        """Initialize source registry.

        Args:
            sources: Initial sources; the built-in defaults when omitted
            id_factory: Generates ids for added sources (time based by default)
            default_color: Colour given to sources added without one
        """
        initial = DEFAULT_CALENDAR_SOURCES if sources is None else sources
        self._defaults: tuple[CalendarSource, ...] = tuple(initial)
        self._sources: list[CalendarSource] = list(self._defaults)
        self._id_factory = id_factory or _timestamp_id
        self.default_color = default_color

        logger.debug("Source registry initialized with %d sources", len(self._sources))

    @classmethod
    def from_settings(cls, settings: Any) -> "SourceRegistry":
        """Build a registry seeded from the configured sources, if any."""
        configured = getattr(settings, "calendar_sources", None) or []
        default_color = getattr(settings, "default_color", DEFAULT_SOURCE_COLOR)
        if not configured:
            return cls(default_color=default_color)

        sources = []
        for index, source in enumerate(configured):
            sources.append(
                CalendarSource(
                    id=source.id or f"calendar-{index + 1}",
                    name=source.name,
                    url=source.url,
                    color=source.color or default_color,
                    enabled=source.enabled,
                )
            )
        return cls(sources, default_color=default_color)

    def list_sources(self) -> list[CalendarSource]:
        """All sources, enabled and disabled, in insertion order."""
        return list(self._sources)

    def list_enabled(self) -> list[CalendarSource]:
        """Only the sources taking part in aggregation."""
        return [source for source in self._sources if source.enabled]

    def get(self, source_id: str) -> Optional[CalendarSource]:
        """Look up a source by id."""
        for source in self._sources:
            if source.id == source_id:
                return source
        return None

    def _new_id(self) -> str:
        base_id = self._id_factory()
        existing = {source.id for source in self._sources}
        new_id = base_id
        suffix = 1
        while new_id in existing:
            new_id = f"{base_id}-{suffix}"
            suffix += 1
        return new_id

    def add_source(
        self, name: str, url: str, color: Optional[str] = None, enabled: bool = True
    ) -> CalendarSource:
        """Add a source with a freshly generated id.

        Returns:
            The stored source
        """
        source = CalendarSource(
            id=self._new_id(),
            name=name,
            url=url,
            color=color or self.default_color,
            enabled=enabled,
        )
        self._sources.append(source)
        logger.info("Calendar source '%s' added as %s", name, source.id)
        return source

    def update_source(self, source_id: str, updates: Any) -> None:
        """Apply a partial update. Unknown ids are ignored and the id never changes.

        Args:
            source_id: Source to update
            updates: A ``SourceUpdate`` or a mapping of field names to values
        """
        if not isinstance(updates, SourceUpdate):
            updates = SourceUpdate(**dict(updates))

        for index, source in enumerate(self._sources):
            if source.id == source_id:
                self._sources[index] = source.model_copy(update=updates.changes())
                logger.info("Calendar source %s updated: %s", source_id, sorted(updates.changes()))
                return

        logger.debug("Update for unknown calendar source %s ignored", source_id)

    def remove_source(self, source_id: str) -> None:
        """Remove a source. Unknown ids are ignored."""
        remaining = [source for source in self._sources if source.id != source_id]
        if len(remaining) == len(self._sources):
            logger.debug("Removal of unknown calendar source %s ignored", source_id)
            return
        self._sources = remaining
        logger.info("Calendar source %s removed", source_id)

    def reset(self) -> None:
        """Restore the registry to the list it started with."""
        self._sources = list(self._defaults)

    def __len__(self) -> int:
        return len(self._sources)
