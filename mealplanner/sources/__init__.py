"""Calendar source management module."""

from .exceptions import SourceError, SourceNotFoundError
from .ics_source import ICSSourceHandler
from .models import DEFAULT_SOURCE_COLOR, CalendarSource, SourceUpdate
from .registry import DEFAULT_CALENDAR_SOURCES, SourceRegistry

__all__ = [
    "DEFAULT_CALENDAR_SOURCES",
    "DEFAULT_SOURCE_COLOR",
    "CalendarSource",
    "ICSSourceHandler",
    "SourceError",
    "SourceNotFoundError",
    "SourceRegistry",
    "SourceUpdate",
]
