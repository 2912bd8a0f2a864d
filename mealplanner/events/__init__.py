"""Calendar event aggregation, context wiring and diagnostics."""

from .context import CalendarContext, create_context
from .diagnostics import check_source, check_sources
from .models import CalendarEvent, SourceResult, SourceTestResult
from .service import EventService, occurs_on

__all__ = [
    "CalendarContext",
    "CalendarEvent",
    "EventService",
    "SourceResult",
    "SourceTestResult",
    "create_context",
    "occurs_on",
    "check_source",
    "check_sources",
]
