"""ICS calendar downloading, parsing and recurrence expansion."""

from .exceptions import (
    ICSError,
    ICSFetchError,
    ICSNetworkError,
    ICSParseError,
    ICSTimeoutError,
)
from .fetcher import ICSFetcher
from .models import Component, ICSParseResult, ICSResponse, Occurrence, Property, VEvent
from .parser import ICSParser
from .rrule_expander import RecurrenceRule, RRuleExpander, RRuleExpansionError, RRuleParseError

__all__ = [
    "Component",
    "ICSError",
    "ICSFetchError",
    "ICSFetcher",
    "ICSNetworkError",
    "ICSParseError",
    "ICSParseResult",
    "ICSParser",
    "ICSResponse",
    "ICSTimeoutError",
    "Occurrence",
    "Property",
    "RRuleExpander",
    "RRuleExpansionError",
    "RRuleParseError",
    "RecurrenceRule",
    "VEvent",
]
