"""ICS-specific exceptions for error handling."""

from typing import Optional


class ICSError(Exception):
    """Base exception for ICS-related errors."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code


class ICSFetchError(ICSError):
    """Exception raised when an ICS feed cannot be fetched."""


class ICSNetworkError(ICSFetchError):
    """Exception raised for network-related ICS errors."""


class ICSTimeoutError(ICSFetchError):
    """Exception raised when an ICS request times out."""


class ICSParseError(ICSError):
    """Exception raised when ICS content cannot be parsed."""
