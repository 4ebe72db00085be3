"""Document-level exceptions for iCalendar loading."""

from typing import Optional


class ICalKitError(Exception):
    """Base exception for icalkit errors."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class InvalidSource(ICalKitError):
    """Raised when the calendar source cannot be reached or read.

    Covers malformed URLs or paths, transport failures, HTTP error statuses
    and unreadable files.
    """

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class InvalidEncoding(ICalKitError):
    """Raised when fetched bytes cannot be decoded as text."""


class InvalidDocument(ICalKitError):
    """Raised when the text holds no calendar name and nothing can be returned."""
