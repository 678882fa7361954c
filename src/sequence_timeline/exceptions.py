"""Exception hierarchy for the sequence timeline library."""

from __future__ import annotations

from datetime import datetime
from typing import Any


class TimelineError(Exception):
    """Base exception for all timeline errors."""


class MalformedRuleError(TimelineError):
    """A recurrence rule could not be turned into an expansion.

    Attributes:
        rule: The rule record that was rejected, if available.
    """

    def __init__(self, message: str, *, rule: Any = None) -> None:
        super().__init__(message)
        self.rule = rule


class InvalidIntervalError(TimelineError):
    """An occurrence ends before it starts.

    Attributes:
        start: Start of the offending interval.
        end: End of the offending interval.
    """

    def __init__(self, message: str, *, start: datetime, end: datetime) -> None:
        super().__init__(message)
        self.start = start
        self.end = end


class UnknownTimezoneError(TimelineError):
    """A timezone identifier is not in the IANA database."""

    def __init__(self, tzid: str) -> None:
        super().__init__(f"Unknown timezone: {tzid!r}")
        self.tzid = tzid
