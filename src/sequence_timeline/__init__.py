"""Effective timelines for independently authored recurring sequences."""

from .const import __version__
from .exceptions import (
    InvalidIntervalError,
    MalformedRuleError,
    TimelineError,
    UnknownTimezoneError,
)
from .iterator import RecurrenceIterator, compare_end, compare_start, iter_occurrences
from .models import Frequency, Occurrence, RecurrenceRule, Sequence, WeekDay
from .overrides import resolve_overrides
from .timeline import build_timeline, take_window

__all__ = [
    "__version__",
    "InvalidIntervalError",
    "MalformedRuleError",
    "TimelineError",
    "UnknownTimezoneError",
    "RecurrenceIterator",
    "compare_end",
    "compare_start",
    "iter_occurrences",
    "Frequency",
    "Occurrence",
    "RecurrenceRule",
    "Sequence",
    "WeekDay",
    "resolve_overrides",
    "build_timeline",
    "take_window",
]
