"""Constants for the sequence timeline library."""

from typing import Final

__version__ = "0.1.0"

DEFAULT_TZID: Final = "UTC"

# Upper bound on occurrences pulled from a merged stream when building a
# timeline window. Streams with an unbounded rule never exhaust.
DEFAULT_MAX_OCCURRENCES: Final = 10_000
