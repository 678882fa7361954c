"""Window selection over occurrence streams and the full resolve pipeline."""

from __future__ import annotations

import logging
from collections.abc import Iterable
from datetime import datetime
from itertools import islice, takewhile

from ._tz import to_utc
from .const import DEFAULT_MAX_OCCURRENCES
from .iterator import iter_occurrences
from .models import Occurrence, Sequence
from .overrides import resolve_overrides

_LOGGER = logging.getLogger(__name__)


def take_window(
    occurrences: Iterable[Occurrence],
    *,
    until: datetime | str | None = None,
    limit: int | None = DEFAULT_MAX_OCCURRENCES,
) -> list[Occurrence]:
    """Pull occurrences from a start-ordered stream into a finite list.

    Stops at the first occurrence starting at or after ``until`` and after
    ``limit`` items, whichever comes first. Pass ``limit=None`` only with
    an ``until`` or a finite stream.
    """
    if until is None and limit is None:
        raise ValueError("take_window needs an 'until' or a 'limit'")

    stream = iter(occurrences)
    if until is not None:
        horizon = to_utc(until)
        stream = takewhile(lambda o: o.start < horizon, stream)
    window = list(islice(stream, limit))

    if limit is not None and len(window) == limit:
        _LOGGER.debug("Occurrence window hit the limit of %d", limit)
    return window


def build_timeline(
    sequences: Iterable[Sequence],
    start: datetime | str,
    end: datetime | str,
    *,
    limit: int | None = DEFAULT_MAX_OCCURRENCES,
) -> list[Occurrence]:
    """Resolve the effective timeline for occurrences starting before ``end``.

    Occurrences still running at ``start`` are included. Segments are not
    clipped to the window, so the last ones may extend past ``end``.
    """
    window = take_window(iter_occurrences(sequences, start), until=end, limit=limit)
    return resolve_overrides(window)
