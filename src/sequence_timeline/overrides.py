"""Resolve overlapping occurrences into a non-overlapping timeline.

The most recently updated occurrence owns any instant it covers. Every
occurrence (or fragment) it preempts is kept in its ``overrides`` list,
trimmed to exactly the span it was shadowed for.

All mutation happens on clones; callers' occurrences are never touched.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from datetime import datetime

from .exceptions import InvalidIntervalError
from .models import Occurrence

_LOGGER = logging.getLogger(__name__)


def _add_override(winner: Occurrence, loser: Occurrence) -> None:
    """Attach ``loser`` and everything it already preempted to ``winner``."""
    winner.overrides.append(loser)
    winner.overrides.extend(loser.overrides)


def _trim_start(occurrence: Occurrence, time: datetime) -> None:
    occurrence.start = time
    for override in occurrence.overrides:
        override.start = time
    occurrence.overrides = [o for o in occurrence.overrides if o.end > o.start]


def _trim_end(occurrence: Occurrence, time: datetime) -> None:
    occurrence.end = time
    for override in occurrence.overrides:
        override.end = time
    occurrence.overrides = [o for o in occurrence.overrides if o.end > o.start]


def _insert_by_start(occurrences: list[Occurrence], occurrence: Occurrence) -> None:
    """Insert before the first occurrence that starts strictly later."""
    idx = next(
        (i for i, o in enumerate(occurrences) if o.start > occurrence.start),
        len(occurrences),
    )
    occurrences.insert(idx, occurrence)


def _check_interval(occurrence: Occurrence) -> None:
    if occurrence.end < occurrence.start:
        raise InvalidIntervalError(
            f"Occurrence {occurrence.id} ends before it starts",
            start=occurrence.start,
            end=occurrence.end,
        )


def resolve_overrides(occurrences: Iterable[Occurrence]) -> list[Occurrence]:
    """Partition occurrences into non-overlapping, start-ordered segments.

    Priority is ``updated_at``: a later occurrence preempts the current one
    only when it was updated strictly more recently, so on an exact tie the
    occurrence seen first keeps the contested span.

    Args:
        occurrences: Occurrences in any order. Pre-existing ``overrides``
            are carried along.

    Returns:
        The winning segments, ordered by start. Occurrences split across
        several segments appear once per segment.

    Raises:
        InvalidIntervalError: If any occurrence ends before it starts.
    """
    working = [o.clone() for o in occurrences]
    for occurrence in working:
        _check_interval(occurrence)
    working.sort(key=lambda o: o.start)
    initial = len(working)

    # ``working`` grows while we walk it: split-off tails are inserted in
    # start order and processed when the walk reaches them.
    i = 0
    while i < len(working):
        current = working[i]
        i += 1
        if current.overridden:
            continue

        i2 = i
        while i2 < len(working):
            later = working[i2]
            if later.start >= current.end:
                break

            if later.updated_at > current.updated_at:
                # The later occurrence wins the overlap.
                if current.end > later.end:
                    tail = current.clone()
                    _trim_start(tail, later.end)
                    _trim_end(current, later.end)
                    _insert_by_start(working, tail)

                if current.start < later.start:
                    shadowed = current.clone()
                    shadowed.overridden = True
                    _trim_end(current, later.start)
                    _trim_start(shadowed, later.start)
                    _add_override(later, shadowed)
                else:
                    current.overridden = True
                    _add_override(later, current)
                    break
            else:
                # The current occurrence wins. Starts are ordered, so only
                # the later occurrence's tail can stick out.
                if current.end < later.end:
                    tail = later.clone()
                    _trim_end(later, current.end)
                    _trim_start(tail, current.end)
                    _insert_by_start(working, tail)
                later.overridden = True
                _add_override(current, later)
            i2 += 1

    resolved = [o for o in working if not o.overridden]
    _LOGGER.debug(
        "Resolved %d occurrence(s) into %d segment(s) (%d split(s))",
        initial, len(resolved), len(working) - initial,
    )
    return resolved
