"""Merge independent sequences into one time-ordered occurrence stream.

Each sequence gets a cursor holding its next start. Every pull emits the
earliest cursor and advances it to its own next recurrence, so the stream
is lazy and may be infinite. Callers bound consumption themselves, see
:func:`sequence_timeline.timeline.take_window`.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from datetime import datetime, timedelta, tzinfo
from functools import cmp_to_key
from typing import Any

from dateutil.rrule import rrule

from ._tz import from_wall_clock, get_zone, to_instant, to_utc, to_wall_clock
from .exceptions import MalformedRuleError, UnknownTimezoneError
from .models import Occurrence, Sequence
from .rules import build_rrule

_LOGGER = logging.getLogger(__name__)


def compare_dates(a: datetime | None, b: datetime | None) -> int:
    """Three-way compare where a missing value sorts after every real one."""
    if a is not None and b is not None:
        if a < b:
            return -1
        if a > b:
            return 1
        return 0
    if a is not None:
        return -1
    return 1 if b is not None else 0


def compare_start(a: Any, b: Any) -> int:
    """Order by ``start`` ascending, then by ``updated_at`` descending.

    Works on anything with ``start`` and ``updated_at`` attributes. On a
    start tie the more recently updated item comes first.
    """
    result = compare_dates(a.start, b.start)
    if result == 0:
        return compare_dates(b.updated_at, a.updated_at)
    return result


def compare_end(a: Any, b: Any) -> int:
    """Order by ``end`` ascending; a missing end sorts last."""
    return compare_dates(a.end, b.end)


start_key = cmp_to_key(compare_start)


def current_or_next_start(
    rule: rrule,
    not_before: datetime,
    duration: timedelta,
    zone: tzinfo,
) -> datetime | None:
    """Return the first recurrence worth emitting at ``not_before``.

    That is the latest recurrence at or before ``not_before`` while it is
    still running (its end is strictly after ``not_before``), otherwise the
    next recurrence strictly after it. ``rule`` runs on wall-clock time in
    ``zone``; the returned value is wall-clock too.
    """
    wall = to_wall_clock(not_before, zone)
    previous = rule.before(wall, inc=True)
    if previous is None or from_wall_clock(previous, zone) + duration <= not_before:
        return rule.after(wall)
    return previous


class _RuleCursor:
    """Iteration state for a single sequence."""

    __slots__ = ("sequence", "start", "duration", "updated_at", "_rule", "_zone", "_rule_start")

    def __init__(
        self,
        sequence: Sequence,
        start: datetime | None,
        duration: timedelta,
        *,
        rule: rrule | None = None,
        zone: tzinfo | None = None,
        rule_start: datetime | None = None,
    ) -> None:
        self.sequence = sequence
        self.start = start
        self.duration = duration
        self.updated_at = to_utc(sequence.updated_at)
        self._rule = rule
        self._zone = zone
        self._rule_start = rule_start

    def advance(self) -> None:
        """Move to the next recurrence, or to no start at all."""
        if self._rule is None or self._rule_start is None:
            self._rule_start = None
            self.start = None
            return
        self._rule_start = self._rule.after(self._rule_start)
        self.start = (
            from_wall_clock(self._rule_start, self._zone)
            if self._rule_start is not None
            else None
        )

    def __repr__(self) -> str:
        return f"_RuleCursor(sequence={self.sequence.id!r}, start={self.start!r})"


class RecurrenceIterator:
    """Lazy, start-ordered stream of occurrences for a set of sequences.

    Occurrences come out in non-decreasing ``start`` order; on equal starts
    the more recently updated sequence comes first. The stream ends once
    every cursor is exhausted, which never happens while an unbounded
    recurring sequence is present. Restart by building a new iterator.
    """

    def __init__(
        self,
        sequences: Iterable[Sequence] | None,
        not_before: datetime | str | None = None,
    ) -> None:
        self._not_before = to_utc(not_before) if not_before is not None else None
        self._cursors: list[_RuleCursor] = []
        for sequence in sequences or ():
            cursor = self._make_cursor(sequence)
            if cursor is not None and cursor.start is not None:
                self._cursors.append(cursor)
        self._cursors.sort(key=start_key)
        _LOGGER.debug(
            "Merging %d live sequence(s) from %s", len(self._cursors), self._not_before
        )

    def __iter__(self) -> RecurrenceIterator:
        return self

    def __next__(self) -> Occurrence:
        if not self._cursors:
            raise StopIteration
        head = self._cursors[0]
        occurrence = Occurrence(
            id=head.sequence.id,
            start=head.start,
            end=head.start + head.duration,
            updated_at=head.updated_at,
            sequence=head.sequence,
        )
        head.advance()
        if head.start is None:
            self._cursors.pop(0)
        else:
            self._cursors.sort(key=start_key)
        return occurrence

    # ------------------------------------------------------------------ #
    #  Cursor construction
    # ------------------------------------------------------------------ #

    def _make_cursor(self, sequence: Sequence) -> _RuleCursor | None:
        try:
            return self._build_cursor(sequence)
        except (MalformedRuleError, UnknownTimezoneError) as err:
            _LOGGER.warning(
                "Could not expand sequence %s, dropping it: %s",
                sequence.id, err,
            )
            return None

    def _build_cursor(self, sequence: Sequence) -> _RuleCursor | None:
        window = self._open_window(sequence)

        if not sequence.is_recurring:
            if window is None:
                _LOGGER.debug("Skipping elapsed sequence %s", sequence.id)
                return None
            start, end = window
            return _RuleCursor(sequence, start, end - start)

        rule, zone = build_rrule(sequence)

        duration = self._duration(sequence)
        if window is not None:
            # The authored window itself has not ended yet.
            start = window[0]
            return _RuleCursor(
                sequence,
                start,
                duration,
                rule=rule,
                zone=zone,
                rule_start=to_wall_clock(start, zone),
            )

        rule_start = current_or_next_start(rule, self._not_before, duration, zone)
        return _RuleCursor(
            sequence,
            from_wall_clock(rule_start, zone) if rule_start is not None else None,
            duration,
            rule=rule,
            zone=zone,
            rule_start=rule_start,
        )

    def _open_window(self, sequence: Sequence) -> tuple[datetime, datetime] | None:
        """Return the sequence's own (start, end) unless it ended already."""
        zone = get_zone(sequence.tzid)
        start = to_instant(sequence.start, zone)
        end = to_instant(sequence.end, zone) if sequence.end is not None else start
        if self._not_before is not None and end <= self._not_before:
            return None
        return start, end

    @staticmethod
    def _duration(sequence: Sequence) -> timedelta:
        if sequence.end is None:
            return timedelta(0)
        zone = get_zone(sequence.tzid)
        return to_instant(sequence.end, zone) - to_instant(sequence.start, zone)


def iter_occurrences(
    sequences: Iterable[Sequence] | None,
    not_before: datetime | str | None = None,
) -> RecurrenceIterator:
    """Return the merged occurrence stream for ``sequences``."""
    return RecurrenceIterator(sequences, not_before)
