"""Conversions between authored wall-clock time and absolute instants.

Recurrence expansion runs on naive wall-clock datetimes (the "bubble" axis)
expressed in a rule's timezone. Everything that leaves this library is a
tz-aware UTC instant. All offset and daylight-saving arithmetic lives here.
"""

from __future__ import annotations

from datetime import datetime, timezone, tzinfo
from functools import lru_cache
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from dateutil import tz as dateutil_tz
from dateutil.parser import parse as dtparse

from .const import DEFAULT_TZID
from .exceptions import UnknownTimezoneError

UTC = timezone.utc


@lru_cache(maxsize=None)
def get_zone(tzid: str | None) -> tzinfo:
    """Resolve an IANA timezone name, falling back to UTC for empty values."""
    name = tzid or DEFAULT_TZID
    if name.upper() in ("UTC", "Z"):
        return UTC
    try:
        return ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError) as err:
        raise UnknownTimezoneError(name) from err


def parse_datetime(value: datetime | str) -> datetime:
    """Parse an ISO-8601 (or RFC 5545 basic) timestamp.

    ``datetime`` values are returned unchanged, so callers can hand over
    either persisted strings or already-parsed values.
    """
    if isinstance(value, datetime):
        return value
    if not isinstance(value, str) or not value.strip():
        raise ValueError(f"Expected a timestamp, got {value!r}")
    return dtparse(value)


def from_wall_clock(value: datetime, zone: tzinfo) -> datetime:
    """Convert a naive wall-clock time in ``zone`` to an absolute UTC instant.

    The offset used is the one in effect at ``value`` itself. Ambiguous
    times (fall-back) take the earlier instant. Times that fall into a
    spring-forward gap map to the instant the gap closes, so later wall
    times never convert to earlier instants.
    """
    local = value.replace(tzinfo=zone, fold=0)
    if dateutil_tz.datetime_exists(local):
        return local.astimezone(UTC)
    return _gap_end(local)


def _gap_end(local: datetime) -> datetime:
    """Return the transition instant closing the gap that holds ``local``."""
    # fold=1 reads the gap time with the offset after the transition,
    # landing before it; fold=0 uses the offset before, landing after it.
    zone = local.tzinfo
    lo = int(local.replace(fold=1).timestamp())
    hi = int(local.replace(fold=0).timestamp())
    before = datetime.fromtimestamp(lo, zone).utcoffset()
    while hi - lo > 1:
        mid = (lo + hi) // 2
        if datetime.fromtimestamp(mid, zone).utcoffset() == before:
            lo = mid
        else:
            hi = mid
    return datetime.fromtimestamp(hi, UTC)


def to_wall_clock(value: datetime, zone: tzinfo) -> datetime:
    """Return ``value`` as a naive wall-clock time in ``zone``.

    Naive input is already wall-clock and is returned unchanged.
    """
    if value.tzinfo is None:
        return value
    return value.astimezone(zone).replace(tzinfo=None)


def to_instant(value: datetime | str, zone: tzinfo) -> datetime:
    """Return ``value`` as a UTC instant, reading naive input in ``zone``."""
    dt = parse_datetime(value)
    if dt.tzinfo is None:
        return from_wall_clock(dt, zone)
    return dt.astimezone(UTC)


def to_utc(value: datetime | str) -> datetime:
    """Return ``value`` as a UTC instant, reading naive input as UTC."""
    return to_instant(value, UTC)
