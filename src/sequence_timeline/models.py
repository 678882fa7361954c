"""Data models for sequences, recurrence rules and occurrences."""

from __future__ import annotations

import enum
from dataclasses import dataclass, field, replace
from datetime import datetime
from typing import Any

from ._tz import parse_datetime, to_utc
from .const import DEFAULT_TZID


class Frequency(str, enum.Enum):
    """Recurrence frequencies understood by the rule adapter."""

    YEARLY = "yearly"
    MONTHLY = "monthly"
    WEEKLY = "weekly"
    DAILY = "daily"
    HOURLY = "hourly"
    MINUTELY = "minutely"
    SECONDLY = "secondly"


class WeekDay(str, enum.Enum):
    """Two-letter weekday codes, as used by RFC 5545 ``BYDAY``."""

    MO = "MO"
    TU = "TU"
    WE = "WE"
    TH = "TH"
    FR = "FR"
    SA = "SA"
    SU = "SU"


@dataclass(frozen=True)
class RecurrenceRule:
    """How a sequence repeats.

    Wall-clock fields (``dtstart``, ``until``, ``byhour``...) are expressed
    in ``tzid``. Values are kept as persisted; the rule adapter validates
    them when the rule is expanded.
    """

    freq: Frequency | str
    interval: int = 1
    byday: tuple[WeekDay | str, ...] | None = None
    byhour: int | None = None
    byminute: int | None = None
    bymonthday: tuple[int, ...] | None = None
    dtstart: datetime | None = None
    tzid: str | None = None
    count: int | None = None
    until: datetime | None = None

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> RecurrenceRule | None:
        """Construct from a persisted rule record.

        Returns None for a missing or empty record.
        """
        if not data:
            return None
        byday = data.get("byday")
        interval = data.get("interval")
        bymonthday = data.get("bymonthday")
        if isinstance(bymonthday, int):
            bymonthday = (bymonthday,)
        return cls(
            freq=data.get("freq", ""),
            interval=1 if interval is None else interval,
            byday=tuple(byday) if byday else None,
            byhour=data.get("byhour"),
            byminute=data.get("byminute"),
            bymonthday=tuple(bymonthday) if bymonthday else None,
            dtstart=_optional_datetime(data.get("dtstart")),
            tzid=data.get("tzid"),
            count=data.get("count"),
            until=_optional_datetime(data.get("until")),
        )


@dataclass(frozen=True)
class Sequence:
    """An authored, schedulable unit (one-shot or recurring).

    ``start`` and ``end`` are wall-clock times in ``tzid`` when naive, or
    absolute instants when tz-aware.
    """

    id: str
    start: datetime
    updated_at: datetime
    end: datetime | None = None
    tzid: str = DEFAULT_TZID
    recurrence_rule: RecurrenceRule | None = None
    name: str = ""
    description: str = ""
    created_at: datetime | None = None
    user_id: str | None = None
    device_id: str | None = None
    device_group_id: str | None = None
    presentations: tuple[str, ...] = ()

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Sequence:
        """Construct from a persisted sequence record."""
        return cls(
            id=str(data["id"]),
            start=parse_datetime(data["start_datetime"]),
            end=_optional_datetime(data.get("end_datetime")),
            updated_at=to_utc(data["updated_at"]),
            tzid=data.get("tzid") or DEFAULT_TZID,
            recurrence_rule=RecurrenceRule.from_dict(data.get("recurrence_rule")),
            name=data.get("name") or "",
            description=data.get("description") or "",
            created_at=_optional_datetime(data.get("created_at")),
            user_id=data.get("user_id"),
            device_id=data.get("device_id"),
            device_group_id=data.get("device_group_id"),
            presentations=tuple(data.get("presentations") or ()),
        )

    @property
    def is_recurring(self) -> bool:
        """Whether this sequence has a recurrence rule."""
        return self.recurrence_rule is not None


@dataclass
class Occurrence:
    """A concrete, dated instance of a sequence.

    ``sequence`` is a borrowed reference to the frozen sequence the
    occurrence was materialized from. Split fragments share it.
    ``overrides`` lists the occurrences (or fragments) this one preempted,
    each spanning exactly the time it was shadowed.
    """

    id: str
    start: datetime
    end: datetime
    updated_at: datetime
    sequence: Sequence | None = field(default=None, repr=False)
    overridden: bool = False
    overrides: list[Occurrence] = field(default_factory=list)

    def clone(self) -> Occurrence:
        """Copy this occurrence, recursively cloning its overrides."""
        return replace(self, overrides=[o.clone() for o in self.overrides])

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Occurrence:
        """Construct from a plain record, including nested overrides."""
        return cls(
            id=str(data["id"]),
            start=to_utc(data["start"]),
            end=to_utc(data["end"]),
            updated_at=to_utc(data["updated_at"]),
            overridden=bool(data.get("overridden", False)),
            overrides=[cls.from_dict(o) for o in data.get("overrides") or ()],
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert to a plain record with ISO-8601 timestamps."""
        return {
            "id": self.id,
            "sequence_id": self.sequence.id if self.sequence else None,
            "start": self.start.isoformat(),
            "end": self.end.isoformat(),
            "updated_at": self.updated_at.isoformat(),
            "overridden": self.overridden,
            "overrides": [o.to_dict() for o in self.overrides],
        }


def _optional_datetime(value: Any) -> datetime | None:
    if value is None or value == "":
        return None
    return parse_datetime(value)
