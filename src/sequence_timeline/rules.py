"""Adapter between persisted recurrence rules and ``dateutil.rrule``."""

from __future__ import annotations

import enum
import logging
from datetime import datetime, tzinfo
from typing import Any

import voluptuous as vol
from dateutil import rrule as du_rrule

from ._tz import get_zone, to_instant, to_wall_clock
from .exceptions import MalformedRuleError, UnknownTimezoneError
from .models import Frequency, RecurrenceRule, Sequence, WeekDay

_LOGGER = logging.getLogger(__name__)

FREQUENCY_MAP: dict[str, int] = {
    Frequency.YEARLY.value: du_rrule.YEARLY,
    Frequency.MONTHLY.value: du_rrule.MONTHLY,
    Frequency.WEEKLY.value: du_rrule.WEEKLY,
    Frequency.DAILY.value: du_rrule.DAILY,
    Frequency.HOURLY.value: du_rrule.HOURLY,
    Frequency.MINUTELY.value: du_rrule.MINUTELY,
    Frequency.SECONDLY.value: du_rrule.SECONDLY,
}

WEEKDAY_MAP: dict[str, du_rrule.weekday] = {
    WeekDay.MO.value: du_rrule.MO,
    WeekDay.TU.value: du_rrule.TU,
    WeekDay.WE.value: du_rrule.WE,
    WeekDay.TH.value: du_rrule.TH,
    WeekDay.FR.value: du_rrule.FR,
    WeekDay.SA.value: du_rrule.SA,
    WeekDay.SU.value: du_rrule.SU,
}


def _month_day(value: Any) -> int:
    day = int(value)
    if day == 0 or not -31 <= day <= 31:
        raise vol.Invalid(f"month day out of range: {value!r}")
    return day


RULE_SCHEMA = vol.Schema(
    {
        vol.Required("freq"): vol.All(vol.Coerce(str), vol.In(list(FREQUENCY_MAP))),
        vol.Required("interval"): vol.All(int, vol.Range(min=1)),
        vol.Optional("byday"): vol.Any(
            None, [vol.All(vol.Coerce(str), vol.In(list(WEEKDAY_MAP)))]
        ),
        vol.Optional("byhour"): vol.Any(None, vol.All(int, vol.Range(min=0, max=23))),
        vol.Optional("byminute"): vol.Any(None, vol.All(int, vol.Range(min=0, max=59))),
        vol.Optional("bymonthday"): vol.Any(None, [_month_day]),
        vol.Optional("count"): vol.Any(None, vol.All(int, vol.Range(min=1))),
        vol.Optional("dtstart"): vol.Any(None, datetime),
        vol.Optional("until"): vol.Any(None, datetime),
        vol.Optional("tzid"): vol.Any(None, str),
    }
)


def rule_zone(rule: RecurrenceRule, sequence: Sequence) -> tzinfo:
    """Return the timezone the rule's wall-clock fields are expressed in."""
    return get_zone(rule.tzid or sequence.tzid)


def validate_rule(rule: RecurrenceRule) -> dict[str, Any]:
    """Validate a rule record, returning its normalized fields.

    Raises:
        MalformedRuleError: If any field is outside the supported vocabulary.
    """
    data = {
        "freq": _enum_value(rule.freq),
        "interval": rule.interval,
        "byday": [_enum_value(d) for d in rule.byday] if rule.byday else None,
        "byhour": rule.byhour,
        "byminute": rule.byminute,
        "bymonthday": list(rule.bymonthday) if rule.bymonthday else None,
        "count": rule.count,
        "dtstart": rule.dtstart,
        "until": rule.until,
        "tzid": rule.tzid,
    }
    try:
        return RULE_SCHEMA(data)
    except vol.Invalid as err:
        raise MalformedRuleError(f"Invalid recurrence rule: {err}", rule=rule) from err


def build_rrule(sequence: Sequence) -> tuple[du_rrule.rrule, tzinfo]:
    """Build the expansion for a sequence's recurrence rule.

    The returned rrule is naive: it runs on wall-clock time in the returned
    zone. ``dtstart`` defaults to the sequence start.

    Raises:
        MalformedRuleError: If the rule is invalid or dateutil rejects it.
    """
    rule = sequence.recurrence_rule
    if rule is None:
        raise MalformedRuleError(f"Sequence {sequence.id} has no recurrence rule")

    fields = validate_rule(rule)
    try:
        zone = rule_zone(rule, sequence)
        # The sequence start is wall-clock in the sequence's own zone.
        dtstart = fields["dtstart"] or to_instant(
            sequence.start, get_zone(sequence.tzid)
        )
    except UnknownTimezoneError as err:
        raise MalformedRuleError(str(err), rule=rule) from err

    dtstart = to_wall_clock(dtstart, zone)
    until = to_wall_clock(fields["until"], zone) if fields["until"] else None
    byweekday = (
        [WEEKDAY_MAP[d] for d in fields["byday"]] if fields["byday"] else None
    )

    try:
        expansion = du_rrule.rrule(
            FREQUENCY_MAP[fields["freq"]],
            dtstart=dtstart,
            interval=fields["interval"],
            byweekday=byweekday,
            byhour=fields["byhour"],
            byminute=fields["byminute"],
            bymonthday=fields["bymonthday"],
            count=fields["count"],
            until=until,
            cache=True,
        )
    except (ValueError, TypeError) as err:
        raise MalformedRuleError(
            f"Could not build recurrence rule: {err}", rule=rule
        ) from err

    _LOGGER.debug(
        "Built %s rule for sequence %s (dtstart=%s, tz=%s)",
        fields["freq"], sequence.id, dtstart, zone,
    )
    return expansion, zone


def _enum_value(value: Any) -> Any:
    return value.value if isinstance(value, enum.Enum) else value
