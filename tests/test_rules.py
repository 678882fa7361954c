"""Tests for the recurrence rule adapter."""

from __future__ import annotations

from datetime import datetime, timezone
from zoneinfo import ZoneInfo

import pytest
from dateutil import rrule as du_rrule

from sequence_timeline.exceptions import MalformedRuleError
from sequence_timeline.models import Frequency, RecurrenceRule, Sequence, WeekDay
from sequence_timeline.rules import FREQUENCY_MAP, WEEKDAY_MAP, build_rrule, validate_rule

UTC = timezone.utc


def _make_sequence(rule: RecurrenceRule | None, **kwargs) -> Sequence:
    defaults = {
        "id": "seq",
        "start": datetime(2017, 1, 1, 8, 0),
        "end": datetime(2017, 1, 1, 9, 0),
        "updated_at": datetime(2016, 12, 1, tzinfo=UTC),
        "tzid": "UTC",
    }
    defaults.update(kwargs)
    return Sequence(recurrence_rule=rule, **defaults)


class TestVocabulary:
    """Every enumerated value maps onto dateutil."""

    def test_all_frequencies_mapped(self):
        assert set(FREQUENCY_MAP) == {f.value for f in Frequency}
        assert FREQUENCY_MAP["weekly"] == du_rrule.WEEKLY

    def test_all_weekdays_mapped(self):
        assert set(WEEKDAY_MAP) == {d.value for d in WeekDay}
        assert WEEKDAY_MAP["SU"] == du_rrule.SU


class TestValidateRule:
    """Schema validation of rule records."""

    def test_accepts_enums_and_strings(self):
        rule = RecurrenceRule(freq=Frequency.WEEKLY, byday=(WeekDay.MO, "TU"))
        fields = validate_rule(rule)
        assert fields["freq"] == "weekly"
        assert fields["byday"] == ["MO", "TU"]

    @pytest.mark.parametrize(
        "rule",
        [
            RecurrenceRule(freq="fortnightly"),
            RecurrenceRule(freq="weekly", interval=0),
            RecurrenceRule(freq="weekly", byday=("XX",)),
            RecurrenceRule(freq="daily", byhour=24),
            RecurrenceRule(freq="daily", byminute=60),
            RecurrenceRule(freq="monthly", bymonthday=(0,)),
            RecurrenceRule(freq="monthly", bymonthday=(32,)),
            RecurrenceRule(freq="daily", count=0),
        ],
    )
    def test_rejects_malformed(self, rule):
        with pytest.raises(MalformedRuleError) as excinfo:
            validate_rule(rule)
        assert excinfo.value.rule is rule


class TestBuildRrule:
    """Building the dateutil expansion for a sequence."""

    def test_dtstart_defaults_to_sequence_start(self):
        rule, zone = build_rrule(_make_sequence(RecurrenceRule(freq="daily")))
        assert zone == UTC
        assert rule[0] == datetime(2017, 1, 1, 8, 0)
        assert rule[1] == datetime(2017, 1, 2, 8, 0)

    def test_explicit_dtstart_wins(self):
        rule, _ = build_rrule(
            _make_sequence(RecurrenceRule(freq="daily", dtstart=datetime(2017, 2, 1, 10)))
        )
        assert rule[0] == datetime(2017, 2, 1, 10)

    def test_weekdays_translated(self):
        rule, _ = build_rrule(
            _make_sequence(RecurrenceRule(freq="weekly", byday=("SU", "TU")))
        )
        assert list(rule[:3]) == [
            datetime(2017, 1, 1, 8),
            datetime(2017, 1, 3, 8),
            datetime(2017, 1, 8, 8),
        ]

    def test_rule_runs_on_wall_clock_of_rule_zone(self):
        seq = _make_sequence(
            RecurrenceRule(freq="daily", tzid="Europe/Berlin"),
            start=datetime(2017, 1, 1, 8, 0, tzinfo=UTC),
        )
        rule, zone = build_rrule(seq)
        assert zone == ZoneInfo("Europe/Berlin")
        assert rule[0] == datetime(2017, 1, 1, 9, 0)
        assert rule[0].tzinfo is None

    def test_naive_start_read_in_sequence_zone(self):
        seq = _make_sequence(
            RecurrenceRule(freq="daily", tzid="UTC"),
            tzid="America/New_York",
        )
        rule, _ = build_rrule(seq)
        assert rule[0] == datetime(2017, 1, 1, 13, 0)

    def test_until_bounds_expansion(self):
        rule, _ = build_rrule(
            _make_sequence(RecurrenceRule(freq="daily", until=datetime(2017, 1, 3, 8)))
        )
        assert list(rule) == [
            datetime(2017, 1, 1, 8),
            datetime(2017, 1, 2, 8),
            datetime(2017, 1, 3, 8),
        ]

    def test_missing_rule_is_malformed(self):
        with pytest.raises(MalformedRuleError):
            build_rrule(_make_sequence(None))

    def test_unknown_timezone_is_malformed(self):
        with pytest.raises(MalformedRuleError):
            build_rrule(_make_sequence(RecurrenceRule(freq="daily", tzid="Nowhere/Land")))
