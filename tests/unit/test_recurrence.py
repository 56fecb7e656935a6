from datetime import date, datetime, timezone

import pytest
from pydantic import ValidationError

from app.schemas.schedule import RecurringRule
from app.services.class_instance import MAX_OCCURRENCES, expand_recurrence

START = datetime(2025, 1, 6, 16, 0, tzinfo=timezone.utc)


def test_no_rule_gives_single_start():
    assert expand_recurrence(START, None) == [START]


def test_weekly_count():
    starts = expand_recurrence(START, RecurringRule(frequency="weekly", count=4))
    assert len(starts) == 4
    assert starts[-1] == datetime(2025, 1, 27, 16, 0, tzinfo=timezone.utc)


def test_biweekly_and_daily_steps():
    biweekly = expand_recurrence(START, RecurringRule(frequency="biweekly", count=2))
    assert (biweekly[1] - biweekly[0]).days == 14
    daily = expand_recurrence(START, RecurringRule(frequency="daily", count=3))
    assert [d.day for d in daily] == [6, 7, 8]


def test_monthly_uses_calendar_months():
    starts = expand_recurrence(
        datetime(2025, 1, 31, 16, 0, tzinfo=timezone.utc), RecurringRule(frequency="monthly", count=3)
    )
    assert [s.date() for s in starts] == [date(2025, 1, 31), date(2025, 2, 28), date(2025, 3, 28)]


def test_end_date_stops_series():
    starts = expand_recurrence(START, RecurringRule(frequency="weekly", end_date=date(2025, 1, 20)))
    assert [s.day for s in starts] == [6, 13, 20]


def test_end_date_only_is_capped():
    starts = expand_recurrence(START, RecurringRule(frequency="daily", end_date=date(2026, 12, 31)))
    assert len(starts) == MAX_OCCURRENCES


def test_rule_requires_count_or_end_date():
    with pytest.raises(ValidationError):
        RecurringRule(frequency="weekly")
    with pytest.raises(ValidationError):
        RecurringRule(frequency="weekly", count=53)
