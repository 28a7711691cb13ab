from __future__ import annotations

from datetime import date, datetime, time

import pytest

from pos_backoffice.common.date_ranges import (
    DateRange,
    in_months,
    months_span,
    parse_months,
    resolve_preset,
    resolve_request_range,
)
from pos_backoffice.core.exceptions import ValidationError

TODAY = date(2025, 5, 15)


def _day_end(d: date) -> datetime:
    return datetime.combine(d, time.max)


def test_all_means_no_filter():
    assert resolve_preset("all", today=TODAY) is None
    assert resolve_preset(None, today=TODAY) is None


def test_today_and_yesterday_cover_whole_days():
    r = resolve_preset("today", today=TODAY)
    assert r.start == datetime(2025, 5, 15)
    assert r.end == _day_end(TODAY)

    y = resolve_preset("yesterday", today=TODAY)
    assert y.start == datetime(2025, 5, 14)


def test_last_month_wraps_year():
    r = resolve_preset("lastMonth", today=date(2025, 1, 10))
    assert r.start == datetime(2024, 12, 1)
    assert r.end == _day_end(date(2024, 12, 31))


def test_this_year_ends_today():
    r = resolve_preset("thisYear", today=TODAY)
    assert r.start == datetime(2025, 1, 1)
    assert r.end == _day_end(TODAY)


def test_quarters_are_calendar_quarters():
    assert resolve_preset("thisQuarter", today=TODAY).start == datetime(2025, 4, 1)
    assert resolve_preset("thisQuarter", today=TODAY).end == _day_end(date(2025, 6, 30))

    last = resolve_preset("lastQuarter", today=date(2025, 2, 1))
    assert last.start == datetime(2024, 10, 1)
    assert last.end == _day_end(date(2024, 12, 31))

    q3 = resolve_preset("q3", today=TODAY)
    assert q3.start == datetime(2025, 7, 1)
    assert q3.end == _day_end(date(2025, 9, 30))


def test_month_name_preset_uses_current_year():
    r = resolve_preset("february", today=TODAY)
    assert r.start == datetime(2025, 2, 1)
    assert r.end == _day_end(date(2025, 2, 28))


def test_custom_needs_a_date():
    assert resolve_preset("custom", today=TODAY) is None
    r = resolve_preset("custom", today=TODAY, custom_date=date(2025, 3, 3))
    assert r.start == datetime(2025, 3, 3)


def test_unknown_preset_rejected():
    with pytest.raises(ValidationError):
        resolve_preset("fortnight", today=TODAY)


def test_parse_months_sorts_and_drops_invalid():
    assert parse_months("2025-03,2025-01,bad,2025-13,2025-01") == [(2025, 1), (2025, 3)]
    assert parse_months(["2024-12"]) == [(2024, 12)]
    assert parse_months("") == []


def test_months_span_and_membership():
    span = months_span([(2025, 3), (2025, 1)])
    assert span.start == datetime(2025, 1, 1)
    assert span.end == _day_end(date(2025, 3, 31))

    assert in_months(date(2025, 3, 9), [(2025, 3)])
    assert not in_months(date(2025, 2, 9), [(2025, 1), (2025, 3)])
    assert in_months(date(2025, 2, 9), [])


def test_request_range_explicit_dates_win():
    r = resolve_request_range(
        today=TODAY,
        preset="thisMonth",
        date_from="2025-01-05",
        date_to="2025-01-10",
        months="2025-04",
    )
    assert r.start == datetime(2025, 1, 5)
    assert r.end == _day_end(date(2025, 1, 10))


def test_request_range_keeps_exact_end_time():
    r = resolve_request_range(today=TODAY, date_to="2025-01-10T12:30:00")
    assert r.start is None
    assert r.end == datetime(2025, 1, 10, 12, 30)


def test_request_range_months_before_preset():
    r = resolve_request_range(today=TODAY, preset="today", months="2025-02")
    assert r.start == datetime(2025, 2, 1)


def test_request_range_preset_fallback():
    assert resolve_request_range(today=TODAY) is None
    assert resolve_request_range(today=TODAY, preset="today").start == datetime(2025, 5, 15)


def test_range_contains_dates_and_datetimes():
    r = DateRange(start=datetime(2025, 1, 1), end=_day_end(date(2025, 1, 31)))
    assert r.contains(date(2025, 1, 31))
    assert r.contains(datetime(2025, 1, 31, 23, 59))
    assert not r.contains(date(2025, 2, 1))
    assert not r.contains(None)
    assert DateRange(start=None, end=None).contains(date(1999, 1, 1))
