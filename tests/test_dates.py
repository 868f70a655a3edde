import time
from datetime import date, datetime, timedelta, timezone
from zoneinfo import ZoneInfo

import pytest

from app.util import dates
from app.util.dates import (
    add_months,
    coerce_instant,
    days_until,
    format_date_input,
    format_display_date,
    local_timezone,
    minimum_allowed_date,
    parse_date_input,
)
from conftest import NOW, midnight_in


def test_minimum_allowed_date_is_tomorrow():
    """The first selectable day is the one after today"""
    assert minimum_allowed_date(NOW) == date(2026, 10, 20)


def test_minimum_allowed_date_rolls_over_year():
    late = datetime(2026, 12, 31, 23, 59, tzinfo=timezone.utc)
    assert minimum_allowed_date(late) == date(2027, 1, 1)


def test_minimum_allowed_date_uses_zone_of_now():
    """Same instant, different local day"""
    lisbon_evening = datetime(2026, 10, 19, 23, 30, tzinfo=timezone.utc)
    tokyo = lisbon_evening.astimezone(timezone(timedelta(hours=9)))
    assert minimum_allowed_date(lisbon_evening) == date(2026, 10, 20)
    assert minimum_allowed_date(tokyo) == date(2026, 10, 21)


@pytest.mark.parametrize("days", [-30, -1, 0, 1, 2, 3, 5, 6, 180])
def test_days_until_counts_calendar_days_from_midday(days):
    assert days_until(midnight_in(days), NOW) == days


def test_days_until_rounds_up():
    assert days_until(NOW + timedelta(seconds=1), NOW) == 1
    assert days_until(NOW, NOW) == 0
    assert days_until(NOW - timedelta(hours=23), NOW) == 0
    assert days_until(NOW - timedelta(hours=25), NOW) == -1


def test_days_until_missing_target():
    assert days_until(None, NOW) is None


def test_days_until_accepts_naive_and_epoch_targets():
    naive = datetime(2026, 10, 22, 12, 0)
    assert days_until(naive, NOW) == 3
    assert days_until(int(naive.replace(tzinfo=timezone.utc).timestamp()), NOW) == 3


def test_add_months_clamps_month_end():
    assert add_months(datetime(2027, 1, 31, tzinfo=timezone.utc), 1) == datetime(2027, 2, 28, tzinfo=timezone.utc)
    assert add_months(datetime(2027, 8, 31, tzinfo=timezone.utc), 6) == datetime(2028, 2, 29, tzinfo=timezone.utc)


def test_add_months_does_not_mutate_base():
    base = NOW
    six = add_months(base, 6)
    year = add_months(base, 12)
    assert base == NOW
    assert six == datetime(2027, 4, 19, 12, 0, tzinfo=timezone.utc)
    assert year == datetime(2027, 10, 19, 12, 0, tzinfo=timezone.utc)


def test_quick_renewals_always_lie_in_the_future():
    assert days_until(add_months(NOW, 6), NOW) > days_until(add_months(NOW, 0), NOW)
    assert add_months(NOW, 12) > add_months(NOW, 6) > NOW


def test_parse_date_input_gives_local_midnight():
    assert parse_date_input("2026-10-20", timezone.utc) == datetime(2026, 10, 20, tzinfo=timezone.utc)
    assert parse_date_input(" 2026-10-20 ", timezone.utc).day == 20


@pytest.mark.parametrize("raw", ["2026-02-30", "20/10/2026", "amanhã", ""])
def test_parse_date_input_rejects_malformed(raw):
    with pytest.raises(ValueError):
        parse_date_input(raw, timezone.utc)


def test_format_helpers():
    value = datetime(2026, 11, 1, tzinfo=timezone.utc)
    assert format_date_input(value, timezone.utc) == "2026-11-01"
    assert format_display_date(value, timezone.utc) == "01/11/2026"
    assert format_date_input(None) is None
    assert format_display_date(None) == "Data inválida"


def test_coerce_instant_shapes():
    expected = datetime(2026, 10, 20, tzinfo=timezone.utc)
    assert coerce_instant(expected) == expected
    assert coerce_instant(datetime(2026, 10, 20)) == expected
    assert coerce_instant(expected.timestamp()) == expected
    assert coerce_instant({"seconds": int(expected.timestamp()), "nanoseconds": 0}) == expected
    assert coerce_instant("2026-10-20T00:00:00+00:00") == expected


@pytest.mark.parametrize("value", [None, True, "not a date", {"nanoseconds": 1}, [2026, 10, 20]])
def test_coerce_instant_malformed(value):
    assert coerce_instant(value) is None


@pytest.fixture
def lisbon_host(monkeypatch):
    """Host clock set to Europe/Lisbon, with no APP_TIMEZONE override"""
    if not hasattr(time, "tzset"):
        pytest.skip("time.tzset is not available on this platform")
    monkeypatch.setattr(dates, "APP_TIMEZONE", "")
    monkeypatch.setenv("TZ", "Europe/Lisbon")
    time.tzset()
    yield ZoneInfo("Europe/Lisbon")
    monkeypatch.undo()
    time.tzset()


def test_host_zone_follows_daylight_saving(lisbon_host):
    """A winter date picked during summer time keeps its local midnight"""
    zone = local_timezone()
    assert datetime(2026, 7, 1, 12, tzinfo=zone).utcoffset() == timedelta(hours=1)
    assert datetime(2026, 12, 10, tzinfo=zone).utcoffset() == timedelta(0)

    stored = parse_date_input("2026-12-10")

    assert coerce_instant(stored) == datetime(2026, 12, 10, tzinfo=timezone.utc)
    assert format_display_date(stored, lisbon_host) == "10/12/2026"
    assert format_date_input(stored) == "2026-12-10"


def test_days_until_across_daylight_saving_change(lisbon_host):
    october_midday = datetime(2026, 10, 19, 12, 0, tzinfo=lisbon_host)
    stored = parse_date_input("2026-12-10")

    assert days_until(stored, october_midday) == 52
    assert minimum_allowed_date(october_midday) == date(2026, 10, 20)
