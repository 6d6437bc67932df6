"""Tests for date helpers."""

from datetime import date, datetime, timedelta, timezone

from letter_to_you.utils.dates import add_months, as_utc, iso_week


def test_add_months_clamps_day():
    assert add_months(datetime(2025, 1, 31), 1) == datetime(2025, 2, 28)
    assert add_months(datetime(2024, 1, 31), 1) == datetime(2024, 2, 29)
    assert add_months(datetime(2025, 11, 15), 3) == datetime(2026, 2, 15)
    assert add_months(datetime(2025, 3, 31), -1) == datetime(2025, 2, 28)


def test_as_utc():
    naive = datetime(2025, 5, 1, 12, 0)
    assert as_utc(naive) == datetime(2025, 5, 1, 12, 0, tzinfo=timezone.utc)

    auckland = datetime(2025, 5, 1, 12, 0, tzinfo=timezone(timedelta(hours=12)))
    assert as_utc(auckland) == datetime(2025, 5, 1, 0, 0, tzinfo=timezone.utc)


def test_iso_week_year_boundary():
    assert iso_week(date(2024, 12, 30)) == (2025, 1)
    assert iso_week(datetime(2021, 1, 3)) == (2020, 53)
