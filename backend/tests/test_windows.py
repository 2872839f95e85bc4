from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from fleet_kpi.windows import bucket_start, build_reporting_windows


def _utc(*parts: int) -> datetime:
    return datetime(*parts, tzinfo=timezone.utc)


def test_windows_use_local_midnight_boundaries():
    windows = build_reporting_windows(_utc(2026, 10, 17, 10, 0), "Asia/Kolkata")

    assert windows.anchor.isoformat() == "2026-10-17"
    assert windows.today.start == _utc(2026, 10, 16, 18, 30)
    assert windows.today.end == _utc(2026, 10, 17, 18, 30)
    assert windows.yesterday.end == windows.today.start
    assert windows.month_to_date.start == _utc(2026, 9, 30, 18, 30)
    assert windows.month_to_date.label == "Day 1-17"


def test_local_date_can_differ_from_utc_date():
    windows = build_reporting_windows(_utc(2026, 10, 31, 20, 0), "Asia/Kolkata")

    assert windows.anchor.isoformat() == "2026-11-01"
    assert windows.month_to_date.label == "Day 1-1"


def test_week_windows_follow_iso_weeks():
    windows = build_reporting_windows(_utc(2026, 10, 17, 10, 0), "UTC")

    assert windows.week_to_date.start == _utc(2026, 10, 12)
    assert windows.week_to_date.end == _utc(2026, 10, 18)
    assert windows.previous_week.start == _utc(2026, 10, 5)
    assert windows.previous_week.end == _utc(2026, 10, 12)


def test_previous_month_to_date_is_clamped():
    windows = build_reporting_windows(_utc(2026, 3, 31, 12, 0), "UTC")

    assert windows.previous_month_to_date.start == _utc(2026, 2, 1)
    assert windows.previous_month_to_date.end == _utc(2026, 3, 1)

    mid_month = build_reporting_windows(_utc(2026, 3, 10, 12, 0), "UTC")
    assert mid_month.previous_month_to_date.end == _utc(2026, 2, 11)


def test_first_days_windows_span_ten_days():
    windows = build_reporting_windows(_utc(2026, 1, 20, 12, 0), "UTC")

    assert windows.first_days.start == _utc(2026, 1, 1)
    assert windows.first_days.end - windows.first_days.start == timedelta(days=10)
    assert windows.previous_first_days.start == _utc(2025, 12, 1)


def test_windows_are_half_open():
    window = build_reporting_windows(_utc(2026, 10, 17, 10, 0), "UTC").today

    assert window.contains(_utc(2026, 10, 17))
    assert window.contains(datetime(2026, 10, 17, 23, 59))
    assert not window.contains(_utc(2026, 10, 18))


def test_bucket_start_floors_to_bucket():
    moment = _utc(2026, 10, 17, 10, 37, 12)

    assert bucket_start(moment, 60) == _utc(2026, 10, 17, 10, 0)
    assert bucket_start(moment, 15) == _utc(2026, 10, 17, 10, 30)
    assert bucket_start(_utc(2026, 10, 17, 10, 59), 60) == bucket_start(_utc(2026, 10, 17, 10, 0), 60)
    with pytest.raises(ValueError):
        bucket_start(moment, 0)


def test_bucket_start_is_counted_from_local_midnight():
    before_midnight = _utc(2026, 10, 17, 18, 25)  # 23:55 in Kolkata
    after_midnight = _utc(2026, 10, 17, 18, 35)  # 00:05 the next local day

    assert bucket_start(before_midnight, 60, "Asia/Kolkata") == _utc(2026, 10, 17, 17, 30)
    assert bucket_start(after_midnight, 60, "Asia/Kolkata") == _utc(2026, 10, 17, 18, 30)
    assert bucket_start(_utc(2026, 10, 17, 20, 10), 60, "Asia/Kolkata") == _utc(2026, 10, 17, 19, 30)
    # A width that does not divide the day restarts at the next local midnight.
    assert bucket_start(_utc(2026, 10, 17, 23, 59), 7 * 60, "UTC") == _utc(2026, 10, 17, 21, 0)
    assert bucket_start(_utc(2026, 10, 18, 0, 1), 7 * 60, "UTC") == _utc(2026, 10, 18, 0, 0)
