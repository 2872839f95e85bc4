"""Reporting windows anchored to the run's execution date.

All windows are half-open ``[start, end)`` intervals. Boundaries are local
midnights in the fleet's timezone, converted to UTC so they can be bound
directly into SQL filters.
"""
from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, time, timedelta, timezone
from zoneinfo import ZoneInfo

FIRST_DAYS_SPAN = 10


@dataclass(frozen=True)
class TimeWindow:
    name: str
    start: datetime
    end: datetime
    label: str

    def contains(self, moment: datetime) -> bool:
        """Return True when ``moment`` falls inside the window.

        Naive datetimes are interpreted as UTC, matching how timestamps are
        stored by the source tables.
        """

        if moment.tzinfo is None:
            moment = moment.replace(tzinfo=timezone.utc)
        return self.start <= moment < self.end


@dataclass(frozen=True)
class ReportingWindows:
    anchor: date
    today: TimeWindow
    yesterday: TimeWindow
    week_to_date: TimeWindow
    previous_week: TimeWindow
    month_to_date: TimeWindow
    previous_month_to_date: TimeWindow
    first_days: TimeWindow
    previous_first_days: TimeWindow


def _as_zone(tz: str | ZoneInfo) -> ZoneInfo:
    return tz if isinstance(tz, ZoneInfo) else ZoneInfo(tz)


def _boundary(day: date, tz: ZoneInfo) -> datetime:
    return datetime.combine(day, time.min, tzinfo=tz).astimezone(timezone.utc)


def _window(name: str, first: date, stop: date, tz: ZoneInfo, label: str) -> TimeWindow:
    return TimeWindow(name=name, start=_boundary(first, tz), end=_boundary(stop, tz), label=label)


def previous_month_start(month_start: date) -> date:
    return (month_start - timedelta(days=1)).replace(day=1)


def build_reporting_windows(run_at: datetime, tz: str | ZoneInfo) -> ReportingWindows:
    """Build every window used by the generators for a run at ``run_at``."""

    zone = _as_zone(tz)
    if run_at.tzinfo is None:
        run_at = run_at.replace(tzinfo=timezone.utc)
    anchor = run_at.astimezone(zone).date()
    tomorrow = anchor + timedelta(days=1)

    week_start = anchor - timedelta(days=anchor.weekday())
    month_start = anchor.replace(day=1)
    prev_month_start = previous_month_start(month_start)
    # Same day count as the current month so far, clamped to the prior month's length.
    prev_mtd_stop = min(prev_month_start + timedelta(days=anchor.day), month_start)

    return ReportingWindows(
        anchor=anchor,
        today=_window("today", anchor, tomorrow, zone, "Today"),
        yesterday=_window("yesterday", anchor - timedelta(days=1), anchor, zone, "Yesterday"),
        week_to_date=_window("week_to_date", week_start, tomorrow, zone, "This Week"),
        previous_week=_window(
            "previous_week", week_start - timedelta(days=7), week_start, zone, "Last Week"
        ),
        month_to_date=_window(
            "month_to_date", month_start, tomorrow, zone, f"Day 1-{anchor.day}"
        ),
        previous_month_to_date=_window(
            "previous_month_to_date",
            prev_month_start,
            prev_mtd_stop,
            zone,
            f"Day 1-{(prev_mtd_stop - prev_month_start).days} last month",
        ),
        first_days=_window(
            "first_days",
            month_start,
            month_start + timedelta(days=FIRST_DAYS_SPAN),
            zone,
            f"First {FIRST_DAYS_SPAN} Days",
        ),
        previous_first_days=_window(
            "previous_first_days",
            prev_month_start,
            prev_month_start + timedelta(days=FIRST_DAYS_SPAN),
            zone,
            f"First {FIRST_DAYS_SPAN} Days last month",
        ),
    )


def bucket_start(moment: datetime, minutes: int, tz: str | ZoneInfo = "UTC") -> datetime:
    """Floor ``moment`` to the start of its ``minutes``-wide bucket, in UTC.

    Buckets are counted from local midnight in ``tz``, so a bucket never spans
    two reporting days: a run just after local midnight never shares a
    ``computed_at`` with the previous day's last run.
    """

    if minutes <= 0:
        raise ValueError("bucket width must be positive")
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    zone = _as_zone(tz)
    midnight = _boundary(moment.astimezone(zone).date(), zone)
    width = timedelta(minutes=minutes)
    return midnight + ((moment.astimezone(timezone.utc) - midnight) // width) * width


__all__ = [
    "FIRST_DAYS_SPAN",
    "TimeWindow",
    "ReportingWindows",
    "build_reporting_windows",
    "bucket_start",
    "previous_month_start",
]
