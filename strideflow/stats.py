"""Weekly statistics and badge counters derived from walking records.

Everything here is pure: callers resolve "today" once and pass it in, so a
snapshot never straddles midnight.
"""

from __future__ import annotations

from collections import Counter
from dataclasses import asdict, dataclass
from datetime import date, timedelta
from typing import Any, Iterable

# A day counts towards badges at 30+ minutes.
DAILY_THRESHOLD = 30
# Weekly badge: 5+ qualifying days in one Sunday-Saturday week.
WEEKLY_BADGE_MIN_DAYS = 5
# Monthly badge: 20+ qualifying days in one calendar month.
MONTHLY_BADGE_MIN_DAYS = 20

WINDOW_DAYS = 7


@dataclass(frozen=True)
class ActivityRecord:
    user_id: str
    date: date
    minutes: int
    created_at: str | None = None
    updated_at: str | None = None


@dataclass(frozen=True)
class WeeklyStatsSnapshot:
    daily_series: list[int]
    weekly_average: int
    daily_badge_count: int
    weekly_badge_count: int
    monthly_badge_count: int

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


def window_dates(today: date) -> list[date]:
    """The 7 dates ``[today-6 .. today]`` in ascending order."""
    return [today - timedelta(days=i) for i in range(WINDOW_DAYS - 1, -1, -1)]


def week_start(d: date) -> date:
    # date.weekday(): Monday=0 .. Sunday=6, so Sunday maps to 0 days back.
    return d - timedelta(days=(d.weekday() + 1) % 7)


def _qualifying(records: Iterable[ActivityRecord]) -> list[ActivityRecord]:
    return [r for r in records if r.minutes >= DAILY_THRESHOLD]


def compute_daily_series(records: Iterable[ActivityRecord], today: date) -> list[int]:
    minutes_by_date = {r.date: r.minutes for r in records}
    return [minutes_by_date.get(d, 0) for d in window_dates(today)]


def compute_weekly_average(daily_series: list[int]) -> int:
    # Round half up; minutes are non-negative so integer arithmetic is exact.
    total = sum(daily_series)
    return (2 * total + WINDOW_DAYS) // (2 * WINDOW_DAYS)


def compute_daily_badge_count(records: Iterable[ActivityRecord]) -> int:
    return len(_qualifying(records))


def compute_weekly_badge_count(records: Iterable[ActivityRecord]) -> int:
    weeks = Counter(week_start(r.date) for r in _qualifying(records))
    return sum(1 for n in weeks.values() if n >= WEEKLY_BADGE_MIN_DAYS)


def compute_monthly_badge_count(records: Iterable[ActivityRecord]) -> int:
    months = Counter((r.date.year, r.date.month) for r in _qualifying(records))
    return sum(1 for n in months.values() if n >= MONTHLY_BADGE_MIN_DAYS)


def compute_snapshot(records: Iterable[ActivityRecord], today: date) -> WeeklyStatsSnapshot:
    records = list(records)
    daily_series = compute_daily_series(records, today)
    return WeeklyStatsSnapshot(
        daily_series=daily_series,
        weekly_average=compute_weekly_average(daily_series),
        daily_badge_count=compute_daily_badge_count(records),
        weekly_badge_count=compute_weekly_badge_count(records),
        monthly_badge_count=compute_monthly_badge_count(records),
    )
