from __future__ import annotations

from dataclasses import dataclass
from datetime import date

from .stats import window_dates

# Indexed by date.weekday() (Monday=0), so a label always matches its own date.
DAY_LABELS = ("M", "T", "W", "Th", "F", "Sa", "Su")


@dataclass(frozen=True)
class ChartDay:
    day: str
    date: str
    fullDate: str


def chart_days(today: date) -> list[ChartDay]:
    """Labels for the 7-day chart, aligned slot-for-slot with the daily series."""
    return [
        ChartDay(
            day=DAY_LABELS[d.weekday()],
            date=f"{d.day:02d}/{d.month:02d}",
            fullDate=d.isoformat(),
        )
        for d in window_dates(today)
    ]
