from __future__ import annotations

import datetime
from typing import Optional

from pydantic import BaseModel, Field

from .chart import ChartDay
from .stats import ActivityRecord, WeeklyStatsSnapshot


class CredentialsRequest(BaseModel):
    email: str = Field(min_length=3, max_length=254)
    password: str = Field(min_length=1, max_length=128)


class SessionResponse(BaseModel):
    userId: str
    token: str


class OkResponse(BaseModel):
    ok: bool


class WalkingUpsertRequest(BaseModel):
    # Validated by strideflow.walking so the client gets the same messages everywhere.
    date: str
    minutes: int | str


class WalkingRecord(BaseModel):
    date: datetime.date
    minutes: int
    createdAt: Optional[str] = None
    updatedAt: Optional[str] = None

    @classmethod
    def from_record(cls, r: ActivityRecord) -> "WalkingRecord":
        return cls(date=r.date, minutes=r.minutes, createdAt=r.created_at, updatedAt=r.updated_at)


class WalkingStats(BaseModel):
    weeklyData: list[int] = Field(min_length=7, max_length=7)
    averageThisWeek: int
    dailyBadges: int
    weeklyBadges: int
    monthlyBadges: int

    @classmethod
    def from_snapshot(cls, s: WeeklyStatsSnapshot) -> "WalkingStats":
        return cls(
            weeklyData=s.daily_series,
            averageThisWeek=s.weekly_average,
            dailyBadges=s.daily_badge_count,
            weeklyBadges=s.weekly_badge_count,
            monthlyBadges=s.monthly_badge_count,
        )


class ChartDayModel(BaseModel):
    day: str
    date: str
    fullDate: str

    @classmethod
    def from_chart_day(cls, d: ChartDay) -> "ChartDayModel":
        return cls(day=d.day, date=d.date, fullDate=d.fullDate)


class WalkingListResponse(BaseModel):
    records: list[WalkingRecord]


class WalkingUpsertResponse(BaseModel):
    record: WalkingRecord
    stats: WalkingStats


class StatsResponse(BaseModel):
    today: datetime.date
    stats: WalkingStats
    days: list[ChartDayModel]


class ProfileResponse(BaseModel):
    id: str
    display_name: Optional[str] = None
    profile_image_url: Optional[str] = None
    created_at: str
    updated_at: str


class ProfileUpdateRequest(BaseModel):
    display_name: Optional[str] = Field(default=None, max_length=50)
