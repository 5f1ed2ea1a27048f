from __future__ import annotations

import logging
import re
import sqlite3
from datetime import date, datetime
from typing import Any

from .db import db, now_iso
from .errors import InvalidInput
from .stats import ActivityRecord, WeeklyStatsSnapshot, compute_snapshot

logger = logging.getLogger(__name__)

DATE_RE = re.compile(r"^[0-9]{4}-[0-9]{2}-[0-9]{2}$")


def parse_minutes(raw: Any) -> int:
    if isinstance(raw, bool):
        raise InvalidInput("Please enter a valid number of minutes")
    if isinstance(raw, str):
        raw = raw.strip()
        # only characters int() accepts; "²" is a digit but not decimal
        if not raw.removeprefix("-").isdecimal():
            raise InvalidInput("Please enter a valid number of minutes")
        try:
            raw = int(raw)
        except ValueError as exc:
            raise InvalidInput("Please enter a valid number of minutes") from exc
    if isinstance(raw, float) and raw.is_integer():
        raw = int(raw)
    if not isinstance(raw, int) or raw < 0:
        raise InvalidInput("Please enter a valid number of minutes")
    return raw


def parse_record_date(raw: Any) -> date:
    if isinstance(raw, datetime):
        raise InvalidInput("Date must be a calendar date (YYYY-MM-DD)")
    if isinstance(raw, date):
        return raw
    if not isinstance(raw, str) or not raw.strip():
        raise InvalidInput("Please fill in all fields")
    raw = raw.strip()
    if not DATE_RE.match(raw):
        raise InvalidInput(f"Invalid date: {raw}")
    try:
        return datetime.strptime(raw, "%Y-%m-%d").date()
    except ValueError as exc:
        raise InvalidInput(f"Invalid date: {raw}") from exc


def _row_to_record(row: sqlite3.Row) -> ActivityRecord:
    return ActivityRecord(
        user_id=row["user_id"],
        date=date.fromisoformat(row["date"]),
        minutes=int(row["minutes"]),
        created_at=row["created_at"],
        updated_at=row["updated_at"],
    )


def fetch_records(user_id: str) -> list[ActivityRecord]:
    with db() as conn:
        rows = conn.execute(
            "SELECT * FROM walking_data WHERE user_id = ? ORDER BY date DESC",
            (user_id,),
        ).fetchall()
    return [_row_to_record(r) for r in rows]


def get_record(user_id: str, day: date) -> ActivityRecord | None:
    with db() as conn:
        row = conn.execute(
            "SELECT * FROM walking_data WHERE user_id = ? AND date = ?",
            (user_id, day.isoformat()),
        ).fetchone()
    return _row_to_record(row) if row else None


def upsert_record(user_id: str, day: Any, minutes: Any) -> ActivityRecord:
    """Insert or overwrite the user's record for ``day``. Last write wins."""
    day = parse_record_date(day)
    minutes = parse_minutes(minutes)
    ts = now_iso()

    with db() as conn:
        conn.execute(
            """
            INSERT INTO walking_data(user_id, date, minutes, created_at, updated_at)
            VALUES(?,?,?,?,?)
            ON CONFLICT(user_id, date) DO UPDATE SET
              minutes=excluded.minutes,
              updated_at=excluded.updated_at
            """,
            (user_id, day.isoformat(), minutes, ts, ts),
        )
    logger.info("Upserted walking record user=%s date=%s minutes=%d", user_id, day, minutes)

    return get_record(user_id, day)  # type: ignore[return-value]


def delete_record(user_id: str, day: Any) -> bool:
    day = parse_record_date(day)
    with db() as conn:
        cur = conn.execute(
            "DELETE FROM walking_data WHERE user_id = ? AND date = ?",
            (user_id, day.isoformat()),
        )
    return cur.rowcount > 0


def load_snapshot(user_id: str, today: date) -> WeeklyStatsSnapshot:
    return compute_snapshot(fetch_records(user_id), today)
