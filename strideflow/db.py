from __future__ import annotations

import logging
import sqlite3
from contextlib import contextmanager
from datetime import date, datetime, timezone
from typing import Iterator

from . import settings
from .errors import StoreError

# Use local timezone for "today" (JST if the PC is set to JST)
LOCAL_TZ = datetime.now().astimezone().tzinfo

logger = logging.getLogger(__name__)


def _connect() -> sqlite3.Connection:
    conn = sqlite3.connect(settings.DB_PATH)
    conn.row_factory = sqlite3.Row
    conn.execute("PRAGMA journal_mode=WAL;")
    conn.execute("PRAGMA synchronous=NORMAL;")
    conn.execute("PRAGMA foreign_keys=ON;")
    return conn


@contextmanager
def db() -> Iterator[sqlite3.Connection]:
    try:
        conn = _connect()
    except sqlite3.Error as exc:
        logger.error("Cannot open database %s: %s", settings.DB_PATH, exc)
        raise StoreError("Record store is unavailable. Please try again.") from exc
    try:
        yield conn
        conn.commit()
    except sqlite3.Error as exc:
        conn.rollback()
        logger.error("Record store operation failed: %s", exc)
        raise StoreError("Record store operation failed. Please try again.") from exc
    finally:
        conn.close()


def init_db() -> None:
    with db() as conn:
        conn.execute(
            """
            CREATE TABLE IF NOT EXISTS users (
              id TEXT PRIMARY KEY,
              email TEXT NOT NULL UNIQUE COLLATE NOCASE,
              password_hash TEXT NOT NULL,
              created_at TEXT NOT NULL
            );
            """
        )
        conn.execute(
            """
            CREATE TABLE IF NOT EXISTS sessions (
              token_hash TEXT PRIMARY KEY,
              user_id TEXT NOT NULL,
              created_at TEXT NOT NULL,
              FOREIGN KEY(user_id) REFERENCES users(id) ON DELETE CASCADE
            );
            """
        )
        conn.execute("CREATE INDEX IF NOT EXISTS idx_sessions_user_id ON sessions(user_id);")

        conn.execute(
            """
            CREATE TABLE IF NOT EXISTS profiles (
              id TEXT PRIMARY KEY,
              display_name TEXT,
              profile_image_url TEXT,
              created_at TEXT NOT NULL,
              updated_at TEXT NOT NULL
            );
            """
        )

        # One row per (user, day); re-submission overwrites minutes.
        conn.execute(
            """
            CREATE TABLE IF NOT EXISTS walking_data (
              user_id TEXT NOT NULL,
              date TEXT NOT NULL,
              minutes INTEGER NOT NULL CHECK (minutes >= 0),
              created_at TEXT NOT NULL,
              updated_at TEXT NOT NULL,
              PRIMARY KEY (user_id, date)
            );
            """
        )
        conn.execute("CREATE INDEX IF NOT EXISTS idx_walking_data_date ON walking_data(date);")


def today_local() -> date:
    return datetime.now(LOCAL_TZ).date()


def now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()
