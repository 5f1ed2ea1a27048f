from __future__ import annotations

import hashlib
import logging
import re
import secrets
import sqlite3
import uuid
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Callable, Optional

from werkzeug.security import check_password_hash, generate_password_hash

from . import settings
from .db import db, now_iso
from .errors import AuthError, DuplicateAccount, InvalidInput

logger = logging.getLogger(__name__)

MIN_PASSWORD_LENGTH = 6
EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")

SessionListener = Callable[[Optional[str]], None]


@dataclass(frozen=True)
class Session:
    user_id: str
    token: str


class SessionEvents:
    """Callback channel for session changes, owned by the host application.

    Listeners receive the signed-in user id, or None after sign-out.
    """

    def __init__(self) -> None:
        self._listeners: list[SessionListener] = []

    def subscribe(self, listener: SessionListener) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def publish(self, user_id: str | None) -> None:
        for listener in list(self._listeners):
            try:
                listener(user_id)
            except Exception:
                logger.exception("Session listener %r failed", listener)


def hash_token(token: str) -> str:
    # sha256(pepper + token); raw tokens are never stored
    h = hashlib.sha256()
    h.update((settings.TOKEN_PEPPER + token).encode("utf-8"))
    return h.hexdigest()


def parse_bearer(authorization: str | None) -> str:
    if not authorization:
        raise AuthError("Missing Authorization header")
    if not authorization.lower().startswith("bearer "):
        raise AuthError("Invalid Authorization scheme")
    token = authorization[7:].strip()
    if not token:
        raise AuthError("Empty bearer token")
    return token


def _normalize_credentials(email: str, password: str) -> str:
    email = (email or "").strip().lower()
    if not EMAIL_RE.match(email):
        raise InvalidInput("Please enter a valid email address")
    if len(password or "") < MIN_PASSWORD_LENGTH:
        raise InvalidInput(f"Password should be at least {MIN_PASSWORD_LENGTH} characters")
    return email


def _issue_session(conn: sqlite3.Connection, user_id: str) -> Session:
    token = secrets.token_urlsafe(32)
    conn.execute(
        "INSERT INTO sessions(token_hash, user_id, created_at) VALUES(?,?,?)",
        (hash_token(token), user_id, now_iso()),
    )
    return Session(user_id=user_id, token=token)


def sign_up(email: str, password: str, events: SessionEvents | None = None) -> Session:
    if not settings.REGISTER_ENABLED:
        raise AuthError("Sign-ups are disabled")
    email = _normalize_credentials(email, password)
    user_id = uuid.uuid4().hex

    with db() as conn:
        try:
            conn.execute(
                "INSERT INTO users(id, email, password_hash, created_at) VALUES(?,?,?,?)",
                (user_id, email, generate_password_hash(password), now_iso()),
            )
        except sqlite3.IntegrityError as exc:
            raise DuplicateAccount("User already registered") from exc
        session = _issue_session(conn, user_id)

    logger.info("Registered user=%s", user_id)
    if events is not None:
        events.publish(user_id)
    return session


def sign_in(email: str, password: str, events: SessionEvents | None = None) -> Session:
    email = (email or "").strip().lower()
    with db() as conn:
        row = conn.execute(
            "SELECT id, password_hash FROM users WHERE email = ?", (email,)
        ).fetchone()
        if row is None or not check_password_hash(row["password_hash"], password or ""):
            logger.warning("Rejected sign-in attempt")
            raise AuthError("Invalid login credentials")
        session = _issue_session(conn, row["id"])

    logger.info("Signed in user=%s", session.user_id)
    if events is not None:
        events.publish(session.user_id)
    return session


def sign_out(token: str, events: SessionEvents | None = None) -> None:
    with db() as conn:
        conn.execute("DELETE FROM sessions WHERE token_hash = ?", (hash_token(token),))
    if events is not None:
        events.publish(None)


def resolve_session(token: str) -> str | None:
    """User id for a live token; tokens older than SESSION_TTL_DAYS are dropped."""
    token_hash = hash_token(token)
    with db() as conn:
        row = conn.execute(
            "SELECT user_id, created_at FROM sessions WHERE token_hash = ?", (token_hash,)
        ).fetchone()
        if row is None:
            return None
        issued = datetime.fromisoformat(row["created_at"])
        if datetime.now(timezone.utc) - issued > timedelta(days=settings.SESSION_TTL_DAYS):
            conn.execute("DELETE FROM sessions WHERE token_hash = ?", (token_hash,))
            logger.info("Expired session for user=%s", row["user_id"])
            return None
    return row["user_id"]


def get_user_email(user_id: str) -> str | None:
    with db() as conn:
        row = conn.execute("SELECT email FROM users WHERE id = ?", (user_id,)).fetchone()
    return row["email"] if row else None
