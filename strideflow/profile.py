from __future__ import annotations

import logging

from .db import db, now_iso
from .errors import InvalidInput, NotFound

logger = logging.getLogger(__name__)

DISPLAY_NAME_MAX_LENGTH = 50


def default_display_name(email: str | None) -> str:
    local = (email or "").split("@")[0].strip()
    return local or "User"


def get_profile(user_id: str) -> dict | None:
    with db() as conn:
        row = conn.execute("SELECT * FROM profiles WHERE id = ?", (user_id,)).fetchone()
    if row is None:
        return None
    return dict(row)


def ensure_profile(user_id: str, email: str | None) -> dict:
    """Return the profile, creating it with a name derived from ``email`` on first access."""
    current = get_profile(user_id)
    if current is not None:
        return current

    ts = now_iso()
    with db() as conn:
        conn.execute(
            """
            INSERT INTO profiles(id, display_name, profile_image_url, created_at, updated_at)
            VALUES(?, ?, NULL, ?, ?)
            ON CONFLICT(id) DO NOTHING
            """,
            (user_id, default_display_name(email), ts, ts),
        )
    logger.info("Created profile for user=%s", user_id)
    return get_profile(user_id)  # type: ignore[return-value]


def _update(user_id: str, fields: dict) -> dict:
    fields = dict(fields, updated_at=now_iso())
    assignments = ", ".join(f"{k} = :{k}" for k in fields)
    with db() as conn:
        cur = conn.execute(
            f"UPDATE profiles SET {assignments} WHERE id = :id",
            dict(fields, id=user_id),
        )
    if cur.rowcount == 0:
        raise NotFound("Profile not found")
    return get_profile(user_id)  # type: ignore[return-value]


def update_profile(user_id: str, *, display_name: str | None = None) -> dict:
    """Partial update. Fields passed as None keep their stored value."""
    fields: dict = {}
    if display_name is not None:
        name = display_name.strip()
        if not name or len(name) > DISPLAY_NAME_MAX_LENGTH:
            raise InvalidInput(f"Display name must be 1-{DISPLAY_NAME_MAX_LENGTH} characters")
        fields["display_name"] = name
    if not fields:
        current = get_profile(user_id)
        if current is None:
            raise NotFound("Profile not found")
        return current
    return _update(user_id, fields)


def update_profile_image(user_id: str, image_url: str) -> dict:
    return _update(user_id, {"profile_image_url": image_url})
