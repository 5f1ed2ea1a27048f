from __future__ import annotations

import os


def get_env(name: str, default: str | None = None) -> str:
    v = os.getenv(name, default)
    if v is None:
        raise RuntimeError(f"Missing required env var: {name}")
    return v


def _flag(name: str, default: str) -> bool:
    return os.getenv(name, default).lower() in ("1", "true", "yes", "y")


_ROOT = os.path.join(os.path.dirname(__file__), "..")

DB_PATH = get_env("DB_PATH", os.path.join(_ROOT, "strideflow.db"))
STORAGE_DIR = get_env("STORAGE_DIR", os.path.join(_ROOT, "media"))
PUBLIC_BASE_URL = get_env("PUBLIC_BASE_URL", "http://localhost:8765").rstrip("/")

TOKEN_PEPPER = get_env("TOKEN_PEPPER", "CHANGE_ME")
REGISTER_ENABLED = _flag("REGISTER_ENABLED", "true")
SESSION_TTL_DAYS = int(get_env("SESSION_TTL_DAYS", "7"))

HOST = get_env("HOST", "0.0.0.0")
PORT = int(get_env("PORT", "8765"))
LOG_LEVEL = get_env("LOG_LEVEL", "INFO").upper()
