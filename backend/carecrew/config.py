"""Environment-driven settings.

Values are read once, at import time. Set the environment before importing
``carecrew.main`` (the test suite does this in ``conftest.py``). Malformed
values fall back to the defaults instead of failing the import.
"""
import os
from pathlib import Path

SAMESITE_VALUES = {"lax", "strict", "none"}


def env_str(name: str, default: str) -> str:
    value = os.getenv(name, "").strip()
    return value or default


def env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None:
        return default
    try:
        value = int(raw.strip())
    except ValueError:
        return default
    return value if value > 0 else default


def env_bool(name: str, default: bool = False) -> bool:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    return raw.strip().lower() in {"1", "true", "yes"}


def env_csv(name: str, default: str) -> list[str]:
    raw = os.getenv(name, default)
    return [item.strip() for item in raw.split(",") if item.strip()]


def env_samesite(name: str, default: str = "lax") -> str:
    value = env_str(name, default).lower()
    return value if value in SAMESITE_VALUES else default


DATA_DIR = Path(__file__).resolve().parents[1] / "data"

DB_PATH = env_str("CARECREW_DB_PATH", str(DATA_DIR / "carecrew.sqlite3"))

SESSION_BACKEND = env_str("SESSION_BACKEND", "memory").lower()
SESSION_DB_PATH = env_str("SESSION_DB_PATH", str(DATA_DIR / "sessions.sqlite3"))
SESSION_SECRET = env_str("SESSION_SECRET", "dev-insecure-secret-change-me")
SESSION_TTL_HOURS = env_int("SESSION_TTL_HOURS", 24)
SESSION_COOKIE_NAME = env_str("SESSION_COOKIE_NAME", "carecrew.sid")
SESSION_COOKIE_SECURE = env_bool("SESSION_COOKIE_SECURE", False)
SESSION_COOKIE_SAMESITE = env_samesite("SESSION_COOKIE_SAMESITE")

CORS_ORIGINS = env_csv("CORS_ORIGINS", "https://frontendofcarecrew.vercel.app")
TRUSTED_HOSTS = env_csv("TRUSTED_HOSTS", "*")

LOG_LEVEL = env_str("LOG_LEVEL", "INFO")
HOST = env_str("HOST", "0.0.0.0")
PORT = env_int("PORT", 5000)
