# src/cadence/config.py

"""Centralized settings loaded from environment variables (+ optional .env).

Design goals:
- One Settings object for the whole app.
- No secrets required at import time (the REST backend key is only needed
  when CADENCE_STORE=rest).
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv

ENV_PREFIX = "CADENCE"

STORE_SQLITE = "sqlite"
STORE_REST = "rest"

load_dotenv(override=False)


def _k(suffix: str) -> str:
    """Build env var name with the project prefix."""
    return f"{ENV_PREFIX}_{suffix}"


def _env(name: str, default: str = "") -> str:
    v = os.getenv(name)
    return default if v is None else v


def _first_env(*names: str, default: str | None = None) -> str | None:
    for n in names:
        v = os.getenv(n)
        if v is not None and v.strip() != "":
            return v
    return default


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return float(raw)
    except ValueError:
        return default


def _env_path(name: str, default: Path) -> Path:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    return Path(raw).expanduser()


@dataclass(frozen=True, slots=True)
class Settings:
    # ---- App / logging ----
    app_name: str
    log_level: str

    # ---- Task store ----
    store: str
    data_dir: Path
    tasks_db_path: Path

    # ---- Hosted backend (PostgREST-style) ----
    backend_url: str
    backend_key: str | None
    http_timeout_seconds: float

    # ---- Defaults used when the store has no settings row ----
    default_daily_minutes: int
    default_hourly_rate: int

    @staticmethod
    def from_env() -> "Settings":
        app_name = _env(_k("APP_NAME"), "cadence") or "cadence"
        log_level = _env(_k("LOG_LEVEL"), "INFO")

        store = (_env(_k("STORE"), STORE_SQLITE).strip().lower() or STORE_SQLITE)
        if store not in (STORE_SQLITE, STORE_REST):
            store = STORE_SQLITE

        data_dir = _env_path(_k("DATA_DIR"), Path(".local/cadence"))
        tasks_db_path = _env_path(_k("TASKS_DB_PATH"), data_dir / "cadence.sqlite3")

        backend_url = (_first_env(_k("BACKEND_URL"), "SUPABASE_URL", default="") or "").strip().rstrip("/")
        backend_key = _first_env(_k("BACKEND_KEY"), "SUPABASE_KEY", default=None)
        http_timeout_seconds = max(1.0, _env_float(_k("HTTP_TIMEOUT_SECONDS"), 10.0))

        default_daily_minutes = max(1, _env_int(_k("DEFAULT_DAILY_MINUTES"), 30))
        default_hourly_rate = max(0, _env_int(_k("DEFAULT_HOURLY_RATE"), 35))

        return Settings(
            app_name=app_name,
            log_level=log_level,
            store=store,
            data_dir=data_dir,
            tasks_db_path=tasks_db_path,
            backend_url=backend_url,
            backend_key=backend_key,
            http_timeout_seconds=http_timeout_seconds,
            default_daily_minutes=default_daily_minutes,
            default_hourly_rate=default_hourly_rate,
        )


_SETTINGS: Settings | None = None


def get_settings() -> Settings:
    global _SETTINGS
    if _SETTINGS is None:
        _SETTINGS = Settings.from_env()
    return _SETTINGS
