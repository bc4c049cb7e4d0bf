# tests/conftest.py

from __future__ import annotations

from pathlib import Path
from types import SimpleNamespace

import pytest

from cadence.core.state import AppState
from cadence.tasks.task_store import TaskStore

from .fakes import TODAY


@pytest.fixture()
def settings(tmp_path: Path) -> SimpleNamespace:
    """
    Minimal settings object compatible with AppState and the CLI layer.

    We intentionally use a SimpleNamespace rather than importing real config,
    to keep unit tests isolated from the environment and any local .env.
    """
    return SimpleNamespace(
        app_name="cadence",
        log_level="INFO",
        store="sqlite",
        data_dir=tmp_path,
        tasks_db_path=tmp_path / "cadence.sqlite3",
        backend_url="",
        backend_key=None,
        http_timeout_seconds=5.0,
        default_daily_minutes=30,
        default_hourly_rate=35,
    )


@pytest.fixture()
def store(settings: SimpleNamespace) -> TaskStore:
    """Real SQLite store: its correctness is part of what we want to test."""
    return TaskStore(settings.tasks_db_path)


@pytest.fixture()
def state(settings: SimpleNamespace, store: TaskStore) -> AppState:
    return AppState(settings=settings, task_store=store, today_override=TODAY)
