# src/cadence/cli/bootstrap.py

"""
CLI bootstrap helpers.

This module is the "composition root":
- loads settings once,
- ensures local (gitignored) directories exist,
- picks the task store (local SQLite or the hosted REST backend) and wires it into AppState.
"""

from __future__ import annotations

import logging

from ..config import STORE_REST, get_settings
from ..core.ports import TaskRepo
from ..core.state import AppState
from ..tasks.rest_store import RestTaskStore
from ..tasks.task_store import TaskStore

logger = logging.getLogger(__name__)


def _ensure_local_dirs(settings) -> None:
    settings.data_dir.mkdir(parents=True, exist_ok=True)
    settings.tasks_db_path.parent.mkdir(parents=True, exist_ok=True)


def create_task_store(settings) -> TaskRepo:
    if settings.store == STORE_REST:
        if not settings.backend_url or not settings.backend_key:
            raise RuntimeError(
                "CADENCE_STORE=rest needs CADENCE_BACKEND_URL and CADENCE_BACKEND_KEY in your .env."
            )
        return RestTaskStore(
            settings.backend_url,
            settings.backend_key,
            timeout=settings.http_timeout_seconds,
        )
    return TaskStore(settings.tasks_db_path)


def create_initial_state(*, settings=None) -> AppState:
    """
    Create AppState from the provided settings.

    Keeping settings injectable makes the app easier to test and avoids hidden global config reads.
    If settings is None, falls back to get_settings().
    """
    if settings is None:
        settings = get_settings()

    _ensure_local_dirs(settings)
    store = create_task_store(settings)
    logger.info("Task store: %s", type(store).__name__)
    return AppState(settings=settings, task_store=store)
