# src/cadence/core/ports.py

from __future__ import annotations

"""
Ports (interfaces) used by the core.

The scheduler, stats and task actions depend on the TaskRepo Protocol instead of a
concrete store. Both the local SQLite store and the hosted REST backend client
implement it, and tests use an in-memory fake.
"""

from datetime import date, datetime
from typing import Any, Protocol

from ..tasks.task_models import CompletionRecord, Task


class TaskStoreError(Exception):
    """Base class for declared store failures (callers may catch and report these)."""


class TaskNotFoundError(TaskStoreError):
    def __init__(self, task_id: int) -> None:
        super().__init__(f"Task not found: {task_id}")
        self.task_id = task_id


class TaskValidationError(TaskStoreError, ValueError):
    """Rejected input (empty name, non-positive cadence, ...)."""


class TaskStoreUnavailableError(TaskStoreError):
    """The backing store could not be reached or answered with an error."""


class TaskRepo(Protocol):
    # Queries
    def list_tasks(self) -> list[Task]: ...
    def list_unscheduled_tasks(self) -> list[Task]: ...
    def get_task_by_id(self, task_id: int) -> Task | None: ...
    def count_tasks(self) -> int: ...

    # Scheduling / completion
    def set_scheduled_date(self, task_id: int, day: date | None) -> None: ...
    def complete_task(
            self,
            task_id: int,
            scheduled_date: date | None = None,
            *,
            now: datetime | None = None,
    ) -> CompletionRecord: ...

    # CRUD
    def create_task(
            self,
            *,
            task_name: str,
            cadence: int | None,
            floor: str | None = None,
            category: str | None = None,
            effort: Any = None,
            time_estimate: int | None = None,
    ) -> Task: ...
    def update_task(self, task_id: int, **fields: Any) -> Task: ...
    def delete_task(self, task_id: int) -> None: ...

    # History
    def list_completions(self, limit: int | None = None) -> list[CompletionRecord]: ...

    # Settings
    def get_settings(self) -> dict[str, Any]: ...
    def get_setting(self, key: str) -> Any: ...
    def update_setting(self, key: str, value: Any) -> None: ...
