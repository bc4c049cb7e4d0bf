# tests/fakes.py

from __future__ import annotations

from dataclasses import replace
from datetime import date, datetime, timezone
from typing import Any

from cadence.core.ports import TaskNotFoundError, TaskStoreUnavailableError
from cadence.tasks.task_models import CompletionRecord, Effort, Task

# A Wednesday.
TODAY = date(2024, 3, 13)


def make_task(
    task_id: int,
    name: str = "Task",
    *,
    floor: str | None = None,
    category: str | None = None,
    minutes: int = 15,
    cadence: int | None = None,
    last_completed: datetime | None = None,
    effort: Effort = Effort.MEDIUM,
    scheduled_date: date | None = None,
) -> Task:
    return Task(
        id=task_id,
        task_name=name,
        cadence=cadence,
        floor=floor,
        category=category,
        effort=effort,
        time_estimate=minutes,
        last_completed=last_completed,
        scheduled_date=scheduled_date,
    )


class FakeTaskRepo:
    """
    In-memory TaskRepo used for scheduler unit tests.

    Records every set_scheduled_date call. Ids in `fail_ids` raise a declared store
    error; ids in `crash_ids` raise something unexpected. With `reads_down` every
    task listing raises a declared store error.
    """

    def __init__(
        self,
        tasks: list[Task] | None = None,
        *,
        settings: dict[str, Any] | None = None,
        fail_ids: set[int] | None = None,
        crash_ids: set[int] | None = None,
        reads_down: bool = False,
    ) -> None:
        self.tasks = {t.id: t for t in (tasks or [])}
        self.settings = dict(settings or {})
        self.fail_ids = set(fail_ids or ())
        self.crash_ids = set(crash_ids or ())
        self.reads_down = reads_down
        self.history: list[CompletionRecord] = []
        self.calls: list[tuple[int, date | None]] = []

    def _check_reads(self) -> None:
        if self.reads_down:
            raise TaskStoreUnavailableError("backend down")

    def list_tasks(self) -> list[Task]:
        self._check_reads()
        return list(self.tasks.values())

    def list_unscheduled_tasks(self) -> list[Task]:
        self._check_reads()
        return [t for t in self.tasks.values() if t.scheduled_date is None]

    def get_task_by_id(self, task_id: int) -> Task | None:
        return self.tasks.get(task_id)

    def count_tasks(self) -> int:
        return len(self.tasks)

    def set_scheduled_date(self, task_id: int, day: date | None) -> None:
        self.calls.append((task_id, day))
        if task_id in self.crash_ids:
            raise RuntimeError("unexpected")
        if task_id in self.fail_ids:
            raise TaskStoreUnavailableError("backend down")
        t = self.tasks.get(task_id)
        if t is None:
            raise TaskNotFoundError(task_id)
        self.tasks[task_id] = replace(t, scheduled_date=day)

    def complete_task(self, task_id: int, scheduled_date: date | None = None, *, now: datetime | None = None):
        t = self.tasks.get(task_id)
        if t is None:
            raise TaskNotFoundError(task_id)
        now = now or datetime.now(timezone.utc)
        self.tasks[task_id] = replace(
            t,
            last_completed=now,
            completion_count=t.completion_count + 1,
            scheduled_date=None,
        )
        record = CompletionRecord(
            id=len(self.history) + 1,
            task_id=t.id,
            task_name=t.task_name,
            floor=t.floor,
            category=t.category,
            effort=t.effort,
            time_minutes=t.time_estimate,
            scheduled_date=scheduled_date,
            completed_at=now,
        )
        self.history.append(record)
        return record

    def list_completions(self, limit: int | None = None) -> list[CompletionRecord]:
        out = sorted(self.history, key=lambda h: h.completed_at, reverse=True)
        return out if limit is None else out[:limit]

    def get_settings(self) -> dict[str, Any]:
        return dict(self.settings)

    def get_setting(self, key: str) -> Any:
        return self.settings.get(key)

    def update_setting(self, key: str, value: Any) -> None:
        self.settings[key] = value
