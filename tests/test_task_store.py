# tests/test_task_store.py

from __future__ import annotations

import sqlite3
from datetime import datetime, timezone
from pathlib import Path

import pytest

from cadence.core.ports import TaskNotFoundError, TaskValidationError
from cadence.tasks.task_models import Effort
from cadence.tasks.task_store import TaskStore

from .fakes import TODAY


def test_create_and_read_task_defaults(store: TaskStore) -> None:
    task = store.create_task(task_name="  Clean sinks ", cadence=7, floor="2F", category="")

    assert task.id > 0
    assert task.task_name == "Clean sinks"
    assert task.category is None
    assert task.effort == Effort.MEDIUM
    assert task.time_estimate == 15
    assert task.completion_count == 0
    assert task.last_completed is None
    assert task.created_at is not None

    assert store.get_task_by_id(task.id) == task
    assert store.count_tasks() == 1
    assert store.get_task_by_id(999) is None


@pytest.mark.parametrize(
    "kwargs",
    [
        {"task_name": "   ", "cadence": 7},
        {"task_name": "x", "cadence": 0},
        {"task_name": "x", "cadence": "weekly"},
        {"task_name": "x", "cadence": 7, "time_estimate": -5},
    ],
)
def test_create_task_validation(store: TaskStore, kwargs) -> None:
    with pytest.raises(TaskValidationError):
        store.create_task(**kwargs)


def test_schedule_and_unschedule(store: TaskStore) -> None:
    a = store.create_task(task_name="A", cadence=3)
    b = store.create_task(task_name="B", cadence=3)

    store.set_scheduled_date(a.id, TODAY)

    assert store.get_task_by_id(a.id).scheduled_date == TODAY
    assert [t.id for t in store.list_unscheduled_tasks()] == [b.id]

    store.set_scheduled_date(a.id, None)
    assert {t.id for t in store.list_unscheduled_tasks()} == {a.id, b.id}

    with pytest.raises(TaskNotFoundError):
        store.set_scheduled_date(12345, TODAY)


def test_complete_task_updates_task_and_appends_history(store: TaskStore) -> None:
    task = store.create_task(task_name="Mop lobby", cadence=2, floor="1F", category="Lobby", time_estimate=20)
    store.set_scheduled_date(task.id, TODAY)
    now = datetime(2024, 3, 13, 9, 0, tzinfo=timezone.utc)

    record = store.complete_task(task.id, TODAY, now=now)

    updated = store.get_task_by_id(task.id)
    assert updated.last_completed == now
    assert updated.completion_count == 1
    assert updated.scheduled_date is None

    assert record.task_id == task.id
    assert record.time_minutes == 20
    assert record.scheduled_date == TODAY

    history = store.list_completions()
    assert len(history) == 1
    assert history[0].completed_at == now
    assert history[0].category == "Lobby"

    with pytest.raises(TaskNotFoundError):
        store.complete_task(999)


def test_delete_keeps_history(store: TaskStore) -> None:
    task = store.create_task(task_name="Windows", cadence=30)
    store.complete_task(task.id)

    store.delete_task(task.id)

    assert store.get_task_by_id(task.id) is None
    assert len(store.list_completions()) == 1
    with pytest.raises(TaskNotFoundError):
        store.delete_task(task.id)


def test_list_completions_newest_first_with_limit(store: TaskStore) -> None:
    task = store.create_task(task_name="Trash", cadence=1)
    for day in (10, 12, 11):
        store.complete_task(task.id, now=datetime(2024, 3, day, 8, 0, tzinfo=timezone.utc))

    days = [h.completed_at.day for h in store.list_completions()]
    assert days == [12, 11, 10]
    assert len(store.list_completions(limit=2)) == 2
    assert store.get_task_by_id(task.id).completion_count == 3


def test_update_task(store: TaskStore) -> None:
    task = store.create_task(task_name="Dust", cadence=7)

    updated = store.update_task(task.id, effort="high", time_estimate=25, floor="3F")

    assert updated.effort == Effort.HIGH
    assert updated.time_estimate == 25
    assert updated.floor == "3F"

    with pytest.raises(TaskValidationError):
        store.update_task(task.id, color="red")
    with pytest.raises(TaskNotFoundError):
        store.update_task(999, task_name="x")


def test_settings_defaults_and_update(store: TaskStore) -> None:
    assert store.get_setting("daily_minutes") == 30
    assert store.get_setting("hourly_rate") == 35
    assert store.get_settings()["onboarding_completed"] is False

    store.update_setting("daily_minutes", 45)
    assert store.get_setting("daily_minutes") == 45

    with pytest.raises(TaskValidationError):
        store.update_setting("daily_minutes", 0)
    with pytest.raises(TaskValidationError):
        store.update_setting("theme", "dark")


def test_migration_adds_missing_columns(tmp_path: Path) -> None:
    db = tmp_path / "old.sqlite3"
    conn = sqlite3.connect(db)
    conn.execute("CREATE TABLE tasks (id INTEGER PRIMARY KEY AUTOINCREMENT, task_name TEXT NOT NULL, cadence INTEGER)")
    conn.execute("INSERT INTO tasks(task_name, cadence) VALUES ('Legacy chore', 5)")
    conn.commit()
    conn.close()

    store = TaskStore(db)

    (task,) = store.list_tasks()
    assert task.task_name == "Legacy chore"
    assert task.cadence == 5
    assert task.effort == Effort.MEDIUM
    assert task.time_estimate == 15
    assert task.scheduled_date is None
    assert task.created_at is None
