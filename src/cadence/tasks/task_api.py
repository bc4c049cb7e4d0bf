# src/cadence/tasks/task_api.py

from __future__ import annotations

import logging
from datetime import date, datetime
from typing import Any

from ..core.ports import TaskNotFoundError, TaskStoreError, TaskValidationError
from ..core.results import ActionResult
from ..core.state import AppState

logger = logging.getLogger(__name__)


def add_task(
    state: AppState,
    *,
    task_name: str,
    cadence: int | None,
    floor: str | None = None,
    category: str | None = None,
    effort: str | None = None,
    time_estimate: int | None = None,
) -> ActionResult:
    """Create a task. New tasks start as Not Started / priority 100."""
    try:
        task = state.task_store.create_task(
            task_name=task_name,
            cadence=cadence,
            floor=floor,
            category=category,
            effort=effort,
            time_estimate=time_estimate,
        )
    except TaskValidationError as e:
        return ActionResult.invalid(str(e))
    except TaskStoreError as e:
        logger.warning("create_task failed: %s", e)
        return ActionResult.failed(f"Error adding task: {e}")
    return ActionResult.success("Task added successfully!", task_id=task.id, value=task)


def edit_task(state: AppState, task_id: int, **fields: Any) -> ActionResult:
    try:
        task = state.task_store.update_task(task_id, **fields)
    except TaskNotFoundError:
        return ActionResult.not_found(task_id)
    except TaskValidationError as e:
        return ActionResult.invalid(str(e), task_id=task_id)
    except TaskStoreError as e:
        logger.warning("update_task failed task_id=%s: %s", task_id, e)
        return ActionResult.failed(f"Error saving task: {e}", task_id=task_id)
    return ActionResult.success("Task updated.", task_id=task_id, value=task)


def remove_task(state: AppState, task_id: int) -> ActionResult:
    """Delete a task. Its completion history stays."""
    try:
        state.task_store.delete_task(task_id)
    except TaskNotFoundError:
        return ActionResult.not_found(task_id)
    except TaskStoreError as e:
        logger.warning("delete_task failed task_id=%s: %s", task_id, e)
        return ActionResult.failed(f"Error deleting task: {e}", task_id=task_id)
    return ActionResult.success("Task deleted.", task_id=task_id)


def complete(
    state: AppState,
    task_id: int,
    scheduled_date: date | None = None,
    *,
    now: datetime | None = None,
) -> ActionResult:
    try:
        record = state.task_store.complete_task(task_id, scheduled_date, now=now)
    except TaskNotFoundError:
        return ActionResult.not_found(task_id)
    except TaskStoreError as e:
        logger.warning("complete_task failed task_id=%s: %s", task_id, e)
        return ActionResult.failed(f"Error completing task: {e}", task_id=task_id)
    return ActionResult.success("Task completed!", task_id=task_id, value=record)


def schedule(state: AppState, task_id: int, day: date) -> ActionResult:
    """Put a task on a specific day (manual pick, no budget check)."""
    try:
        state.task_store.set_scheduled_date(task_id, day)
    except TaskNotFoundError:
        return ActionResult.not_found(task_id)
    except TaskStoreError as e:
        logger.warning("set_scheduled_date failed task_id=%s: %s", task_id, e)
        return ActionResult.failed(f"Error scheduling task: {e}", task_id=task_id)
    return ActionResult.success(f"Task scheduled for {day.isoformat()}.", task_id=task_id, value=day)


def unschedule(state: AppState, task_id: int) -> ActionResult:
    try:
        state.task_store.set_scheduled_date(task_id, None)
    except TaskNotFoundError:
        return ActionResult.not_found(task_id)
    except TaskStoreError as e:
        logger.warning("unschedule failed task_id=%s: %s", task_id, e)
        return ActionResult.failed(f"Error unscheduling task: {e}", task_id=task_id)
    return ActionResult.success("Task unscheduled.", task_id=task_id)


def set_daily_budget(state: AppState, minutes: int) -> ActionResult:
    try:
        state.task_store.update_setting("daily_minutes", minutes)
    except TaskValidationError as e:
        return ActionResult.invalid(str(e))
    except TaskStoreError as e:
        logger.warning("update_setting(daily_minutes) failed: %s", e)
        return ActionResult.failed(f"Error saving settings: {e}")
    return ActionResult.success(f"Daily budget set to {minutes} min.", value=minutes)
