# src/cadence/tasks/status.py

from __future__ import annotations

"""
Status engine.

Derives a task's urgency (status, priority, days overdue, next due date) from its
cadence and last completion. Pure: everything depends only on (task, today).

Rules, in order:
- no cadence         -> Not Started, priority 100, days_overdue 0
- never completed    -> Not Started, priority 100, days_overdue "N/A"
- days_overdue > 0   -> OVERDUE, priority = round(days_overdue / cadence * 100)
- -3 <= days_overdue -> Due Soon, priority 50
- otherwise          -> On Track, priority 0

Overdue priority is unbounded so that severely overdue tasks always sort first.
"""

import math
from collections.abc import Iterable
from datetime import date, datetime, timedelta

from .task_models import NOT_APPLICABLE, StatusedTask, StatusResult, Task, TaskStatus

NEW_TASK_PRIORITY = 100
DUE_SOON_PRIORITY = 50
ON_TRACK_PRIORITY = 0
DUE_SOON_WINDOW_DAYS = 3

STATUS_FILTERS = {
    "overdue": TaskStatus.OVERDUE,
    "due-soon": TaskStatus.DUE_SOON,
    "on-track": TaskStatus.ON_TRACK,
    "not-started": TaskStatus.NOT_STARTED,
}


def local_date(value: datetime | date) -> date:
    """Truncate a timestamp to its local calendar date."""
    if isinstance(value, datetime):
        if value.tzinfo is not None:
            value = value.astimezone()
        return value.date()
    return value


def round_half_up(x: float) -> int:
    """Round halves up (12.5 -> 13); the builtin round() goes to even."""
    return int(math.floor(x + 0.5))


def compute_status(task: Task, today: date | datetime) -> StatusResult:
    if not task.cadence:
        return StatusResult(
            status=TaskStatus.NOT_STARTED,
            priority=NEW_TASK_PRIORITY,
            days_overdue=0,
            next_due=None,
        )

    if task.last_completed is None:
        return StatusResult(
            status=TaskStatus.NOT_STARTED,
            priority=NEW_TASK_PRIORITY,
            days_overdue=NOT_APPLICABLE,
            next_due=None,
        )

    next_due = local_date(task.last_completed) + timedelta(days=task.cadence)
    days_overdue = (local_date(today) - next_due).days

    if days_overdue > 0:
        return StatusResult(
            status=TaskStatus.OVERDUE,
            priority=round_half_up(days_overdue / task.cadence * 100),
            days_overdue=days_overdue,
            next_due=next_due,
        )

    if days_overdue >= -DUE_SOON_WINDOW_DAYS:
        return StatusResult(
            status=TaskStatus.DUE_SOON,
            priority=DUE_SOON_PRIORITY,
            days_overdue=days_overdue,
            next_due=next_due,
        )

    return StatusResult(
        status=TaskStatus.ON_TRACK,
        priority=ON_TRACK_PRIORITY,
        days_overdue=days_overdue,
        next_due=next_due,
    )


def enrich(tasks: Iterable[Task], today: date | datetime) -> list[StatusedTask]:
    return [StatusedTask(task=t, status=compute_status(t, today)) for t in tasks]


def count_by_status(tasks: Iterable[Task], today: date | datetime) -> dict[TaskStatus, int]:
    """Home page counters. Every status is present, even when zero."""
    counts = {s: 0 for s in TaskStatus}
    for t in tasks:
        counts[compute_status(t, today).status] += 1
    return counts


def filter_tasks(
    tasks: Iterable[Task],
    today: date | datetime,
    *,
    status: str = "all",
    floor: str = "all",
    effort: str = "all",
) -> list[StatusedTask]:
    """
    Task list filters.

    - status: all | overdue | due-soon | on-track | not-started
    - floor: case-insensitive substring of the task's floor
    - effort: case-insensitive exact match
    Unknown status keys behave like "all".
    """
    wanted_status = STATUS_FILTERS.get((status or "all").strip().lower())
    floor_q = (floor or "all").strip().lower()
    effort_q = (effort or "all").strip().lower()

    out: list[StatusedTask] = []
    for item in enrich(tasks, today):
        t = item.task
        if wanted_status is not None and item.status.status != wanted_status:
            continue
        if floor_q != "all" and not (t.floor and floor_q in t.floor.lower()):
            continue
        if effort_q != "all" and t.effort.value.lower() != effort_q:
            continue
        out.append(item)
    return out
