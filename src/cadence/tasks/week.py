# src/cadence/tasks/week.py

from __future__ import annotations

from collections import Counter
from collections.abc import Iterable
from datetime import date, timedelta

from .status import local_date
from .task_models import DEFAULT_FLOOR, Day, Task

WEEK_DAYS = 7

_DAY_NAMES = ("Mon", "Tue", "Wed", "Thu", "Fri", "Sat", "Sun")


def is_completed_on(task: Task, day: date) -> bool:
    if task.last_completed is None:
        return False
    return local_date(task.last_completed) == day


def week_view_start(today: date, week_offset: int = 0) -> date:
    """The week page shows yesterday plus the following six days, shifted by whole weeks."""
    return today - timedelta(days=1) + timedelta(days=7 * week_offset)


def build_week(
    tasks: Iterable[Task],
    today: date,
    *,
    start: date | None = None,
    days: int = WEEK_DAYS,
) -> list[Day]:
    """
    Build a window of `days` consecutive days starting at `start` (default: today).

    Tasks are placed on the day matching their scheduled_date. A task completed on
    that same day is a done task; otherwise it counts toward the day's load.
    """
    first = start or today
    window: list[Day] = []
    by_date: dict[date, Day] = {}

    for i in range(max(0, days)):
        d = first + timedelta(days=i)
        day = Day(
            date=d,
            day_name=_DAY_NAMES[d.weekday()],
            is_today=d == today,
            is_yesterday=d == today - timedelta(days=1),
            is_past=d < today,
        )
        window.append(day)
        by_date[d] = day

    for t in tasks:
        if t.scheduled_date is None:
            continue
        day = by_date.get(t.scheduled_date)
        if day is None:
            continue
        if is_completed_on(t, day.date):
            day.done_tasks.append(t)
        else:
            day.todo_tasks.append(t)
            day.total_minutes += t.minutes

    return window


def find_today(week: list[Day]) -> Day | None:
    for day in week:
        if day.is_today:
            return day
    return None


def smart_tip(day: Day) -> str | None:
    """Suggest starting on the floor with the most open tasks (needs at least two)."""
    if not day.todo_tasks:
        return None
    floors = Counter(t.floor or DEFAULT_FLOOR for t in day.todo_tasks)
    floor, count = floors.most_common(1)[0]
    if count < 2:
        return None
    return f"{count} tasks on {floor} - start there to save time!"
