# src/cadence/tasks/task_scheduler.py

from __future__ import annotations

"""
Smart scheduler.

A greedy, single-pass bin packer that:
- orders unscheduled tasks by urgency,
- groups them by (floor, category) so related chores land on the same day,
- places each group on the first day (from today) with enough headroom,
- falls back to placing the group's tasks one by one when the group doesn't fit,
- persists every placement through the injected TaskRepo.

Planning is pure and works on a private copy of the week's day totals. Only
smart_schedule() talks to the store, one write at a time.
"""

import logging
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field
from datetime import date

from ..core.ports import TaskRepo, TaskStoreError
from ..core.results import Outcome
from .status import enrich
from .task_models import Day, StatusedTask, Task, TaskStatus
from .week import WEEK_DAYS, build_week

logger = logging.getLogger(__name__)

DEFAULT_DAILY_MINUTES = 30


@dataclass(frozen=True, slots=True)
class Assignment:
    task_id: int
    date: date
    minutes: int


@dataclass(frozen=True, slots=True)
class SchedulePlan:
    assignments: list[Assignment]
    unscheduled: list[Task]
    # Day totals after the pass (working copy; the input week is left untouched).
    day_minutes: dict[date, int]


@dataclass(frozen=True, slots=True)
class AssignmentFailure:
    assignment: Assignment
    error: str


@dataclass(frozen=True, slots=True)
class ScheduleResult:
    outcome: Outcome
    scheduled_count: int
    assignments: list[Assignment]
    failures: list[AssignmentFailure] = field(default_factory=list)
    unscheduled: list[Task] = field(default_factory=list)

    @property
    def message(self) -> str:
        if self.outcome == Outcome.FAILED:
            return "Error scheduling tasks."
        if self.scheduled_count == 0 and not self.failures:
            if not self.unscheduled:
                return "No unscheduled tasks to schedule."
            return "No tasks could fit in available time slots."
        plural = "" if self.scheduled_count == 1 else "s"
        msg = f"Scheduled {self.scheduled_count} task{plural} from today forward."
        if self.failures:
            msg += f" {len(self.failures)} could not be saved."
        return msg


def priority_sort_key(item: StatusedTask) -> tuple[int, int, int, int]:
    """priority desc, OVERDUE first, effort Low->High, shortest first."""
    return (
        -item.status.priority,
        0 if item.status.status == TaskStatus.OVERDUE else 1,
        item.task.effort.rank,
        item.task.minutes,
    )


def sort_by_priority(items: Iterable[StatusedTask]) -> list[StatusedTask]:
    return sorted(items, key=priority_sort_key)


def _is_sweep(t: Task) -> bool:
    return "sweep" in t.task_name.lower()


def _is_mop(t: Task) -> bool:
    name = t.task_name.lower()
    return "mop" in name and "sweep" not in name


def sweep_before_mop(items: list[StatusedTask]) -> list[StatusedTask]:
    """
    Move every sweep task that sits after the first mop task to just before it.
    All other tasks keep their relative order.
    """
    first_mop = next((i for i, it in enumerate(items) if _is_mop(it.task)), None)
    if first_mop is None:
        return list(items)

    late_sweeps = [it for it in items[first_mop:] if _is_sweep(it.task)]
    if not late_sweeps:
        return list(items)

    rest = [it for it in items[first_mop:] if not _is_sweep(it.task)]
    return [*items[:first_mop], *late_sweeps, *rest]


def group_similar(items: Sequence[StatusedTask]) -> list[list[StatusedTask]]:
    """
    Group (already sorted) tasks by (floor, category).

    Groups are ordered by mean priority, highest first; ties keep first-seen order.
    """
    groups: dict[tuple[str, str], list[StatusedTask]] = {}
    for it in items:
        groups.setdefault(it.task.group_key, []).append(it)

    ordered = sorted(
        groups.values(),
        key=lambda g: -(sum(it.priority for it in g) / len(g)),
    )
    return [sweep_before_mop(g) for g in ordered]


def _window_from(week: Sequence[Day], today: date) -> list[Day]:
    return [d for d in week if d.date >= today][:WEEK_DAYS]


def plan_smart_schedule(
    unscheduled: Iterable[Task],
    week: Sequence[Day],
    daily_budget: int,
    *,
    today: date | None = None,
) -> SchedulePlan:
    """
    Decide a day for every task that fits, without touching the store.

    `week` supplies each day's existing load. Only days from `today` onward are
    candidates (today defaults to the day flagged is_today, else the first day).
    """
    tasks = list(unscheduled)
    if today is None:
        today = next((d.date for d in week if d.is_today), week[0].date if week else None)

    window = _window_from(week, today) if today is not None else []
    # Private working copy: mutated as groups are placed, discarded after the run.
    load = {d.date: d.total_minutes for d in window}

    if not tasks or not window:
        return SchedulePlan(assignments=[], unscheduled=tasks, day_minutes=load)

    groups = group_similar(sort_by_priority(enrich(tasks, today)))

    assignments: list[Assignment] = []
    left: list[Task] = []

    for group in groups:
        group_minutes = sum(it.task.minutes for it in group)

        target = next((d for d in load if load[d] + group_minutes <= daily_budget), None)
        if target is not None:
            for it in group:
                assignments.append(Assignment(task_id=it.task.id, date=target, minutes=it.task.minutes))
            load[target] += group_minutes
            logger.debug(
                "Group %s (%d min, %d tasks) -> %s",
                group[0].task.group_key,
                group_minutes,
                len(group),
                target,
            )
            continue

        for it in group:
            minutes = it.task.minutes
            slot = next((d for d in load if load[d] + minutes <= daily_budget), None)
            if slot is None:
                left.append(it.task)
                logger.debug("Task %s (%d min) fits nowhere this week", it.task.id, minutes)
                continue
            assignments.append(Assignment(task_id=it.task.id, date=slot, minutes=minutes))
            load[slot] += minutes

    return SchedulePlan(assignments=assignments, unscheduled=left, day_minutes=load)


def smart_schedule(
    store: TaskRepo,
    unscheduled: Iterable[Task],
    week: Sequence[Day],
    daily_budget: int,
    *,
    today: date | None = None,
) -> ScheduleResult:
    """
    Plan, then persist each assignment in order.

    A declared store failure on one assignment is logged and recorded; the rest are
    still attempted. Anything else propagates.
    """
    plan = plan_smart_schedule(unscheduled, week, daily_budget, today=today)

    saved: list[Assignment] = []
    failures: list[AssignmentFailure] = []

    for a in plan.assignments:
        try:
            store.set_scheduled_date(a.task_id, a.date)
            saved.append(a)
        except TaskStoreError as e:
            logger.warning("set_scheduled_date failed task_id=%s date=%s: %s", a.task_id, a.date, e)
            failures.append(AssignmentFailure(assignment=a, error=str(e)))

    if not failures:
        outcome = Outcome.SUCCESS
    elif saved:
        outcome = Outcome.PARTIAL
    else:
        outcome = Outcome.FAILED

    logger.info(
        "Smart schedule: scheduled=%d failed=%d unplaced=%d budget=%d",
        len(saved),
        len(failures),
        len(plan.unscheduled),
        daily_budget,
    )
    return ScheduleResult(
        outcome=outcome,
        scheduled_count=len(saved),
        assignments=saved,
        failures=failures,
        unscheduled=plan.unscheduled,
    )


def resolve_daily_budget(store: TaskRepo, default: int = DEFAULT_DAILY_MINUTES) -> int:
    raw = store.get_setting("daily_minutes")
    try:
        value = int(raw)
    except (TypeError, ValueError):
        return default
    return value if value > 0 else default


def run_smart_schedule(
    store: TaskRepo,
    *,
    today: date,
    daily_budget: int | None = None,
    default_budget: int = DEFAULT_DAILY_MINUTES,
) -> ScheduleResult:
    """
    Load unscheduled tasks and this week's load from the store, then schedule.

    A store failure while loading yields a FAILED result with nothing written.
    """
    try:
        budget = daily_budget if daily_budget is not None else resolve_daily_budget(store, default_budget)

        unscheduled = store.list_unscheduled_tasks()
        if not unscheduled:
            logger.info("Smart schedule: nothing to schedule")
            return ScheduleResult(outcome=Outcome.SUCCESS, scheduled_count=0, assignments=[])

        week = build_week(store.list_tasks(), today)
    except TaskStoreError as e:
        logger.warning("Smart schedule: could not load tasks: %s", e)
        return ScheduleResult(outcome=Outcome.FAILED, scheduled_count=0, assignments=[])

    return smart_schedule(store, unscheduled, week, budget, today=today)


def unscheduled_by_priority(store: TaskRepo, today: date) -> list[StatusedTask]:
    """Unscheduled tasks in pick-list order (most urgent first)."""
    return sort_by_priority(enrich(store.list_unscheduled_tasks(), today))
