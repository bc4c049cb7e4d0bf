# tests/test_task_scheduler.py

from __future__ import annotations

from collections import defaultdict
from datetime import datetime, timedelta

import pytest

from cadence.core.results import Outcome
from cadence.tasks.status import enrich
from cadence.tasks.task_models import Effort
from cadence.tasks.task_scheduler import (
    plan_smart_schedule,
    run_smart_schedule,
    smart_schedule,
    sort_by_priority,
    sweep_before_mop,
)
from cadence.tasks.week import build_week

from .fakes import TODAY, FakeTaskRepo, make_task

TOMORROW = TODAY + timedelta(days=1)


def _days_ago(n: int) -> datetime:
    d = TODAY - timedelta(days=n)
    return datetime(d.year, d.month, d.day, 8, 0)


def _empty_week():
    return build_week([], TODAY)


def test_same_group_lands_on_same_day() -> None:
    a = make_task(1, "Clean sinks", floor="2F", category="Restroom", minutes=10)
    b = make_task(2, "Restock paper", floor="2F", category="Restroom", minutes=10)

    plan = plan_smart_schedule([a, b], _empty_week(), 30)

    assert [(x.task_id, x.date) for x in plan.assignments] == [(1, TODAY), (2, TODAY)]
    assert plan.day_minutes[TODAY] == 20
    assert plan.unscheduled == []


def test_task_larger_than_budget_is_never_placed() -> None:
    c = make_task(3, "Deep clean", minutes=40)

    plan = plan_smart_schedule([c], _empty_week(), 30)

    assert plan.assignments == []
    assert [t.id for t in plan.unscheduled] == [3]


def test_sweep_precedes_mop_within_group() -> None:
    mop = make_task(1, "Mop Lobby", floor="1F", category="Lobby", minutes=10)
    sweep = make_task(2, "Sweep Lobby", floor="1F", category="Lobby", minutes=10)

    plan = plan_smart_schedule([mop, sweep], _empty_week(), 60)

    order = [x.task_id for x in plan.assignments]
    assert order.index(2) < order.index(1)


def test_sweep_before_mop_keeps_other_tasks_in_place() -> None:
    items = enrich(
        [
            make_task(1, "Dust shelves"),
            make_task(2, "Mop kitchen"),
            make_task(3, "Empty bins"),
            make_task(4, "sweep kitchen"),
        ],
        TODAY,
    )
    assert [it.id for it in sweep_before_mop(items)] == [1, 4, 2, 3]


def test_group_falls_back_to_per_task_placement() -> None:
    tasks = [make_task(i, f"Chore {i}", floor="3F", category="Office", minutes=15) for i in (1, 2, 3)]

    plan = plan_smart_schedule(tasks, _empty_week(), 30)

    assert [(x.task_id, x.date) for x in plan.assignments] == [
        (1, TODAY),
        (2, TODAY),
        (3, TOMORROW),
    ]
    assert plan.day_minutes[TODAY] == 30
    assert plan.day_minutes[TOMORROW] == 15


def test_groups_ordered_by_mean_priority() -> None:
    fresh = make_task(1, "New chore", floor="1F", category="Hall", minutes=20)
    # cadence 2, due 4 days ago -> priority 200
    late = make_task(2, "Late chore", floor="2F", category="Hall", minutes=20, cadence=2, last_completed=_days_ago(6))

    plan = plan_smart_schedule([fresh, late], _empty_week(), 30)

    assert [(x.task_id, x.date) for x in plan.assignments] == [(2, TODAY), (1, TOMORROW)]


def test_sort_tie_breaks_effort_then_time() -> None:
    items = enrich(
        [
            make_task(1, minutes=20, effort=Effort.LOW),
            make_task(2, minutes=5, effort=Effort.HIGH),
            make_task(3, minutes=10, effort=Effort.MEDIUM),
            make_task(4, minutes=10, effort=Effort.LOW),
        ],
        TODAY,
    )
    assert [it.id for it in sort_by_priority(items)] == [4, 1, 3, 2]


def test_sort_puts_overdue_first_on_equal_priority() -> None:
    # Both priority 50: one is 1 day late on a 2-day cadence, one is due today.
    due_soon = make_task(1, cadence=7, last_completed=_days_ago(7))
    overdue = make_task(2, cadence=2, last_completed=_days_ago(3))
    items = enrich([due_soon, overdue], TODAY)
    assert [it.priority for it in items] == [50, 50]
    assert [it.id for it in sort_by_priority(items)] == [2, 1]


def test_budget_never_exceeded_and_overloaded_day_untouched() -> None:
    preloaded = [
        make_task(100, "Big job", minutes=40, scheduled_date=TODAY),
        make_task(101, "Half job", minutes=20, scheduled_date=TOMORROW),
    ]
    week = build_week(preloaded, TODAY)
    minutes = [5, 25, 10, 15, 30, 20, 5, 10, 25, 15, 10, 5, 20]
    floors = ["1F", "2F", "3F"]
    unscheduled = [
        make_task(i, f"Chore {i}", floor=floors[i % 3], category="Misc", minutes=m)
        for i, m in enumerate(minutes, start=1)
    ]

    plan = plan_smart_schedule(unscheduled, week, 30)

    added: dict = defaultdict(int)
    for a in plan.assignments:
        added[a.date] += a.minutes
    assert TODAY not in added
    for day in week:
        if day.date in added:
            assert day.total_minutes + added[day.date] <= 30
    placed = {a.task_id for a in plan.assignments} | {t.id for t in plan.unscheduled}
    assert placed == {t.id for t in unscheduled}


def test_planning_does_not_mutate_input_week() -> None:
    week = build_week([make_task(9, minutes=10, scheduled_date=TODAY)], TODAY)
    before = [d.total_minutes for d in week]

    plan_smart_schedule([make_task(1, minutes=10)], week, 30)

    assert [d.total_minutes for d in week] == before


def test_window_starts_at_today() -> None:
    week = build_week([], TODAY, start=TODAY - timedelta(days=1))

    plan = plan_smart_schedule([make_task(1, minutes=10)], week, 30, today=TODAY)

    assert plan.assignments[0].date == TODAY


def test_empty_input_schedules_nothing_and_writes_nothing() -> None:
    repo = FakeTaskRepo()

    result = smart_schedule(repo, [], _empty_week(), 30)

    assert result.outcome == Outcome.SUCCESS
    assert result.scheduled_count == 0
    assert repo.calls == []


def test_store_failure_is_partial_and_does_not_stop_other_writes() -> None:
    tasks = [make_task(i, f"Chore {i}", floor="1F", minutes=5) for i in (1, 2, 3)]
    repo = FakeTaskRepo(tasks, fail_ids={2})

    result = smart_schedule(repo, tasks, _empty_week(), 30)

    assert result.outcome == Outcome.PARTIAL
    assert result.scheduled_count == 2
    assert [f.assignment.task_id for f in result.failures] == [2]
    assert [c[0] for c in repo.calls] == [1, 2, 3]
    assert repo.tasks[3].scheduled_date == TODAY
    assert repo.tasks[2].scheduled_date is None


def test_all_writes_failing_reports_failed() -> None:
    tasks = [make_task(1, minutes=5)]
    repo = FakeTaskRepo(tasks, fail_ids={1})

    result = smart_schedule(repo, tasks, _empty_week(), 30)

    assert result.outcome == Outcome.FAILED
    assert result.scheduled_count == 0


def test_unexpected_store_error_propagates() -> None:
    tasks = [make_task(1, minutes=5)]
    repo = FakeTaskRepo(tasks, crash_ids={1})

    with pytest.raises(RuntimeError):
        smart_schedule(repo, tasks, _empty_week(), 30)


def test_run_smart_schedule_uses_store_budget_and_existing_load() -> None:
    repo = FakeTaskRepo(
        [
            make_task(1, "Already planned", minutes=20, scheduled_date=TODAY),
            make_task(2, "Needs a day", minutes=15),
        ],
        settings={"daily_minutes": 30},
    )

    result = run_smart_schedule(repo, today=TODAY)

    assert result.scheduled_count == 1
    assert repo.tasks[2].scheduled_date == TOMORROW


def test_run_smart_schedule_defaults_budget_to_30() -> None:
    repo = FakeTaskRepo([make_task(1, minutes=30), make_task(2, minutes=31)])

    result = run_smart_schedule(repo, today=TODAY)

    assert result.scheduled_count == 1
    assert repo.tasks[1].scheduled_date == TODAY
    assert [t.id for t in result.unscheduled] == [2]
    assert result.message.startswith("Scheduled 1 task ")


def test_run_smart_schedule_with_nothing_unscheduled() -> None:
    repo = FakeTaskRepo([make_task(1, scheduled_date=TODAY)])

    result = run_smart_schedule(repo, today=TODAY)

    assert result.scheduled_count == 0
    assert result.message == "No unscheduled tasks to schedule."
    assert repo.calls == []


def test_run_smart_schedule_reports_failed_when_store_cannot_be_read() -> None:
    repo = FakeTaskRepo([make_task(1, minutes=10)], reads_down=True)

    result = run_smart_schedule(repo, today=TODAY)

    assert result.outcome == Outcome.FAILED
    assert result.scheduled_count == 0
    assert result.message == "Error scheduling tasks."
    assert repo.calls == []


def test_run_smart_schedule_uses_default_budget_when_store_has_none() -> None:
    repo = FakeTaskRepo([make_task(1, minutes=40)])

    result = run_smart_schedule(repo, today=TODAY, default_budget=45)

    assert result.scheduled_count == 1
    assert repo.tasks[1].scheduled_date == TODAY
