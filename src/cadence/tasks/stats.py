# src/cadence/tasks/stats.py

from __future__ import annotations

import logging
from collections import Counter
from collections.abc import Sequence
from dataclasses import dataclass
from datetime import date, datetime, timedelta, timezone

from ..core.ports import TaskRepo
from .status import local_date, round_half_up
from .task_models import DEFAULT_TIME_ESTIMATE, CompletionRecord, Task

logger = logging.getLogger(__name__)

DEFAULT_HOURLY_RATE = 35
UNCATEGORIZED = "Uncategorized"
RECENT_COMPLETIONS = 10


@dataclass(frozen=True, slots=True)
class Stats:
    total_tasks: int
    completed_this_week: int
    completed_this_month: int
    total_minutes: int
    total_hours: float
    total_value: int
    current_streak: int
    longest_streak: int
    avg_time_per_task: int
    total_completions: int


@dataclass(frozen=True, slots=True)
class CategoryCount:
    category: str
    count: int


@dataclass(frozen=True, slots=True)
class StatsPage:
    stats: Stats
    top_categories: list[CategoryCount]
    recent: list[CompletionRecord]


def _aware(dt: datetime) -> datetime:
    return dt if dt.tzinfo is not None else dt.astimezone()


def streaks(days: Sequence[date]) -> tuple[int, int]:
    """
    (current, longest) runs of consecutive completion days.

    The current streak is the run that ends on the most recent completion day.
    """
    unique = sorted(set(days), reverse=True)
    if not unique:
        return 0, 0

    current = 0
    longest = 0
    run = 0
    prev: date | None = None
    for d in unique:
        if prev is not None and prev - d == timedelta(days=1):
            run += 1
        else:
            if prev is not None and current == 0:
                current = run
            run = 1
        longest = max(longest, run)
        prev = d
    if current == 0:
        current = run
    return current, longest


def compute_stats(
    tasks: Sequence[Task],
    history: Sequence[CompletionRecord],
    *,
    now: datetime,
    hourly_rate: int = DEFAULT_HOURLY_RATE,
) -> Stats:
    now = _aware(now)
    week_ago = now - timedelta(days=7)
    month_ago = now - timedelta(days=30)

    completed = [_aware(h.completed_at) for h in history]
    total_minutes = sum(h.time_minutes or DEFAULT_TIME_ESTIMATE for h in history)
    # One decimal place, halves up: 15 min -> 0.3 h.
    total_hours = round_half_up(total_minutes / 60 * 10) / 10
    current, longest = streaks([local_date(c) for c in completed])

    return Stats(
        total_tasks=len(tasks),
        completed_this_week=sum(1 for c in completed if c >= week_ago),
        completed_this_month=sum(1 for c in completed if c >= month_ago),
        total_minutes=total_minutes,
        total_hours=total_hours,
        total_value=round_half_up(total_hours * hourly_rate),
        current_streak=current,
        longest_streak=longest,
        avg_time_per_task=round_half_up(total_minutes / len(history)) if history else 0,
        total_completions=len(history),
    )


def top_categories(history: Sequence[CompletionRecord], limit: int = 5) -> list[CategoryCount]:
    counts = Counter(h.category or UNCATEGORIZED for h in history)
    return [CategoryCount(category=c, count=n) for c, n in counts.most_common(limit)]


def load_stats(
    store: TaskRepo,
    *,
    now: datetime | None = None,
    recent_limit: int = RECENT_COMPLETIONS,
) -> StatsPage:
    """Everything the stats view shows, from a single read of the completion history."""
    if now is None:
        now = datetime.now(timezone.utc)

    rate = store.get_setting("hourly_rate")
    try:
        hourly_rate = int(rate) if rate is not None else DEFAULT_HOURLY_RATE
    except (TypeError, ValueError):
        logger.warning("Invalid hourly_rate setting %r; using %s", rate, DEFAULT_HOURLY_RATE)
        hourly_rate = DEFAULT_HOURLY_RATE

    # Newest first.
    history = store.list_completions()
    return StatsPage(
        stats=compute_stats(store.list_tasks(), history, now=now, hourly_rate=hourly_rate),
        top_categories=top_categories(history),
        recent=list(history[: max(0, recent_limit)]),
    )
