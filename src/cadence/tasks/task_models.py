# src/cadence/tasks/task_models.py

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from enum import StrEnum
from typing import Literal

DEFAULT_TIME_ESTIMATE = 15
DEFAULT_FLOOR = "Other"
DEFAULT_CATEGORY = "General"

NOT_APPLICABLE: Literal["N/A"] = "N/A"


class Effort(StrEnum):
    LOW = "Low"
    MEDIUM = "Medium"
    HIGH = "High"

    @property
    def rank(self) -> int:
        return _EFFORT_RANK[self]

    @classmethod
    def from_db(cls, raw: str | None) -> Effort:
        if not raw:
            return cls.MEDIUM
        try:
            return cls(raw.strip().capitalize())
        except ValueError:
            return cls.MEDIUM


_EFFORT_RANK = {Effort.LOW: 0, Effort.MEDIUM: 1, Effort.HIGH: 2}


class TaskStatus(StrEnum):
    """Derived urgency status. Never stored, always recomputed for a given day."""

    NOT_STARTED = "Not Started"
    ON_TRACK = "On Track"
    DUE_SOON = "Due Soon"
    OVERDUE = "OVERDUE"


@dataclass(slots=True)
class Task:
    id: int
    task_name: str
    cadence: int | None

    floor: str | None = None
    category: str | None = None
    effort: Effort = Effort.MEDIUM
    time_estimate: int = DEFAULT_TIME_ESTIMATE

    last_completed: datetime | None = None
    completion_count: int = 0
    scheduled_date: date | None = None
    created_at: datetime | None = None

    @property
    def minutes(self) -> int:
        return self.time_estimate or DEFAULT_TIME_ESTIMATE

    @property
    def group_key(self) -> tuple[str, str]:
        return (self.floor or DEFAULT_FLOOR, self.category or DEFAULT_CATEGORY)


@dataclass(frozen=True, slots=True)
class StatusResult:
    status: TaskStatus
    priority: int
    days_overdue: int | Literal["N/A"]
    next_due: date | None


@dataclass(frozen=True, slots=True)
class StatusedTask:
    """A task paired with the status derived for one particular day."""

    task: Task
    status: StatusResult

    @property
    def id(self) -> int:
        return self.task.id

    @property
    def priority(self) -> int:
        return self.status.priority


@dataclass(frozen=True, slots=True)
class CompletionRecord:
    """Append-only history row written when a task is completed."""

    id: int | None
    task_id: int
    task_name: str
    floor: str | None
    category: str | None
    effort: Effort
    time_minutes: int | None
    scheduled_date: date | None
    completed_at: datetime


@dataclass(slots=True)
class Day:
    date: date
    day_name: str
    is_today: bool
    is_yesterday: bool
    is_past: bool

    todo_tasks: list[Task] = field(default_factory=list)
    done_tasks: list[Task] = field(default_factory=list)
    total_minutes: int = 0
