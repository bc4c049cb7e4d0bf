# src/cadence/core/results.py

from __future__ import annotations

"""
Result types returned to callers instead of raising for expected conditions
(nothing to do, unknown id, store write failed).
"""

from dataclasses import dataclass
from enum import StrEnum
from typing import Any


class Outcome(StrEnum):
    SUCCESS = "success"
    PARTIAL = "partial"
    NOT_FOUND = "not_found"
    INVALID = "invalid"
    FAILED = "failed"


@dataclass(frozen=True, slots=True)
class ActionResult:
    outcome: Outcome
    message: str
    task_id: int | None = None
    value: Any = None

    @property
    def ok(self) -> bool:
        return self.outcome == Outcome.SUCCESS

    @classmethod
    def success(cls, message: str, *, task_id: int | None = None, value: Any = None) -> ActionResult:
        return cls(Outcome.SUCCESS, message, task_id, value)

    @classmethod
    def not_found(cls, task_id: int) -> ActionResult:
        return cls(Outcome.NOT_FOUND, f"Task {task_id} not found.", task_id)

    @classmethod
    def invalid(cls, message: str, *, task_id: int | None = None) -> ActionResult:
        return cls(Outcome.INVALID, message, task_id)

    @classmethod
    def failed(cls, message: str, *, task_id: int | None = None) -> ActionResult:
        return cls(Outcome.FAILED, message, task_id)
