# src/cadence/core/state.py

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from typing import Any

from .ports import TaskRepo


@dataclass
class AppState:
    # Settings object (cadence.config.Settings or a test stand-in).
    settings: Any
    task_store: TaskRepo

    # Caller (console) view state: which week is shown and which day is selected.
    week_offset: int = 0
    selected_day: date | None = None

    # Fixed "today" for demos/tests; None means the system date.
    today_override: date | None = None

    def today(self) -> date:
        return self.today_override or date.today()
