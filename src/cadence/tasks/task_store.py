# src/cadence/tasks/task_store.py

from __future__ import annotations

import contextlib
import logging
import sqlite3
from collections.abc import Iterator
from datetime import date, datetime, timezone
from pathlib import Path
from typing import Any

from ..core.ports import TaskNotFoundError, TaskStoreUnavailableError, TaskValidationError
from .task_models import DEFAULT_TIME_ESTIMATE, CompletionRecord, Effort, Task

logger = logging.getLogger(__name__)

DEFAULT_SETTINGS: dict[str, Any] = {
    "user_name": "there",
    "hourly_rate": 35,
    "daily_minutes": 30,
    "onboarding_completed": False,
}

_EDITABLE_FIELDS = ("task_name", "floor", "category", "cadence", "effort", "time_estimate", "scheduled_date")


def _dt_to_str(value: datetime | None) -> str | None:
    return value.isoformat() if value is not None else None


def _str_to_dt(raw: str | None) -> datetime | None:
    if not raw:
        return None
    try:
        return datetime.fromisoformat(raw)
    except ValueError:
        logger.warning("Unparseable timestamp in store: %r", raw)
        return None


def _date_to_str(value: date | None) -> str | None:
    return value.isoformat() if value is not None else None


def _str_to_date(raw: str | None) -> date | None:
    if not raw:
        return None
    try:
        return date.fromisoformat(raw[:10])
    except ValueError:
        logger.warning("Unparseable date in store: %r", raw)
        return None


def _clean_text(value: str | None) -> str | None:
    if value is None:
        return None
    value = value.strip()
    return value or None


def validate_task_fields(fields: dict[str, Any]) -> dict[str, Any]:
    """
    Normalize user-supplied task fields. Raises TaskValidationError.

    Shared by the SQLite and REST stores so both accept the same input.
    """
    out: dict[str, Any] = {}
    for key, value in fields.items():
        if key not in _EDITABLE_FIELDS:
            raise TaskValidationError(f"Unknown task field: {key}")

        if key == "task_name":
            name = (value or "").strip()
            if not name:
                raise TaskValidationError("task_name is required")
            out[key] = name
        elif key in ("floor", "category"):
            out[key] = _clean_text(value)
        elif key == "cadence":
            if value is None:
                out[key] = None
                continue
            try:
                cadence = int(value)
            except (TypeError, ValueError):
                raise TaskValidationError(f"cadence must be an integer, got {value!r}") from None
            if cadence <= 0:
                raise TaskValidationError("cadence must be positive")
            out[key] = cadence
        elif key == "time_estimate":
            if value is None:
                out[key] = DEFAULT_TIME_ESTIMATE
                continue
            try:
                minutes = int(value)
            except (TypeError, ValueError):
                raise TaskValidationError(f"time_estimate must be an integer, got {value!r}") from None
            if minutes <= 0:
                raise TaskValidationError("time_estimate must be positive")
            out[key] = minutes
        elif key == "effort":
            out[key] = value if isinstance(value, Effort) else Effort.from_db(value)
        elif key == "scheduled_date":
            if value is not None and not isinstance(value, date):
                raise TaskValidationError("scheduled_date must be a date or None")
            out[key] = value
    return out


def validate_setting(key: str, value: Any) -> None:
    if key not in DEFAULT_SETTINGS:
        raise TaskValidationError(f"Unknown setting: {key}")
    if key in ("daily_minutes", "hourly_rate") and (
        isinstance(value, bool) or not isinstance(value, int) or value < 0
    ):
        raise TaskValidationError(f"{key} must be a non-negative integer")
    if key == "daily_minutes" and value == 0:
        raise TaskValidationError("daily_minutes must be positive")


class TaskStore:
    """
    SQLite task store.

    Tables:
    - tasks: the recurring chores
    - completion_history: append-only completion log (never updated or deleted)
    - settings: a single row (id = 1) of user preferences

    The schema is migration-safe:
    - create table if missing
    - use PRAGMA table_info to detect missing columns
    - add columns with ALTER TABLE only when needed

    Each method opens its own SQLite connection.
    """

    def __init__(self, db_path: str | Path = "cadence.sqlite3") -> None:
        self._db_path = Path(db_path)
        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        self._ensure_schema()
        logger.info("TaskStore ready db=%s total=%s", self._db_path, self.count_tasks())

    def close(self) -> None:
        """Compatibility hook for shutdown (no persistent connections to close)."""
        return

    # ---- low-level helpers ----

    def _get_conn(self) -> sqlite3.Connection:
        conn = sqlite3.connect(str(self._db_path), timeout=30.0)
        conn.row_factory = sqlite3.Row
        with contextlib.suppress(sqlite3.Error):
            conn.execute("PRAGMA journal_mode=WAL")
        return conn

    @contextlib.contextmanager
    def _conn(self) -> Iterator[sqlite3.Connection]:
        try:
            conn = self._get_conn()
        except sqlite3.Error as e:
            raise TaskStoreUnavailableError(f"cannot open {self._db_path}: {e}") from e
        try:
            yield conn
        except sqlite3.Error as e:
            raise TaskStoreUnavailableError(str(e)) from e
        finally:
            conn.close()

    def _ensure_schema(self) -> None:
        with self._conn() as conn:
            cur = conn.cursor()

            cur.execute(
                """
                CREATE TABLE IF NOT EXISTS tasks (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    task_name TEXT NOT NULL,
                    floor TEXT,
                    category TEXT,
                    cadence INTEGER,
                    effort TEXT NOT NULL DEFAULT 'Medium',
                    time_estimate INTEGER NOT NULL DEFAULT 15,
                    last_completed TEXT,
                    completion_count INTEGER NOT NULL DEFAULT 0,
                    scheduled_date TEXT,
                    created_at TEXT NOT NULL
                )
                """
            )
            cur.execute(
                """
                CREATE TABLE IF NOT EXISTS completion_history (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    task_id INTEGER NOT NULL,
                    task_name TEXT NOT NULL,
                    floor TEXT,
                    category TEXT,
                    effort TEXT,
                    time_minutes INTEGER,
                    scheduled_date TEXT,
                    completed_at TEXT NOT NULL
                )
                """
            )
            cur.execute(
                """
                CREATE TABLE IF NOT EXISTS settings (
                    id INTEGER PRIMARY KEY CHECK (id = 1),
                    user_name TEXT NOT NULL DEFAULT 'there',
                    hourly_rate INTEGER NOT NULL DEFAULT 35,
                    daily_minutes INTEGER NOT NULL DEFAULT 30,
                    onboarding_completed INTEGER NOT NULL DEFAULT 0
                )
                """
            )

            # Migrations (safe): add missing columns.
            cur.execute("PRAGMA table_info(tasks)")
            cols = {row["name"] for row in cur.fetchall()}

            def add_col(name: str, decl: str) -> None:
                if name in cols:
                    return
                cur.execute(f"ALTER TABLE tasks ADD COLUMN {name} {decl}")
                logger.info("TaskStore migration: added column %s", name)

            add_col("floor", "TEXT")
            add_col("category", "TEXT")
            add_col("effort", "TEXT NOT NULL DEFAULT 'Medium'")
            add_col("time_estimate", "INTEGER NOT NULL DEFAULT 15")
            add_col("last_completed", "TEXT")
            add_col("completion_count", "INTEGER NOT NULL DEFAULT 0")
            add_col("scheduled_date", "TEXT")
            add_col("created_at", "TEXT NOT NULL DEFAULT ''")

            cur.execute("CREATE INDEX IF NOT EXISTS idx_tasks_scheduled ON tasks(scheduled_date)")
            cur.execute(
                "CREATE INDEX IF NOT EXISTS idx_history_completed ON completion_history(completed_at)"
            )
            cur.execute("INSERT OR IGNORE INTO settings(id) VALUES (1)")

            conn.commit()

    @staticmethod
    def _row_to_task(row: sqlite3.Row) -> Task:
        return Task(
            id=int(row["id"]),
            task_name=str(row["task_name"] or ""),
            cadence=int(row["cadence"]) if row["cadence"] is not None else None,
            floor=row["floor"],
            category=row["category"],
            effort=Effort.from_db(row["effort"]),
            time_estimate=int(row["time_estimate"] or DEFAULT_TIME_ESTIMATE),
            last_completed=_str_to_dt(row["last_completed"]),
            completion_count=int(row["completion_count"] or 0),
            scheduled_date=_str_to_date(row["scheduled_date"]),
            created_at=_str_to_dt(row["created_at"]),
        )

    @staticmethod
    def _row_to_completion(row: sqlite3.Row) -> CompletionRecord:
        completed_at = _str_to_dt(row["completed_at"])
        return CompletionRecord(
            id=int(row["id"]),
            task_id=int(row["task_id"]),
            task_name=str(row["task_name"] or ""),
            floor=row["floor"],
            category=row["category"],
            effort=Effort.from_db(row["effort"]),
            time_minutes=int(row["time_minutes"]) if row["time_minutes"] is not None else None,
            scheduled_date=_str_to_date(row["scheduled_date"]),
            completed_at=completed_at or datetime.fromtimestamp(0, tz=timezone.utc),
        )

    # ---- tasks ----

    def count_tasks(self) -> int:
        with self._conn() as conn:
            (n,) = conn.execute("SELECT COUNT(*) FROM tasks").fetchone()
            return int(n)

    def list_tasks(self) -> list[Task]:
        with self._conn() as conn:
            rows = conn.execute("SELECT * FROM tasks ORDER BY id ASC").fetchall()
            return [self._row_to_task(r) for r in rows]

    def list_unscheduled_tasks(self) -> list[Task]:
        with self._conn() as conn:
            rows = conn.execute(
                "SELECT * FROM tasks WHERE scheduled_date IS NULL ORDER BY id ASC"
            ).fetchall()
            return [self._row_to_task(r) for r in rows]

    def get_task_by_id(self, task_id: int) -> Task | None:
        with self._conn() as conn:
            row = conn.execute("SELECT * FROM tasks WHERE id = ?", (int(task_id),)).fetchone()
            return self._row_to_task(row) if row else None

    def create_task(
        self,
        *,
        task_name: str,
        cadence: int | None,
        floor: str | None = None,
        category: str | None = None,
        effort: Effort | str | None = None,
        time_estimate: int | None = None,
    ) -> Task:
        fields = validate_task_fields(
            {
                "task_name": task_name,
                "cadence": cadence,
                "floor": floor,
                "category": category,
                "effort": effort,
                "time_estimate": time_estimate,
            }
        )
        now = datetime.now(timezone.utc)

        with self._conn() as conn:
            cur = conn.execute(
                """
                INSERT INTO tasks(task_name, floor, category, cadence, effort, time_estimate, created_at)
                VALUES (?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    fields["task_name"],
                    fields["floor"],
                    fields["category"],
                    fields["cadence"],
                    fields["effort"].value,
                    fields["time_estimate"],
                    _dt_to_str(now),
                ),
            )
            conn.commit()
            rowid = cur.lastrowid
            if rowid is None:
                raise RuntimeError("SQLite did not return lastrowid for tasks insert")

        task_id = int(rowid)
        logger.debug("Task added id=%s name=%s cadence=%s", task_id, fields["task_name"], fields["cadence"])
        task = self.get_task_by_id(task_id)
        if task is None:
            raise TaskNotFoundError(task_id)
        return task

    def update_task(self, task_id: int, **fields: Any) -> Task:
        clean = validate_task_fields(fields)
        if clean:
            assignments: list[str] = []
            params: list[Any] = []
            for key, value in clean.items():
                assignments.append(f"{key} = ?")
                if isinstance(value, Effort):
                    params.append(value.value)
                elif isinstance(value, date):
                    params.append(_date_to_str(value))
                else:
                    params.append(value)
            params.append(int(task_id))

            with self._conn() as conn:
                cur = conn.execute(f"UPDATE tasks SET {', '.join(assignments)} WHERE id = ?", params)
                conn.commit()
                if cur.rowcount != 1:
                    raise TaskNotFoundError(task_id)
            logger.debug("Task updated id=%s fields=%s", task_id, sorted(clean))

        task = self.get_task_by_id(task_id)
        if task is None:
            raise TaskNotFoundError(task_id)
        return task

    def delete_task(self, task_id: int) -> None:
        """Delete a task. Completion history is left untouched."""
        with self._conn() as conn:
            cur = conn.execute("DELETE FROM tasks WHERE id = ?", (int(task_id),))
            conn.commit()
            if cur.rowcount != 1:
                raise TaskNotFoundError(task_id)
        logger.info("Task deleted id=%s", task_id)

    def set_scheduled_date(self, task_id: int, day: date | None) -> None:
        with self._conn() as conn:
            cur = conn.execute(
                "UPDATE tasks SET scheduled_date = ? WHERE id = ?",
                (_date_to_str(day), int(task_id)),
            )
            conn.commit()
            if cur.rowcount != 1:
                raise TaskNotFoundError(task_id)
        logger.debug("Task %s scheduled_date -> %s", task_id, day)

    def complete_task(
        self,
        task_id: int,
        scheduled_date: date | None = None,
        *,
        now: datetime | None = None,
    ) -> CompletionRecord:
        """
        Mark a task done:
          last_completed   -> now
          completion_count -> +1
          scheduled_date   -> NULL
        and append a completion_history row, in one transaction.
        """
        if now is None:
            now = datetime.now(timezone.utc)

        task = self.get_task_by_id(task_id)
        if task is None:
            raise TaskNotFoundError(task_id)

        with self._conn() as conn:
            conn.execute(
                """
                UPDATE tasks
                SET last_completed = ?,
                    completion_count = completion_count + 1,
                    scheduled_date = NULL
                WHERE id = ?
                """,
                (_dt_to_str(now), int(task_id)),
            )
            cur = conn.execute(
                """
                INSERT INTO completion_history(
                    task_id, task_name, floor, category, effort,
                    time_minutes, scheduled_date, completed_at
                )
                VALUES (?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    task.id,
                    task.task_name,
                    task.floor,
                    task.category,
                    task.effort.value,
                    task.time_estimate,
                    _date_to_str(scheduled_date),
                    _dt_to_str(now),
                ),
            )
            conn.commit()
            history_id = cur.lastrowid

        logger.info("Task %s completed (count=%s)", task_id, task.completion_count + 1)
        return CompletionRecord(
            id=int(history_id) if history_id is not None else None,
            task_id=task.id,
            task_name=task.task_name,
            floor=task.floor,
            category=task.category,
            effort=task.effort,
            time_minutes=task.time_estimate,
            scheduled_date=scheduled_date,
            completed_at=now,
        )

    # ---- history ----

    def list_completions(self, limit: int | None = None) -> list[CompletionRecord]:
        """Completion history, newest first."""
        sql = "SELECT * FROM completion_history ORDER BY completed_at DESC, id DESC"
        params: tuple[Any, ...] = ()
        if limit is not None:
            sql += " LIMIT ?"
            params = (int(limit),)
        with self._conn() as conn:
            return [self._row_to_completion(r) for r in conn.execute(sql, params).fetchall()]

    # ---- settings ----

    def get_settings(self) -> dict[str, Any]:
        with self._conn() as conn:
            row = conn.execute("SELECT * FROM settings WHERE id = 1").fetchone()
        if row is None:
            return dict(DEFAULT_SETTINGS)
        out = dict(DEFAULT_SETTINGS)
        for key in DEFAULT_SETTINGS:
            if row[key] is not None:
                out[key] = row[key]
        out["onboarding_completed"] = bool(out["onboarding_completed"])
        return out

    def get_setting(self, key: str) -> Any:
        return self.get_settings().get(key)

    def update_setting(self, key: str, value: Any) -> None:
        validate_setting(key, value)
        with self._conn() as conn:
            conn.execute(f"UPDATE settings SET {key} = ? WHERE id = 1", (value,))
            conn.commit()
        logger.info("Setting updated %s=%s", key, value)
