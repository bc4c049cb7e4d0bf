# src/cadence/tasks/rest_store.py

from __future__ import annotations

"""
Task store backed by the hosted PostgREST-style backend (tables: tasks,
completion_history, settings) that the web app talks to.

Every call is a single synchronous HTTP request. Transport errors and non-2xx
responses surface as TaskStoreUnavailableError so callers can report them.
"""

import logging
from datetime import date, datetime, timezone
from typing import Any

import httpx

from ..core.ports import TaskNotFoundError, TaskStoreUnavailableError
from .task_models import DEFAULT_TIME_ESTIMATE, CompletionRecord, Effort, Task
from .task_store import DEFAULT_SETTINGS, validate_setting, validate_task_fields

logger = logging.getLogger(__name__)

_RETURN_REPRESENTATION = {"Prefer": "return=representation"}


def _parse_dt(raw: Any) -> datetime | None:
    if not raw:
        return None
    try:
        # PostgREST may send a trailing "Z".
        return datetime.fromisoformat(str(raw).replace("Z", "+00:00"))
    except ValueError:
        logger.warning("Unparseable timestamp from backend: %r", raw)
        return None


def _parse_date(raw: Any) -> date | None:
    if not raw:
        return None
    try:
        return date.fromisoformat(str(raw)[:10])
    except ValueError:
        logger.warning("Unparseable date from backend: %r", raw)
        return None


def _to_json(value: Any) -> Any:
    if isinstance(value, Effort):
        return value.value
    if isinstance(value, (date, datetime)):
        return value.isoformat()
    return value


def task_from_json(row: dict[str, Any]) -> Task:
    cadence = row.get("cadence")
    return Task(
        id=int(row["id"]),
        task_name=str(row.get("task_name") or ""),
        cadence=int(cadence) if cadence else None,
        floor=row.get("floor") or None,
        category=row.get("category") or None,
        effort=Effort.from_db(row.get("effort")),
        time_estimate=int(row.get("time_estimate") or DEFAULT_TIME_ESTIMATE),
        last_completed=_parse_dt(row.get("last_completed")),
        completion_count=int(row.get("completion_count") or 0),
        scheduled_date=_parse_date(row.get("scheduled_date")),
        created_at=_parse_dt(row.get("created_at")),
    )


def completion_from_json(row: dict[str, Any]) -> CompletionRecord:
    minutes = row.get("time_minutes")
    return CompletionRecord(
        id=int(row["id"]) if row.get("id") is not None else None,
        task_id=int(row["task_id"]),
        task_name=str(row.get("task_name") or ""),
        floor=row.get("floor"),
        category=row.get("category"),
        effort=Effort.from_db(row.get("effort")),
        time_minutes=int(minutes) if minutes is not None else None,
        scheduled_date=_parse_date(row.get("scheduled_date")),
        completed_at=_parse_dt(row.get("completed_at")) or datetime.fromtimestamp(0, tz=timezone.utc),
    )


class RestTaskStore:
    """TaskRepo over the backend's REST endpoints ({base_url}/rest/v1/<table>)."""

    def __init__(
        self,
        base_url: str,
        api_key: str,
        *,
        timeout: float = 10.0,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        if not base_url or not base_url.strip():
            raise ValueError("base_url is required")
        if not api_key or not api_key.strip():
            raise ValueError("api_key is required")

        self._client = httpx.Client(
            base_url=f"{base_url.rstrip('/')}/rest/v1",
            headers={"apikey": api_key, "Authorization": f"Bearer {api_key}"},
            timeout=timeout,
            transport=transport,
        )
        logger.info("RestTaskStore ready base_url=%s", base_url)

    def close(self) -> None:
        self._client.close()

    # ---- low-level helpers ----

    def _request(
        self,
        method: str,
        table: str,
        *,
        params: dict[str, Any] | None = None,
        json: Any = None,
        headers: dict[str, str] | None = None,
    ) -> Any:
        try:
            resp = self._client.request(method, f"/{table}", params=params, json=json, headers=headers)
        except httpx.HTTPError as e:
            raise TaskStoreUnavailableError(f"{method} {table} failed: {e}") from e

        if resp.is_error:
            raise TaskStoreUnavailableError(f"{method} {table} -> HTTP {resp.status_code}: {resp.text[:200]}")

        if not resp.content:
            return None
        try:
            return resp.json()
        except ValueError as e:
            raise TaskStoreUnavailableError(f"{method} {table}: invalid JSON response") from e

    def _select(self, table: str, **params: Any) -> list[dict[str, Any]]:
        data = self._request("GET", table, params={"select": "*", **params})
        return data if isinstance(data, list) else []

    def _patch_task(self, task_id: int, values: dict[str, Any]) -> dict[str, Any]:
        data = self._request(
            "PATCH",
            "tasks",
            params={"id": f"eq.{int(task_id)}"},
            json={k: _to_json(v) for k, v in values.items()},
            headers=_RETURN_REPRESENTATION,
        )
        if not data:
            raise TaskNotFoundError(task_id)
        return data[0]

    # ---- tasks ----

    def count_tasks(self) -> int:
        return len(self._select("tasks", select="id"))

    def list_tasks(self) -> list[Task]:
        return [task_from_json(r) for r in self._select("tasks", order="id.asc")]

    def list_unscheduled_tasks(self) -> list[Task]:
        rows = self._select("tasks", scheduled_date="is.null", order="id.asc")
        return [task_from_json(r) for r in rows]

    def get_task_by_id(self, task_id: int) -> Task | None:
        rows = self._select("tasks", id=f"eq.{int(task_id)}")
        return task_from_json(rows[0]) if rows else None

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
        # The backend table still carries the legacy status/priority columns.
        payload = {k: _to_json(v) for k, v in fields.items()}
        payload.update({"priority": 100, "status": "Not Started"})

        data = self._request("POST", "tasks", json=[payload], headers=_RETURN_REPRESENTATION)
        if not data:
            raise TaskStoreUnavailableError("POST tasks returned no row")
        task = task_from_json(data[0])
        logger.debug("Task added id=%s name=%s", task.id, task.task_name)
        return task

    def update_task(self, task_id: int, **fields: Any) -> Task:
        clean = validate_task_fields(fields)
        if not clean:
            task = self.get_task_by_id(task_id)
            if task is None:
                raise TaskNotFoundError(task_id)
            return task
        return task_from_json(self._patch_task(task_id, clean))

    def delete_task(self, task_id: int) -> None:
        data = self._request(
            "DELETE",
            "tasks",
            params={"id": f"eq.{int(task_id)}"},
            headers=_RETURN_REPRESENTATION,
        )
        if not data:
            raise TaskNotFoundError(task_id)
        logger.info("Task deleted id=%s", task_id)

    def set_scheduled_date(self, task_id: int, day: date | None) -> None:
        self._patch_task(task_id, {"scheduled_date": day})
        logger.debug("Task %s scheduled_date -> %s", task_id, day)

    def complete_task(
        self,
        task_id: int,
        scheduled_date: date | None = None,
        *,
        now: datetime | None = None,
    ) -> CompletionRecord:
        """
        Two requests (no cross-table transaction on this backend):
        update the task, then append the history row.
        """
        if now is None:
            now = datetime.now(timezone.utc)

        task = self.get_task_by_id(task_id)
        if task is None:
            raise TaskNotFoundError(task_id)

        self._patch_task(
            task_id,
            {
                "last_completed": now,
                "completion_count": task.completion_count + 1,
                "scheduled_date": None,
            },
        )

        record = {
            "task_id": task.id,
            "task_name": task.task_name,
            "floor": task.floor,
            "category": task.category,
            "effort": task.effort,
            "time_minutes": task.time_estimate,
            "scheduled_date": scheduled_date,
            "completed_at": now,
        }
        data = self._request(
            "POST",
            "completion_history",
            json=[{k: _to_json(v) for k, v in record.items()}],
            headers=_RETURN_REPRESENTATION,
        )
        logger.info("Task %s completed (count=%s)", task_id, task.completion_count + 1)
        if data:
            return completion_from_json(data[0])
        return CompletionRecord(
            id=None,
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
        params: dict[str, Any] = {"order": "completed_at.desc"}
        if limit is not None:
            params["limit"] = int(limit)
        return [completion_from_json(r) for r in self._select("completion_history", **params)]

    # ---- settings ----

    def get_settings(self) -> dict[str, Any]:
        rows = self._select("settings", id="eq.1")
        out = dict(DEFAULT_SETTINGS)
        if rows:
            out.update({k: v for k, v in rows[0].items() if k in DEFAULT_SETTINGS and v is not None})
        return out

    def get_setting(self, key: str) -> Any:
        return self.get_settings().get(key)

    def update_setting(self, key: str, value: Any) -> None:
        validate_setting(key, value)
        self._request(
            "PATCH",
            "settings",
            params={"id": "eq.1"},
            json={key: _to_json(value)},
        )
        logger.info("Setting updated %s=%s", key, value)
