# src/cadence/cli/commands.py

from __future__ import annotations

import inspect
import logging
import re
from collections.abc import Callable
from datetime import date
from typing import cast

from ..core.results import Outcome
from ..core.state import AppState
from ..tasks import task_api
from ..tasks.stats import load_stats
from ..tasks.status import compute_status, filter_tasks, local_date
from ..tasks.task_models import NOT_APPLICABLE, Day, StatusedTask
from ..tasks.task_scheduler import resolve_daily_budget, run_smart_schedule, unscheduled_by_priority
from ..tasks.week import build_week, find_today, smart_tip, week_view_start

CommandEmitter = Callable[[str], None]
CommandHandler2 = Callable[[AppState, list[str]], str]
CommandHandler3 = Callable[[AppState, list[str], CommandEmitter | None], str]
CommandHandler = CommandHandler2 | CommandHandler3

logger = logging.getLogger(__name__)


class CommandRegistry:
    """Simple slash-command registry used by the console (/help, /week, ...)."""

    def __init__(self) -> None:
        self._handlers: dict[str, CommandHandler] = {}
        self._help: dict[str, str] = {}

    def register(
        self,
        name: str,
        handler: CommandHandler,
        help_text: str,
        aliases: list[str] | None = None,
    ) -> None:
        aliases = aliases or []
        key = name.lower()
        self._handlers[key] = handler
        self._help[key] = help_text
        for alias in aliases:
            self._handlers[alias.lower()] = handler

    def handle(
        self,
        state: AppState,
        line: str,
        emit: CommandEmitter | None = None,
    ) -> str | None:
        """
        Handle a string like "/command args".
        Returns a reply string or None if not a command.
        """
        if not line.startswith("/"):
            return None

        parts = line[1:].split()
        if not parts:
            return "Empty command. Use /help to list available commands."

        name = parts[0].lower()
        args = parts[1:]

        handler = self._handlers.get(name)
        if not handler:
            return f"Unknown command: /{name}. Use /help to list available commands."

        try:
            nparams = len(inspect.signature(handler).parameters)
        except (TypeError, ValueError):
            nparams = 3

        if nparams >= 3:
            h3 = cast(CommandHandler3, handler)
            return h3(state, args, emit)

        h2 = cast(CommandHandler2, handler)
        return h2(state, args)

    def build_help(self) -> str:
        lines = ["Available commands:"]
        for name, help_text in self._help.items():
            lines.append(f"  /{name} - {help_text}")
        return "\n".join(lines)


registry = CommandRegistry()


def _parse_id(raw: str) -> int | None:
    try:
        return int(raw)
    except ValueError:
        return None


def _parse_date(raw: str) -> date | None:
    try:
        return date.fromisoformat(raw)
    except ValueError:
        return None


def _format_item(item: StatusedTask) -> str:
    t = item.task
    st = item.status
    badges = [b for b in (t.floor, t.category) if b]
    badges.append(t.effort.value)
    badges.append(f"{t.minutes}m")
    due = ""
    if st.days_overdue != NOT_APPLICABLE and st.next_due is not None:
        due = f", next due {st.next_due.isoformat()}"
    return f"#{t.id} {t.task_name} [{' | '.join(badges)}] {st.status.value} (p={st.priority}{due})"


def _format_day(day: Day) -> str:
    title = day.day_name
    if day.is_today:
        title += " (Today)"
    elif day.is_yesterday:
        title += " (Yesterday)"
    n = len(day.todo_tasks)
    return f"{day.date.isoformat()} {title}: {n} task{'' if n == 1 else 's'} - {day.total_minutes} min"


def cmd_help(state: AppState, args: list[str]) -> str:
    return registry.build_help()


def cmd_tasks(state: AppState, args: list[str]) -> str:
    """
    /tasks                          -> all tasks, most urgent first
    /tasks overdue|due-soon|on-track
    /tasks floor=2F effort=low      -> extra filters
    """
    status = "all"
    floor = "all"
    effort = "all"
    for a in args:
        key, sep, value = a.partition("=")
        if not sep:
            status = a
        elif key.lower() == "floor":
            floor = value
        elif key.lower() == "effort":
            effort = value

    items = filter_tasks(state.task_store.list_tasks(), state.today(), status=status, floor=floor, effort=effort)
    if not items:
        return "No tasks match."
    items.sort(key=lambda it: -it.priority)
    lines = [f"{len(items)} task{'' if len(items) == 1 else 's'}:"]
    lines.extend(_format_item(it) for it in items)
    return "\n".join(lines)


def cmd_today(state: AppState, args: list[str]) -> str:
    today = state.today()
    week = build_week(state.task_store.list_tasks(), today, days=1)
    day = find_today(week)
    if day is None or not day.todo_tasks:
        return "No tasks scheduled for today. Use /schedule to plan the week."
    lines = [_format_day(day)]
    for t in day.todo_tasks:
        lines.append(_format_item(StatusedTask(task=t, status=compute_status(t, today))))
    tip = smart_tip(day)
    if tip:
        lines.append(f"Tip: {tip}")
    return "\n".join(lines)


def cmd_week(state: AppState, args: list[str]) -> str:
    """
    /week       -> current week (yesterday + 6 days)
    /week next  -> move forward one week
    /week prev  -> move back one week
    /week N     -> jump to week offset N
    """
    if args:
        arg = args[0].lower()
        if arg == "next":
            state.week_offset += 1
        elif arg == "prev":
            state.week_offset -= 1
        else:
            offset = _parse_id(arg)
            if offset is None:
                return "Usage: /week [next|prev|N]"
            state.week_offset = offset

    today = state.today()
    week = build_week(state.task_store.list_tasks(), today, start=week_view_start(today, state.week_offset))
    budget = resolve_daily_budget(state.task_store, getattr(state.settings, "default_daily_minutes", 30))
    lines = [f"Week {week[0].date.isoformat()} - {week[-1].date.isoformat()} (budget {budget} min/day)"]
    for day in week:
        lines.append(_format_day(day))
        for t in day.todo_tasks:
            lines.append(f"    #{t.id} {t.task_name} ({t.minutes}m)")
        for t in day.done_tasks:
            lines.append(f"    done: #{t.id} {t.task_name}")
    return "\n".join(lines)


def cmd_schedule(state: AppState, args: list[str], emit: CommandEmitter | None = None) -> str:
    if emit:
        emit("Scheduling tasks...")
    result = run_smart_schedule(
        state.task_store,
        today=state.today(),
        default_budget=getattr(state.settings, "default_daily_minutes", 30),
    )
    lines = [result.message]
    for a in result.assignments:
        lines.append(f"  #{a.task_id} -> {a.date.isoformat()} ({a.minutes}m)")
    for f in result.failures:
        lines.append(f"  #{f.assignment.task_id} not saved: {f.error}")
    return "\n".join(lines)


def cmd_pick(state: AppState, args: list[str]) -> str:
    items = unscheduled_by_priority(state.task_store, state.today())
    if not items:
        return "All tasks are scheduled!"
    return "\n".join(_format_item(it) for it in items)


def cmd_plan(state: AppState, args: list[str]) -> str:
    """/plan ID YYYY-MM-DD -> put a task on a specific day."""
    if len(args) != 2:
        return "Usage: /plan ID YYYY-MM-DD"
    task_id = _parse_id(args[0])
    day = _parse_date(args[1])
    if task_id is None or day is None:
        return "Usage: /plan ID YYYY-MM-DD"
    result = task_api.schedule(state, task_id, day)
    if result.ok:
        state.selected_day = day
    return result.message


def cmd_complete(state: AppState, args: list[str]) -> str:
    """/complete ID [YYYY-MM-DD] -> the optional date is the day it was scheduled for."""
    if not args:
        return "Usage: /complete ID [YYYY-MM-DD]"
    task_id = _parse_id(args[0])
    if task_id is None:
        return "Usage: /complete ID [YYYY-MM-DD]"
    scheduled: date | None = None
    if len(args) > 1:
        scheduled = _parse_date(args[1])
        if scheduled is None:
            return "Usage: /complete ID [YYYY-MM-DD]"
    else:
        task = state.task_store.get_task_by_id(task_id)
        scheduled = task.scheduled_date if task is not None else None
    return task_api.complete(state, task_id, scheduled).message


def cmd_unschedule(state: AppState, args: list[str]) -> str:
    task_id = _parse_id(args[0]) if args else None
    if task_id is None:
        return "Usage: /unschedule ID"
    return task_api.unschedule(state, task_id).message


def cmd_add(state: AppState, args: list[str]) -> str:
    """/add NAME | CADENCE [| FLOOR | CATEGORY | EFFORT | MINUTES]"""
    fields = [p.strip() for p in " ".join(args).split("|")]
    if len(fields) < 2:
        return "Usage: /add NAME | CADENCE [| FLOOR | CATEGORY | EFFORT | MINUTES]"
    fields += [""] * (6 - len(fields))
    name, cadence, floor, category, effort, minutes = fields[:6]

    cadence_n = _parse_id(cadence)
    if cadence_n is None:
        return "Cadence must be a whole number of days."
    minutes_n: int | None = None
    if minutes:
        minutes_n = _parse_id(minutes)
        if minutes_n is None:
            return "Minutes must be a whole number."

    result = task_api.add_task(
        state,
        task_name=name,
        cadence=cadence_n,
        floor=floor or None,
        category=category or None,
        effort=effort or None,
        time_estimate=minutes_n,
    )
    if result.outcome == Outcome.SUCCESS:
        return f"{result.message} (#{result.task_id})"
    return result.message


_EDIT_KEYS = {
    "name": "task_name",
    "cadence": "cadence",
    "floor": "floor",
    "category": "category",
    "effort": "effort",
    "minutes": "time_estimate",
}
_EDIT_USAGE = "Usage: /edit ID name=... cadence=N floor=... category=... effort=low|medium|high minutes=N"


def cmd_edit(state: AppState, args: list[str]) -> str:
    """
    /edit 3 floor=2F minutes=20
    /edit 3 name=Mop front lobby   -> values may contain spaces
    /edit 3 category=              -> empty value clears floor/category
    """
    task_id = _parse_id(args[0]) if args else None
    if task_id is None or len(args) < 2:
        return _EDIT_USAGE

    fields: dict[str, object] = {}
    for pair in re.split(r"\s+(?=\w+=)", " ".join(args[1:])):
        key, sep, value = pair.partition("=")
        field_name = _EDIT_KEYS.get(key.strip().lower())
        if not sep or field_name is None:
            return _EDIT_USAGE
        value = value.strip()
        if field_name in ("cadence", "time_estimate"):
            number = _parse_id(value)
            if number is None:
                return f"{key} must be a whole number."
            fields[field_name] = number
        else:
            fields[field_name] = value or None

    return task_api.edit_task(state, task_id, **fields).message


def cmd_delete(state: AppState, args: list[str]) -> str:
    task_id = _parse_id(args[0]) if args else None
    if task_id is None:
        return "Usage: /delete ID"
    return task_api.remove_task(state, task_id).message


def cmd_stats(state: AppState, args: list[str]) -> str:
    page = load_stats(state.task_store)
    stats = page.stats
    lines = [
        "Stats:",
        f"  Tasks: {stats.total_tasks}",
        f"  Completed this week: {stats.completed_this_week}",
        f"  Completed this month: {stats.completed_this_month}",
        f"  Time invested: {stats.total_hours} h ({stats.total_minutes} min), value ${stats.total_value}",
        f"  Streak: {stats.current_streak} (longest {stats.longest_streak})",
        f"  Avg time per task: {stats.avg_time_per_task} min over {stats.total_completions} completions",
    ]
    if page.top_categories:
        lines.append("  Top categories: " + ", ".join(f"{c.category} ({c.count})" for c in page.top_categories))
    if page.recent:
        lines.append("  Recent completions:")
        for h in page.recent:
            minutes = f" ({h.time_minutes}m)" if h.time_minutes is not None else ""
            lines.append(f"    {local_date(h.completed_at).isoformat()} #{h.task_id} {h.task_name}{minutes}")
    return "\n".join(lines)


def cmd_budget(state: AppState, args: list[str]) -> str:
    """
    /budget     -> show the daily minutes budget
    /budget 45  -> change it
    """
    if not args:
        budget = resolve_daily_budget(state.task_store, getattr(state.settings, "default_daily_minutes", 30))
        return f"Daily budget: {budget} min."
    minutes = _parse_id(args[0])
    if minutes is None or minutes <= 0:
        return "Usage: /budget MINUTES (positive whole number)"
    return task_api.set_daily_budget(state, minutes).message


registry.register("help", cmd_help, help_text="Show available commands.", aliases=["h", "?"])
registry.register("tasks", cmd_tasks, help_text="List tasks: /tasks [overdue|due-soon|on-track] [floor=X] [effort=Y].")
registry.register("today", cmd_today, help_text="Show today's open tasks.")
registry.register("week", cmd_week, help_text="Show the week: /week [next|prev|N].")
registry.register("schedule", cmd_schedule, help_text="Smart-schedule unscheduled tasks from today forward.")
registry.register("pick", cmd_pick, help_text="List unscheduled tasks, most urgent first.")
registry.register("plan", cmd_plan, help_text="Schedule a task on a day: /plan ID YYYY-MM-DD.")
registry.register("complete", cmd_complete, help_text="Complete a task: /complete ID [YYYY-MM-DD].", aliases=["done"])
registry.register("unschedule", cmd_unschedule, help_text="Clear a task's scheduled day: /unschedule ID.")
registry.register("add", cmd_add, help_text="Add a task: /add NAME | CADENCE [| FLOOR | CATEGORY | EFFORT | MINUTES].")
registry.register("edit", cmd_edit, help_text="Edit a task: /edit ID field=value ... (name, cadence, floor, category, effort, minutes).")
registry.register("delete", cmd_delete, help_text="Delete a task: /delete ID.")
registry.register("stats", cmd_stats, help_text="Show completion statistics.")
registry.register("budget", cmd_budget, help_text="Show or set the daily minutes budget: /budget [MINUTES].")
