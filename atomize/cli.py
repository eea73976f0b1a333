#!/usr/bin/env python3
"""
Atomize Command Line Interface

Main entry point for the `atomize` command. Every action prints one JSON
object: {"success": true, "data": ..., "message": ...} or
{"success": false, "error": ...}, and exits 1 on failure.

Usage:
    atomize --action capture --task "Write the Q3 report by friday"
    atomize --action clarify --task "stuff for mum"
    atomize --action capture --task "stuff for mum" --question "What is it?" --answer "birthday card by friday"
    atomize --action create --title "Call the bank" --deadline tomorrow --priority high
    atomize --action list --view today
    atomize --action next
    atomize --action update --task-id abc123 --deadline "next monday" --explicit
    atomize --action complete --task-id abc123
    atomize --action defer --task-id abc123 --date "in 3 days"
    atomize --action delete --task-id abc123 --explicit
    atomize --action atomize --task-id abc123
    atomize --action adapt --trigger time_passed
    atomize --action progress
    atomize --action reminders
    atomize --action parse-date --text "next friday"
    atomize --action export --file backup.json
    atomize --action prefs-set --set nudge_style=direct --set quiet_hours=22:00-07:00
"""

from __future__ import annotations

import argparse
import json
import sys
from datetime import datetime
from pathlib import Path
from typing import Any, Optional

from atomize import __version__
from atomize.config import load_config
from atomize.logging_config import get_logger, setup_logging, verbosity_to_level
from atomize.responses import (
    DayStats,
    check_in,
    completion_response,
    defer_message,
    explain_decision,
    gentle_reminder,
    task_created_response,
    why_this_task,
)
from atomize.tasks import PRIORITY_LEVELS, TASK_STATUSES
from atomize.tasks.date_parser import parse_natural_date
from atomize.tasks.errors import TaskRejected
from atomize.tasks.manager import TaskManager, build_task_manager
from atomize.tasks.models import Preferences, Priority, TaskFilter, TaskInput, TaskStatus, TaskUpdate
from atomize.tasks.plan import AdaptationTrigger, PlanManager, TriggerType
from atomize.tasks.progress import ProgressManager

logger = get_logger(__name__)

ACTIONS = [
    "create", "capture", "list", "get", "update", "complete", "defer", "delete",
    "prioritize", "next", "today", "week", "adapt", "atomize", "progress",
    "parse-date", "export", "import", "prefs-get", "prefs-set", "clarify", "reminders",
]

VIEWS = ["all", "today", "upcoming", "later"]


class UsageError(ValueError):
    """A required argument is missing or malformed."""


def _ok(data: Any = None, message: Optional[str] = None) -> dict[str, Any]:
    result: dict[str, Any] = {"success": True, "data": data}
    if message:
        result["message"] = message
    return result


def _require(args: argparse.Namespace, *names: str) -> None:
    missing = [n for n in names if getattr(args, n.replace("-", "_")) in (None, "")]
    if missing:
        flags = ", ".join(f"--{n}" for n in missing)
        raise UsageError(f"{flags} required for {args.action}")


def _parse_date_arg(text: Optional[str], now: datetime) -> Optional[datetime]:
    if text is None:
        return None
    parsed = parse_natural_date(text, now)
    if parsed is None:
        raise UsageError(f"Could not understand date: {text!r}")
    return parsed.date


def _planner(manager: TaskManager) -> PlanManager:
    return PlanManager(
        manager.store, manager.priority_engine, manager.clock,
        default_task_minutes=manager.default_task_minutes,
    )


def _nudge_style(manager: TaskManager, celebrating: bool = False) -> str:
    """The stored nudge style; celebrations switched off read as neutral."""
    prefs = manager.get_preferences()
    if celebrating and not prefs.celebrations_enabled:
        return "neutral"
    return prefs.nudge_style


def _parse_pref_value(key: str, value: str) -> Any:
    if key == "celebrations_enabled":
        return value.strip().lower() in ("1", "true", "yes", "on")
    if key == "quiet_hours":
        if value.strip().lower() in ("", "none", "off"):
            return None
        start, sep, end = value.partition("-")
        if not sep:
            raise UsageError("quiet_hours must look like 22:00-07:00")
        return {"start": start.strip(), "end": end.strip()}
    return value


# ─────────────────────────────────────────────────────────────────────────────
# Actions
# ─────────────────────────────────────────────────────────────────────────────

def cmd_create(manager: TaskManager, args: argparse.Namespace) -> dict[str, Any]:
    raw = args.task or args.title
    if not raw:
        raise UsageError("--task or --title required for create")
    now = manager.clock()
    task = manager.create_task(TaskInput(
        raw_input=raw,
        title=args.title,
        description=args.description,
        parent_id=args.parent_id,
        deadline=_parse_date_arg(args.deadline, now),
        scheduled_date=_parse_date_arg(args.scheduled, now),
        estimated_minutes=args.minutes,
        priority=Priority(args.priority) if args.priority else None,
    ))
    return _ok(task.to_dict(), task_created_response(task, now))


def cmd_capture(manager: TaskManager, args: argparse.Namespace) -> dict[str, Any]:
    _require(args, "task")
    task, result, children = manager.capture(
        args.task, atomize=not args.no_atomize, question=args.question, answer=args.answer
    )
    data = {
        "task": task.to_dict(),
        "atomization": result.to_dict() if result else None,
        "children": [c.to_dict() for c in children],
    }
    message = task_created_response(task, manager.clock())
    if children:
        message += "\n\n" + explain_decision("atomization", {"task_count": len(children)})
    return _ok(data, message)


def cmd_list(manager: TaskManager, args: argparse.Namespace) -> dict[str, Any]:
    if args.view == "today":
        tasks = manager.get_today_tasks()
    elif args.view == "upcoming":
        tasks = manager.get_upcoming_tasks()
    elif args.view == "later":
        tasks = manager.get_later_tasks()
    else:
        tasks = manager.get_tasks(TaskFilter(
            status=[TaskStatus(args.status)] if args.status else None,
            priority=[Priority(args.priority)] if args.priority else None,
            parent_id=args.parent_id,
        ))
    return _ok([t.to_dict() for t in tasks], f"{len(tasks)} task(s)")


def cmd_get(manager: TaskManager, args: argparse.Namespace) -> dict[str, Any]:
    _require(args, "task-id")
    task = manager.get_task(args.task_id)
    if task is None:
        return {"success": False, "error": f"Task not found: {args.task_id}"}
    return _ok(task.to_dict())


def cmd_update(manager: TaskManager, args: argparse.Namespace) -> dict[str, Any]:
    _require(args, "task-id")
    now = manager.clock()
    patch = TaskUpdate()
    if args.title is not None:
        patch.title = args.title
    if args.description is not None:
        patch.description = args.description
    if args.deadline is not None:
        patch.deadline = None if args.deadline == "none" else _parse_date_arg(args.deadline, now)
    if args.scheduled is not None:
        patch.scheduled_date = None if args.scheduled == "none" else _parse_date_arg(args.scheduled, now)
    if args.minutes is not None:
        patch.estimated_minutes = args.minutes
    if args.priority is not None:
        patch.priority = args.priority
    if args.status is not None:
        patch.status = args.status
    task = manager.update_task(args.task_id, patch, explicit=args.explicit)
    return _ok(task.to_dict(), f'Updated "{task.title}"')


def cmd_complete(manager: TaskManager, args: argparse.Namespace) -> dict[str, Any]:
    _require(args, "task-id")
    task = manager.complete_task(args.task_id)
    progress = ProgressManager(manager.store, manager.clock)
    today = progress.get_today_progress()
    stats = DayStats(
        completed_today=today.completed_count,
        total_today=today.total_count,
        streak=progress.calculate_streak(),
    )
    message = completion_response(
        task, stats, index=today.completed_count, nudge_style=_nudge_style(manager, celebrating=True)
    )
    return _ok(task.to_dict(), message)


def cmd_defer(manager: TaskManager, args: argparse.Namespace) -> dict[str, Any]:
    _require(args, "task-id")
    task = manager.defer_task(args.task_id, _parse_date_arg(args.date, manager.clock()))
    return _ok(task.to_dict(), defer_message(task))


def cmd_delete(manager: TaskManager, args: argparse.Namespace) -> dict[str, Any]:
    _require(args, "task-id")
    manager.delete_task(args.task_id, explicit=args.explicit)
    return _ok({"id": args.task_id}, f"Task {args.task_id} deleted")


def cmd_prioritize(manager: TaskManager, args: argparse.Namespace) -> dict[str, Any]:
    """With --priority, override; without, show the computed classification."""
    _require(args, "task-id")
    if args.priority:
        task = manager.set_priority(args.task_id, args.priority)
        return _ok(task.to_dict(), f"Priority set to {task.priority.value}")

    task = manager.get_task(args.task_id)
    if task is None:
        return {"success": False, "error": f"Task not found: {args.task_id}"}
    result = manager.priority_engine.calculate_priority(task, manager.clock())
    message = explain_decision("priority", {"level": result.level.value, "reason": result.reason})
    return _ok(result.to_dict(), message)


def cmd_next(manager: TaskManager, args: argparse.Namespace) -> dict[str, Any]:
    task = manager.get_next_task()
    if task is None:
        return _ok(None, "Nothing to do. Enjoy the break!")
    index = manager.get_task_counts()["completed"]
    message = why_this_task(task, manager.clock()) + "\n\n" + check_in(task, index, _nudge_style(manager))
    return _ok(task.to_dict(), message)


def cmd_today(manager: TaskManager, args: argparse.Namespace) -> dict[str, Any]:
    plan = _planner(manager).get_today_plan()
    return _ok(plan.to_dict(), f"{len(plan.tasks)} task(s) today, about {plan.estimated_minutes} minutes")


def cmd_week(manager: TaskManager, args: argparse.Namespace) -> dict[str, Any]:
    plans = _planner(manager).get_week_plan()
    return _ok([p.to_dict() for p in plans])


def cmd_adapt(manager: TaskManager, args: argparse.Namespace) -> dict[str, Any]:
    _require(args, "trigger")
    planner = _planner(manager)
    adaptation = planner.adapt_plan(AdaptationTrigger(type=args.trigger, task_id=args.task_id))
    return _ok(adaptation.to_dict(), adaptation.explanation)


def cmd_atomize(manager: TaskManager, args: argparse.Namespace) -> dict[str, Any]:
    _require(args, "task-id")
    result, children = manager.atomize_task(args.task_id)
    data = {"atomization": result.to_dict(), "children": [c.to_dict() for c in children]}
    if children and result.used_fallback:
        return _ok(data, "Couldn't generate a breakdown right now, so I added three starter steps.")
    if children:
        return _ok(data, explain_decision("atomization", {"task_count": len(children)}))
    return _ok(data, "This task is already small enough.")


def cmd_progress(manager: TaskManager, args: argparse.Namespace) -> dict[str, Any]:
    progress = ProgressManager(manager.store, manager.clock)
    stats = progress.get_progress_stats()
    data = stats.to_dict()
    data["week"] = [d.to_dict() for d in progress.get_weekly_progress()]
    message = f"{stats.today.completed_count} of {stats.today.total_count} done today"
    if stats.streak > 1:
        message += f", {stats.streak} day streak"
    return _ok(data, message)


def cmd_parse_date(manager: TaskManager, args: argparse.Namespace) -> dict[str, Any]:
    _require(args, "text")
    parsed = parse_natural_date(args.text, manager.clock())
    if parsed is None:
        return {"success": False, "error": f"Could not understand date: {args.text!r}"}
    return _ok(parsed.to_dict())


def cmd_export(manager: TaskManager, args: argparse.Namespace) -> dict[str, Any]:
    text = manager.store.export_json()
    if args.file:
        Path(args.file).write_text(text, encoding="utf-8")
        return _ok({"file": args.file, "count": manager.store.count()}, f"Exported to {args.file}")
    return _ok(json.loads(text))


def cmd_import(manager: TaskManager, args: argparse.Namespace) -> dict[str, Any]:
    _require(args, "file")
    imported = manager.store.import_json(Path(args.file).read_text(encoding="utf-8"))
    return _ok([t.to_dict() for t in imported], f"Imported {len(imported)} task(s)")


def cmd_prefs_get(manager: TaskManager, args: argparse.Namespace) -> dict[str, Any]:
    return _ok(manager.get_preferences().to_dict())


def cmd_prefs_set(manager: TaskManager, args: argparse.Namespace) -> dict[str, Any]:
    if not args.set:
        raise UsageError("--set key=value required for prefs-set")
    data = manager.get_preferences().to_dict()
    for item in args.set:
        key, sep, value = item.partition("=")
        if not sep:
            raise UsageError(f"Expected key=value, got {item!r}")
        if key not in data:
            raise UsageError(f"Unknown preference: {key}")
        data[key] = _parse_pref_value(key, value)
    prefs = manager.store.set_preferences(Preferences.from_dict(data))
    return _ok(prefs.to_dict(), "Preferences saved")


def cmd_clarify(manager: TaskManager, args: argparse.Namespace) -> dict[str, Any]:
    """Check whether --task is clear enough, with questions when it isn't."""
    _require(args, "task")
    analysis, questions = manager.clarify(args.task)
    data = {"analysis": analysis.to_dict(), "questions": questions}
    if not questions:
        return _ok(data, "That's clear enough to add as is.")
    lines = ["A couple of quick questions first:", ""]
    lines.extend(f"{i}. {q}" for i, q in enumerate(questions, 1))
    return _ok(data, "\n".join(lines))


def cmd_reminders(manager: TaskManager, args: argparse.Namespace) -> dict[str, Any]:
    """Deadline reminders due now."""
    due = manager.due_reminders()
    if not due:
        return _ok([], "No reminders due.")
    style = _nudge_style(manager)
    lines = [n.message for n in due]
    lines.extend(["", gentle_reminder(manager.get_task(due[0].task_id), len(due) - 1, style)])
    return _ok([n.to_dict() for n in due], "\n".join(lines))


COMMANDS = {
    "create": cmd_create,
    "capture": cmd_capture,
    "list": cmd_list,
    "get": cmd_get,
    "update": cmd_update,
    "complete": cmd_complete,
    "defer": cmd_defer,
    "delete": cmd_delete,
    "prioritize": cmd_prioritize,
    "next": cmd_next,
    "today": cmd_today,
    "week": cmd_week,
    "adapt": cmd_adapt,
    "atomize": cmd_atomize,
    "progress": cmd_progress,
    "parse-date": cmd_parse_date,
    "export": cmd_export,
    "import": cmd_import,
    "prefs-get": cmd_prefs_get,
    "prefs-set": cmd_prefs_set,
    "clarify": cmd_clarify,
    "reminders": cmd_reminders,
}


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="atomize",
        description="Atomize - break big tasks into small steps",
    )
    parser.add_argument("--version", action="version", version=f"atomize {__version__}")
    parser.add_argument("--action", required=True, choices=ACTIONS, help="Action to perform")
    parser.add_argument("--config", help="Path to atomize.yaml")
    parser.add_argument("-v", "--verbose", action="count", default=0, help="Log to stderr (-vv for debug)")

    # Task identification
    parser.add_argument("--task-id", help="Task ID for operations")
    parser.add_argument("--parent-id", help="Parent task ID")

    # Task creation/update
    parser.add_argument("--task", help="Raw task input text")
    parser.add_argument("--title", help="Task title")
    parser.add_argument("--description", help="Task description")
    parser.add_argument("--deadline", help='Deadline in plain words ("friday", "in 3 days"); "none" clears')
    parser.add_argument("--scheduled", help='Scheduled date in plain words; "none" clears')
    parser.add_argument("--minutes", type=int, help="Estimated minutes")
    parser.add_argument("--priority", choices=PRIORITY_LEVELS, help="Priority level")
    parser.add_argument("--status", choices=TASK_STATUSES, help="Task status")
    parser.add_argument("--explicit", action="store_true", help="Confirm a user-requested update or delete")
    parser.add_argument("--no-atomize", action="store_true", help="Capture without breaking the task down")
    parser.add_argument("--question", help="Clarifying question being answered on capture")
    parser.add_argument("--answer", help="Answer to a clarifying question on capture")

    # Other actions
    parser.add_argument("--view", choices=VIEWS, default="all", help="List view")
    parser.add_argument("--date", help="Defer target date in plain words")
    parser.add_argument("--trigger", choices=[t.value for t in TriggerType], help="Plan adaptation event")
    parser.add_argument("--text", help="Text for parse-date")
    parser.add_argument("--file", help="File for export/import")
    parser.add_argument("--set", action="append", help="Preference key=value (repeatable)")
    return parser


def run(args: argparse.Namespace, manager: TaskManager) -> dict[str, Any]:
    """Dispatch one action, turning rejections into error results."""
    try:
        return COMMANDS[args.action](manager, args)
    except TaskRejected as e:
        logger.info(f"Rejected {args.action}: {e}")
        result = {"success": False, "error": str(e), "kind": e.kind}
        if e.task_id:
            result["task_id"] = e.task_id
        return result
    except (ValueError, OSError) as e:
        return {"success": False, "error": str(e)}


def main(argv: Optional[list[str]] = None) -> None:
    args = build_parser().parse_args(argv)
    setup_logging(verbosity_to_level(args.verbose))

    try:
        config = load_config(args.config)
    except ValueError as e:
        print(json.dumps({"success": False, "error": str(e)}))
        sys.exit(1)

    manager = build_task_manager(config)
    try:
        result = run(args, manager)
    finally:
        manager.store.close()

    print(json.dumps(result, indent=2, default=str, ensure_ascii=False))
    if not result.get("success"):
        sys.exit(1)


if __name__ == "__main__":
    main()
