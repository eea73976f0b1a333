"""
Tool: Task Manager
Purpose: Everyday task operations on top of the ledger

Ties the task store, priority engine and atomization engine together:
- Create tasks with a computed priority and reason
- Re-prioritise when a deadline moves
- Bucket active tasks into today (max 7) / upcoming / later
- Atomize a task into child tasks
- Quick capture from one line of free text ("Send the deck by friday")

Usage:
    from atomize.config import load_config
    from atomize.tasks.manager import build_task_manager

    manager = build_task_manager(load_config())
    task, result, children = manager.capture("Write the Q3 report by friday")
"""

from __future__ import annotations

from dataclasses import replace
from datetime import datetime, timedelta
from typing import Callable, Optional

from atomize.logging_config import get_logger
from atomize.notifications import Notification, NotificationManager

from . import ACTIVE_STATUSES, DEFAULT_STEP_MINUTES, PRIORITY_LEVELS
from .atomizer import AtomizationEngine, AtomizationResult, to_task_inputs
from .clarifier import ClarificationAnalysis, ClarificationEngine
from .date_parser import extract_deadline, strip_deadline_phrase
from .errors import TaskNotFound, TaskRejected
from .models import UNSET, Preferences, Priority, Task, TaskFilter, TaskInput, TaskStatus, TaskUpdate
from .priority import PriorityEngine, create_priority_override
from .store import TaskStore

logger = get_logger(__name__)

MAX_TODAY_TASKS = 7
UPCOMING_DAYS = 7

ALREADY_ATOMIZED = "already_atomized"


def _start_of_day(value: datetime) -> datetime:
    return value.replace(hour=0, minute=0, second=0, microsecond=0)


def plan_date(task: Task) -> Optional[datetime]:
    """The date a task belongs to: its schedule, else its deadline."""
    return task.scheduled_date or task.deadline


class TaskManager:
    """Facade over TaskStore with priority and atomization wired in."""

    def __init__(
        self,
        store: TaskStore,
        priority_engine: PriorityEngine,
        atomization_engine: Optional[AtomizationEngine] = None,
        clock: Callable[[], datetime] = datetime.now,
        max_today_tasks: int = MAX_TODAY_TASKS,
        clarification_engine: Optional[ClarificationEngine] = None,
        notifications: Optional[NotificationManager] = None,
        default_task_minutes: int = DEFAULT_STEP_MINUTES,
        default_preferences: Optional[Preferences] = None,
    ):
        self.store = store
        self.priority_engine = priority_engine
        self.atomization_engine = atomization_engine
        self.clock = clock
        self.max_today_tasks = max_today_tasks
        self.clarification_engine = clarification_engine
        self.notifications = notifications
        self.default_task_minutes = default_task_minutes
        self.default_preferences = default_preferences

    # ─────────────────────────────────────────────────────────────────────────
    # CRUD
    # ─────────────────────────────────────────────────────────────────────────

    def create_task(self, data: TaskInput) -> Task:
        """Create a task, classifying it when no priority was given."""
        if data.priority is None:
            now = self.clock()
            draft = Task(
                id="",
                created_at=now,
                updated_at=now,
                title=data.title or data.raw_input,
                raw_input=data.raw_input,
                priority=Priority.MEDIUM,
                priority_reason="Default priority",
                deadline=data.deadline,
                parent_id=data.parent_id,
            )
            result = self.priority_engine.calculate_priority(draft, now)
            data = TaskInput(
                raw_input=data.raw_input,
                title=data.title,
                description=data.description,
                parent_id=data.parent_id,
                deadline=data.deadline,
                scheduled_date=data.scheduled_date,
                estimated_minutes=data.estimated_minutes,
                priority=result.level,
                priority_reason=result.reason,
            )
        return self.store.create(data)

    def get_task(self, task_id: str) -> Task | None:
        return self.store.get(task_id)

    def get_tasks(self, task_filter: Optional[TaskFilter] = None) -> list[Task]:
        return self.store.get_all(task_filter)

    def get_child_tasks(self, parent_id: str) -> list[Task]:
        return self.store.get_all(TaskFilter(parent_id=parent_id))

    def get_preferences(self) -> Preferences:
        """Stored preferences, else the configured defaults."""
        return self.store.get_preferences(self.default_preferences)

    def update_task(self, task_id: str, patch: TaskUpdate, explicit: bool) -> Task:
        """
        Apply an explicit patch; a deadline change re-runs classification.

        A priority set without a reason is recorded as a user override.
        """
        if explicit and patch.priority in PRIORITY_LEVELS and patch.priority_reason is UNSET:
            override = create_priority_override(patch.priority)
            patch = replace(patch, priority=override.priority, priority_reason=override.priority_reason)
        task = self.store.update(task_id, patch, explicit)
        if "deadline" in patch.changes() and "priority" not in patch.changes():
            level, reason = self.priority_engine.recalculate_priority(task, self.clock())
            if level != task.priority:
                logger.info(f"Task {task_id} reprioritised {task.priority.value} -> {level.value}")
                task = self.store.update(
                    task_id, TaskUpdate(priority=level, priority_reason=reason), explicit=True
                )
        return task

    def set_priority(self, task_id: str, level: Priority | str) -> Task:
        """Manual override, recorded as "User override: <level>"."""
        return self.store.update(task_id, create_priority_override(level), explicit=True)

    def complete_task(self, task_id: str) -> Task:
        task = self.store.complete(task_id)
        if self.notifications is not None:
            self.notifications.cancel_notifications_for_task(task_id)
        return task

    def defer_task(self, task_id: str, new_date: Optional[datetime] = None) -> Task:
        return self.store.defer(task_id, new_date)

    def delete_task(self, task_id: str, explicit: bool) -> None:
        self.store.delete(task_id, explicit)
        if self.notifications is not None:
            self.notifications.cancel_notifications_for_task(task_id)

    # ─────────────────────────────────────────────────────────────────────────
    # Views
    # ─────────────────────────────────────────────────────────────────────────

    def _active(self) -> list[Task]:
        return self.store.get_all(TaskFilter(status=[TaskStatus(s) for s in ACTIVE_STATUSES]))

    def get_today_tasks(self) -> list[Task]:
        """Active tasks planned for today, most urgent first, at most 7."""
        today = _start_of_day(self.clock()).date()
        tasks = [t for t in self._active() if plan_date(t) and plan_date(t).date() == today]
        return self.priority_engine.prioritize_tasks(tasks)[: self.max_today_tasks]

    def get_upcoming_tasks(self) -> list[Task]:
        """Active tasks planned from tomorrow through the next six days."""
        today = _start_of_day(self.clock())
        start = today + timedelta(days=1)
        end = today + timedelta(days=UPCOMING_DAYS)
        tasks = [
            t for t in self._active()
            if plan_date(t) and start <= _start_of_day(plan_date(t)) < end
        ]
        return self.priority_engine.prioritize_tasks(tasks)

    def get_later_tasks(self) -> list[Task]:
        """Active tasks a week or more out, plus everything undated."""
        cutoff = _start_of_day(self.clock()) + timedelta(days=UPCOMING_DAYS)
        tasks = [
            t for t in self._active()
            if plan_date(t) is None or _start_of_day(plan_date(t)) >= cutoff
        ]
        return self.priority_engine.prioritize_tasks(tasks)

    def get_next_task(self) -> Task | None:
        """
        The one task to do now: the top of today's list, or when today is
        empty, the most urgent active task overall.
        """
        task = self.priority_engine.get_next_task(self.get_today_tasks())
        if task is None:
            task = self.priority_engine.get_next_task(self._active())
        return task

    def get_task_counts(self) -> dict[str, int]:
        tasks = self.store.get_all()
        return {
            "pending": sum(1 for t in tasks if t.status.value in ACTIVE_STATUSES),
            "completed": sum(1 for t in tasks if t.status == TaskStatus.COMPLETED),
            "deferred": sum(1 for t in tasks if t.status == TaskStatus.DEFERRED),
            "total": len(tasks),
        }

    def due_reminders(self) -> list[Notification]:
        """
        Deadline reminders whose time has come, marked as sent.

        Reminders are rebuilt from the active tasks first, so a fresh
        process picks up every deadline. Quiet hours and frequency "off"
        hold everything back.
        """
        if self.notifications is None:
            self.notifications = NotificationManager(self.get_preferences(), clock=self.clock)
        self.notifications.rebuild_from_tasks(self._active())
        return self.notifications.mark_due_as_sent()

    # ─────────────────────────────────────────────────────────────────────────
    # Atomization
    # ─────────────────────────────────────────────────────────────────────────

    def atomize_task(self, task_id: str, write_fallback: bool = True) -> tuple[AtomizationResult, list[Task]]:
        """
        Decompose a task and write the micro-tasks as its children.

        Children are only written once the full result is in hand, and only
        when the decomposition says something new: more than one step, or a
        single step whose title differs from the task's. A templated fallback
        (no provider, or the provider failed) is written only when
        write_fallback is set.

        Raises:
            TaskNotFound: No task with this id
            TaskRejected: Task already has subtasks
        """
        task = self.store.get(task_id)
        if task is None:
            raise TaskNotFound(task_id)
        if task.child_ids:
            raise TaskRejected(
                f"Task {task_id} already has {len(task.child_ids)} subtasks",
                ALREADY_ATOMIZED,
                task_id,
            )

        engine = self.atomization_engine or AtomizationEngine(None)
        result = engine.atomize(task)

        if result.used_fallback and not write_fallback:
            return result, []

        meaningful = len(result.micro_tasks) > 1 or (
            len(result.micro_tasks) == 1 and result.micro_tasks[0].title != task.title
        )
        if not meaningful:
            return result, []

        children = [self.create_task(child) for child in to_task_inputs(result, task)]
        logger.info(f"Created {len(children)} subtasks under {task_id}")
        return result, children

    # ─────────────────────────────────────────────────────────────────────────
    # Capture
    # ─────────────────────────────────────────────────────────────────────────

    def clarify(self, text: str) -> tuple[ClarificationAnalysis, list[str]]:
        """
        Check free text before capture.

        Returns the analysis and, when clarification is needed, up to three
        questions informed by the currently active tasks.

        Raises:
            ValueError: Empty input
        """
        text = text.strip()
        if not text:
            raise ValueError("Cannot clarify an empty task")

        engine = self.clarification_engine or ClarificationEngine(None, self.clock)
        analysis = engine.analyze(text)
        if not analysis.needs_clarification:
            return analysis, []
        return analysis, engine.generate_questions(text, self._active())

    def capture(
        self,
        text: str,
        atomize: bool = True,
        question: Optional[str] = None,
        answer: Optional[str] = None,
    ) -> tuple[Task, Optional[AtomizationResult], list[Task]]:
        """
        Create a task from one line of free text.

        A trailing deadline phrase ("by friday", "due tomorrow") becomes the
        deadline and is dropped from the title. With an answer to a
        clarifying question, title, deadline, priority and estimate come
        from the clarification instead. With an atomization engine
        configured the new task is decomposed straight away.
        """
        text = text.strip()
        if not text:
            raise ValueError("Cannot capture an empty task")

        if answer and answer.strip():
            engine = self.clarification_engine or ClarificationEngine(None, self.clock)
            clarified = engine.process_clarification(text, question or "", answer.strip())
            data = clarified.to_task_input(text)
        else:
            now = self.clock()
            deadline = extract_deadline(text, now)
            data = TaskInput(
                raw_input=text,
                title=strip_deadline_phrase(text, now) if deadline else text,
                deadline=deadline.date if deadline else None,
            )

        task = self.create_task(data)

        if not atomize or self.atomization_engine is None:
            return task, None, []

        result, children = self.atomize_task(task.id, write_fallback=False)
        return self.store.get(task.id), result, children


def build_task_manager(config, storage=None, provider=None, clock: Callable[[], datetime] = datetime.now) -> TaskManager:
    """
    Wire a TaskManager from AtomizeConfig.

    An LLM provider that can't be built (e.g. no API key) is logged;
    atomization then offers template steps and clarification runs on
    heuristics alone.
    """
    from atomize.llm import create_provider
    from atomize.storage import get_storage

    if storage is None:
        storage = get_storage(
            config.storage.backend, {"path": str(config.storage.resolved_path())}
        )
    store = TaskStore(storage, clock=clock).initialize()

    if provider is None:
        try:
            provider = create_provider(config.llm)
        except ValueError as e:
            logger.warning(f"LLM provider unavailable, falling back to template steps: {e}")

    defaults = Preferences.from_config(config)
    preferences = store.get_preferences(defaults)
    return TaskManager(
        store,
        PriorityEngine(clock=clock),
        AtomizationEngine(provider, preferences) if config.planning.auto_atomize else None,
        clock=clock,
        max_today_tasks=config.planning.max_today_tasks,
        clarification_engine=ClarificationEngine(provider, clock),
        notifications=NotificationManager(
            preferences, clock=clock, lead_minutes=config.notifications.reminder_lead_minutes
        ),
        default_task_minutes=config.planning.default_task_minutes,
        default_preferences=defaults,
    )


__all__ = [
    "ALREADY_ATOMIZED",
    "MAX_TODAY_TASKS",
    "TaskManager",
    "build_task_manager",
    "plan_date",
]
