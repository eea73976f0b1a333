"""
Tool: Task Store
Purpose: Append-only task ledger with an explicit-mutation gate

Rules the store enforces:
- create always succeeds and appends exactly one "created" history entry
- update and delete are refused unless the caller passes explicit=True
- every mutation appends history; history never shrinks
- a child's id is always listed in its live parent's child_ids
- delete unlinks the task from its parent but never cascades to children

Every mutation rewrites the full collection through the storage adapter.
Callers get copies of records, so nothing outside the store can change a
task without going through these operations.
"""

from __future__ import annotations

import json
from datetime import datetime, timedelta
from typing import Any, Callable, Optional

from atomize.logging_config import get_logger
from atomize.storage.base import StorageAdapter

from . import MAX_TITLE_LENGTH, TERMINAL_STATUSES
from .errors import (
    INVALID_VALUE,
    TERMINAL_STATUS,
    TaskNotFound,
    TaskRejected,
    explicit_required,
)
from .models import (
    HistoryAction,
    Preferences,
    Priority,
    Task,
    TaskContext,
    TaskFilter,
    TaskHistoryEntry,
    TaskInput,
    TaskStatus,
    TaskUpdate,
    generate_id,
    to_jsonable,
)

logger = get_logger(__name__)

DEFER_HOUR = 9


class TaskStore:
    """In-memory map of tasks backed by a StorageAdapter."""

    def __init__(
        self,
        storage: Optional[StorageAdapter] = None,
        clock: Callable[[], datetime] = datetime.now,
    ):
        self.storage = storage
        self.clock = clock
        self._tasks: dict[str, Task] = {}
        self._preferences: Optional[Preferences] = None

    def initialize(self) -> "TaskStore":
        """Load persisted records. Returns self for chaining."""
        self._tasks.clear()
        if self.storage is not None:
            for record in self.storage.load():
                task = Task.from_dict(record)
                self._tasks[task.id] = task
            logger.debug(f"Loaded {len(self._tasks)} tasks from {self.storage.name} storage")
        return self

    def _persist(self) -> None:
        if self.storage is not None:
            self.storage.save([task.to_dict() for task in self._tasks.values()])

    def _require(self, task_id: str) -> Task:
        task = self._tasks.get(task_id)
        if task is None:
            raise TaskNotFound(task_id)
        return task

    # ─────────────────────────────────────────────────────────────────────────
    # Create / read
    # ─────────────────────────────────────────────────────────────────────────

    def create(self, data: TaskInput) -> Task:
        """
        Create a task. Always succeeds.

        A parent_id naming an existing task links the two: the parent gains
        the child id (recorded in its history) and the child inherits the
        parent's title and raw input as context. A parent_id naming nothing
        is dropped and the task is created standalone.
        """
        now = self.clock()
        task_id = generate_id()
        while task_id in self._tasks:
            task_id = generate_id()

        if data.priority is not None:
            priority = Priority(data.priority)
            reason = data.priority_reason or "User specified"
        else:
            priority = Priority.MEDIUM
            reason = data.priority_reason or "Default priority"

        task = Task(
            id=task_id,
            created_at=now,
            updated_at=now,
            title=(data.title or data.raw_input[:MAX_TITLE_LENGTH]).strip() or data.raw_input,
            description=data.description,
            raw_input=data.raw_input,
            deadline=data.deadline,
            scheduled_date=data.scheduled_date,
            estimated_minutes=data.estimated_minutes,
            priority=priority,
            priority_reason=reason,
            history=[TaskHistoryEntry(now, HistoryAction.CREATED, "Task created")],
        )

        if data.parent_id:
            parent = self._tasks.get(data.parent_id)
            if parent is None:
                logger.warning(f"Parent {data.parent_id} not found; creating {task_id} standalone")
            else:
                previous = list(parent.child_ids)
                parent.child_ids.append(task_id)
                parent.updated_at = now
                parent.history.append(TaskHistoryEntry(
                    now,
                    HistoryAction.UPDATED,
                    f"Added child task: {task_id}",
                    previous_value=previous,
                    new_value=list(parent.child_ids),
                ))
                task.parent_id = parent.id
                task.context = TaskContext(
                    original_goal=parent.raw_input,
                    parent_context=parent.title,
                )

        self._tasks[task_id] = task
        self._persist()
        return task.copy()

    def get(self, task_id: str) -> Task | None:
        task = self._tasks.get(task_id)
        return task.copy() if task else None

    def get_all(self, task_filter: Optional[TaskFilter] = None) -> list[Task]:
        """All tasks in creation order, optionally filtered (criteria are AND-ed)."""
        tasks = self._tasks.values()
        if task_filter is not None:
            tasks = [t for t in tasks if task_filter.matches(t)]
        return [t.copy() for t in tasks]

    def count(self) -> int:
        return len(self._tasks)

    # ─────────────────────────────────────────────────────────────────────────
    # Mutations
    # ─────────────────────────────────────────────────────────────────────────

    def update(self, task_id: str, patch: TaskUpdate, explicit: bool) -> Task:
        """
        Apply a patch. One history entry per field whose value changed.

        Raises:
            TaskRejected: explicit is False (checked before anything else)
            TaskNotFound: no task with this id
        """
        if not explicit:
            raise explicit_required("modification", task_id)
        task = self._require(task_id)
        now = self.clock()

        entries = []
        for key, value in patch.changes().items():
            previous = getattr(task, key)
            if previous == value:
                continue
            if key == "title" and not (value or "").strip():
                raise TaskRejected("Task title cannot be empty", INVALID_VALUE, task_id)
            if key == "priority_reason" and not value:
                raise TaskRejected("Priority reason cannot be empty", INVALID_VALUE, task_id)
            if key == "priority" and value is None:
                raise TaskRejected("Priority cannot be cleared", INVALID_VALUE, task_id)
            if key == "status" and value is None:
                raise TaskRejected("Status cannot be cleared", INVALID_VALUE, task_id)
            if key == "estimated_minutes" and value is not None and int(value) <= 0:
                raise TaskRejected("Estimated minutes must be positive", INVALID_VALUE, task_id)

            action = HistoryAction.RESCHEDULED if key == "scheduled_date" else HistoryAction.UPDATED
            entries.append((key, value, TaskHistoryEntry(
                now,
                action,
                f"{key} changed",
                previous_value=to_jsonable(previous),
                new_value=to_jsonable(value),
            )))

        if not entries:
            return task.copy()

        for key, value, entry in entries:
            setattr(task, key, value)
            task.history.append(entry)
        task.updated_at = now

        self._persist()
        return task.copy()

    def complete(self, task_id: str) -> Task:
        """Mark a task completed. Completing a completed task changes nothing."""
        task = self._require(task_id)
        if task.status == TaskStatus.COMPLETED:
            return task.copy()
        if task.status == TaskStatus.ARCHIVED:
            raise TaskRejected(
                f"Task {task_id} is archived; restore it with an explicit update first",
                TERMINAL_STATUS,
                task_id,
            )

        now = self.clock()
        task.history.append(TaskHistoryEntry(
            now,
            HistoryAction.COMPLETED,
            "Task marked as complete",
            previous_value=task.status.value,
            new_value=TaskStatus.COMPLETED.value,
        ))
        task.status = TaskStatus.COMPLETED
        task.updated_at = now

        self._persist()
        return task.copy()

    def defer(self, task_id: str, new_date: Optional[datetime] = None) -> Task:
        """Push a task to a later date (default: tomorrow 09:00)."""
        task = self._require(task_id)
        if task.status.value in TERMINAL_STATUSES:
            raise TaskRejected(
                f"Task {task_id} is {task.status.value} and cannot be deferred",
                TERMINAL_STATUS,
                task_id,
            )

        now = self.clock()
        if new_date is None:
            new_date = (now + timedelta(days=1)).replace(
                hour=DEFER_HOUR, minute=0, second=0, microsecond=0
            )

        task.history.append(TaskHistoryEntry(
            now,
            HistoryAction.DEFERRED,
            f"Task deferred to {new_date.isoformat()}",
            previous_value=to_jsonable(task.scheduled_date),
            new_value=new_date.isoformat(),
        ))
        task.status = TaskStatus.DEFERRED
        task.scheduled_date = new_date
        task.updated_at = now

        self._persist()
        return task.copy()

    def delete(self, task_id: str, explicit: bool) -> None:
        """
        Remove a task and unlink it from its parent. Children are left in
        place with their parent_id pointing at the removed task.

        Raises:
            TaskRejected: explicit is False
            TaskNotFound: no task with this id
        """
        if not explicit:
            raise explicit_required("deletion", task_id)
        task = self._require(task_id)

        if task.parent_id:
            parent = self._tasks.get(task.parent_id)
            if parent is not None and task_id in parent.child_ids:
                now = self.clock()
                previous = list(parent.child_ids)
                parent.child_ids = [cid for cid in parent.child_ids if cid != task_id]
                parent.updated_at = now
                parent.history.append(TaskHistoryEntry(
                    now,
                    HistoryAction.UPDATED,
                    f"Removed child task: {task_id}",
                    previous_value=previous,
                    new_value=list(parent.child_ids),
                ))

        del self._tasks[task_id]
        self._persist()

    def clear(self) -> None:
        """Drop every task from memory. Storage is untouched until the next save."""
        self._tasks.clear()

    def close(self) -> None:
        if self.storage is not None:
            self.storage.close()

    # ─────────────────────────────────────────────────────────────────────────
    # Export / import
    # ─────────────────────────────────────────────────────────────────────────

    def export_json(self) -> str:
        """Serialize the whole ledger as a JSON array of task records."""
        return json.dumps([t.to_dict() for t in self._tasks.values()], indent=2, ensure_ascii=False)

    def import_json(self, text: str) -> list[Task]:
        """
        Append tasks from an export. Every imported task gets a new id;
        parent/child links inside the batch follow the new ids, and each
        task records its original id in a "created" history entry.

        Raises:
            ValueError: text is not a JSON array of task records
        """
        try:
            data: Any = json.loads(text)
        except json.JSONDecodeError as e:
            raise ValueError(f"Import is not valid JSON: {e}") from e
        if isinstance(data, dict) and isinstance(data.get("tasks"), list):
            data = data["tasks"]
        if not isinstance(data, list):
            raise ValueError("Import must be a JSON array of task records")

        incoming = [Task.from_dict(record) for record in data]
        id_map = {}
        for task in incoming:
            new_id = generate_id()
            while new_id in self._tasks or new_id in id_map.values():
                new_id = generate_id()
            id_map[task.id] = new_id

        now = self.clock()
        imported = []
        for task in incoming:
            original_id = task.id
            task.id = id_map[original_id]
            if task.parent_id in id_map:
                task.parent_id = id_map[task.parent_id]
            task.child_ids = [id_map.get(cid, cid) for cid in task.child_ids]
            task.updated_at = now
            task.history.append(TaskHistoryEntry(
                now,
                HistoryAction.CREATED,
                f"Imported from external source (original ID: {original_id})",
            ))
            self._tasks[task.id] = task
            imported.append(task.copy())

        self._persist()
        logger.info(f"Imported {len(imported)} tasks")
        return imported

    # ─────────────────────────────────────────────────────────────────────────
    # Preferences
    # ─────────────────────────────────────────────────────────────────────────

    def get_preferences(self, default: Optional[Preferences] = None) -> Preferences:
        if self.storage is not None:
            stored = self.storage.load_preferences()
            if stored:
                return Preferences.from_dict(stored)
        elif self._preferences is not None:
            return self._preferences
        return default or Preferences()

    def set_preferences(self, preferences: Preferences) -> Preferences:
        """Replace the preferences record wholesale."""
        if self.storage is not None:
            self.storage.save_preferences(preferences.to_dict())
        else:
            self._preferences = preferences
        return preferences


__all__ = ["TaskStore"]
