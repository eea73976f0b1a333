"""
Tool: Plan Manager
Purpose: Day and week plans, plus local repair when things change

A plan is derived on demand from the ledger: nothing about it is stored.
adapt_plan reacts to one event at a time and explains what it did in a
sentence the user can read. Only two events write to the ledger:
deadline_changed (a new priority) and time_passed (stale schedules moved
to today).
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from enum import Enum
from typing import Any, Callable, Optional

from atomize.logging_config import get_logger

from . import ACTIVE_STATUSES, DEFAULT_STEP_MINUTES
from .date_parser import end_of_day
from .manager import plan_date
from .models import Priority, Task, TaskFilter, TaskStatus, TaskUpdate, to_jsonable
from .priority import PriorityEngine
from .store import TaskStore

logger = get_logger(__name__)

WEEK_DAYS = 7

# Statuses swept forward by time_passed
SWEEP_STATUSES = ("pending", "in_progress", "deferred")


class TriggerType(str, Enum):
    """Events that can change a plan."""

    TASK_COMPLETED = "task_completed"
    TASK_DEFERRED = "task_deferred"
    NEW_TASK = "new_task"
    DEADLINE_CHANGED = "deadline_changed"
    TIME_PASSED = "time_passed"


@dataclass
class AdaptationTrigger:
    type: TriggerType
    task_id: Optional[str] = None
    details: Any = None

    def __post_init__(self) -> None:
        self.type = TriggerType(self.type)


@dataclass
class PlanChange:
    task_id: str
    change_type: str  # rescheduled | reprioritized | removed
    reason: str
    from_value: Any = None
    to_value: Any = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "task_id": self.task_id,
            "change_type": self.change_type,
            "from": to_jsonable(self.from_value),
            "to": to_jsonable(self.to_value),
            "reason": self.reason,
        }


@dataclass
class PlanAdaptation:
    changes: list[PlanChange] = field(default_factory=list)
    explanation: str = "Plan updated."

    def to_dict(self) -> dict[str, Any]:
        return {
            "changes": [c.to_dict() for c in self.changes],
            "explanation": self.explanation,
        }


@dataclass
class Plan:
    """One day's plan. tasks is the full active list, most urgent first."""

    date: date
    tasks: list[Task]
    completed_count: int
    total_count: int
    estimated_minutes: int

    def to_dict(self) -> dict[str, Any]:
        return {
            "date": self.date.isoformat(),
            "tasks": [t.to_dict() for t in self.tasks],
            "completed_count": self.completed_count,
            "total_count": self.total_count,
            "estimated_minutes": self.estimated_minutes,
        }


class PlanManager:
    """Derives plans from the task store and adapts them to events."""

    def __init__(
        self,
        store: TaskStore,
        priority_engine: PriorityEngine,
        clock: Callable[[], datetime] = datetime.now,
        default_task_minutes: int = DEFAULT_STEP_MINUTES,
    ):
        self.store = store
        self.priority_engine = priority_engine
        self.clock = clock
        self.default_task_minutes = default_task_minutes

    # ─────────────────────────────────────────────────────────────────────────
    # Plans
    # ─────────────────────────────────────────────────────────────────────────

    def get_plan_for_date(self, day: date) -> Plan:
        day_tasks = [
            t for t in self.store.get_all()
            if plan_date(t) is not None and plan_date(t).date() == day
        ]
        active = [t for t in day_tasks if t.status.value in ACTIVE_STATUSES]
        ordered = self.priority_engine.prioritize_tasks(active)
        return Plan(
            date=day,
            tasks=ordered,
            completed_count=sum(1 for t in day_tasks if t.status == TaskStatus.COMPLETED),
            total_count=len(day_tasks),
            estimated_minutes=sum(t.estimated_minutes or self.default_task_minutes for t in ordered),
        )

    def get_today_plan(self) -> Plan:
        return self.get_plan_for_date(self.clock().date())

    def get_week_plan(self) -> list[Plan]:
        """Seven daily plans starting today."""
        today = self.clock().date()
        return [self.get_plan_for_date(today + timedelta(days=i)) for i in range(WEEK_DAYS)]

    def get_next_task(self) -> Task | None:
        return self.priority_engine.get_next_task(self.get_today_plan().tasks)

    def reschedule_task(self, task_id: str, new_date: datetime) -> Task:
        return self.store.update(task_id, TaskUpdate(scheduled_date=new_date), explicit=True)

    def defer_task(self, task_id: str) -> Task:
        return self.store.defer(task_id)

    # ─────────────────────────────────────────────────────────────────────────
    # Adaptation
    # ─────────────────────────────────────────────────────────────────────────

    def adapt_plan(self, trigger: AdaptationTrigger) -> PlanAdaptation:
        """
        React to an event and explain the result.

        The explanation is never empty: it falls back to "Plan updated."
        when the event changed nothing worth mentioning.
        """
        handlers = {
            TriggerType.TASK_COMPLETED: self._on_task_completed,
            TriggerType.TASK_DEFERRED: self._on_task_deferred,
            TriggerType.NEW_TASK: self._on_new_task,
            TriggerType.DEADLINE_CHANGED: self._on_deadline_changed,
            TriggerType.TIME_PASSED: self._on_time_passed,
        }
        changes: list[PlanChange] = []
        notes: list[str] = []
        handlers[trigger.type](trigger, changes, notes)

        adaptation = PlanAdaptation(changes=changes, explanation=" ".join(notes) or "Plan updated.")
        if changes:
            logger.info(f"Plan adapted on {trigger.type.value}: {len(changes)} change(s)")
        return adaptation

    def _task_for(self, trigger: AdaptationTrigger) -> Task | None:
        if not trigger.task_id:
            return None
        return self.store.get(trigger.task_id)

    def _on_task_completed(self, trigger, changes, notes) -> None:
        next_task = self.get_next_task()
        if next_task is not None:
            notes.append(f'Great job! Next up: "{next_task.title}"')
        else:
            notes.append("All done for today! 🎉")

    def _on_task_deferred(self, trigger, changes, notes) -> None:
        task = self._task_for(trigger)
        if task is None:
            return
        changes.append(PlanChange(
            task_id=task.id,
            change_type="rescheduled",
            from_value="today",
            to_value="tomorrow",
            reason="Task deferred by user",
        ))
        notes.append(f'"{task.title}" moved to tomorrow. No worries!')

    def _on_new_task(self, trigger, changes, notes) -> None:
        task = self._task_for(trigger)
        if task is None or task.priority != Priority.HIGH:
            return
        if self.get_today_plan().tasks:
            notes.append(f'Added "{task.title}" as high priority. It\'s now at the top of your list.')

    def _on_deadline_changed(self, trigger, changes, notes) -> None:
        task = self._task_for(trigger)
        if task is None:
            return
        result = self.priority_engine.calculate_priority(task, self.clock())
        if result.level == task.priority:
            return
        self.store.update(
            task.id,
            TaskUpdate(priority=result.level, priority_reason=result.reason),
            explicit=True,
        )
        changes.append(PlanChange(
            task_id=task.id,
            change_type="reprioritized",
            from_value=task.priority.value,
            to_value=result.level.value,
            reason=result.reason,
        ))
        notes.append(f'"{task.title}" priority changed to {result.level.value}: {result.reason}')

    def _on_time_passed(self, trigger, changes, notes) -> None:
        now = self.clock()
        today = now.date()
        target = end_of_day(now)
        stale = [
            t for t in self.store.get_all(TaskFilter(status=[TaskStatus(s) for s in SWEEP_STATUSES]))
            if t.scheduled_date is not None and t.scheduled_date.date() < today
        ]
        for task in stale:
            self.store.update(task.id, TaskUpdate(scheduled_date=target), explicit=True)
            changes.append(PlanChange(
                task_id=task.id,
                change_type="rescheduled",
                from_value=task.scheduled_date,
                to_value=target,
                reason="Auto-rescheduled from past date",
            ))
        if stale:
            notes.append(f"Moved {len(stale)} task(s) from past dates to today.")


__all__ = [
    "AdaptationTrigger",
    "Plan",
    "PlanAdaptation",
    "PlanChange",
    "PlanManager",
    "TriggerType",
]
