"""
Tool: Priority Engine
Purpose: Classify tasks as high / medium / low with a human-readable reason

Four weighted factors feed a 0-100 score:
    deadline urgency (50), existing priority (30), age (10), hierarchy (10)

score >= 70 is high, >= 40 medium, otherwise low. A deadline that is
overdue or inside 24 hours always classifies as high, so the reason shown
to the user ("High: Overdue") never contradicts the level.

The engine holds no state. Construct one and pass it to whatever needs it.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Callable, Optional

from . import PRIORITY_ORDER
from .models import Priority, Task, TaskStatus, TaskUpdate

HOURS_IN_DAY = 24
HOURS_IN_WEEK = 7 * HOURS_IN_DAY

HIGH_THRESHOLD = 70
MEDIUM_THRESHOLD = 40

EXISTING_PRIORITY_VALUES = {
    Priority.HIGH: 100,
    Priority.MEDIUM: 50,
    Priority.LOW: 20,
}


def round_half_up(value: float) -> int:
    """Round .5 upward, unlike round()'s banker's rounding."""
    return math.floor(value + 0.5)


@dataclass
class PriorityFactor:
    """One weighted input to the priority score."""

    name: str
    weight: int
    value: int
    explanation: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "weight": self.weight,
            "value": self.value,
            "explanation": self.explanation,
        }


@dataclass
class PriorityResult:
    """Outcome of classifying a task."""

    level: Priority
    reason: str
    score: int
    factors: list[PriorityFactor] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "level": self.level.value,
            "reason": self.reason,
            "score": self.score,
            "factors": [f.to_dict() for f in self.factors],
        }


class PriorityEngine:
    """Deadline-driven priority classification and next-task selection."""

    def __init__(self, clock: Callable[[], datetime] = datetime.now):
        self.clock = clock

    def calculate_priority(self, task: Task, now: Optional[datetime] = None) -> PriorityResult:
        """
        Classify a task.

        Args:
            task: Task to classify (its current priority is one of the inputs)
            now: Reference instant (default: the engine's clock)

        Returns:
            PriorityResult with level, reason, score and the four factors
        """
        now = now or self.clock()
        factors = [
            self._deadline_factor(task, now),
            self._existing_priority_factor(task),
            self._age_factor(task, now),
            self._hierarchy_factor(task),
        ]

        total = sum(f.value * f.weight for f in factors)
        weight = sum(f.weight for f in factors)
        score = min(100, max(0, round_half_up(total / weight)))

        deadline = factors[0]
        if deadline.explanation in ("Overdue", "Due within 24 hours"):
            level = Priority.HIGH
        else:
            level = self._score_to_level(score)

        return PriorityResult(
            level=level,
            reason=self._reason(level, deadline),
            score=score,
            factors=factors,
        )

    def recalculate_priority(self, task: Task, now: Optional[datetime] = None) -> tuple[Priority, str]:
        """Return (level, reason) for a task, e.g. after its deadline moved."""
        result = self.calculate_priority(task, now)
        return result.level, result.reason

    def prioritize_tasks(self, tasks: list[Task]) -> list[Task]:
        """
        Sort most urgent first: level, then deadline (undated last), then age.

        The sort is stable, so fully tied tasks keep their input order.
        """
        def sort_key(task: Task):
            has_deadline = task.deadline is not None
            return (
                PRIORITY_ORDER[task.priority.value],
                0 if has_deadline else 1,
                task.deadline if has_deadline else datetime.min,
                task.created_at,
            )

        return sorted(tasks, key=sort_key)

    def get_next_task(self, tasks: list[Task]) -> Task | None:
        """The single task to work on now, or None when nothing is actionable."""
        actionable = [
            t for t in tasks
            if t.status in (TaskStatus.PENDING, TaskStatus.IN_PROGRESS)
        ]
        if not actionable:
            return None
        return self.prioritize_tasks(actionable)[0]

    # ─────────────────────────────────────────────────────────────────────────
    # Factors
    # ─────────────────────────────────────────────────────────────────────────

    def _deadline_factor(self, task: Task, now: datetime) -> PriorityFactor:
        weight = 50

        if task.deadline is None:
            return PriorityFactor("deadline", weight, 30, "No deadline set")

        hours = (task.deadline - now).total_seconds() / 3600

        if hours <= 0:
            return PriorityFactor("deadline", weight, 100, "Overdue")

        if hours <= HOURS_IN_DAY:
            return PriorityFactor("deadline", weight, 100, "Due within 24 hours")

        days = hours / HOURS_IN_DAY
        if hours <= HOURS_IN_WEEK:
            value = round_half_up(90 - (days - 1) * 3)
        else:
            value = max(20, round_half_up(60 - days))

        return PriorityFactor("deadline", weight, value, f"Due in {math.ceil(days)} days")

    def _existing_priority_factor(self, task: Task) -> PriorityFactor:
        return PriorityFactor(
            "existing_priority",
            30,
            EXISTING_PRIORITY_VALUES[task.priority],
            f"Current priority: {task.priority.value}",
        )

    def _age_factor(self, task: Task, now: datetime) -> PriorityFactor:
        age_days = max(0.0, (now - task.created_at).total_seconds() / 86400)
        value = min(100, round_half_up(30 + age_days * 10))
        return PriorityFactor("age", 10, value, f"Created {math.floor(age_days)} days ago")

    def _hierarchy_factor(self, task: Task) -> PriorityFactor:
        if task.child_ids:
            return PriorityFactor("hierarchy", 10, 70, "Has subtasks")
        if task.parent_id:
            return PriorityFactor("hierarchy", 10, 50, "Is a subtask")
        return PriorityFactor("hierarchy", 10, 40, "Standalone task")

    @staticmethod
    def _score_to_level(score: int) -> Priority:
        if score >= HIGH_THRESHOLD:
            return Priority.HIGH
        if score >= MEDIUM_THRESHOLD:
            return Priority.MEDIUM
        return Priority.LOW

    @staticmethod
    def _reason(level: Priority, deadline: PriorityFactor) -> str:
        if deadline.explanation == "Overdue":
            return "High: Overdue"
        if deadline.explanation == "Due within 24 hours":
            return "High: Due within 24 hours"
        if deadline.explanation.startswith("Due in"):
            days = int(deadline.explanation.split()[2])
            if days <= 7:
                return f"{level.value.capitalize()}: {deadline.explanation}"

        return {
            Priority.HIGH: "High: Urgent task",
            Priority.MEDIUM: "Medium: Standard priority",
            Priority.LOW: "Low: No immediate deadline",
        }[level]


def create_priority_override(level: Priority | str) -> TaskUpdate:
    """Patch that sets a user-chosen priority, to apply with explicit=True."""
    level = Priority(level)
    return TaskUpdate(priority=level, priority_reason=f"User override: {level.value}")


__all__ = [
    "PriorityEngine",
    "PriorityFactor",
    "PriorityResult",
    "create_priority_override",
    "round_half_up",
]
