"""
Tool: Progress Manager
Purpose: Completion streaks and per-day progress

A task counts as completed on the local calendar day of its first
"completed" history entry. A streak is the run of consecutive completion
days ending today, or ending yesterday if nothing is done yet today.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from typing import Any, Callable, Iterable, Optional

from .models import HistoryAction, Task, TaskStatus
from .store import TaskStore


@dataclass
class DayProgress:
    date: date
    completed_count: int
    total_count: int
    completed_task_ids: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "date": self.date.isoformat(),
            "completed_count": self.completed_count,
            "total_count": self.total_count,
            "completed_task_ids": list(self.completed_task_ids),
        }


@dataclass
class ProgressStats:
    today: DayProgress
    streak: int
    total_completed: int
    completion_rate: float  # 0-1

    def to_dict(self) -> dict[str, Any]:
        return {
            "today": self.today.to_dict(),
            "streak": self.streak,
            "total_completed": self.total_completed,
            "completion_rate": self.completion_rate,
        }


def completion_date(task: Task) -> Optional[date]:
    """Day a completed task was first marked complete, or None."""
    if task.status != TaskStatus.COMPLETED:
        return None
    for entry in task.history:
        if entry.action == HistoryAction.COMPLETED:
            return entry.timestamp.date()
    return None


def calculate_streak(completion_dates: Iterable[date], today: date) -> int:
    """
    Consecutive days with a completion, counting back from today.

    If today has no completion the count starts from yesterday; any older
    most-recent date means the streak is broken (0).
    """
    days = set(completion_dates)
    if today in days:
        cursor = today
    elif today - timedelta(days=1) in days:
        cursor = today - timedelta(days=1)
    else:
        return 0

    streak = 0
    while cursor in days:
        streak += 1
        cursor -= timedelta(days=1)
    return streak


class ProgressManager:
    """Read-only progress views over the task store."""

    def __init__(self, store: TaskStore, clock: Callable[[], datetime] = datetime.now):
        self.store = store
        self.clock = clock

    def completion_dates(self) -> set[date]:
        return {d for d in (completion_date(t) for t in self.store.get_all()) if d is not None}

    def calculate_streak(self) -> int:
        return calculate_streak(self.completion_dates(), self.clock().date())

    def get_progress_for_date(self, day: date | datetime) -> DayProgress:
        """Tasks scheduled for the day, plus tasks completed on it."""
        if isinstance(day, datetime):
            day = day.date()

        day_tasks = [
            t for t in self.store.get_all()
            if (t.scheduled_date is not None and t.scheduled_date.date() == day)
            or completion_date(t) == day
        ]
        completed = [t for t in day_tasks if t.status == TaskStatus.COMPLETED]
        return DayProgress(
            date=day,
            completed_count=len(completed),
            total_count=len(day_tasks),
            completed_task_ids=[t.id for t in completed],
        )

    def get_today_progress(self) -> DayProgress:
        return self.get_progress_for_date(self.clock().date())

    def get_weekly_progress(self) -> list[DayProgress]:
        """The last seven days, oldest first, ending today."""
        today = self.clock().date()
        return [self.get_progress_for_date(today - timedelta(days=i)) for i in range(6, -1, -1)]

    def is_all_done_today(self) -> bool:
        progress = self.get_today_progress()
        return progress.total_count > 0 and progress.completed_count == progress.total_count

    def get_progress_stats(self) -> ProgressStats:
        tasks = self.store.get_all()
        total_completed = sum(1 for t in tasks if t.status == TaskStatus.COMPLETED)
        return ProgressStats(
            today=self.get_today_progress(),
            streak=self.calculate_streak(),
            total_completed=total_completed,
            completion_rate=total_completed / len(tasks) if tasks else 0.0,
        )


__all__ = [
    "DayProgress",
    "ProgressManager",
    "ProgressStats",
    "calculate_streak",
    "completion_date",
]
