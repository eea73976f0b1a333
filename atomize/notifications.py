"""
Tool: Notification Manager
Purpose: Task reminders with snooze, dismiss and quiet hours

There is no timer thread. Callers poll: mark_due_as_sent() flips every
pending or snoozed reminder whose time has come to "sent" (when the
preferences allow sending) and returns them for delivery.

Usage:
    manager = NotificationManager(preferences)
    manager.schedule_reminder(task.id, task.deadline - timedelta(hours=1), "Due soon")
    for note in manager.mark_due_as_sent():
        print(note.message)
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, time, timedelta
from enum import Enum
from typing import Any, Callable, Iterable, Optional

from atomize.logging_config import get_logger
from atomize.tasks.models import Preferences, Task, format_datetime, generate_id, parse_datetime

logger = get_logger(__name__)

REPEATED_SNOOZE_THRESHOLD = 3
DEFAULT_REMINDER_LEAD_MINUTES = 60


class NotificationType(str, Enum):
    REMINDER = "reminder"
    CHECK_IN = "check_in"
    CELEBRATION = "celebration"


class NotificationStatus(str, Enum):
    PENDING = "pending"
    SENT = "sent"
    SNOOZED = "snoozed"
    DISMISSED = "dismissed"


OPEN_STATUSES = (NotificationStatus.PENDING, NotificationStatus.SNOOZED)


@dataclass
class Notification:
    id: str
    task_id: str
    type: NotificationType
    message: str
    scheduled_time: datetime
    status: NotificationStatus = NotificationStatus.PENDING
    snooze_count: int = 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "task_id": self.task_id,
            "type": self.type.value,
            "message": self.message,
            "scheduled_time": format_datetime(self.scheduled_time),
            "status": self.status.value,
            "snooze_count": self.snooze_count,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Notification":
        return cls(
            id=data["id"],
            task_id=data["task_id"],
            type=NotificationType(data.get("type", "reminder")),
            message=data.get("message", ""),
            scheduled_time=parse_datetime(data["scheduled_time"]),
            status=NotificationStatus(data.get("status", "pending")),
            snooze_count=int(data.get("snooze_count", 0)),
        )


def _parse_hhmm(value: str) -> time:
    hours, minutes = value.split(":")
    return time(int(hours), int(minutes))


def in_quiet_hours(now: datetime, start: str, end: str) -> bool:
    """Inclusive at both ends; a start later than end wraps past midnight."""
    current = now.time().replace(second=0, microsecond=0)
    begin, finish = _parse_hhmm(start), _parse_hhmm(end)
    if begin <= finish:
        return begin <= current <= finish
    return current >= begin or current <= finish


class NotificationManager:
    """In-memory reminder book keyed by notification id."""

    def __init__(
        self,
        preferences: Optional[Preferences] = None,
        clock: Callable[[], datetime] = datetime.now,
        lead_minutes: int = DEFAULT_REMINDER_LEAD_MINUTES,
    ):
        self.preferences = preferences or Preferences()
        self.clock = clock
        self.lead_minutes = lead_minutes
        self._notifications: dict[str, Notification] = {}

    def schedule_reminder(self, task_id: str, when: datetime, message: str) -> str:
        notification = Notification(
            id=generate_id(),
            task_id=task_id,
            type=NotificationType.REMINDER,
            message=message,
            scheduled_time=when,
        )
        self._notifications[notification.id] = notification
        logger.debug(f"Scheduled reminder {notification.id} for task {task_id} at {when.isoformat()}")
        return notification.id

    def get(self, notification_id: str) -> Notification | None:
        return self._notifications.get(notification_id)

    def get_pending_notifications(self) -> list[Notification]:
        return [n for n in self._notifications.values() if n.status in OPEN_STATUSES]

    def get_notifications_for_task(self, task_id: str) -> list[Notification]:
        return [n for n in self._notifications.values() if n.task_id == task_id]

    def snooze_notification(self, notification_id: str, minutes: int) -> Notification | None:
        """Push a reminder out by `minutes` from now. Unknown ids are ignored."""
        notification = self._notifications.get(notification_id)
        if notification is None:
            return None
        notification.status = NotificationStatus.SNOOZED
        notification.snooze_count += 1
        notification.scheduled_time = self.clock() + timedelta(minutes=minutes)
        if notification.snooze_count >= REPEATED_SNOOZE_THRESHOLD:
            logger.info(f"Task {notification.task_id} snoozed {notification.snooze_count} times")
        return notification

    def dismiss_notification(self, notification_id: str) -> Notification | None:
        notification = self._notifications.get(notification_id)
        if notification is None:
            return None
        notification.status = NotificationStatus.DISMISSED
        return notification

    def cancel_notifications_for_task(self, task_id: str) -> int:
        notifications = self.get_notifications_for_task(task_id)
        for notification in notifications:
            notification.status = NotificationStatus.DISMISSED
        return len(notifications)

    def get_snooze_count(self, notification_id: str) -> int:
        notification = self._notifications.get(notification_id)
        return notification.snooze_count if notification else 0

    def is_repeatedly_snoozed(self, task_id: str) -> bool:
        """True once any reminder for the task has been snoozed 3+ times."""
        return any(
            n.snooze_count >= REPEATED_SNOOZE_THRESHOLD
            for n in self.get_notifications_for_task(task_id)
        )

    def should_send_notification(self, now: Optional[datetime] = None) -> bool:
        if self.preferences.notification_frequency == "off":
            return False
        quiet = self.preferences.quiet_hours
        if quiet is not None and in_quiet_hours(now or self.clock(), quiet.start, quiet.end):
            return False
        return True

    def mark_due_as_sent(self) -> list[Notification]:
        """Return reminders that are due now and mark them sent."""
        now = self.clock()
        if not self.should_send_notification(now):
            return []
        due = [n for n in self.get_pending_notifications() if n.scheduled_time <= now]
        for notification in due:
            notification.status = NotificationStatus.SENT
        return due

    def rebuild_from_tasks(self, tasks: Iterable[Task]) -> int:
        """
        Schedule one deadline reminder per active task that never had one.

        A reminder already sent or dismissed is not scheduled again.

        Reminders fire `lead_minutes` before the deadline; deadlines already
        inside that window get a reminder for right now.
        """
        now = self.clock()
        created = 0
        for task in tasks:
            if not task.is_active or task.deadline is None or task.deadline < now:
                continue
            if self.get_notifications_for_task(task.id):
                continue
            when = max(task.deadline - timedelta(minutes=self.lead_minutes), now)
            self.schedule_reminder(task.id, when, f'"{task.title}" is due soon')
            created += 1
        return created

    def to_list(self) -> list[dict[str, Any]]:
        return [n.to_dict() for n in self._notifications.values()]


__all__ = [
    "Notification",
    "NotificationManager",
    "NotificationStatus",
    "NotificationType",
    "in_quiet_hours",
]
