"""Task data models.

Defines the task record, its append-only history, and the input / patch /
filter types used by the task store:
    TaskInput → Task (+ TaskHistoryEntry per mutation) → dict (persisted)

All instants are naive local datetimes. Persisted records store them as
ISO-8601 strings; aware timestamps read back from storage are converted to
local time.
"""

from __future__ import annotations

import copy
import uuid
from dataclasses import dataclass, field, fields
from datetime import date, datetime
from enum import Enum
from typing import Any


class Priority(str, Enum):
    """Task priority levels."""

    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class TaskStatus(str, Enum):
    """Task lifecycle states."""

    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    DEFERRED = "deferred"
    ARCHIVED = "archived"


class HistoryAction(str, Enum):
    """Kinds of history entries."""

    CREATED = "created"
    UPDATED = "updated"
    COMPLETED = "completed"
    DEFERRED = "deferred"
    RESCHEDULED = "rescheduled"


def generate_id() -> str:
    """Generate a unique 12-character id."""
    return uuid.uuid4().hex[:12]


def parse_datetime(value: Any) -> datetime | None:
    """Parse an ISO-8601 string (or pass through a datetime) to naive local time."""
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        dt = value
    elif isinstance(value, date):
        dt = datetime(value.year, value.month, value.day)
    else:
        dt = datetime.fromisoformat(str(value))
    if dt.tzinfo is not None:
        dt = dt.astimezone().replace(tzinfo=None)
    return dt


def format_datetime(value: datetime | None) -> str | None:
    return value.isoformat() if value is not None else None


def to_jsonable(value: Any) -> Any:
    """Convert a field value into something json.dumps accepts."""
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, (list, tuple)):
        return [to_jsonable(v) for v in value]
    return value


@dataclass
class TaskHistoryEntry:
    """One immutable line of a task's history."""

    timestamp: datetime
    action: HistoryAction
    details: str
    previous_value: Any = None
    new_value: Any = None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "timestamp": self.timestamp.isoformat(),
            "action": self.action.value,
            "details": self.details,
        }
        if self.previous_value is not None:
            data["previous_value"] = self.previous_value
        if self.new_value is not None:
            data["new_value"] = self.new_value
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> TaskHistoryEntry:
        return cls(
            timestamp=parse_datetime(data["timestamp"]),
            action=HistoryAction(data["action"]),
            details=data.get("details", ""),
            previous_value=data.get("previous_value"),
            new_value=data.get("new_value"),
        )


@dataclass
class TaskContext:
    """Context copied from the parent when a child task is created."""

    original_goal: str | None = None
    parent_context: str | None = None
    notes: list[str] = field(default_factory=list)
    related_task_ids: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "original_goal": self.original_goal,
            "parent_context": self.parent_context,
            "notes": list(self.notes),
            "related_task_ids": list(self.related_task_ids),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> TaskContext:
        data = data or {}
        return cls(
            original_goal=data.get("original_goal"),
            parent_context=data.get("parent_context"),
            notes=list(data.get("notes") or []),
            related_task_ids=list(data.get("related_task_ids") or []),
        )


@dataclass
class Task:
    """A task in the ledger."""

    id: str
    created_at: datetime
    updated_at: datetime
    title: str
    raw_input: str
    priority: Priority
    priority_reason: str
    status: TaskStatus = TaskStatus.PENDING
    description: str | None = None
    parent_id: str | None = None
    child_ids: list[str] = field(default_factory=list)
    deadline: datetime | None = None
    scheduled_date: datetime | None = None
    estimated_minutes: int | None = None
    context: TaskContext = field(default_factory=TaskContext)
    history: list[TaskHistoryEntry] = field(default_factory=list)

    @property
    def is_active(self) -> bool:
        return self.status in (TaskStatus.PENDING, TaskStatus.IN_PROGRESS)

    def copy(self) -> Task:
        """Deep copy, so callers can't mutate the ledger's records."""
        return copy.deepcopy(self)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "created_at": self.created_at.isoformat(),
            "updated_at": self.updated_at.isoformat(),
            "title": self.title,
            "description": self.description,
            "raw_input": self.raw_input,
            "parent_id": self.parent_id,
            "child_ids": list(self.child_ids),
            "deadline": format_datetime(self.deadline),
            "scheduled_date": format_datetime(self.scheduled_date),
            "estimated_minutes": self.estimated_minutes,
            "priority": self.priority.value,
            "priority_reason": self.priority_reason,
            "status": self.status.value,
            "context": self.context.to_dict(),
            "history": [entry.to_dict() for entry in self.history],
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Task:
        return cls(
            id=data["id"],
            created_at=parse_datetime(data["created_at"]),
            updated_at=parse_datetime(data.get("updated_at") or data["created_at"]),
            title=data["title"],
            description=data.get("description"),
            raw_input=data.get("raw_input", data["title"]),
            parent_id=data.get("parent_id"),
            child_ids=list(data.get("child_ids") or []),
            deadline=parse_datetime(data.get("deadline")),
            scheduled_date=parse_datetime(data.get("scheduled_date")),
            estimated_minutes=data.get("estimated_minutes"),
            priority=Priority(data.get("priority", "medium")),
            priority_reason=data.get("priority_reason") or "Default priority",
            status=TaskStatus(data.get("status", "pending")),
            context=TaskContext.from_dict(data.get("context")),
            history=[TaskHistoryEntry.from_dict(h) for h in data.get("history") or []],
        )


@dataclass
class TaskInput:
    """Fields accepted when creating a task."""

    raw_input: str
    title: str | None = None
    description: str | None = None
    parent_id: str | None = None
    deadline: datetime | None = None
    scheduled_date: datetime | None = None
    estimated_minutes: int | None = None
    priority: Priority | None = None
    priority_reason: str | None = None


class _Unset:
    def __repr__(self) -> str:
        return "UNSET"

    def __bool__(self) -> bool:
        return False


UNSET: Any = _Unset()


@dataclass
class TaskUpdate:
    """
    A patch for an existing task.

    Only fields that were set are applied; pass None explicitly to clear an
    optional field such as the deadline.
    """

    title: Any = UNSET
    description: Any = UNSET
    deadline: Any = UNSET
    scheduled_date: Any = UNSET
    estimated_minutes: Any = UNSET
    priority: Any = UNSET
    priority_reason: Any = UNSET
    status: Any = UNSET

    def changes(self) -> dict[str, Any]:
        """Fields that were set on this patch, in declaration order."""
        result = {}
        for f in fields(self):
            value = getattr(self, f.name)
            if value is UNSET:
                continue
            if f.name == "priority" and value is not None:
                value = Priority(value)
            elif f.name == "status" and value is not None:
                value = TaskStatus(value)
            elif f.name in ("deadline", "scheduled_date"):
                value = parse_datetime(value)
            result[f.name] = value
        return result

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> TaskUpdate:
        known = {f.name for f in fields(cls)}
        unknown = set(data) - known
        if unknown:
            raise ValueError(f"Unknown task fields: {', '.join(sorted(unknown))}")
        return cls(**data)


@dataclass
class DateRange:
    """Inclusive range of instants."""

    start: datetime
    end: datetime

    def contains(self, value: datetime) -> bool:
        return self.start <= value <= self.end


@dataclass
class TaskFilter:
    """Criteria for TaskStore.get_all; all set criteria must match."""

    status: list[TaskStatus] | None = None
    priority: list[Priority] | None = None
    date_range: DateRange | None = None
    parent_id: str | None = None
    scheduled_date: date | datetime | None = None

    def matches(self, task: Task) -> bool:
        if self.status is not None and task.status not in [TaskStatus(s) for s in self.status]:
            return False
        if self.priority is not None and task.priority not in [Priority(p) for p in self.priority]:
            return False
        if self.date_range is not None:
            if task.scheduled_date is None or not self.date_range.contains(task.scheduled_date):
                return False
        if self.parent_id is not None and task.parent_id != self.parent_id:
            return False
        if self.scheduled_date is not None:
            day = self.scheduled_date.date() if isinstance(self.scheduled_date, datetime) else self.scheduled_date
            if task.scheduled_date is None or task.scheduled_date.date() != day:
                return False
        return True


# =============================================================================
# Preferences
# =============================================================================

BREAKDOWN_DEPTHS = ("light", "standard", "detailed")
STEP_SIZES = ("short", "default", "long")
STYLE_PRESETS = ("executive", "adhd", "balanced")
NUDGE_STYLES = ("neutral", "encouraging", "direct")
NOTIFICATION_FREQUENCIES = ("off", "minimal", "normal", "frequent")


@dataclass
class QuietHours:
    """Local HH:MM range during which nothing is sent. May wrap midnight."""

    start: str
    end: str

    def to_dict(self) -> dict[str, str]:
        return {"start": self.start, "end": self.end}


@dataclass
class Preferences:
    """User preferences. A singleton record, replaced wholesale."""

    breakdown_depth: str = "standard"
    step_size: str = "default"
    style_preset: str = "balanced"
    nudge_style: str = "encouraging"
    notification_frequency: str = "normal"
    quiet_hours: QuietHours | None = None
    celebrations_enabled: bool = True

    def __post_init__(self) -> None:
        choices = {
            "breakdown_depth": BREAKDOWN_DEPTHS,
            "step_size": STEP_SIZES,
            "style_preset": STYLE_PRESETS,
            "nudge_style": NUDGE_STYLES,
            "notification_frequency": NOTIFICATION_FREQUENCIES,
        }
        for name, allowed in choices.items():
            value = getattr(self, name)
            if value not in allowed:
                raise ValueError(f"Invalid {name}: {value}. Must be one of {allowed}")
        if isinstance(self.quiet_hours, dict):
            self.quiet_hours = QuietHours(**self.quiet_hours)

    def to_dict(self) -> dict[str, Any]:
        return {
            "breakdown_depth": self.breakdown_depth,
            "step_size": self.step_size,
            "style_preset": self.style_preset,
            "nudge_style": self.nudge_style,
            "notification_frequency": self.notification_frequency,
            "quiet_hours": self.quiet_hours.to_dict() if self.quiet_hours else None,
            "celebrations_enabled": self.celebrations_enabled,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> Preferences:
        data = data or {}
        known = {f.name for f in fields(cls)}
        return cls(**{k: v for k, v in data.items() if k in known})

    @classmethod
    def from_config(cls, config: Any) -> Preferences:
        """Build defaults from an AtomizeConfig."""
        quiet = config.notifications.quiet_hours
        return cls(
            breakdown_depth=config.preferences.breakdown_depth,
            step_size=config.preferences.step_size,
            style_preset=config.preferences.style_preset,
            nudge_style=config.preferences.nudge_style,
            notification_frequency=config.notifications.frequency,
            quiet_hours=QuietHours(quiet.start, quiet.end) if quiet else None,
            celebrations_enabled=config.notifications.celebrations_enabled,
        )
