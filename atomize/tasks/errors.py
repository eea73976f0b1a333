"""Rejections raised by the task ledger.

Every rejection carries a machine-readable ``kind`` so callers (the CLI,
the plan manager) can branch on it without parsing messages.
"""

from __future__ import annotations

EXPLICIT_REQUIRED = "explicit_required"
TERMINAL_STATUS = "terminal_status"
INVALID_VALUE = "invalid_value"
NOT_FOUND = "not_found"


class TaskStoreError(Exception):
    """Base class for task ledger errors."""


class TaskRejected(TaskStoreError, ValueError):
    """A mutation was refused. Nothing was changed."""

    def __init__(self, message: str, kind: str, task_id: str | None = None):
        super().__init__(message)
        self.kind = kind
        self.task_id = task_id


class TaskNotFound(TaskRejected, LookupError):
    """No task exists with the given id."""

    def __init__(self, task_id: str):
        super().__init__(f"Task not found: {task_id}", NOT_FOUND, task_id)


def explicit_required(operation: str, task_id: str) -> TaskRejected:
    return TaskRejected(
        f"Task {operation} requires an explicit user request; pass explicit=True",
        EXPLICIT_REQUIRED,
        task_id,
    )


__all__ = [
    "EXPLICIT_REQUIRED",
    "INVALID_VALUE",
    "NOT_FOUND",
    "TERMINAL_STATUS",
    "TaskNotFound",
    "TaskRejected",
    "TaskStoreError",
    "explicit_required",
]
