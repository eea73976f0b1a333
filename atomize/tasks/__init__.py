"""Task Engine - priority, atomization and planning over an append-only ledger

Philosophy:
    Every task carries a priority and a reason a person can read.
    Anything longer than an hour gets broken into 15-60 minute steps.
    Nothing about a task changes unless the user explicitly asked for it,
    and every change leaves a history entry behind.

Components:
    models.py: Task, history and preference records
    date_parser.py: "next friday" / "in 3 days" / "jan 15" to datetimes
    priority.py: Weighted priority classification and next-task selection
    atomizer.py: LLM decomposition into dependency-ordered micro-tasks
    store.py: Task ledger with explicit-mutation gate and history
    manager.py: Facade tying store, priority and atomization together
    plan.py: Day / week plans and local plan repair
    progress.py: Completion streaks and daily progress

Usage:
    from atomize.storage.memory import MemoryStorageAdapter
    from atomize.tasks.manager import TaskManager
    from atomize.tasks.models import TaskInput
    from atomize.tasks.priority import PriorityEngine
    from atomize.tasks.store import TaskStore

    store = TaskStore(MemoryStorageAdapter())
    manager = TaskManager(store, PriorityEngine())
    task = manager.create_task(TaskInput(raw_input="Email Sam the slides"))
"""

# Valid values
TASK_STATUSES = ("pending", "in_progress", "completed", "deferred", "archived")
ACTIVE_STATUSES = ("pending", "in_progress")
TERMINAL_STATUSES = ("completed", "archived")
PRIORITY_LEVELS = ("high", "medium", "low")
HISTORY_ACTIONS = ("created", "updated", "completed", "deferred", "rescheduled")

# Sort order for priority levels, most urgent first
PRIORITY_ORDER = {"high": 0, "medium": 1, "low": 2}

# Micro-task duration bounds (minutes)
MIN_STEP_MINUTES = 15
MAX_STEP_MINUTES = 60
DEFAULT_STEP_MINUTES = 30

# Title length taken from raw input when no explicit title is given
MAX_TITLE_LENGTH = 100

# Action verbs a micro-task title must start with
ACTION_VERBS = (
    "Write",
    "Draft",
    "Create",
    "Design",
    "Build",
    "Implement",
    "Develop",
    "Review",
    "Edit",
    "Update",
    "Fix",
    "Debug",
    "Test",
    "Run",
    "Verify",
    "Check",
    "Research",
    "Analyze",
    "Investigate",
    "Explore",
    "Study",
    "Learn",
    "Send",
    "Email",
    "Call",
    "Contact",
    "Schedule",
    "Meet",
    "Discuss",
    "Prepare",
    "Plan",
    "Organize",
    "Set up",
    "Configure",
    "Install",
    "Document",
    "Record",
    "Note",
    "List",
    "Outline",
    "Summarize",
    "Complete",
    "Finish",
    "Submit",
    "Deliver",
    "Present",
    "Share",
    "Gather",
    "Collect",
    "Find",
    "Locate",
    "Identify",
    "Select",
    "Define",
    "Specify",
    "Clarify",
    "Confirm",
    "Validate",
    "Approve",
)

__all__ = [
    "TASK_STATUSES",
    "ACTIVE_STATUSES",
    "TERMINAL_STATUSES",
    "PRIORITY_LEVELS",
    "HISTORY_ACTIONS",
    "PRIORITY_ORDER",
    "MIN_STEP_MINUTES",
    "MAX_STEP_MINUTES",
    "DEFAULT_STEP_MINUTES",
    "MAX_TITLE_LENGTH",
    "ACTION_VERBS",
]
