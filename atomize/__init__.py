"""Atomize - a personal task assistant that turns big tasks into small steps

Philosophy:
    A task that takes three hours is a project wearing a task's clothes.
    Atomize breaks it into 15-60 minute micro-tasks, keeps a priority with
    a human-readable reason on every task, and always answers the question
    "what should I do next?" with exactly one task.

Components:
    tasks/: Date parsing, priority, atomization, task ledger, plans, progress
    storage/: Pluggable persistence (memory, JSON file, SQLite)
    llm/: Pluggable text generation providers (Anthropic, Gemini, Ollama)
    notifications.py: Ephemeral reminders derived from task state
    responses.py: Encouraging, deterministic message text
    config.py: YAML configuration validated with pydantic
    cli.py: JSON-emitting command line front end

Usage:
    from atomize.config import load_config
    from atomize.tasks.manager import build_task_manager

    manager = build_task_manager(load_config())
    task = manager.capture("Write the quarterly report by friday")
    print(manager.get_next_task())
"""

from pathlib import Path

__version__ = "0.3.0"

# Path constants
PROJECT_ROOT = Path(__file__).parent.parent
ARGS_DIR = PROJECT_ROOT / "args"
CONFIG_PATH = ARGS_DIR / "atomize.yaml"
DATA_DIR = PROJECT_ROOT / "data"

__all__ = [
    "__version__",
    "PROJECT_ROOT",
    "ARGS_DIR",
    "CONFIG_PATH",
    "DATA_DIR",
]
