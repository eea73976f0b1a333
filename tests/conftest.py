"""Shared test fixtures for Atomize tests.

This module provides common fixtures used across all test modules:
- A fixed clock (Wednesday 2026-03-11 10:00 local)
- In-memory storage, task stores and engines wired to that clock
- A scripted LLM provider standing in for real API calls

Usage:
    def test_something(store, now):
        task = store.create(TaskInput(raw_input="Call the bank"))
        assert task.created_at == now
"""

from __future__ import annotations

from datetime import datetime, timedelta
from pathlib import Path
from typing import Any, Optional

import pytest

from atomize.llm.base import LLMMessage, LLMProvider, LLMResponse
from atomize.storage.memory import MemoryStorageAdapter
from atomize.tasks.atomizer import AtomizationEngine
from atomize.tasks.clarifier import ClarificationEngine
from atomize.tasks.manager import TaskManager
from atomize.tasks.models import TaskInput
from atomize.tasks.plan import PlanManager
from atomize.tasks.priority import PriorityEngine
from atomize.tasks.progress import ProgressManager
from atomize.tasks.store import TaskStore


# ─────────────────────────────────────────────────────────────────────────────
# Clock Fixtures
# ─────────────────────────────────────────────────────────────────────────────

FIXED_NOW = datetime(2026, 3, 11, 10, 0)  # a Wednesday


class FakeClock:
    """Callable clock that tests can move forward."""

    def __init__(self, now: datetime = FIXED_NOW):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> datetime:
        self.now = self.now + timedelta(**kwargs)
        return self.now


@pytest.fixture
def now() -> datetime:
    """The fixed 'current' instant used by every clock fixture."""
    return FIXED_NOW


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


# ─────────────────────────────────────────────────────────────────────────────
# LLM Fixtures
# ─────────────────────────────────────────────────────────────────────────────


class FakeProvider(LLMProvider):
    """Scripted provider.

    Each call pops the next scripted reply. A dict is returned from
    generate_structured, a str from generate, and an Exception is raised.
    """

    name = "fake"

    def __init__(self, replies: Optional[list[Any]] = None):
        super().__init__(model="fake-model")
        self.replies = list(replies or [])
        self.calls: list[dict[str, Any]] = []

    def _next(self) -> Any:
        if not self.replies:
            raise RuntimeError("FakeProvider ran out of replies")
        reply = self.replies.pop(0)
        if isinstance(reply, Exception):
            raise reply
        return reply

    def generate(
        self,
        messages: list[LLMMessage],
        temperature: Optional[float] = None,
        max_tokens: Optional[int] = None,
    ) -> LLMResponse:
        self.calls.append({"method": "generate", "messages": messages, "temperature": temperature})
        return LLMResponse(content=str(self._next()))

    def generate_structured(
        self,
        messages: list[LLMMessage],
        schema: dict[str, Any],
        temperature: Optional[float] = None,
    ) -> dict[str, Any]:
        self.calls.append({"method": "generate_structured", "messages": messages, "temperature": temperature})
        return self._next()


@pytest.fixture
def fake_provider() -> FakeProvider:
    return FakeProvider()


@pytest.fixture
def three_step_reply() -> dict:
    """A well-formed decomposition of a report-writing task."""
    return {
        "microTasks": [
            {"title": "Gather sales figures", "estimatedMinutes": 30, "dependsOn": []},
            {"title": "Write the summary section", "estimatedMinutes": 45, "dependsOn": [0]},
            {"title": "Send draft to manager", "estimatedMinutes": 15, "dependsOn": [1]},
        ],
        "mvpSuggestion": "Send a one-page summary",
    }


# ─────────────────────────────────────────────────────────────────────────────
# Store and Engine Fixtures
# ─────────────────────────────────────────────────────────────────────────────


@pytest.fixture
def memory_storage() -> MemoryStorageAdapter:
    return MemoryStorageAdapter()


@pytest.fixture
def store(memory_storage, clock) -> TaskStore:
    """Task store over in-memory storage, on the fixed clock."""
    return TaskStore(memory_storage, clock=clock).initialize()


@pytest.fixture
def priority_engine(clock) -> PriorityEngine:
    return PriorityEngine(clock=clock)


@pytest.fixture
def atomization_engine(fake_provider) -> AtomizationEngine:
    return AtomizationEngine(fake_provider)


@pytest.fixture
def manager(store, priority_engine, atomization_engine, fake_provider, clock) -> TaskManager:
    return TaskManager(
        store,
        priority_engine,
        atomization_engine,
        clock=clock,
        clarification_engine=ClarificationEngine(fake_provider, clock),
    )


@pytest.fixture
def plan_manager(store, priority_engine, clock) -> PlanManager:
    return PlanManager(store, priority_engine, clock=clock)


@pytest.fixture
def progress_manager(store, clock) -> ProgressManager:
    return ProgressManager(store, clock=clock)


# ─────────────────────────────────────────────────────────────────────────────
# Task Fixtures
# ─────────────────────────────────────────────────────────────────────────────


@pytest.fixture
def sample_input(now) -> TaskInput:
    """A task with a deadline two days out."""
    return TaskInput(
        raw_input="write the quarterly report",
        title="Write the quarterly report",
        description="Q1 numbers for the board",
        deadline=now + timedelta(days=2),
        estimated_minutes=180,
    )


@pytest.fixture
def make_task(store):
    """Factory creating tasks in the shared store."""

    def _make(title: str = "Task", **kwargs):
        return store.create(TaskInput(raw_input=kwargs.pop("raw_input", title), title=title, **kwargs))

    return _make


# ─────────────────────────────────────────────────────────────────────────────
# Path Fixtures
# ─────────────────────────────────────────────────────────────────────────────


@pytest.fixture
def temp_data_dir(tmp_path: Path) -> Path:
    """Create a temporary data directory structure.

    Returns:
        Path to temporary data directory
    """
    data_dir = tmp_path / "data"
    data_dir.mkdir(parents=True, exist_ok=True)
    return data_dir
