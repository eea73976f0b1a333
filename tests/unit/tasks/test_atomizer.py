"""Tests for atomize/tasks/atomizer.py

The atomization engine breaks long tasks into 15-60 minute micro-tasks.
Key functionality:
- Short tasks come back as a single step without an LLM call
- Replies are normalised: verb-led titles, clamped durations, valid deps
- Any provider failure falls back to a single step (never raises)
- Dependency ordering with cycle tolerance
"""

import random
from datetime import datetime, timedelta

import pytest

from atomize.tasks.atomizer import (
    AtomizationEngine,
    AtomizationResponseError,
    MicroTask,
    build_parallel_groups,
    clamp_minutes,
    ensure_action_verb,
    order_by_dependencies,
    starts_with_action_verb,
    to_task_inputs,
    topological_sort,
)
from atomize.tasks.models import Preferences, Priority, Task
from tests.conftest import FakeProvider

NOW = datetime(2026, 3, 11, 10, 0)


def build_task(**overrides) -> Task:
    data = {
        "id": "t1",
        "created_at": NOW,
        "updated_at": NOW,
        "title": "Write the quarterly report",
        "raw_input": "write the quarterly report",
        "priority": Priority.MEDIUM,
        "priority_reason": "Default priority",
        "estimated_minutes": 180,
    }
    data.update(overrides)
    return Task(**data)


# ─────────────────────────────────────────────────────────────────────────────
# Normalisation Helpers
# ─────────────────────────────────────────────────────────────────────────────


class TestActionVerbs:
    """Tests for verb-led titles."""

    @pytest.mark.parametrize("title", ["Write intro", "review the PR", "Set up the repo", "Call"])
    def test_recognizes_verbs(self, title):
        assert starts_with_action_verb(title)

    def test_verb_must_be_whole_word(self):
        """'Writer' is not 'Write'."""
        assert not starts_with_action_verb("Writers meeting")

    @pytest.mark.parametrize(
        "title,expected",
        [
            ("Write intro", "Write intro"),
            ("message for Sam", "Send message for Sam"),
            ("team meeting", "Schedule team meeting"),
            ("status report", "Write status report"),
            ("login bug", "Fix login bug"),
            ("unit tests", "Run unit tests"),
            ("the slides", "Complete the slides"),
            ("  the   slides ", "Complete the slides"),
        ],
    )
    def test_ensure_action_verb(self, title, expected):
        assert ensure_action_verb(title) == expected


class TestClampMinutes:
    """Tests for duration clamping."""

    @pytest.mark.parametrize(
        "value,expected",
        [
            (5, 15),
            (15, 15),
            (45, 45),
            (90, 60),
            (44.6, 45),
            ("20", 20),
            (None, 30),
            ("soon", 30),
            (0, 30),
            (-10, 30),
            (True, 30),
            (float("nan"), 30),
            (float("inf"), 30),
            (float("-inf"), 30),
            ("1e400", 30),
        ],
    )
    def test_clamps(self, value, expected):
        assert clamp_minutes(value) == expected


class TestDependencyOrdering:
    """Tests for topological ordering and parallel groups."""

    def test_orders_dependencies_first(self):
        tasks = [
            MicroTask("Write draft", 30, depends_on=[2]),
            MicroTask("Send draft", 15, depends_on=[0]),
            MicroTask("Gather notes", 30),
        ]

        assert topological_sort(tasks) == [2, 0, 1]
        assert [t.title for t in order_by_dependencies(tasks)] == ["Gather notes", "Write draft", "Send draft"]

    def test_ties_keep_list_order(self):
        tasks = [MicroTask(f"Do {i}", 30) for i in range(4)]

        assert topological_sort(tasks) == [0, 1, 2, 3]

    def test_cycle_returns_original_order(self):
        tasks = [
            MicroTask("Do a", 30, depends_on=[1]),
            MicroTask("Do b", 30, depends_on=[0]),
            MicroTask("Do c", 30),
        ]

        assert topological_sort(tasks) == [0, 1, 2]

    def test_parallel_groups_are_consecutive_runs(self):
        tasks = [
            MicroTask("Do a", 30, is_parallelizable=True),
            MicroTask("Do b", 30, is_parallelizable=True),
            MicroTask("Do c", 30, depends_on=[0]),
            MicroTask("Do d", 30, is_parallelizable=True),
        ]

        assert build_parallel_groups(tasks) == [[0, 1], [3]]

    @pytest.mark.parametrize("seed", range(20))
    def test_random_dags_respect_every_edge(self, seed):
        rng = random.Random(seed)
        n = rng.randint(1, 8)
        # Edges only point backwards in a hidden permutation, so the graph is acyclic
        rank = list(range(n))
        rng.shuffle(rank)
        tasks = [
            MicroTask(f"Do {i}", 30, depends_on=[j for j in range(n) if rank[j] < rank[i] and rng.random() < 0.4])
            for i in range(n)
        ]

        order = topological_sort(tasks)

        position = {index: pos for pos, index in enumerate(order)}
        assert sorted(order) == list(range(n))
        assert all(position[dep] < position[i] for i, t in enumerate(tasks) for dep in t.depends_on)


# ─────────────────────────────────────────────────────────────────────────────
# Engine
# ─────────────────────────────────────────────────────────────────────────────


class TestAtomize:
    """Tests for AtomizationEngine.atomize."""

    def test_short_task_skips_provider(self):
        provider = FakeProvider()
        engine = AtomizationEngine(provider)

        result = engine.atomize(build_task(title="quick message to Sam", estimated_minutes=20))

        assert provider.calls == []
        assert not result.used_fallback
        assert len(result.micro_tasks) == 1
        assert result.micro_tasks[0].title == "Send quick message to Sam"
        assert result.micro_tasks[0].estimated_minutes == 20
        assert result.parallel_groups == [[0]]

    def test_normalizes_reply(self, three_step_reply):
        provider = FakeProvider([three_step_reply])
        engine = AtomizationEngine(provider)

        result = engine.atomize(build_task())

        assert [mt.title for mt in result.micro_tasks] == [
            "Gather sales figures",
            "Write the summary section",
            "Send draft to manager",
        ]
        assert [mt.estimated_minutes for mt in result.micro_tasks] == [30, 45, 15]
        assert [(d.from_index, d.to_index) for d in result.dependencies] == [(0, 1), (1, 2)]
        assert result.parallel_groups == [[0]]
        assert result.mvp_suggestion == "Send a one-page summary"
        assert provider.calls[0]["method"] == "generate_structured"
        assert provider.calls[0]["temperature"] == 0.3

    def test_drops_invalid_dependencies(self):
        reply = {"microTasks": [
            {"title": "Draft outline", "estimatedMinutes": 30, "dependsOn": [0, 5, -1, "x", True]},
            {"title": "Review outline", "estimatedMinutes": 200, "dependsOn": [0.0, "0", 0]},
        ]}
        engine = AtomizationEngine(FakeProvider([reply]))

        result = engine.atomize(build_task())

        assert result.micro_tasks[0].depends_on == []
        assert result.micro_tasks[1].depends_on == [0]
        assert result.micro_tasks[1].estimated_minutes == 60

    def test_default_mvp_with_deadline(self):
        reply = {"microTasks": [{"title": "Draft outline", "estimatedMinutes": 30}]}
        engine = AtomizationEngine(FakeProvider([reply]))

        result = engine.atomize(build_task(deadline=NOW + timedelta(days=1)))

        assert result.mvp_suggestion == 'Complete "Draft outline"'

    def test_no_mvp_without_deadline(self):
        reply = {"microTasks": [{"title": "Draft outline", "estimatedMinutes": 30}]}
        engine = AtomizationEngine(FakeProvider([reply]))

        assert engine.atomize(build_task()).mvp_suggestion is None

    def test_non_finite_duration_keeps_decomposition(self, three_step_reply):
        """One unusable duration is clamped, not a reason to discard the reply."""
        three_step_reply["microTasks"][0]["estimatedMinutes"] = float("inf")
        engine = AtomizationEngine(FakeProvider([three_step_reply]))

        result = engine.atomize(build_task())

        assert not result.used_fallback
        assert len(result.micro_tasks) == 3
        assert [mt.estimated_minutes for mt in result.micro_tasks] == [30, 45, 15]

    @pytest.mark.parametrize(
        "reply",
        [
            RuntimeError("network down"),
            {"microTasks": []},
            {"steps": []},
            {"microTasks": ["not an object"]},
            {"microTasks": [{"estimatedMinutes": 30}]},
        ],
    )
    def test_failures_fall_back_to_template(self, reply):
        engine = AtomizationEngine(FakeProvider([reply]))
        task = build_task(deadline=NOW + timedelta(days=1))

        result = engine.atomize(task)

        assert result.used_fallback
        assert [mt.title for mt in result.micro_tasks] == [
            "Clarify scope for Write the quarterly report",
            "Gather inputs for Write the quarterly report",
            "Complete the next small chunk of Write the quarterly report",
        ]
        assert [mt.estimated_minutes for mt in result.micro_tasks] == [15, 15, 20]
        assert result.mvp_suggestion == 'Complete "Clarify scope for Write the quarterly report"'

    def test_no_provider_falls_back_to_template(self):
        result = AtomizationEngine(None).atomize(build_task(estimated_minutes=None))

        assert result.used_fallback
        assert len(result.micro_tasks) == 3
        assert result.parallel_groups == [[0, 1, 2]]
        assert result.mvp_suggestion is None

    def test_process_response_raises(self):
        engine = AtomizationEngine(None)

        with pytest.raises(AtomizationResponseError):
            engine.process_response({"microTasks": None}, build_task())


class TestPrompt:
    """Tests for prompt construction."""

    def test_includes_task_details(self):
        task = build_task(description="For the board", deadline=datetime(2026, 3, 13, 17, 0))

        prompt = AtomizationEngine(None).build_prompt(task)

        assert "Task: Write the quarterly report" in prompt
        assert "Description: For the board" in prompt
        assert "Deadline: 2026-03-13T17:00:00" in prompt
        assert "Estimated total time: 180 minutes" in prompt

    def test_preferences_add_hints(self):
        prefs = Preferences(breakdown_depth="light", step_size="short", style_preset="adhd")

        prompt = AtomizationEngine(None, prefs).build_prompt(build_task())

        assert "2-4 micro-tasks" in prompt
        assert "15-30 minutes" in prompt
        assert "trivially easy" in prompt

    def test_default_preferences_add_nothing(self):
        prompt = AtomizationEngine(None).build_prompt(build_task(estimated_minutes=None))

        assert prompt.splitlines()[-1] == "Task: Write the quarterly report"


# ─────────────────────────────────────────────────────────────────────────────
# MVP and Estimates
# ─────────────────────────────────────────────────────────────────────────────


class TestSuggestMvp:
    """Tests for minimum viable progress suggestions."""

    def test_empty_without_deadline(self):
        assert AtomizationEngine(FakeProvider(["anything"])).suggest_mvp(build_task()) == ""

    def test_uses_provider_text(self):
        engine = AtomizationEngine(FakeProvider(["  Outline the three key findings \n"]))

        assert engine.suggest_mvp(build_task(deadline=NOW)) == "Outline the three key findings"

    def test_falls_back_on_error(self):
        engine = AtomizationEngine(FakeProvider([RuntimeError("boom")]))

        assert engine.suggest_mvp(build_task(deadline=NOW)) == 'Complete the first step of "Write the quarterly report"'


class TestEstimateTime:
    """Tests for duration estimates."""

    @pytest.mark.parametrize("reply,expected", [("45", 45), ("90 minutes, roughly", 90), ("2", 5), ("1000", 480), ("no idea", 30)])
    def test_parses_and_clamps(self, reply, expected):
        engine = AtomizationEngine(FakeProvider([reply]))

        assert engine.estimate_time(build_task()) == expected

    def test_default_without_provider(self):
        assert AtomizationEngine(None).estimate_time(build_task()) == 30

    def test_default_on_error(self):
        assert AtomizationEngine(FakeProvider([RuntimeError("boom")])).estimate_time(build_task()) == 30


class TestToTaskInputs:
    """Tests for turning a result into child inputs."""

    def test_children_inherit_deadline(self, three_step_reply):
        parent = build_task(deadline=NOW + timedelta(days=2))
        result = AtomizationEngine(FakeProvider([three_step_reply])).atomize(parent)

        inputs = to_task_inputs(result, parent)

        assert [i.title for i in inputs] == [mt.title for mt in result.micro_tasks]
        assert all(i.parent_id == "t1" for i in inputs)
        assert all(i.deadline == parent.deadline for i in inputs)
        assert inputs[1].estimated_minutes == 45
