"""
Tool: Atomization Engine
Purpose: Break tasks longer than an hour into 15-60 minute micro-tasks

Key insight: a three-hour task on a list gets avoided. Six half-hour steps,
each starting with a verb, get done.

The engine asks an LLM for a structured decomposition, then normalises
whatever comes back: verb-led titles, durations clamped to [15, 60],
dependency indices validated, parallel runs grouped. Any provider failure
or unusable reply falls back to a templated three-step decomposition
(clarify scope, gather inputs, do the next chunk), so atomize() never raises.

Nothing here touches the task store. TaskManager.atomize_task writes the
children once a complete result exists.
"""

from __future__ import annotations

import math
import re
from collections import deque
from dataclasses import dataclass, field
from typing import Any, Optional

from atomize.llm.base import LLMMessage, LLMProvider
from atomize.logging_config import get_logger

from . import ACTION_VERBS, DEFAULT_STEP_MINUTES, MAX_STEP_MINUTES, MIN_STEP_MINUTES
from .models import Preferences, Task, TaskInput

logger = get_logger(__name__)

ATOMIZE_TEMPERATURE = 0.3
MVP_TEMPERATURE = 0.5
ESTIMATE_TEMPERATURE = 0.3

MIN_ESTIMATE_MINUTES = 5
MAX_ESTIMATE_MINUTES = 480
DEFAULT_ESTIMATE_MINUTES = 30

# Keyword → verb, checked in order when a title doesn't start with a verb
VERB_HINTS = (
    (("email", "message"), "Send"),
    (("meeting", "call"), "Schedule"),
    (("report", "document"), "Write"),
    (("bug", "issue"), "Fix"),
    (("test",), "Run"),
)
FALLBACK_VERB = "Complete"

# Generic steps offered when no decomposition could be generated
TEMPLATE_STEPS = (
    ("Clarify scope for {title}", "Write a one-line definition of done.", 8),
    ("Gather inputs for {title}", "List the top three inputs you need.", 12),
    ("Complete the next small chunk of {title}", "Start a five-minute timer and begin.", 20),
)

SYSTEM_PROMPT = """You are a task decomposition assistant. Your job is to break down large tasks into smaller, actionable micro-tasks.

Rules:
1. Each micro-task should take 15-60 minutes
2. Each micro-task title MUST start with an action verb (e.g., "Write", "Review", "Send", "Create")
3. Identify dependencies between tasks (which tasks must be done before others)
4. Mark tasks that can be done in parallel
5. Be specific and concrete - avoid vague tasks
6. Aim for 3-7 micro-tasks for most tasks

Respond with valid JSON only."""

RESPONSE_SCHEMA = {
    "type": "object",
    "properties": {
        "microTasks": {
            "type": "array",
            "items": {
                "type": "object",
                "properties": {
                    "title": {"type": "string"},
                    "description": {"type": "string"},
                    "estimatedMinutes": {"type": "number"},
                    "dependsOn": {"type": "array", "items": {"type": "number"}},
                },
                "required": ["title", "estimatedMinutes"],
            },
        },
        "mvpSuggestion": {"type": "string"},
    },
    "required": ["microTasks"],
}

BREAKDOWN_HINTS = {
    "light": "Keep the breakdown light: 2-4 micro-tasks.",
    "standard": "",
    "detailed": "Be thorough: up to 10 micro-tasks, covering preparation and follow-up.",
}

STEP_SIZE_HINTS = {
    "short": "Prefer short steps of 15-30 minutes.",
    "default": "",
    "long": "Prefer longer focused steps of 45-60 minutes.",
}

STYLE_HINTS = {
    "executive": "Phrase steps as outcomes and decisions, not chores.",
    "adhd": "Make the first step trivially easy to start, and keep every step concrete.",
    "balanced": "",
}


class AtomizationResponseError(ValueError):
    """The structured reply could not be turned into micro-tasks."""


@dataclass
class MicroTask:
    """One suggested step."""

    title: str
    estimated_minutes: int
    description: Optional[str] = None
    depends_on: list[int] = field(default_factory=list)
    is_parallelizable: bool = True

    def to_dict(self) -> dict[str, Any]:
        return {
            "title": self.title,
            "description": self.description,
            "estimated_minutes": self.estimated_minutes,
            "depends_on": list(self.depends_on),
            "is_parallelizable": self.is_parallelizable,
        }


@dataclass
class Dependency:
    """Edge meaning micro_tasks[from_index] must finish before micro_tasks[to_index]."""

    from_index: int
    to_index: int
    type: str = "blocks"

    def to_dict(self) -> dict[str, Any]:
        return {"from_index": self.from_index, "to_index": self.to_index, "type": self.type}


@dataclass
class AtomizationResult:
    """A decomposition ready to be written as child tasks."""

    micro_tasks: list[MicroTask]
    dependencies: list[Dependency] = field(default_factory=list)
    parallel_groups: list[list[int]] = field(default_factory=list)
    mvp_suggestion: Optional[str] = None
    used_fallback: bool = False

    def to_dict(self) -> dict[str, Any]:
        return {
            "micro_tasks": [mt.to_dict() for mt in self.micro_tasks],
            "dependencies": [d.to_dict() for d in self.dependencies],
            "parallel_groups": [list(g) for g in self.parallel_groups],
            "mvp_suggestion": self.mvp_suggestion,
            "used_fallback": self.used_fallback,
        }


# ─────────────────────────────────────────────────────────────────────────────
# Normalisation helpers
# ─────────────────────────────────────────────────────────────────────────────

def starts_with_action_verb(title: str) -> bool:
    lowered = title.lower()
    for verb in ACTION_VERBS:
        v = verb.lower()
        if lowered == v or lowered.startswith(v + " "):
            return True
    return False


def ensure_action_verb(title: str) -> str:
    """Prefix an inferred verb unless the title already starts with one."""
    title = " ".join(title.split())
    if starts_with_action_verb(title):
        return title

    lowered = title.lower()
    for keywords, verb in VERB_HINTS:
        if any(k in lowered for k in keywords):
            return f"{verb} {title}"
    return f"{FALLBACK_VERB} {title}"


def clamp_minutes(value: Any) -> int:
    """Coerce a model-supplied duration into [15, 60]; unusable values become 30."""
    if isinstance(value, bool):
        value = None
    try:
        minutes = float(value)
    except (TypeError, ValueError):
        minutes = 0
    if not math.isfinite(minutes) or minutes <= 0:
        minutes = DEFAULT_STEP_MINUTES
    return int(max(MIN_STEP_MINUTES, min(MAX_STEP_MINUTES, round(minutes))))


def _clean_dependencies(raw: Any, index: int, count: int) -> list[int]:
    """Keep integer indices that name another micro-task in the list."""
    if not isinstance(raw, list):
        return []
    cleaned = []
    for value in raw:
        if isinstance(value, bool):
            continue
        if isinstance(value, float) and value.is_integer():
            value = int(value)
        elif isinstance(value, str) and value.strip().isdigit():
            value = int(value.strip())
        if not isinstance(value, int):
            continue
        if 0 <= value < count and value != index and value not in cleaned:
            cleaned.append(value)
    return cleaned


def build_parallel_groups(micro_tasks: list[MicroTask]) -> list[list[int]]:
    """Maximal runs of consecutive parallelizable micro-tasks."""
    groups: list[list[int]] = []
    current: list[int] = []
    for index, mt in enumerate(micro_tasks):
        if mt.is_parallelizable:
            current.append(index)
        elif current:
            groups.append(current)
            current = []
    if current:
        groups.append(current)
    return groups


def topological_sort(micro_tasks: list[MicroTask]) -> list[int]:
    """
    Execution order honouring depends_on (Kahn's algorithm).

    Ties resolve in list order. A dependency cycle is logged and the
    original order returned unchanged.
    """
    n = len(micro_tasks)
    in_degree = [0] * n
    edges: list[list[int]] = [[] for _ in range(n)]

    for to_index, mt in enumerate(micro_tasks):
        for from_index in mt.depends_on:
            if isinstance(from_index, int) and 0 <= from_index < n and from_index != to_index:
                edges[from_index].append(to_index)
                in_degree[to_index] += 1

    queue = deque(i for i in range(n) if in_degree[i] == 0)
    order = []
    while queue:
        node = queue.popleft()
        order.append(node)
        for neighbor in edges[node]:
            in_degree[neighbor] -= 1
            if in_degree[neighbor] == 0:
                queue.append(neighbor)

    if len(order) != n:
        logger.warning(f"Dependency cycle among {n - len(order)} micro-tasks, using original order")
        return list(range(n))
    return order


def order_by_dependencies(micro_tasks: list[MicroTask]) -> list[MicroTask]:
    return [micro_tasks[i] for i in topological_sort(micro_tasks)]


def to_task_inputs(result: AtomizationResult, parent: Task) -> list[TaskInput]:
    """Child task inputs for each micro-task, inheriting the parent's deadline."""
    return [
        TaskInput(
            raw_input=mt.title,
            title=mt.title,
            description=mt.description,
            parent_id=parent.id,
            deadline=parent.deadline,
            estimated_minutes=mt.estimated_minutes,
        )
        for mt in result.micro_tasks
    ]


# ─────────────────────────────────────────────────────────────────────────────
# Engine
# ─────────────────────────────────────────────────────────────────────────────

class AtomizationEngine:
    """Decomposes tasks through an injected LLM provider."""

    def __init__(self, provider: Optional[LLMProvider], preferences: Optional[Preferences] = None):
        self.provider = provider
        self.preferences = preferences or Preferences()

    def atomize(self, task: Task) -> AtomizationResult:
        """
        Break a task into micro-tasks.

        Tasks estimated at an hour or less come back as a single step without
        calling the provider. Never raises: a missing provider or a failed
        call yields the templated result with used_fallback=True.
        """
        if task.estimated_minutes is not None and task.estimated_minutes <= MAX_STEP_MINUTES:
            return self.single_task_result(task)

        if self.provider is None:
            logger.info(f"No LLM provider configured, using template steps for task {task.id}")
            return self.templated_result(task)

        messages = [
            LLMMessage("system", SYSTEM_PROMPT),
            LLMMessage("user", self.build_prompt(task)),
        ]
        try:
            response = self.provider.generate_structured(
                messages, RESPONSE_SCHEMA, temperature=ATOMIZE_TEMPERATURE
            )
            result = self.process_response(response, task)
        except Exception as e:
            logger.warning(f"Atomization failed for task {task.id}, using template steps: {e}")
            return self.templated_result(task)

        logger.info(f"Atomized task {task.id} into {len(result.micro_tasks)} micro-tasks")
        return result

    def build_prompt(self, task: Task) -> str:
        lines = ["Break down this task into micro-tasks:", "", f"Task: {task.title}"]
        if task.description:
            lines.append(f"Description: {task.description}")
        if task.deadline:
            lines.append(f"Deadline: {task.deadline.isoformat()}")
        if task.estimated_minutes:
            lines.append(f"Estimated total time: {task.estimated_minutes} minutes")
        if task.context.original_goal:
            lines.append(f"Original goal: {task.context.original_goal}")

        hints = [
            BREAKDOWN_HINTS.get(self.preferences.breakdown_depth, ""),
            STEP_SIZE_HINTS.get(self.preferences.step_size, ""),
            STYLE_HINTS.get(self.preferences.style_preset, ""),
        ]
        hints = [h for h in hints if h]
        if hints:
            lines.append("")
            lines.extend(hints)
        return "\n".join(lines)

    def process_response(self, response: dict[str, Any], task: Task) -> AtomizationResult:
        """
        Normalise a structured reply into an AtomizationResult.

        Raises:
            AtomizationResponseError: No usable micro-task list
        """
        raw_tasks = response.get("microTasks")
        if not isinstance(raw_tasks, list) or not raw_tasks:
            raise AtomizationResponseError("Response has no microTasks")

        count = len(raw_tasks)
        micro_tasks = []
        for index, raw in enumerate(raw_tasks):
            if not isinstance(raw, dict):
                raise AtomizationResponseError(f"microTasks[{index}] is not an object")
            title = raw.get("title")
            if not isinstance(title, str) or not title.strip():
                raise AtomizationResponseError(f"microTasks[{index}] has no title")

            depends_on = _clean_dependencies(raw.get("dependsOn"), index, count)
            description = raw.get("description")
            micro_tasks.append(MicroTask(
                title=ensure_action_verb(title),
                description=description if isinstance(description, str) and description else None,
                estimated_minutes=clamp_minutes(raw.get("estimatedMinutes")),
                depends_on=depends_on,
                is_parallelizable=not depends_on,
            ))

        dependencies = [
            Dependency(from_index=from_index, to_index=to_index)
            for to_index, mt in enumerate(micro_tasks)
            for from_index in mt.depends_on
        ]

        mvp = response.get("mvpSuggestion")
        if not isinstance(mvp, str) or not mvp.strip():
            mvp = None
        if mvp is None and task.deadline is not None:
            mvp = f'Complete "{micro_tasks[0].title}"'

        return AtomizationResult(
            micro_tasks=micro_tasks,
            dependencies=dependencies,
            parallel_groups=build_parallel_groups(micro_tasks),
            mvp_suggestion=mvp,
        )

    def single_task_result(self, task: Task) -> AtomizationResult:
        minutes = task.estimated_minutes
        return AtomizationResult(
            micro_tasks=[MicroTask(
                title=ensure_action_verb(task.title),
                description=task.description,
                estimated_minutes=clamp_minutes(minutes) if minutes else DEFAULT_STEP_MINUTES,
            )],
            parallel_groups=[[0]],
            mvp_suggestion=f'Complete "{task.title}"' if task.deadline is not None else None,
        )

    def templated_result(self, task: Task) -> AtomizationResult:
        """Three generic steps for when no decomposition could be generated."""
        micro_tasks = [
            MicroTask(
                title=ensure_action_verb(title.format(title=task.title)),
                description=first_step,
                estimated_minutes=clamp_minutes(minutes),
            )
            for title, first_step, minutes in TEMPLATE_STEPS
        ]
        return AtomizationResult(
            micro_tasks=micro_tasks,
            parallel_groups=build_parallel_groups(micro_tasks),
            mvp_suggestion=f'Complete "{micro_tasks[0].title}"' if task.deadline is not None else None,
            used_fallback=True,
        )

    def suggest_mvp(self, task: Task) -> str:
        """Smallest meaningful deliverable before the deadline ("" without one)."""
        if task.deadline is None:
            return ""
        fallback = f'Complete the first step of "{task.title}"'
        if self.provider is None:
            return fallback

        messages = [
            LLMMessage(
                "system",
                "You are a productivity assistant. Given a task with a deadline, suggest the "
                "minimum viable progress (MVP) - the smallest deliverable that represents "
                "meaningful progress. Be concise and specific.",
            ),
            LLMMessage(
                "user",
                f"Task: {task.title}\nDescription: {task.description or 'None'}\n"
                f"Deadline: {task.deadline.isoformat()}\n\n"
                "What is the minimum viable progress for this task? "
                "Respond with just the MVP suggestion, no explanation.",
            ),
        ]
        try:
            response = self.provider.generate(messages, temperature=MVP_TEMPERATURE)
        except Exception as e:
            logger.warning(f"MVP suggestion failed for task {task.id}: {e}")
            return fallback
        return response.content.strip() or fallback

    def estimate_time(self, task: Task) -> int:
        """Estimated minutes for a task, clamped to [5, 480]; 30 when unknown."""
        if self.provider is None:
            return DEFAULT_ESTIMATE_MINUTES

        messages = [
            LLMMessage(
                "system",
                "You are a productivity assistant. Estimate how long a task will take in "
                "minutes. Consider complexity, typical time for similar tasks, and any "
                "context provided. Respond with just a number (minutes).",
            ),
            LLMMessage(
                "user",
                f"Task: {task.title}\nDescription: {task.description or 'None'}\n\n"
                "Estimate in minutes:",
            ),
        ]
        try:
            response = self.provider.generate(messages, temperature=ESTIMATE_TEMPERATURE)
        except Exception as e:
            logger.warning(f"Time estimation failed for task {task.id}: {e}")
            return DEFAULT_ESTIMATE_MINUTES

        match = re.match(r"\s*(\d+)", response.content)
        if not match:
            return DEFAULT_ESTIMATE_MINUTES
        return max(MIN_ESTIMATE_MINUTES, min(MAX_ESTIMATE_MINUTES, int(match.group(1))))


__all__ = [
    "AtomizationEngine",
    "AtomizationResponseError",
    "AtomizationResult",
    "Dependency",
    "MicroTask",
    "build_parallel_groups",
    "clamp_minutes",
    "ensure_action_verb",
    "order_by_dependencies",
    "to_task_inputs",
    "topological_sort",
]
