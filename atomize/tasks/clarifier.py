"""
Tool: Clarification Engine
Purpose: Notice vague task input and turn a short Q&A into a clear task

"stuff for mum" is not a task anyone can start. Before capture, the input
can be checked: very short text always needs more detail, anything else
is judged by the LLM. At most three questions are asked, and the answer
is folded back into a title, deadline, priority and estimate.

Every LLM call has a deterministic fallback, so nothing here raises on
provider failure:
- analysis: assume the input is clear enough
- questions: ask for the deadline and what done looks like
- answer parsing: keep the original text as title, read a date from the answer

Usage:
    from atomize.tasks.clarifier import ClarificationEngine

    engine = ClarificationEngine(provider)
    analysis = engine.analyze("stuff for mum")
    if analysis.needs_clarification:
        questions = engine.generate_questions("stuff for mum")
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Callable, Optional

from atomize.llm.base import LLMMessage, LLMProvider
from atomize.logging_config import get_logger

from . import MAX_TITLE_LENGTH, PRIORITY_LEVELS
from .date_parser import extract_deadline, parse_natural_date, strip_deadline_phrase
from .models import Priority, Task, TaskInput

logger = get_logger(__name__)

MAX_QUESTIONS = 3
MIN_CLEAR_LENGTH = 10
ANALYSIS_TEMPERATURE = 0.3
QUESTION_TEMPERATURE = 0.5
PARSE_TEMPERATURE = 0.3
CONTEXT_TASKS = 5

DEFAULT_QUESTIONS = (
    "When do you need this done by?",
    "What would success look like for this task?",
)

PRIORITY_EMOJI = {"high": "🔴", "medium": "🟡", "low": "🟢"}

ANALYSIS_PROMPT = """You are a task analysis assistant. Analyze the user's input and determine if clarification is needed to create a clear, actionable task.

Consider:
1. Is the task specific enough to act on?
2. Is there a clear deliverable or outcome?
3. Are there any ambiguous terms or references?
4. Is timing/deadline mentioned or implied?

Respond with JSON only."""

QUESTIONS_PROMPT = f"""You are a helpful task assistant. Generate clarifying questions to better understand the user's task.

Rules:
1. Ask at most {MAX_QUESTIONS} questions
2. Questions should be specific and actionable
3. Focus on: deadline, scope, deliverables, dependencies
4. Be friendly and concise
5. Don't ask obvious questions

Respond with JSON only."""

PARSE_PROMPT = """You are a task parsing assistant. Given an original task input and a clarification Q&A, extract structured task information.

Respond with JSON containing:
- title: A clear, action-oriented task title
- description: Optional additional details
- deadline: ISO date string if mentioned (or null)
- priority: "high", "medium", or "low" based on urgency
- estimatedMinutes: Estimated time in minutes
- confidence: 0-1 how confident you are in the extraction"""

ANALYSIS_SCHEMA = {
    "type": "object",
    "properties": {
        "needsClarification": {"type": "boolean"},
        "missingInfo": {"type": "array", "items": {"type": "string"}},
        "ambiguities": {"type": "array", "items": {"type": "string"}},
        "confidence": {"type": "number"},
    },
    "required": ["needsClarification", "confidence"],
}

QUESTIONS_SCHEMA = {
    "type": "object",
    "properties": {
        "questions": {"type": "array", "items": {"type": "string"}, "maxItems": MAX_QUESTIONS},
    },
    "required": ["questions"],
}

PARSE_SCHEMA = {
    "type": "object",
    "properties": {
        "title": {"type": "string"},
        "description": {"type": "string"},
        "deadline": {"type": "string"},
        "priority": {"type": "string", "enum": list(PRIORITY_LEVELS)},
        "estimatedMinutes": {"type": "number"},
        "confidence": {"type": "number"},
    },
    "required": ["title", "confidence"],
}


def _clamp_confidence(value: Any, default: float) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)) or not math.isfinite(value):
        return default
    return max(0.0, min(1.0, float(value)))


def _strings(value: Any) -> list[str]:
    if not isinstance(value, list):
        return []
    return [v.strip() for v in value if isinstance(v, str) and v.strip()]


@dataclass
class ClarificationAnalysis:
    """Whether a piece of input is clear enough to become a task."""

    needs_clarification: bool
    missing_info: list[str] = field(default_factory=list)
    ambiguities: list[str] = field(default_factory=list)
    confidence: float = 0.5

    def to_dict(self) -> dict[str, Any]:
        return {
            "needs_clarification": self.needs_clarification,
            "missing_info": list(self.missing_info),
            "ambiguities": list(self.ambiguities),
            "confidence": self.confidence,
        }


@dataclass
class ClarifiedInput:
    """Task fields recovered from the original input plus one Q&A."""

    title: str
    confidence: float
    description: Optional[str] = None
    deadline: Optional[datetime] = None
    priority: Optional[Priority] = None
    estimated_minutes: Optional[int] = None

    def to_task_input(self, raw_input: str) -> TaskInput:
        return TaskInput(
            raw_input=raw_input,
            title=self.title,
            description=self.description,
            deadline=self.deadline,
            estimated_minutes=self.estimated_minutes,
            priority=self.priority,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "title": self.title,
            "description": self.description,
            "deadline": self.deadline.isoformat() if self.deadline else None,
            "priority": self.priority.value if self.priority else None,
            "estimated_minutes": self.estimated_minutes,
            "confidence": self.confidence,
        }


class ClarificationEngine:
    """Checks task input for vagueness and parses clarifying answers."""

    def __init__(
        self,
        provider: Optional[LLMProvider],
        clock: Callable[[], datetime] = datetime.now,
    ):
        self.provider = provider
        self.clock = clock

    # ─────────────────────────────────────────────────────────────────────────
    # Analysis
    # ─────────────────────────────────────────────────────────────────────────

    def analyze(self, text: str) -> ClarificationAnalysis:
        """
        Decide whether input needs clarifying before it becomes a task.

        Input under ten characters always does. Otherwise the LLM decides;
        without a provider, or when the call fails, the input is taken as is.
        """
        trimmed = text.strip()
        if len(trimmed) < MIN_CLEAR_LENGTH:
            return ClarificationAnalysis(
                needs_clarification=True,
                missing_info=["More details about the task"],
                ambiguities=["Input is too brief to understand"],
                confidence=0.3,
            )

        if self.provider is None:
            return ClarificationAnalysis(needs_clarification=False)

        messages = [
            LLMMessage("system", ANALYSIS_PROMPT),
            LLMMessage("user", f'Analyze this task input: "{trimmed}"'),
        ]
        try:
            response = self.provider.generate_structured(
                messages, ANALYSIS_SCHEMA, temperature=ANALYSIS_TEMPERATURE
            )
        except Exception as e:
            logger.warning(f"Clarification analysis failed, assuming input is clear: {e}")
            return ClarificationAnalysis(needs_clarification=False)

        return ClarificationAnalysis(
            needs_clarification=response.get("needsClarification") is True,
            missing_info=_strings(response.get("missingInfo")),
            ambiguities=_strings(response.get("ambiguities")),
            confidence=_clamp_confidence(response.get("confidence"), 0.5),
        )

    def generate_questions(self, text: str, context: Optional[list[Task]] = None) -> list[str]:
        """At most three clarifying questions; two generic ones on failure."""
        if self.provider is None:
            return list(DEFAULT_QUESTIONS)

        messages = [
            LLMMessage("system", QUESTIONS_PROMPT),
            LLMMessage("user", self.build_question_prompt(text, context)),
        ]
        try:
            response = self.provider.generate_structured(
                messages, QUESTIONS_SCHEMA, temperature=QUESTION_TEMPERATURE
            )
        except Exception as e:
            logger.warning(f"Question generation failed, using default questions: {e}")
            return list(DEFAULT_QUESTIONS)

        questions = _strings(response.get("questions"))
        if not questions:
            return list(DEFAULT_QUESTIONS)
        return questions[:MAX_QUESTIONS]

    def build_question_prompt(self, text: str, context: Optional[list[Task]] = None) -> str:
        lines = [f'Task input: "{text.strip()}"']
        if context:
            lines.extend(["", "Existing related tasks:"])
            lines.extend(f"- {t.title}" for t in context[:CONTEXT_TASKS])
        lines.extend(["", "Generate clarifying questions:"])
        return "\n".join(lines)

    # ─────────────────────────────────────────────────────────────────────────
    # Answers
    # ─────────────────────────────────────────────────────────────────────────

    def process_clarification(self, original: str, question: str, answer: str) -> ClarifiedInput:
        """Fold a clarifying answer into structured task fields."""
        if self.provider is None:
            return self.fallback_clarification(original, answer)

        messages = [
            LLMMessage("system", PARSE_PROMPT),
            LLMMessage(
                "user",
                f'Original input: "{original}"\nQuestion asked: "{question}"\n'
                f'User\'s answer: "{answer}"\n\nExtract the task information:',
            ),
        ]
        try:
            response = self.provider.generate_structured(
                messages, PARSE_SCHEMA, temperature=PARSE_TEMPERATURE
            )
        except Exception as e:
            logger.warning(f"Clarification parsing failed, reading answer directly: {e}")
            return self.fallback_clarification(original, answer)

        title = response.get("title")
        if not isinstance(title, str) or not title.strip():
            logger.warning("Clarification reply had no title, reading answer directly")
            return self.fallback_clarification(original, answer)

        now = self.clock()
        deadline = None
        raw_deadline = response.get("deadline")
        if isinstance(raw_deadline, str) and raw_deadline.strip():
            parsed = parse_natural_date(raw_deadline, now)
            deadline = parsed.date if parsed else None

        priority = response.get("priority")
        description = response.get("description")
        minutes = response.get("estimatedMinutes")
        if isinstance(minutes, bool) or not isinstance(minutes, (int, float)) \
                or not math.isfinite(minutes) or minutes <= 0:
            minutes = None

        return ClarifiedInput(
            title=" ".join(title.split())[:MAX_TITLE_LENGTH],
            description=description.strip() if isinstance(description, str) and description.strip() else None,
            deadline=deadline,
            priority=Priority(priority) if priority in PRIORITY_LEVELS else None,
            estimated_minutes=round(minutes) if minutes is not None else None,
            confidence=_clamp_confidence(response.get("confidence"), 0.5),
        )

    def fallback_clarification(self, original: str, answer: str) -> ClarifiedInput:
        """
        Read what can be read without a model.

        The answer is tried as a date on its own ("friday"), then searched
        for a deadline phrase; the original text is searched last.
        """
        now = self.clock()
        parsed = (
            parse_natural_date(answer, now)
            or extract_deadline(answer, now)
            or extract_deadline(original, now)
        )
        title = strip_deadline_phrase(original, now) if parsed else original
        return ClarifiedInput(
            title=" ".join(title.split())[:MAX_TITLE_LENGTH],
            deadline=parsed.date if parsed else None,
            confidence=0.3,
        )

    def format_confirmation(self, clarified: ClarifiedInput) -> str:
        """Read the understood task back to the user."""
        lines = ["Got it! Here's what I understood:", "", f"📋 {clarified.title}"]
        if clarified.description:
            lines.extend(["", clarified.description])
        if clarified.deadline:
            lines.extend(["", f"⏰ Due: {clarified.deadline.strftime('%a %b %d')}"])
        if clarified.estimated_minutes:
            lines.extend(["", f"⏱️ Estimated: {clarified.estimated_minutes} minutes"])
        if clarified.priority:
            level = clarified.priority.value
            lines.extend(["", f"{PRIORITY_EMOJI[level]} Priority: {level}"])
        lines.extend(["", "Does this look right?"])
        return "\n".join(lines)


__all__ = [
    "ClarificationAnalysis",
    "ClarificationEngine",
    "ClarifiedInput",
    "DEFAULT_QUESTIONS",
    "MAX_QUESTIONS",
]
