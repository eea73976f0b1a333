"""
LLM Provider Base Classes

Every text generation backend implements ``generate``. Structured output
is built on top of it here: the system prompt gains the target JSON schema
and the reply is parsed, tolerating markdown code fences around the JSON.

Providers may raise any exception on failure. Callers that need a
fallback (the atomization engine) catch broadly at their own boundary.
"""

from __future__ import annotations

import json
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Optional


@dataclass
class LLMMessage:
    """One chat message."""

    role: str  # system | user | assistant
    content: str

    def to_dict(self) -> dict[str, str]:
        return {"role": self.role, "content": self.content}


@dataclass
class LLMResponse:
    """Text returned by a provider."""

    content: str
    finish_reason: str = "stop"  # stop | length | error
    usage: dict[str, int] = field(default_factory=dict)


class LLMResponseError(RuntimeError):
    """The provider answered, but not with usable content."""


def extract_json(text: str) -> Any:
    """
    Parse JSON from a model reply.

    Handles ```json fenced blocks, bare fences, and prose around a single
    top-level object.

    Raises:
        LLMResponseError: No parseable JSON in the reply
    """
    response_text = text.strip()

    if "```json" in response_text:
        response_text = response_text.split("```json")[1].split("```")[0]
    elif "```" in response_text:
        response_text = response_text.split("```")[1].split("```")[0]
    response_text = response_text.strip()

    try:
        return json.loads(response_text)
    except json.JSONDecodeError:
        pass

    start = response_text.find("{")
    end = response_text.rfind("}")
    if start != -1 and end > start:
        try:
            return json.loads(response_text[start:end + 1])
        except json.JSONDecodeError:
            pass

    raise LLMResponseError(f"Failed to parse JSON response: {text[:200]}")


def with_schema_instruction(messages: list[LLMMessage], schema: dict[str, Any]) -> list[LLMMessage]:
    """Fold the schema instruction into a single leading system message."""
    system = "\n".join(m.content for m in messages if m.role == "system")
    others = [m for m in messages if m.role != "system"]
    instruction = (
        f"{system}\n\n"
        "You must respond with valid JSON that matches this schema:\n"
        f"{json.dumps(schema, indent=2)}\n\n"
        "Respond ONLY with the JSON object, no markdown or explanation."
    ).strip()
    return [LLMMessage("system", instruction), *others]


class LLMProvider(ABC):
    """Abstract text generation backend."""

    name: str = "base"

    def __init__(
        self,
        model: str,
        temperature: float = 0.7,
        max_tokens: int = 2048,
        timeout: float = 60.0,
    ):
        self.model = model
        self.temperature = temperature
        self.max_tokens = max_tokens
        self.timeout = timeout

    @abstractmethod
    def generate(
        self,
        messages: list[LLMMessage],
        temperature: Optional[float] = None,
        max_tokens: Optional[int] = None,
    ) -> LLMResponse:
        """Return the model's reply to a chat transcript."""

    def generate_structured(
        self,
        messages: list[LLMMessage],
        schema: dict[str, Any],
        temperature: Optional[float] = None,
    ) -> dict[str, Any]:
        """
        Return the reply parsed as a JSON object shaped like ``schema``.

        Raises:
            LLMResponseError: Reply was not a JSON object
        """
        response = self.generate(with_schema_instruction(messages, schema), temperature=temperature)
        data = extract_json(response.content)
        if not isinstance(data, dict):
            raise LLMResponseError(f"Expected a JSON object, got {type(data).__name__}")
        return data


__all__ = [
    "LLMMessage",
    "LLMProvider",
    "LLMResponse",
    "LLMResponseError",
    "extract_json",
    "with_schema_instruction",
]
