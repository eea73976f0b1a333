"""Anthropic Messages API provider."""

from __future__ import annotations

from typing import Optional

import anthropic

from atomize.logging_config import get_logger

from .base import LLMMessage, LLMProvider, LLMResponse, LLMResponseError

logger = get_logger(__name__)

STOP_REASONS = {
    "end_turn": "stop",
    "stop_sequence": "stop",
    "max_tokens": "length",
}


class AnthropicProvider(LLMProvider):
    name = "anthropic"

    def __init__(self, api_key: str, model: str, client: Optional[anthropic.Anthropic] = None, **kwargs):
        super().__init__(model, **kwargs)
        self.client = client or anthropic.Anthropic(api_key=api_key, timeout=self.timeout, max_retries=0)

    def generate(
        self,
        messages: list[LLMMessage],
        temperature: Optional[float] = None,
        max_tokens: Optional[int] = None,
    ) -> LLMResponse:
        # The Messages API takes the system prompt separately
        system = "\n".join(m.content for m in messages if m.role == "system")
        chat = [m.to_dict() for m in messages if m.role != "system"]

        logger.debug(f"anthropic request model={self.model} messages={len(chat)}")
        kwargs = {
            "model": self.model,
            "max_tokens": max_tokens or self.max_tokens,
            "temperature": self.temperature if temperature is None else temperature,
            "messages": chat,
        }
        if system:
            kwargs["system"] = system

        message = self.client.messages.create(**kwargs)

        text = "".join(
            block.text for block in message.content if getattr(block, "type", None) == "text"
        )
        if not text and not message.content:
            raise LLMResponseError("No response from Anthropic")

        usage = {}
        if getattr(message, "usage", None) is not None:
            usage = {
                "prompt_tokens": message.usage.input_tokens,
                "completion_tokens": message.usage.output_tokens,
                "total_tokens": message.usage.input_tokens + message.usage.output_tokens,
            }

        return LLMResponse(
            content=text,
            finish_reason=STOP_REASONS.get(message.stop_reason, "error"),
            usage=usage,
        )
