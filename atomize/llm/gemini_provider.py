"""Google Gemini provider over the generateContent REST endpoint."""

from __future__ import annotations

from typing import Any, Optional

import httpx

from atomize.logging_config import get_logger

from .base import LLMMessage, LLMProvider, LLMResponse, LLMResponseError

logger = get_logger(__name__)

DEFAULT_BASE_URL = "https://generativelanguage.googleapis.com/v1beta"

FINISH_REASONS = {"STOP": "stop", "MAX_TOKENS": "length"}


class GeminiProvider(LLMProvider):
    name = "gemini"

    def __init__(self, api_key: str, model: str, base_url: Optional[str] = None, **kwargs):
        super().__init__(model, **kwargs)
        self.api_key = api_key
        self.base_url = (base_url or DEFAULT_BASE_URL).rstrip("/")

    @staticmethod
    def _convert_messages(messages: list[LLMMessage]) -> list[dict[str, Any]]:
        """Gemini has no system role: system text is prefixed to the first user turn."""
        system = "".join(f"{m.content}\n" for m in messages if m.role == "system")
        contents = [
            {
                "role": "model" if m.role == "assistant" else "user",
                "parts": [{"text": m.content}],
            }
            for m in messages
            if m.role != "system"
        ]
        if system and contents:
            first = contents[0]["parts"][0]
            first["text"] = f"{system}\n{first['text']}"
        elif system:
            contents = [{"role": "user", "parts": [{"text": system}]}]
        return contents

    def generate(
        self,
        messages: list[LLMMessage],
        temperature: Optional[float] = None,
        max_tokens: Optional[int] = None,
    ) -> LLMResponse:
        payload = {
            "contents": self._convert_messages(messages),
            "generationConfig": {
                "temperature": self.temperature if temperature is None else temperature,
                "maxOutputTokens": max_tokens or self.max_tokens,
            },
        }
        url = f"{self.base_url}/models/{self.model}:generateContent"

        logger.debug(f"gemini request model={self.model}")
        with httpx.Client(timeout=self.timeout) as client:
            response = client.post(url, params={"key": self.api_key}, json=payload)
            response.raise_for_status()

        data = response.json()
        candidates = data.get("candidates") or []
        if not candidates:
            raise LLMResponseError("No response from Gemini")
        candidate = candidates[0]
        parts = (candidate.get("content") or {}).get("parts") or [{}]

        usage = {}
        metadata = data.get("usageMetadata")
        if metadata:
            usage = {
                "prompt_tokens": metadata.get("promptTokenCount", 0),
                "completion_tokens": metadata.get("candidatesTokenCount", 0),
                "total_tokens": metadata.get("totalTokenCount", 0),
            }

        return LLMResponse(
            content=parts[0].get("text", ""),
            finish_reason=FINISH_REASONS.get(candidate.get("finishReason"), "error"),
            usage=usage,
        )
