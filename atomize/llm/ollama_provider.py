"""Local Ollama provider over /api/chat."""

from __future__ import annotations

from typing import Optional

import httpx

from atomize.logging_config import get_logger

from .base import LLMMessage, LLMProvider, LLMResponse

logger = get_logger(__name__)

DEFAULT_BASE_URL = "http://localhost:11434"


class OllamaProvider(LLMProvider):
    name = "ollama"

    def __init__(self, model: str, base_url: Optional[str] = None, **kwargs):
        super().__init__(model, **kwargs)
        self.base_url = (base_url or DEFAULT_BASE_URL).rstrip("/")

    def generate(
        self,
        messages: list[LLMMessage],
        temperature: Optional[float] = None,
        max_tokens: Optional[int] = None,
    ) -> LLMResponse:
        payload = {
            "model": self.model,
            "messages": [m.to_dict() for m in messages],
            "stream": False,
            "options": {
                "temperature": self.temperature if temperature is None else temperature,
                "num_predict": max_tokens or self.max_tokens,
            },
        }

        logger.debug(f"ollama request model={self.model} url={self.base_url}")
        with httpx.Client(timeout=self.timeout) as client:
            response = client.post(f"{self.base_url}/api/chat", json=payload)
            response.raise_for_status()

        data = response.json()
        prompt_tokens = data.get("prompt_eval_count") or 0
        completion_tokens = data.get("eval_count") or 0
        return LLMResponse(
            content=(data.get("message") or {}).get("content", ""),
            finish_reason="stop" if data.get("done") else "error",
            usage={
                "prompt_tokens": prompt_tokens,
                "completion_tokens": completion_tokens,
                "total_tokens": prompt_tokens + completion_tokens,
            },
        )
