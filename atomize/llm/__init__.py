"""
LLM Provider Package

Text generation behind one interface, so the atomization engine never
knows which backend it is talking to.

    AtomizationEngine → LLMProvider (abstract)
                             ↓
              ┌──────────────┼──────────────┐
              ↓              ↓              ↓
          Anthropic       Gemini         Ollama
           (SDK)         (httpx)        (httpx)

Usage:
    from atomize.config import load_config
    from atomize.llm import create_provider

    provider = create_provider(load_config().llm)
    reply = provider.generate([LLMMessage("user", "Say hi")])
"""

from __future__ import annotations

import os

from atomize.config import LLMConfig

from .base import (
    LLMMessage,
    LLMProvider,
    LLMResponse,
    LLMResponseError,
    extract_json,
)

PROVIDERS = ("anthropic", "gemini", "ollama")


def _api_key(config: LLMConfig) -> str:
    if config.api_key:
        return config.api_key
    env_name = config.resolved_api_key_env()
    key = os.environ.get(env_name, "") if env_name else ""
    if not key:
        raise ValueError(
            f"{config.provider} provider requires an API key "
            f"(set api_key in config or the {env_name} environment variable)"
        )
    return key


def create_provider(config: LLMConfig) -> LLMProvider:
    """
    Build a provider from configuration.

    Args:
        config: LLM section of AtomizeConfig

    Returns:
        LLMProvider instance

    Raises:
        ValueError: Unknown provider, or a hosted provider without an API key
    """
    common = {
        "temperature": config.temperature,
        "max_tokens": config.max_tokens,
        "timeout": config.timeout_seconds,
    }

    if config.provider == "anthropic":
        from .anthropic_provider import AnthropicProvider

        return AnthropicProvider(api_key=_api_key(config), model=config.resolved_model(), **common)

    if config.provider == "gemini":
        from .gemini_provider import GeminiProvider

        return GeminiProvider(
            api_key=_api_key(config),
            model=config.resolved_model(),
            base_url=config.base_url,
            **common,
        )

    if config.provider == "ollama":
        from .ollama_provider import OllamaProvider

        return OllamaProvider(model=config.resolved_model(), base_url=config.base_url, **common)

    raise ValueError(f"Unknown LLM provider: {config.provider}. Available: {list(PROVIDERS)}")


__all__ = [
    "LLMMessage",
    "LLMProvider",
    "LLMResponse",
    "LLMResponseError",
    "PROVIDERS",
    "create_provider",
    "extract_json",
]
