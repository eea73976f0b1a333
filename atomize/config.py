from __future__ import annotations

from pathlib import Path
from typing import Literal, Optional

import yaml
from pydantic import BaseModel, ConfigDict, Field

from atomize import CONFIG_PATH, DATA_DIR
from atomize.logging_config import get_logger

logger = get_logger(__name__)


# =============================================================================
# LLM (args/atomize.yaml -> llm)
# =============================================================================

DEFAULT_MODELS = {
    "anthropic": "claude-3-haiku-20240307",
    "gemini": "gemini-2.0-flash",
    "ollama": "llama3.2",
}

DEFAULT_API_KEY_ENV = {
    "anthropic": "ANTHROPIC_API_KEY",
    "gemini": "GEMINI_API_KEY",
}


class LLMConfig(BaseModel):
    model_config = ConfigDict(extra="allow")
    provider: Literal["anthropic", "gemini", "ollama"] = Field(default="anthropic")
    model: Optional[str] = None
    api_key: Optional[str] = None
    api_key_env: Optional[str] = None
    base_url: Optional[str] = None
    temperature: float = Field(default=0.7, ge=0.0, le=2.0)
    max_tokens: int = Field(default=2048, ge=1)
    timeout_seconds: float = Field(default=60.0, gt=0)

    def resolved_model(self) -> str:
        return self.model or DEFAULT_MODELS[self.provider]

    def resolved_api_key_env(self) -> Optional[str]:
        return self.api_key_env or DEFAULT_API_KEY_ENV.get(self.provider)


# =============================================================================
# Storage (args/atomize.yaml -> storage)
# =============================================================================

class StorageConfig(BaseModel):
    model_config = ConfigDict(extra="allow")
    backend: Literal["memory", "json", "sqlite"] = Field(default="json")
    path: Optional[str] = None

    def resolved_path(self) -> Path:
        if self.path:
            return Path(self.path).expanduser()
        suffix = "db" if self.backend == "sqlite" else "json"
        return DATA_DIR / f"atomize.{suffix}"


# =============================================================================
# Planning, preferences, notifications
# =============================================================================

class PlanningConfig(BaseModel):
    model_config = ConfigDict(extra="allow")
    max_today_tasks: int = Field(default=7, ge=1)
    default_task_minutes: int = Field(default=30, ge=1)
    auto_atomize: bool = Field(default=True)


class PreferencesConfig(BaseModel):
    model_config = ConfigDict(extra="allow")
    breakdown_depth: Literal["light", "standard", "detailed"] = Field(default="standard")
    step_size: Literal["short", "default", "long"] = Field(default="default")
    style_preset: Literal["executive", "adhd", "balanced"] = Field(default="balanced")
    nudge_style: Literal["neutral", "encouraging", "direct"] = Field(default="encouraging")


class QuietHoursConfig(BaseModel):
    model_config = ConfigDict(extra="allow")
    start: str = Field(default="22:00", pattern=r"^\d{2}:\d{2}$")
    end: str = Field(default="08:00", pattern=r"^\d{2}:\d{2}$")


class NotificationsConfig(BaseModel):
    model_config = ConfigDict(extra="allow")
    frequency: Literal["off", "minimal", "normal", "frequent"] = Field(default="normal")
    quiet_hours: Optional[QuietHoursConfig] = None
    celebrations_enabled: bool = Field(default=True)
    reminder_lead_minutes: int = Field(default=60, ge=0)


class AtomizeConfig(BaseModel):
    model_config = ConfigDict(extra="allow")
    llm: LLMConfig = Field(default_factory=LLMConfig)
    storage: StorageConfig = Field(default_factory=StorageConfig)
    planning: PlanningConfig = Field(default_factory=PlanningConfig)
    preferences: PreferencesConfig = Field(default_factory=PreferencesConfig)
    notifications: NotificationsConfig = Field(default_factory=NotificationsConfig)


# =============================================================================
# load_config
# =============================================================================

def load_config(path: Path | str | None = None) -> AtomizeConfig:
    """
    Load and validate configuration from YAML.

    A missing file yields defaults. An unreadable or invalid file raises,
    since silently running against the wrong storage path loses data.

    Raises:
        ValueError: If the file is not valid YAML or fails validation
    """
    yaml_path = Path(path) if path is not None else CONFIG_PATH

    if not yaml_path.exists():
        logger.debug(f"No config at {yaml_path}, using defaults")
        return AtomizeConfig()

    try:
        with open(yaml_path) as f:
            raw = yaml.safe_load(f) or {}
    except yaml.YAMLError as e:
        raise ValueError(f"Invalid YAML in {yaml_path}: {e}") from e

    if not isinstance(raw, dict):
        raise ValueError(f"Config root in {yaml_path} must be a mapping")

    # Accept both a bare document and one nested under "atomize:"
    if "atomize" in raw and isinstance(raw["atomize"], dict):
        raw = raw["atomize"]

    try:
        return AtomizeConfig.model_validate(raw)
    except Exception as e:
        raise ValueError(f"Config validation failed for {yaml_path}: {e}") from e


__all__ = [
    "AtomizeConfig",
    "LLMConfig",
    "NotificationsConfig",
    "PlanningConfig",
    "PreferencesConfig",
    "QuietHoursConfig",
    "StorageConfig",
    "load_config",
]
