"""
Tasker Configuration System

Loads configuration from:
1. Pydantic defaults
2. YAML config (~/.tasker/config/tasker.yaml or ./config/default.yaml)
3. Environment variables (TASKER_ prefix, __ for nesting)
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any, Literal

import yaml
from pydantic import BaseModel, Field, SecretStr, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from tasker.exceptions import ConfigurationError

# Environment variables consulted when llm.api_key is not set explicitly
PROVIDER_KEY_ENV = {
    "openai": "OPENAI_API_KEY",
    "claude": "ANTHROPIC_API_KEY",
}


def expand_path(path: str | Path | None) -> Path | None:
    """Expand ~ and environment variables in paths."""
    if path is None:
        return None
    expanded = os.path.expandvars(os.path.expanduser(str(path)))
    return Path(expanded)


class LogConfig(BaseModel):
    """Logging configuration."""

    level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"
    format: Literal["json", "console"] = "json"
    file: Path | None = None

    @field_validator("file", mode="before")
    @classmethod
    def expand_file_path(cls, v: Any) -> Path | None:
        return expand_path(v)


class LLMConfig(BaseModel):
    """Language model provider configuration."""

    provider: Literal["openai", "claude", "mock"] = "openai"
    openai_model: str = "gpt-4o-mini"
    claude_model: str = "claude-sonnet-4-20250514"
    api_key: SecretStr | None = None
    temperature: float = Field(default=0.3, ge=0.0, le=2.0)
    max_tokens: int = 1500
    timeout: float = Field(default=30.0, gt=0)

    @property
    def model(self) -> str | None:
        """Model name for the selected provider."""
        if self.provider == "openai":
            return self.openai_model
        if self.provider == "claude":
            return self.claude_model
        return None

    def resolve_api_key(self) -> str | None:
        """Explicit key first, then the provider's conventional env var."""
        if self.api_key is not None and self.api_key.get_secret_value().strip():
            return self.api_key.get_secret_value()
        env_name = PROVIDER_KEY_ENV.get(self.provider)
        if env_name:
            return os.environ.get(env_name) or None
        return None


class InterpretConfig(BaseModel):
    """Voice interpretation pipeline settings."""

    clarify_threshold: float = Field(default=0.4, ge=0.0, le=1.0)
    max_occurrences: int = Field(default=52, ge=1)
    max_tasks: int = Field(default=7, ge=1)
    default_timezone: str = "UTC"
    fallback_title_chars: int = Field(default=50, ge=1)
    # Seconds an unanswered clarification stays answerable
    proposal_ttl: float = Field(default=1800.0, gt=0)

    @field_validator("default_timezone")
    @classmethod
    def check_timezone(cls, v: str) -> str:
        from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

        try:
            ZoneInfo(v)
        except (ZoneInfoNotFoundError, ValueError) as e:
            raise ValueError(f"Unknown timezone: {v}") from e
        return v


class TaskerConfig(BaseSettings):
    """
    Main Tasker configuration.

    Environment variables use TASKER_ prefix and __ for nesting.
    Example: TASKER_INTERPRET__CLARIFY_THRESHOLD=0.5
    """

    model_config = SettingsConfigDict(
        env_prefix="TASKER_",
        env_nested_delimiter="__",
        extra="ignore",
    )

    log: LogConfig = Field(default_factory=LogConfig)
    llm: LLMConfig = Field(default_factory=LLMConfig)
    interpret: InterpretConfig = Field(default_factory=InterpretConfig)


def find_config_file() -> Path | None:
    """
    Find the configuration file.

    Search order:
    1. ~/.tasker/config/tasker.yaml (user config)
    2. ./config/default.yaml (development default)
    """
    user_config = Path.home() / ".tasker" / "config" / "tasker.yaml"
    if user_config.exists():
        return user_config

    dev_config = Path.cwd() / "config" / "default.yaml"
    if dev_config.exists():
        return dev_config

    return None


def load_yaml_config(path: Path | None) -> dict[str, Any]:
    """Load configuration from YAML file."""
    if path is None or not path.exists():
        return {}

    with open(path) as f:
        data = yaml.safe_load(f)

    if data is not None and not isinstance(data, dict):
        raise ConfigurationError(f"Config file {path} must contain a mapping")

    return data if data else {}


def deep_merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """Deep merge two dictionaries, with override taking precedence."""
    result = base.copy()

    for key, value in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = deep_merge(result[key], value)
        else:
            result[key] = value

    return result


def load_config(path: Path | None = None) -> TaskerConfig:
    """
    Load complete configuration.

    Environment variables take precedence over YAML values.
    """
    yaml_config = load_yaml_config(path or find_config_file())

    # Init kwargs normally beat env vars in pydantic-settings; re-apply env on top
    env_config = TaskerConfig().model_dump(exclude_unset=True)
    return TaskerConfig(**deep_merge(yaml_config, env_config))


_config: TaskerConfig | None = None


def get_config() -> TaskerConfig:
    """Get the global configuration instance."""
    global _config
    if _config is None:
        _config = load_config()
    return _config


def reset_config() -> None:
    """Reset the global configuration (useful for testing)."""
    global _config
    _config = None
