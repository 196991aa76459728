"""
Runtime settings for Intrdrm.

Settings are resolved in three layers, later layers winning:

1. the dataclass defaults below,
2. an optional YAML or JSON file (explicit path or ``INTRDRM_CONFIG_PATH``),
3. environment variables.

Example file::

    database:
      path: data/intrdrm.db
    generator:
      provider: codex
      timeout: 60
    sampler:
      pool_size: 50

Environment Variables:
    INTRDRM_CONFIG_PATH: Path to a configuration file
    INTRDRM_DB_PATH: SQLite database file
    INTRDRM_GENERATOR: Generation client (codex, claude, ollama)
    INTRDRM_GENERATOR_EXECUTABLE: Override for the CLI executable
    INTRDRM_GENERATOR_MODEL: Model name passed to the client
    INTRDRM_GENERATOR_TIMEOUT: Per-call timeout in seconds
    INTRDRM_OLLAMA_URL: Base URL of the Ollama server
    INTRDRM_PROMPTS_DIR: Directory with prompt template overrides
    INTRDRM_WEBHOOK_URL / SLACK_WEBHOOK_URL: Health alert webhook
    INTRDRM_LOG_LEVEL: Logging level
"""

from __future__ import annotations

import dataclasses
import json
import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Mapping, Optional

import yaml

from intrdrm.core.exceptions import SettingsError

logger = logging.getLogger(__name__)

CONFIG_PATH_ENV = "INTRDRM_CONFIG_PATH"
GENERATOR_PROVIDERS = ("codex", "claude", "ollama")
LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


@dataclass(frozen=True)
class DatabaseSettings:
    path: str = "data/intrdrm.db"
    timeout: float = 10.0


@dataclass(frozen=True)
class GeneratorSettings:
    provider: str = "codex"
    executable: Optional[str] = None
    model: Optional[str] = None
    timeout: float = 60.0
    base_url: str = "http://localhost:11434"
    prompts_dir: Optional[str] = None
    prompt_version: str = "v1.0"
    temperature: float = 0.8
    critic_primary_temperature: float = 0.7
    critic_secondary_temperature: float = 0.5


@dataclass(frozen=True)
class SamplerSettings:
    pool_size: int = 50
    max_retries: int = 50
    max_draw_attempts: int = 10
    bulk_max_retries: int = 100


@dataclass(frozen=True)
class RetrySettings:
    max_attempts: int = 3
    initial_delay: float = 2.0
    content_retries: int = 1


@dataclass(frozen=True)
class HealthSettings:
    check_timeout: float = 15.0
    min_pool_fail: int = 50
    min_pool_warn: int = 100
    stale_warn_hours: float = 24.0
    stale_fail_hours: float = 48.0
    utilization_warn: float = 0.6
    utilization_fail: float = 0.8
    score_low: float = 4.0
    score_high: float = 8.0


@dataclass(frozen=True)
class NotificationSettings:
    webhook_url: Optional[str] = None
    timeout: float = 10.0


@dataclass(frozen=True)
class IntrdrmSettings:
    """Complete, immutable runtime configuration."""

    database: DatabaseSettings = field(default_factory=DatabaseSettings)
    generator: GeneratorSettings = field(default_factory=GeneratorSettings)
    sampler: SamplerSettings = field(default_factory=SamplerSettings)
    retry: RetrySettings = field(default_factory=RetrySettings)
    health: HealthSettings = field(default_factory=HealthSettings)
    notification: NotificationSettings = field(default_factory=NotificationSettings)
    log_level: str = "INFO"

    def validate(self) -> None:
        """
        Check cross-field constraints.

        Raises:
            SettingsError: If a value is out of range
        """
        if self.generator.provider not in GENERATOR_PROVIDERS:
            raise SettingsError(
                f"Unknown generator provider '{self.generator.provider}'; "
                f"expected one of {', '.join(GENERATOR_PROVIDERS)}"
            )
        for name in ("temperature", "critic_primary_temperature", "critic_secondary_temperature"):
            value = getattr(self.generator, name)
            if not 0.0 <= value <= 1.0:
                raise SettingsError(f"generator.{name} must be between 0.0 and 1.0")
        if self.generator.timeout <= 0 or self.database.timeout <= 0:
            raise SettingsError("timeouts must be positive")
        if self.retry.max_attempts < 1:
            raise SettingsError("retry.max_attempts must be at least 1")
        if self.sampler.pool_size < 2:
            raise SettingsError("sampler.pool_size must be at least 2")
        if self.log_level not in LOG_LEVELS:
            raise SettingsError(f"log_level must be one of {', '.join(LOG_LEVELS)}")
        if self.health.min_pool_fail > self.health.min_pool_warn:
            raise SettingsError("health.min_pool_fail cannot exceed health.min_pool_warn")


_SECTIONS = {
    "database": DatabaseSettings,
    "generator": GeneratorSettings,
    "sampler": SamplerSettings,
    "retry": RetrySettings,
    "health": HealthSettings,
    "notification": NotificationSettings,
}

# env var -> (section, field)
_ENV_OVERRIDES = {
    "INTRDRM_DB_PATH": ("database", "path"),
    "INTRDRM_DB_TIMEOUT": ("database", "timeout"),
    "INTRDRM_GENERATOR": ("generator", "provider"),
    "INTRDRM_GENERATOR_EXECUTABLE": ("generator", "executable"),
    "INTRDRM_GENERATOR_MODEL": ("generator", "model"),
    "INTRDRM_GENERATOR_TIMEOUT": ("generator", "timeout"),
    "INTRDRM_OLLAMA_URL": ("generator", "base_url"),
    "INTRDRM_PROMPTS_DIR": ("generator", "prompts_dir"),
    "SLACK_WEBHOOK_URL": ("notification", "webhook_url"),
    "INTRDRM_WEBHOOK_URL": ("notification", "webhook_url"),
}


def read_config_file(path: str | os.PathLike[str]) -> dict[str, Any]:
    """
    Load a YAML or JSON configuration file.

    Raises:
        SettingsError: If the file is missing, unparseable or not a mapping
    """
    config_path = Path(path)
    if not config_path.exists():
        raise SettingsError(f"Configuration file not found: {config_path}")

    try:
        with open(config_path, encoding="utf-8") as handle:
            if config_path.suffix.lower() in (".yaml", ".yml"):
                data = yaml.safe_load(handle)
            elif config_path.suffix.lower() == ".json":
                data = json.load(handle)
            else:
                raise SettingsError(f"Unsupported configuration format: {config_path.suffix}")
    except (yaml.YAMLError, json.JSONDecodeError) as e:
        raise SettingsError(f"Failed to parse configuration file: {e}") from e

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise SettingsError("Configuration file must contain a mapping at the top level")
    logger.debug("Loaded configuration from %s", config_path)
    return data


def _coerce(section: str, name: str, current: Any, raw: Any) -> Any:
    target = type(current) if current is not None else None
    if raw is None or target in (None, str):
        return None if raw is None else str(raw)
    try:
        if target is bool:
            if isinstance(raw, str):
                return raw.strip().lower() in {"1", "true", "yes", "on"}
            return bool(raw)
        return target(raw)
    except (TypeError, ValueError) as e:
        raise SettingsError(f"Invalid value for {section}.{name}: {raw!r}") from e


def _build_section(section: str, defaults: Any, values: Mapping[str, Any]) -> Any:
    known = {f.name for f in dataclasses.fields(defaults)}
    unknown = set(values) - known
    if unknown:
        raise SettingsError(f"Unknown keys in '{section}' section: {', '.join(sorted(unknown))}")
    updates = {
        key: _coerce(section, key, getattr(defaults, key), value)
        for key, value in values.items()
    }
    return dataclasses.replace(defaults, **updates)


def load_settings(
    path: str | os.PathLike[str] | None = None,
    environ: Mapping[str, str] | None = None,
) -> IntrdrmSettings:
    """
    Resolve settings from defaults, an optional file and the environment.

    Args:
        path: Explicit configuration file; falls back to ``INTRDRM_CONFIG_PATH``
        environ: Environment mapping (defaults to ``os.environ``)

    Returns:
        Validated IntrdrmSettings

    Raises:
        SettingsError: On unreadable files, unknown keys or invalid values
    """
    env = os.environ if environ is None else environ
    config_path = path or env.get(CONFIG_PATH_ENV)
    file_values = read_config_file(config_path) if config_path else {}

    unknown_sections = set(file_values) - set(_SECTIONS) - {"log_level"}
    if unknown_sections:
        raise SettingsError(f"Unknown configuration sections: {', '.join(sorted(unknown_sections))}")

    merged: dict[str, dict[str, Any]] = {}
    for section in _SECTIONS:
        section_values = file_values.get(section) or {}
        if not isinstance(section_values, dict):
            raise SettingsError(f"Configuration section '{section}' must be a mapping")
        merged[section] = dict(section_values)

    # INTRDRM_WEBHOOK_URL is listed after SLACK_WEBHOOK_URL so it wins when both are set.
    for env_name, (section, key) in _ENV_OVERRIDES.items():
        value = env.get(env_name)
        if value:
            merged[section][key] = value

    sections = {
        section: _build_section(section, factory(), merged[section])
        for section, factory in _SECTIONS.items()
    }
    log_level = env.get("INTRDRM_LOG_LEVEL") or file_values.get("log_level") or "INFO"

    settings = IntrdrmSettings(log_level=str(log_level).upper(), **sections)
    settings.validate()
    return settings


__all__ = [
    "DatabaseSettings",
    "GENERATOR_PROVIDERS",
    "GeneratorSettings",
    "HealthSettings",
    "IntrdrmSettings",
    "NotificationSettings",
    "RetrySettings",
    "SamplerSettings",
    "load_settings",
    "read_config_file",
]
