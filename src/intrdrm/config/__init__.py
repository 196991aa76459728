"""Configuration loading for Intrdrm."""

from intrdrm.config.settings import (
    DatabaseSettings,
    GeneratorSettings,
    HealthSettings,
    IntrdrmSettings,
    NotificationSettings,
    RetrySettings,
    SamplerSettings,
    load_settings,
)

__all__ = [
    "DatabaseSettings",
    "GeneratorSettings",
    "HealthSettings",
    "IntrdrmSettings",
    "NotificationSettings",
    "RetrySettings",
    "SamplerSettings",
    "load_settings",
]
