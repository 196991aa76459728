"""Pipeline health checks and alerting."""

from intrdrm.monitoring.health import (
    CheckResult,
    HealthLevel,
    HealthMonitor,
    HealthReport,
    HealthThresholds,
    exit_code_for,
)
from intrdrm.monitoring.notifier import WebhookNotifier, build_payload

__all__ = [
    "CheckResult",
    "HealthLevel",
    "HealthMonitor",
    "HealthReport",
    "HealthThresholds",
    "WebhookNotifier",
    "build_payload",
    "exit_code_for",
]
