"""Health CLI command for the generation pipeline.

Purpose:
    Run the pipeline health checks, print a status table and, when a webhook
    is configured, post an alert for warning or critical results.
External Dependencies:
    Uses the ``rich`` console for rendering and ``aiohttp`` (through the
    notifier) for the optional webhook.
Fallback Semantics:
    Alert delivery failures are logged and do not change the exit code.
Timeout Strategy:
    Each check is bounded by ``health.check_timeout``; the webhook by
    ``notification.timeout``.
Exit Codes:
    0 healthy, 2 warning, 1 critical.
"""

from __future__ import annotations

import logging
from typing import Annotated, Dict

import typer
from rich.table import Table

from intrdrm.cli.runtime import console, get_settings, open_gateway, run_cli_coroutine
from intrdrm.config.settings import IntrdrmSettings
from intrdrm.monitoring.health import HealthLevel, HealthMonitor, HealthReport, HealthThresholds
from intrdrm.monitoring.notifier import WebhookNotifier

logger = logging.getLogger(__name__)

_STATUS_STYLES: Dict[HealthLevel, str] = {
    HealthLevel.PASS: "green",
    HealthLevel.WARN: "yellow",
    HealthLevel.FAIL: "bold red",
}


def _thresholds(settings: IntrdrmSettings) -> HealthThresholds:
    h = settings.health
    return HealthThresholds(
        min_pool_fail=h.min_pool_fail,
        min_pool_warn=h.min_pool_warn,
        stale_warn_hours=h.stale_warn_hours,
        stale_fail_hours=h.stale_fail_hours,
        utilization_warn=h.utilization_warn,
        utilization_fail=h.utilization_fail,
        score_low=h.score_low,
        score_high=h.score_high,
    )


def _render_check_table(report: HealthReport) -> Table:
    table = Table(show_header=True, header_style="bold cyan")
    table.add_column("Check")
    table.add_column("Status")
    table.add_column("Details", overflow="fold")
    for check in report.checks:
        style = _STATUS_STYLES[check.level]
        table.add_row(check.name, f"[{style}]{check.level.value}[/]", check.message)
    return table


async def _run_health(notify: bool) -> HealthReport:
    settings = get_settings()
    gateway = open_gateway(settings)
    try:
        monitor = HealthMonitor(gateway, _thresholds(settings), check_timeout=settings.health.check_timeout)
        report = await monitor.run_checks()
    finally:
        await gateway.close()

    if notify:
        notifier = WebhookNotifier(settings.notification.webhook_url, timeout=settings.notification.timeout)
        await notifier.notify(report)
    return report


def health(
    notify: Annotated[bool, typer.Option("--notify/--no-notify", help="Send a webhook alert when not healthy.")] = True,
) -> None:
    """Check pipeline health; exit 0 when healthy, 2 on warnings, 1 when critical."""
    logger.info("Running pipeline health checks")
    report = run_cli_coroutine(_run_health(notify))

    style = _STATUS_STYLES[report.status]
    console.print(f"[{style}]Overall status: {report.status.label.upper()}[/]")
    console.print(f"Checked at: {report.checked_at.isoformat()}\n")
    console.print(_render_check_table(report))
    raise typer.Exit(code=report.exit_code)


__all__ = ["health"]
