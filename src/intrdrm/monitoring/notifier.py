"""
Webhook alerts for non-healthy reports.

The payload follows the Slack incoming-webhook attachment format. Delivery is
best effort: every failure is logged and swallowed so alerting can never
change the monitor's exit code.
"""

from __future__ import annotations

import logging
from typing import Any, Optional

import aiohttp

from intrdrm.monitoring.health import HealthLevel, HealthReport

logger = logging.getLogger(__name__)

FOOTER = "Intrdrm Health Monitor"
_EMOJI = {HealthLevel.PASS: "✅", HealthLevel.WARN: "⚠️", HealthLevel.FAIL: "🚨"}
_COLORS = {HealthLevel.PASS: "good", HealthLevel.WARN: "warning", HealthLevel.FAIL: "danger"}


def build_payload(report: HealthReport) -> dict[str, Any]:
    """Render ``report`` as a webhook payload listing only the checks that did not pass."""
    status = report.status
    return {
        "text": f"{_EMOJI[status]} Intrdrm Health Check: {status.label.upper()}",
        "attachments": [
            {
                "color": _COLORS[status],
                "fields": [
                    {
                        "title": f"{check.name} ({check.level.value})",
                        "value": check.message,
                        "short": False,
                    }
                    for check in report.failing_checks()
                ],
                "footer": FOOTER,
                "ts": int(report.checked_at.timestamp()),
            }
        ],
    }


class WebhookNotifier:
    """Post health alerts to an incoming webhook."""

    def __init__(self, url: Optional[str], timeout: float = 10.0):
        self.url = url
        self.timeout = timeout

    @property
    def enabled(self) -> bool:
        return bool(self.url)

    async def notify(self, report: HealthReport) -> bool:
        """
        Send an alert for a warning or critical report.

        Returns:
            True when an alert was delivered, False when skipped or failed
        """
        if not self.enabled:
            logger.debug("No webhook configured; skipping alert")
            return False
        if report.status is HealthLevel.PASS:
            return False

        payload = build_payload(report)
        try:
            async with aiohttp.ClientSession(timeout=aiohttp.ClientTimeout(total=self.timeout)) as session:
                async with session.post(self.url, json=payload) as response:
                    if response.status >= 400:
                        body = await response.text()
                        logger.warning("Webhook rejected alert (%d): %s", response.status, body[:200])
                        return False
        except (aiohttp.ClientError, TimeoutError, OSError) as e:
            logger.warning("Failed to send health alert: %s", e)
            return False

        logger.info("Health alert sent")
        return True


__all__ = ["WebhookNotifier", "build_payload"]
