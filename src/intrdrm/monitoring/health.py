"""
Health monitoring for the generation pipeline.

Purpose:
    Inspect the datastore and report whether the pipeline is healthy: the store
    answers, enough connections are waiting to be rated, generation is recent,
    the pair space is not exhausted and critic scores have not drifted.
External Dependencies:
    A :class:`~intrdrm.db.gateway.DatastoreGateway`. No network calls; alerting
    lives in :mod:`intrdrm.monitoring.notifier`.
Fallback Semantics:
    A check that raises or times out is reported as ``fail`` for that check
    only; the remaining checks still run and the report is always produced.
Timeout Strategy:
    Checks run concurrently, each bounded by ``check_timeout`` seconds.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum
from typing import Any, Awaitable, Callable, Optional

from intrdrm.core.models import ConnectionStatus
from intrdrm.db.gateway import DatastoreGateway
from intrdrm.db.stats import build_pool_statistics

logger = logging.getLogger(__name__)


class HealthLevel(str, Enum):
    """Outcome of one check; the overall status is the most severe level."""

    PASS = "pass"
    WARN = "warn"
    FAIL = "fail"

    @property
    def severity(self) -> int:
        return _SEVERITY[self]

    @property
    def label(self) -> str:
        """Status wording used in reports and alerts."""
        return _LABELS[self]


_SEVERITY = {HealthLevel.PASS: 0, HealthLevel.WARN: 1, HealthLevel.FAIL: 2}
_LABELS = {HealthLevel.PASS: "healthy", HealthLevel.WARN: "warning", HealthLevel.FAIL: "critical"}
_EXIT_CODES = {HealthLevel.PASS: 0, HealthLevel.FAIL: 1, HealthLevel.WARN: 2}


def exit_code_for(level: HealthLevel) -> int:
    """Process exit code for a status: healthy 0, critical 1, warning 2."""
    return _EXIT_CODES[level]


@dataclass(frozen=True)
class CheckResult:
    name: str
    level: HealthLevel
    message: str
    value: Any = None


@dataclass(frozen=True)
class HealthReport:
    """Immutable outcome of one monitoring run."""

    checks: tuple[CheckResult, ...]
    checked_at: datetime = field(default_factory=lambda: datetime.now(UTC))

    @property
    def status(self) -> HealthLevel:
        if not self.checks:
            return HealthLevel.PASS
        return max((check.level for check in self.checks), key=lambda level: level.severity)

    @property
    def exit_code(self) -> int:
        return exit_code_for(self.status)

    def failing_checks(self) -> list[CheckResult]:
        """Checks that did not pass, in check order."""
        return [check for check in self.checks if check.level is not HealthLevel.PASS]

    def get(self, name: str) -> Optional[CheckResult]:
        return next((check for check in self.checks if check.name == name), None)


@dataclass(frozen=True)
class HealthThresholds:
    min_pool_fail: int = 50
    min_pool_warn: int = 100
    stale_warn_hours: float = 24.0
    stale_fail_hours: float = 48.0
    utilization_warn: float = 0.6
    utilization_fail: float = 0.8
    score_low: float = 4.0
    score_high: float = 8.0


class HealthMonitor:
    """Run the pipeline health checks against a datastore."""

    def __init__(
        self,
        gateway: DatastoreGateway,
        thresholds: Optional[HealthThresholds] = None,
        check_timeout: float = 15.0,
        clock: Callable[[], datetime] = lambda: datetime.now(UTC),
    ):
        self.gateway = gateway
        self.thresholds = thresholds or HealthThresholds()
        self.check_timeout = check_timeout
        self.clock = clock

    async def check_connectivity(self) -> CheckResult:
        await self.gateway.ping()
        return CheckResult("database", HealthLevel.PASS, "Datastore is reachable")

    async def check_pool_size(self) -> CheckResult:
        count = await self.gateway.count_connections(ConnectionStatus.UNRATED)
        t = self.thresholds
        if count < t.min_pool_fail:
            return CheckResult("unrated_pool", HealthLevel.FAIL,
                               f"Only {count} unrated connections (minimum {t.min_pool_fail})", count)
        if count < t.min_pool_warn:
            return CheckResult("unrated_pool", HealthLevel.WARN,
                               f"{count} unrated connections (recommend at least {t.min_pool_warn})", count)
        return CheckResult("unrated_pool", HealthLevel.PASS, f"{count} unrated connections", count)

    async def check_staleness(self) -> CheckResult:
        latest = await self.gateway.latest_generation_time()
        if latest is None:
            return CheckResult("last_generation", HealthLevel.FAIL, "No connections have been generated")
        hours = (self.clock() - latest).total_seconds() / 3600
        t = self.thresholds
        if hours > t.stale_fail_hours:
            return CheckResult("last_generation", HealthLevel.FAIL,
                               f"Last generation {hours:.1f}h ago (limit {t.stale_fail_hours:g}h)", hours)
        if hours > t.stale_warn_hours:
            return CheckResult("last_generation", HealthLevel.WARN,
                               f"Last generation {hours:.1f}h ago (expected within {t.stale_warn_hours:g}h)", hours)
        return CheckResult("last_generation", HealthLevel.PASS, f"Last generation {hours:.1f}h ago", hours)

    async def check_utilization(self) -> CheckResult:
        stats = await build_pool_statistics(self.gateway)
        rate = stats.utilization_rate
        detail = f"{rate:.1%} of {stats.max_possible_pairs} possible pairs used"
        if rate > self.thresholds.utilization_fail:
            return CheckResult("pool_utilization", HealthLevel.FAIL, f"{detail}; add concepts now", rate)
        if rate > self.thresholds.utilization_warn:
            return CheckResult("pool_utilization", HealthLevel.WARN, f"{detail}; consider adding concepts", rate)
        return CheckResult("pool_utilization", HealthLevel.PASS, detail, rate)

    async def check_score_drift(self) -> CheckResult:
        averages = await self.gateway.critic_score_averages()
        if averages is None:
            return CheckResult("critic_scores", HealthLevel.WARN, "No critic evaluations recorded yet")
        mean = averages.mean
        t = self.thresholds
        if mean > t.score_high:
            return CheckResult("critic_scores", HealthLevel.WARN,
                               f"Average score {mean:.2f} is unusually high; critics may be too lenient", mean)
        if mean < t.score_low:
            return CheckResult("critic_scores", HealthLevel.WARN,
                               f"Average score {mean:.2f} is unusually low; generation quality may have dropped", mean)
        return CheckResult("critic_scores", HealthLevel.PASS, f"Average score {mean:.2f}", mean)

    async def _guarded(self, name: str, check: Callable[[], Awaitable[CheckResult]]) -> CheckResult:
        try:
            return await asyncio.wait_for(check(), timeout=self.check_timeout)
        except TimeoutError:
            logger.error("Health check %s timed out after %.0fs", name, self.check_timeout)
            return CheckResult(name, HealthLevel.FAIL, f"Check timed out after {self.check_timeout:g}s")
        except Exception as e:
            logger.error("Health check %s failed: %s", name, e)
            return CheckResult(name, HealthLevel.FAIL, f"Check failed: {e}")

    async def run_checks(self) -> HealthReport:
        """Run every check concurrently and return the report."""
        checks = (
            ("database", self.check_connectivity),
            ("unrated_pool", self.check_pool_size),
            ("last_generation", self.check_staleness),
            ("pool_utilization", self.check_utilization),
            ("critic_scores", self.check_score_drift),
        )
        results = await asyncio.gather(*(self._guarded(name, check) for name, check in checks))
        report = HealthReport(checks=tuple(results), checked_at=self.clock())
        logger.info("Health status: %s", report.status.label.upper())
        return report


__all__ = [
    "CheckResult",
    "HealthLevel",
    "HealthMonitor",
    "HealthReport",
    "HealthThresholds",
    "exit_code_for",
]
