"""
Generation cycle and batch driver.

A cycle runs strictly in this order:

1. sample an unconnected pair,
2. generate and store the connection,
3. score it with both critics and store the evaluations,
4. record one use for each concept.

Usage is recorded last so a cycle that fails midway never inflates usage
counts. The batch driver runs cycles sequentially, keeps going after failures
and summarises the run into an exit code.
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections import Counter
from dataclasses import dataclass, field
from enum import Enum
from typing import Awaitable, Callable, Optional

from intrdrm.core.exceptions import (
    ContentValidationError,
    PersistenceError,
    PoolDepletionError,
    PromptTemplateError,
    SettingsError,
)
from intrdrm.core.models import ConceptPair, Connection, CriticEvaluation
from intrdrm.integration.adapters.base import (
    AdapterError,
    AuthenticationError,
    ConfigurationError,
    ExecutableNotFoundError,
)
from intrdrm.pipeline.critics import DualCriticScorer
from intrdrm.pipeline.generator import ConnectionGenerator
from intrdrm.pipeline.sampler import ConceptPairSampler

logger = logging.getLogger(__name__)

SUCCESS_THRESHOLD = 0.9
WARNING_THRESHOLD = 0.5


class FailureCategory(str, Enum):
    """Why a cycle failed, as reported in the batch summary."""

    DEPLETION = "depletion"
    CONFIGURATION = "configuration"
    TRANSPORT = "transport"
    CONTENT = "content"
    PERSISTENCE = "persistence"
    UNKNOWN = "unknown"


def categorize_failure(error: BaseException) -> FailureCategory:
    """Map an exception (or the first categorisable one in its cause chain) to a category."""
    current: Optional[BaseException] = error
    while current is not None:
        if isinstance(current, PoolDepletionError):
            return FailureCategory.DEPLETION
        if isinstance(current, ContentValidationError):
            return FailureCategory.CONTENT
        if isinstance(current, PersistenceError):
            return FailureCategory.PERSISTENCE
        if isinstance(current, (AuthenticationError, ConfigurationError, ExecutableNotFoundError,
                                SettingsError, PromptTemplateError)):
            return FailureCategory.CONFIGURATION
        if isinstance(current, AdapterError):
            return FailureCategory.TRANSPORT
        current = current.__cause__
    return FailureCategory.UNKNOWN


@dataclass
class CycleOutcome:
    pair: ConceptPair
    connection: Connection
    evaluations: tuple[CriticEvaluation, CriticEvaluation]
    duration: float


@dataclass
class BatchSummary:
    """Result of a batch run."""

    total: int
    succeeded: int = 0
    failures: Counter = field(default_factory=Counter)
    duration: float = 0.0

    @property
    def failed(self) -> int:
        return sum(self.failures.values())

    @property
    def success_rate(self) -> float:
        return self.succeeded / self.total if self.total else 1.0

    @property
    def exit_code(self) -> int:
        """0 at or above 50% success (with a warning below 90%), otherwise 1."""
        return 0 if self.success_rate >= WARNING_THRESHOLD else 1

    @property
    def degraded(self) -> bool:
        return WARNING_THRESHOLD <= self.success_rate < SUCCESS_THRESHOLD


class GenerationPipeline:
    """Wire the sampler, generator and scorer into cycles and batches."""

    def __init__(
        self,
        sampler: ConceptPairSampler,
        generator: ConnectionGenerator,
        scorer: DualCriticScorer,
    ):
        self.sampler = sampler
        self.generator = generator
        self.scorer = scorer

    async def run_cycle(self) -> CycleOutcome:
        """Run one sample-generate-score-record cycle; any step's failure propagates."""
        started = time.monotonic()
        pair = await self.sampler.sample_pair()
        connection = await self.generator.generate(pair)
        evaluations = await self.scorer.score(connection)
        await self.sampler.record_usage(pair)
        duration = time.monotonic() - started
        logger.info("Cycle complete for %s in %.1fs", pair.describe(), duration)
        return CycleOutcome(pair=pair, connection=connection, evaluations=evaluations, duration=duration)

    async def run_batch(
        self,
        count: int,
        delay: float = 10.0,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> BatchSummary:
        """
        Run ``count`` cycles, pausing ``delay`` seconds between them.

        A failed cycle is logged and counted; the batch always runs to the end.
        """
        if count < 0:
            raise ValueError("count must not be negative")

        summary = BatchSummary(total=count)
        started = time.monotonic()
        logger.info("Starting batch of %d generation(s), %.0fs apart", count, delay)

        for index in range(1, count + 1):
            try:
                await self.run_cycle()
            except Exception as e:
                category = categorize_failure(e)
                summary.failures[category] += 1
                if category is FailureCategory.DEPLETION:
                    logger.error("[%d/%d] Concept pool depleted; add more concepts (%s)", index, count, e)
                elif category is FailureCategory.UNKNOWN:
                    logger.exception("[%d/%d] Generation cycle failed unexpectedly", index, count)
                else:
                    logger.error("[%d/%d] Generation cycle failed (%s): %s", index, count, category.value, e)
            else:
                summary.succeeded += 1
                logger.info("[%d/%d] Generation succeeded", index, count)

            if index < count and delay > 0:
                await sleep(delay)

        summary.duration = time.monotonic() - started
        self._log_summary(summary)
        return summary

    @staticmethod
    def _log_summary(summary: BatchSummary) -> None:
        logger.info(
            "Batch finished: %d succeeded, %d failed (%.0f%% success) in %.0fs",
            summary.succeeded, summary.failed, summary.success_rate * 100, summary.duration,
        )
        for category, n in summary.failures.items():
            logger.info("  %s failures: %d", category.value, n)
        if summary.degraded:
            logger.warning("Batch success rate is below %.0f%%", SUCCESS_THRESHOLD * 100)
        elif summary.exit_code != 0:
            logger.error("Batch success rate is below %.0f%%", WARNING_THRESHOLD * 100)


__all__ = [
    "BatchSummary",
    "CycleOutcome",
    "FailureCategory",
    "GenerationPipeline",
    "categorize_failure",
]
