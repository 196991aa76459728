"""
Dual critic scoring.

Every stored connection is scored twice: a generous pass and a strict pass,
run concurrently. A pass that cannot produce valid scores degrades to the
neutral default of 5 on every dimension instead of failing the cycle, so each
connection always ends up with exactly two evaluations. Configuration and
authentication failures are not degraded; they propagate so a misconfigured
deployment stops producing fake neutral scores.
"""

from __future__ import annotations

import asyncio
import logging
import math
from typing import Any, Awaitable, Callable, Optional

from intrdrm.core.models import (
    SCORE_MAX,
    SCORE_MIN,
    Connection,
    CriticEvaluation,
    CriticRun,
    CriticScores,
)
from intrdrm.db.gateway import DatastoreGateway
from intrdrm.integration.adapters.base import GenerationClient
from intrdrm.integration.extraction import coerce_payload
from intrdrm.integration.prompts.templates import (
    CRITIC_PRIMARY_TEMPLATE,
    CRITIC_SECONDARY_TEMPLATE,
    TemplateLibrary,
)
from intrdrm.integration.retry import is_retryable, retry_with_backoff

logger = logging.getLogger(__name__)

SCORE_FIELDS = ("novelty", "coherence", "usefulness")

_TEMPLATES = {
    CriticRun.PRIMARY: CRITIC_PRIMARY_TEMPLATE,
    CriticRun.SECONDARY: CRITIC_SECONDARY_TEMPLATE,
}


def _valid_score(value: Any) -> bool:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return False
    return math.isfinite(value) and SCORE_MIN <= value <= SCORE_MAX


def validate_scores(payload: Any) -> Optional[CriticScores]:
    """Return scores when every field is a number in [1, 10], else None. Values are never clamped."""
    if not isinstance(payload, dict):
        return None
    if not all(_valid_score(payload.get(name)) for name in SCORE_FIELDS):
        return None
    return CriticScores(**{name: float(payload[name]) for name in SCORE_FIELDS})


class DualCriticScorer:
    """Score connections with the generous and strict critic passes."""

    def __init__(
        self,
        client: GenerationClient,
        gateway: DatastoreGateway,
        templates: Optional[TemplateLibrary] = None,
        primary_temperature: float = 0.7,
        secondary_temperature: float = 0.5,
        max_attempts: int = 3,
        initial_delay: float = 2.0,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.client = client
        self.gateway = gateway
        self.templates = templates or TemplateLibrary()
        self.temperatures = {
            CriticRun.PRIMARY: primary_temperature,
            CriticRun.SECONDARY: secondary_temperature,
        }
        self.max_attempts = max_attempts
        self.initial_delay = initial_delay
        self._sleep = sleep

    async def _run_pass(self, connection: Connection, run: CriticRun) -> CriticEvaluation:
        prompt = self.templates.render(
            _TEMPLATES[run],
            CONNECTION=connection.text,
            EXPLANATION=connection.explanation,
        )
        temperature = self.temperatures[run]

        async def call() -> Any:
            result = await self.client.invoke(prompt, temperature)
            return result.unwrap()

        try:
            data = await retry_with_backoff(
                call,
                self.max_attempts,
                self.initial_delay,
                sleep=self._sleep,
                description=f"{run.value} for connection {connection.id}",
            )
        except Exception as e:
            if not is_retryable(e):
                raise
            logger.warning("%s failed for connection %s (%s); using neutral scores", run.value, connection.id, e)
            return CriticEvaluation(
                connection_id=connection.id, critic_run=run, scores=CriticScores.neutral(), degraded=True
            )

        scores = validate_scores(coerce_payload(data))
        if scores is None:
            logger.warning(
                "%s returned invalid scores for connection %s; using neutral scores", run.value, connection.id
            )
            return CriticEvaluation(
                connection_id=connection.id, critic_run=run, scores=CriticScores.neutral(), degraded=True
            )
        return CriticEvaluation(connection_id=connection.id, critic_run=run, scores=scores)

    async def evaluate(self, connection: Connection) -> tuple[CriticEvaluation, CriticEvaluation]:
        """Run both passes concurrently without persisting.

        A pass that raises cancels its sibling, and the original error is
        re-raised rather than the task group wrapper.
        """
        try:
            async with asyncio.TaskGroup() as group:
                primary = group.create_task(self._run_pass(connection, CriticRun.PRIMARY))
                secondary = group.create_task(self._run_pass(connection, CriticRun.SECONDARY))
        except ExceptionGroup as e:
            raise e.exceptions[0]
        return primary.result(), secondary.result()

    async def score(self, connection: Connection) -> tuple[CriticEvaluation, CriticEvaluation]:
        """
        Evaluate ``connection`` and store both evaluations together.

        Raises:
            PersistenceError: If the evaluations could not be stored
            AdapterError: For non-retryable client failures
        """
        primary, secondary = await self.evaluate(connection)
        await self.gateway.insert_critic_evaluations([primary, secondary])
        logger.info(
            "Scored connection %s: run 1 N=%g C=%g U=%g, run 2 N=%g C=%g U=%g",
            connection.id,
            primary.scores.novelty, primary.scores.coherence, primary.scores.usefulness,
            secondary.scores.novelty, secondary.scores.coherence, secondary.scores.usefulness,
        )
        return primary, secondary


__all__ = ["DualCriticScorer", "SCORE_FIELDS", "validate_scores"]
