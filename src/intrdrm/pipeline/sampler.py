"""
Concept pair sampling.

The sampler picks two distinct concepts that have never been connected. It
draws from the ``pool_size`` least-used concepts, weighting each by
``1 / (usage_count + 1)`` so rarely used concepts are favoured without the
selection becoming deterministic.

Usage counts are not touched here; the generation cycle calls
:meth:`ConceptPairSampler.record_usage` only after the connection and both
critic evaluations have been stored.
"""

from __future__ import annotations

import asyncio
import logging
import random
from typing import Optional, Sequence

from intrdrm.core.exceptions import PoolDepletionError
from intrdrm.core.models import Concept, ConceptPair, PoolStatistics
from intrdrm.db.gateway import DatastoreGateway
from intrdrm.db.stats import build_pool_statistics

logger = logging.getLogger(__name__)

BULK_RETRY_WARNING_RATIO = 0.7


class ConceptPairSampler:
    """Select unconnected concept pairs with an inverse-usage bias."""

    def __init__(
        self,
        gateway: DatastoreGateway,
        pool_size: int = 50,
        max_retries: int = 50,
        max_draw_attempts: int = 10,
        bulk_max_retries: int = 100,
        rng: Optional[random.Random] = None,
    ):
        if pool_size < 2:
            raise ValueError("pool_size must be at least 2")
        if max_retries < 1 or max_draw_attempts < 1 or bulk_max_retries < 1:
            raise ValueError("retry budgets must be positive")
        self.gateway = gateway
        self.pool_size = pool_size
        self.max_retries = max_retries
        self.max_draw_attempts = max_draw_attempts
        self.bulk_max_retries = bulk_max_retries
        self.rng = rng or random.Random()

    @staticmethod
    def weight(concept: Concept) -> float:
        return 1.0 / (concept.usage_count + 1)

    def _pick(self, concepts: Sequence[Concept], weights: Sequence[float]) -> Concept:
        return self.rng.choices(concepts, weights=weights, k=1)[0]

    def draw(self, concepts: Sequence[Concept]) -> Optional[ConceptPair]:
        """
        Draw two distinct concepts from ``concepts``.

        Concept B is redrawn up to ``max_draw_attempts`` times while it equals
        concept A; ``None`` means every redraw collided.
        """
        if len(concepts) < 2:
            return None
        weights = [self.weight(concept) for concept in concepts]
        concept_a = self._pick(concepts, weights)
        for _ in range(self.max_draw_attempts):
            concept_b = self._pick(concepts, weights)
            if concept_b.id != concept_a.id:
                return ConceptPair(concept_a=concept_a, concept_b=concept_b)
        return None

    async def _is_connected(self, pair: ConceptPair) -> bool:
        existing = await self.gateway.find_connection_by_pair(pair.concept_a.id, pair.concept_b.id)
        return existing is not None

    async def sample_pair(self) -> ConceptPair:
        """
        Return a pair with no stored connection.

        Raises:
            PoolDepletionError: If fewer than two concepts exist or no unused
                pair turns up within ``max_retries`` attempts
        """
        for attempt in range(1, self.max_retries + 1):
            concepts = await self.gateway.get_least_used_concepts(self.pool_size)
            if len(concepts) < 2:
                raise PoolDepletionError(
                    attempt,
                    concept_count=len(concepts),
                    message=f"Need at least 2 concepts to form a pair, found {len(concepts)}",
                )

            pair = self.draw(concepts)
            if pair is None:
                logger.debug("Attempt %d: concept B collided with A on every redraw", attempt)
                continue
            if await self._is_connected(pair):
                logger.debug("Attempt %d: %s already connected", attempt, pair.describe())
                continue

            logger.info("Selected pair %s", pair.describe())
            return pair

        raise PoolDepletionError(self.max_retries)

    async def sample_pairs(self, count: int) -> list[ConceptPair]:
        """
        Return up to ``count`` unconnected, mutually distinct pairs.

        Never raises on a short yield; warns instead so batch callers can
        decide what to do.
        """
        if count <= 0:
            return []

        concepts = await self.gateway.get_least_used_concepts(self.pool_size)
        if len(concepts) < 2:
            logger.warning("Cannot sample pairs: only %d concept(s) available", len(concepts))
            return []

        pairs: list[ConceptPair] = []
        picked: set[frozenset[str]] = set()
        failed_attempts = 0

        while len(pairs) < count and failed_attempts < self.bulk_max_retries:
            pair = self.draw(concepts)
            if pair is None or pair.key in picked or await self._is_connected(pair):
                failed_attempts += 1
                continue
            picked.add(pair.key)
            pairs.append(pair)

        if failed_attempts > self.bulk_max_retries * BULK_RETRY_WARNING_RATIO:
            logger.warning(
                "High retry count while sampling pairs (%d/%d); the concept pool is nearly exhausted",
                failed_attempts, self.bulk_max_retries,
            )
        if len(pairs) < count:
            logger.warning("Only found %d/%d unique concept pairs", len(pairs), count)
        return pairs

    async def record_usage(self, pair: ConceptPair) -> None:
        """Add one use to each member of a pair whose connection is fully stored."""
        await asyncio.gather(
            self.gateway.increment_usage(pair.concept_a.id),
            self.gateway.increment_usage(pair.concept_b.id),
        )

    async def pool_statistics(self) -> PoolStatistics:
        return await build_pool_statistics(self.gateway)

    async def needs_expansion(self) -> bool:
        stats = await self.pool_statistics()
        return stats.needs_expansion


__all__ = ["ConceptPairSampler"]
