"""
Pool Statistics Component

Gathers the counts that describe how much of the concept pair space has been
consumed and whether the pool needs new concepts.
"""

import asyncio
import logging

from intrdrm.core.models import ConnectionStatus, PoolStatistics
from intrdrm.db.gateway import DatastoreGateway

logger = logging.getLogger(__name__)


async def build_pool_statistics(gateway: DatastoreGateway) -> PoolStatistics:
    """Collect concept and connection counts and derive utilization."""
    concept_count, total, unrated, rated = await asyncio.gather(
        gateway.count_concepts(),
        gateway.count_connections(),
        gateway.count_connections(ConnectionStatus.UNRATED),
        gateway.count_connections(ConnectionStatus.RATED),
    )
    stats = PoolStatistics.from_counts(concept_count, total, unrated, rated)
    logger.debug(
        "Pool: %d concepts, %d/%d pairs used (%.1f%%)",
        stats.concept_count, stats.total_connections, stats.max_possible_pairs, stats.utilization_rate * 100,
    )
    return stats


__all__ = ["build_pool_statistics"]
