from __future__ import annotations

import asyncio
from datetime import UTC, datetime, timedelta

import pytest

from intrdrm.core.exceptions import (
    ConceptNotFoundError,
    DuplicateConnectionError,
    PersistenceError,
)
from intrdrm.core.models import ConnectionStatus, CriticEvaluation, CriticRun, CriticScores
from intrdrm.db.seed import SEED_CONCEPTS, seed_concepts
from intrdrm.db.stats import build_pool_statistics


@pytest.mark.asyncio
async def test_least_used_ordering(gateway, add_concepts) -> None:
    entropy, recursion, mirrors = await add_concepts("entropy", "recursion", "mirrors")
    await gateway.increment_usage(entropy.id)
    await gateway.increment_usage(entropy.id)
    await gateway.increment_usage(recursion.id)

    ordered = await gateway.get_least_used_concepts(limit=3)

    assert [c.name for c in ordered] == ["mirrors", "recursion", "entropy"]
    assert [c.usage_count for c in ordered] == [0, 1, 2]
    assert len(await gateway.get_least_used_concepts(limit=2)) == 2


@pytest.mark.asyncio
async def test_concurrent_increments_are_not_lost(gateway, add_concepts) -> None:
    (entropy,) = await add_concepts("entropy")

    await asyncio.gather(*(gateway.increment_usage(entropy.id) for _ in range(20)))

    stored = await gateway.get_concept(entropy.id)
    assert stored.usage_count == 20


@pytest.mark.asyncio
async def test_increment_unknown_concept(gateway) -> None:
    with pytest.raises(ConceptNotFoundError):
        await gateway.increment_usage("missing-id")


@pytest.mark.asyncio
async def test_find_connection_in_either_order(gateway, add_concepts) -> None:
    recursion, mirrors = await add_concepts("recursion", "mirrors")
    stored = await gateway.insert_connection(recursion.id, mirrors.id, "text", "why", model_used="fake")

    forward = await gateway.find_connection_by_pair(recursion.id, mirrors.id)
    reverse = await gateway.find_connection_by_pair(mirrors.id, recursion.id)

    assert forward.id == reverse.id == stored.id
    assert forward.status is ConnectionStatus.UNRATED
    assert forward.model_used == "fake"
    assert forward.prompt_version == "v1.0"


@pytest.mark.asyncio
async def test_reversed_pair_is_rejected(gateway, add_concepts) -> None:
    recursion, mirrors = await add_concepts("recursion", "mirrors")
    await gateway.insert_connection(recursion.id, mirrors.id, "text", "why")

    with pytest.raises(DuplicateConnectionError):
        await gateway.insert_connection(mirrors.id, recursion.id, "other", "why")

    assert await gateway.count_connections() == 1


@pytest.mark.asyncio
async def test_racing_inserts_store_one_connection(gateway, add_concepts) -> None:
    recursion, mirrors = await add_concepts("recursion", "mirrors")

    results = await asyncio.gather(
        *(
            gateway.insert_connection(a, b, f"text {i}", "why")
            for i, (a, b) in enumerate([(recursion.id, mirrors.id), (mirrors.id, recursion.id)] * 3)
        ),
        return_exceptions=True,
    )

    successes = [r for r in results if not isinstance(r, Exception)]
    failures = [r for r in results if isinstance(r, Exception)]
    assert len(successes) == 1
    assert all(isinstance(f, DuplicateConnectionError) for f in failures)
    assert await gateway.count_connections() == 1


@pytest.mark.asyncio
async def test_self_pair_is_rejected(gateway, add_concepts) -> None:
    (entropy,) = await add_concepts("entropy")
    with pytest.raises(PersistenceError):
        await gateway.insert_connection(entropy.id, entropy.id, "text", "why")


@pytest.mark.asyncio
async def test_critic_evaluations_are_all_or_nothing(gateway, add_concepts) -> None:
    recursion, mirrors = await add_concepts("recursion", "mirrors")
    connection = await gateway.insert_connection(recursion.id, mirrors.id, "text", "why")
    scores = CriticScores(novelty=7, coherence=6, usefulness=8)
    duplicate_run = [
        CriticEvaluation(connection_id=connection.id, critic_run=CriticRun.PRIMARY, scores=scores),
        CriticEvaluation(connection_id=connection.id, critic_run=CriticRun.PRIMARY, scores=scores),
    ]

    with pytest.raises(PersistenceError):
        await gateway.insert_critic_evaluations(duplicate_run)
    assert await gateway.get_critic_evaluations(connection.id) == []

    await gateway.insert_critic_evaluations([
        CriticEvaluation(connection_id=connection.id, critic_run=CriticRun.PRIMARY, scores=scores),
        CriticEvaluation(
            connection_id=connection.id,
            critic_run=CriticRun.SECONDARY,
            scores=CriticScores.neutral(),
            degraded=True,
        ),
    ])
    stored = await gateway.get_critic_evaluations(connection.id)
    assert [e.critic_run for e in stored] == [CriticRun.PRIMARY, CriticRun.SECONDARY]
    assert stored[1].degraded is True


@pytest.mark.asyncio
async def test_critic_score_averages(gateway, add_concepts) -> None:
    assert await gateway.critic_score_averages() is None

    recursion, mirrors = await add_concepts("recursion", "mirrors")
    connection = await gateway.insert_connection(recursion.id, mirrors.id, "text", "why")
    await gateway.insert_critic_evaluations([
        CriticEvaluation(
            connection_id=connection.id,
            critic_run=CriticRun.PRIMARY,
            scores=CriticScores(novelty=8, coherence=6, usefulness=4),
        ),
        CriticEvaluation(
            connection_id=connection.id,
            critic_run=CriticRun.SECONDARY,
            scores=CriticScores(novelty=6, coherence=4, usefulness=2),
        ),
    ])

    averages = await gateway.critic_score_averages()
    assert (averages.novelty, averages.coherence, averages.usefulness) == (7, 5, 3)
    assert averages.mean == pytest.approx(5.0)


@pytest.mark.asyncio
async def test_latest_generation_time(gateway, add_concepts) -> None:
    assert await gateway.latest_generation_time() is None

    recursion, mirrors = await add_concepts("recursion", "mirrors")
    before = datetime.now(UTC) - timedelta(seconds=1)
    await gateway.insert_connection(recursion.id, mirrors.id, "text", "why")

    latest = await gateway.latest_generation_time()
    assert latest.tzinfo is not None
    assert latest >= before


@pytest.mark.asyncio
async def test_seed_is_idempotent(gateway) -> None:
    expected = sum(len(names) for names in SEED_CONCEPTS.values())

    assert await seed_concepts(gateway) == expected
    assert await seed_concepts(gateway) == 0
    assert await gateway.count_concepts() == expected


@pytest.mark.asyncio
async def test_pool_statistics(gateway, add_concepts) -> None:
    a, b, c, d = await add_concepts("a", "b", "c", "d")
    await gateway.insert_connection(a.id, b.id, "t", "e")
    await gateway.insert_connection(c.id, d.id, "t", "e")
    await gateway.insert_connection(a.id, c.id, "t", "e")

    stats = await build_pool_statistics(gateway)

    assert stats.concept_count == 4
    assert stats.total_connections == 3
    assert stats.unrated_count == 3
    assert stats.rated_count == 0
    assert stats.max_possible_pairs == 6
    assert stats.utilization_rate == pytest.approx(0.5)
    assert stats.needs_expansion is False
