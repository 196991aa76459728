from __future__ import annotations

import random
from collections import Counter

import pytest

from intrdrm.core.exceptions import PoolDepletionError
from intrdrm.core.models import Concept
from intrdrm.pipeline.sampler import ConceptPairSampler

# draw() and the constructor never touch the datastore
_NO_STORE = object()


def _concept(name: str, usage: int = 0) -> Concept:
    return Concept(id=f"id-{name}", name=name, usage_count=usage)


def test_weight_favours_unused_concepts() -> None:
    assert ConceptPairSampler.weight(_concept("a", 0)) == 1.0
    assert ConceptPairSampler.weight(_concept("b", 3)) == 0.25


def test_draw_prefers_low_usage() -> None:
    sampler = ConceptPairSampler(_NO_STORE, rng=random.Random(1234))
    concepts = [_concept("fresh-a"), _concept("fresh-b"), _concept("worn", usage=9)]

    appearances: Counter[str] = Counter()
    for _ in range(2000):
        pair = sampler.draw(concepts)
        appearances[pair.concept_a.name] += 1
        appearances[pair.concept_b.name] += 1

    assert appearances["worn"] * 3 < appearances["fresh-a"]
    assert appearances["worn"] * 3 < appearances["fresh-b"]


def test_draw_gives_up_when_every_redraw_collides() -> None:
    sampler = ConceptPairSampler(_NO_STORE, max_draw_attempts=3, rng=random.Random(0))
    sampler._pick = lambda concepts, weights: concepts[0]

    assert sampler.draw([_concept("a"), _concept("b")]) is None
    assert sampler.draw([_concept("a")]) is None


def test_invalid_budgets_are_rejected() -> None:
    with pytest.raises(ValueError):
        ConceptPairSampler(_NO_STORE, pool_size=1)
    with pytest.raises(ValueError):
        ConceptPairSampler(_NO_STORE, max_retries=0)


@pytest.mark.asyncio
async def test_sample_pair_returns_distinct_unconnected_pair(gateway, add_concepts) -> None:
    await add_concepts("entropy", "recursion", "mirrors")
    sampler = ConceptPairSampler(gateway, rng=random.Random(7))

    pair = await sampler.sample_pair()

    assert pair.concept_a.id != pair.concept_b.id
    assert await gateway.find_connection_by_pair(pair.concept_a.id, pair.concept_b.id) is None


@pytest.mark.asyncio
async def test_sample_pair_skips_connected_pairs(gateway, add_concepts) -> None:
    entropy, recursion, mirrors = await add_concepts("entropy", "recursion", "mirrors")
    await gateway.insert_connection(entropy.id, recursion.id, "t", "e")
    await gateway.insert_connection(mirrors.id, entropy.id, "t", "e")
    sampler = ConceptPairSampler(gateway, rng=random.Random(3))

    for _ in range(10):
        pair = await sampler.sample_pair()
        assert pair.key == frozenset((recursion.id, mirrors.id))


@pytest.mark.asyncio
async def test_sample_pair_raises_once_every_pair_is_used(gateway, add_concepts) -> None:
    recursion, mirrors = await add_concepts("recursion", "mirrors")
    await gateway.insert_connection(recursion.id, mirrors.id, "t", "e")
    sampler = ConceptPairSampler(gateway, max_retries=5, rng=random.Random(0))

    with pytest.raises(PoolDepletionError) as excinfo:
        await sampler.sample_pair()

    assert excinfo.value.attempts == 5
    assert excinfo.value.error_code == "POOL_DEPLETED"


@pytest.mark.asyncio
async def test_two_concept_pool_yields_its_only_pair_then_depletes(gateway, add_concepts) -> None:
    recursion, mirrors = await add_concepts("recursion", "mirrors")
    sampler = ConceptPairSampler(gateway, max_retries=5, rng=random.Random(11))

    pair = await sampler.sample_pair()
    assert pair.key == frozenset((recursion.id, mirrors.id))

    await gateway.insert_connection(pair.concept_a.id, pair.concept_b.id, "Both reflect.", "Self reference.")

    with pytest.raises(PoolDepletionError) as excinfo:
        await sampler.sample_pair()
    assert excinfo.value.attempts == 5


@pytest.mark.asyncio
async def test_sample_pair_needs_two_concepts(gateway, add_concepts) -> None:
    await add_concepts("lonely")
    sampler = ConceptPairSampler(gateway)

    with pytest.raises(PoolDepletionError) as excinfo:
        await sampler.sample_pair()

    assert excinfo.value.concept_count == 1


@pytest.mark.asyncio
async def test_sample_pairs_has_no_duplicates_within_batch(gateway, add_concepts) -> None:
    await add_concepts("a", "b", "c", "d", "e")
    sampler = ConceptPairSampler(gateway, rng=random.Random(11))

    pairs = await sampler.sample_pairs(6)

    assert len(pairs) == 6
    assert len({pair.key for pair in pairs}) == 6


@pytest.mark.asyncio
async def test_sample_pairs_short_yield_warns(gateway, add_concepts, caplog) -> None:
    await add_concepts("a", "b", "c")
    sampler = ConceptPairSampler(gateway, bulk_max_retries=40, rng=random.Random(5))

    with caplog.at_level("WARNING", logger="intrdrm.pipeline.sampler"):
        pairs = await sampler.sample_pairs(5)

    assert len(pairs) == 3
    assert "Only found 3/5 unique concept pairs" in caplog.text


@pytest.mark.asyncio
async def test_sample_pairs_without_enough_concepts(gateway) -> None:
    sampler = ConceptPairSampler(gateway)
    assert await sampler.sample_pairs(3) == []
    assert await sampler.sample_pairs(0) == []


@pytest.mark.asyncio
async def test_record_usage_increments_both_members(gateway, add_concepts) -> None:
    recursion, mirrors, entropy = await add_concepts("recursion", "mirrors", "entropy")
    sampler = ConceptPairSampler(gateway, rng=random.Random(2))
    pair = await sampler.sample_pair()

    await sampler.record_usage(pair)

    counts = {c.id: c.usage_count for c in await gateway.get_least_used_concepts(10)}
    assert counts[pair.concept_a.id] == 1
    assert counts[pair.concept_b.id] == 1
    assert sum(counts.values()) == 2


@pytest.mark.asyncio
async def test_needs_expansion_tracks_utilization(gateway, add_concepts) -> None:
    a, b, c = await add_concepts("a", "b", "c")
    sampler = ConceptPairSampler(gateway)
    await gateway.insert_connection(a.id, b.id, "t", "e")
    assert await sampler.needs_expansion() is False

    await gateway.insert_connection(b.id, c.id, "t", "e")
    assert await sampler.needs_expansion() is True
