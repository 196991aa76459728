from __future__ import annotations

import pytest
from pydantic import ValidationError

from intrdrm.core.models import Concept, ConceptPair, CriticScores, PoolStatistics


def _concept(concept_id: str, name: str, usage: int = 0) -> Concept:
    return Concept(id=concept_id, name=name, usage_count=usage)


def test_concept_pair_rejects_identical_members() -> None:
    recursion = _concept("1", "recursion")
    with pytest.raises(ValidationError):
        ConceptPair(concept_a=recursion, concept_b=recursion)


def test_concept_pair_key_ignores_order() -> None:
    a, b = _concept("1", "recursion"), _concept("2", "mirrors")
    assert ConceptPair(concept_a=a, concept_b=b).key == ConceptPair(concept_a=b, concept_b=a).key


def test_concept_usage_cannot_be_negative() -> None:
    with pytest.raises(ValidationError):
        Concept(id="1", name="entropy", usage_count=-1)


def test_neutral_scores() -> None:
    neutral = CriticScores.neutral()
    assert (neutral.novelty, neutral.coherence, neutral.usefulness) == (5, 5, 5)
    assert neutral.mean == 5


def test_critic_scores_enforce_range() -> None:
    with pytest.raises(ValidationError):
        CriticScores(novelty=11, coherence=5, usefulness=5)


@pytest.mark.parametrize(
    ("concepts", "connections", "max_pairs", "rate", "expand"),
    [
        (0, 0, 0, 0.0, False),
        (1, 0, 0, 0.0, False),
        (4, 3, 6, 0.5, False),
        (5, 6, 10, 0.6, False),
        (5, 7, 10, 0.7, True),
    ],
)
def test_pool_statistics_from_counts(concepts, connections, max_pairs, rate, expand) -> None:
    stats = PoolStatistics.from_counts(concepts, connections)
    assert stats.max_possible_pairs == max_pairs
    assert stats.utilization_rate == pytest.approx(rate)
    assert stats.needs_expansion is expand
