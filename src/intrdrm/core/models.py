"""Pydantic models shared by the generation pipeline and the datastore.

The models mirror the persisted shapes: concepts, generated connections and
critic evaluations. Pool-wide aggregates are computed into
:class:`PoolStatistics`.
"""

from __future__ import annotations

from datetime import UTC, datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator

NEUTRAL_SCORE = 5.0
SCORE_MIN = 1.0
SCORE_MAX = 10.0
EXPANSION_UTILIZATION = 0.6


class Concept(BaseModel):
    """A named idea from the curated pool."""

    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    category: str = "general"
    usage_count: int = Field(default=0, ge=0)
    description: Optional[str] = None


class ConceptPair(BaseModel):
    """Two distinct concepts selected together for one generation."""

    model_config = ConfigDict(frozen=True)

    concept_a: Concept
    concept_b: Concept

    @model_validator(mode="after")
    def _distinct_members(self) -> "ConceptPair":
        if self.concept_a.id == self.concept_b.id:
            raise ValueError("a concept pair requires two distinct concepts")
        return self

    @property
    def key(self) -> frozenset[str]:
        """Unordered identity of the pair."""
        return frozenset((self.concept_a.id, self.concept_b.id))

    def describe(self) -> str:
        return f'"{self.concept_a.name}" + "{self.concept_b.name}"'


class ConnectionStatus(str, Enum):
    """Rating lifecycle of a stored connection."""

    UNRATED = "unrated"
    RATED = "rated"


class ConnectionDraft(BaseModel):
    """Validated model output before it is persisted."""

    connection: str = Field(min_length=1)
    explanation: str = Field(min_length=1)


class Connection(BaseModel):
    """A generated connection linking two concepts."""

    id: str
    concept_a_id: str
    concept_b_id: str
    text: str
    explanation: str
    status: ConnectionStatus = ConnectionStatus.UNRATED
    generated_at: datetime = Field(default_factory=lambda: datetime.now(UTC))
    prompt_version: str = "v1.0"
    model_used: Optional[str] = None


class CriticRun(str, Enum):
    """The two fixed critic passes. Values are the persisted labels."""

    PRIMARY = "critic-run-1"
    SECONDARY = "critic-run-2"


class CriticScores(BaseModel):
    """Novelty, coherence and usefulness on a 1-10 scale."""

    model_config = ConfigDict(frozen=True)

    novelty: float = Field(ge=SCORE_MIN, le=SCORE_MAX)
    coherence: float = Field(ge=SCORE_MIN, le=SCORE_MAX)
    usefulness: float = Field(ge=SCORE_MIN, le=SCORE_MAX)

    @classmethod
    def neutral(cls) -> "CriticScores":
        return cls(novelty=NEUTRAL_SCORE, coherence=NEUTRAL_SCORE, usefulness=NEUTRAL_SCORE)

    @property
    def total(self) -> float:
        return self.novelty + self.coherence + self.usefulness

    @property
    def mean(self) -> float:
        return self.total / 3


class CriticEvaluation(BaseModel):
    """One critic pass over one connection."""

    connection_id: str
    critic_run: CriticRun
    scores: CriticScores
    degraded: bool = False
    evaluated_at: datetime = Field(default_factory=lambda: datetime.now(UTC))


class PoolStatistics(BaseModel):
    """Snapshot of how much of the concept pair space has been consumed."""

    concept_count: int = 0
    total_connections: int = 0
    unrated_count: int = 0
    rated_count: int = 0
    max_possible_pairs: int = 0
    utilization_rate: float = 0.0
    needs_expansion: bool = False

    @classmethod
    def from_counts(
        cls,
        concept_count: int,
        total_connections: int,
        unrated_count: int = 0,
        rated_count: int = 0,
    ) -> "PoolStatistics":
        max_pairs = concept_count * (concept_count - 1) // 2 if concept_count > 1 else 0
        utilization = total_connections / max_pairs if max_pairs else 0.0
        return cls(
            concept_count=concept_count,
            total_connections=total_connections,
            unrated_count=unrated_count,
            rated_count=rated_count,
            max_possible_pairs=max_pairs,
            utilization_rate=utilization,
            needs_expansion=utilization > EXPANSION_UTILIZATION,
        )


__all__ = [
    "Concept",
    "ConceptPair",
    "Connection",
    "ConnectionDraft",
    "ConnectionStatus",
    "CriticEvaluation",
    "CriticRun",
    "CriticScores",
    "NEUTRAL_SCORE",
    "PoolStatistics",
    "SCORE_MAX",
    "SCORE_MIN",
]
