"""
Generation pipeline: pair sampling, connection generation and critic scoring.

Use :func:`build_pipeline` to assemble a pipeline from settings, or wire the
components by hand for tests.
"""

from intrdrm.pipeline.critics import DualCriticScorer, validate_scores
from intrdrm.pipeline.cycle import (
    BatchSummary,
    CycleOutcome,
    FailureCategory,
    GenerationPipeline,
    categorize_failure,
)
from intrdrm.pipeline.factory import build_pipeline
from intrdrm.pipeline.generator import ConnectionGenerator, validate_draft
from intrdrm.pipeline.sampler import ConceptPairSampler

__all__ = [
    "BatchSummary",
    "ConceptPairSampler",
    "ConnectionGenerator",
    "CycleOutcome",
    "DualCriticScorer",
    "FailureCategory",
    "GenerationPipeline",
    "build_pipeline",
    "categorize_failure",
    "validate_draft",
    "validate_scores",
]
