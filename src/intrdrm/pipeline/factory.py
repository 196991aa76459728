"""Assemble a GenerationPipeline from settings."""

from __future__ import annotations

from intrdrm.config.settings import IntrdrmSettings
from intrdrm.db.gateway import DatastoreGateway
from intrdrm.integration.adapters.base import GenerationClient
from intrdrm.integration.prompts.templates import TemplateLibrary
from intrdrm.pipeline.critics import DualCriticScorer
from intrdrm.pipeline.cycle import GenerationPipeline
from intrdrm.pipeline.generator import ConnectionGenerator
from intrdrm.pipeline.sampler import ConceptPairSampler


def build_pipeline(
    settings: IntrdrmSettings,
    gateway: DatastoreGateway,
    client: GenerationClient,
) -> GenerationPipeline:
    """Wire sampler, generator and scorer with the configured budgets and temperatures."""
    templates = TemplateLibrary(settings.generator.prompts_dir, version=settings.generator.prompt_version)
    sampler = ConceptPairSampler(
        gateway,
        pool_size=settings.sampler.pool_size,
        max_retries=settings.sampler.max_retries,
        max_draw_attempts=settings.sampler.max_draw_attempts,
        bulk_max_retries=settings.sampler.bulk_max_retries,
    )
    generator = ConnectionGenerator(
        client,
        gateway,
        templates,
        temperature=settings.generator.temperature,
        max_attempts=settings.retry.max_attempts,
        initial_delay=settings.retry.initial_delay,
        content_retries=settings.retry.content_retries,
        prompt_version=settings.generator.prompt_version,
    )
    scorer = DualCriticScorer(
        client,
        gateway,
        templates,
        primary_temperature=settings.generator.critic_primary_temperature,
        secondary_temperature=settings.generator.critic_secondary_temperature,
        max_attempts=settings.retry.max_attempts,
        initial_delay=settings.retry.initial_delay,
    )
    return GenerationPipeline(sampler, generator, scorer)


__all__ = ["build_pipeline"]
