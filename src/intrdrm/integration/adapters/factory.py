"""Construct the configured generation client."""

from __future__ import annotations

import logging

from intrdrm.config.settings import GeneratorSettings
from intrdrm.integration.adapters.base import ConfigurationError, GenerationClient
from intrdrm.integration.adapters.cli import PROFILES, CLIGenerationClient
from intrdrm.integration.adapters.ollama import OllamaGenerationClient

logger = logging.getLogger(__name__)


def create_generation_client(settings: GeneratorSettings) -> GenerationClient:
    """
    Build the client named by ``settings.provider``.

    Raises:
        ConfigurationError: If the provider is unknown
    """
    if settings.provider in PROFILES:
        client: GenerationClient = CLIGenerationClient(
            profile=settings.provider,
            executable=settings.executable,
            model_name=settings.model,
            timeout=settings.timeout,
        )
    elif settings.provider == "ollama":
        client = OllamaGenerationClient(
            base_url=settings.base_url,
            model_name=settings.model or "gemma3:4b",
            timeout=settings.timeout,
        )
    else:
        raise ConfigurationError(f"Unknown generator provider '{settings.provider}'")

    logger.debug("Using generation client %s", client.model_used)
    return client


__all__ = ["create_generation_client"]
