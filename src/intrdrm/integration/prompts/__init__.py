"""Prompt templates used by the generator and the critics."""

from intrdrm.integration.prompts.base import PromptMetadata, PromptTemplate
from intrdrm.integration.prompts.templates import (
    CRITIC_PRIMARY_TEMPLATE,
    CRITIC_SECONDARY_TEMPLATE,
    GENERATOR_TEMPLATE,
    TemplateLibrary,
)

__all__ = [
    "CRITIC_PRIMARY_TEMPLATE",
    "CRITIC_SECONDARY_TEMPLATE",
    "GENERATOR_TEMPLATE",
    "PromptMetadata",
    "PromptTemplate",
    "TemplateLibrary",
]
