"""
Built-in prompt templates and the template library.

Three templates drive the pipeline:

* ``generator-v1`` asks for a connection between ``{{CONCEPT_A}}`` and
  ``{{CONCEPT_B}}``;
* ``critic-run-1`` scores ``{{CONNECTION}}``/``{{EXPLANATION}}`` generously;
* ``critic-run-2`` scores the same inputs strictly.

A directory of ``<template-id>.md`` files can override any of them.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Iterable, Optional

from intrdrm.core.exceptions import PromptTemplateError
from intrdrm.integration.prompts.base import PromptMetadata, PromptTemplate

logger = logging.getLogger(__name__)

GENERATOR_TEMPLATE = "generator-v1"
CRITIC_PRIMARY_TEMPLATE = "critic-run-1"
CRITIC_SECONDARY_TEMPLATE = "critic-run-2"
REQUIRED_TEMPLATES = (GENERATOR_TEMPLATE, CRITIC_PRIMARY_TEMPLATE, CRITIC_SECONDARY_TEMPLATE)

_GENERATOR_BODY = """\
You find surprising, insightful connections between unrelated ideas.

Concept A: {{CONCEPT_A}}
Concept B: {{CONCEPT_B}}

Describe one non-obvious connection between these two concepts. It should be
specific, reveal something true about both, and be useful to someone thinking
about either concept.

Respond with JSON only:
{"connection": "<one or two sentence statement of the connection>",
 "explanation": "<a short paragraph explaining why it holds>"}
"""

_CRITIC_SCALE = """\
Score each dimension from 1 to 10:
- novelty: how surprising the connection is
- coherence: how logically sound the explanation is
- usefulness: how much insight it offers

Respond with JSON only:
{"novelty": <1-10>, "coherence": <1-10>, "usefulness": <1-10>, "reasoning": "<one sentence>"}
"""

_CRITIC_PRIMARY_BODY = """\
You are an encouraging reviewer of creative ideas. Look for what works in the
connection below and give credit for originality and potential.

Connection: {{CONNECTION}}
Explanation: {{EXPLANATION}}

""" + _CRITIC_SCALE

_CRITIC_SECONDARY_BODY = """\
You are a demanding reviewer. Most connections are superficial; reserve scores
above 7 for ideas that are genuinely surprising and rigorous.

Connection: {{CONNECTION}}
Explanation: {{EXPLANATION}}

""" + _CRITIC_SCALE

BUILTIN_TEMPLATES: dict[str, tuple[str, str]] = {
    GENERATOR_TEMPLATE: (_GENERATOR_BODY, "Connection generator"),
    CRITIC_PRIMARY_TEMPLATE: (_CRITIC_PRIMARY_BODY, "Generous critic pass"),
    CRITIC_SECONDARY_TEMPLATE: (_CRITIC_SECONDARY_BODY, "Strict critic pass"),
}


class TemplateLibrary:
    """Resolve templates by id, preferring files in ``override_dir``."""

    def __init__(self, override_dir: Optional[str | Path] = None, version: str = "v1.0"):
        self.override_dir = Path(override_dir) if override_dir else None
        self.version = version
        self._cache: dict[str, PromptTemplate] = {}

    def _load(self, template_id: str) -> PromptTemplate:
        if self.override_dir is not None:
            path = self.override_dir / f"{template_id}.md"
            if path.is_file():
                logger.debug("Loading prompt template %s from %s", template_id, path)
                return PromptTemplate(
                    template_id,
                    path.read_text(encoding="utf-8"),
                    PromptMetadata(name=template_id, description=str(path), version=self.version),
                )
        if template_id in BUILTIN_TEMPLATES:
            body, description = BUILTIN_TEMPLATES[template_id]
            return PromptTemplate(
                template_id,
                body,
                PromptMetadata(name=template_id, description=description, tags=["builtin"], version=self.version),
            )
        raise PromptTemplateError(f"Prompt template not found: {template_id}", context={"template": template_id})

    def get(self, template_id: str) -> PromptTemplate:
        if template_id not in self._cache:
            self._cache[template_id] = self._load(template_id)
        return self._cache[template_id]

    def render(self, template_id: str, **variables: str) -> str:
        return self.get(template_id).render(**variables)

    def available(self) -> list[str]:
        names = set(BUILTIN_TEMPLATES)
        if self.override_dir is not None and self.override_dir.is_dir():
            names.update(path.stem for path in self.override_dir.glob("*.md"))
        return sorted(names)

    def validate(self, required: Iterable[str] = REQUIRED_TEMPLATES) -> list[str]:
        """Return the required template ids that cannot be loaded."""
        missing = []
        for template_id in required:
            try:
                self.get(template_id)
            except PromptTemplateError:
                missing.append(template_id)
        return missing


__all__ = [
    "BUILTIN_TEMPLATES",
    "CRITIC_PRIMARY_TEMPLATE",
    "CRITIC_SECONDARY_TEMPLATE",
    "GENERATOR_TEMPLATE",
    "REQUIRED_TEMPLATES",
    "TemplateLibrary",
]
