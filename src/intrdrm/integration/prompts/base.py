"""Prompt template primitives for the integration layer."""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any, Optional

from intrdrm.core.exceptions import PromptTemplateError

PLACEHOLDER = re.compile(r"\{\{([A-Z0-9_]+)\}\}")


@dataclass(slots=True)
class PromptMetadata:
    """Basic metadata container for prompt templates."""

    name: Optional[str] = None
    description: Optional[str] = None
    tags: list[str] = field(default_factory=list)
    version: str = "v1.0"


class PromptTemplate:
    """A ``{{NAME}}``-style template; every placeholder must be supplied."""

    def __init__(
        self,
        template_id: str,
        body: str,
        metadata: Optional[PromptMetadata | dict[str, Any]] = None,
        created_at: Optional[datetime] = None,
    ) -> None:
        self.template_id = template_id
        self.body = body
        if isinstance(metadata, dict):
            metadata = PromptMetadata(**metadata)
        self.metadata = metadata or PromptMetadata(name=template_id)
        self.created_at = created_at or datetime.now(UTC)

    @property
    def placeholders(self) -> set[str]:
        return set(PLACEHOLDER.findall(self.body))

    def render(self, **variables: Any) -> str:
        """
        Substitute every placeholder.

        Raises:
            PromptTemplateError: If a placeholder has no value
        """
        missing = self.placeholders - set(variables)
        if missing:
            raise PromptTemplateError(
                f"Template '{self.template_id}' is missing values for: {', '.join(sorted(missing))}",
                context={"template": self.template_id},
            )
        return PLACEHOLDER.sub(lambda match: str(variables[match.group(1)]), self.body)


__all__ = ["PLACEHOLDER", "PromptMetadata", "PromptTemplate"]
