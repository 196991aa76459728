"""
Connection generation.

Purpose:
    Turn a concept pair into a stored, unrated connection by prompting the
    generation client and validating its structured answer.
External Dependencies:
    A :class:`~intrdrm.integration.adapters.base.GenerationClient` and a
    :class:`~intrdrm.db.gateway.DatastoreGateway`.
Fallback Semantics:
    Transport failures are retried by the shared backoff policy. A reply that
    parses but lacks ``connection`` or ``explanation`` triggers one more full
    generation before the cycle gives up. Nothing is stored on any failure.
Timeout Strategy:
    Each client call is bounded by the client's own timeout.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Awaitable, Callable, Optional

from intrdrm.core.exceptions import ContentValidationError, GenerationError
from intrdrm.core.models import ConceptPair, Connection, ConnectionDraft
from intrdrm.db.gateway import DatastoreGateway
from intrdrm.integration.adapters.base import AdapterError, GenerationClient
from intrdrm.integration.extraction import coerce_payload
from intrdrm.integration.prompts.templates import GENERATOR_TEMPLATE, TemplateLibrary
from intrdrm.integration.retry import retry_with_backoff

logger = logging.getLogger(__name__)

REQUIRED_FIELDS = ("connection", "explanation")


def validate_draft(payload: Any) -> ConnectionDraft:
    """
    Check that ``payload`` carries non-blank ``connection`` and ``explanation`` strings.

    Raises:
        ContentValidationError: Listing the fields that are missing or blank
    """
    if not isinstance(payload, dict):
        raise ContentValidationError(
            "Generation output is not a JSON object", missing_fields=list(REQUIRED_FIELDS), payload=payload
        )
    missing = [
        name for name in REQUIRED_FIELDS
        if not isinstance(payload.get(name), str) or not payload[name].strip()
    ]
    if missing:
        raise ContentValidationError(
            f"Generation output is missing required field(s): {', '.join(missing)}",
            missing_fields=missing,
            payload=payload,
        )
    return ConnectionDraft(
        connection=payload["connection"].strip(),
        explanation=payload["explanation"].strip(),
    )


class ConnectionGenerator:
    """Generate and store one connection per concept pair."""

    def __init__(
        self,
        client: GenerationClient,
        gateway: DatastoreGateway,
        templates: Optional[TemplateLibrary] = None,
        temperature: float = 0.8,
        max_attempts: int = 3,
        initial_delay: float = 2.0,
        content_retries: int = 1,
        prompt_version: str = "v1.0",
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.client = client
        self.gateway = gateway
        self.templates = templates or TemplateLibrary()
        self.temperature = temperature
        self.max_attempts = max_attempts
        self.initial_delay = initial_delay
        self.content_retries = content_retries
        self.prompt_version = prompt_version
        self._sleep = sleep

    def build_prompt(self, pair: ConceptPair) -> str:
        return self.templates.render(
            GENERATOR_TEMPLATE,
            CONCEPT_A=pair.concept_a.name,
            CONCEPT_B=pair.concept_b.name,
        )

    async def _request_draft(self, prompt: str, label: str) -> ConnectionDraft:
        async def call() -> Any:
            result = await self.client.invoke(prompt, self.temperature)
            return result.unwrap()

        data = await retry_with_backoff(
            call,
            self.max_attempts,
            self.initial_delay,
            sleep=self._sleep,
            description=f"generation for {label}",
        )
        return validate_draft(coerce_payload(data))

    async def generate(self, pair: ConceptPair) -> Connection:
        """
        Generate, validate and store a connection for ``pair``.

        Raises:
            ContentValidationError: If every generation lacked the required fields
            GenerationError: If the client failed after retries (cause chained)
        """
        label = pair.describe()
        prompt = self.build_prompt(pair)
        logger.info("Generating connection for %s", label)

        draft: Optional[ConnectionDraft] = None
        for attempt in range(self.content_retries + 1):
            try:
                draft = await self._request_draft(prompt, label)
                break
            except ContentValidationError as e:
                if attempt == self.content_retries:
                    raise
                logger.warning("Invalid generation output for %s (%s); regenerating", label, e.message)
            except AdapterError as e:
                raise GenerationError(
                    f"Generation failed for {label}: {e}",
                    context={"category": type(e).__name__, "pair": label},
                ) from e

        connection = await self.gateway.insert_connection(
            pair.concept_a.id,
            pair.concept_b.id,
            draft.connection,
            draft.explanation,
            prompt_version=self.prompt_version,
            model_used=self.client.model_used,
        )
        logger.info("Stored connection %s for %s", connection.id, label)
        return connection


__all__ = ["ConnectionGenerator", "REQUIRED_FIELDS", "validate_draft"]
