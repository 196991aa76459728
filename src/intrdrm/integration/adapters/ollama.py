"""
Ollama generation client.

Sends prompts to a locally running Ollama server
(https://ollama.com/) through its ``/api/generate`` endpoint. Useful when no
hosted model CLI is installed.

Usage:
    client = OllamaGenerationClient(base_url="http://localhost:11434", model_name="gemma3:4b")
    result = await client.invoke("Connect recursion and mirrors", temperature=0.8)
    await client.close()
"""

import json
import logging
from typing import Any, ClassVar, Optional

import aiohttp

from intrdrm.integration.adapters.base import (
    AuthenticationError,
    ExecutableNotFoundError,
    GenerationClient,
    GenerationResult,
    GenerationTimeoutError,
    ServiceUnavailableError,
    TransportError,
)
from intrdrm.integration.extraction import extract_structured

logger = logging.getLogger(__name__)


class OllamaGenerationClient(GenerationClient):
    """
    Generation client for Ollama local deployments.

    The HTTP session is created lazily on first use so the client can be
    constructed outside a running event loop.
    """

    name: ClassVar[str] = "ollama"

    def __init__(
        self,
        base_url: str = "http://localhost:11434",
        model_name: Optional[str] = "gemma3:4b",
        timeout: float = 60.0,
    ):
        super().__init__(model_name=model_name, timeout=timeout)
        self._base_url = base_url.rstrip("/")
        self._session: Optional[aiohttp.ClientSession] = None
        logger.info("Initialized Ollama client with base URL: %s", self._base_url)

    def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(
                timeout=aiohttp.ClientTimeout(total=self.timeout)
            )
        return self._session

    def _classify_status(self, status: int, body: str) -> TransportError | AuthenticationError | ExecutableNotFoundError:
        detail = body[:500]
        if status in (401, 403):
            return AuthenticationError(f"Ollama authentication failed ({status}): {detail}")
        if status == 404:
            return ExecutableNotFoundError(f"Ollama model '{self.model_name}' not found: {detail}")
        if status >= 500:
            return ServiceUnavailableError(f"Ollama API error ({status}): {detail}")
        return TransportError(f"Ollama API error ({status}): {detail}")

    async def _invoke(self, prompt: str, temperature: float) -> GenerationResult:
        payload: dict[str, Any] = {
            "model": self.model_name,
            "prompt": prompt,
            "stream": False,
            "options": {"temperature": temperature},
        }
        session = self._get_session()

        try:
            async with session.post(f"{self._base_url}/api/generate", json=payload) as response:
                if response.status != 200:
                    error_text = await response.text()
                    return GenerationResult.failure(self._classify_status(response.status, error_text))
                response_data = await response.json()
        except TimeoutError:
            return GenerationResult.failure(
                GenerationTimeoutError(f"Ollama request timed out after {self.timeout:.0f}s")
            )
        except aiohttp.ClientError as e:
            return GenerationResult.failure(ServiceUnavailableError(f"Ollama connection error: {e}"))
        except json.JSONDecodeError as e:
            return GenerationResult.failure(TransportError(f"Invalid JSON from Ollama: {e}"))

        generated_text = response_data.get("response", "") if isinstance(response_data, dict) else ""
        if not isinstance(generated_text, str):
            return GenerationResult.failure(
                TransportError(f"Ollama response field is {type(generated_text).__name__}, expected text")
            )
        if not generated_text.strip():
            return GenerationResult.failure(TransportError("Ollama returned an empty response"))

        extracted = extract_structured(generated_text)
        data = extracted.value if extracted.found else {"text": generated_text.strip()}
        return GenerationResult.ok(data, raw_output=generated_text)

    async def validate(self) -> bool:
        """Return True when the server lists the configured model."""
        session = self._get_session()
        try:
            async with session.get(f"{self._base_url}/api/tags") as response:
                if response.status != 200:
                    return False
                data = await response.json()
        except (aiohttp.ClientError, TimeoutError, json.JSONDecodeError) as e:
            logger.info("Ollama server unavailable: %s", e)
            return False
        names = {model.get("name") for model in data.get("models", [])}
        return self.model_name in names

    async def close(self) -> None:
        if self._session is not None and not self._session.closed:
            await self._session.close()
        self._session = None


__all__ = ["OllamaGenerationClient"]
