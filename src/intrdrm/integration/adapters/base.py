"""
Base Adapter Module for generation clients.

This module defines the interface every external generation capability
implements, together with the error taxonomy the retry policy relies on.

Classes:
    GenerationResult: Outcome of one invocation (success flag, data, error)
    GenerationClient: Abstract base class for all generation clients

Error taxonomy:
    Non-retryable: ConfigurationError, AuthenticationError,
        ExecutableNotFoundError, InvalidRequestError
    Retryable: TransportError, ServiceUnavailableError, GenerationTimeoutError

Usage:
    Concrete clients inherit from GenerationClient and implement ``_invoke``.
    Callers use ``invoke`` (which validates the temperature) and either inspect
    the returned result or call ``unwrap()`` to re-raise the typed failure:

    ```python
    result = await client.invoke(prompt, temperature=0.8)
    data = result.unwrap()
    ```
"""

import abc
import dataclasses
import logging
from typing import Any, ClassVar, Optional

logger = logging.getLogger(__name__)


class AdapterError(Exception):
    """Base exception class for all adapter-related errors."""

    retryable: ClassVar[bool] = True


class ConfigurationError(AdapterError):
    """Exception raised for errors in the client configuration."""

    retryable = False


class AuthenticationError(AdapterError):
    """Exception raised for authentication failures with the provider."""

    retryable = False


class ExecutableNotFoundError(AdapterError):
    """Exception raised when the generation executable or model is missing."""

    retryable = False


class InvalidRequestError(AdapterError):
    """Exception raised for invalid requests, such as an out-of-range temperature."""

    retryable = False


class TransportError(AdapterError):
    """Exception raised when the call failed in transit or exited abnormally."""


class ServiceUnavailableError(TransportError):
    """Exception raised when the service is unavailable."""


class GenerationTimeoutError(TransportError):
    """Exception raised when a call exceeds its timeout."""


@dataclasses.dataclass
class GenerationResult:
    """
    Outcome of a single generation call.

    Attributes:
        success: Whether the call produced output
        data: Parsed JSON value, or ``{"text": ...}`` for unstructured output
        error: Human-readable failure description
        raw_output: Untouched stdout/body for diagnostics
        cause: Typed exception describing the failure
    """
    success: bool
    data: Any = None
    error: Optional[str] = None
    raw_output: Optional[str] = None
    cause: Optional[AdapterError] = None

    @classmethod
    def ok(cls, data: Any, raw_output: Optional[str] = None) -> "GenerationResult":
        return cls(success=True, data=data, raw_output=raw_output)

    @classmethod
    def failure(cls, cause: AdapterError, raw_output: Optional[str] = None) -> "GenerationResult":
        return cls(success=False, error=str(cause), raw_output=raw_output, cause=cause)

    def unwrap(self) -> Any:
        """Return ``data`` or raise the typed failure."""
        if self.success:
            return self.data
        if self.cause is not None:
            raise self.cause
        raise TransportError(self.error or "generation failed without details")


class GenerationClient(abc.ABC):
    """
    Abstract base class for all generation clients.

    Attributes:
        name (ClassVar[str]): Identifier used in logs and ``model_used``
    """
    name: ClassVar[str] = "base"

    def __init__(self, model_name: Optional[str] = None, timeout: float = 60.0):
        """
        Initialize the client.

        Raises:
            ConfigurationError: If the timeout is not positive
        """
        if timeout <= 0:
            raise ConfigurationError("timeout must be positive")
        self.model_name = model_name
        self.timeout = timeout
        self.logger = logging.getLogger(f"{__name__}.{self.__class__.__name__}")

    @property
    def model_used(self) -> str:
        """Label recorded on stored connections."""
        return f"{self.name}:{self.model_name}" if self.model_name else self.name

    async def invoke(self, prompt: str, temperature: float) -> GenerationResult:
        """
        Send one prompt and return the outcome.

        Out-of-range temperatures are reported as a failed result carrying an
        InvalidRequestError, never sent to the provider.
        """
        if not 0.0 <= temperature <= 1.0:
            return GenerationResult.failure(
                InvalidRequestError(f"temperature must be between 0 and 1, got {temperature}")
            )
        if not prompt or not prompt.strip():
            return GenerationResult.failure(InvalidRequestError("prompt must not be empty"))
        return await self._invoke(prompt, temperature)

    @abc.abstractmethod
    async def _invoke(self, prompt: str, temperature: float) -> GenerationResult:
        """Provider-specific call; must not raise for provider failures."""

    async def validate(self) -> bool:
        """Return True when the client can reach its provider."""
        return True

    async def close(self) -> None:
        """Release any held resources."""
        return None

    async def __aenter__(self) -> "GenerationClient":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()


__all__ = [
    "AdapterError",
    "AuthenticationError",
    "ConfigurationError",
    "ExecutableNotFoundError",
    "GenerationClient",
    "GenerationResult",
    "GenerationTimeoutError",
    "InvalidRequestError",
    "ServiceUnavailableError",
    "TransportError",
]
