"""
Generation clients for Intrdrm.

Each client wraps one external generation capability behind
:class:`GenerationClient`. Use :func:`create_generation_client` to build the
one selected in settings.
"""

from intrdrm.integration.adapters.base import (
    AdapterError,
    AuthenticationError,
    ConfigurationError,
    ExecutableNotFoundError,
    GenerationClient,
    GenerationResult,
    GenerationTimeoutError,
    InvalidRequestError,
    ServiceUnavailableError,
    TransportError,
)
from intrdrm.integration.adapters.cli import CLIGenerationClient
from intrdrm.integration.adapters.factory import create_generation_client
from intrdrm.integration.adapters.ollama import OllamaGenerationClient

__all__ = [
    "AdapterError",
    "AuthenticationError",
    "CLIGenerationClient",
    "ConfigurationError",
    "ExecutableNotFoundError",
    "GenerationClient",
    "GenerationResult",
    "GenerationTimeoutError",
    "InvalidRequestError",
    "OllamaGenerationClient",
    "ServiceUnavailableError",
    "TransportError",
    "create_generation_client",
]
