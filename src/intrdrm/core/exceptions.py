"""
Core Exceptions for Intrdrm.

This module defines the exception classes shared by the generation pipeline,
the datastore layer and the health monitor. Transport-level failures raised by
generation clients live next to the adapters in
``intrdrm.integration.adapters.base``.

The exceptions are organized into categories:
- Sampling Exceptions
- Generation Exceptions
- Persistence Exceptions
- Configuration Exceptions

Each exception carries an error code and a context mapping so the batch driver
can summarise failures by category.
"""

import logging
from typing import Any, Dict, Optional

logger = logging.getLogger(__name__)


class IntrdrmError(Exception):
    """Base exception class for all Intrdrm errors."""

    error_code: str = "INTRDRM_ERROR"

    def __init__(self, message: str, error_code: Optional[str] = None, context: Optional[Dict[str, Any]] = None):
        """
        Initialize an Intrdrm error.

        Args:
            message: Human-readable error message
            error_code: Optional error code for programmatic handling
            context: Optional context information for debugging
        """
        super().__init__(message)
        self.message = message
        self.error_code = error_code or self.error_code
        self.context = context or {}

        logger.debug("%s: %s", type(self).__name__, message, extra={
            "error_code": self.error_code,
            "context": self.context,
        })


# Sampling Exceptions

class PoolDepletionError(IntrdrmError):
    """Raised when no unused concept pair can be found within the attempt budget."""

    error_code = "POOL_DEPLETED"

    def __init__(self, attempts: int, concept_count: Optional[int] = None, message: Optional[str] = None):
        self.attempts = attempts
        self.concept_count = concept_count
        default_message = f"No unused concept pair found after {attempts} attempts; the concept pool needs expansion"
        super().__init__(
            message or default_message,
            context={"attempts": attempts, "concept_count": concept_count},
        )


# Generation Exceptions

class GenerationError(IntrdrmError):
    """Raised when a connection could not be generated."""

    error_code = "GENERATION_FAILED"


class ContentValidationError(GenerationError):
    """Raised when the model answered but the payload lacks the required fields."""

    error_code = "CONTENT_INVALID"

    def __init__(self, message: str, missing_fields: Optional[list] = None, payload: Any = None):
        self.missing_fields = list(missing_fields or [])
        self.payload = payload
        super().__init__(message, context={"missing_fields": self.missing_fields})


class PromptTemplateError(IntrdrmError):
    """Raised when a prompt template is missing or cannot be rendered."""

    error_code = "PROMPT_TEMPLATE"


# Persistence Exceptions

class PersistenceError(IntrdrmError):
    """Raised when the datastore rejects or fails an operation."""

    error_code = "PERSISTENCE_FAILED"

    def __init__(self, operation: str, message: Optional[str] = None, cause: Optional[Exception] = None):
        """
        Initialize a persistence error.

        Args:
            operation: The datastore operation that failed
            message: Optional custom message
            cause: Optional exception that caused this error
        """
        self.operation = operation
        self.cause = cause
        default_message = f"Datastore operation '{operation}' failed"
        if cause is not None:
            default_message += f": {cause}"
        super().__init__(message or default_message, context={"operation": operation})


class DuplicateConnectionError(PersistenceError):
    """Raised when a connection already exists for the unordered concept pair."""

    error_code = "DUPLICATE_CONNECTION"

    def __init__(self, concept_a_id: str, concept_b_id: str, cause: Optional[Exception] = None):
        self.concept_a_id = concept_a_id
        self.concept_b_id = concept_b_id
        super().__init__(
            "insert_connection",
            f"A connection between '{concept_a_id}' and '{concept_b_id}' already exists",
            cause=cause,
        )


class ConceptNotFoundError(PersistenceError):
    """Raised when an operation targets a concept id that is not stored."""

    error_code = "CONCEPT_NOT_FOUND"

    def __init__(self, concept_id: str):
        self.concept_id = concept_id
        super().__init__("increment_usage", f"Concept with ID '{concept_id}' not found")


class DatastoreTimeoutError(PersistenceError):
    """Raised when a datastore round trip exceeds its timeout."""

    error_code = "DATASTORE_TIMEOUT"

    def __init__(self, operation: str, timeout: float):
        self.timeout = timeout
        super().__init__(operation, f"Datastore operation '{operation}' timed out after {timeout:.1f}s")


# Configuration Exceptions

class SettingsError(IntrdrmError):
    """Raised when configuration files or environment values are invalid."""

    error_code = "SETTINGS_INVALID"


__all__ = [
    "ConceptNotFoundError",
    "ContentValidationError",
    "DatastoreTimeoutError",
    "DuplicateConnectionError",
    "GenerationError",
    "IntrdrmError",
    "PersistenceError",
    "PoolDepletionError",
    "PromptTemplateError",
    "SettingsError",
]
