"""Core domain types and exceptions for Intrdrm."""

from intrdrm.core.exceptions import (
    ConceptNotFoundError,
    ContentValidationError,
    DatastoreTimeoutError,
    DuplicateConnectionError,
    GenerationError,
    IntrdrmError,
    PersistenceError,
    PoolDepletionError,
    PromptTemplateError,
    SettingsError,
)
from intrdrm.core.models import (
    Concept,
    ConceptPair,
    Connection,
    ConnectionDraft,
    ConnectionStatus,
    CriticEvaluation,
    CriticRun,
    CriticScores,
    PoolStatistics,
)

__all__ = [
    "Concept",
    "ConceptNotFoundError",
    "ConceptPair",
    "Connection",
    "ConnectionDraft",
    "ConnectionStatus",
    "ContentValidationError",
    "CriticEvaluation",
    "CriticRun",
    "CriticScores",
    "DatastoreTimeoutError",
    "DuplicateConnectionError",
    "GenerationError",
    "IntrdrmError",
    "PersistenceError",
    "PoolDepletionError",
    "PoolStatistics",
    "PromptTemplateError",
    "SettingsError",
]
