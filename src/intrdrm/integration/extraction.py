"""
Structured-output extraction for free-form model responses.

Models are asked for JSON but often wrap it in prose or a markdown fence.
:func:`extract_structured` recovers the value with an ordered chain of
strategies and stops at the first one that parses:

1. a fenced block (```` ```json ```` or a bare fence),
2. the first embedded top-level object or array literal,
3. the whole trimmed text.

When no strategy parses, the result says so explicitly; partial data is never
returned.
"""

from __future__ import annotations

import json
import re
from dataclasses import dataclass
from typing import Any, Callable, Optional

FENCED_BLOCK = re.compile(r"```(?:json)?\s*([\s\S]*?)\s*```", re.IGNORECASE)

_decoder = json.JSONDecoder()


@dataclass(frozen=True)
class ExtractionResult:
    """Outcome of one extraction; ``strategy`` names the step that succeeded."""

    found: bool
    value: Any = None
    strategy: Optional[str] = None

    @classmethod
    def missing(cls) -> "ExtractionResult":
        return cls(found=False)


def _loads(candidate: str) -> tuple[bool, Any]:
    try:
        return True, json.loads(candidate)
    except (json.JSONDecodeError, ValueError):
        return False, None


def _from_fence(text: str) -> tuple[bool, Any]:
    for match in FENCED_BLOCK.finditer(text):
        ok, value = _loads(match.group(1))
        if ok:
            return True, value
    return False, None


def _from_embedded_literal(text: str) -> tuple[bool, Any]:
    # raw_decode understands strings and escapes, so braces inside quoted
    # values do not end the literal early.
    for index, char in enumerate(text):
        if char not in "{[":
            continue
        try:
            value, _ = _decoder.raw_decode(text, index)
        except json.JSONDecodeError:
            continue
        return True, value
    return False, None


def _from_whole_text(text: str) -> tuple[bool, Any]:
    return _loads(text.strip())


STRATEGIES: tuple[tuple[str, Callable[[str], tuple[bool, Any]]], ...] = (
    ("fenced", _from_fence),
    ("embedded", _from_embedded_literal),
    ("whole", _from_whole_text),
)


def extract_structured(text: Optional[str]) -> ExtractionResult:
    """
    Recover a JSON value from model output.

    Args:
        text: Raw model output

    Returns:
        ExtractionResult with ``found=False`` when nothing parses
    """
    if not text or not text.strip():
        return ExtractionResult.missing()

    for name, strategy in STRATEGIES:
        ok, value = strategy(text)
        if ok:
            return ExtractionResult(found=True, value=value, strategy=name)
    return ExtractionResult.missing()


def coerce_payload(data: Any) -> Any:
    """
    Normalize a client payload into structured data.

    Clients return either parsed JSON or ``{"text": ...}`` for unparsed output.
    A text payload is run through the extraction chain; ``None`` is returned
    when it holds no recoverable structure.
    """
    if isinstance(data, dict) and set(data) == {"text"} and isinstance(data["text"], str):
        result = extract_structured(data["text"])
        return result.value if result.found else None
    return data


__all__ = ["ExtractionResult", "coerce_payload", "extract_structured"]
