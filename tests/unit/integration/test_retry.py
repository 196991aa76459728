from __future__ import annotations

import pytest

from intrdrm.integration.adapters.base import (
    AuthenticationError,
    ConfigurationError,
    ExecutableNotFoundError,
    GenerationTimeoutError,
    TransportError,
)
from intrdrm.integration.retry import is_retryable, retry_with_backoff


class _Flaky:
    def __init__(self, failures: list[Exception], result: str = "ok") -> None:
        self.failures = list(failures)
        self.result = result
        self.calls = 0

    async def __call__(self) -> str:
        self.calls += 1
        if self.failures:
            raise self.failures.pop(0)
        return self.result


@pytest.mark.asyncio
async def test_succeeds_after_transient_failures(sleep_recorder) -> None:
    operation = _Flaky([TransportError("boom"), GenerationTimeoutError("slow")])

    result = await retry_with_backoff(operation, 3, 2.0, sleep=sleep_recorder)

    assert result == "ok"
    assert operation.calls == 3
    assert sleep_recorder.delays == [2.0, 4.0]


@pytest.mark.asyncio
async def test_exhausted_attempts_raise_last_error(sleep_recorder) -> None:
    errors = [TransportError("first"), TransportError("second"), TransportError("third")]
    operation = _Flaky(errors)

    with pytest.raises(TransportError, match="third"):
        await retry_with_backoff(operation, 3, 1.5, sleep=sleep_recorder)

    assert operation.calls == 3
    assert sleep_recorder.delays == [1.5, 3.0]


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "error",
    [
        AuthenticationError("bad key"),
        ExecutableNotFoundError("codex missing"),
        ConfigurationError("broken"),
        RuntimeError("codex: command not found"),
        RuntimeError("Authentication required"),
    ],
)
async def test_non_retryable_errors_make_a_single_attempt(error, sleep_recorder) -> None:
    operation = _Flaky([error])

    with pytest.raises(type(error)):
        await retry_with_backoff(operation, 3, 2.0, sleep=sleep_recorder)

    assert operation.calls == 1
    assert sleep_recorder.delays == []


@pytest.mark.asyncio
async def test_single_attempt_budget_never_sleeps(sleep_recorder) -> None:
    operation = _Flaky([TransportError("once")])
    with pytest.raises(TransportError):
        await retry_with_backoff(operation, 1, 2.0, sleep=sleep_recorder)
    assert sleep_recorder.delays == []


@pytest.mark.asyncio
async def test_rejects_empty_budget() -> None:
    with pytest.raises(ValueError):
        await retry_with_backoff(_Flaky([]), 0)


def test_foreign_errors_classified_by_message() -> None:
    assert is_retryable(RuntimeError("connection reset")) is True
    assert is_retryable(RuntimeError("model not found")) is False
