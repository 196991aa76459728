"""Global pytest configuration for the Intrdrm test suite.

Ensures the ``src`` tree is importable without installing the package and
provides the shared fixtures: a SQLite gateway on a temporary file, a scripted
generation client and a sleep function that records delays instead of waiting.
"""

import sys
from pathlib import Path
from typing import Any, Callable, Iterable, Optional, Union

import pytest
import pytest_asyncio

# Add the src directory to the Python path so imports work without installing
project_root = Path(__file__).parent.parent
src_dir = project_root / 'src'

if str(src_dir) not in sys.path:
    sys.path.insert(0, str(src_dir))

from intrdrm.core.models import Concept  # noqa: E402
from intrdrm.db.gateway import SQLiteGateway  # noqa: E402
from intrdrm.integration.adapters.base import (  # noqa: E402
    AdapterError,
    GenerationClient,
    GenerationResult,
)

Scripted = Union[Any, AdapterError, Callable[[str, float], Any]]


class FakeGenerationClient(GenerationClient):
    """Generation client that replays scripted responses.

    Each scripted item is consumed by one call: an ``AdapterError`` instance
    becomes a failed result, a callable receives ``(prompt, temperature)`` and
    its return value is used, anything else is returned as successful data.
    When the script runs out, ``default`` is used for every further call.
    """

    name = "fake"

    def __init__(self, responses: Iterable[Scripted] = (), default: Optional[Scripted] = None):
        super().__init__(model_name="test-model", timeout=5.0)
        self.responses = list(responses)
        self.default = default
        self.calls: list[tuple[str, float]] = []
        self.closed = False

    async def _invoke(self, prompt: str, temperature: float) -> GenerationResult:
        self.calls.append((prompt, temperature))
        if self.responses:
            item = self.responses.pop(0)
        elif self.default is not None:
            item = self.default
        else:
            raise AssertionError(f"unexpected generation call #{len(self.calls)}")

        if callable(item) and not isinstance(item, AdapterError):
            item = item(prompt, temperature)
        if isinstance(item, AdapterError):
            return GenerationResult.failure(item)
        return GenerationResult.ok(item)

    async def close(self) -> None:
        self.closed = True


class SleepRecorder:
    """Async stand-in for ``asyncio.sleep`` that records requested delays."""

    def __init__(self) -> None:
        self.delays: list[float] = []

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)


@pytest.fixture
def fake_client_factory() -> type[FakeGenerationClient]:
    return FakeGenerationClient


@pytest.fixture
def sleep_recorder() -> SleepRecorder:
    return SleepRecorder()


@pytest.fixture
def db_path(tmp_path: Path) -> str:
    return str(tmp_path / "intrdrm.db")


@pytest_asyncio.fixture
async def gateway(db_path: str):
    store = SQLiteGateway(db_path, timeout=5.0)
    await store.initialize()
    yield store
    await store.close()


@pytest.fixture
def add_concepts(gateway: SQLiteGateway) -> Callable[..., Any]:
    """Insert concepts by name and return them in insertion order."""

    async def _add(*names: str, category: str = "general") -> list[Concept]:
        await gateway.add_concepts({"name": name, "category": category} for name in names)
        concepts = await gateway.get_least_used_concepts(limit=10_000)
        by_name = {concept.name: concept for concept in concepts}
        return [by_name[name] for name in names]

    return _add
