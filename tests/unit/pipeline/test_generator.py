from __future__ import annotations

import pytest

from intrdrm.core.exceptions import ContentValidationError, DuplicateConnectionError, GenerationError
from intrdrm.core.models import ConceptPair, ConnectionStatus
from intrdrm.integration.adapters.base import AuthenticationError, TransportError
from intrdrm.pipeline.generator import ConnectionGenerator, validate_draft

VALID = {"connection": "Both fold back on themselves.", "explanation": "Recursion and mirrors repeat."}


@pytest.fixture
def pair_factory(add_concepts):
    async def _pair() -> ConceptPair:
        recursion, mirrors = await add_concepts("recursion", "mirrors")
        return ConceptPair(concept_a=recursion, concept_b=mirrors)

    return _pair


def _generator(client, gateway, sleep_recorder, **kwargs) -> ConnectionGenerator:
    return ConnectionGenerator(client, gateway, sleep=sleep_recorder, **kwargs)


def test_validate_draft_strips_values() -> None:
    draft = validate_draft({"connection": "  a link ", "explanation": "why\n"})
    assert (draft.connection, draft.explanation) == ("a link", "why")


@pytest.mark.parametrize(
    "payload, missing",
    [
        ({"connection": "only text"}, ["explanation"]),
        ({"connection": "   ", "explanation": "e"}, ["connection"]),
        ({"connection": 3, "explanation": None}, ["connection", "explanation"]),
        (["not", "a", "dict"], ["connection", "explanation"]),
        (None, ["connection", "explanation"]),
    ],
)
def test_validate_draft_reports_missing_fields(payload, missing) -> None:
    with pytest.raises(ContentValidationError) as excinfo:
        validate_draft(payload)
    assert excinfo.value.missing_fields == missing


@pytest.mark.asyncio
async def test_generate_stores_unrated_connection(gateway, pair_factory, fake_client_factory, sleep_recorder) -> None:
    pair = await pair_factory()
    client = fake_client_factory([VALID])
    generator = _generator(client, gateway, sleep_recorder, prompt_version="v2.0")

    connection = await generator.generate(pair)

    assert connection.text == VALID["connection"]
    assert connection.status is ConnectionStatus.UNRATED
    assert connection.model_used == "fake:test-model"
    stored = await gateway.find_connection_by_pair(pair.concept_b.id, pair.concept_a.id)
    assert stored.id == connection.id
    assert stored.prompt_version == "v2.0"

    prompt, temperature = client.calls[0]
    assert "recursion" in prompt and "mirrors" in prompt
    assert temperature == 0.8
    assert sleep_recorder.delays == []


@pytest.mark.asyncio
async def test_generate_extracts_json_from_prose(gateway, pair_factory, fake_client_factory, sleep_recorder) -> None:
    pair = await pair_factory()
    reply = {"text": 'Sure! Here it is:\n```json\n{"connection": "c", "explanation": "e"}\n```\nEnjoy.'}
    generator = _generator(fake_client_factory([reply]), gateway, sleep_recorder)

    connection = await generator.generate(pair)

    assert (connection.text, connection.explanation) == ("c", "e")


@pytest.mark.asyncio
async def test_missing_field_regenerates_once(gateway, pair_factory, fake_client_factory, sleep_recorder) -> None:
    pair = await pair_factory()
    client = fake_client_factory([{"connection": "no explanation"}, VALID])

    connection = await _generator(client, gateway, sleep_recorder).generate(pair)

    assert len(client.calls) == 2
    assert connection.explanation == VALID["explanation"]
    assert await gateway.count_connections() == 1


@pytest.mark.asyncio
async def test_invalid_content_twice_stores_nothing(gateway, pair_factory, fake_client_factory, sleep_recorder) -> None:
    pair = await pair_factory()
    client = fake_client_factory([{"connection": "c"}, {"text": "no json here"}])

    with pytest.raises(ContentValidationError):
        await _generator(client, gateway, sleep_recorder).generate(pair)

    assert len(client.calls) == 2
    assert await gateway.count_connections() == 0


@pytest.mark.asyncio
async def test_transient_failures_back_off(gateway, pair_factory, fake_client_factory, sleep_recorder) -> None:
    pair = await pair_factory()
    client = fake_client_factory([TransportError("exit 1"), TransportError("exit 1"), VALID])

    await _generator(client, gateway, sleep_recorder).generate(pair)

    assert len(client.calls) == 3
    assert sleep_recorder.delays == [2.0, 4.0]


@pytest.mark.asyncio
async def test_exhausted_retries_raise_generation_error(
    gateway, pair_factory, fake_client_factory, sleep_recorder
) -> None:
    pair = await pair_factory()
    client = fake_client_factory(default=TransportError("connection reset"))

    with pytest.raises(GenerationError) as excinfo:
        await _generator(client, gateway, sleep_recorder).generate(pair)

    assert not isinstance(excinfo.value, ContentValidationError)
    assert isinstance(excinfo.value.__cause__, TransportError)
    assert excinfo.value.context["category"] == "TransportError"
    assert len(client.calls) == 3
    assert await gateway.count_connections() == 0


@pytest.mark.asyncio
async def test_authentication_failure_is_not_retried(
    gateway, pair_factory, fake_client_factory, sleep_recorder
) -> None:
    pair = await pair_factory()
    client = fake_client_factory(default=AuthenticationError("authentication failed"))

    with pytest.raises(GenerationError) as excinfo:
        await _generator(client, gateway, sleep_recorder).generate(pair)

    assert isinstance(excinfo.value.__cause__, AuthenticationError)
    assert len(client.calls) == 1
    assert sleep_recorder.delays == []


@pytest.mark.asyncio
async def test_existing_pair_surfaces_duplicate(gateway, pair_factory, fake_client_factory, sleep_recorder) -> None:
    pair = await pair_factory()
    await gateway.insert_connection(pair.concept_b.id, pair.concept_a.id, "earlier", "e")

    with pytest.raises(DuplicateConnectionError):
        await _generator(fake_client_factory([VALID]), gateway, sleep_recorder).generate(pair)
