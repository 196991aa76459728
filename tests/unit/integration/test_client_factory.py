import pytest

from intrdrm.config.settings import GeneratorSettings
from intrdrm.integration.adapters import factory
from intrdrm.integration.adapters.base import ConfigurationError
from intrdrm.integration.adapters.cli import CLIGenerationClient
from intrdrm.integration.adapters.ollama import OllamaGenerationClient


def test_codex_is_the_default_client():
    client = factory.create_generation_client(GeneratorSettings())

    assert isinstance(client, CLIGenerationClient)
    assert client.executable == "codex"
    assert client.timeout == 60.0
    assert client.model_used == "codex"


def test_claude_profile_with_overrides():
    settings = GeneratorSettings(provider="claude", executable="/opt/bin/claude", model="claude-x", timeout=30)

    client = factory.create_generation_client(settings)

    assert client.executable == "/opt/bin/claude"
    assert client.model_used == "claude:claude-x"
    assert client.timeout == 30


def test_ollama_client():
    settings = GeneratorSettings(provider="ollama", base_url="http://ollama:11434")

    client = factory.create_generation_client(settings)

    assert isinstance(client, OllamaGenerationClient)
    assert client.model_name == "gemma3:4b"


def test_unknown_provider():
    with pytest.raises(ConfigurationError):
        factory.create_generation_client(GeneratorSettings(provider="telepathy"))
