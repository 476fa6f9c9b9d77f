"""Pytest configuration and fixtures.

Isolates every test from the caller's environment (API keys, provider
selection, config file location) and provides ready-made tools, registries
and providers.
"""

import pytest

from toocli import config
from toocli.config import AnthropicSettings, OllamaSettings, OpenAISettings
from toocli.llm.providers import PROVIDERS
from toocli.tools.base import ToolDef, ToolParam
from toocli.tools.registry import ToolRegistry

from tests.fakes import ScriptedProvider

_ENV_VARS = (
    "ANTHROPIC_API_KEY",
    "OPENAI_API_KEY",
    "GOOGLE_API_KEY",
    "GEMINI_API_KEY",
    "OPENROUTER_API_KEY",
    "OLLAMA_BASE_URL",
    "TOOCLI_PROVIDER",
)


@pytest.fixture(autouse=True)
def isolated_env(monkeypatch, tmp_path):
    """No real credentials or config files leak into a test."""
    for name in _ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setattr(config, "DEFAULT_CONFIG_PATH", tmp_path / "missing" / "config.json")


@pytest.fixture(autouse=True)
def restore_provider_registry():
    saved = dict(PROVIDERS)
    yield
    PROVIDERS.clear()
    PROVIDERS.update(saved)


@pytest.fixture
def anthropic_settings():
    return AnthropicSettings(api_key="sk-ant-test")


@pytest.fixture
def openai_settings():
    return OpenAISettings(api_key="sk-test", model="gpt-4o")


@pytest.fixture
def ollama_settings():
    return OllamaSettings(model="llama3.2")


@pytest.fixture
def scripted_provider():
    return ScriptedProvider()


@pytest.fixture
def echo_tool():
    def echo(text: str) -> str:
        return f"echo: {text}"

    return ToolDef(
        name="echo",
        description="Echo the given text.",
        params=[ToolParam("text", "string", "Text to echo")],
        handler=echo,
    )


@pytest.fixture
def failing_tool():
    def explode() -> str:
        raise RuntimeError("boom")

    return ToolDef(name="explode", description="Always fails.", params=[], handler=explode)


@pytest.fixture
def registry(echo_tool, failing_tool):
    reg = ToolRegistry()
    reg.register_many([echo_tool, failing_tool])
    return reg
