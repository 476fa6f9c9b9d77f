"""
LLM provider registry.

Maps provider id strings to provider classes. Classes are referenced by
dotted path and imported on first use, so a vendor SDK is only imported
when its provider is actually built.

Built-in provider ids (case-insensitive):
    anthropic, openai, google, openrouter, ollama

``register_provider`` adds a vendor without touching the factory::

    register_provider("mistral", "my_pkg.mistral_provider.MistralProvider")
"""

import importlib
from typing import Type, Union

from toocli.config import ProviderSettings
from toocli.exceptions import ConfigError
from toocli.llm.base import BaseLLMProvider

ProviderTarget = Union[str, Type[BaseLLMProvider]]

PROVIDERS: dict[str, ProviderTarget] = {
    "anthropic": "toocli.llm.providers.anthropic_provider.AnthropicProvider",
    "openai": "toocli.llm.providers.openai_provider.OpenAIProvider",
    "google": "toocli.llm.providers.google_provider.GoogleProvider",
    "openrouter": "toocli.llm.providers.openrouter_provider.OpenRouterProvider",
    "ollama": "toocli.llm.providers.ollama_provider.OllamaProvider",
}

# Alternate spellings accepted for built-in providers.
_ALIASES: dict[str, str] = {
    "gemini": "google",
    "claude": "anthropic",
}


def normalize_provider_id(provider_id: str) -> str:
    key = provider_id.lower()
    return _ALIASES.get(key, key)


def register_provider(provider_id: str, target: ProviderTarget) -> None:
    """
    Register (or replace) the provider class for an id.

    Args:
        provider_id: Case-insensitive provider key.
        target: A ``BaseLLMProvider`` subclass or its dotted import path.
    """
    PROVIDERS[provider_id.lower()] = target


def supported_providers() -> list[str]:
    return sorted(PROVIDERS)


def resolve_provider_class(provider_id: str) -> Type[BaseLLMProvider]:
    """
    Return the provider class registered for an id.

    Raises:
        ConfigError: Unknown provider id.
    """
    key = normalize_provider_id(provider_id)
    target = PROVIDERS.get(key)
    if target is None:
        raise ConfigError(
            f"Unknown AI provider: '{provider_id}'. Supported: {supported_providers()}",
            provider_id=provider_id,
        )
    if isinstance(target, str):
        module_path, class_name = target.rsplit(".", 1)
        module = importlib.import_module(module_path)
        target = getattr(module, class_name)
    return target


def get_provider(
    provider_id: str,
    settings: ProviderSettings,
    strict_tool_arguments: bool = False,
) -> BaseLLMProvider:
    """
    Return an initialized provider instance.

    Construction never touches the network.

    Raises:
        ConfigError: Unknown provider id.
        ImportError: The vendor SDK is not installed.
    """
    cls = resolve_provider_class(provider_id)
    return cls(settings, strict_tool_arguments=strict_tool_arguments)
