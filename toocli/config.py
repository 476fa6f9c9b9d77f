"""
Configuration profile.

A profile names the default provider and holds one settings block per
configured provider. Blocks are validated with pydantic; a provider with no
block is "not configured" and the factory refuses to build it.

Profiles are loaded from a JSON file (``~/.too/config.json`` by default).
Both snake_case and the camelCase keys used by earlier config files
(``apiKey``, ``baseUrl``, ``maxTokens``, ``openRouter``, ``toolCallModel``)
are accepted. API keys found in the environment fill in providers the file
does not mention.
"""

import json
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from toocli.exceptions import ConfigError


DEFAULT_CONFIG_PATH = Path.home() / ".too" / "config.json"

DEFAULT_SYSTEM_PROMPT = (
    "You are the toocli assistant, a professional programming assistant. "
    "Answer concisely and use the available tools when they help."
)


class ProviderSettings(BaseModel):
    """Settings shared by every provider block."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    api_key: str | None = Field(default=None, alias="apiKey")
    base_url: str | None = Field(default=None, alias="baseUrl")
    model: str
    max_tokens: int = Field(default=4096, alias="maxTokens", gt=0)
    temperature: float = Field(default=0.7, ge=0, le=2)


class _KeyedSettings(ProviderSettings):
    api_key: str = Field(alias="apiKey", min_length=1)


class AnthropicSettings(_KeyedSettings):
    model: str = "claude-3-5-sonnet-20241022"
    max_tokens: int = Field(default=8192, alias="maxTokens", gt=0)


class OpenAISettings(_KeyedSettings):
    model: str = "gpt-4-turbo"
    max_tokens: int = Field(default=4096, alias="maxTokens", gt=0)


class GoogleSettings(_KeyedSettings):
    model: str = "gemini-1.5-pro"
    max_tokens: int = Field(default=8192, alias="maxTokens", gt=0)


class OpenRouterSettings(_KeyedSettings):
    model: str = "anthropic/claude-3.5-sonnet"
    max_tokens: int = Field(default=8192, alias="maxTokens", gt=0)


class OllamaSettings(ProviderSettings):
    base_url: str = Field(default="http://localhost:11434", alias="baseUrl", min_length=1)
    model: str = "llama3"
    max_tokens: int = Field(default=4096, alias="maxTokens", gt=0)


class ToolCallModel(BaseModel):
    """Provider/model pair used for tool calls when the main model cannot make them."""

    provider: str
    model: str


BUILTIN_PROVIDER_IDS = ("anthropic", "openai", "google", "openrouter", "ollama")


class Profile(BaseModel):
    """The configuration profile consumed by the provider factory."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    provider: str = "anthropic"

    anthropic: AnthropicSettings | None = None
    openai: OpenAISettings | None = None
    google: GoogleSettings | None = None
    openrouter: OpenRouterSettings | None = Field(default=None, alias="openRouter")
    ollama: OllamaSettings | None = None

    # Blocks for providers added through ``register_provider``.
    providers: dict[str, ProviderSettings] = Field(default_factory=dict)

    tool_call_model: ToolCallModel | None = Field(default=None, alias="toolCallModel")
    system_prompt: str = Field(default=DEFAULT_SYSTEM_PROMPT, alias="systemPrompt")
    strict_tool_arguments: bool = Field(default=False, alias="strictToolArguments")
    workspace: str = "."

    def provider_settings(self, provider_id: str) -> ProviderSettings | None:
        """Return the settings block for a provider id, or None."""
        key = provider_id.lower()
        if key in BUILTIN_PROVIDER_IDS:
            return getattr(self, key)
        return self.providers.get(key)


# ----------------------------------------------------------------------
# Loading
# ----------------------------------------------------------------------

_ENV_KEYS: dict[str, tuple[str, ...]] = {
    "anthropic": ("ANTHROPIC_API_KEY",),
    "openai": ("OPENAI_API_KEY",),
    "google": ("GOOGLE_API_KEY", "GEMINI_API_KEY"),
    "openrouter": ("OPENROUTER_API_KEY",),
}

_BLOCK_ALIASES: dict[str, tuple[str, ...]] = {
    "openrouter": ("openrouter", "openRouter"),
}


def _has_block(data: dict[str, Any], provider_id: str) -> bool:
    return any(k in data for k in _BLOCK_ALIASES.get(provider_id, (provider_id,)))


def _env_blocks(data: dict[str, Any]) -> dict[str, Any]:
    """Add provider blocks for API keys present in the environment."""
    merged = dict(data)

    for provider_id, env_names in _ENV_KEYS.items():
        if _has_block(merged, provider_id):
            continue
        key = next((os.environ[n] for n in env_names if os.environ.get(n)), None)
        if key:
            merged[provider_id] = {"api_key": key}

    if not _has_block(merged, "ollama") and os.environ.get("OLLAMA_BASE_URL"):
        merged["ollama"] = {"base_url": os.environ["OLLAMA_BASE_URL"]}

    if "provider" not in merged and os.environ.get("TOOCLI_PROVIDER"):
        merged["provider"] = os.environ["TOOCLI_PROVIDER"]

    return merged


def profile_from_dict(data: dict[str, Any], use_env: bool = True) -> Profile:
    """
    Validate a raw profile dict.

    Raises:
        ConfigError: If the data does not describe a valid profile.
    """
    if use_env:
        data = _env_blocks(data)
    try:
        return Profile.model_validate(data)
    except ValidationError as exc:
        raise ConfigError(f"Invalid configuration: {exc}") from exc


def profile_from_env() -> Profile:
    """Build a profile from environment variables only."""
    return profile_from_dict({}, use_env=True)


def load_profile(path: "str | Path | None" = None, use_env: bool = True) -> Profile:
    """
    Load a profile from a JSON file.

    A missing default config file yields an environment-only profile; an
    explicitly requested file must exist.

    Raises:
        ConfigError: If the file cannot be read or does not validate.
    """
    explicit = path is not None
    config_path = Path(path).expanduser() if explicit else DEFAULT_CONFIG_PATH

    if not config_path.exists():
        if explicit:
            raise ConfigError(f"Config file not found: {config_path}")
        return profile_from_dict({}, use_env=use_env)

    try:
        data = json.loads(config_path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as exc:
        raise ConfigError(f"Could not read config file '{config_path}': {exc}") from exc

    if not isinstance(data, dict):
        raise ConfigError(f"Config file '{config_path}' must contain a JSON object.")

    return profile_from_dict(data, use_env=use_env)


# ----------------------------------------------------------------------
# Model capabilities
# ----------------------------------------------------------------------


@dataclass(frozen=True)
class ModelCapabilities:
    supports_tools: bool = True
    supports_images: bool = False
    supports_streaming: bool = True
    max_tokens: int = 4096
    context_window: int = 8192


MODEL_CAPABILITIES: dict[str, ModelCapabilities] = {
    "claude-3-5-sonnet-20241022": ModelCapabilities(True, True, True, 8192, 200000),
    "claude-3-5-haiku-20241022": ModelCapabilities(True, True, True, 8192, 200000),
    "claude-3-opus-20240229": ModelCapabilities(True, True, True, 4096, 200000),
    "gpt-4-turbo": ModelCapabilities(True, True, True, 4096, 128000),
    "gpt-4": ModelCapabilities(True, False, True, 4096, 8192),
    "gpt-3.5-turbo": ModelCapabilities(True, False, True, 4096, 16385),
    "gemini-1.5-pro": ModelCapabilities(True, True, True, 8192, 1000000),
    "gemini-1.5-flash": ModelCapabilities(True, True, True, 8192, 1000000),
    # Pure reasoning models: no tool calling.
    "deepseek-r1": ModelCapabilities(False, False, True, 8192, 64000),
    "deepseek/deepseek-r1": ModelCapabilities(False, False, True, 8192, 64000),
    "o1-preview": ModelCapabilities(False, False, False, 32768, 128000),
    "o1-mini": ModelCapabilities(False, False, False, 65536, 128000),
}


def capabilities_for(model: str) -> ModelCapabilities:
    """Return the known capabilities of a model, permissive for unknown models."""
    return MODEL_CAPABILITIES.get(model, ModelCapabilities(supports_images=True))
