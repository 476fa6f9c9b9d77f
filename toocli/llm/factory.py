"""
Provider factory.

Builds one provider adapter from a configuration profile. The profile is
passed in explicitly; there is no global config manager. All checks happen
before construction, and construction itself performs no network access.
"""

from toocli.config import Profile, ProviderSettings
from toocli.exceptions import ConfigError
from toocli.llm.base import BaseLLMProvider
from toocli.llm.providers import (
    get_provider,
    normalize_provider_id,
    resolve_provider_class,
    supported_providers,
)
from toocli.logger import get_logger


class ProviderFactory:
    """Creates provider adapters for the providers configured in a profile."""

    def __init__(self, profile: Profile):
        self.profile = profile
        self._logger = get_logger()

    def create(self, provider_id: str | None = None) -> BaseLLMProvider:
        """
        Build the adapter for ``provider_id`` or the profile's default provider.

        Raises:
            ConfigError: The id is unknown or has no configuration block.
        """
        selected = normalize_provider_id(provider_id or self.profile.provider)
        settings = self._settings_for(selected)
        return self._build(selected, settings)

    def create_tool_call_provider(self) -> BaseLLMProvider | None:
        """
        Build the adapter named by the profile's ``tool_call_model``, if any.

        Used when the main model is a pure reasoning model that cannot call
        tools.

        Raises:
            ConfigError: The tool-call provider is not configured.
        """
        override = self.profile.tool_call_model
        if override is None:
            return None
        selected = normalize_provider_id(override.provider)
        settings = self._settings_for(selected).model_copy(update={"model": override.model})
        return self._build(selected, settings)

    def is_configured(self, provider_id: str) -> bool:
        """True when the profile holds a usable block for ``provider_id``."""
        settings = self.profile.provider_settings(normalize_provider_id(provider_id))
        if settings is None:
            return False
        return bool(settings.api_key or settings.base_url)

    @staticmethod
    def supported_providers() -> list[str]:
        return supported_providers()

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _settings_for(self, provider_id: str) -> ProviderSettings:
        # Unknown ids fail here too, before any settings lookup.
        resolve_provider_class(provider_id)

        settings = self.profile.provider_settings(provider_id)
        if settings is None or not (settings.api_key or settings.base_url):
            raise ConfigError(
                f"Provider '{provider_id}' is not configured. Add a '{provider_id}' "
                "block to the config file or set its API key in the environment.",
                provider_id=provider_id,
            )
        return settings

    def _build(self, provider_id: str, settings: ProviderSettings) -> BaseLLMProvider:
        provider = get_provider(
            provider_id,
            settings,
            strict_tool_arguments=self.profile.strict_tool_arguments,
        )
        self._logger.debug(
            f"Created provider '{provider.get_provider_name()}' model={provider.get_model()}"
        )
        return provider
