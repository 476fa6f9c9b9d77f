"""OpenRouter LLM provider (OpenAI-compatible API)."""

from typing import Any

from toocli.llm.providers.openai_provider import OpenAIProvider


class OpenRouterProvider(OpenAIProvider):
    """
    OpenRouter provider.

    Speaks the OpenAI chat-completions wire format, including incremental
    tool-call deltas, so streaming and accumulation are inherited. Only the
    endpoint and attribution headers differ.
    """

    provider_name = "OpenRouter"
    default_base_url = "https://openrouter.ai/api/v1"

    def _client_kwargs(self) -> dict[str, Any]:
        return {
            "default_headers": {
                "HTTP-Referer": "https://github.com/toocli/toocli",
                "X-Title": "toocli",
            }
        }
