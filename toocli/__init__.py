"""
toocli: a terminal coding assistant over interchangeable LLM vendors.

toocli sends a conversation to one of several LLM vendors (Anthropic,
OpenAI, Google Gemini, OpenRouter, Ollama) through a single provider
interface, streams the reply back and runs the tools the model asks for
against a local workspace.

Quick start
-----------
::

    from toocli import ConversationRunner, ProviderFactory, ToolRegistry, load_profile
    from toocli.tools.builtin import Workspace, builtin_tools

    profile = load_profile()
    provider = ProviderFactory(profile).create()

    registry = ToolRegistry()
    registry.register_many(builtin_tools(Workspace(".")))

    runner = ConversationRunner(provider, executor=registry, tools=registry)
    result = runner.submit("List the Python files in the project.", on_content=print)

Using a provider directly
-------------------------
::

    from toocli import Message, get_provider
    from toocli.config import OpenAISettings

    provider = get_provider("openai", OpenAISettings(api_key="sk-..."))
    for chunk in provider.stream([Message.user("Hello")]):
        if chunk.done:
            print(chunk.response.usage)
        else:
            print(chunk.content, end="")
"""

from toocli.config import Profile, load_profile
from toocli.exceptions import (
    ArgumentValidationError,
    AuthFailure,
    ConfigError,
    InvalidResponse,
    NetworkFailure,
    ProviderError,
    RateLimited,
    ToolArgumentParseFailure,
    ToolExecutionError,
    ToolNotFoundError,
    TooError,
    format_error,
)
from toocli.llm import (
    AIResponse,
    BaseLLMProvider,
    ConversationRunner,
    Message,
    ProviderFactory,
    StreamChunk,
    ToolCall,
    ToolDefinition,
    ToolResult,
    TurnResult,
    Usage,
    get_provider,
)
from toocli.logger import configure_logging, get_logger
from toocli.tools import ToolDef, ToolOutput, ToolParam, ToolRegistry

__version__ = "0.1.0"

__all__ = [
    # Conversation
    "ConversationRunner",
    "TurnResult",
    # Providers
    "BaseLLMProvider",
    "ProviderFactory",
    "get_provider",
    # Message types
    "AIResponse",
    "Message",
    "StreamChunk",
    "ToolCall",
    "ToolDefinition",
    "ToolResult",
    "Usage",
    # Tools
    "ToolDef",
    "ToolOutput",
    "ToolParam",
    "ToolRegistry",
    # Config
    "Profile",
    "load_profile",
    # Logging
    "configure_logging",
    "get_logger",
    # Exceptions
    "TooError",
    "ConfigError",
    "ProviderError",
    "AuthFailure",
    "RateLimited",
    "NetworkFailure",
    "InvalidResponse",
    "ToolArgumentParseFailure",
    "ToolExecutionError",
    "ToolNotFoundError",
    "ArgumentValidationError",
    "format_error",
    # Version
    "__version__",
]
