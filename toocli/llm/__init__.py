"""
toocli LLM module.

Provides the provider abstraction, the unified message and stream types,
the tool-call accumulator, the provider factory and the conversation
runner.
"""

from toocli.llm.accumulator import ToolCallAccumulator
from toocli.llm.base import BaseLLMProvider
from toocli.llm.factory import ProviderFactory
from toocli.llm.providers import get_provider, register_provider
from toocli.llm.runner import ConversationRunner, LoopState, TranscriptEntry, TurnResult
from toocli.llm.types import (
    AIResponse,
    ChunkType,
    Message,
    StreamChunk,
    ToolCall,
    ToolDefinition,
    ToolResult,
    Usage,
)

__all__ = [
    "AIResponse",
    "BaseLLMProvider",
    "ChunkType",
    "ConversationRunner",
    "LoopState",
    "Message",
    "ProviderFactory",
    "StreamChunk",
    "ToolCall",
    "ToolCallAccumulator",
    "ToolDefinition",
    "ToolResult",
    "TranscriptEntry",
    "TurnResult",
    "Usage",
    "get_provider",
    "register_provider",
]
