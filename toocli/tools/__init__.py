"""
toocli tools module.

Provides the tool definition types, the registry and the built-in tools.
"""

from toocli.tools.base import ToolDef, ToolOutput, ToolParam
from toocli.tools.registry import ToolRegistry

__all__ = ["ToolDef", "ToolOutput", "ToolParam", "ToolRegistry"]
