"""
Tool definition types.

A ``ToolDef`` describes everything toocli needs to know about a local tool:
its name, the description shown to the model, its parameter schema, and the
Python callable that implements it. The registry converts it to the
vendor-neutral ``ToolDefinition`` handed to providers.
"""

from dataclasses import dataclass
from typing import Any, Callable

from toocli.llm.types import ToolDefinition


@dataclass
class ToolParam:
    """
    Definition of a single tool parameter.

    Attributes:
        name: Parameter name (must match the handler's kwarg name).
        type: JSON Schema type string ("string", "integer", "boolean", etc.).
        description: Human-readable description shown to the model.
        required: Whether the parameter must be supplied.
        default: Default value when ``required=False``.
        enum: Optional list of allowed values.
    """

    name: str
    type: str
    description: str
    required: bool = True
    default: Any = None
    enum: list[Any] | None = None


@dataclass
class ToolDef:
    """
    Complete definition of a local tool.

    Attributes:
        name: Tool name, unique within a registry namespace.
        description: Description shown to the model to guide tool selection.
        params: Ordered list of parameter definitions.
        handler: The callable that implements the tool. It receives its
                 parameters as keyword arguments.
    """

    name: str
    description: str
    params: list[ToolParam]
    handler: Callable

    def to_definition(self, name: str | None = None) -> ToolDefinition:
        """Build the provider-facing definition, optionally under another name."""
        return ToolDefinition(
            name=name or self.name,
            description=self.description,
            input_schema=self.parameters_schema(),
        )

    def parameters_schema(self) -> dict:
        """Produce the JSON Schema object describing this tool's parameters."""
        properties: dict[str, dict] = {}
        required: list[str] = []

        for param in self.params:
            prop: dict[str, Any] = {
                "type": param.type,
                "description": param.description,
            }
            if param.enum is not None:
                prop["enum"] = param.enum
            properties[param.name] = prop

            if param.required:
                required.append(param.name)

        schema: dict[str, Any] = {
            "type": "object",
            "properties": properties,
        }
        if required:
            schema["required"] = required
        return schema


@dataclass
class ToolOutput:
    """What a tool executor reports back for one call."""

    output: str
    is_error: bool = False
