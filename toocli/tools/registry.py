"""
Tool registry: register, look up and execute tools.

The ToolRegistry is the runtime container for every tool the model may
call. It serves both sides of the conversation runner's tool interfaces:

- As a catalog, ``definitions()`` lists the tools advertised to the model.
- As an executor, ``execute(name, arguments)`` runs one call and reports
  ``ToolOutput(output, is_error)``. It never raises for tool-level
  failures: unknown tools, schema violations and handler exceptions all
  come back as error outputs the model can read.

Tools from different sources can be registered under a namespace, which
prefixes their name (``"<namespace>__<name>"``) so names stay unique.

Usage::

    registry = ToolRegistry()
    registry.register(ToolDef(
        name="read_file",
        description="Read a file",
        params=[ToolParam("filePath", "string", "Path to file")],
        handler=read_file_fn,
    ))

    result = registry.execute("read_file", {"filePath": "a.txt"})
"""

from typing import Any

from jsonschema import Draft202012Validator

from toocli.exceptions import ArgumentValidationError, ToolExecutionError, ToolNotFoundError
from toocli.llm.types import ToolDefinition
from toocli.logger import get_logger
from toocli.tools.base import ToolDef, ToolOutput

NAMESPACE_SEPARATOR = "__"


class ToolRegistry:
    """Container for tool definitions with schema-checked execution."""

    def __init__(self):
        self._tools: dict[str, ToolDef] = {}
        self._logger = get_logger()

    # ------------------------------------------------------------------
    # Registration
    # ------------------------------------------------------------------

    def register(self, tool: ToolDef, namespace: str | None = None) -> str:
        """
        Register a single tool.

        Returns:
            The name the tool is exposed under.

        Raises:
            ValueError: If the exposed name is already taken.
        """
        name = f"{namespace}{NAMESPACE_SEPARATOR}{tool.name}" if namespace else tool.name
        if name in self._tools:
            raise ValueError(
                f"Tool '{name}' is already registered. Register it under a namespace."
            )
        self._tools[name] = tool
        self._logger.debug(f"Registered tool '{name}'.")
        return name

    def register_many(self, tools: list[ToolDef], namespace: str | None = None) -> None:
        """Register a list of tools."""
        for tool in tools:
            self.register(tool, namespace=namespace)

    def unregister(self, name: str) -> None:
        """Remove a tool from the registry."""
        self._tools.pop(name, None)

    # ------------------------------------------------------------------
    # Lookup
    # ------------------------------------------------------------------

    def get(self, name: str) -> ToolDef:
        """
        Retrieve a tool definition by exposed name.

        Raises:
            ToolNotFoundError: If no tool with the given name is registered.
        """
        tool = self._tools.get(name)
        if tool is None:
            raise ToolNotFoundError(name)
        return tool

    def names(self) -> list[str]:
        """Return a sorted list of all registered tool names."""
        return sorted(self._tools.keys())

    def definitions(self) -> list[ToolDefinition]:
        """Build the tool catalog handed to providers, in registration order."""
        return [tool.to_definition(name) for name, tool in self._tools.items()]

    def __contains__(self, name: str) -> bool:
        return name in self._tools

    def __len__(self) -> int:
        return len(self._tools)

    # ------------------------------------------------------------------
    # Execution
    # ------------------------------------------------------------------

    def execute(self, name: str, arguments: dict[str, Any]) -> ToolOutput:
        """
        Execute a registered tool by name.

        Arguments are validated against the tool's parameter schema before
        the handler runs.

        Returns:
            ``ToolOutput`` with the handler's result as a string, or an error
            message with ``is_error=True``.
        """
        log_args = {
            k: (f"[{len(v)} chars]" if isinstance(v, str) and len(v) > 100 else v)
            for k, v in arguments.items()
        }
        self._logger.tool_call(name, log_args)

        try:
            tool = self.get(name)
            self._validate(name, tool, arguments)
            result = tool.handler(**arguments)
        except (ToolNotFoundError, ArgumentValidationError, ToolExecutionError) as exc:
            return self._failure(name, str(exc))
        except Exception as exc:
            return self._failure(
                name, f"Tool '{name}' raised an error: {type(exc).__name__}: {exc}"
            )

        result_str = result if isinstance(result, str) else str(result)
        self._logger.tool_result(name, result_str, success=True)
        return ToolOutput(output=result_str)

    def _validate(self, name: str, tool: ToolDef, arguments: dict[str, Any]) -> None:
        validator = Draft202012Validator(tool.parameters_schema())
        errors = sorted(validator.iter_errors(arguments), key=lambda e: [str(p) for p in e.path])
        if errors:
            details = "; ".join(_describe(e) for e in errors)
            raise ArgumentValidationError(
                name, f"Invalid arguments for tool '{name}': {details}"
            )

    def _failure(self, name: str, message: str) -> ToolOutput:
        self._logger.tool_result(name, message, success=False)
        return ToolOutput(output=message, is_error=True)


def _describe(error) -> str:
    location = ".".join(str(p) for p in error.path)
    return f"{location}: {error.message}" if location else error.message
