"""
toocli custom exceptions.

All toocli exceptions inherit from TooError so callers can catch either
the specific exception or the base class.

Provider-facing errors (``AuthFailure``, ``RateLimited``, ``NetworkFailure``,
``InvalidResponse``) share the ``ProviderError`` base; adapters translate
vendor SDK exceptions into these before they reach the conversation runner.
"""


class TooError(Exception):
    """Base exception for all toocli errors."""

    kind = "error"


class ConfigError(TooError):
    """
    Raised when provider configuration is missing or invalid.

    Always raised before any network access is attempted.

    Attributes:
        provider_id: The provider id that could not be resolved, if any.
    """

    kind = "config"

    def __init__(self, message: str, provider_id: str | None = None):
        self.provider_id = provider_id
        super().__init__(message)


class ProviderError(TooError):
    """
    Raised when an LLM provider call fails.

    Attributes:
        provider: Display name of the provider that failed.
    """

    kind = "provider"

    def __init__(self, message: str, provider: str | None = None):
        self.provider = provider
        super().__init__(message)


class AuthFailure(ProviderError):
    """The vendor rejected the credentials."""

    kind = "auth"


class RateLimited(ProviderError):
    """The vendor throttled the request."""

    kind = "rate_limit"


class NetworkFailure(ProviderError):
    """Transport-level failure (connection refused, timeout, vendor 5xx)."""

    kind = "network"


class InvalidResponse(ProviderError):
    """The vendor payload did not match the expected shape."""

    kind = "invalid_response"


class ToolArgumentParseFailure(TooError):
    """
    Raised when accumulated tool-call arguments are not a JSON object.

    Only raised in strict mode; by default the accumulator degrades to an
    empty argument map and logs a warning instead.

    Attributes:
        call_id: Vendor tool call id.
        tool_name: Name of the tool being called.
        raw: The unparseable argument text.
    """

    kind = "tool_arguments"

    def __init__(self, call_id: str, tool_name: str, raw: str):
        self.call_id = call_id
        self.tool_name = tool_name
        self.raw = raw
        snippet = raw[:80] + ("..." if len(raw) > 80 else "")
        super().__init__(
            f"Could not parse arguments for tool '{tool_name}' (call {call_id}): {snippet!r}"
        )


class ToolExecutionError(TooError):
    """
    Raised by a tool handler to report a failure.

    Never propagates out of the conversation runner: it is recorded as a
    tool result with ``is_error=True``.
    """

    kind = "tool"

    def __init__(self, tool_name: str, message: str):
        self.tool_name = tool_name
        super().__init__(message)


class ToolNotFoundError(TooError):
    """Raised when a requested tool is not found in the registry."""

    kind = "tool"

    def __init__(self, tool_name: str):
        self.tool_name = tool_name
        super().__init__(f"Tool '{tool_name}' is not registered.")


class ArgumentValidationError(TooError):
    """
    Raised when tool arguments fail JSON Schema validation.

    Attributes:
        tool_name: Name of the tool whose arguments were rejected.
    """

    kind = "tool"

    def __init__(self, tool_name: str, message: str):
        self.tool_name = tool_name
        super().__init__(message)


def format_error(exc: BaseException) -> str:
    """Render an exception as the single user-visible error line."""
    kind = getattr(exc, "kind", None) or type(exc).__name__
    message = str(exc) or type(exc).__name__
    return f"[{kind}] {message}"
