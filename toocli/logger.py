"""
Centralized logging for toocli.

Provides a structured logger with toocli-specific methods for provider
requests, stream completion, tool calls and conversation turns. Configure
once, use everywhere.
"""

import json
import logging
import os
import sys
from typing import Any


_DEFAULT_LEVEL = os.getenv("TOOCLI_LOG_LEVEL", "INFO").upper()


class TooLogger:
    """
    Structured logger for toocli events.

    Wraps Python's standard logging with convenience methods for the
    events the engine tracks (vendor requests, streamed responses, tool
    execution, turn lifecycle).
    """

    def __init__(self, name: str = "toocli"):
        self._logger = logging.getLogger(name)

    def debug(self, msg: str, **kwargs) -> None:
        self._logger.debug(msg, **kwargs)

    def info(self, msg: str, **kwargs) -> None:
        self._logger.info(msg, **kwargs)

    def warning(self, msg: str, **kwargs) -> None:
        self._logger.warning(msg, **kwargs)

    def error(self, msg: str, **kwargs) -> None:
        self._logger.error(msg, **kwargs)

    def provider_request(
        self, provider: str, model: str, *, messages: int, tools: int, stream: bool
    ) -> None:
        """Log an outgoing vendor request."""
        mode = "STREAM" if stream else "CHAT"
        self._logger.debug(
            f"PROVIDER [{mode}] provider={provider} model={model} "
            f"messages={messages} tools={tools}"
        )

    def stream_finished(
        self, provider: str, *, content_chars: int, tool_calls: int, usage: Any = None
    ) -> None:
        """Log the end of a vendor stream."""
        msg = (
            f"PROVIDER [DONE] provider={provider} chars={content_chars} "
            f"tool_calls={tool_calls}"
        )
        if usage is not None:
            msg += f" tokens={usage.total_tokens}"
        self._logger.debug(msg)

    def tool_call(self, tool_name: str, arguments: dict[str, Any]) -> None:
        """Log an incoming tool call before execution."""
        if self._logger.isEnabledFor(logging.DEBUG):
            try:
                args_str = json.dumps(arguments)
            except (TypeError, ValueError):
                args_str = str(arguments)
            self._logger.debug(f"TOOL_CALL  tool={tool_name} args={args_str}")

    def tool_result(self, tool_name: str, result: str, *, success: bool) -> None:
        """Log the outcome of a tool execution."""
        status = "OK" if success else "ERROR"
        truncated = result[:200] + "..." if len(result) > 200 else result
        self._logger.debug(f"TOOL_RESULT [{status}] tool={tool_name} result={truncated!r}")

    def turn_event(self, event: str, detail: str = "") -> None:
        """Log a high-level conversation lifecycle event."""
        msg = f"TURN [{event}]"
        if detail:
            msg += f" {detail}"
        self._logger.info(msg)


_logger: TooLogger | None = None


def get_logger() -> TooLogger:
    """Return the shared toocli logger, creating it on first call."""
    global _logger
    if _logger is None:
        _logger = TooLogger()
    return _logger


def configure_logging(
    level: str | None = None,
    log_file: str | None = None,
    fmt: str = "[%(levelname)s] [toocli] %(message)s",
) -> None:
    """
    Configure the toocli logger.

    Call this once at application startup.

    Args:
        level: Log level string ("DEBUG", "INFO", "WARNING", "ERROR").
               Defaults to the TOOCLI_LOG_LEVEL env var, then "INFO".
        log_file: Optional path to also write logs to a file.
        fmt: Log format string for the console handler.
    """
    effective_level = (level or _DEFAULT_LEVEL).upper()

    logger = logging.getLogger("toocli")
    logger.setLevel(effective_level)
    logger.handlers.clear()
    logger.propagate = False

    # stderr keeps log lines out of the streamed answer on stdout
    console = logging.StreamHandler(sys.stderr)
    console.setFormatter(logging.Formatter(fmt))
    logger.addHandler(console)

    if log_file:
        fh = logging.FileHandler(log_file, encoding="utf-8")
        fh.setFormatter(
            logging.Formatter("%(asctime)s | %(name)s | %(levelname)s | %(message)s")
        )
        logger.addHandler(fh)
