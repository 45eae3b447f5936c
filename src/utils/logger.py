"""Structured logging module with JSON output support."""

import json
import sys
import traceback
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from src.utils.trace_context import get_current_trace

LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


class StructuredLogger:
    """Logger that outputs one JSON object per line."""

    def __init__(self, component: str, file_path: str | None = None):
        """
        Initialize the structured logger.

        Args:
            component: Name of the component using this logger
            file_path: Optional path to also append logs to
        """
        self.component = component
        self.file_path = file_path
        if file_path:
            Path(file_path).parent.mkdir(parents=True, exist_ok=True)

    def _format_log_entry(
        self,
        level: str,
        message: str,
        context: dict[str, Any] | None = None,
        exception: dict[str, Any] | None = None,
    ) -> str:
        """
        Format a log entry as JSON.

        The trace id of the active refresh cycle is added to the context
        unless the caller already supplied one.
        """
        entry: dict[str, Any] = {
            "timestamp": datetime.now(timezone.utc).isoformat().replace("+00:00", "Z"),
            "level": level,
            "component": self.component,
            "message": message,
        }

        trace_id = get_current_trace()
        if trace_id and not (context and "trace_id" in context):
            context = {**(context or {}), "trace_id": trace_id}

        if context:
            entry["context"] = context

        if exception:
            entry["exception"] = exception

        return json.dumps(entry, default=str)

    def _write_log(self, log_entry: str) -> None:
        try:
            print(log_entry, file=sys.stdout)
            if self.file_path:
                with open(self.file_path, "a") as f:
                    f.write(log_entry + "\n")
        except OSError as e:
            print(f"Failed to write log: {e}", file=sys.stderr)

    @staticmethod
    def _exception_details(exception: BaseException | None) -> dict[str, Any] | None:
        if exception is None:
            return None
        return {
            "type": type(exception).__name__,
            "message": str(exception),
            "stack_trace": "".join(
                traceback.format_exception(type(exception), exception, exception.__traceback__)
            ),
        }

    def _emit(
        self,
        level: str,
        message: str,
        context: dict[str, Any] | None,
        exception: BaseException | None = None,
    ) -> None:
        self._write_log(
            self._format_log_entry(level, message, context, self._exception_details(exception))
        )

    def debug(self, message: str, context: dict[str, Any] | None = None) -> None:
        self._emit("DEBUG", message, context)

    def info(self, message: str, context: dict[str, Any] | None = None) -> None:
        self._emit("INFO", message, context)

    def warning(
        self,
        message: str,
        context: dict[str, Any] | None = None,
        exception: BaseException | None = None,
    ) -> None:
        """Log a warning, optionally with the exception behind a degradation."""
        self._emit("WARNING", message, context, exception)

    def error(
        self,
        message: str,
        context: dict[str, Any] | None = None,
        exception: BaseException | None = None,
    ) -> None:
        self._emit("ERROR", message, context, exception)

    def critical(
        self,
        message: str,
        context: dict[str, Any] | None = None,
        exception: BaseException | None = None,
    ) -> None:
        self._emit("CRITICAL", message, context, exception)

    def log(
        self,
        level: str,
        message: str,
        context: dict[str, Any] | None = None,
        exception: BaseException | None = None,
    ) -> None:
        """Log at a level given by name. Unknown levels are logged as INFO."""
        level = level.upper()
        self._emit(level if level in LEVELS else "INFO", message, context, exception)
