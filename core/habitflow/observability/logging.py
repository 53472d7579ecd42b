"""
Structured logging with automatic flow context.

Engine modules log through plain ``logging.getLogger(__name__)`` loggers.
The host (editor session, CLI) sets the flow context once, e.g. the name of
the routine being edited, and every record emitted afterwards carries it:

    set_flow_context(flow_name="Morning routine")
    apply_command(graph, Delete(node_id="habit-2"))
        ↓
    {"level": "info", "message": "Applied delete", "flow_name": "Morning routine",
     "event": "command_applied", "command": "delete", ...}
"""

import json
import logging
import os
import re
from contextvars import ContextVar
from datetime import UTC, datetime
from typing import Any

# Fields describing the routine in use; set by the host, read by the formatters
flow_context: ContextVar[dict[str, Any] | None] = ContextVar("flow_context", default=None)

# Terminal color sequences, e.g. "\x1b[32m"
ANSI_ESCAPE_PATTERN = re.compile(r"\x1b\[[0-9;]*m|\033\[[0-9;]*m")

# ``extra=`` keys the engine attaches to its records
EXTRA_FIELDS = ("event", "node_id", "edge_id", "command")


def strip_ansi_codes(text: str) -> str:
    return ANSI_ESCAPE_PATTERN.sub("", text)


class StructuredFormatter(logging.Formatter):
    """
    One JSON object per record.

    Keys: timestamp, level, logger, message, then whatever the flow context
    holds, then any EXTRA_FIELDS present on the record. Color codes are
    stripped from every string.
    """

    def format(self, record: logging.LogRecord) -> str:
        context = flow_context.get() or {}

        log_entry = {
            "timestamp": datetime.now(UTC).isoformat(),
            "level": record.levelname.lower(),
            "logger": record.name,
            "message": strip_ansi_codes(record.getMessage()),
        }
        log_entry.update(context)

        for name in EXTRA_FIELDS:
            value = getattr(record, name, None)
            if value is not None:
                log_entry[name] = strip_ansi_codes(value) if isinstance(value, str) else value

        if record.exc_info:
            log_entry["exception"] = strip_ansi_codes(self.formatException(record.exc_info))

        return json.dumps(log_entry, default=str)


class HumanReadableFormatter(logging.Formatter):
    """``[LEVEL] [flow:<name>] message [event]``, level colored for a terminal."""

    COLORS = {
        "DEBUG": "\033[36m",
        "INFO": "\033[32m",
        "WARNING": "\033[33m",
        "ERROR": "\033[31m",
        "CRITICAL": "\033[35m",
    }
    RESET = "\033[0m"

    def format(self, record: logging.LogRecord) -> str:
        flow_name = (flow_context.get() or {}).get("flow_name", "")
        prefix = f"[flow:{flow_name}] " if flow_name else ""

        color = self.COLORS.get(record.levelname, "")
        event = getattr(record, "event", None)
        suffix = f" [{event}]" if event is not None else ""

        line = f"{color}[{record.levelname:<8}]{self.RESET} {prefix}{record.getMessage()}{suffix}"
        if record.exc_info:
            line = f"{line}\n{self.formatException(record.exc_info)}"
        return line


def configure_logging(
    level: str = "INFO",
    format: str = "auto",  # "json", "human", or "auto"
) -> None:
    """
    Install a single stream handler on the root logger.

    Replaces any handlers already there, so calling it again switches format
    rather than duplicating output. The CLI calls it at startup; an editor
    host calls it when its session begins.

    Args:
        level: Root log level name, case-insensitive
        format: "json" for StructuredFormatter, "human" for
            HumanReadableFormatter. "auto" picks json when LOG_FORMAT=json
            or ENV=production and human otherwise.
    """
    if format == "auto":
        log_format_env = os.getenv("LOG_FORMAT", "").lower()
        env = os.getenv("ENV", "development").lower()
        format = "json" if log_format_env == "json" or env == "production" else "human"

    formatter = StructuredFormatter() if format == "json" else HumanReadableFormatter()

    handler = logging.StreamHandler()
    handler.setFormatter(formatter)

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.addHandler(handler)
    root_logger.setLevel(level.upper())


def set_flow_context(**kwargs: Any) -> None:
    """Merge ``kwargs`` (flow_name, session_id, ...) into the flow context."""
    current = flow_context.get() or {}
    flow_context.set({**current, **kwargs})


def get_flow_context() -> dict:
    """Copy of the flow context; {} when nothing is set."""
    context = flow_context.get() or {}
    return context.copy()


def clear_flow_context() -> None:
    flow_context.set(None)
