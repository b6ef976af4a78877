"""Logging for Pantry Chef.

Everything goes to stderr so the CLI's rendered recipes on stdout stay clean.
- LOG_LEVEL: DEBUG, INFO, WARNING, ERROR (default: INFO)
- LOG_TYPE: text, json (default: text)

Context passed with ``extra=`` (see CONTEXT_FIELDS) is kept by both formats:
generation requests tag their lines with ``request_id`` and capability
failures with ``capability``.
"""

import json
import logging
import os
import sys
from typing import Any

CONTEXT_FIELDS = ("request_id", "capability", "source")

QUIET_LIBRARIES = ("google.genai", "google_genai", "aiohttp", "httpx")


def record_context(record: logging.LogRecord) -> dict[str, Any]:
    """Context fields present on the record, in CONTEXT_FIELDS order."""
    return {field: getattr(record, field) for field in CONTEXT_FIELDS if hasattr(record, field)}


class JSONFormatter(logging.Formatter):
    """One JSON object per line, context fields at the top level."""

    def format(self, record: logging.LogRecord) -> str:
        entry: dict[str, Any] = {
            "timestamp": self.formatTime(record, "%Y-%m-%dT%H:%M:%S"),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            **record_context(record),
        }
        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(entry, default=str)


class RichTextFormatter(logging.Formatter):
    """Single-line text with a level icon and a trailing ``[key=value]`` context block.

    Args:
        use_color: Wrap lines in ANSI colors. get_logger enables it only when
            stderr is a terminal.
    """

    COLORS = {
        "DEBUG": "\033[36m",
        "INFO": "\033[32m",
        "WARNING": "\033[33m",
        "ERROR": "\033[31m",
    }
    RESET = "\033[0m"

    ICONS = {
        "DEBUG": "🔍",
        "INFO": "ℹ️",
        "WARNING": "⚠️",
        "ERROR": "❌",
    }

    def __init__(self, use_color: bool = True) -> None:
        super().__init__()
        self.use_color = use_color

    def format(self, record: logging.LogRecord) -> str:
        level = record.levelname
        line = (
            f"{self.ICONS.get(level, '')} {self.formatTime(record, '%Y-%m-%d %H:%M:%S')} "
            f"{level:<8} {record.name:<12} {record.getMessage()}"
        )

        context = record_context(record)
        if context:
            line += " [" + " ".join(f"{key}={value}" for key, value in context.items()) + "]"
        if record.exc_info:
            line += f"\n{self.formatException(record.exc_info)}"

        if not self.use_color or level not in self.COLORS:
            return line
        return f"{self.COLORS[level]}{line}{self.RESET}"


def get_logger(name: str) -> logging.Logger:
    """Return the named logger, attaching a stderr handler on first use."""
    instance = logging.getLogger(name)
    if instance.handlers:
        return instance

    level = getattr(logging, os.getenv("LOG_LEVEL", "INFO").upper(), logging.INFO)
    instance.setLevel(level)

    handler = logging.StreamHandler(sys.stderr)
    handler.setLevel(level)
    if os.getenv("LOG_TYPE", "text").lower() == "json":
        handler.setFormatter(JSONFormatter())
    else:
        handler.setFormatter(RichTextFormatter(use_color=sys.stderr.isatty()))
    instance.addHandler(handler)

    return instance


logger = get_logger("pantry_chef")

for library in QUIET_LIBRARIES:
    logging.getLogger(library).setLevel(logging.WARNING)
