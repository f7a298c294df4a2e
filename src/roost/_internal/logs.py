"""Logging setup for the ``roost`` CLI.

Library modules only ever call ``logging.getLogger("roost.<area>")``.
Handlers are attached here, once, by the process entry point.
"""

import json
import logging
import sys
from typing import Any, TextIO

_TEXT_FORMAT = "%(asctime)s %(levelname)-7s [%(process)d] %(name)s: %(message)s"

_LEVELS = {
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "warning": logging.WARNING,
    "error": logging.ERROR,
    "critical": logging.CRITICAL,
}


class JsonFormatter(logging.Formatter):
    """One JSON object per line, for log shippers."""

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "time": self.formatTime(record),
            "level": record.levelname.lower(),
            "logger": record.name,
            "pid": record.process,
            "message": record.getMessage(),
        }
        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(payload, separators=(",", ":"))


def parse_level(level: str | int) -> int:
    """Map ``"info"``/``"DEBUG"``/``20`` to a logging level."""
    if isinstance(level, int):
        return level
    try:
        return _LEVELS[level.lower()]
    except KeyError:
        msg = f"Unknown log level {level!r}. Use one of: {', '.join(_LEVELS)}"
        raise ValueError(msg) from None


def configure_logging(
    level: str | int = "info",
    fmt: str = "text",
    stream: TextIO | None = None,
) -> logging.Handler:
    """Attach a single stream handler to the ``roost`` logger.

    Calling it again replaces the handler installed by the previous call.
    """
    if fmt not in ("text", "json"):
        msg = f"Unknown log format {fmt!r}. Use 'text' or 'json'."
        raise ValueError(msg)

    root = logging.getLogger("roost")
    for existing in list(root.handlers):
        if getattr(existing, "_roost_handler", False):
            root.removeHandler(existing)

    handler = logging.StreamHandler(stream or sys.stderr)
    handler.setFormatter(JsonFormatter() if fmt == "json" else logging.Formatter(_TEXT_FORMAT))
    handler._roost_handler = True  # type: ignore[attr-defined]

    root.addHandler(handler)
    root.setLevel(parse_level(level))
    return handler
