"""Structured run logging utilities.

Responsibilities:
- Emit concise, deterministic export-progress logs through `loguru`.
- Keep log lines free of credentials and payload contents.
"""

from __future__ import annotations

import sys
from typing import TextIO

from loguru import logger as _loguru_logger


def _sanitize_context_value(value: object) -> str:
    """Convert context values into stable, shell-safe tokens."""

    raw = str(value).strip()
    if not raw:
        return "none"
    return "".join(
        character if character.isalnum() or character in {"-", "_", ".", ":", "/"} else "_"
        for character in raw
    )


def _format_context(context: dict[str, object]) -> str:
    """Serialize context key/value pairs in deterministic key order."""

    if not context:
        return ""
    tokens = [
        f"{key}={_sanitize_context_value(context[key])}"
        for key in sorted(context.keys())
    ]
    return " " + " ".join(tokens)


class RunLogger:
    """Emit deterministic log lines for CLI-observable export activity."""

    def __init__(self, sink: TextIO | None = None, level: str = "INFO") -> None:
        """Route `loguru` output to `sink` (stderr by default) with plain formatting."""

        self._sink = sink or sys.stderr
        _loguru_logger.remove()
        _loguru_logger.add(self._sink, format="{message}", level=level, colorize=False)

    def _emit(self, level: str, event: str, stage: str, **context: object) -> None:
        """Emit one structured runtime log line."""

        line = f"[offshape] level={level} stage={stage} event={event}{_format_context(context)}"
        _loguru_logger.log(level, line)

    def log_clean(self, directory: object, removed: int) -> None:
        """Emit a directory-cleaning event."""

        self._emit("INFO", "clean", "prepare", path=directory, removed=removed)

    def log_export(self, output_filename: str, format_name: str) -> None:
        """Emit one event per exported part and format."""

        self._emit("INFO", "export", "submit", file=output_filename, format=format_name)

    def log_write(self, path: object) -> None:
        """Emit an output-file write event."""

        self._emit("INFO", "write", "write", path=path)

    def log_poll(self, iteration: int, active: int, done: int, failed: int) -> None:
        """Emit a poll-pass summary at debug level."""

        self._emit(
            "DEBUG",
            "poll",
            "poll",
            active=active,
            done=done,
            failed=failed,
            iteration=iteration,
        )

    def log_translation_failure(self, output_filename: str, reason: str) -> None:
        """Emit a per-job translation failure event."""

        self._emit("ERROR", "failure", "translate", file=output_filename, reason=reason)
