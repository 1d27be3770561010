"""
Logging configuration: central setup for the CLI.

Called once at startup by main.py. Every module that does
``logger = logging.getLogger(__name__)`` inherits this config.

Levels are resolved in precedence order:
    CLI flag  >  DEVBOX_LOG_LEVEL env var  >  INFO (default)

A bootstrapper is chatty by nature: at the default INFO level each
step is announced with a short ``[i]``/``[!]``/``[x]`` tag. Optional
file output via DEVBOX_LOG_FILE / DEVBOX_LOG_FILE_LEVEL.
"""

from __future__ import annotations

import logging
import sys

import click

# ── Format strings ──────────────────────────────────────────────

_FMT_CONSOLE = "%(tag)s %(message)s"

_FMT_DEBUG = "%(asctime)s %(levelname)-5s %(name)s:%(lineno)d  %(message)s"
_DATEFMT_DEBUG = "%H:%M:%S"

_FMT_FILE = "%(asctime)s %(levelname)-5s %(name)s:%(lineno)d  %(message)s"
_DATEFMT_FILE = "%Y-%m-%d %H:%M:%S"

# level → (tag, colour)
_TAGS: dict[int, tuple[str, str]] = {
    logging.DEBUG: ("[.]", "bright_black"),
    logging.INFO: ("[i]", "blue"),
    logging.WARNING: ("[!]", "yellow"),
    logging.ERROR: ("[x]", "red"),
    logging.CRITICAL: ("[x]", "red"),
}


class TaggedFormatter(logging.Formatter):
    """Console formatter mirroring the classic bootstrap-script output."""

    def __init__(self, color: bool = True):
        super().__init__(_FMT_CONSOLE)
        self.color = color

    def format(self, record: logging.LogRecord) -> str:
        tag, fg = _TAGS.get(record.levelno, ("[?]", "white"))
        record.tag = click.style(tag, fg=fg, bold=True) if self.color else tag
        return super().format(record)


def setup_logging(
    level: str = "INFO",
    log_file: str | None = None,
    log_file_level: str | None = None,
    color: bool | None = None,
) -> None:
    """Configure Python logging for the entire process.

    Args:
        level: Log level name (DEBUG, INFO, WARNING, ERROR, CRITICAL).
        log_file: Optional path to a log file.
        log_file_level: Optional separate level for the log file.
            Defaults to the same as ``level``.
        color: Force coloured tags on or off. Default: on when stderr
            is a terminal.
    """
    numeric_level = _parse_level(level)

    console = logging.StreamHandler(sys.stderr)
    console.setLevel(numeric_level)
    if numeric_level <= logging.DEBUG:
        console.setFormatter(logging.Formatter(_FMT_DEBUG, datefmt=_DATEFMT_DEBUG))
    else:
        if color is None:
            color = sys.stderr.isatty()
        console.setFormatter(TaggedFormatter(color=color))

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(console)

    effective_level = numeric_level

    if log_file:
        file_level = _parse_level(log_file_level) if log_file_level else numeric_level
        effective_level = min(effective_level, file_level)

        fh = logging.FileHandler(log_file, encoding="utf-8")
        fh.setLevel(file_level)
        fh.setFormatter(logging.Formatter(_FMT_FILE, datefmt=_DATEFMT_FILE))
        root.addHandler(fh)

    root.setLevel(effective_level)

    # Don't propagate exceptions from logging itself
    logging.raiseExceptions = False


def _parse_level(level: str | None) -> int:
    """Convert a level name string to its numeric constant."""
    if not level:
        return logging.INFO
    numeric = getattr(logging, level.upper(), None)
    if not isinstance(numeric, int):
        return logging.INFO
    return numeric
