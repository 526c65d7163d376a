"""
Logging configuration — central setup for the CLI.

Called once at startup by main.py.  Every module that does
``logger = logging.getLogger(__name__)`` inherits this config.

Levels are resolved in precedence order:
    CLI flag  >  CONVERGE_LOG_LEVEL env var  >  INFO (default)

Console lines carry a coloured severity tag (``[INFO]``, ``[WARNING]``,
``[ERROR]``; DEBUG shows as ``[VERBOSE]``).  In dry-run mode every
console line is prefixed with ``[dry-run]`` so nobody mistakes a
preview for a change.

Optional file output via CONVERGE_LOG_FILE / CONVERGE_LOG_FILE_LEVEL.
"""

from __future__ import annotations

import logging
import sys

import click

# ── Format strings ──────────────────────────────────────────────

# INFO / DEBUG (verbose) — severity tag + message
_FMT_TAGGED = "%(message)s"

# --debug — full diagnostic with file:line
_FMT_DEBUG = "%(asctime)s %(levelname)-5s %(name)s:%(lineno)d — %(message)s"
_DATEFMT_DEBUG = "%H:%M:%S"

# File output — always full detail
_FMT_FILE = "%(asctime)s %(levelname)-5s %(name)s:%(lineno)d — %(message)s"
_DATEFMT_FILE = "%Y-%m-%d %H:%M:%S"

DRY_RUN_PREFIX = "[dry-run] "

# Third-party loggers that are noisy at INFO/DEBUG
_NOISY_LOGGERS = ("urllib3", "charset_normalizer")

_LEVEL_TAGS: dict[int, tuple[str, str]] = {
    logging.DEBUG: ("VERBOSE", "blue"),
    logging.INFO: ("INFO", "blue"),
    logging.WARNING: ("WARNING", "yellow"),
    logging.ERROR: ("ERROR", "red"),
    logging.CRITICAL: ("ERROR", "red"),
}


class TaggedFormatter(logging.Formatter):
    """Render ``[TAG] message`` with the tag coloured by severity."""

    def __init__(self, fmt: str = _FMT_TAGGED, datefmt: str | None = None,
                 dry_run: bool = False, color: bool = True):
        super().__init__(fmt, datefmt=datefmt)
        self.dry_run = dry_run
        self.color = color

    def format(self, record: logging.LogRecord) -> str:
        message = super().format(record)
        tag, colour = _LEVEL_TAGS.get(record.levelno, (record.levelname, "white"))
        label = f"[{tag}]"
        if self.color:
            label = click.style(label, fg=colour)
        prefix = DRY_RUN_PREFIX if self.dry_run else ""
        return f"{prefix}{label} {message}"


class DryRunFormatter(logging.Formatter):
    """Plain formatter that only adds the dry-run prefix (used with --debug)."""

    def format(self, record: logging.LogRecord) -> str:
        return DRY_RUN_PREFIX + super().format(record)


def setup_logging(
    level: str = "INFO",
    log_file: str | None = None,
    log_file_level: str | None = None,
    quiet_third_party: bool = True,
    dry_run: bool = False,
    diagnostic: bool = False,
) -> None:
    """Configure Python logging for the entire process.

    Args:
        level: Log level name (DEBUG, INFO, WARNING, ERROR, CRITICAL).
        log_file: Optional path to a log file.
        log_file_level: Optional separate level for the log file.
            Defaults to the same as ``level``.
        quiet_third_party: If True, keep noisy third-party loggers at WARNING
            unless we're at DEBUG level.
        dry_run: Prefix every console line with ``[dry-run]``.
        diagnostic: Use the full ``name:lineno`` format instead of tags.
    """
    numeric_level = _parse_level(level)

    # ── Console handler (stderr) ────────────────────────────────
    console = logging.StreamHandler(sys.stderr)
    console.setLevel(numeric_level)
    if diagnostic:
        formatter_cls = DryRunFormatter if dry_run else logging.Formatter
        console.setFormatter(formatter_cls(_FMT_DEBUG, datefmt=_DATEFMT_DEBUG))
    else:
        console.setFormatter(
            TaggedFormatter(dry_run=dry_run, color=sys.stderr.isatty())
        )

    # ── Root logger ─────────────────────────────────────────────
    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(console)

    # Effective root level = minimum of console and file levels
    effective_level = numeric_level

    # ── File handler (optional) ─────────────────────────────────
    if log_file:
        file_level = _parse_level(log_file_level) if log_file_level else numeric_level
        effective_level = min(effective_level, file_level)

        fh = logging.FileHandler(log_file, encoding="utf-8")
        fh.setLevel(file_level)
        fh.setFormatter(logging.Formatter(_FMT_FILE, datefmt=_DATEFMT_FILE))
        root.addHandler(fh)

    root.setLevel(effective_level)

    # ── Third-party noise control ───────────────────────────────
    if quiet_third_party and numeric_level > logging.DEBUG:
        for name in _NOISY_LOGGERS:
            logging.getLogger(name).setLevel(logging.WARNING)

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
