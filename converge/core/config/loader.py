"""
Configuration loader — reads ``*.conf`` files into install directives.

Each non-blank, non-comment line must look like:

    category=name::method::payload::target_path

The payload is matched greedily, so the *last* ``::`` always starts the
target path and a payload such as ``curl -fsSL … | sh`` (or one that
itself contains ``::``) survives intact.

A bad line is a warning, never an error: it is logged, recorded on the
ParseResult and skipped, and parsing carries on with the next line.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from pathlib import Path

from converge.core.config.settings import ConfigError
from converge.core.models.directive import InstallDirective

logger = logging.getLogger(__name__)

CONFIG_SUFFIX = ".conf"
PERSONAL_PREFIX = "personal_"

_LINE_RE = re.compile(r"^([^=]+)=([^:]+)::([^:]+)::(.+)::(.+)$")

__all__ = [
    "ConfigError",
    "ParseResult",
    "ParseWarning",
    "discover_config_files",
    "load_directives",
    "parse_line",
    "parse_text",
]


@dataclass(frozen=True)
class ParseWarning:
    """A configuration line that could not be parsed."""

    source: str
    line_number: int
    text: str

    def __str__(self) -> str:
        where = f"{self.source}:{self.line_number}" if self.source else f"line {self.line_number}"
        return f"Invalid config line format ({where}): {self.text}"


@dataclass
class ParseResult:
    """Directives in source order plus every skipped line."""

    directives: list[InstallDirective] = field(default_factory=list)
    warnings: list[ParseWarning] = field(default_factory=list)
    files: list[Path] = field(default_factory=list)

    def extend(self, other: ParseResult) -> None:
        self.directives.extend(other.directives)
        self.warnings.extend(other.warnings)
        self.files.extend(other.files)


def _is_ignorable(line: str) -> bool:
    stripped = line.strip()
    return not stripped or stripped.startswith("#")


def parse_line(line: str, source: str = "", line_number: int = 0) -> InstallDirective | None:
    """Parse one configuration line.

    Returns:
        The directive, or None when the line does not match the grammar.
    """
    match = _LINE_RE.match(line.rstrip("\r\n"))
    if match is None:
        return None

    category, name, method, payload, target_path = match.groups()
    return InstallDirective(
        category=category,
        name=name,
        method=method,
        payload=payload,
        target_path=target_path,
        source=source,
        line_number=line_number,
    )


def parse_text(text: str, source: str = "") -> ParseResult:
    """Parse configuration text, warning about (and skipping) bad lines."""
    result = ParseResult()

    for number, line in enumerate(text.splitlines(), start=1):
        if _is_ignorable(line):
            continue

        logger.debug("Processing line: '%s'", line)
        directive = parse_line(line, source=source, line_number=number)
        if directive is None:
            warning = ParseWarning(source=source, line_number=number, text=line)
            logger.warning("%s", warning)
            result.warnings.append(warning)
            continue

        logger.debug(
            "Found app: %s (type: %s, method: %s)",
            directive.name, directive.category, directive.method,
        )
        result.directives.append(directive)

    return result


def discover_config_files(conf_dir: Path, include_personal: bool = False) -> list[Path]:
    """List ``*.conf`` files under ``conf_dir`` in sorted path order.

    Files named ``personal_*`` are only returned when ``include_personal``
    is set.

    Raises:
        ConfigError: If ``conf_dir`` is not a directory.
    """
    if not conf_dir.is_dir():
        raise ConfigError(f"Configuration directory not found: {conf_dir}")

    files = []
    for path in sorted(conf_dir.rglob(f"*{CONFIG_SUFFIX}"), key=lambda p: str(p)):
        if not path.is_file():
            continue
        if path.name.startswith(PERSONAL_PREFIX) and not include_personal:
            logger.debug("Skipping personal config file: %s", path)
            continue
        files.append(path)

    return files


def load_directives(conf_dir: Path, include_personal: bool = False) -> ParseResult:
    """Discover and parse every configuration file in order.

    Raises:
        ConfigError: If the directory is missing or a file cannot be read.
    """
    result = ParseResult()
    files = discover_config_files(conf_dir, include_personal=include_personal)

    if not files:
        logger.warning("No %s files found in %s", CONFIG_SUFFIX, conf_dir)

    for path in files:
        logger.debug("Parsing config file: %s", path)
        try:
            text = path.read_text(encoding="utf-8")
        except OSError as e:
            raise ConfigError(f"Cannot read {path}: {e}") from e

        parsed = parse_text(text, source=str(path))
        parsed.files.append(path)
        result.extend(parsed)

    logger.debug(
        "Loaded %d directives from %d files (%d warnings)",
        len(result.directives), len(result.files), len(result.warnings),
    )
    return result
