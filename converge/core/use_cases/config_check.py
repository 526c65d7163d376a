"""
Config check use case — validate the configuration directory and report issues.
"""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass, field
from pathlib import Path

from converge.core.config.loader import ConfigError, load_directives
from converge.core.engine.routes import is_manual, lookup_route
from converge.core.models.directive import InstallDirective


@dataclass
class ConfigCheckResult:
    """Result of configuration validation."""

    valid: bool = False
    conf_dir: Path | None = None
    files: list[str] = field(default_factory=list)
    directives: list[InstallDirective] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "valid": self.valid,
            "conf_dir": str(self.conf_dir) if self.conf_dir else None,
            "files": self.files,
            "directive_count": len(self.directives),
            "errors": self.errors,
            "warnings": self.warnings,
        }


def check_config(conf_dir: Path, include_personal: bool = False) -> ConfigCheckResult:
    """Parse every configuration file and report anything a run would skip.

    Args:
        conf_dir: Configuration directory.
        include_personal: Also check ``personal_*`` files.

    Returns:
        ConfigCheckResult with validation status and any issues.
    """
    result = ConfigCheckResult(conf_dir=conf_dir)

    try:
        parsed = load_directives(conf_dir, include_personal=include_personal)
    except ConfigError as e:
        result.errors.append(str(e))
        return result

    result.files = [str(p) for p in parsed.files]
    result.directives = parsed.directives

    if not parsed.files:
        result.warnings.append(f"No .conf files found in {conf_dir}")

    # Lines the parser rejected
    result.errors.extend(str(w) for w in parsed.warnings)

    # Directives no route can handle
    for directive in parsed.directives:
        if is_manual(directive) or lookup_route(directive) is not None:
            continue
        result.warnings.append(
            f"No installer for '{directive.category}/{directive.method}' "
            f"({directive.name}, {directive.location})"
        )

    # Same name declared twice
    names = Counter((d.category, d.name) for d in parsed.directives)
    dupes = sorted(f"{cat}={name}" for (cat, name), n in names.items() if n > 1)
    if dupes:
        result.warnings.append(f"Declared more than once: {', '.join(dupes)}")

    result.valid = len(result.errors) == 0
    return result
