"""
L3 Detection — Presence checks (the idempotence test).

Read-only.  Nothing here installs anything, and nothing here raises
for a missing target: missing, dangling and looping paths are simply
"absent".

Presence is decided by category:

    brew       → ``brew list <name>`` exits 0
    asdf       → ``asdf list <name>`` output contains the version
    otherwise  → the declared target path resolves to an existing object
"""

from __future__ import annotations

import logging
import os
from pathlib import Path

from converge.core.models.directive import (
    CATEGORY_PACKAGE_MANAGER,
    CATEGORY_VERSION_MANAGER,
    InstallDirective,
)
from converge.core.services.app_install.execution.subprocess_runner import CommandRunner

logger = logging.getLogger(__name__)

_PROBE_TIMEOUT = 60


def is_present(name: str, target_path: str) -> bool:
    """Whether ``target_path`` resolves (following symlinks) to something real."""
    if not target_path:
        return False

    expanded = os.path.expanduser(os.path.expandvars(target_path))
    try:
        Path(expanded).resolve(strict=True)
    except (OSError, RuntimeError, ValueError):
        logger.debug("App '%s' is not installed", name)
        return False

    logger.debug("App '%s' is already installed at: %s", name, target_path)
    return True


class PresenceChecker:
    """Category-aware presence checks backed by the package managers' own queries."""

    def __init__(self, runner: CommandRunner | None = None):
        self.runner = runner or CommandRunner()

    def brew_has(self, name: str) -> bool:
        """Whether Homebrew lists ``name`` as installed."""
        if self.runner.which("brew") is None:
            return False
        result = self.runner.run(["brew", "list", name], timeout=_PROBE_TIMEOUT)
        return bool(result["ok"])

    def asdf_has(self, name: str, version: str) -> bool:
        """Whether ``asdf list <name>`` mentions ``version``.

        Substring match: "3.14" also matches "3.140.1".
        """
        if self.runner.which("asdf") is None:
            return False
        result = self.runner.run(["asdf", "list", name], timeout=_PROBE_TIMEOUT)
        if not result["ok"]:
            return False
        return version in result.get("stdout", "")

    def check(self, directive: InstallDirective) -> bool:
        """Presence of one directive, dispatched by category."""
        if directive.category == CATEGORY_PACKAGE_MANAGER:
            present = self.brew_has(directive.name)
        elif directive.category == CATEGORY_VERSION_MANAGER:
            present = self.asdf_has(directive.name, directive.payload)
        else:
            return is_present(directive.name, directive.target_path)

        logger.debug(
            "%s is %s", directive.label, "already installed" if present else "not installed",
        )
        return present
