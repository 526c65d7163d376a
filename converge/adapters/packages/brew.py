"""
Homebrew installer — ``brew install <payload>``.

The payload is split shell-style and passed through verbatim, so
``--cask firefox`` or ``--HEAD neovim`` work as written in the config.
"""

from __future__ import annotations

import logging
import shlex

from converge.adapters.base import InstallContext, Installer
from converge.core.models.action import Receipt
from converge.core.services.app_install.execution.subprocess_runner import CommandRunner

logger = logging.getLogger(__name__)


class BrewInstaller(Installer):
    """Install formulae and casks through Homebrew."""

    def __init__(self, runner: CommandRunner | None = None):
        self.runner = runner or CommandRunner()

    @property
    def name(self) -> str:
        return "brew"

    def is_available(self) -> bool:
        return self.runner.which("brew") is not None

    def validate(self, context: InstallContext) -> tuple[bool, str]:
        if not self.is_available():
            return False, "Homebrew is not installed"
        try:
            args = shlex.split(context.directive.payload)
        except ValueError as e:
            return False, f"Cannot parse brew arguments: {e}"
        if not args:
            return False, "Missing brew package"
        return True, ""

    def install(self, context: InstallContext) -> Receipt:
        directive = context.directive
        args = shlex.split(directive.payload)

        logger.info("Installing %s via Homebrew...", directive.name)
        result = self.runner.run(["brew", "install", *args], timeout=context.timeout)

        if not result["ok"]:
            return Receipt.failure(
                installer=self.name,
                directive=directive.name,
                error=f"Failed to install {directive.name} via Homebrew: {result.get('error', '')}",
                metadata={"args": args, "return_code": result.get("returncode")},
            )

        logger.info("%s installed successfully via Homebrew", directive.name)
        return Receipt.success(
            installer=self.name,
            directive=directive.name,
            output=result.get("stdout", "").strip(),
            metadata={"args": args},
        )
