"""
Shell command installer — run a vendor install command verbatim.

The payload of a ``custom=...::command::...`` directive is handed to
``/bin/sh -c`` untouched.  This is the trusted-command escape hatch:
configuration authors own what it runs.  The child inherits the
terminal because vendor installers (curl | sh style) often prompt.
"""

from __future__ import annotations

import logging

from converge.adapters.base import InstallContext, Installer
from converge.core.models.action import Receipt
from converge.core.services.app_install.execution.subprocess_runner import CommandRunner

logger = logging.getLogger(__name__)


class ShellCommandInstaller(Installer):
    """Run ``directive.payload`` through the shell."""

    def __init__(self, runner: CommandRunner | None = None):
        self.runner = runner or CommandRunner()

    @property
    def name(self) -> str:
        return "shell"

    def is_available(self) -> bool:
        return self.runner.which("sh") is not None

    def validate(self, context: InstallContext) -> tuple[bool, str]:
        if not context.directive.payload.strip():
            return False, "Missing install command"
        return True, ""

    def install(self, context: InstallContext) -> Receipt:
        command = context.directive.payload
        name = context.directive.name

        logger.info("Installing %s...", name)
        logger.debug("Running custom command: %s", command)
        result = self.runner.run(
            command, shell=True, capture=False, timeout=context.timeout,
        )

        if result["ok"]:
            logger.info("%s installed successfully", name)
            return Receipt.success(
                installer=self.name,
                directive=name,
                metadata={"command": command, "return_code": 0},
            )

        return Receipt.failure(
            installer=self.name,
            directive=name,
            error=f"Failed to install {name}: {result.get('error', 'command failed')}",
            metadata={"command": command, "return_code": result.get("returncode")},
        )
