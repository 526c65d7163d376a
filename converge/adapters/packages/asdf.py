"""
asdf installer — language runtimes pinned by version.

    asdf plugin list          (exact line match on the tool name)
    asdf plugin add <name>    (only when missing)
    asdf install <name> <version>
    asdf set --home <name> <version>

A successful install sets ``reshim_owed`` in the receipt metadata; the
run regenerates shims once at the end instead of after every tool.
"""

from __future__ import annotations

import logging

from converge.adapters.base import InstallContext, Installer
from converge.core.models.action import Receipt
from converge.core.services.app_install.execution.subprocess_runner import CommandRunner

logger = logging.getLogger(__name__)


class AsdfInstaller(Installer):
    """Install tool versions through asdf."""

    def __init__(self, runner: CommandRunner | None = None):
        self.runner = runner or CommandRunner()

    @property
    def name(self) -> str:
        return "asdf"

    def is_available(self) -> bool:
        return self.runner.which("asdf") is not None

    def validate(self, context: InstallContext) -> tuple[bool, str]:
        if not self.is_available():
            return False, "asdf is not installed. Please install it first."
        if not context.directive.payload.strip():
            return False, "Missing version"
        return True, ""

    def has_plugin(self, name: str) -> bool:
        result = self.runner.run(["asdf", "plugin", "list"], timeout=60)
        if not result["ok"]:
            return False
        return name in (line.strip() for line in result.get("stdout", "").splitlines())

    def _fail(self, context: InstallContext, step: str, result: dict) -> Receipt:
        return Receipt.failure(
            installer=self.name,
            directive=context.directive.name,
            error=f"{step} failed for {context.directive.name}: {result.get('error', '')}",
            metadata={"step": step, "return_code": result.get("returncode")},
        )

    def install(self, context: InstallContext) -> Receipt:
        name = context.directive.name
        version = context.directive.payload.strip()

        if not self.has_plugin(name):
            logger.info("Adding asdf plugin for %s", name)
            result = self.runner.run(["asdf", "plugin", "add", name], timeout=300)
            if not result["ok"]:
                return self._fail(context, "asdf plugin add", result)

        logger.info("Installing %s version %s via asdf...", name, version)
        result = self.runner.run(["asdf", "install", name, version], timeout=context.timeout)
        if not result["ok"]:
            return self._fail(context, "asdf install", result)

        result = self.runner.run(["asdf", "set", "--home", name, version], timeout=60)
        if not result["ok"]:
            return self._fail(context, "asdf set", result)

        logger.info("Successfully installed %s version %s via asdf", name, version)
        return Receipt.success(
            installer=self.name,
            directive=name,
            metadata={"version": version, "reshim_owed": True},
        )


def reshim(runner: CommandRunner) -> bool:
    """Regenerate asdf shims once after a batch of installs."""
    if runner.which("asdf") is None:
        logger.warning("asdf not found, skipping shim regeneration")
        return False

    logger.info("Regenerating asdf shims...")
    result = runner.run(["asdf", "reshim"], timeout=300)
    if not result["ok"]:
        logger.error("asdf reshim failed: %s", result.get("error", ""))
        return False

    logger.info("asdf shims regenerated successfully")
    return True
