"""
Package tool bootstrap — Homebrew and mas.

Both are needed before the apply pass: Homebrew for ``brew=`` directives
(and to install mas), mas for ``appstore=`` directives.  Installing
them is the one place the run executes a remote script it does not
read from the configuration.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from pathlib import Path

from converge.core.services.app_install.execution.subprocess_runner import CommandRunner

logger = logging.getLogger(__name__)

HOMEBREW_INSTALL_URL = "https://raw.githubusercontent.com/Homebrew/install/HEAD/install.sh"
HOMEBREW_BIN_DIRS = ("/opt/homebrew/bin", "/usr/local/bin")


@dataclass
class BootstrapStatus:
    """Which package tools are missing, and what bootstrapping did."""

    brew_missing: bool = False
    mas_missing: bool = False
    brew_installed: bool = False
    mas_installed: bool = False
    error: str | None = None

    @property
    def needed(self) -> bool:
        return self.brew_missing or self.mas_missing

    def to_dict(self) -> dict:
        return {
            "brew_missing": self.brew_missing,
            "mas_missing": self.mas_missing,
            "brew_installed": self.brew_installed,
            "mas_installed": self.mas_installed,
            "error": self.error,
        }


def check_bootstrap(runner: CommandRunner) -> BootstrapStatus:
    """Report missing package tools without installing anything."""
    status = BootstrapStatus(
        brew_missing=runner.which("brew") is None,
        mas_missing=runner.which("mas") is None,
    )
    if status.brew_missing:
        logger.info("Will install Homebrew")
    if status.mas_missing:
        logger.info("Will install mas (Mac App Store command line interface)")
    return status


def _add_homebrew_to_path(environ: dict[str, str] | None = None) -> str | None:
    """Put a freshly installed brew on PATH for the rest of this process."""
    env = os.environ if environ is None else environ
    for bin_dir in HOMEBREW_BIN_DIRS:
        if (Path(bin_dir) / "brew").is_file():
            parts = env.get("PATH", "").split(os.pathsep)
            if bin_dir not in parts:
                env["PATH"] = os.pathsep.join([bin_dir, *[p for p in parts if p]])
            return bin_dir
    return None


def install_homebrew(runner: CommandRunner) -> bool:
    """Install Homebrew with the official script if it is missing.

    Returns:
        True if brew is available afterwards.
    """
    if runner.which("brew") is not None:
        logger.info("Homebrew is already installed")
        return True

    logger.info("Installing Homebrew...")
    result = runner.run(
        f'/bin/bash -c "$(curl -fsSL {HOMEBREW_INSTALL_URL})"',
        shell=True,
        capture=False,
        timeout=3600,
    )
    if not result["ok"]:
        logger.error("Homebrew installation failed: %s", result.get("error", ""))
        return False

    _add_homebrew_to_path()
    if runner.which("brew") is None:
        logger.error("Homebrew installed but brew is not on PATH")
        return False

    logger.info("Homebrew installed successfully")
    return True


def install_mas(runner: CommandRunner) -> bool:
    """``brew install mas`` if mas is missing.

    Returns:
        True if mas is available afterwards.
    """
    if runner.which("mas") is not None:
        logger.debug("mas is already installed")
        return True
    if runner.which("brew") is None:
        logger.warning("Homebrew is not available — cannot install mas")
        return False

    logger.info("Installing mas (Mac App Store command line interface)...")
    result = runner.run(["brew", "install", "mas"], timeout=1800)
    if not result["ok"]:
        logger.error("mas installation failed: %s", result.get("error", ""))
        return False

    logger.info("mas installed successfully")
    return True


def bootstrap_package_tools(runner: CommandRunner) -> BootstrapStatus:
    """Make sure brew and mas exist before the apply pass.

    Failures are logged and reported, not raised: directives that need
    the missing tool fail on their own in the apply pass.
    """
    status = BootstrapStatus(
        brew_missing=runner.which("brew") is None,
        mas_missing=runner.which("mas") is None,
    )

    brew_ok = install_homebrew(runner)
    status.brew_installed = status.brew_missing and brew_ok

    mas_ok = install_mas(runner)
    status.mas_installed = status.mas_missing and mas_ok

    if not brew_ok:
        status.error = "Homebrew is not available"
    elif not mas_ok:
        status.error = "mas is not available"
    return status
