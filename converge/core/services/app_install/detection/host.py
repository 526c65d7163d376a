"""
L3 Detection — Host OS version gate.

Checked once at the start of a run.  A non-macOS host, or a macOS
older than the configured minimum, is fatal.
"""

from __future__ import annotations

import logging
import platform

from converge.core.errors import UnsupportedHostVersion

logger = logging.getLogger(__name__)


def parse_version(text: str) -> tuple[int, int, int]:
    """Parse ``"15.6.1"`` / ``"15.6"`` / ``"26"`` into a 3-tuple.

    Raises:
        ValueError: If a component is not an integer.
    """
    parts = [int(p) for p in text.strip().split(".") if p != ""]
    if not parts:
        raise ValueError(f"Empty version string: {text!r}")
    parts = (parts + [0, 0, 0])[:3]
    return parts[0], parts[1], parts[2]


def host_macos_version() -> str:
    """The running macOS product version, or "" when not on macOS."""
    return platform.mac_ver()[0]


def check_host_version(minimum: str, current: str | None = None) -> str:
    """Ensure the host runs macOS ``minimum`` or later.

    Args:
        minimum: Minimum product version, e.g. ``"15.6.1"``.
        current: Override for the detected version (tests).

    Returns:
        The detected version string.

    Raises:
        UnsupportedHostVersion: On non-macOS hosts or older versions.
    """
    version = host_macos_version() if current is None else current
    if not version:
        raise UnsupportedHostVersion(
            f"This tool requires macOS {minimum} or later (host is {platform.system()})"
        )

    try:
        too_old = parse_version(version) < parse_version(minimum)
    except ValueError as e:
        raise UnsupportedHostVersion(f"Cannot parse macOS version {version!r}: {e}") from e

    if too_old:
        raise UnsupportedHostVersion(
            f"This tool requires macOS {minimum} or later. Current version: {version}"
        )

    logger.info("macOS version check passed: %s", version)
    return version
