"""
L4 Execution — Privilege elevation.

``sudo -v`` is requested at most once per run, and only after the plan
pass has shown that at least one privileged action is owed.  The
prompt talks to the terminal directly; the password never passes
through this process.
"""

from __future__ import annotations

import logging
import os

from converge.core.errors import PrivilegeDenied
from converge.core.services.app_install.execution.subprocess_runner import CommandRunner

logger = logging.getLogger(__name__)


def request_elevation(runner: CommandRunner) -> None:
    """Validate (and cache) sudo credentials.

    Raises:
        PrivilegeDenied: If sudo is missing or the user cannot authenticate.
    """
    if os.geteuid() == 0:
        logger.debug("Already running as root — no sudo prompt needed")
        return

    logger.info("Validating sudo access...")
    if runner.which("sudo") is None:
        raise PrivilegeDenied("sudo is not available on this system")

    result = runner.run(["sudo", "-v"], capture=False, timeout=300)
    if not result["ok"]:
        raise PrivilegeDenied(
            "Failed to validate sudo access. This run requires administrator privileges."
        )

    logger.info("Sudo access validated successfully")
