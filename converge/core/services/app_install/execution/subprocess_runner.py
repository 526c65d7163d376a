"""
L4 Execution — Core subprocess runner.

The SINGLE PLACE where ``subprocess.run`` is called for install and
probe operations.  Installers and presence checks receive a
``CommandRunner`` so tests can substitute a scripted fake.
"""

from __future__ import annotations

import logging
import shutil
import subprocess
import time
from typing import Any

logger = logging.getLogger(__name__)

_OUTPUT_TAIL = 4000


class CommandRunner:
    """Run external commands and report results as dicts.

    Every call returns::

        {"ok": True, "returncode": 0, "stdout": "...", "stderr": "", "elapsed_ms": N}

    or, when the command could not run at all::

        {"ok": False, "returncode": None, "error": "..."}
    """

    def __init__(self, default_timeout: int = 120):
        self.default_timeout = default_timeout

    def which(self, program: str) -> str | None:
        """Return the path of ``program`` on PATH, or None."""
        return shutil.which(program)

    def run(
        self,
        cmd: list[str] | str,
        *,
        shell: bool = False,
        capture: bool = True,
        timeout: int | None = None,
        cwd: str | None = None,
    ) -> dict[str, Any]:
        """Run a command.

        Args:
            cmd: Argument list, or a command string when ``shell`` is True.
            shell: Run through ``/bin/sh -c``.
            capture: Capture stdout/stderr.  When False the child inherits
                the terminal (needed for vendor installers that prompt).
            timeout: Seconds before giving up (default: ``default_timeout``).
            cwd: Working directory.
        """
        timeout = self.default_timeout if timeout is None else timeout
        logger.debug("Executing: %s", cmd)
        start = time.monotonic()

        try:
            result = subprocess.run(
                cmd,
                shell=shell,
                capture_output=capture,
                text=True,
                timeout=timeout,
                cwd=cwd,
            )
        except subprocess.TimeoutExpired:
            return {"ok": False, "returncode": None, "error": f"Command timed out ({timeout}s)"}
        except OSError as e:
            return {"ok": False, "returncode": None, "error": str(e)}

        elapsed_ms = int((time.monotonic() - start) * 1000)
        stdout = (result.stdout or "")[-_OUTPUT_TAIL:]
        stderr = (result.stderr or "")[-_OUTPUT_TAIL:]

        if result.returncode == 0:
            return {
                "ok": True,
                "returncode": 0,
                "stdout": stdout,
                "stderr": stderr,
                "elapsed_ms": elapsed_ms,
            }

        return {
            "ok": False,
            "returncode": result.returncode,
            "error": stderr.strip() or f"Command failed (exit {result.returncode})",
            "stdout": stdout,
            "stderr": stderr,
            "elapsed_ms": elapsed_ms,
        }
