"""
Installer registry — central dispatch for all installer operations.

The registry is the single point of installer management: registration,
lookup, preflight, and the validate → install → verify sequence.  The
orchestrator never calls an installer directly.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable
from typing import Any

from converge.adapters.base import InstallContext, Installer
from converge.core.errors import UnknownDirectiveKind, VerificationFailed
from converge.core.models.action import Receipt
from converge.core.models.artifact import ResolvedArtifact
from converge.core.models.directive import InstallDirective

logger = logging.getLogger(__name__)

Verifier = Callable[[InstallDirective], bool]


class InstallerRegistry:
    """Central registry and dispatcher for installers.

    Args:
        verifier: Presence check run after every successful install.
            A receipt is only left ``ok`` if the directive now reports
            present.  None disables verification.
    """

    def __init__(self, verifier: Verifier | None = None):
        self._installers: dict[str, Installer] = {}
        self._verifier = verifier

    def register(self, installer: Installer) -> None:
        """Register an installer under its name."""
        name = installer.name
        if name in self._installers:
            logger.warning("Overwriting existing installer: %s", name)
        self._installers[name] = installer
        logger.debug("Registered installer: %s", name)

    def unregister(self, name: str) -> None:
        """Remove an installer from the registry."""
        self._installers.pop(name, None)

    def get(self, name: str) -> Installer | None:
        """Look up an installer by name."""
        return self._installers.get(name)

    def require(self, name: str) -> Installer:
        """Look up an installer, raising when it is not registered.

        Raises:
            UnknownDirectiveKind: If no installer has that name.
        """
        installer = self._installers.get(name)
        if installer is None:
            raise UnknownDirectiveKind(f"No installer registered for '{name}'")
        return installer

    def list_installers(self) -> list[str]:
        """List all registered installer names."""
        return list(self._installers.keys())

    def installer_status(self) -> dict[str, dict[str, Any]]:
        """Availability of every registered installer."""
        status = {}
        for name, installer in self._installers.items():
            try:
                available = installer.is_available()
            except Exception:
                available = False
            status[name] = {
                "name": name,
                "available": available,
                "privileged": installer.privileged,
                "type": installer.__class__.__name__,
            }
        return status

    def preflight(self, name: str, context: InstallContext) -> ResolvedArtifact | None:
        """Run an installer's read-only preflight.

        Raises:
            UnknownDirectiveKind: If no installer has that name.
            ConvergeError: Whatever resolution error the preflight raises.
        """
        return self.require(name).preflight(context)

    def execute(self, name: str, context: InstallContext) -> Receipt:
        """Install one directive through the named installer.

        1. Resolve the installer
        2. Validate the directive
        3. Install (or dry-run)
        4. Re-check presence
        5. Return a Receipt (never raises)
        """
        start_time = time.monotonic()
        label = context.directive.name

        installer = self.get(name)
        if installer is None:
            return Receipt.failure(
                installer=name,
                directive=label,
                error=f"No installer registered for '{name}'",
                error_kind=UnknownDirectiveKind.kind,
            )

        # Validate
        try:
            is_valid, error_msg = installer.validate(context)
            if not is_valid:
                return Receipt.failure(
                    installer=name,
                    directive=label,
                    error=f"Validation failed: {error_msg}",
                )
        except Exception as e:
            return Receipt.failure(
                installer=name,
                directive=label,
                error=f"Validation error: {e}",
            )

        # Dry run — validated but not installed
        if context.dry_run:
            return Receipt.skip(
                installer=name,
                directive=label,
                reason=f"[dry-run] Would install {context.label}",
                metadata={"dry_run": True},
            )

        # Install
        try:
            receipt = installer.install(context)
        except Exception as e:
            logger.error("Installer %s raised while installing %s: %s", name, label, e)
            receipt = Receipt.failure(
                installer=name,
                directive=label,
                error=f"Unexpected error: {e}",
            )

        # Verify
        if receipt.ok and self._verifier is not None:
            if not self._verifier(context.directive):
                receipt = Receipt.failure(
                    installer=name,
                    directive=label,
                    error=(
                        f"{context.directive.name} still not found at "
                        f"{context.directive.target_path or 'its expected location'} "
                        "after installation"
                    ),
                    error_kind=VerificationFailed.kind,
                    output=receipt.output,
                    metadata=receipt.metadata,
                )

        receipt.duration_ms = int((time.monotonic() - start_time) * 1000)
        return receipt
