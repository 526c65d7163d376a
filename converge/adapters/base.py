"""
Installer base — the contract between the orchestrator and backends.

Every installation backend (shell command, disk image, archive,
Homebrew, asdf, App Store) implements this interface.  The orchestrator
only talks to installers through the InstallerRegistry, never to
``brew``/``hdiutil``/``mas`` directly.
"""

from __future__ import annotations

from abc import ABC, abstractmethod

from pydantic import BaseModel

from converge.core.models.action import Receipt
from converge.core.models.artifact import ResolvedArtifact
from converge.core.models.directive import InstallDirective


class InstallContext(BaseModel):
    """Everything an installer needs to act on one directive.

    ``artifact`` is filled in once resolution (and the installer's own
    preflight) has run; it stays None for backends that need nothing
    resolved (shell commands, Homebrew, asdf).
    """

    directive: InstallDirective
    artifact: ResolvedArtifact | None = None
    applications_dir: str = "/Applications"
    timeout: int = 1800
    dry_run: bool = False

    @property
    def label(self) -> str:
        return self.directive.label


class Installer(ABC):
    """Abstract base class for all installation backends.

    ``install`` NEVER raises — failures are captured in the Receipt
    with ``status='failed'`` and an ``error_kind``.

    ``preflight`` is the one read-only hook that runs in plan mode too.
    It may raise resolution errors (``NoCandidateFound``,
    ``AmbiguousCatalogMatch``, ``NetworkUnreachable``); the orchestrator
    records them on the directive.

    To add a backend:
        1. Subclass Installer
        2. Implement name, is_available, validate, install
        3. Register it in the InstallerRegistry and add a route
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """The installer identifier (e.g. 'disk-image', 'brew', 'mas')."""

    @property
    def privileged(self) -> bool:
        """Whether installing through this backend needs cached sudo credentials."""
        return True

    @abstractmethod
    def is_available(self) -> bool:
        """Whether the underlying tool exists.  Fast, never raises."""

    @abstractmethod
    def validate(self, context: InstallContext) -> tuple[bool, str]:
        """Check that the directive can be installed.

        Returns:
            (is_valid, error_message). error_message is empty if valid.
        """

    def preflight(self, context: InstallContext) -> ResolvedArtifact | None:
        """Resolve backend-specific metadata before installing.

        Returns:
            An artifact replacing ``context.artifact``, or None to keep it.
        """
        return None

    @abstractmethod
    def install(self, context: InstallContext) -> Receipt:
        """Perform the installation and return a receipt.

        MUST never raise exceptions.
        """

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__} name={self.name!r}>"
