"""
L2 Resolver — The resolver contract.

A resolver turns an indirect locator (repository, release page,
vendor page, bare URL) into a ResolvedArtifact.  Resolvers are
read-only and idempotent; they may hit the network but never touch
the machine.  Failures are raised (``NetworkUnreachable``,
``NoCandidateFound``) and the orchestrator records them on the
directive.
"""

from __future__ import annotations

from abc import ABC, abstractmethod

from converge.core.models.artifact import Arch, ResolvedArtifact
from converge.core.models.directive import InstallDirective


class Resolver(ABC):
    """Abstract base class for artifact resolvers."""

    @property
    @abstractmethod
    def name(self) -> str:
        """The resolver identifier (e.g. 'github-release')."""

    @abstractmethod
    def resolve(self, directive: InstallDirective, arch: Arch) -> ResolvedArtifact:
        """Produce a concrete artifact for ``directive``.

        Raises:
            NetworkUnreachable: The source could not be fetched.
            NoCandidateFound: The source had nothing usable.
        """

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__} name={self.name!r}>"
