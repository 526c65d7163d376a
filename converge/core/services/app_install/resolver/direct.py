"""
L2 Resolver — Direct URLs.

The payload already is the download URL; only the local file name is
derived.  No network access.
"""

from __future__ import annotations

from converge.core.errors import NoCandidateFound
from converge.core.models.artifact import Arch, ResolvedArtifact
from converge.core.models.directive import InstallDirective
from converge.core.services.app_install.resolver.base import Resolver
from converge.core.services.app_install.resolver.preference import installer_filename


class DirectUrlResolver(Resolver):
    """Pass-through resolver for ``dmg`` and ``zip`` directives."""

    def __init__(self, extension: str):
        self.extension = extension

    @property
    def name(self) -> str:
        return f"direct{self.extension}"

    def resolve(self, directive: InstallDirective, arch: Arch) -> ResolvedArtifact:
        url = directive.payload.strip()
        if not url:
            raise NoCandidateFound(f"No download URL given for '{directive.name}'")
        return ResolvedArtifact(
            url=url,
            filename=installer_filename(url, directive.name, self.extension),
            reason="direct",
        )
