"""
Artifact resolvers — one per indirect source kind.

``default_resolvers`` builds the set the routing table refers to by name.
"""

from __future__ import annotations

from converge.core.services.app_install.execution.download import HttpClient
from converge.core.services.app_install.resolver.base import Resolver
from converge.core.services.app_install.resolver.direct import DirectUrlResolver
from converge.core.services.app_install.resolver.github_release import GitHubReleaseResolver
from converge.core.services.app_install.resolver.preference import ARCHIVE_EXT, DISK_IMAGE_EXT
from converge.core.services.app_install.resolver.vendor_page import VendorPageResolver
from converge.core.services.app_install.resolver.web_page import WebPageResolver


def default_resolvers(http: HttpClient) -> dict[str, Resolver]:
    """All built-in resolvers, keyed by resolver name."""
    resolvers: list[Resolver] = [
        DirectUrlResolver(DISK_IMAGE_EXT),
        DirectUrlResolver(ARCHIVE_EXT),
        GitHubReleaseResolver(http),
        WebPageResolver(http),
        VendorPageResolver(http),
    ]
    return {r.name: r for r in resolvers}


__all__ = [
    "Resolver",
    "default_resolvers",
]
