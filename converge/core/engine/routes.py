"""
Routing table — (category, method) → resolver + installer.

Adding a backend means adding a route here and registering its
installer in ``build_registry``; the orchestrator itself never
branches on category or method names.
"""

from __future__ import annotations

from dataclasses import dataclass

from converge.adapters.macos.archive import ArchiveInstaller
from converge.adapters.macos.disk_image import DiskImageInstaller
from converge.adapters.packages.asdf import AsdfInstaller
from converge.adapters.packages.brew import BrewInstaller
from converge.adapters.packages.mas import MasInstaller
from converge.adapters.registry import InstallerRegistry, Verifier
from converge.adapters.shell.command import ShellCommandInstaller
from converge.core.models.directive import (
    CATEGORY_APP_STORE,
    CATEGORY_CUSTOM,
    CATEGORY_PACKAGE_MANAGER,
    CATEGORY_VERSION_MANAGER,
    METHOD_COMMAND,
    METHOD_DMG,
    METHOD_DMG_REPO_RELEASE,
    METHOD_DMG_VENDOR_PAGE,
    METHOD_DMG_WEB_PAGE,
    METHOD_INSTALL,
    METHOD_MANUAL,
    METHOD_ZIP,
    InstallDirective,
)
from converge.core.services.app_install.execution.download import HttpClient
from converge.core.services.app_install.execution.subprocess_runner import CommandRunner


@dataclass(frozen=True)
class Route:
    """How one kind of directive is resolved and installed."""

    installer: str
    resolver: str | None = None
    source: str = ""

    def describe(self) -> str:
        return self.source or f"via {self.installer}"


ROUTES: dict[tuple[str, str], Route] = {
    (CATEGORY_CUSTOM, METHOD_COMMAND): Route("shell", None, "via custom command"),
    (CATEGORY_CUSTOM, METHOD_DMG): Route("disk-image", "direct.dmg", "from DMG"),
    (CATEGORY_CUSTOM, METHOD_ZIP): Route("archive", "direct.zip", "from ZIP"),
    (CATEGORY_CUSTOM, METHOD_DMG_REPO_RELEASE): Route(
        "disk-image", "github-release", "from GitHub release",
    ),
    (CATEGORY_CUSTOM, METHOD_DMG_WEB_PAGE): Route(
        "disk-image", "web-page", "from web release page",
    ),
    (CATEGORY_CUSTOM, METHOD_DMG_VENDOR_PAGE): Route(
        "disk-image", "vendor-page:synergy", "from Synergy release page",
    ),
    (CATEGORY_PACKAGE_MANAGER, METHOD_INSTALL): Route("brew", None, "via Homebrew"),
    (CATEGORY_VERSION_MANAGER, METHOD_INSTALL): Route("asdf", None, "via asdf"),
    (CATEGORY_APP_STORE, METHOD_INSTALL): Route("mas", None, "from Mac App Store"),
}

MANUAL_ROUTES: frozenset[tuple[str, str]] = frozenset({
    (CATEGORY_CUSTOM, METHOD_MANUAL),
    (CATEGORY_APP_STORE, METHOD_MANUAL),
})

KNOWN_CATEGORIES: frozenset[str] = frozenset(category for category, _ in ROUTES)


def lookup_route(directive: InstallDirective) -> Route | None:
    """The route for a directive, or None if its pair is unknown (or manual)."""
    return ROUTES.get((directive.category, directive.method))


def is_manual(directive: InstallDirective) -> bool:
    return (directive.category, directive.method) in MANUAL_ROUTES


def build_registry(
    runner: CommandRunner,
    http: HttpClient,
    verifier: Verifier | None = None,
    work_dir: str | None = None,
) -> InstallerRegistry:
    """A registry holding every built-in installer."""
    registry = InstallerRegistry(verifier=verifier)
    registry.register(ShellCommandInstaller(runner))
    registry.register(DiskImageInstaller(runner, http, work_dir=work_dir))
    registry.register(ArchiveInstaller(runner, http, work_dir=work_dir))
    registry.register(BrewInstaller(runner))
    registry.register(AsdfInstaller(runner))
    registry.register(MasInstaller(runner))
    return registry
