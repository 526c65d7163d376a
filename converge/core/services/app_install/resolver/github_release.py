"""
L2 Resolver — GitHub latest-release disk images.

Fetches the release metadata from the GitHub API and picks a ``.dmg``
asset by architecture preference, falling back to the first ``.dmg``
asset of any name.
"""

from __future__ import annotations

import logging
import re

from converge.core.errors import NetworkUnreachable, NoCandidateFound
from converge.core.models.artifact import Arch, ResolvedArtifact
from converge.core.models.directive import InstallDirective
from converge.core.services.app_install.execution.download import HttpClient
from converge.core.services.app_install.resolver.base import Resolver
from converge.core.services.app_install.resolver.preference import (
    DISK_IMAGE_EXT,
    installer_filename,
    select_candidate,
)

logger = logging.getLogger(__name__)

GITHUB_API = "https://api.github.com"
_REPO_RE = re.compile(r"github\.com/([^/]+)/([^/?#]+)")


def parse_repo_locator(locator: str) -> str | None:
    """``https://github.com/owner/repo[...]`` → ``owner/repo``."""
    match = _REPO_RE.search(locator)
    if match is None:
        return None
    owner, repo = match.groups()
    if repo.endswith(".git"):
        repo = repo[: -len(".git")]
    return f"{owner}/{repo}"


class GitHubReleaseResolver(Resolver):
    """Resolve ``dmg_github_release`` directives."""

    def __init__(self, http: HttpClient):
        self.http = http

    @property
    def name(self) -> str:
        return "github-release"

    def resolve(self, directive: InstallDirective, arch: Arch) -> ResolvedArtifact:
        repo = parse_repo_locator(directive.payload)
        if repo is None:
            raise NoCandidateFound(f"Invalid GitHub repository URL: {directive.payload}")

        logger.debug("Fetching latest release for %s", repo)
        data = self.http.fetch_json(
            f"{GITHUB_API}/repos/{repo}/releases/latest",
            headers={"Accept": "application/vnd.github.v3+json"},
        )
        if not isinstance(data, dict):
            raise NetworkUnreachable(f"Unexpected release payload for {repo}")

        assets = [
            a for a in data.get("assets") or []
            if isinstance(a, dict)
            and str(a.get("name", "")).lower().endswith(DISK_IMAGE_EXT)
            and a.get("browser_download_url")
        ]
        logger.debug("System architecture: %s — %d DMG assets", arch.value, len(assets))

        picked = select_candidate(assets, arch, key=lambda a: a["name"])
        if picked is None:
            raise NoCandidateFound(
                f"No DMG asset found in latest release for {repo}. "
                "Please check the repository URL or use a different installer type"
            )

        asset, reason = picked
        url = asset["browser_download_url"]
        logger.debug("Found DMG URL (%s): %s", reason, url)
        return ResolvedArtifact(
            url=url,
            filename=installer_filename(asset["name"], directive.name, DISK_IMAGE_EXT),
            reason=reason,
        )
