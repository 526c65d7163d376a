"""
L2 Resolver — Disk images linked from a release web page.

Three passes over the page, stopping at the first that yields a URL:

1. Direct ``.dmg`` links that match an architecture keyword.
2. Links that look like download endpoints (``download``, ``api``,
   ``release``): each is probed with a HEAD request that stops at the
   first redirect hop.  Probing is lazy and in document order: the first
   ``.dmg`` target carrying any preference keyword wins; failing that,
   the first ``.dmg`` target of any kind.
3. The first direct ``.dmg`` link, unfiltered.
"""

from __future__ import annotations

import html
import logging
import re
from collections.abc import Iterator
from urllib.parse import urljoin

from converge.core.errors import NetworkUnreachable, NoCandidateFound
from converge.core.models.artifact import Arch, ResolvedArtifact
from converge.core.models.directive import InstallDirective
from converge.core.services.app_install.execution.download import HttpClient
from converge.core.services.app_install.resolver.base import Resolver
from converge.core.services.app_install.resolver.preference import (
    DISK_IMAGE_EXT,
    installer_filename,
    pick_preferred,
    url_has_extension,
)

logger = logging.getLogger(__name__)

_HREF_RE = re.compile(r'href="([^"]*)"', re.IGNORECASE)
_REDIRECT_HINT_RE = re.compile(r"download|api|release")


def extract_links(page: str, base_url: str) -> list[tuple[str, str]]:
    """All ``href`` targets in document order as ``(raw, absolute)`` pairs."""
    links = []
    for raw in _HREF_RE.findall(page):
        raw = html.unescape(raw).strip()
        if not raw or raw.startswith(("#", "javascript:", "mailto:")):
            continue
        try:
            links.append((raw, urljoin(base_url, raw)))
        except ValueError:
            logger.debug("Skipping malformed link: %s", raw)
    return links


class WebPageResolver(Resolver):
    """Resolve ``dmg_web_release`` directives."""

    def __init__(self, http: HttpClient):
        self.http = http

    @property
    def name(self) -> str:
        return "web-page"

    def resolve(self, directive: InstallDirective, arch: Arch) -> ResolvedArtifact:
        page_url = directive.payload.strip()
        logger.debug("Fetching release page: %s", page_url)
        page = self.http.fetch_text(page_url)

        links = extract_links(page, page_url)
        direct = [url for _, url in links if url_has_extension(url, DISK_IMAGE_EXT)]

        # Pass 1 — direct links with an architecture keyword
        logger.debug("Searching for DMG download links...")
        picked = pick_preferred(direct, arch)
        if picked is not None:
            url, reason = picked
            logger.debug("Found %s DMG: %s", reason, url)
            return self._artifact(directive, url, reason)

        # Pass 2 — follow one redirect hop of download-looking links
        logger.debug("No preferred direct DMG URLs found, checking for redirect URLs...")
        fallback = None
        for url in self._redirect_targets(
            [url for raw, url in links if _REDIRECT_HINT_RE.search(raw)]
        ):
            picked = pick_preferred([url], arch)
            if picked is not None:
                logger.debug("Found %s DMG via redirect: %s", picked[1], url)
                return self._artifact(directive, url, f"redirect:{picked[1]}")
            if fallback is None:
                logger.debug("Found DMG via redirect (fallback): %s", url)
                fallback = url
        if fallback is not None:
            return self._artifact(directive, fallback, "redirect:first")

        # Pass 3 — any direct link at all
        if direct:
            logger.debug("Using first DMG link on page: %s", direct[0])
            return self._artifact(directive, direct[0], "first")

        raise NoCandidateFound(
            f"No DMG download link found on release page: {page_url}. "
            "Please check the URL or use a different installer type"
        )

    def _redirect_targets(self, candidates: list[str]) -> Iterator[str]:
        """Probe ``candidates`` one at a time, yielding ``.dmg`` redirect targets."""
        for url in candidates:
            logger.debug("Checking redirect URL: %s", url)
            try:
                location = self.http.probe_location(url)
            except NetworkUnreachable as e:
                logger.debug("Redirect probe failed: %s", e)
                continue
            if not location:
                continue
            try:
                location = urljoin(url, location.strip())
            except ValueError:
                logger.debug("Skipping malformed redirect target: %s", location)
                continue
            if url_has_extension(location, DISK_IMAGE_EXT):
                yield location

    @staticmethod
    def _artifact(directive: InstallDirective, url: str, reason: str) -> ResolvedArtifact:
        return ResolvedArtifact(
            url=url,
            filename=installer_filename(url, directive.name, DISK_IMAGE_EXT),
            reason=reason,
        )
