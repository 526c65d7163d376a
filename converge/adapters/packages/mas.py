"""
App Store installer — ``mas install <id>``.

The store identifier is resolved during preflight so plan mode reports
ambiguity before anything is installed:

    numeric payload            → used as is
    otherwise ``mas search``   → exact title match (case-insensitive)
                                 → single id in the results
                                 → AmbiguousCatalogMatch
"""

from __future__ import annotations

import logging
import re

from converge.adapters.base import InstallContext, Installer
from converge.core.errors import AmbiguousCatalogMatch, NoCandidateFound
from converge.core.models.action import Receipt
from converge.core.models.artifact import ResolvedArtifact
from converge.core.services.app_install.execution.subprocess_runner import CommandRunner

logger = logging.getLogger(__name__)

# "  1451685025  WireGuard  (1.0.16)"
_ROW_RE = re.compile(r"^\s*(\d+)\s+(.*?)\s*(?:\([^()]*\))?\s*$")


def parse_search_output(output: str) -> list[tuple[str, str]]:
    """``mas search`` output → ``[(id, title), ...]`` in listing order."""
    rows = []
    for line in output.splitlines():
        match = _ROW_RE.match(line)
        if match:
            rows.append((match.group(1), match.group(2)))
    return rows


def resolve_catalog_id(term: str, output: str) -> tuple[str, str]:
    """Pick a store identifier for ``term`` from ``mas search`` output.

    Returns:
        ``(identifier, reason)`` where reason is ``exact`` or ``only``.

    Raises:
        NoCandidateFound: Nothing usable in the results.
        AmbiguousCatalogMatch: Several ids and none titled exactly ``term``.
    """
    if not output.strip():
        raise NoCandidateFound(f"No results found for App Store search: {term}")

    rows = parse_search_output(output)
    exact = [ident for ident, title in rows if title.casefold() == term.casefold()]
    if len(exact) == 1:
        logger.debug("Found exact match App Store ID: %s", exact[0])
        return exact[0], "exact"
    if exact:
        logger.warning(
            "Multiple exact matches found for '%s', using first one: %s (others: %s)",
            term, exact[0], ", ".join(exact[1:]),
        )
        return exact[0], "exact"

    identifiers = [
        parts[0] for parts in (line.split() for line in output.splitlines())
        if parts and parts[0].isdigit()
    ]
    if not identifiers:
        raise NoCandidateFound(f"No valid App Store IDs found for: {term}")
    if len(identifiers) > 1:
        raise AmbiguousCatalogMatch(term, identifiers)

    logger.debug("Found App Store ID: %s", identifiers[0])
    return identifiers[0], "only"


class MasInstaller(Installer):
    """Install Mac App Store applications through ``mas``."""

    def __init__(self, runner: CommandRunner | None = None):
        self.runner = runner or CommandRunner()

    @property
    def name(self) -> str:
        return "mas"

    def is_available(self) -> bool:
        return self.runner.which("mas") is not None

    def preflight(self, context: InstallContext) -> ResolvedArtifact | None:
        term = context.directive.payload.strip()
        if term.isdigit():
            return ResolvedArtifact(identifier=term, reason="pinned")

        if not self.is_available():
            logger.debug("mas not installed yet — App Store ID for '%s' resolved later", term)
            return None

        logger.debug("Searching App Store for: %s", term)
        result = self.runner.run(["mas", "search", term], timeout=60)
        identifier, reason = resolve_catalog_id(term, result.get("stdout", "") if result["ok"] else "")
        return ResolvedArtifact(identifier=identifier, reason=reason)

    def validate(self, context: InstallContext) -> tuple[bool, str]:
        if not self.is_available():
            return False, "mas is not installed"
        if context.artifact is None or not context.artifact.identifier:
            return False, "No App Store ID resolved"
        return True, ""

    def install(self, context: InstallContext) -> Receipt:
        directive = context.directive
        identifier = context.artifact.identifier if context.artifact else ""

        logger.info("Installing '%s' from Mac App Store...", directive.name)
        logger.debug("Installing App Store ID: %s", identifier)
        result = self.runner.run(["mas", "install", identifier], timeout=context.timeout)

        if not result["ok"]:
            return Receipt.failure(
                installer=self.name,
                directive=directive.name,
                error=f"Failed to install '{directive.name}' from Mac App Store: "
                      f"{result.get('error', '')}",
                metadata={"identifier": identifier},
            )

        logger.info("Successfully installed '%s' from Mac App Store", directive.name)
        return Receipt.success(
            installer=self.name,
            directive=directive.name,
            output=result.get("stdout", "").strip(),
            metadata={"identifier": identifier},
        )
