"""
Resolution models — architecture tags and resolved artifacts.

A ResolvedArtifact lives for one orchestration pass.  It is never
persisted: release pages and store listings change between runs.
"""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel


class Arch(str, Enum):
    """Canonical host architecture tag used for artifact matching."""

    ARM64 = "arm64"
    X86_64 = "x86_64"
    UNIVERSAL = "universal"


class ResolvedArtifact(BaseModel):
    """A concrete thing to install, discovered at run time.

    ``url``/``filename`` describe a download; ``identifier`` carries a
    store catalog id.  ``reason`` records which preference rule chose
    it (``arch``, ``universal``, ``silicon``, ``apple``, ``first`` …).
    """

    url: str = ""
    filename: str = ""
    identifier: str = ""
    reason: str = ""

    def describe(self) -> str:
        if self.url:
            return self.url
        if self.identifier:
            return f"App Store ID {self.identifier}"
        return "(nothing)"
