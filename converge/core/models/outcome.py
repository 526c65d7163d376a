"""
Outcome models — what a convergence pass did to each directive.

``ConvergenceReport`` replaces process-wide flags: the pass returns it
and the caller threads it to the final reporting step.
"""

from __future__ import annotations

from enum import Enum
from typing import Any, Literal

from pydantic import BaseModel, Field

from converge.core.models.action import Receipt
from converge.core.models.artifact import ResolvedArtifact
from converge.core.models.directive import InstallDirective


class DirectiveState(str, Enum):
    """States of the per-directive convergence machine."""

    PENDING = "pending"
    ALREADY_PRESENT = "already-present"
    RESOLVING = "resolving"
    RESOLVED = "resolved"
    INSTALLING = "installing"
    INSTALLED = "installed"
    FAILED = "failed"
    MANUAL_SKIP = "skipped-manual"
    UNKNOWN_SKIP = "skipped-unknown"

    @property
    def terminal(self) -> bool:
        return self in _TERMINAL


_TERMINAL = {
    DirectiveState.ALREADY_PRESENT,
    DirectiveState.INSTALLED,
    DirectiveState.FAILED,
    DirectiveState.MANUAL_SKIP,
    DirectiveState.UNKNOWN_SKIP,
}


class Outcome(str, Enum):
    """Per-directive result recorded at the end of a pass."""

    ALREADY_PRESENT = "already-present"
    INSTALLED = "installed"
    WOULD_INSTALL = "would-install"
    FAILED = "failed"
    SKIPPED_MANUAL = "skipped-manual"
    SKIPPED_UNKNOWN = "skipped-unknown"


class OutcomeRecord(BaseModel):
    """The result of driving one directive through the state machine."""

    directive: InstallDirective
    outcome: Outcome
    states: list[DirectiveState] = Field(default_factory=list)
    artifact: ResolvedArtifact | None = None
    receipt: Receipt | None = None
    error: str | None = None
    error_kind: str | None = None

    @property
    def changed(self) -> bool:
        return self.outcome == Outcome.INSTALLED

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.directive.name,
            "category": self.directive.category,
            "method": self.directive.method,
            "outcome": self.outcome.value,
            "artifact": self.artifact.describe() if self.artifact else None,
            "error": self.error,
            "error_kind": self.error_kind,
        }


class ConvergenceReport(BaseModel):
    """Result of one full pass over all directives."""

    mode: Literal["plan", "apply"] = "apply"
    records: list[OutcomeRecord] = Field(default_factory=list)
    elevation_needed: bool = False
    reshim_owed: bool = False

    def count(self, outcome: Outcome) -> int:
        return sum(1 for r in self.records if r.outcome == outcome)

    @property
    def total(self) -> int:
        return len(self.records)

    @property
    def installed(self) -> int:
        return self.count(Outcome.INSTALLED)

    @property
    def pending(self) -> int:
        return self.count(Outcome.WOULD_INSTALL)

    @property
    def failed(self) -> int:
        return self.count(Outcome.FAILED)

    @property
    def present(self) -> int:
        return self.count(Outcome.ALREADY_PRESENT)

    @property
    def skipped(self) -> int:
        return self.count(Outcome.SKIPPED_MANUAL) + self.count(Outcome.SKIPPED_UNKNOWN)

    @property
    def status(self) -> str:
        if self.failed == 0:
            return "ok"
        if self.installed or self.present or self.pending:
            return "partial"
        return "failed"

    def to_dict(self) -> dict[str, Any]:
        return {
            "mode": self.mode,
            "status": self.status,
            "total": self.total,
            "already_present": self.present,
            "installed": self.installed,
            "would_install": self.pending,
            "failed": self.failed,
            "skipped": self.skipped,
            "elevation_needed": self.elevation_needed,
            "reshim_owed": self.reshim_owed,
            "records": [r.to_dict() for r in self.records],
        }
