"""
Domain models — Pydantic types for converge.

All models are re-exported here for convenient access:

    from converge.core.models import InstallDirective, Receipt, ConvergenceReport
"""

from converge.core.models.action import Receipt
from converge.core.models.artifact import Arch, ResolvedArtifact
from converge.core.models.directive import InstallDirective
from converge.core.models.outcome import (
    ConvergenceReport,
    DirectiveState,
    Outcome,
    OutcomeRecord,
)

__all__ = [
    # artifact.py
    "Arch",
    # outcome.py
    "ConvergenceReport",
    "DirectiveState",
    # directive.py
    "InstallDirective",
    "Outcome",
    "OutcomeRecord",
    # action.py
    "Receipt",
    "ResolvedArtifact",
]
