"""
Error taxonomy for a convergence run.

Only ``PrivilegeDenied`` and ``UnsupportedHostVersion`` abort a run.
Every other error is isolated to the directive that raised it: the
orchestrator records it on the directive's outcome and moves on.

Installers never raise these — they return failed receipts carrying
the matching ``error_kind`` string instead.  Resolvers and the
presence/host probes raise them.
"""

from __future__ import annotations


class ConvergeError(Exception):
    """Base class for every converge error."""

    kind = "error"


class UnknownDirectiveKind(ConvergeError):
    """No route exists for a directive's category/method pair."""

    kind = "unknown_directive"


class NetworkUnreachable(ConvergeError):
    """A fetch timed out, failed, or came back empty."""

    kind = "network_unreachable"


class NoCandidateFound(ConvergeError):
    """A resolver reached its source but found nothing installable."""

    kind = "no_candidate"


class AmbiguousCatalogMatch(ConvergeError):
    """A store search produced several ids and none matched exactly."""

    kind = "ambiguous_catalog_match"

    def __init__(self, name: str, identifiers: list[str]):
        self.name = name
        self.identifiers = identifiers
        super().__init__(
            f"Multiple App Store IDs found for '{name}' (no exact matches): "
            f"{', '.join(identifiers)}. "
            "Please specify the exact App Store ID in your configuration"
        )


class InstallStepFailed(ConvergeError):
    """One step of an installer (download, mount, copy, CLI call) failed."""

    kind = "install_failed"


class VerificationFailed(ConvergeError):
    """The presence re-check after an install still reports absent."""

    kind = "verification_failed"


class PrivilegeDenied(ConvergeError):
    """``sudo -v`` failed — fatal for an apply run."""

    kind = "privilege_denied"


class UnsupportedHostVersion(ConvergeError):
    """The host OS is not macOS or is older than the configured minimum."""

    kind = "unsupported_host"
