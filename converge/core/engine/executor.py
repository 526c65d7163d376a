"""
Engine executor — the convergence pass.

Drives every directive through an explicit state machine:

    Pending ─┬─ ManualSkip
             ├─ UnknownSkip
             ├─ AlreadyPresent
             └─ Resolving → Resolved ─┬─ (plan: would-install)
                          │           └─ Installing → Installed | Failed
                          └─ Failed

Each transition is a plain function of the directive's run state and
the ConvergenceEnv.  Plan mode stops after Resolved but still runs the
resolvers and installer preflight, so it reports resolution problems
an apply run would hit.  One directive's failure never stops the pass.

Flow:
    directives → presence → resolve → install → verify → ConvergenceReport
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Literal

from converge.adapters.base import InstallContext
from converge.adapters.registry import InstallerRegistry
from converge.core.config.settings import Settings
from converge.core.engine.routes import KNOWN_CATEGORIES, Route, build_registry, is_manual, lookup_route
from converge.core.errors import ConvergeError, UnknownDirectiveKind
from converge.core.models.action import Receipt
from converge.core.models.artifact import Arch, ResolvedArtifact
from converge.core.models.directive import CATEGORY_APP_STORE, InstallDirective
from converge.core.models.outcome import ConvergenceReport, DirectiveState, Outcome, OutcomeRecord
from converge.core.services.app_install.detection.arch import detect_architecture
from converge.core.services.app_install.detection.presence import PresenceChecker
from converge.core.services.app_install.execution.download import HttpClient
from converge.core.services.app_install.execution.subprocess_runner import CommandRunner
from converge.core.services.app_install.resolver import Resolver, default_resolvers

logger = logging.getLogger(__name__)

Mode = Literal["plan", "apply"]


@dataclass
class ConvergenceEnv:
    """Everything a pass needs besides the directives.

    ``arch`` is detected once per pass when left as None.
    """

    presence: PresenceChecker
    registry: InstallerRegistry
    resolvers: dict[str, Resolver] = field(default_factory=dict)
    arch: Arch | None = None
    applications_dir: str = "/Applications"
    install_timeout: int = 1800

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        runner: CommandRunner | None = None,
        http: HttpClient | None = None,
    ) -> ConvergenceEnv:
        """Wire the real presence checker, installers and resolvers."""
        runner = runner or CommandRunner()
        http = http or HttpClient(timeout=settings.http_timeout,
                                  probe_timeout=settings.probe_timeout)
        presence = PresenceChecker(runner)
        return cls(
            presence=presence,
            registry=build_registry(runner, http, verifier=presence.check),
            resolvers=default_resolvers(http),
            applications_dir=str(settings.applications_dir),
            install_timeout=settings.install_timeout,
        )


@dataclass
class _DirectiveRun:
    """Mutable state of one directive while it moves through the machine."""

    directive: InstallDirective
    state: DirectiveState = DirectiveState.PENDING
    history: list[DirectiveState] = field(default_factory=list)
    route: Route | None = None
    artifact: ResolvedArtifact | None = None
    receipt: Receipt | None = None
    error: str | None = None
    error_kind: str | None = None

    def __post_init__(self) -> None:
        self.history.append(self.state)

    def to(self, state: DirectiveState) -> None:
        self.state = state
        self.history.append(state)

    def fail(self, error: str, kind: str) -> None:
        self.error = error
        self.error_kind = kind
        self.to(DirectiveState.FAILED)

    def record(self, outcome: Outcome) -> OutcomeRecord:
        return OutcomeRecord(
            directive=self.directive,
            outcome=outcome,
            states=list(self.history),
            artifact=self.artifact,
            receipt=self.receipt,
            error=self.error,
            error_kind=self.error_kind,
        )


# ── Transitions ─────────────────────────────────────────────────────


def _start(run: _DirectiveRun, env: ConvergenceEnv) -> None:
    """Pending → ManualSkip | UnknownSkip | AlreadyPresent | Resolving."""
    directive = run.directive

    if is_manual(directive):
        if directive.category == CATEGORY_APP_STORE:
            logger.warning("App Store app '%s' - please install manually", directive.name)
        else:
            logger.warning(
                "Manual installation required for %s: %s", directive.name, directive.payload,
            )
        run.to(DirectiveState.MANUAL_SKIP)
        return

    run.route = lookup_route(directive)
    if run.route is None:
        if directive.category not in KNOWN_CATEGORIES:
            message = f"Unknown app type '{directive.category}' for {directive.name}"
        else:
            message = (
                f"Unknown install method '{directive.method}' for {directive.name}"
            )
        where = f" ({directive.location})" if directive.location else ""
        logger.warning("%s%s", message, where)
        run.error, run.error_kind = message, UnknownDirectiveKind.kind
        run.to(DirectiveState.UNKNOWN_SKIP)
        return

    if env.presence.check(directive):
        logger.info("'%s' is already installed", directive.name)
        run.to(DirectiveState.ALREADY_PRESENT)
        return

    run.to(DirectiveState.RESOLVING)


def _resolve(run: _DirectiveRun, env: ConvergenceEnv, arch: Arch) -> None:
    """Resolving → Resolved | Failed."""
    directive = run.directive
    route = run.route
    assert route is not None

    try:
        if route.resolver is not None:
            resolver = env.resolvers.get(route.resolver)
            if resolver is None:
                raise UnknownDirectiveKind(f"No resolver registered for '{route.resolver}'")
            run.artifact = resolver.resolve(directive, arch)

        preflight = env.registry.preflight(route.installer, _context(run, env))
        if preflight is not None:
            run.artifact = preflight
    except ConvergeError as e:
        logger.error("Failed to resolve %s: %s", directive.label, e)
        run.fail(str(e), e.kind)
        return

    if run.artifact is not None:
        logger.debug("Resolved %s → %s", directive.name, run.artifact.describe())
    run.to(DirectiveState.RESOLVED)


def _install(run: _DirectiveRun, env: ConvergenceEnv) -> None:
    """Installing → Installed | Failed."""
    directive = run.directive
    route = run.route
    assert route is not None

    run.to(DirectiveState.INSTALLING)
    receipt = env.registry.execute(route.installer, _context(run, env))
    run.receipt = receipt

    if receipt.ok:
        run.to(DirectiveState.INSTALLED)
        return

    logger.error("Failed to install %s: %s", directive.name, receipt.error)
    run.fail(receipt.error or "install failed", receipt.error_kind or "install_failed")


def _context(run: _DirectiveRun, env: ConvergenceEnv) -> InstallContext:
    return InstallContext(
        directive=run.directive,
        artifact=run.artifact,
        applications_dir=env.applications_dir,
        timeout=env.install_timeout,
    )


def _is_privileged(env: ConvergenceEnv, route: Route) -> bool:
    installer = env.registry.get(route.installer)
    return installer is None or installer.privileged


# ── Pass ────────────────────────────────────────────────────────────


def _drive(run: _DirectiveRun, env: ConvergenceEnv, arch: Arch, mode: Mode) -> OutcomeRecord:
    directive = run.directive
    _start(run, env)
    if run.state == DirectiveState.MANUAL_SKIP:
        return run.record(Outcome.SKIPPED_MANUAL)
    if run.state == DirectiveState.UNKNOWN_SKIP:
        return run.record(Outcome.SKIPPED_UNKNOWN)
    if run.state == DirectiveState.ALREADY_PRESENT:
        return run.record(Outcome.ALREADY_PRESENT)

    if mode == "plan":
        assert run.route is not None
        logger.info("Will install '%s' %s", directive.name, run.route.describe())

    _resolve(run, env, arch)
    if run.state == DirectiveState.FAILED:
        return run.record(Outcome.FAILED)
    if mode == "plan":
        return run.record(Outcome.WOULD_INSTALL)

    _install(run, env)
    if run.state == DirectiveState.FAILED:
        return run.record(Outcome.FAILED)
    return run.record(Outcome.INSTALLED)


def converge_directive(
    directive: InstallDirective,
    env: ConvergenceEnv,
    arch: Arch,
    mode: Mode = "apply",
) -> OutcomeRecord:
    """Drive one directive to a terminal outcome.

    Never raises: anything a presence check, resolver or installer throws
    past its own error handling is recorded as a failure of this directive.
    """
    run = _DirectiveRun(directive)
    logger.debug("Processing %s", directive.label)

    try:
        return _drive(run, env, arch, mode)
    except Exception as e:
        logger.error("Unexpected error while processing %s: %s", directive.label, e)
        run.fail(f"Unexpected error: {e}", ConvergeError.kind)
        return run.record(Outcome.FAILED)


def run_pass(
    directives: list[InstallDirective],
    env: ConvergenceEnv,
    mode: Mode = "apply",
) -> ConvergenceReport:
    """One ordered traversal of all directives.

    Args:
        directives: Parsed directives, in configuration order.
        env: Presence checker, installers, resolvers.
        mode: ``plan`` resolves but never installs; ``apply`` installs.

    Returns:
        ConvergenceReport with one OutcomeRecord per directive.
    """
    arch = env.arch or detect_architecture()
    logger.debug("Detected system architecture: %s", arch.value)

    report = ConvergenceReport(mode=mode)
    for directive in directives:
        record = converge_directive(directive, env, arch, mode)
        report.records.append(record)

        route = lookup_route(directive)
        if route is None:
            continue

        reached_install = (
            record.outcome == Outcome.WOULD_INSTALL
            or DirectiveState.INSTALLING in record.states
        )
        if reached_install and _is_privileged(env, route):
            report.elevation_needed = True

        if record.outcome == Outcome.INSTALLED and record.receipt is not None:
            if record.receipt.metadata.get("reshim_owed"):
                report.reshim_owed = True

    logger.debug(
        "%s pass: %d directives, %d installed, %d pending, %d failed",
        mode, report.total, report.installed, report.pending, report.failed,
    )
    return report
