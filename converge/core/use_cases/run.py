"""
Run use case — converge this machine to its configuration.

This is the top-level orchestrator: host check, configuration, the
plan pass, one sudo prompt, bootstrap, the apply pass, the shell
profile, asdf shims and cleanup.  The full vertical slice from
``converge run`` to a changed machine.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass, field

from converge.adapters.packages.asdf import reshim
from converge.core.config.loader import ConfigError, load_directives
from converge.core.config.settings import Settings
from converge.core.engine.executor import ConvergenceEnv, run_pass
from converge.core.errors import PrivilegeDenied, UnsupportedHostVersion
from converge.core.models.outcome import ConvergenceReport
from converge.core.services.app_install.detection.host import check_host_version
from converge.core.services.app_install.execution.download import HttpClient
from converge.core.services.app_install.execution.privileges import request_elevation
from converge.core.services.app_install.execution.subprocess_runner import CommandRunner
from converge.core.services.bootstrap import (
    BootstrapStatus,
    bootstrap_package_tools,
    check_bootstrap,
)
from converge.core.services.cleanup import CleanupResult, CleanupTarget, cleanup_installers
from converge.core.services.shell_profile import ProfileStatus, check_profile, reconcile_profile

logger = logging.getLogger(__name__)


@dataclass
class RunResult:
    """Result of one ``converge run`` (or ``plan``)."""

    dry_run: bool = False
    host_version: str = ""
    config_files: list[str] = field(default_factory=list)
    parse_warnings: list[str] = field(default_factory=list)
    plan: ConvergenceReport | None = None
    report: ConvergenceReport | None = None
    bootstrap: BootstrapStatus | None = None
    profile: ProfileStatus | None = None
    cleanup: CleanupResult | None = None
    elevation_needed: bool = False
    reshimmed: bool = False
    error: str | None = None
    error_kind: str | None = None

    @property
    def exit_code(self) -> int:
        """1 for aborted runs; failed directives alone still exit 0."""
        return 1 if self.error else 0

    def to_dict(self) -> dict:
        result: dict = {"dry_run": self.dry_run}
        if self.error:
            result["error"] = self.error
            result["error_kind"] = self.error_kind

        result["host_version"] = self.host_version
        result["config_files"] = self.config_files
        result["parse_warnings"] = self.parse_warnings
        result["elevation_needed"] = self.elevation_needed

        if self.plan:
            result["plan"] = self.plan.to_dict()
        if self.report:
            result["report"] = self.report.to_dict()
        if self.bootstrap:
            result["bootstrap"] = self.bootstrap.to_dict()
        if self.profile:
            result["profile"] = self.profile.to_dict()
        if self.cleanup:
            result["cleanup"] = self.cleanup.to_dict()
        result["reshimmed"] = self.reshimmed
        return result


def run_converge(
    settings: Settings,
    runner: CommandRunner | None = None,
    http: HttpClient | None = None,
    env: ConvergenceEnv | None = None,
    elevate: Callable[[CommandRunner], None] = request_elevation,
    host_version: str | None = None,
    cleanup_targets: list[CleanupTarget] | None = None,
) -> RunResult:
    """Plan, and unless ``settings.dry_run``, apply the configuration.

    Args:
        settings: Effective settings for this run.
        runner: Subprocess runner shared by every step.
        http: HTTP client for resolvers and downloads.
        env: Pre-built convergence environment (tests).
        elevate: Privilege prompt, called at most once.
        host_version: Override for the detected macOS version (tests).
        cleanup_targets: Override for the cleanup directories (tests).

    Returns:
        RunResult; ``error`` is set only for aborted runs.
    """
    result = RunResult(dry_run=settings.dry_run)
    runner = runner or CommandRunner()

    if settings.dry_run:
        logger.info("Starting macOS setup (DRY RUN MODE)...")
    else:
        logger.info("Starting macOS setup...")

    # ── Host check ───────────────────────────────────────────────
    try:
        result.host_version = check_host_version(settings.min_host_version, current=host_version)
    except UnsupportedHostVersion as e:
        logger.error("%s", e)
        result.error, result.error_kind = str(e), e.kind
        return result

    # ── Load configuration ───────────────────────────────────────
    try:
        parsed = load_directives(settings.conf_dir, include_personal=settings.personal)
    except ConfigError as e:
        logger.error("%s", e)
        result.error, result.error_kind = str(e), "config"
        return result

    result.config_files = [str(p) for p in parsed.files]
    result.parse_warnings = [str(w) for w in parsed.warnings]
    directives = parsed.directives

    # ── Plan ─────────────────────────────────────────────────────
    if env is None:
        env = ConvergenceEnv.from_settings(settings, runner=runner, http=http)

    logger.info("Checking what needs to be installed...")
    result.plan = run_pass(directives, env, mode="plan")
    bootstrap_check = check_bootstrap(runner)
    result.profile = check_profile(settings.profile_path, settings.modifications_path)
    result.elevation_needed = result.plan.elevation_needed or bootstrap_check.needed

    # ── Elevate once ─────────────────────────────────────────────
    if result.elevation_needed:
        if settings.dry_run:
            logger.info("Elevated permissions would be required for installation")
        else:
            logger.info("Elevated permissions required for installation")
            try:
                elevate(runner)
            except PrivilegeDenied as e:
                logger.error("%s", e)
                result.error, result.error_kind = str(e), e.kind
                return result
    else:
        logger.info("No elevated permissions required - all items are already installed or configured")

    if settings.dry_run:
        logger.info("DRY RUN COMPLETE - No changes were made")
        logger.info("Run without --dry-run to perform actual installations")
        return result

    # ── Bootstrap ────────────────────────────────────────────────
    result.bootstrap = bootstrap_package_tools(runner)

    # ── Apply ────────────────────────────────────────────────────
    logger.info("Installing apps from configuration files...")
    result.report = run_pass(directives, env, mode="apply")

    # ── Shell profile ────────────────────────────────────────────
    try:
        result.profile = reconcile_profile(settings.profile_path, settings.modifications_path)
    except OSError as e:
        logger.error("Failed to apply zshrc modifications: %s", e)

    # ── asdf shims ───────────────────────────────────────────────
    if result.report.reshim_owed:
        result.reshimmed = reshim(runner)

    # ── Cleanup ──────────────────────────────────────────────────
    if settings.cleanup:
        result.cleanup = cleanup_installers(cleanup_targets)

    if result.report.failed:
        logger.warning("Setup completed with %d failed item(s)", result.report.failed)
    else:
        logger.info("Setup completed successfully!")

    if result.profile is not None and result.profile.changed:
        logger.info(
            "Please restart your terminal or run 'source %s' to apply zshrc changes",
            settings.shell_profile,
        )
    return result
