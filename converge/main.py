"""
converge — CLI entrypoint.

Usage:
    python -m converge.main --help
    converge run --personal --cleanup
    converge plan
    converge config check
"""

from __future__ import annotations

import json
import os
import sys
from pathlib import Path

import click

from converge import __version__
from converge.core.observability.logging_config import setup_logging

_OUTCOME_STYLE: dict[str, tuple[str, str]] = {
    "already-present": ("✓", "green"),
    "installed": ("✓", "green"),
    "would-install": ("→", "cyan"),
    "failed": ("✗", "red"),
    "skipped-manual": ("⊘", "yellow"),
    "skipped-unknown": ("⊘", "yellow"),
}


def _init_logging(ctx: click.Context, dry_run: bool = False) -> None:
    """(Re)configure logging from the global flags."""
    debug = ctx.obj.get("debug", False)
    if debug:
        level = "DEBUG"
    elif ctx.obj.get("verbose"):
        level = "DEBUG"
    elif ctx.obj.get("quiet"):
        level = "ERROR"
    else:
        level = os.environ.get("CONVERGE_LOG_LEVEL", "INFO")

    setup_logging(
        level=level,
        log_file=os.environ.get("CONVERGE_LOG_FILE"),
        log_file_level=os.environ.get("CONVERGE_LOG_FILE_LEVEL"),
        quiet_third_party=not debug,
        dry_run=dry_run,
        diagnostic=debug,
    )


@click.group()
@click.version_option(version=__version__, prog_name="converge")
@click.option("--verbose", "-v", is_flag=True, help="Trace every step (DEBUG).")
@click.option("--quiet", "-q", is_flag=True, help="Only show errors.")
@click.option("--debug", is_flag=True, help="Full diagnostic logging with source locations.")
@click.option(
    "--conf-dir",
    "conf_dir",
    type=click.Path(file_okay=False),
    default=None,
    help="Configuration directory (default: $CONVERGE_CONF_DIR or ./conf.d).",
)
@click.pass_context
def cli(
    ctx: click.Context,
    verbose: bool,
    quiet: bool,
    debug: bool,
    conf_dir: str | None,
) -> None:
    """converge — declarative, re-runnable macOS workstation setup."""
    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose
    ctx.obj["quiet"] = quiet
    ctx.obj["debug"] = debug
    ctx.obj["conf_dir"] = Path(conf_dir) if conf_dir else None

    # ── Logging setup (once, at process start) ──────────────────
    _init_logging(ctx)


def _load_settings_or_exit(ctx: click.Context, **overrides):
    from converge.core.config.settings import ConfigError, load_settings

    try:
        return load_settings(conf_dir=ctx.obj.get("conf_dir"), overrides=overrides)
    except ConfigError as e:
        click.secho(f"❌ {e}", fg="red", err=True)
        sys.exit(1)


def _echo_report(ctx: click.Context, report) -> None:
    for record in report.records:
        icon, color = _OUTCOME_STYLE.get(record.outcome.value, ("•", "white"))
        directive = record.directive
        click.secho(f"   {icon} {directive.name}", fg=color, nl=False)
        click.echo(f"  [{directive.category}/{directive.method}] {record.outcome.value}")
        if record.error:
            for line in record.error.split("\n")[:5]:
                click.echo(f"     │ {line}")
        elif ctx.obj.get("verbose") and record.artifact is not None:
            click.echo(f"     │ {record.artifact.describe()}")


def _run(ctx: click.Context, personal: bool, cleanup: bool, dry_run: bool, as_json: bool) -> None:
    from converge.core.use_cases.run import run_converge

    _init_logging(ctx, dry_run=dry_run)
    settings = _load_settings_or_exit(ctx, personal=personal, cleanup=cleanup, dry_run=dry_run)
    result = run_converge(settings)

    if as_json:
        click.echo(json.dumps(result.to_dict(), indent=2))
        sys.exit(result.exit_code)

    if result.error:
        click.secho(f"❌ {result.error}", fg="red")
        sys.exit(result.exit_code)

    report = result.report or result.plan
    assert report is not None

    mode_label = "[dry-run] " if dry_run else ""
    click.secho(f"\n⚡ {mode_label}converge — {settings.conf_dir}", fg="cyan", bold=True)
    click.echo(f"   Files: {len(result.config_files)} | Directives: {report.total}")
    click.echo()
    _echo_report(ctx, report)

    if result.parse_warnings:
        click.echo()
        click.secho("⚠️  Skipped lines:", fg="yellow")
        for warning in result.parse_warnings:
            click.echo(f"   • {warning}")

    click.echo()
    status_color = {"ok": "green", "partial": "yellow", "failed": "red"}.get(
        report.status, "white"
    )
    if dry_run:
        summary = f"   Plan: {report.pending} to install, {report.present} already present"
    else:
        summary = f"   Result: {report.installed} installed, {report.present} already present"
    if report.failed:
        summary += f", {report.failed} failed"
    if report.skipped:
        summary += f", {report.skipped} skipped"
    click.secho(summary, fg=status_color, bold=True)
    click.echo()


@cli.command()
@click.option("--personal", "-p", is_flag=True, help="Include personal_*.conf files.")
@click.option("--cleanup", "-c", is_flag=True, help="Remove old installer files afterwards.")
@click.option("--dry-run", "-d", is_flag=True, help="Show what would be installed; change nothing.")
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def run(ctx: click.Context, personal: bool, cleanup: bool, dry_run: bool, as_json: bool) -> None:
    """Converge this machine to the configuration.

    Examples:

        converge run

        converge run --personal --cleanup

        converge run --dry-run
    """
    _run(ctx, personal=personal, cleanup=cleanup, dry_run=dry_run, as_json=as_json)


@cli.command()
@click.option("--personal", "-p", is_flag=True, help="Include personal_*.conf files.")
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def plan(ctx: click.Context, personal: bool, as_json: bool) -> None:
    """Show what `run` would do (same as `run --dry-run`)."""
    _run(ctx, personal=personal, cleanup=False, dry_run=True, as_json=as_json)


@cli.group()
def config() -> None:
    """Configuration commands."""


@config.command("check")
@click.option("--personal", "-p", is_flag=True, help="Include personal_*.conf files.")
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def config_check(ctx: click.Context, personal: bool, as_json: bool) -> None:
    """Validate the configuration directory."""
    from converge.core.use_cases.config_check import check_config

    settings = _load_settings_or_exit(ctx, personal=personal)
    result = check_config(settings.conf_dir, include_personal=personal)

    if as_json:
        click.echo(json.dumps(result.to_dict(), indent=2))
        sys.exit(0 if result.valid else 1)

    if result.valid:
        click.secho("✅ Configuration is valid", fg="green", bold=True)
        click.echo(f"   Files: {len(result.files)}")
        click.echo(f"   Directives: {len(result.directives)}")
    else:
        click.secho("❌ Configuration errors:", fg="red", bold=True)
        for err in result.errors:
            click.echo(f"   • {err}")

    if result.warnings:
        click.echo()
        click.secho("⚠️  Warnings:", fg="yellow")
        for warn in result.warnings:
            click.echo(f"   • {warn}")

    if not result.valid:
        click.echo()
        sys.exit(1)

    click.echo()


if __name__ == "__main__":
    cli()
