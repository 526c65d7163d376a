"""
Tests for CLI commands — run, plan, config check, and global options.
"""

import json
from pathlib import Path

import pytest
from click.testing import CliRunner

from converge.core.models.directive import InstallDirective
from converge.core.models.outcome import ConvergenceReport, Outcome, OutcomeRecord
from converge.core.use_cases.run import RunResult
from converge.main import cli


class TestCLIGlobal:
    """Tests for global CLI behavior."""

    def test_help(self):
        runner = CliRunner()
        result = runner.invoke(cli, ["--help"])
        assert result.exit_code == 0
        assert "macOS workstation setup" in result.output
        for command in ("run", "plan", "config"):
            assert command in result.output

    def test_version(self):
        runner = CliRunner()
        result = runner.invoke(cli, ["--version"])
        assert result.exit_code == 0
        assert "0.1.0" in result.output

    def test_run_help_lists_flags(self):
        result = CliRunner().invoke(cli, ["run", "--help"])
        assert result.exit_code == 0
        for flag in ("--personal", "--cleanup", "--dry-run", "-p", "-c", "-d"):
            assert flag in result.output


class TestConfigCheck:
    def test_valid(self, conf_dir: Path):
        (conf_dir / "apps.conf").write_text(
            "# tools\nbrew=fzf::install::fzf::/opt/homebrew/bin/fzf\n"
        )
        result = CliRunner().invoke(cli, ["--conf-dir", str(conf_dir), "config", "check"])
        assert result.exit_code == 0
        assert "Configuration is valid" in result.output
        assert "Directives: 1" in result.output

    def test_invalid_line(self, conf_dir: Path):
        (conf_dir / "apps.conf").write_text("foo::bar\n")
        result = CliRunner().invoke(cli, ["--conf-dir", str(conf_dir), "config", "check"])
        assert result.exit_code == 1
        assert "Invalid config line format" in result.output

    def test_json_with_warnings(self, conf_dir: Path):
        (conf_dir / "apps.conf").write_text(
            "brew=fzf::install::fzf::/x\n"
            "brew=fzf::install::fzf::/x\n"
            "custom=Thing::pkg::https://x/t.pkg::/Applications/Thing.app\n"
        )
        result = CliRunner().invoke(
            cli, ["-q", "--conf-dir", str(conf_dir), "config", "check", "--json"],
        )
        assert result.exit_code == 0
        data = json.loads(result.output)
        assert data["valid"] is True
        assert data["directive_count"] == 3
        assert any("No installer for 'custom/pkg'" in w for w in data["warnings"])
        assert any("brew=fzf" in w for w in data["warnings"])

    def test_missing_directory(self, tmp_path: Path):
        result = CliRunner().invoke(
            cli, ["-q", "--conf-dir", str(tmp_path / "nope"), "config", "check", "--json"],
        )
        assert result.exit_code == 1
        assert json.loads(result.output)["valid"] is False

    def test_personal_files(self, conf_dir: Path):
        (conf_dir / "personal_apps.conf").write_text("brew=jq::install::jq::/x\n")
        args = ["-q", "--conf-dir", str(conf_dir), "config", "check", "--json"]
        without = json.loads(CliRunner().invoke(cli, args).output)
        with_personal = json.loads(CliRunner().invoke(cli, [*args, "--personal"]).output)
        assert without["directive_count"] == 0
        assert with_personal["directive_count"] == 1


# ── run / plan (use case patched) ────────────────────────────────────


def _record(name: str, outcome: Outcome, error: str | None = None) -> OutcomeRecord:
    return OutcomeRecord(
        directive=InstallDirective(
            category="brew", name=name, method="install", payload=name, target_path="/x",
        ),
        outcome=outcome,
        error=error,
    )


@pytest.fixture
def fake_run(monkeypatch):
    """Replace the run use case; records the settings it was called with."""
    calls = []

    def install(result: RunResult):
        def fake(settings, **kwargs):
            calls.append(settings)
            return result
        monkeypatch.setattr("converge.core.use_cases.run.run_converge", fake)
        return calls

    return install


class TestRunCommand:
    def test_plan_json(self, conf_dir: Path, fake_run):
        plan = ConvergenceReport(mode="plan", elevation_needed=True, records=[
            _record("fzf", Outcome.WOULD_INSTALL),
        ])
        calls = fake_run(RunResult(dry_run=True, plan=plan, elevation_needed=True))

        result = CliRunner().invoke(cli, ["-q", "--conf-dir", str(conf_dir), "plan", "--json"])

        assert result.exit_code == 0
        data = json.loads(result.output)
        assert data["dry_run"] is True
        assert data["plan"]["would_install"] == 1
        assert calls[0].dry_run is True

    def test_run_flags_reach_settings(self, conf_dir: Path, fake_run):
        calls = fake_run(RunResult(report=ConvergenceReport()))
        result = CliRunner().invoke(
            cli, ["--conf-dir", str(conf_dir), "run", "-p", "-c"],
        )
        assert result.exit_code == 0
        settings = calls[0]
        assert settings.personal is True
        assert settings.cleanup is True
        assert settings.dry_run is False

    def test_run_summary(self, conf_dir: Path, fake_run):
        report = ConvergenceReport(records=[
            _record("fzf", Outcome.INSTALLED),
            _record("jq", Outcome.ALREADY_PRESENT),
            _record("bat", Outcome.FAILED, error="No available formula"),
        ])
        fake_run(RunResult(report=report))

        result = CliRunner().invoke(cli, ["--conf-dir", str(conf_dir), "run"])

        assert result.exit_code == 0
        assert "Result: 1 installed, 1 already present, 1 failed" in result.output
        assert "No available formula" in result.output

    def test_dry_run_summary(self, conf_dir: Path, fake_run):
        plan = ConvergenceReport(mode="plan", records=[_record("fzf", Outcome.WOULD_INSTALL)])
        fake_run(RunResult(dry_run=True, plan=plan))

        result = CliRunner().invoke(cli, ["--conf-dir", str(conf_dir), "run", "--dry-run"])

        assert result.exit_code == 0
        assert "[dry-run]" in result.output
        assert "Plan: 1 to install, 0 already present" in result.output

    def test_aborted_run_exits_nonzero(self, conf_dir: Path, fake_run):
        fake_run(RunResult(error="sudo denied", error_kind="privilege_denied"))
        result = CliRunner().invoke(cli, ["--conf-dir", str(conf_dir), "run"])
        assert result.exit_code == 1
        assert "sudo denied" in result.output

    def test_bad_settings_file(self, conf_dir: Path):
        (conf_dir / "settings.yml").write_text("colour: always\n")
        result = CliRunner().invoke(cli, ["--conf-dir", str(conf_dir), "run"])
        assert result.exit_code == 1
