"""
Tests for the run use case — the full plan → elevate → apply sequence.
"""

import logging
from pathlib import Path

import pytest

from converge.adapters.mock import MockInstaller
from converge.adapters.registry import InstallerRegistry
from converge.core.config.settings import Settings
from converge.core.engine.executor import ConvergenceEnv
from converge.core.errors import PrivilegeDenied
from converge.core.models.action import Receipt
from converge.core.models.artifact import Arch
from converge.core.services.app_install.detection.presence import PresenceChecker
from converge.core.services.cleanup import CleanupTarget
from converge.core.services.shell_profile import BEGIN_MARKER
from converge.core.use_cases.run import RunResult, run_converge
from tests.fakes import FakeRunner

HOST = "15.7"


class _Elevator:
    def __init__(self, error=None):
        self.calls = 0
        self.error = error

    def __call__(self, runner):
        self.calls += 1
        if self.error is not None:
            raise self.error


@pytest.fixture
def home(tmp_path: Path) -> Path:
    path = tmp_path / "home"
    path.mkdir()
    return path


@pytest.fixture
def tools() -> FakeRunner:
    """A runner on a machine that already has brew, mas and asdf."""
    return FakeRunner(programs={"brew", "mas", "asdf", "sudo"})


def _settings(conf_dir: Path, home: Path, **kwargs) -> Settings:
    return Settings(conf_dir=conf_dir, shell_profile=home / ".zshrc", **kwargs)


def _env(runner, privileged=True):
    presence = PresenceChecker(runner)
    registry = InstallerRegistry(verifier=presence.check)
    mocks = {}
    for name in ("shell", "disk-image", "archive", "brew", "asdf", "mas"):
        mocks[name] = MockInstaller(installer_name=name, create_target=True, privileged=privileged)
        registry.register(mocks[name])
    return ConvergenceEnv(presence=presence, registry=registry, arch=Arch.ARM64), mocks


def _write_conf(conf_dir: Path, home: Path, *names: str) -> None:
    lines = [f"custom={n}::command::install-{n}::{home}/{n}" for n in names]
    (conf_dir / "apps.conf").write_text("\n".join(lines) + "\n")


class TestRunAborts:
    def test_unsupported_host(self, conf_dir, home, tools):
        elevate = _Elevator()
        result = run_converge(_settings(conf_dir, home), runner=tools, elevate=elevate,
                              host_version="14.7")
        assert result.error_kind == "unsupported_host"
        assert result.exit_code == 1
        assert elevate.calls == 0
        assert result.plan is None

    def test_missing_conf_dir(self, tmp_path, home, tools):
        result = run_converge(_settings(tmp_path / "nope", home), runner=tools,
                              elevate=_Elevator(), host_version=HOST)
        assert result.error_kind == "config"
        assert result.exit_code == 1

    def test_privilege_denied(self, conf_dir, home, tools):
        _write_conf(conf_dir, home, "a")
        env, mocks = _env(tools)
        elevate = _Elevator(PrivilegeDenied("no sudo for you"))

        result = run_converge(_settings(conf_dir, home), runner=tools, env=env,
                              elevate=elevate, host_version=HOST)

        assert result.error_kind == "privilege_denied"
        assert result.exit_code == 1
        assert mocks["shell"].call_count == 0
        assert result.report is None


class TestDryRun:
    def test_changes_nothing(self, conf_dir, home, tools):
        _write_conf(conf_dir, home, "a", "b")
        (conf_dir / "zshrc_modifications").write_text("alias ll='ls -la'\n")
        env, mocks = _env(tools)
        elevate = _Elevator()

        result = run_converge(_settings(conf_dir, home, dry_run=True), runner=tools,
                              env=env, elevate=elevate, host_version=HOST)

        assert result.exit_code == 0
        assert result.plan.pending == 2
        assert result.elevation_needed
        assert result.report is None
        assert result.profile.pending
        assert elevate.calls == 0
        assert mocks["shell"].call_count == 0
        assert list(home.iterdir()) == []

    def test_log_lines(self, conf_dir, home, tools, caplog):
        caplog.set_level(logging.INFO)
        _write_conf(conf_dir, home, "a")
        env, _ = _env(tools)
        run_converge(_settings(conf_dir, home, dry_run=True), runner=tools,
                     env=env, elevate=_Elevator(), host_version=HOST)
        assert "Will install 'a' via custom command" in caplog.text
        assert "DRY RUN COMPLETE - No changes were made" in caplog.text


class TestApply:
    def test_full_run(self, conf_dir, home, tools):
        _write_conf(conf_dir, home, "a", "b")
        (conf_dir / "zshrc_modifications").write_text("alias ll='ls -la'\n")
        env, mocks = _env(tools)
        elevate = _Elevator()

        result = run_converge(_settings(conf_dir, home), runner=tools, env=env,
                              elevate=elevate, host_version=HOST)

        assert result.exit_code == 0
        assert elevate.calls == 1
        assert result.report.installed == 2
        assert (home / "a").exists()
        assert result.profile.changed
        assert BEGIN_MARKER in (home / ".zshrc").read_text()
        assert result.bootstrap is not None
        assert not result.bootstrap.needed
        assert result.cleanup is None

    def test_second_run_needs_no_elevation(self, conf_dir, home, tools, caplog):
        caplog.set_level(logging.INFO)
        _write_conf(conf_dir, home, "a")
        env, mocks = _env(tools)
        run_converge(_settings(conf_dir, home), runner=tools, env=env,
                     elevate=_Elevator(), host_version=HOST)

        elevate = _Elevator()
        result = run_converge(_settings(conf_dir, home), runner=tools, env=env,
                              elevate=elevate, host_version=HOST)

        assert elevate.calls == 0
        assert result.report.installed == 0
        assert result.report.present == 1
        assert mocks["shell"].call_count == 1
        assert "No elevated permissions required" in caplog.text

    def test_missing_tools_need_elevation(self, conf_dir, home):
        runner = FakeRunner(programs={"sudo"})
        env, _ = _env(runner)
        elevate = _Elevator()
        result = run_converge(_settings(conf_dir, home, dry_run=True), runner=runner, env=env,
                              elevate=elevate, host_version=HOST)
        assert result.elevation_needed
        assert result.plan.total == 0

    def test_unprivileged_installs_skip_prompt(self, conf_dir, home, tools):
        _write_conf(conf_dir, home, "a")
        env, _ = _env(tools, privileged=False)
        elevate = _Elevator()
        result = run_converge(_settings(conf_dir, home), runner=tools, env=env,
                              elevate=elevate, host_version=HOST)
        assert elevate.calls == 0
        assert result.report.installed == 1

    def test_failed_directive_still_exits_zero(self, conf_dir, home, tools, caplog):
        _write_conf(conf_dir, home, "a", "b")
        env, mocks = _env(tools)
        mocks["shell"].set_failure("a", error="exit 3")

        result = run_converge(_settings(conf_dir, home), runner=tools, env=env,
                              elevate=_Elevator(), host_version=HOST)

        assert result.exit_code == 0
        assert result.report.failed == 1
        assert result.report.installed == 1
        assert "Setup completed with 1 failed item(s)" in caplog.text

    def test_reshim_after_asdf_install(self, conf_dir, home, tools):
        (conf_dir / "apps.conf").write_text("asdf=nodejs::install::22.11.0::~/.asdf\n")
        tools.on("asdf", "list", "nodejs", ok=False)
        env, mocks = _env(tools)
        env.registry = InstallerRegistry()
        env.registry.register(mocks["asdf"])
        mocks["asdf"].set_response("nodejs", Receipt.success(
            installer="asdf", directive="nodejs", metadata={"reshim_owed": True},
        ))

        result = run_converge(_settings(conf_dir, home), runner=tools, env=env,
                              elevate=_Elevator(), host_version=HOST)

        assert result.reshimmed
        assert tools.called("asdf", "reshim") == [["asdf", "reshim"]]

    def test_cleanup_when_asked(self, conf_dir, home, tools, tmp_path):
        downloads = tmp_path / "Downloads"
        downloads.mkdir()
        stale = downloads / "Old.dmg"
        stale.write_bytes(b"")
        env, _ = _env(tools)

        result = run_converge(
            _settings(conf_dir, home, cleanup=True), runner=tools, env=env,
            elevate=_Elevator(), host_version=HOST,
            cleanup_targets=[CleanupTarget(downloads, -1)],
        )

        assert result.cleanup.removed == [stale]
        assert not stale.exists()

    def test_personal_files_only_on_request(self, conf_dir, home, tools):
        (conf_dir / "personal_apps.conf").write_text(
            f"custom=p::command::install-p::{home}/p\n",
        )
        env, mocks = _env(tools)

        result = run_converge(_settings(conf_dir, home), runner=tools, env=env,
                              elevate=_Elevator(), host_version=HOST)
        assert result.report.total == 0

        result = run_converge(_settings(conf_dir, home, personal=True), runner=tools, env=env,
                              elevate=_Elevator(), host_version=HOST)
        assert result.report.installed == 1


class TestRunResult:
    def test_exit_code(self):
        assert RunResult().exit_code == 0
        assert RunResult(error="boom").exit_code == 1

    def test_to_dict(self):
        data = RunResult(dry_run=True, error="boom", error_kind="config").to_dict()
        assert data["dry_run"] is True
        assert data["error_kind"] == "config"
        assert "plan" not in data
