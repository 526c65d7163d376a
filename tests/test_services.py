"""
Tests for the run-level services — shell profile, cleanup, bootstrap.
"""

import os
from datetime import datetime
from pathlib import Path

import pytest

from converge.core.services import bootstrap
from converge.core.services.bootstrap import (
    _add_homebrew_to_path,
    bootstrap_package_tools,
    check_bootstrap,
    install_homebrew,
    install_mas,
)
from converge.core.services.cleanup import (
    CleanupTarget,
    cleanup_installers,
    default_targets,
    matches_installer,
)
from converge.core.services.shell_profile import (
    BEGIN_MARKER,
    END_MARKER,
    check_profile,
    has_block,
    reconcile_profile,
    render_block,
)
from tests.fakes import FakeRunner

NOW = datetime(2025, 3, 7, 14, 5, 9)
BREW_SCRIPT = f'/bin/bash -c "$(curl -fsSL {bootstrap.HOMEBREW_INSTALL_URL})"'

# ── Shell profile ────────────────────────────────────────────────────


@pytest.fixture
def mods(tmp_path: Path) -> Path:
    path = tmp_path / "zshrc_modifications"
    path.write_text('export PATH="$HOME/bin:$PATH"\nalias ll="ls -la"\n')
    return path


class TestShellProfile:
    def test_render_block(self):
        text = render_block("alias ll='ls -la'\n", NOW)
        assert text == (
            "\n"
            "# macOS Setup Script Modifications\n"
            "# Added on Fri Mar 07 14:05:09 2025\n"
            "# ========================================\n"
            "alias ll='ls -la'\n"
            "\n"
            "# End of macOS Setup Script Modifications\n"
        )

    def test_appends_and_backs_up(self, tmp_path, mods):
        profile = tmp_path / ".zshrc"
        profile.write_text("# existing\n")

        status = reconcile_profile(profile, mods, now=NOW)

        assert status.changed
        assert status.backup == tmp_path / ".zshrc.backup.20250307_140509"
        assert status.backup.read_text() == "# existing\n"
        content = profile.read_text()
        assert content.startswith("# existing\n\n# macOS Setup Script Modifications\n")
        assert 'alias ll="ls -la"' in content
        assert content.rstrip().endswith(END_MARKER)

    def test_second_reconcile_is_noop(self, tmp_path, mods):
        profile = tmp_path / ".zshrc"
        reconcile_profile(profile, mods, now=NOW)
        before = profile.read_text()

        status = reconcile_profile(profile, mods, now=NOW)

        assert status.already_applied
        assert not status.changed
        assert profile.read_text() == before
        assert sorted(p.name for p in tmp_path.iterdir()) == [".zshrc", "zshrc_modifications"]

    def test_missing_profile_created_without_backup(self, tmp_path, mods):
        profile = tmp_path / ".zshrc"
        status = reconcile_profile(profile, mods, now=NOW)
        assert status.changed
        assert status.backup is None
        assert has_block(profile)

    def test_missing_modifications(self, tmp_path, caplog):
        profile = tmp_path / ".zshrc"
        status = reconcile_profile(profile, tmp_path / "nope", now=NOW)
        assert not status.changed
        assert not status.has_modifications
        assert not profile.exists()
        assert "zshrc_modifications file not found" in caplog.text

    def test_marker_anywhere_counts(self, tmp_path, mods):
        profile = tmp_path / ".zshrc"
        profile.write_text(f"a\n{BEGIN_MARKER}\nold stuff\n")
        assert reconcile_profile(profile, mods, now=NOW).already_applied

    def test_check_is_read_only(self, tmp_path, mods):
        profile = tmp_path / ".zshrc"
        status = check_profile(profile, mods)
        assert status.pending
        assert not profile.exists()
        assert status.to_dict()["has_modifications"] is True


# ── Cleanup ──────────────────────────────────────────────────────────

DAY = 24 * 60 * 60


def _touch(path: Path, age_days: float, now: float) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(b"x")
    mtime = now - age_days * DAY
    os.utime(path, (mtime, mtime))
    return path


class TestCleanup:
    @pytest.mark.parametrize("name, expected", [
        ("Foo.dmg", True),
        ("Foo.pkg", True),
        ("Foo.zip", True),
        ("installer-v2", True),
        ("reinstall.sh", True),
        ("notes.txt", False),
        ("Foo.DMG", False),
    ])
    def test_patterns(self, name, expected):
        assert matches_installer(name) is expected

    def test_removes_only_old_installers(self, tmp_path):
        now = 1_700_000_000.0
        old = _touch(tmp_path / "Old.dmg", 8, now)
        fresh = _touch(tmp_path / "New.dmg", 2, now)
        other = _touch(tmp_path / "notes.txt", 30, now)
        nested = _touch(tmp_path / "sub" / "Old.pkg", 10, now)

        result = cleanup_installers([CleanupTarget(tmp_path, 7)], now=now)

        assert sorted(result.removed) == sorted([old, nested])
        assert fresh.exists()
        assert other.exists()
        assert result.errors == []

    def test_symlinks_untouched(self, tmp_path):
        now = 1_700_000_000.0
        real = _touch(tmp_path / "real" / "keep.txt", 30, now)
        link = tmp_path / "link.dmg"
        link.symlink_to(real)
        result = cleanup_installers([CleanupTarget(tmp_path, 0)], now=now)
        assert result.removed == []
        assert link.is_symlink()

    def test_missing_directory_skipped(self, tmp_path):
        result = cleanup_installers([CleanupTarget(tmp_path / "nope", 1)])
        assert result.removed == []

    def test_default_targets(self, monkeypatch, tmp_path):
        monkeypatch.setenv("HOME", str(tmp_path))
        targets = default_targets()
        assert targets[0].directory == tmp_path / "Downloads"
        assert [t.max_age_days for t in targets] == [7, 1]


# ── Bootstrap ────────────────────────────────────────────────────────


@pytest.fixture
def brew_bin(tmp_path, monkeypatch) -> Path:
    """Where a freshly 'installed' brew shows up."""
    bin_dir = tmp_path / "homebrew" / "bin"
    bin_dir.mkdir(parents=True)
    monkeypatch.setattr(bootstrap, "HOMEBREW_BIN_DIRS", (str(bin_dir),))
    monkeypatch.setenv("PATH", "/usr/bin:/bin")
    return bin_dir


class TestBootstrap:
    def test_check(self):
        status = check_bootstrap(FakeRunner(programs={"brew"}))
        assert not status.brew_missing
        assert status.mas_missing
        assert status.needed

    def test_nothing_needed(self):
        runner = FakeRunner(programs={"brew", "mas"})
        status = bootstrap_package_tools(runner)
        assert not status.needed
        assert status.error is None
        assert runner.calls == []

    def test_installs_homebrew_then_mas(self, brew_bin):
        runner = FakeRunner()

        def brew_appears(cmd):
            (brew_bin / "brew").write_text("#!/bin/sh\n")
            runner.programs.add("brew")

        runner.on(BREW_SCRIPT, effect=brew_appears)
        runner.on("brew", "install", "mas", effect=lambda cmd: runner.programs.add("mas"))

        status = bootstrap_package_tools(runner)

        assert status.brew_installed
        assert status.mas_installed
        assert status.error is None
        assert os.environ["PATH"].split(os.pathsep)[0] == str(brew_bin)
        assert runner.kwargs[0]["shell"] is True
        assert runner.calls[1] == ["brew", "install", "mas"]

    def test_homebrew_failure_is_reported(self, brew_bin):
        runner = FakeRunner()
        runner.on(BREW_SCRIPT, ok=False, error="curl: (6)")

        status = bootstrap_package_tools(runner)

        assert not status.brew_installed
        assert not status.mas_installed
        assert status.error == "Homebrew is not available"
        assert len(runner.calls) == 1

    def test_install_mas_failure(self):
        runner = FakeRunner(programs={"brew"})
        runner.on("brew", "install", "mas", ok=False)
        assert not install_mas(runner)

    def test_homebrew_already_installed(self):
        runner = FakeRunner(programs={"brew"})
        assert install_homebrew(runner)
        assert runner.calls == []

    def test_add_to_path_does_not_duplicate(self, brew_bin):
        (brew_bin / "brew").write_text("")
        env = {"PATH": f"/usr/bin:{brew_bin}"}
        assert _add_homebrew_to_path(env) == str(brew_bin)
        assert env["PATH"] == f"/usr/bin:{brew_bin}"
