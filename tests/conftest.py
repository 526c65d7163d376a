"""
Shared test fixtures and configuration.
"""

import logging
from pathlib import Path

import pytest

from tests.fakes import FakeHttp, FakeRunner


@pytest.fixture
def project_root() -> Path:
    """Return the project root directory."""
    return Path(__file__).parent.parent


@pytest.fixture
def conf_dir(tmp_path: Path) -> Path:
    """An empty configuration directory."""
    path = tmp_path / "conf.d"
    path.mkdir()
    return path


@pytest.fixture
def apps_dir(tmp_path: Path) -> Path:
    """A stand-in for /Applications."""
    path = tmp_path / "Applications"
    path.mkdir()
    return path


@pytest.fixture
def work_dir(tmp_path: Path) -> Path:
    """Parent directory for installer temp dirs and mount points."""
    path = tmp_path / "work"
    path.mkdir()
    return path


@pytest.fixture
def runner() -> FakeRunner:
    return FakeRunner()


@pytest.fixture
def http() -> FakeHttp:
    return FakeHttp()


@pytest.fixture(autouse=True)
def _restore_logging():
    """CLI invocations reconfigure the root logger; undo that after each test."""
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    yield
    root.handlers[:] = handlers
    root.setLevel(level)
