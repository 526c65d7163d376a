"""
Installer cleanup — remove stale installer downloads.

Only regular files matching the installer patterns are touched, and
only once they are older than the directory's age limit.  Failures to
delete a single file are logged and skipped.
"""

from __future__ import annotations

import fnmatch
import logging
import os
import tempfile
import time
from dataclasses import dataclass, field
from pathlib import Path

logger = logging.getLogger(__name__)

INSTALLER_PATTERNS = ("*.dmg", "*.pkg", "*.zip", "installer*", "*install*")

_DAY = 24 * 60 * 60


@dataclass
class CleanupTarget:
    """A directory and how old an installer in it must be to go."""

    directory: Path
    max_age_days: int


@dataclass
class CleanupResult:
    removed: list[Path] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "removed": [str(p) for p in self.removed],
            "errors": self.errors,
        }


def default_targets() -> list[CleanupTarget]:
    """``~/Downloads`` (7 days) and the system temp directory (1 day)."""
    return [
        CleanupTarget(Path.home() / "Downloads", 7),
        CleanupTarget(Path(tempfile.gettempdir()), 1),
    ]


def matches_installer(name: str) -> bool:
    return any(fnmatch.fnmatchcase(name, pattern) for pattern in INSTALLER_PATTERNS)


def _stale_files(target: CleanupTarget, now: float):
    cutoff = now - target.max_age_days * _DAY
    for dirpath, _dirnames, filenames in os.walk(target.directory):
        for filename in filenames:
            if not matches_installer(filename):
                continue
            path = Path(dirpath) / filename
            try:
                if path.is_symlink() or not path.is_file():
                    continue
                if path.stat().st_mtime < cutoff:
                    yield path
            except OSError:
                continue


def cleanup_installers(
    targets: list[CleanupTarget] | None = None,
    now: float | None = None,
) -> CleanupResult:
    """Delete old installer files from each target directory."""
    logger.info("Cleaning up old installers...")
    now = time.time() if now is None else now
    result = CleanupResult()

    for target in targets if targets is not None else default_targets():
        if not target.directory.is_dir():
            logger.debug("Skipping missing directory %s", target.directory)
            continue
        for path in list(_stale_files(target, now)):
            try:
                path.unlink()
            except OSError as e:
                result.errors.append(f"{path}: {e}")
                logger.debug("Could not remove %s: %s", path, e)
                continue
            result.removed.append(path)
            logger.debug("Removed %s", path)

    logger.info("Cleanup completed (%d files removed)", len(result.removed))
    return result
