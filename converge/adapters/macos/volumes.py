"""
macOS volume helpers — disk image mounting and bundle copying.

Shared by the disk-image and archive installers.  Every mount made
through ``mounted_image`` is detached on all paths, and its mount
point directory removed afterwards.
"""

from __future__ import annotations

import logging
import os
import shutil
import tempfile
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path

from converge.core.errors import InstallStepFailed
from converge.core.services.app_install.execution.subprocess_runner import CommandRunner

logger = logging.getLogger(__name__)

APP_BUNDLE_SUFFIX = ".app"
_HDIUTIL_TIMEOUT = 300


def find_first(root: Path, suffix: str, *, directory: bool = True) -> Path | None:
    """Shallowest entry under ``root`` whose name ends in ``suffix``.

    Siblings are compared by name.  ``.app`` bundles are never descended
    into, so a helper app nested inside a bundle is not picked over the
    bundle itself.
    """
    level = [root]
    while level:
        next_level: list[Path] = []
        for parent in level:
            try:
                entries = sorted(parent.iterdir(), key=lambda p: p.name)
            except OSError:
                continue
            for entry in entries:
                is_dir = entry.is_dir() and not entry.is_symlink()
                if entry.name.lower().endswith(suffix) and is_dir == directory:
                    return entry
                if is_dir and not entry.name.lower().endswith(APP_BUNDLE_SUFFIX):
                    next_level.append(entry)
        level = next_level
    return None


def find_app_bundle(root: Path) -> Path | None:
    """First ``*.app`` bundle under ``root``."""
    return find_first(root, APP_BUNDLE_SUFFIX, directory=True)


def attach_image(runner: CommandRunner, image: Path, mountpoint: Path) -> None:
    """Mount ``image`` at ``mountpoint`` without showing it in Finder.

    Raises:
        InstallStepFailed: If hdiutil refuses the image.
    """
    logger.debug("Mounting %s at %s", image.name, mountpoint)
    result = runner.run(
        ["hdiutil", "attach", str(image), "-nobrowse", "-quiet", "-mountpoint", str(mountpoint)],
        timeout=_HDIUTIL_TIMEOUT,
    )
    if not result["ok"]:
        raise InstallStepFailed(f"Failed to mount {image.name}: {result.get('error', '')}")


def detach_image(runner: CommandRunner, mountpoint: Path) -> bool:
    """Unmount ``mountpoint``.  Logs instead of raising."""
    result = runner.run(["hdiutil", "detach", str(mountpoint), "-quiet"], timeout=_HDIUTIL_TIMEOUT)
    if not result["ok"]:
        logger.warning("Failed to detach %s: %s", mountpoint, result.get("error", ""))
        return False
    return True


@contextmanager
def mounted_image(
    runner: CommandRunner,
    image: Path,
    work_dir: str | os.PathLike[str] | None = None,
) -> Iterator[Path]:
    """Mount ``image`` on a fresh temporary mount point for the block.

    Raises:
        InstallStepFailed: If the image cannot be mounted.
    """
    mountpoint = Path(tempfile.mkdtemp(prefix="converge-mnt-", dir=work_dir))
    attached = False
    try:
        attach_image(runner, image, mountpoint)
        attached = True
        yield mountpoint
    finally:
        if attached:
            detach_image(runner, mountpoint)
        try:
            mountpoint.rmdir()
        except FileNotFoundError:
            pass
        except OSError as e:
            logger.warning("Could not remove mount point %s: %s", mountpoint, e)


def copy_bundle(runner: CommandRunner, bundle: Path, applications_dir: str) -> Path:
    """``cp -R`` a bundle into the applications directory.

    A bundle of the same name already there is removed first, so the
    copy replaces it instead of merging into it.

    Returns:
        The installed bundle path.

    Raises:
        InstallStepFailed: If the copy fails; a partial copy is removed.
    """
    destination = Path(applications_dir) / bundle.name
    if destination.exists() or destination.is_symlink():
        logger.warning("Replacing existing %s in %s", bundle.name, applications_dir)
        try:
            if destination.is_dir() and not destination.is_symlink():
                shutil.rmtree(destination)
            else:
                destination.unlink()
        except OSError as e:
            raise InstallStepFailed(f"Failed to remove existing {destination}: {e}") from e

    logger.debug("Copying %s to %s", bundle.name, applications_dir)
    result = runner.run(["cp", "-R", str(bundle), f"{applications_dir.rstrip('/')}/"])
    if not result["ok"]:
        if destination.exists():
            shutil.rmtree(destination, ignore_errors=True)
        raise InstallStepFailed(
            f"Failed to copy {bundle.name} to {applications_dir}: {result.get('error', '')}"
        )
    return destination
