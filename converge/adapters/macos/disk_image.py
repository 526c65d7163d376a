"""
Disk image installer — download a ``.dmg``, copy its ``.app`` bundle.

Used for every DMG-producing route (direct URL, repository release,
release web page, vendor page): resolution differs, installation is
the same.

    download → hdiutil attach → find *.app → cp -R → hdiutil detach

The download directory and the mount point are temporary and removed
on every path, success or failure.
"""

from __future__ import annotations

import logging
import tempfile
from pathlib import Path

from converge.adapters.base import InstallContext, Installer
from converge.adapters.macos.volumes import copy_bundle, find_app_bundle, mounted_image
from converge.core.errors import ConvergeError, InstallStepFailed
from converge.core.models.action import Receipt
from converge.core.services.app_install.execution.download import HttpClient
from converge.core.services.app_install.execution.subprocess_runner import CommandRunner

logger = logging.getLogger(__name__)


class DiskImageInstaller(Installer):
    """Install an application bundle shipped inside a disk image.

    Args:
        runner: Runs hdiutil and cp.
        http: Downloads the image.
        work_dir: Parent for temporary directories (default: system temp).
    """

    def __init__(
        self,
        runner: CommandRunner | None = None,
        http: HttpClient | None = None,
        work_dir: str | None = None,
    ):
        self.runner = runner or CommandRunner()
        self.http = http or HttpClient()
        self.work_dir = work_dir

    @property
    def name(self) -> str:
        return "disk-image"

    def is_available(self) -> bool:
        return self.runner.which("hdiutil") is not None

    def validate(self, context: InstallContext) -> tuple[bool, str]:
        if context.artifact is None or not context.artifact.url:
            return False, "No download URL resolved"
        return True, ""

    def install(self, context: InstallContext) -> Receipt:
        directive = context.directive
        artifact = context.artifact
        assert artifact is not None

        logger.info("Installing %s from DMG...", directive.name)
        try:
            with tempfile.TemporaryDirectory(prefix="converge-", dir=self.work_dir) as tmp:
                image = self.http.download(artifact.url, Path(tmp) / Path(artifact.filename).name)
                with mounted_image(self.runner, image, self.work_dir) as mountpoint:
                    bundle = find_app_bundle(mountpoint)
                    if bundle is None:
                        raise InstallStepFailed(f"No .app bundle found in {artifact.filename}")
                    installed = copy_bundle(self.runner, bundle, context.applications_dir)
        except ConvergeError as e:
            return Receipt.failure(
                installer=self.name,
                directive=directive.name,
                error=str(e),
                error_kind=e.kind,
                metadata={"url": artifact.url},
            )
        except OSError as e:
            return Receipt.failure(
                installer=self.name,
                directive=directive.name,
                error=f"Filesystem error while installing {directive.name}: {e}",
                metadata={"url": artifact.url},
            )

        logger.info("%s installed successfully", directive.name)
        return Receipt.success(
            installer=self.name,
            directive=directive.name,
            output=str(installed),
            metadata={"url": artifact.url, "bundle": installed.name},
        )
