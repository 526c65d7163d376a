"""
Archive installer — download a ``.zip``, install what is inside.

The archive is unpacked with ``unzip -q``.  An ``.app`` bundle inside
is copied directly; otherwise the first nested ``.dmg`` is mounted and
its bundle copied (same mount discipline as the disk-image installer).
"""

from __future__ import annotations

import logging
import tempfile
from pathlib import Path

from converge.adapters.base import InstallContext, Installer
from converge.adapters.macos.volumes import (
    copy_bundle,
    find_app_bundle,
    find_first,
    mounted_image,
)
from converge.core.errors import ConvergeError, InstallStepFailed
from converge.core.models.action import Receipt
from converge.core.services.app_install.execution.download import HttpClient
from converge.core.services.app_install.execution.subprocess_runner import CommandRunner
from converge.core.services.app_install.resolver.preference import DISK_IMAGE_EXT

logger = logging.getLogger(__name__)


class ArchiveInstaller(Installer):
    """Install an application bundle shipped in a zip archive."""

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
        return "archive"

    def is_available(self) -> bool:
        return self.runner.which("unzip") is not None

    def validate(self, context: InstallContext) -> tuple[bool, str]:
        if context.artifact is None or not context.artifact.url:
            return False, "No download URL resolved"
        return True, ""

    def _extract(self, archive: Path, dest: Path) -> None:
        dest.mkdir()
        result = self.runner.run(["unzip", "-q", str(archive), "-d", str(dest)], timeout=600)
        if not result["ok"]:
            raise InstallStepFailed(f"Failed to extract {archive.name}: {result.get('error', '')}")

    def _install_from(self, extracted: Path, applications_dir: str) -> Path:
        bundle = find_app_bundle(extracted)
        if bundle is not None:
            return copy_bundle(self.runner, bundle, applications_dir)

        image = find_first(extracted, DISK_IMAGE_EXT, directory=False)
        if image is None:
            raise InstallStepFailed("No .app bundle or .dmg file found in zip archive")

        logger.debug("Found nested disk image: %s", image.name)
        with mounted_image(self.runner, image, self.work_dir) as mountpoint:
            bundle = find_app_bundle(mountpoint)
            if bundle is None:
                raise InstallStepFailed(f"No .app bundle found in {image.name}")
            return copy_bundle(self.runner, bundle, applications_dir)

    def install(self, context: InstallContext) -> Receipt:
        directive = context.directive
        artifact = context.artifact
        assert artifact is not None

        logger.info("Installing %s from ZIP...", directive.name)
        try:
            with tempfile.TemporaryDirectory(prefix="converge-", dir=self.work_dir) as tmp:
                archive = self.http.download(artifact.url, Path(tmp) / Path(artifact.filename).name)
                extracted = Path(tmp) / "extracted"
                self._extract(archive, extracted)
                installed = self._install_from(extracted, context.applications_dir)
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
