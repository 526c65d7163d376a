"""
Shell profile reconciliation.

Appends the configured modifications to the user's shell profile once,
wrapped in a sentinel block:

    # macOS Setup Script Modifications
    # Added on <date>
    # ========================================
    <contents of zshrc_modifications>

    # End of macOS Setup Script Modifications

The begin marker is the only idempotence signal: if it appears anywhere
in the profile, nothing is written.  Editing the modifications file
later does not update an existing block.
"""

from __future__ import annotations

import logging
import shutil
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path

logger = logging.getLogger(__name__)

BEGIN_MARKER = "# macOS Setup Script Modifications"
END_MARKER = "# End of macOS Setup Script Modifications"
RULE = "# ========================================"
BACKUP_FORMAT = "%Y%m%d_%H%M%S"


@dataclass
class ProfileStatus:
    """What reconciling the profile would do (or did)."""

    profile: Path
    modifications: Path
    has_modifications: bool = False
    already_applied: bool = False
    changed: bool = False
    backup: Path | None = None

    @property
    def pending(self) -> bool:
        return self.has_modifications and not self.already_applied and not self.changed

    def to_dict(self) -> dict:
        return {
            "profile": str(self.profile),
            "modifications": str(self.modifications),
            "has_modifications": self.has_modifications,
            "already_applied": self.already_applied,
            "changed": self.changed,
            "backup": str(self.backup) if self.backup else None,
        }


def has_block(profile: Path) -> bool:
    """Whether ``profile`` already contains the begin marker."""
    if not profile.is_file():
        return False
    return BEGIN_MARKER in profile.read_text(encoding="utf-8", errors="replace")


def render_block(body: str, now: datetime | None = None) -> str:
    """The text appended to the profile, leading blank line included."""
    now = now or datetime.now()
    lines = [
        "",
        BEGIN_MARKER,
        f"# Added on {now.strftime('%a %b %d %H:%M:%S %Y')}",
        RULE,
        body.rstrip("\n"),
        "",
        END_MARKER,
    ]
    return "\n".join(lines) + "\n"


def check_profile(profile: Path, modifications: Path) -> ProfileStatus:
    """Report whether the block is missing, without writing anything."""
    status = ProfileStatus(profile=profile, modifications=modifications)
    status.has_modifications = modifications.is_file()
    if not status.has_modifications:
        logger.debug("No profile modifications file at %s", modifications)
        return status

    status.already_applied = has_block(profile)
    if status.already_applied:
        logger.debug("zshrc modifications already applied")
    else:
        logger.info("Will apply zshrc modifications")
    return status


def reconcile_profile(
    profile: Path,
    modifications: Path,
    now: datetime | None = None,
) -> ProfileStatus:
    """Append the modifications block if the profile does not have it.

    A timestamped copy ``<profile>.backup.YYYYmmdd_HHMMSS`` is taken
    immediately before the first write, when the profile exists.

    Raises:
        OSError: If the profile cannot be read, backed up or written.
    """
    status = ProfileStatus(profile=profile, modifications=modifications)
    if not modifications.is_file():
        logger.warning("zshrc_modifications file not found at %s", modifications)
        return status
    status.has_modifications = True

    if has_block(profile):
        logger.info("zshrc modifications already applied")
        status.already_applied = True
        return status

    logger.info("Applying zshrc modifications...")
    now = now or datetime.now()
    body = modifications.read_text(encoding="utf-8")

    if profile.is_file():
        backup = profile.with_name(f"{profile.name}.backup.{now.strftime(BACKUP_FORMAT)}")
        shutil.copy2(profile, backup)
        status.backup = backup
        logger.debug("Created backup of existing %s at %s", profile.name, backup)

    profile.parent.mkdir(parents=True, exist_ok=True)
    with open(profile, "a", encoding="utf-8") as fh:
        fh.write(render_block(body, now))

    status.changed = True
    logger.info("zshrc modifications applied successfully")
    return status
