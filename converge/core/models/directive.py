"""
InstallDirective — the atomic unit of desired state.

One directive is one configuration line:

    category=name::method::payload::target_path

Directives are frozen once parsed.  ``source`` and ``line_number`` are
provenance for log messages only.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict

# ── Known categories ────────────────────────────────────────────────

CATEGORY_CUSTOM = "custom"
CATEGORY_PACKAGE_MANAGER = "brew"
CATEGORY_VERSION_MANAGER = "asdf"
CATEGORY_APP_STORE = "appstore"

# ── Known methods ───────────────────────────────────────────────────

METHOD_COMMAND = "command"
METHOD_DMG = "dmg"
METHOD_ZIP = "zip"
METHOD_DMG_REPO_RELEASE = "dmg_github_release"
METHOD_DMG_WEB_PAGE = "dmg_web_release"
METHOD_DMG_VENDOR_PAGE = "dmg_synergy_release"
METHOD_MANUAL = "manual"
METHOD_INSTALL = "install"

FIELD_DELIMITER = "::"


class InstallDirective(BaseModel):
    """A single desired-installed unit parsed from configuration."""

    model_config = ConfigDict(frozen=True)

    category: str
    name: str
    method: str
    payload: str
    target_path: str

    source: str = ""
    line_number: int = 0

    @property
    def label(self) -> str:
        """Short human label used in log lines."""
        return f"{self.name} ({self.category}/{self.method})"

    @property
    def location(self) -> str:
        """``file:line`` for warnings, or empty when unknown."""
        if not self.source:
            return ""
        return f"{self.source}:{self.line_number}"

    @property
    def is_manual(self) -> bool:
        return self.method == METHOD_MANUAL

    def fields(self) -> tuple[str, str, str, str]:
        """The four delimiter-separated fields after ``category=``."""
        return (self.name, self.method, self.payload, self.target_path)

    def serialize(self) -> str:
        """Render the directive back to its configuration line."""
        return f"{self.category}=" + FIELD_DELIMITER.join(self.fields())
