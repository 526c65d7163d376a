"""
Receipt model — the installer result contract.

The engine hands a directive to an installer; the installer hands back
a Receipt.  Never an exception: a failed download, a missing bundle or
a non-zero CLI exit all become ``Receipt.failure`` with an
``error_kind`` naming the error class from ``converge.core.errors``.
"""

from __future__ import annotations

from datetime import UTC, datetime
from typing import Any, Literal

from pydantic import BaseModel, Field


def _now_iso() -> str:
    """Current UTC time as ISO string."""
    return datetime.now(UTC).isoformat()


class Receipt(BaseModel):
    """Result of one installer execution."""

    installer: str
    directive: str
    status: Literal["ok", "skipped", "failed"] = "ok"

    started_at: str = Field(default_factory=_now_iso)
    ended_at: str = Field(default_factory=_now_iso)
    duration_ms: int = 0

    output: str = ""
    error: str | None = None
    error_kind: str | None = None

    metadata: dict[str, Any] = Field(default_factory=dict)

    @property
    def ok(self) -> bool:
        """Whether the install succeeded."""
        return self.status == "ok"

    @property
    def failed(self) -> bool:
        """Whether the install failed."""
        return self.status == "failed"

    @classmethod
    def success(
        cls,
        installer: str,
        directive: str,
        output: str = "",
        **kwargs: Any,
    ) -> Receipt:
        """Create a success receipt."""
        return cls(
            installer=installer,
            directive=directive,
            status="ok",
            output=output,
            **kwargs,
        )

    @classmethod
    def failure(
        cls,
        installer: str,
        directive: str,
        error: str,
        error_kind: str = "install_failed",
        **kwargs: Any,
    ) -> Receipt:
        """Create a failure receipt."""
        return cls(
            installer=installer,
            directive=directive,
            status="failed",
            error=error,
            error_kind=error_kind,
            **kwargs,
        )

    @classmethod
    def skip(
        cls,
        installer: str,
        directive: str,
        reason: str = "",
        **kwargs: Any,
    ) -> Receipt:
        """Create a skip receipt."""
        return cls(
            installer=installer,
            directive=directive,
            status="skipped",
            output=reason,
            **kwargs,
        )
