"""
Mock installer — test double for every installation backend.

Records each context it is handed and returns success unless told
otherwise.  Can optionally create the directive's target path on
"install" so post-install verification passes like it would for real.
"""

from __future__ import annotations

from pathlib import Path

from converge.adapters.base import InstallContext, Installer
from converge.core.models.action import Receipt
from converge.core.models.artifact import ResolvedArtifact


class MockInstaller(Installer):
    """Universal mock installer for testing.

    By default, returns success for everything.  Can be configured with
    custom responses or preflight artifacts per directive name.
    """

    def __init__(
        self,
        installer_name: str = "mock",
        available: bool = True,
        privileged: bool = True,
        create_target: bool = False,
        default_output: str = "[mock] installed",
    ):
        self._name = installer_name
        self._available = available
        self._privileged = privileged
        self._create_target = create_target
        self._default_output = default_output
        self._responses: dict[str, Receipt] = {}
        self._preflight: dict[str, ResolvedArtifact | Exception] = {}
        self._call_log: list[InstallContext] = []

    @property
    def name(self) -> str:
        return self._name

    @property
    def privileged(self) -> bool:
        return self._privileged

    @property
    def call_log(self) -> list[InstallContext]:
        """All install contexts this mock has received."""
        return self._call_log

    @property
    def call_count(self) -> int:
        """Number of times install has been called."""
        return len(self._call_log)

    def is_available(self) -> bool:
        return self._available

    def set_response(self, name: str, receipt: Receipt) -> None:
        """Set a custom receipt for a specific directive name."""
        self._responses[name] = receipt

    def set_failure(self, name: str, error: str = "Mock failure") -> None:
        """Configure a specific directive to fail."""
        self._responses[name] = Receipt.failure(
            installer=self._name,
            directive=name,
            error=error,
        )

    def set_preflight(self, name: str, result: ResolvedArtifact | Exception) -> None:
        """Make preflight return an artifact, or raise, for a directive name."""
        self._preflight[name] = result

    def validate(self, context: InstallContext) -> tuple[bool, str]:
        return True, ""

    def preflight(self, context: InstallContext) -> ResolvedArtifact | None:
        result = self._preflight.get(context.directive.name)
        if isinstance(result, Exception):
            raise result
        return result

    def install(self, context: InstallContext) -> Receipt:
        self._call_log.append(context)
        name = context.directive.name

        if name in self._responses:
            return self._responses[name]

        if self._create_target and context.directive.target_path:
            target = Path(context.directive.target_path).expanduser()
            target.mkdir(parents=True, exist_ok=True)

        return Receipt.success(
            installer=self._name,
            directive=name,
            output=self._default_output,
            metadata={"mock": True},
        )

    def reset(self) -> None:
        """Clear call log and custom responses."""
        self._call_log.clear()
        self._responses.clear()
        self._preflight.clear()
