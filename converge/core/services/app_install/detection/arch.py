"""
L3 Detection — Host architecture.

Maps ``uname -m`` to the tag used for artifact matching.  Anything
unrecognised is ``universal``, so matching falls through to the
architecture-neutral candidates.
"""

from __future__ import annotations

import platform

from converge.core.models.artifact import Arch

_ARCH_MAP: dict[str, Arch] = {
    "arm64": Arch.ARM64,       # macOS (Darwin reports arm64)
    "aarch64": Arch.ARM64,
    "x86_64": Arch.X86_64,
    "amd64": Arch.X86_64,
}


def detect_architecture(machine: str | None = None) -> Arch:
    """Return the canonical architecture tag of the host.

    Args:
        machine: Override for ``platform.machine()`` (tests).
    """
    raw = platform.machine() if machine is None else machine
    return _ARCH_MAP.get(raw.lower(), Arch.UNIVERSAL)
