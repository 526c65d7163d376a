"""Adapters — installation backends behind one contract.

Public re-exports for convenient access.
"""

from converge.adapters.base import InstallContext, Installer
from converge.adapters.mock import MockInstaller
from converge.adapters.registry import InstallerRegistry

__all__ = [
    "InstallContext",
    "Installer",
    "InstallerRegistry",
    "MockInstaller",
]
