"""converge — declarative, idempotent macOS workstation provisioner."""

__version__ = "0.1.0"
