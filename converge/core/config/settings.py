"""
Run settings — where things live and how long network calls may take.

Precedence, lowest first:
    built-in defaults  <  <conf_dir>/settings.yml  <  CONVERGE_* env vars  <  CLI flags

The YAML file is optional.  Only keys declared on ``Settings`` are
accepted; anything else is a ``ConfigError``.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, ConfigDict, ValidationError

logger = logging.getLogger(__name__)

SETTINGS_FILE = "settings.yml"
DEFAULT_CONF_DIR = "conf.d"
PROFILE_MODIFICATIONS_FILE = "zshrc_modifications"

# Env var → settings key
_ENV_OVERRIDES: dict[str, str] = {
    "CONVERGE_APPLICATIONS_DIR": "applications_dir",
    "CONVERGE_SHELL_PROFILE": "shell_profile",
    "CONVERGE_MIN_HOST_VERSION": "min_host_version",
    "CONVERGE_HTTP_TIMEOUT": "http_timeout",
    "CONVERGE_PROBE_TIMEOUT": "probe_timeout",
}


class ConfigError(Exception):
    """Raised when the configuration directory or settings are invalid."""


class Settings(BaseModel):
    """Everything a run needs besides the directives themselves."""

    model_config = ConfigDict(extra="forbid")

    conf_dir: Path = Path(DEFAULT_CONF_DIR)
    applications_dir: Path = Path("/Applications")
    shell_profile: Path = Path("~/.zshrc")
    profile_modifications: Path | None = None

    min_host_version: str = "15.6.1"

    http_timeout: int = 10         # page / API fetches
    probe_timeout: int = 5         # HEAD probes of redirect links
    install_timeout: int = 1800    # one CLI install step

    personal: bool = False
    cleanup: bool = False
    dry_run: bool = False

    @property
    def profile_path(self) -> Path:
        return self.shell_profile.expanduser()

    @property
    def modifications_path(self) -> Path:
        if self.profile_modifications is not None:
            return self.profile_modifications.expanduser()
        return self.conf_dir / PROFILE_MODIFICATIONS_FILE


def _read_settings_file(path: Path) -> dict[str, Any]:
    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8"))
    except OSError as e:
        raise ConfigError(f"Cannot read {path}: {e}") from e
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in {path}: {e}") from e

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigError(f"Expected a YAML mapping in {path}, got {type(data).__name__}")
    return data


def load_settings(
    conf_dir: Path | None = None,
    overrides: dict[str, Any] | None = None,
    environ: dict[str, str] | None = None,
) -> Settings:
    """Build the effective settings for a run.

    Args:
        conf_dir: Configuration directory (default: ``CONVERGE_CONF_DIR`` or ./conf.d).
        overrides: Values from CLI flags; ``None`` values are ignored.
        environ: Environment mapping (default: ``os.environ``).

    Raises:
        ConfigError: If settings.yml is unreadable or contains bad keys/values.
    """
    env = os.environ if environ is None else environ

    if conf_dir is None:
        conf_dir = Path(env.get("CONVERGE_CONF_DIR", DEFAULT_CONF_DIR))

    data: dict[str, Any] = {}
    settings_path = conf_dir / SETTINGS_FILE
    if settings_path.is_file():
        logger.debug("Loading settings from %s", settings_path)
        data.update(_read_settings_file(settings_path))

    for var, key in _ENV_OVERRIDES.items():
        if env.get(var):
            data[key] = env[var]

    for key, value in (overrides or {}).items():
        if value is not None:
            data[key] = value

    data["conf_dir"] = conf_dir

    try:
        return Settings.model_validate(data)
    except ValidationError as e:
        raise ConfigError(f"Invalid settings: {e}") from e
