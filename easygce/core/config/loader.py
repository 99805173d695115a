"""
Configuration loader — reads easygce.yml into a Settings model.

Precedence (highest first):
    CLI flags  >  EASYGCE_* environment  >  easygce.yml  >  model defaults

The YAML may wrap everything under an ``easygce:`` key or be flat.
"""

from __future__ import annotations

import logging
import os
from collections.abc import Mapping
from pathlib import Path
from typing import Any

import yaml
from pydantic import ValidationError

from easygce.core.errors import EasyGceError
from easygce.core.models.settings import Settings

logger = logging.getLogger(__name__)

# Default config filename
CONFIG_FILE = "easygce.yml"

# Environment variable → dotted settings key
ENV_OVERRIDES: dict[str, str] = {
    "EASYGCE_PROJECT": "project",
    "EASYGCE_ZONE": "zone",
    "EASYGCE_VM_NAME": "vm_name",
    "EASYGCE_SSH_KEY": "ssh.key_path",
    "EASYGCE_SSH_USER": "ssh.user",
    "EASYGCE_STATE_DIR": "state_dir",
}


class ConfigError(EasyGceError):
    """Raised when configuration is invalid or unreadable."""


def find_config_file(start_dir: Path | None = None) -> Path | None:
    """Search for easygce.yml starting from the given directory, walking up.

    Args:
        start_dir: Directory to start searching from (default: cwd).

    Returns:
        Path to easygce.yml, or None if not found.
    """
    current = (start_dir or Path.cwd()).resolve()

    for _ in range(20):  # safety limit
        candidate = current / CONFIG_FILE
        if candidate.is_file():
            return candidate
        parent = current.parent
        if parent == current:
            break  # filesystem root
        current = parent

    return None


def read_config_file(path: Path) -> dict[str, Any]:
    """Read and parse a config file into a plain mapping.

    Raises:
        ConfigError: If the file is missing, unreadable or not a mapping.
    """
    if not path.is_file():
        raise ConfigError(f"Config file not found: {path}")

    logger.debug("Loading config from %s", path)

    try:
        raw = path.read_text(encoding="utf-8")
    except OSError as e:
        raise ConfigError(f"Cannot read {path}: {e}") from e

    try:
        data = yaml.safe_load(raw)
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in {path}: {e}") from e

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigError(f"Expected a YAML mapping in {path}, got {type(data).__name__}")

    section = data.get("easygce", data)
    if not isinstance(section, dict):
        raise ConfigError(f"Expected 'easygce' to be a mapping in {path}")
    return section


def _set_dotted(data: dict[str, Any], key: str, value: Any) -> None:
    """Set ``a.b.c`` inside nested dicts, creating levels as needed."""
    parts = key.split(".")
    node = data
    for part in parts[:-1]:
        child = node.get(part)
        if not isinstance(child, dict):
            child = {}
            node[part] = child
        node = child
    node[parts[-1]] = value


def env_overrides(environ: Mapping[str, str] | None = None) -> dict[str, Any]:
    """Collect EASYGCE_* overrides as a nested mapping."""
    environ = os.environ if environ is None else environ
    data: dict[str, Any] = {}
    for var, key in ENV_OVERRIDES.items():
        value = environ.get(var)
        if value:
            _set_dotted(data, key, value)
    return data


def load_settings(
    path: Path | None = None,
    overrides: Mapping[str, Any] | None = None,
    environ: Mapping[str, str] | None = None,
    search: bool = True,
) -> Settings:
    """Build the Settings for one invocation.

    Args:
        path: Explicit config path. If None and ``search`` is set, searches upward.
        overrides: Dotted-key overrides from the CLI (None values are ignored).
        environ: Environment mapping (default: os.environ).
        search: Whether to look for easygce.yml when no path is given.

    Returns:
        Validated Settings model.

    Raises:
        ConfigError: If the file or the merged configuration is invalid.
    """
    if path is None and search:
        path = find_config_file()

    data: dict[str, Any] = read_config_file(path) if path is not None else {}

    for key, value in _flatten(env_overrides(environ)).items():
        _set_dotted(data, key, value)

    for key, value in (overrides or {}).items():
        if value is not None:
            _set_dotted(data, key, value)

    try:
        settings = Settings.model_validate(data)
    except ValidationError as e:
        raise ConfigError(f"Invalid configuration: {e}") from e

    logger.info(
        "Settings: project=%s zone=%s (config: %s)",
        settings.project or "-",
        settings.zone,
        path or "defaults",
    )
    return settings


def _flatten(data: Mapping[str, Any], prefix: str = "") -> dict[str, Any]:
    flat: dict[str, Any] = {}
    for key, value in data.items():
        dotted = f"{prefix}{key}"
        if isinstance(value, Mapping):
            flat.update(_flatten(value, f"{dotted}."))
        else:
            flat[dotted] = value
    return flat
