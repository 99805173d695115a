"""Configuration — easygce.yml discovery and Settings loading."""

from easygce.core.config.loader import (
    CONFIG_FILE,
    ConfigError,
    find_config_file,
    load_settings,
)

__all__ = [
    "CONFIG_FILE",
    "ConfigError",
    "find_config_file",
    "load_settings",
]
