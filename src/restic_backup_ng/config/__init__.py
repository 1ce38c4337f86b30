"""Configuration system for restic-backup-ng.

This module provides TOML-based configuration loading, validation,
schema definitions and repository environment loading.
"""

from .environment import load_environment
from .loader import ConfigError, find_config_file, load_config, parse_config
from .schema import (
    Config,
    GlobalConfig,
    RepositoryConfig,
    SourcesConfig,
    TagsConfig,
)

__all__ = [
    "GlobalConfig",
    "RepositoryConfig",
    "SourcesConfig",
    "TagsConfig",
    "Config",
    "load_config",
    "parse_config",
    "find_config_file",
    "load_environment",
    "ConfigError",
]
