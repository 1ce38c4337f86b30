"""TOML configuration loading and validation.

Handles config file discovery, parsing, and validation with helpful error messages.
"""

import tomllib
from pathlib import Path
from typing import Any

from ..core.retention import RetentionPolicy
from .schema import (
    Config,
    GlobalConfig,
    RepositoryConfig,
    SourcesConfig,
    TagsConfig,
)


class ConfigError(Exception):
    """Configuration loading or validation error."""

    pass


# Config file search paths in priority order
CONFIG_PATHS = [
    Path.home() / ".config" / "restic-backup-ng" / "config.toml",
    Path("/etc/restic-backup-ng/config.toml"),
]


def find_config_file(explicit_path: str | None = None) -> Path | None:
    """Find configuration file.

    Args:
        explicit_path: Explicitly specified config path (highest priority)

    Returns:
        Path to config file, or None if not found
    """
    if explicit_path:
        path = Path(explicit_path)
        if path.exists():
            return path
        raise ConfigError(f"Config file not found: {explicit_path}")

    for path in CONFIG_PATHS:
        if path.exists():
            return path

    return None


def _expect(data: dict[str, Any], key: str, kind: type | tuple, default: Any) -> Any:
    """Fetch ``key`` from a table, checking its TOML type."""
    if key not in data:
        return default
    value = data[key]
    # TOML integers are never bools, but guard anyway
    if kind is int and isinstance(value, bool):
        raise ConfigError(f"'{key}' must be an integer, got {value!r}")
    if not isinstance(value, kind):
        raise ConfigError(f"'{key}' has invalid type {type(value).__name__}")
    return value


def _table(data: dict[str, Any], name: str) -> dict[str, Any]:
    value = data.get(name, {})
    if not isinstance(value, dict):
        raise ConfigError(f"[{name}] must be a table")
    return value


def _parse_retention(data: dict[str, Any]) -> RetentionPolicy:
    """Parse retention configuration from dict."""
    defaults = RetentionPolicy()
    try:
        return RetentionPolicy(
            daily=data.get("daily", defaults.daily),
            weekly=data.get("weekly", defaults.weekly),
            monthly=data.get("monthly", defaults.monthly),
            yearly=data.get("yearly", defaults.yearly),
        )
    except ValueError as e:
        raise ConfigError(str(e)) from e


def _parse_repository(data: dict[str, Any]) -> RepositoryConfig:
    """Parse repository configuration from dict."""
    defaults = RepositoryConfig()
    connections = _expect(data, "connections", int, defaults.connections)
    if connections < 1:
        raise ConfigError(f"'connections' must be at least 1, got {connections}")

    return RepositoryConfig(
        env_file=_expect(data, "env_file", str, defaults.env_file),
        restic_binary=_expect(data, "restic_binary", str, defaults.restic_binary),
        cache_dir=_expect(data, "cache_dir", str, defaults.cache_dir),
        connections=connections,
        connections_option=_expect(
            data, "connections_option", str, defaults.connections_option
        ),
    )


def _parse_sources(data: dict[str, Any]) -> SourcesConfig:
    """Parse source discovery configuration from dict."""
    defaults = SourcesConfig()
    roots = _expect(data, "roots", list, defaults.roots)
    if not all(isinstance(r, str) for r in roots):
        raise ConfigError("'roots' must be a list of glob strings")

    return SourcesConfig(
        roots=list(roots),
        global_exclude_file=_expect(
            data, "global_exclude_file", str, defaults.global_exclude_file
        ),
        home_glob=_expect(data, "home_glob", str, defaults.home_glob),
        user_exclude_filename=_expect(
            data, "user_exclude_filename", str, defaults.user_exclude_filename
        ),
    )


def _parse_tags(data: dict[str, Any]) -> TagsConfig:
    """Parse tag configuration from dict."""
    defaults = TagsConfig()
    tags = TagsConfig(
        interactive=_expect(data, "interactive", str, defaults.interactive),
        scheduled=_expect(data, "scheduled", str, defaults.scheduled),
    )
    for name in ("interactive", "scheduled"):
        if not getattr(tags, name).strip():
            raise ConfigError(f"Tag '{name}' must not be empty")
    return tags


def _parse_global(data: dict[str, Any]) -> GlobalConfig:
    """Parse global configuration from dict."""
    return GlobalConfig(
        log_file=_expect(data, "log_file", str, None),
        transaction_log=_expect(data, "transaction_log", str, None),
    )


def _validate_config(config: Config) -> list[str]:
    """Validate configuration and return list of warnings."""
    warnings = []

    if not config.sources.roots:
        warnings.append("No source roots configured")

    if len(config.sources.roots) != len(set(config.sources.roots)):
        warnings.append("Duplicate source roots detected")

    if config.retention.keeps_nothing:
        warnings.append("All retention counts are zero; prune would keep nothing")

    if config.tags.interactive == config.tags.scheduled:
        warnings.append(
            "Interactive and scheduled tags are identical; "
            "their retention groups will be merged"
        )

    if not config.repository.env_file:
        warnings.append("No env_file configured; relying on the process environment")

    return warnings


def parse_config(data: dict[str, Any]) -> tuple[Config, list[str]]:
    """Build a validated Config from already-parsed TOML data."""
    config = Config(
        global_config=_parse_global(_table(data, "global")),
        repository=_parse_repository(_table(data, "repository")),
        sources=_parse_sources(_table(data, "sources")),
        retention=_parse_retention(_table(data, "retention")),
        tags=_parse_tags(_table(data, "tags")),
    )

    return config, _validate_config(config)


def load_config(path: Path | str) -> tuple[Config, list[str]]:
    """Load and validate configuration from TOML file.

    Args:
        path: Path to configuration file

    Returns:
        Tuple of (Config object, list of warnings)

    Raises:
        ConfigError: If config is invalid or cannot be parsed
    """
    path = Path(path)

    try:
        with open(path, "rb") as f:
            data = tomllib.load(f)
    except tomllib.TOMLDecodeError as e:
        raise ConfigError(f"Invalid TOML syntax: {e}")
    except OSError as e:
        raise ConfigError(f"Cannot read config file: {e}")

    return parse_config(data)


def generate_example_config() -> str:
    """Generate example configuration file content."""
    return """# restic-backup-ng configuration
# See documentation for full options

[global]
# log_file = "/var/log/restic-backup-ng.log"
# transaction_log = "/var/log/restic-backup-ng.jsonl"

[repository]
# Shell file exporting RESTIC_REPOSITORY, RESTIC_PASSWORD,
# B2_ACCOUNT_ID, B2_ACCOUNT_KEY, ...
env_file = "/etc/restic/b2_env.sh"
restic_binary = "restic"
cache_dir = "/srv/rhdwp/.cache/restic"
connections = 50                   # Parallel connections to the backend
connections_option = "b2.connections"

[sources]
# Every directory matching one of these globs becomes a backup path.
# Missing roots (e.g. no /mnt) are skipped.
roots = ["/srv/rhdwp/www/*", "/mnt/*/"]
global_exclude_file = "/etc/restic/backup_exclude"
home_glob = "/home/*"
user_exclude_filename = ".backup_exclude"

[retention]
daily = 7
weekly = 8
monthly = 1
yearly = 1

[tags]
interactive = "manual"             # Runs started by hand
scheduled = "cron.d"               # Runs started with --cron
"""
