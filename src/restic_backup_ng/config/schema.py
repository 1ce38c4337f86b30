"""Configuration schema definitions using dataclasses.

Defines the structure for TOML configuration with sensible defaults.
"""

from dataclasses import dataclass, field
from typing import Optional

from ..core.retention import RetentionPolicy


@dataclass
class RepositoryConfig:
    """Remote repository and backup engine settings.

    Attributes:
        env_file: Shell env file holding RESTIC_REPOSITORY and storage credentials
        restic_binary: Name or path of the restic executable
        cache_dir: Local restic cache directory
        connections: Number of connections to open to the storage backend
        connections_option: Backend option name receiving ``connections``
    """

    env_file: Optional[str] = "/etc/restic/b2_env.sh"
    restic_binary: str = "restic"
    cache_dir: Optional[str] = "/srv/rhdwp/.cache/restic"
    connections: int = 50
    connections_option: str = "b2.connections"


@dataclass
class SourcesConfig:
    """Backup source discovery settings.

    Attributes:
        roots: Glob patterns whose matching directories are backed up
        global_exclude_file: Exclude file applied to every invocation
        home_glob: Glob matching user home directories
        user_exclude_filename: Per-user exclude file looked up in each home
    """

    roots: list[str] = field(
        default_factory=lambda: ["/srv/rhdwp/www/*", "/mnt/*/"]
    )
    global_exclude_file: Optional[str] = "/etc/restic/backup_exclude"
    home_glob: str = "/home/*"
    user_exclude_filename: str = ".backup_exclude"


@dataclass
class TagsConfig:
    """Tags used for interactive and scheduled runs."""

    interactive: str = "manual"
    scheduled: str = "cron.d"


@dataclass
class GlobalConfig:
    """Global configuration settings.

    Attributes:
        log_file: Path to log file (None for no file logging)
        transaction_log: Path to JSON-lines step log (None to disable)
    """

    log_file: Optional[str] = None
    transaction_log: Optional[str] = None


@dataclass
class Config:
    """Root configuration object."""

    global_config: GlobalConfig = field(default_factory=GlobalConfig)
    repository: RepositoryConfig = field(default_factory=RepositoryConfig)
    sources: SourcesConfig = field(default_factory=SourcesConfig)
    retention: RetentionPolicy = field(default_factory=RetentionPolicy)
    tags: TagsConfig = field(default_factory=TagsConfig)

    def get_tag(self, scheduled: bool) -> str:
        """Get the tag for a scheduled or interactive run."""
        return self.tags.scheduled if scheduled else self.tags.interactive
