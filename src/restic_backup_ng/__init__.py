"""restic-backup-ng: restic_backup_ng/__init__.py."""

__version__ = "0.3.0"
