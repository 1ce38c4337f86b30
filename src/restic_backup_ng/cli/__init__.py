"""Command line interface for restic-backup-ng."""

from .dispatcher import main

__all__ = ["main"]
