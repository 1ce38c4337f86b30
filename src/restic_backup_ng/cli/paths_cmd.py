"""Paths command: show what a run would back up."""

import argparse
import json
import logging

from ..config import ConfigError
from ..core import resolve
from .common import init_logging, load_effective_config

logger = logging.getLogger(__name__)


def execute_paths(args: argparse.Namespace) -> int:
    """Execute the paths command."""
    init_logging(args)

    try:
        config = load_effective_config(args)
    except ConfigError as e:
        logger.error("Configuration error: %s", e)
        return 1

    sources = config.sources
    resolved = resolve(
        sources.roots,
        sources.user_exclude_filename,
        home_glob=sources.home_glob,
        global_exclude_file=sources.global_exclude_file,
    )

    if getattr(args, "json", False):
        payload = {
            "paths": [str(p) for p in resolved.paths],
            "exclude_files": [str(p) for p in resolved.all_excludes()],
        }
        print(json.dumps(payload, indent=2))
        return 0

    print("Backup paths:")
    if resolved.targets:
        for path in resolved.paths:
            print(f"  {path}")
    else:
        print("  (none)")

    print("Exclude files:")
    excludes = resolved.all_excludes()
    if excludes:
        for path in excludes:
            print(f"  {path}")
    else:
        print("  (none)")

    return 0
