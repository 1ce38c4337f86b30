"""Run command: unlock, back up and prune in one go."""

import argparse
import logging

from ..config import Config, ConfigError, load_environment
from ..core import (
    JobError,
    JobRunner,
    ResticEngine,
    describe_outcome,
    resolve,
    signal_scope,
)
from .common import init_logging, load_effective_config

logger = logging.getLogger(__name__)


def build_engine(config: Config, dry_run: bool = False) -> ResticEngine:
    """Create the restic engine with the repository environment loaded."""
    repository = config.repository
    return ResticEngine(
        binary=repository.restic_binary,
        env=load_environment(repository.env_file),
        cache_dir=repository.cache_dir,
        connections_option=repository.connections_option,
        dry_run=dry_run,
    )


def select_tag(args: argparse.Namespace, config: Config) -> str:
    """Explicit --tag wins, otherwise the scheduled or interactive tag."""
    tag = getattr(args, "tag", None)
    if tag:
        return tag
    return config.get_tag(getattr(args, "cron", False))


def execute_run(args: argparse.Namespace) -> int:
    """Execute the run command.

    Args:
        args: Parsed command line arguments

    Returns:
        Exit code (0 for success, the failing step's status otherwise)
    """
    init_logging(args)

    try:
        config = load_effective_config(args)
    except ConfigError as e:
        logger.error("Configuration error: %s", e)
        return 1

    connections = getattr(args, "connections", None)
    if connections is None:
        connections = config.repository.connections
    if connections < 1:
        logger.error("--connections must be at least 1")
        return 1

    tag = select_tag(args, config)
    sources = config.sources
    resolved = resolve(
        sources.roots,
        sources.user_exclude_filename,
        home_glob=sources.home_glob,
        global_exclude_file=sources.global_exclude_file,
    )
    for target in resolved.targets:
        logger.debug("Backup path: %s", target.path)

    runner = JobRunner(build_engine(config, getattr(args, "dry_run", False)))

    error = None
    with signal_scope(runner.token):
        try:
            runner.run(
                resolved.targets,
                resolved.all_excludes(),
                tag,
                config.retention,
                connections,
            )
        except JobError as e:
            logger.error("%s", e)
            error = e

    status = describe_outcome(error)
    if error is None:
        logger.info(status)
        return 0

    logger.error(status)
    return error.returncode
