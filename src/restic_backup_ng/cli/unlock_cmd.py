"""Unlock command: remove stale repository locks."""

import argparse
import logging

from ..config import ConfigError
from ..core import CancelToken, JobError, signal_scope
from .common import init_logging, load_effective_config
from .run import build_engine

logger = logging.getLogger(__name__)


def execute_unlock(args: argparse.Namespace) -> int:
    """Execute the unlock command.

    Running it while no lock is held is a no-op that exits 0.
    """
    init_logging(args)

    try:
        config = load_effective_config(args)
    except ConfigError as e:
        logger.error("Configuration error: %s", e)
        return 1

    engine = build_engine(config, getattr(args, "dry_run", False))
    token = CancelToken()

    with signal_scope(token):
        try:
            returncode = engine.unlock(token)
        except JobError as e:
            logger.error("%s", e)
            return e.returncode

    if returncode != 0:
        logger.error("Unlock failed with exit code %d", returncode)
        return returncode

    logger.info("Repository unlocked")
    return 0
