"""Shared CLI utilities and argument parsers."""

import argparse
import logging

from ..__logger__ import create_logger
from ..config import Config, ConfigError, find_config_file, load_config
from ..core.transaction import set_transaction_log

logger = logging.getLogger(__name__)


def create_global_parser() -> argparse.ArgumentParser:
    """Create a parser with global options that can be used as a parent."""
    parser = argparse.ArgumentParser(add_help=False)
    add_verbosity_args(parser)
    return parser


def add_verbosity_args(parser: argparse.ArgumentParser) -> None:
    """Add verbosity-related arguments to a parser."""
    group = parser.add_argument_group("Output options")
    group.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Enable verbose output",
    )
    group.add_argument(
        "-q",
        "--quiet",
        action="store_true",
        help="Suppress non-essential output",
    )
    group.add_argument(
        "--debug",
        action="store_true",
        help="Enable debug output",
    )


def get_log_level(args: argparse.Namespace) -> str:
    """Determine log level from parsed arguments.

    Args:
        args: Parsed command line arguments

    Returns:
        Log level string (DEBUG, INFO, WARNING, ERROR)
    """
    if getattr(args, "debug", False):
        return "DEBUG"
    elif getattr(args, "quiet", False):
        return "WARNING"
    elif getattr(args, "verbose", False):
        return "DEBUG"
    else:
        return "INFO"


def init_logging(args: argparse.Namespace) -> None:
    """Set up the console logger and report ignored command line flags."""
    create_logger(get_log_level(args))

    for flag in getattr(args, "unrecognized", None) or []:
        logger.warning("Ignoring unrecognized argument: %s", flag)


def load_effective_config(args: argparse.Namespace) -> Config:
    """Load the configuration file, falling back to built-in defaults.

    Also enables the file log and transaction log the configuration asks for.

    Raises:
        ConfigError: The file exists but cannot be loaded
    """
    config_path = find_config_file(getattr(args, "config", None))
    if config_path is None:
        logger.info("No configuration file found, using built-in defaults")
        config = Config()
    else:
        logger.info("Loading configuration from: %s", config_path)
        config, warnings = load_config(config_path)
        for warning in warnings:
            logger.warning("Config: %s", warning)

    if config.global_config.log_file:
        try:
            create_logger(get_log_level(args), config.global_config.log_file)
        except OSError as e:
            raise ConfigError(f"Cannot open log file: {e}") from e

    if config.global_config.transaction_log:
        try:
            set_transaction_log(config.global_config.transaction_log)
        except OSError as e:
            raise ConfigError(f"Cannot create transaction log: {e}") from e

    return config
