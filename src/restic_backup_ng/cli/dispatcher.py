"""CLI dispatcher with implicit run detection.

Invoked without a subcommand the tool behaves like the old cron script:
``restic-backup-ng`` runs an interactive backup and ``restic-backup-ng -c``
runs a scheduled one.
"""

import argparse
import sys
from typing import Callable

from .common import add_verbosity_args

# Known subcommands
SUBCOMMANDS = frozenset(
    {
        "run",
        "unlock",
        "paths",
        "config",
    }
)


# Global options that may precede the subcommand
GLOBAL_FLAGS = frozenset({"-v", "--verbose", "-q", "--quiet", "--debug"})
GLOBAL_VALUE_FLAGS = frozenset({"-C", "--config"})

# Single-letter options that take no value and may be bundled (-cv)
SHORT_SWITCHES = frozenset({"c", "v", "q"})


def split_short_flags(argv: list[str]) -> list[str]:
    """Expand bundled switches such as ``-cx`` into ``-c -x``.

    argparse aborts on a bundle holding an unknown letter; split, the
    unknown letter ends up with the other unrecognized arguments. Only
    bundles starting with a known switch are split, and bundles holding
    ``-C`` keep their attached value.
    """
    result = []
    for arg in argv:
        bundled = len(arg) > 2 and arg[0] == "-" and arg[1] in SHORT_SWITCHES
        if bundled and arg[1:].isalpha() and "C" not in arg:
            result.extend(f"-{letter}" for letter in arg[1:])
        else:
            result.append(arg)
    return result


def _command_index(argv: list[str]) -> int:
    """Index of the first argument that is not a global option."""
    index = 0
    while index < len(argv):
        arg = argv[index]
        if arg in GLOBAL_FLAGS or arg.startswith("--config="):
            index += 1
        elif arg in GLOBAL_VALUE_FLAGS:
            index += 2
        else:
            break
    return min(index, len(argv))


def is_implicit_run(argv: list[str]) -> bool:
    """Detect if arguments should be treated as the ``run`` command.

    Args:
        argv: Command line arguments (without program name)

    Returns:
        True if ``run`` should be inserted after the global options
    """
    index = _command_index(argv)

    # Nothing but global options - run
    if index == len(argv):
        return True

    first = argv[index]

    # Explicit subcommand - not run
    if first in SUBCOMMANDS:
        return False

    # Help/version flags - not run
    if first in {"-h", "--help", "-V", "--version"}:
        return False

    # Run flags (e.g. "-c" from a cron entry) - run
    return first.startswith("-")


def insert_run(argv: list[str]) -> list[str]:
    """Insert ``run`` after any leading global options."""
    index = _command_index(argv)
    return [*argv[:index], "run", *argv[index:]]


def add_run_args(parser: argparse.ArgumentParser) -> None:
    """Add the options of the run command."""
    parser.add_argument(
        "-c",
        "--cron",
        "--scheduled",
        dest="cron",
        action="store_true",
        help="Scheduled run: use the scheduled tag instead of the interactive one",
    )
    parser.add_argument(
        "--tag",
        metavar="NAME",
        help="Use this tag for the backup and its retention group",
    )
    parser.add_argument(
        "--connections",
        type=int,
        metavar="N",
        help="Backend connections (overrides config)",
    )
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Show the restic commands without running them",
    )


def create_subcommand_parser() -> argparse.ArgumentParser:
    """Create the main argument parser with subcommands."""
    parser = argparse.ArgumentParser(
        prog="restic-backup-ng",
        description="Back up directories with restic, then apply retention",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )

    add_verbosity_args(parser)

    parser.add_argument(
        "-V",
        "--version",
        action="store_true",
        help="Show version and exit",
    )

    parser.add_argument(
        "-C",
        "--config",
        metavar="FILE",
        help="Path to configuration file",
    )

    subparsers = parser.add_subparsers(
        dest="command",
        title="commands",
        description="Available commands (use 'command --help' for details)",
    )

    # run command
    run_parser = subparsers.add_parser(
        "run",
        help="Unlock, back up and prune (default)",
        description="Clear stale locks, back up all discovered paths, then prune",
    )
    add_run_args(run_parser)

    # unlock command
    unlock_parser = subparsers.add_parser(
        "unlock",
        help="Remove stale repository locks",
        description="Remove locks left behind by interrupted runs",
    )
    unlock_parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Show the restic command without running it",
    )

    # paths command
    paths_parser = subparsers.add_parser(
        "paths",
        help="Show backup paths and exclude files",
        description="List the directories and exclude files a run would use",
    )
    paths_parser.add_argument(
        "--json",
        action="store_true",
        help="Output in JSON format",
    )

    # config command with subcommands
    config_parser = subparsers.add_parser(
        "config",
        help="Configuration management",
        description="Validate or initialize configuration",
    )
    config_subs = config_parser.add_subparsers(dest="config_action")

    config_subs.add_parser(
        "validate",
        help="Validate configuration file",
    )

    init_parser = config_subs.add_parser(
        "init",
        help="Generate example configuration",
    )
    init_parser.add_argument(
        "-o",
        "--output",
        metavar="FILE",
        help="Output file (default: stdout)",
    )

    return parser


def run_subcommand(args: argparse.Namespace) -> int:
    """Run the specified subcommand.

    Args:
        args: Parsed arguments

    Returns:
        Exit code
    """
    from .. import __version__

    if args.version:
        print(f"restic-backup-ng {__version__}")
        return 0

    if not args.command:
        print("No command specified. Use --help for usage information.")
        return 1

    # Route to appropriate command handler
    handlers: dict[str, Callable] = {
        "run": cmd_run,
        "unlock": cmd_unlock,
        "paths": cmd_paths,
        "config": cmd_config,
    }

    handler = handlers.get(args.command)
    if handler:
        return handler(args)
    else:
        print(f"Unknown command: {args.command}")
        return 1


def cmd_run(args: argparse.Namespace) -> int:
    """Execute run command."""
    from .run import execute_run

    return execute_run(args)


def cmd_unlock(args: argparse.Namespace) -> int:
    """Execute unlock command."""
    from .unlock_cmd import execute_unlock

    return execute_unlock(args)


def cmd_paths(args: argparse.Namespace) -> int:
    """Execute paths command."""
    from .paths_cmd import execute_paths

    return execute_paths(args)


def cmd_config(args: argparse.Namespace) -> int:
    """Execute config command."""
    from .config_cmd import execute_config

    return execute_config(args)


def main(argv: list[str] | None = None) -> int:
    """Main entry point for restic-backup-ng CLI.

    Unrecognized arguments are reported by the command and otherwise ignored.

    Args:
        argv: Command line arguments (defaults to sys.argv[1:])

    Returns:
        Exit code
    """
    if argv is None:
        argv = sys.argv[1:]

    argv = split_short_flags(argv)
    if is_implicit_run(argv):
        argv = insert_run(argv)

    parser = create_subcommand_parser()
    args, unknown = parser.parse_known_args(argv)
    args.unrecognized = unknown

    return run_subcommand(args)
