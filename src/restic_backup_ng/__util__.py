"""restic-backup-ng: restic_backup_ng/__util__.py
Small helpers shared by the cli and core modules.
"""

import signal


def log_heading(caption: str) -> str:
    """Formatted heading for logging output sections."""
    return f"--[ {caption} ]--"


def signal_exit_code(signum: int) -> int:
    """Shell convention for a process terminated by ``signum``."""
    return 128 + int(signum)


def signal_name(signum: int) -> str:
    """Human readable name of a signal number."""
    try:
        return signal.Signals(signum).name
    except ValueError:
        return str(signum)
