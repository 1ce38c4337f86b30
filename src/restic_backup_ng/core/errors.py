"""Errors raised by the backup pipeline."""

from .. import __util__


class JobError(Exception):
    """A pipeline step did not complete.

    Attributes:
        step: Name of the step that failed ("unlock", "backup" or "prune")
        returncode: Exit status to report for the whole run
    """

    def __init__(self, step: str, returncode: int, message: str = "") -> None:
        self.step = step
        # A failed step must never map to a successful exit status
        self.returncode = returncode or 1
        super().__init__(message or f"{step} failed with exit code {returncode}")


class UnlockFailed(JobError):
    """Stale locks could not be removed from the repository."""


class BackupFailed(JobError):
    """restic backup exited non-zero; prune was skipped."""


class PruneFailed(JobError):
    """restic forget --prune exited non-zero; the backup itself landed."""


class CancelledByOperator(JobError):
    """SIGINT or SIGTERM arrived while the pipeline was running.

    Attributes:
        signum: Signal that cancelled the run
    """

    def __init__(self, step: str, signum: int) -> None:
        self.signum = signum
        super().__init__(
            step,
            __util__.signal_exit_code(signum),
            f"{step} cancelled by {__util__.signal_name(signum)}",
        )
