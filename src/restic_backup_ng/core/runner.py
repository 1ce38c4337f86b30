# pyright: standard

"""restic-backup-ng: restic_backup_ng/core/runner.py
The unlock -> backup -> prune pipeline for one invocation.
"""

import logging
import signal
import time
from collections.abc import Callable, Sequence
from pathlib import Path
from typing import Optional

from .. import __util__
from .cancel import CancelToken
from .errors import (
    BackupFailed,
    CancelledByOperator,
    JobError,
    PruneFailed,
    UnlockFailed,
)
from .paths import BackupTarget, existing_excludes
from .restic import ResticEngine
from .retention import RetentionPolicy
from .transaction import TransactionContext

logger = logging.getLogger(__name__)

# Seconds the unlock after a cancellation may take before it is abandoned
UNLOCK_TIMEOUT = 60.0


class JobRunner:
    """Runs the steps of one backup invocation strictly in sequence.

    Every step is awaited on its own, which gives the cancel token a chance
    to stop the pipeline between steps as well as inside them. Whenever a
    run is cancelled the repository lock is released before the error is
    re-raised; a lock left behind by a crash is cleared by the unlock step
    of the next run.

    No local lock is taken; the scheduler never starts two runs at once.

    Args:
        engine: Runs the restic steps
        token: Cancellation token, usually wired to signals by ``signal_scope``
        unlock_timeout: Seconds allowed for the unlock after a cancellation
    """

    def __init__(
        self,
        engine: ResticEngine,
        token: Optional[CancelToken] = None,
        unlock_timeout: Optional[float] = UNLOCK_TIMEOUT,
    ):
        self.engine = engine
        self.token = token or CancelToken()
        self.unlock_timeout = unlock_timeout
        self.completed_steps: list[str] = []

    def run(
        self,
        targets: Sequence[BackupTarget],
        excludes: Sequence[Path],
        tag: str,
        policy: RetentionPolicy,
        connections: int,
    ) -> None:
        """Execute unlock, backup and prune.

        Args:
            targets: Directories to back up
            excludes: Exclude files applied to the whole backup
            tag: Tag written on the snapshot and used to scope the prune
            policy: Retention counters for the prune step
            connections: Backend connection count

        Raises:
            UnlockFailed: Stale locks could not be removed, nothing was backed up
            BackupFailed: Backup failed, prune was not attempted
            PruneFailed: Backup landed, prune failed
            CancelledByOperator: A signal interrupted the run
        """
        self.completed_steps = []
        paths = [target.path for target in targets]

        logger.info(__util__.log_heading(f"Started at {time.ctime()}"))
        logger.info(
            "Tag: %s, %d path(s), retention: %s", tag, len(paths), policy.describe()
        )

        try:
            self._step(
                "unlock", tag, UnlockFailed, lambda: self.engine.unlock(self.token)
            )

            if not paths:
                raise BackupFailed("backup", 1, "No backup paths were found")

            self._step(
                "backup",
                tag,
                BackupFailed,
                lambda: self.engine.backup(
                    paths, existing_excludes(excludes), tag, connections, self.token
                ),
            )
            self._step(
                "prune",
                tag,
                PruneFailed,
                lambda: self.engine.forget(tag, policy, connections, self.token),
            )
        except CancelledByOperator:
            self.release_lock()
            raise

        logger.info(__util__.log_heading(f"Finished at {time.ctime()}"))

    def _step(
        self,
        name: str,
        tag: str,
        error: type[JobError],
        action: Callable[[], int],
    ) -> None:
        if self.token.cancelled:
            raise CancelledByOperator(name, self.token.signum or signal.SIGTERM)

        logger.info("Running %s ...", name)
        with TransactionContext(name, tag=tag) as tx:
            try:
                tx.returncode = action()
                # A child killed by the same signal exits non-zero on its own
                if tx.returncode != 0 and self.token.cancelled:
                    raise CancelledByOperator(
                        name, self.token.signum or signal.SIGTERM
                    )
            except CancelledByOperator:
                tx.status = "cancelled"
                raise

        if tx.returncode != 0:
            raise error(name, tx.returncode)

        self.completed_steps.append(name)
        logger.info("%s completed", name.capitalize())

    def release_lock(self) -> bool:
        """Best-effort unlock after cancellation. Failures are only logged."""
        logger.info("Releasing repository lock after cancellation")
        try:
            returncode = self.engine.unlock(None, timeout=self.unlock_timeout)
        except Exception as e:  # pylint: disable=broad-except
            logger.error("Unlock after cancellation failed: %s", e)
            return False

        if returncode != 0:
            logger.error("Unlock after cancellation exited with %d", returncode)
            return False
        return True


def describe_outcome(error: Optional[JobError]) -> str:
    """Final status line for a run."""
    if error is None:
        return "Backup & cleaning is done."
    if isinstance(error, CancelledByOperator):
        signame = __util__.signal_name(error.signum)
        return f"Aborted due to {error.step} (cancelled by {signame})"
    return f"Aborted due to {error.step} (exit code {error.returncode})"
