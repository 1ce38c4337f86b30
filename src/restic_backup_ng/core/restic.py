# pyright: standard

"""restic-backup-ng: restic_backup_ng/core/restic.py
Invocation of the restic binary for the unlock, backup and forget steps.
"""

import logging
import signal
import subprocess
import time
from collections.abc import Sequence
from pathlib import Path
from typing import Optional

from .cancel import CancelToken
from .errors import CancelledByOperator
from .retention import RetentionPolicy

logger = logging.getLogger(__name__)

# Snapshots are grouped by path set and tag only. Leaving the host out means a
# renamed machine keeps pruning its old snapshots instead of forking a group.
GROUP_BY = "paths,tags"

# Exit status reported when the restic binary cannot be started
EXIT_NOT_FOUND = 127

# Exit status reported when a child outlived its timeout, as timeout(1) does
EXIT_TIMEOUT = 124


class ResticEngine:
    """Runs restic subcommands as child processes that can be cancelled.

    Args:
        binary: restic executable
        env: Environment for the child (repository address and credentials)
        cache_dir: Local cache directory passed to every command
        connections_option: Backend option receiving the connection count
        poll_interval: Seconds between cancellation checks while a child runs
        kill_timeout: Seconds to wait after SIGTERM before sending SIGKILL
        dry_run: Log commands instead of running them
    """

    def __init__(
        self,
        binary: str = "restic",
        env: Optional[dict[str, str]] = None,
        cache_dir: str | Path | None = None,
        connections_option: str = "b2.connections",
        poll_interval: float = 0.2,
        kill_timeout: float = 10.0,
        dry_run: bool = False,
    ) -> None:
        self.binary = binary
        self.env = env
        self.cache_dir = cache_dir
        self.connections_option = connections_option
        self.poll_interval = poll_interval
        self.kill_timeout = kill_timeout
        self.dry_run = dry_run

    def __repr__(self) -> str:
        return f"ResticEngine(binary={self.binary!r}, dry_run={self.dry_run})"

    def _common_args(self) -> list[str]:
        if self.cache_dir:
            return ["--cache-dir", str(self.cache_dir)]
        return []

    def _connections_args(self, connections: int) -> list[str]:
        return ["--option", f"{self.connections_option}={connections}"]

    def build_unlock_command(self) -> list[str]:
        return [self.binary, "unlock", *self._common_args()]

    def build_backup_command(
        self,
        paths: Sequence[Path],
        excludes: Sequence[Path],
        tag: str,
        connections: int,
    ) -> list[str]:
        """Build the ``restic backup`` argv.

        ``--one-file-system`` is always passed so each path stays on the
        filesystem it names and never wanders into /proc, /dev or other mounts.
        """
        cmd = [
            self.binary,
            "backup",
            "--one-file-system",
            *self._common_args(),
            "--tag",
            tag,
            *self._connections_args(connections),
        ]
        for exclude in excludes:
            cmd.extend(["--exclude-file", str(exclude)])
        cmd.extend(str(p) for p in paths)
        return cmd

    def build_forget_command(
        self, tag: str, policy: RetentionPolicy, connections: int
    ) -> list[str]:
        """Build the ``restic forget --prune`` argv restricted to ``tag``."""
        return [
            self.binary,
            "forget",
            *self._common_args(),
            "--tag",
            tag,
            *self._connections_args(connections),
            "--prune",
            "--group-by",
            GROUP_BY,
            *policy.to_args(),
        ]

    def unlock(
        self, token: Optional[CancelToken] = None, timeout: Optional[float] = None
    ) -> int:
        """Remove stale locks. Returns 0 when there was nothing to remove too."""
        return self.execute(
            "unlock",
            self.build_unlock_command(),
            token=token,
            capture_output=True,
            timeout=timeout,
        )

    def backup(
        self,
        paths: Sequence[Path],
        excludes: Sequence[Path],
        tag: str,
        connections: int,
        token: Optional[CancelToken] = None,
    ) -> int:
        cmd = self.build_backup_command(paths, excludes, tag, connections)
        return self.execute("backup", cmd, token=token)

    def forget(
        self,
        tag: str,
        policy: RetentionPolicy,
        connections: int,
        token: Optional[CancelToken] = None,
    ) -> int:
        cmd = self.build_forget_command(tag, policy, connections)
        return self.execute("prune", cmd, token=token)

    def execute(
        self,
        step: str,
        cmd: list[str],
        token: Optional[CancelToken] = None,
        capture_output: bool = False,
        timeout: Optional[float] = None,
    ) -> int:
        """Run ``cmd`` to completion, or until ``token`` is cancelled.

        Args:
            step: Step name used in log messages and errors
            cmd: argv to run
            token: Cancellation token polled while the child runs
            capture_output: Collect output and log it instead of streaming it
            timeout: Seconds after which the child is terminated (None waits forever)

        Returns:
            The child's exit status, or ``EXIT_TIMEOUT`` if ``timeout`` expired

        Raises:
            CancelledByOperator: ``token`` was cancelled before or during the run
        """
        if token is not None and token.cancelled:
            raise self._cancelled(step, token)

        logger.debug("Executing %s: %s", step, cmd)
        if self.dry_run:
            logger.info("Dry run, would execute: %s", " ".join(cmd))
            return 0

        pipe = subprocess.PIPE if capture_output else None
        try:
            proc = subprocess.Popen(
                cmd,
                env=self.env,
                stdout=pipe,
                stderr=subprocess.STDOUT if capture_output else None,
                text=True,
            )
        except FileNotFoundError:
            logger.error("restic executable not found: %s", self.binary)
            return EXIT_NOT_FOUND

        deadline = None if timeout is None else time.monotonic() + timeout
        output = None
        while True:
            try:
                output, _ = proc.communicate(timeout=self.poll_interval)
                break
            except subprocess.TimeoutExpired:
                if token is not None and token.cancelled:
                    self._terminate(step, proc)
                    raise self._cancelled(step, token)
                if deadline is not None and time.monotonic() >= deadline:
                    logger.error("restic %s did not finish within %ss", step, timeout)
                    self._terminate(step, proc)
                    return EXIT_TIMEOUT

        if output:
            log = logger.debug if proc.returncode == 0 else logger.error
            for line in output.splitlines():
                log("restic %s: %s", step, line)

        logger.debug("%s exited with %d", step, proc.returncode)

        # The signal usually reaches restic too, which then exits on its own
        if token is not None and token.cancelled:
            raise self._cancelled(step, token)
        return proc.returncode

    def _terminate(self, step: str, proc: subprocess.Popen) -> None:
        """Stop a running child, escalating to SIGKILL after ``kill_timeout``."""
        logger.info("Terminating restic %s (pid %d)", step, proc.pid)
        proc.terminate()
        deadline = time.monotonic() + self.kill_timeout
        while True:
            try:
                proc.communicate(timeout=self.poll_interval)
                return
            except subprocess.TimeoutExpired:
                if time.monotonic() >= deadline:
                    break
        logger.warning("restic %s ignored SIGTERM, killing it", step)
        proc.kill()
        proc.communicate()

    @staticmethod
    def _cancelled(step: str, token: CancelToken) -> CancelledByOperator:
        return CancelledByOperator(step, token.signum or signal.SIGTERM)
