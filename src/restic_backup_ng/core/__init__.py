"""Core pipeline: path discovery, retention, restic invocation and the runner."""

from .cancel import CancelToken, signal_scope
from .errors import (
    BackupFailed,
    CancelledByOperator,
    JobError,
    PruneFailed,
    UnlockFailed,
)
from .paths import BackupTarget, ResolvedSources, resolve
from .restic import ResticEngine
from .retention import RetentionPolicy
from .runner import JobRunner, describe_outcome

__all__ = [
    "BackupFailed",
    "BackupTarget",
    "CancelToken",
    "CancelledByOperator",
    "JobError",
    "JobRunner",
    "PruneFailed",
    "ResolvedSources",
    "ResticEngine",
    "RetentionPolicy",
    "UnlockFailed",
    "describe_outcome",
    "resolve",
    "signal_scope",
]
