"""Structured JSON-lines log of pipeline steps.

Each completed, failed or cancelled step appends one record, so the
history of scheduled runs can be inspected after the fact.
"""

import json
import logging
import os
import threading
import time
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Optional

logger = logging.getLogger(__name__)

_log_path: Optional[Path] = None
_lock = threading.Lock()


def set_transaction_log(path: str | Path | None) -> None:
    """Enable logging to ``path``, or disable it with None."""
    global _log_path  # pylint: disable=global-statement

    if path is None:
        _log_path = None
        return

    _log_path = Path(path)
    _log_path.parent.mkdir(parents=True, exist_ok=True)


def log_transaction(
    action: str,
    status: str,
    tag: Optional[str] = None,
    returncode: Optional[int] = None,
    duration_seconds: Optional[float] = None,
    error: Optional[str] = None,
    details: Optional[dict[str, Any]] = None,
) -> None:
    """Append one step record. Does nothing while logging is disabled."""
    if _log_path is None:
        return

    record: dict[str, Any] = {
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "pid": os.getpid(),
        "action": action,
        "status": status,
    }
    optional = {
        "tag": tag,
        "returncode": returncode,
        "duration_seconds": duration_seconds,
        "error": error,
        "details": details,
    }
    record.update({k: v for k, v in optional.items() if v is not None})

    try:
        with _lock, open(_log_path, "a", encoding="utf-8") as f:
            f.write(json.dumps(record) + "\n")
    except OSError as e:
        # The step log is informational; it must not fail a backup
        logger.warning("Could not write transaction log %s: %s", _log_path, e)


def read_transaction_log(
    path: str | Path | None = None, limit: Optional[int] = None
) -> list[dict[str, Any]]:
    """Read records, newest last. ``limit`` keeps only the most recent ones."""
    target = Path(path) if path else _log_path
    if target is None or not target.exists():
        return []

    records = []
    with open(target, encoding="utf-8") as f:
        for line in f:
            line = line.strip()
            if not line:
                continue
            try:
                records.append(json.loads(line))
            except json.JSONDecodeError:
                logger.debug("Skipping malformed transaction record: %s", line)

    if limit is not None:
        records = records[-limit:] if limit > 0 else []
    return records


class TransactionContext:
    """Time a step and log its outcome.

    Usage:
        with TransactionContext("backup", tag="cron.d") as tx:
            tx.returncode = engine.backup(...)
    """

    def __init__(self, action: str, tag: Optional[str] = None) -> None:
        self.action = action
        self.tag = tag
        self.returncode: Optional[int] = None
        self.status: Optional[str] = None
        self._start = 0.0

    def __enter__(self) -> "TransactionContext":
        self._start = time.monotonic()
        return self

    def __exit__(self, exc_type, exc, tb) -> bool:
        duration = round(time.monotonic() - self._start, 3)
        status = self.status
        error = None
        if exc is not None:
            status = status or "failed"
            error = str(exc)
        elif status is None:
            status = "completed" if self.returncode == 0 else "failed"

        log_transaction(
            action=self.action,
            status=status,
            tag=self.tag,
            returncode=self.returncode,
            duration_seconds=duration,
            error=error,
        )
        return False
