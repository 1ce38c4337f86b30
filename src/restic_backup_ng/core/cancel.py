"""Operator cancellation of a running pipeline.

SIGINT and SIGTERM only flip a token. The step currently waiting on a
restic child polls the token, terminates its child and unwinds, so the
runner still gets to release the repository lock on the way out.
"""

import contextlib
import logging
import signal
import threading
from collections.abc import Iterator
from typing import Optional

from .. import __util__

logger = logging.getLogger(__name__)

CANCEL_SIGNALS = (signal.SIGINT, signal.SIGTERM)


class CancelToken:
    """Thread-safe cancellation flag remembering the signal that set it."""

    def __init__(self) -> None:
        self._event = threading.Event()
        self._lock = threading.Lock()
        self.signum: Optional[int] = None

    def cancel(self, signum: int = signal.SIGTERM) -> None:
        with self._lock:
            if self.signum is None:
                self.signum = int(signum)
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def wait(self, timeout: float | None = None) -> bool:
        """Block until cancelled or ``timeout`` expires."""
        return self._event.wait(timeout)


@contextlib.contextmanager
def signal_scope(
    token: CancelToken, signals: tuple[int, ...] = CANCEL_SIGNALS
) -> Iterator[CancelToken]:
    """Route ``signals`` to ``token`` for the lifetime of the block.

    Previous handlers are restored on every exit path. Must be entered
    from the main thread, as required by ``signal.signal``.
    """

    def _handler(signum, frame):  # pylint: disable=unused-argument
        if not token.cancelled:
            logger.warning(
                "Received %s, cancelling current step", __util__.signal_name(signum)
            )
        token.cancel(signum)

    previous = {}
    try:
        for sig in signals:
            previous[sig] = signal.signal(sig, _handler)
        yield token
    finally:
        for sig, handler in previous.items():
            signal.signal(sig, handler)
