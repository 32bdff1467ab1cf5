"""Single-shot background worker for incremental syncs."""

import threading
from typing import Optional

from .errors import UsageTrailError
from .logging_setup import get_logger
from .sync import STATUS_FAILED, SessionSync, SyncResult

logger = get_logger("worker")


class SyncWorker:
    """Runs one ``send_since_checkpoint`` on a daemon thread.

    ``cancel()`` takes effect between two sink writes. At most one worker
    should run per sink bucket; serializing them is up to the caller.
    """

    def __init__(self, sync: SessionSync, until_ms: Optional[int] = None):
        self.sync = sync
        self.until_ms = until_ms
        self._cancel_event = threading.Event()
        self._done = threading.Event()
        self._thread: Optional[threading.Thread] = None
        self._result: Optional[SyncResult] = None

    def start(self) -> "SyncWorker":
        if self._thread is not None:
            raise RuntimeError("SyncWorker can only be started once")

        self._thread = threading.Thread(
            target=self._run, name="usagetrail-sync", daemon=True
        )
        self._thread.start()
        return self

    def _run(self) -> None:
        logger.info("Starting incremental session sync")
        try:
            self._result = self.sync.send_since_checkpoint(
                cancel_event=self._cancel_event, until_ms=self.until_ms
            )
        except Exception as e:
            logger.exception(f"Unexpected error during sync: {e}")
            error = UsageTrailError(str(e))
            error.__cause__ = e
            self._result = SyncResult(
                "-", STATUS_FAILED, 0, 0, self.until_ms or 0, error=error
            )
        finally:
            self._done.set()

        if self._result.should_retry:
            logger.warning(f"Sync {self._result.status}, retry needed: {self._result.error}")
        else:
            logger.info(f"Sync {self._result.status}: {self._result.sessions_sent} sessions")

    def cancel(self) -> None:
        """Request cancellation before the next sink write."""
        self._cancel_event.set()

    @property
    def cancelled(self) -> bool:
        return self._cancel_event.is_set()

    def is_done(self) -> bool:
        return self._done.is_set()

    def join(self, timeout: Optional[float] = None) -> Optional[SyncResult]:
        """Wait for the run and return its result (None if still running)."""
        if self._thread is None:
            raise RuntimeError("SyncWorker was not started")
        self._thread.join(timeout)
        if not self._done.is_set():
            return None
        return self._result


def run_sync_once(sync: SessionSync, timeout: Optional[float] = None) -> Optional[SyncResult]:
    """Start a worker and wait for its result."""
    return SyncWorker(sync).start().join(timeout)
