"""Reconstruction checkpoint."""

from typing import Optional

from .errors import SinkError
from .logging_setup import get_logger
from .types import SessionSink

logger = get_logger("cursor")


class ReconstructionCursor:
    """End time of the last session successfully persisted.

    Owned by one run. Sessions are sunk in start order, so the cursor
    follows the session with the latest start rather than the latest end:
    an outer session that encloses later ones must not push the next
    window past their starts.
    """

    def __init__(self, last_processed_end_ms: Optional[int] = None):
        self._last_processed_end_ms = last_processed_end_ms

    @classmethod
    def from_sink(cls, sink: SessionSink, bucket_id: str) -> "ReconstructionCursor":
        """Initialize from the end of the latest-starting session in the sink.

        Raises:
            SinkError: If the sink cannot be queried
        """
        try:
            last_end = sink.query_last_session_end(bucket_id)
        except SinkError:
            raise
        except Exception as e:
            raise SinkError(f"Failed to query last session end: {e}") from e

        logger.info(f"Cursor initialized: {last_end if last_end is not None else 'never'}")
        return cls(last_end)

    @property
    def last_processed_end_ms(self) -> Optional[int]:
        return self._last_processed_end_ms

    @property
    def window_start_ms(self) -> int:
        """Start of the next reconstruction window (epoch when unset)."""
        return self._last_processed_end_ms or 0

    def advance(self, end_ms: int) -> None:
        """Record the end of the session that was just persisted."""
        self._last_processed_end_ms = end_ms

    def __repr__(self) -> str:
        return f"ReconstructionCursor({self._last_processed_end_ms!r})"
