"""Type definitions and protocols for usagetrail collaborators."""

from collections.abc import Sequence
from typing import Any, Optional, Protocol

from .models import Session, UsageEvent


class UsageEventSource(Protocol):
    """Protocol for raw usage event sources (the OS usage-tracking API)."""

    def query_events(self, start_ms: int, end_ms: int) -> Sequence[UsageEvent]:
        """Return raw events in [start_ms, end_ms); empty for an empty window."""
        ...


class NameLookup(Protocol):
    """Protocol for application metadata lookups.

    Raises LookupError when the application cannot be resolved.
    """

    def __call__(self, app_id: str) -> str:
        ...


class SessionSink(Protocol):
    """Protocol for stores that record finalized sessions."""

    def ensure_bucket(self, bucket_id: str, bucket_type: str, client: str) -> None:
        """Create the bucket if it does not exist yet."""
        ...

    def query_last_session_end(self, bucket_id: str) -> Optional[int]:
        """End time (ms) of the latest-starting recorded session, or None."""
        ...

    def sink_session(self, bucket_id: str, session: Session) -> Any:
        """Insert one discrete record; never merged with adjacent records."""
        ...

    def count_events(self, bucket_id: str) -> int:
        """Number of records in the bucket."""
        ...
