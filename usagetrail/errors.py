"""Error types raised at the source and sink boundaries."""

from typing import Optional


class UsageTrailError(Exception):
    """Base class for usagetrail errors."""


class SourceUnavailable(UsageTrailError):
    """The raw usage event source could not be queried for a window."""

    def __init__(self, window_start_ms: int, window_end_ms: int, reason: str = ""):
        self.window_start_ms = window_start_ms
        self.window_end_ms = window_end_ms
        self.reason = reason
        message = f"Usage events unavailable for [{window_start_ms}, {window_end_ms})"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message)


class SinkError(UsageTrailError):
    """A sink rejected a query or a write."""


class SinkWriteFailed(UsageTrailError):
    """One session failed to persist; earlier sessions of the run were kept."""

    def __init__(self, session, index: int, reason: Optional[str] = None):
        self.session = session
        self.index = index
        message = (
            f"Failed to sink session #{index} ({session.app_id} "
            f"{session.start_ms}-{session.end_ms})"
        )
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message)
