"""Session parser: raw events for a window in, sessions and timelines out."""

from collections.abc import Callable, Sequence
from typing import Optional

from .aggregate import build_timeline, day_window, sessions_in_window
from .config import Config
from .errors import SourceUnavailable
from .extractor import extract_transitions
from .logging_setup import get_logger
from .models import Session, SessionStats, Timeline, UsageEvent
from .names import DisplayNameResolver
from .reconstructor import (
    MAX_SESSION_DURATION_MS,
    MIN_SESSION_DURATION_MS,
    reconstruct_sessions,
)
from .stats import compute_stats
from .timeutils import iter_days, now_ms
from .types import UsageEventSource

logger = get_logger("parser")


class SessionParser:
    """Converts raw usage events of a time window into sessions."""

    def __init__(
        self,
        source: UsageEventSource,
        resolve_name: Optional[Callable[[str], str]] = None,
        min_duration_ms: int = MIN_SESSION_DURATION_MS,
        max_duration_ms: int = MAX_SESSION_DURATION_MS,
    ):
        self.source = source
        self.resolve_name = resolve_name or DisplayNameResolver()
        self.min_duration_ms = min_duration_ms
        self.max_duration_ms = max_duration_ms

    @classmethod
    def from_config(
        cls, source: UsageEventSource, config: Config, lookup=None
    ) -> "SessionParser":
        """Build a parser using the thresholds and labels from ``config``."""
        return cls(
            source,
            resolve_name=DisplayNameResolver(config.labels.app_labels, lookup),
            min_duration_ms=config.sessions.min_duration_ms,
            max_duration_ms=config.sessions.max_duration_ms,
        )

    def _query(self, start_ms: int, end_ms: int) -> Sequence[UsageEvent]:
        if end_ms <= start_ms:
            return []
        try:
            return self.source.query_events(start_ms, end_ms)
        except SourceUnavailable:
            raise
        except Exception as e:
            logger.error(f"Usage event query failed for [{start_ms}, {end_ms}): {e}")
            raise SourceUnavailable(start_ms, end_ms, str(e)) from e

    def parse_for_period(self, start_ms: int, end_ms: int) -> list[Session]:
        """Reconstruct sessions from the events in [start_ms, end_ms)."""
        events = self._query(start_ms, end_ms)
        transitions = extract_transitions(events)
        logger.debug(
            f"Processing {len(transitions)} transitions of {len(events)} events for period"
        )
        return reconstruct_sessions(
            transitions,
            self.resolve_name,
            min_duration_ms=self.min_duration_ms,
            max_duration_ms=self.max_duration_ms,
        )

    def parse_since(
        self, last_update_ms: int, until_ms: Optional[int] = None
    ) -> list[Session]:
        """Reconstruct sessions from ``last_update_ms`` up to now."""
        if until_ms is None:
            until_ms = now_ms()
        return self.parse_for_period(last_update_ms, until_ms)

    def parse_for_day(self, day_start_ms: int) -> Timeline:
        """Build the timeline of the 24h window starting at ``day_start_ms``."""
        start_ms, end_ms = day_window(day_start_ms)
        sessions = self.parse_for_period(start_ms, end_ms)
        return build_timeline(day_start_ms, sessions_in_window(sessions, start_ms, end_ms))

    def parse_for_days(self, start_day_ms: int, number_of_days: int) -> list[Timeline]:
        """Build one timeline per day for consecutive days."""
        return [
            self.parse_for_day(day_start)
            for day_start, _ in iter_days(start_day_ms, number_of_days)
        ]

    def get_stats(self, sessions: Sequence[Session]) -> SessionStats:
        return compute_stats(sessions)
