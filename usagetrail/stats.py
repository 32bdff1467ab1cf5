"""Distribution statistics over session sets."""

from collections.abc import Sequence

from .aggregate import summarize
from .models import Session, SessionStats


def compute_stats(sessions: Sequence[Session]) -> SessionStats:
    """Compute count, mean, extremes, and most used app.

    Ties on longest/shortest and most used app keep the first occurrence.
    """
    if not sessions:
        return SessionStats(
            total_sessions=0,
            average_session_duration_ms=0,
            longest_session=None,
            shortest_session=None,
            most_used_app=None,
        )

    durations = [s.duration_ms for s in sessions]
    # max()/min() return the first maximal/minimal element
    longest = max(sessions, key=lambda s: s.duration_ms)
    shortest = min(sessions, key=lambda s: s.duration_ms)
    most_used = max(summarize(sessions), key=lambda a: a.total_time_ms)

    return SessionStats(
        total_sessions=len(sessions),
        average_session_duration_ms=sum(durations) // len(durations),
        longest_session=longest,
        shortest_session=shortest,
        most_used_app=most_used,
    )
