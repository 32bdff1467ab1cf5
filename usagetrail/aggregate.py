"""Per-app summaries and day timelines."""

from collections.abc import Iterable, Sequence

from .models import AppUsageSummary, Session, Timeline
from .timeutils import DAY_MS


def summarize(sessions: Iterable[Session]) -> list[AppUsageSummary]:
    """Group sessions by app id.

    Groups keep the order in which each app first appears. The display name
    comes from the first session of each group.
    """
    groups: dict[str, list[Session]] = {}
    for session in sessions:
        groups.setdefault(session.app_id, []).append(session)

    summaries = []
    for app_id, app_sessions in groups.items():
        summaries.append(
            AppUsageSummary(
                app_id=app_id,
                app_display_name=app_sessions[0].app_display_name,
                total_time_ms=sum(s.duration_ms for s in app_sessions),
                session_count=len(app_sessions),
                sessions=sorted(app_sessions, key=lambda s: s.start_ms),
            )
        )
    return summaries


def sessions_in_window(
    sessions: Iterable[Session], start_ms: int, end_ms: int
) -> list[Session]:
    """Sessions starting inside [start_ms, end_ms)."""
    return [s for s in sessions if start_ms <= s.start_ms < end_ms]


def build_timeline(day_start_ms: int, sessions: Sequence[Session]) -> Timeline:
    """Build the timeline of one day from sessions already inside that day."""
    ordered = sorted(sessions, key=lambda s: s.start_ms)
    summaries = sorted(summarize(ordered), key=lambda s: s.total_time_ms, reverse=True)

    return Timeline(
        day_start_ms=day_start_ms,
        sessions=ordered,
        app_summaries=summaries,
        total_screen_time_ms=sum(s.duration_ms for s in ordered),
    )


def day_window(day_start_ms: int) -> tuple[int, int]:
    """Half-open [start, end) window of the day starting at ``day_start_ms``."""
    return day_start_ms, day_start_ms + DAY_MS
