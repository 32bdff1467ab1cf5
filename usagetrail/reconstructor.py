"""Session reconstruction from ordered foreground transitions.

Only clean resume/pause pairs count: a resume is matched with the next
transition of the same app if that transition is a pause. Transitions of
other apps in between do not break the pair, while a second resume of the
same app discards the first one. A resume with no later transition of its
app inside the window yields nothing; it is picked up by a later window
that also contains its pause.
"""

from collections.abc import Callable, Sequence
from typing import Optional

from .logging_setup import get_logger
from .models import RawTransition, Session, TransitionKind
from .names import fallback_label

logger = get_logger("reconstructor")

MIN_SESSION_DURATION_MS = 1000
MAX_SESSION_DURATION_MS = 4 * 60 * 60 * 1000


def is_valid_duration(
    duration_ms: int,
    min_duration_ms: int = MIN_SESSION_DURATION_MS,
    max_duration_ms: int = MAX_SESSION_DURATION_MS,
) -> bool:
    """Check a candidate duration against the exclusive validity bounds."""
    return min_duration_ms < duration_ms < max_duration_ms


def find_pause(transitions: Sequence[RawTransition], index: int) -> Optional[int]:
    """Find the pause closing the resume at ``index``.

    Returns:
        Index of the matching pause, or None when the next transition of the
        same app is another resume or there is none.
    """
    app_id = transitions[index].app_id
    for j in range(index + 1, len(transitions)):
        candidate = transitions[j]
        if candidate.app_id != app_id:
            continue
        if candidate.kind is TransitionKind.PAUSED:
            return j
        return None
    return None


def reconstruct_sessions(
    transitions: Sequence[RawTransition],
    resolve_name: Optional[Callable[[str], str]] = None,
    min_duration_ms: int = MIN_SESSION_DURATION_MS,
    max_duration_ms: int = MAX_SESSION_DURATION_MS,
) -> list[Session]:
    """Pair resumes with pauses and keep sessions inside the validity bounds.

    Args:
        transitions: Transitions ordered ascending by timestamp
        resolve_name: Display name lookup; defaults to the derived label
        min_duration_ms: Exclusive lower bound on session duration
        max_duration_ms: Exclusive upper bound on session duration

    Returns:
        Sessions ordered ascending by start time
    """
    if resolve_name is None:
        resolve_name = fallback_label

    sessions = []
    orphaned = 0
    rejected = 0

    for i, transition in enumerate(transitions):
        if transition.kind is not TransitionKind.RESUMED:
            continue

        j = find_pause(transitions, i)
        if j is None:
            orphaned += 1
            continue

        pause = transitions[j]
        duration_ms = pause.timestamp_ms - transition.timestamp_ms
        if not is_valid_duration(duration_ms, min_duration_ms, max_duration_ms):
            rejected += 1
            continue

        sessions.append(
            Session(
                app_id=transition.app_id,
                app_display_name=resolve_name(transition.app_id),
                start_ms=transition.timestamp_ms,
                end_ms=pause.timestamp_ms,
                component_id=transition.component_id,
            )
        )

    sessions.sort(key=lambda s: s.start_ms)

    logger.debug(
        f"Reconstructed {len(sessions)} sessions from {len(transitions)} transitions "
        f"({orphaned} unpaired resumes, {rejected} out of range)"
    )
    return sessions
