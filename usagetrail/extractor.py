"""Extraction of foreground transitions from raw usage events."""

from collections.abc import Iterable
from typing import Optional

from .models import RawTransition, TransitionKind, UsageEvent


def is_relevant_event(event: UsageEvent) -> bool:
    """Check if an event is a foreground entry or exit."""
    return TransitionKind.from_event_type(event.event_type) is not None


def to_transition(event: UsageEvent) -> Optional[RawTransition]:
    """Convert a raw event to a transition, or None for other kinds."""
    kind = TransitionKind.from_event_type(event.event_type)
    if kind is None:
        return None
    return RawTransition(
        kind=kind,
        timestamp_ms=event.timestamp_ms,
        app_id=event.package_name or "",
        component_id=event.class_name or "",
    )


def extract_transitions(events: Iterable[UsageEvent]) -> list[RawTransition]:
    """Keep resumed/paused events and order them by timestamp.

    The sort is stable, so events sharing a timestamp keep stream order.
    """
    transitions = []
    for event in events:
        transition = to_transition(event)
        if transition is not None:
            transitions.append(transition)

    transitions.sort(key=lambda t: t.timestamp_ms)
    return transitions
