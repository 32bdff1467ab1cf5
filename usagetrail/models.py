"""Data model for transitions, sessions, and their aggregates."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional, TypedDict

# Raw event type codes reported by the OS usage-tracking API
ACTIVITY_RESUMED = 1  # also MOVE_TO_FOREGROUND
ACTIVITY_PAUSED = 2  # also MOVE_TO_BACKGROUND
CONFIGURATION_CHANGE = 5
USER_INTERACTION = 7
SHORTCUT_INVOCATION = 8
SCREEN_INTERACTIVE = 15
SCREEN_NON_INTERACTIVE = 16
KEYGUARD_SHOWN = 17
KEYGUARD_HIDDEN = 18
ACTIVITY_STOPPED = 23
DEVICE_SHUTDOWN = 26
DEVICE_STARTUP = 27


class TransitionKind(Enum):
    """Foreground transition kinds kept by the extractor."""

    RESUMED = "resumed"
    PAUSED = "paused"

    @classmethod
    def from_event_type(cls, event_type: int) -> Optional["TransitionKind"]:
        """Map a raw event type code to a transition kind, or None."""
        if event_type == ACTIVITY_RESUMED:
            return cls.RESUMED
        if event_type == ACTIVITY_PAUSED:
            return cls.PAUSED
        return None


@dataclass(frozen=True)
class UsageEvent:
    """One raw event as delivered by the usage-tracking API."""

    event_type: int
    timestamp_ms: int
    package_name: Optional[str] = ""
    class_name: Optional[str] = ""

    def to_dict(self) -> dict[str, Any]:
        """Convert event to dictionary for journal storage."""
        return {
            "event_type": self.event_type,
            "timestamp_ms": self.timestamp_ms,
            "package_name": self.package_name,
            "class_name": self.class_name,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "UsageEvent":
        """Create event from dictionary."""
        return cls(
            event_type=int(data["event_type"]),
            timestamp_ms=int(data["timestamp_ms"]),
            package_name=data.get("package_name") or "",
            class_name=data.get("class_name") or "",
        )


@dataclass(frozen=True)
class RawTransition:
    """A single observed foreground entry or exit."""

    kind: TransitionKind
    timestamp_ms: int
    app_id: str
    component_id: str = ""


class SessionEventData(TypedDict, total=False):
    """Payload stored with every sunk session."""

    app: str
    package: str
    classname: str


@dataclass(frozen=True)
class Session:
    """A reconstructed interval during which one app was in the foreground.

    Sessions are immutable; ``duration_ms`` is derived from the bounds.
    """

    app_id: str
    app_display_name: str
    start_ms: int
    end_ms: int
    component_id: str = ""

    def __post_init__(self):
        if self.end_ms <= self.start_ms:
            raise ValueError(
                f"Session end ({self.end_ms}) must be after start ({self.start_ms})"
            )

    @property
    def duration_ms(self) -> int:
        return self.end_ms - self.start_ms

    @property
    def duration_seconds(self) -> float:
        return self.duration_ms / 1000.0

    @property
    def duration_minutes(self) -> float:
        return self.duration_ms / 60000.0

    @property
    def duration_hours(self) -> float:
        return self.duration_ms / 3600000.0

    def to_event_data(self) -> SessionEventData:
        """Build the data payload recorded with the session in the sink."""
        data: SessionEventData = {"app": self.app_display_name, "package": self.app_id}
        if self.component_id:
            data["classname"] = self.component_id
        return data

    def to_dict(self) -> dict[str, Any]:
        """Convert session to a plain dictionary."""
        return {
            "app_id": self.app_id,
            "app_display_name": self.app_display_name,
            "component_id": self.component_id,
            "start_ms": self.start_ms,
            "end_ms": self.end_ms,
            "duration_ms": self.duration_ms,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Session":
        """Create session from dictionary; ``duration_ms`` is ignored."""
        return cls(
            app_id=data["app_id"],
            app_display_name=data["app_display_name"],
            start_ms=data["start_ms"],
            end_ms=data["end_ms"],
            component_id=data.get("component_id", ""),
        )


@dataclass
class AppUsageSummary:
    """Aggregated usage of a single app over a session set."""

    app_id: str
    app_display_name: str
    total_time_ms: int
    session_count: int
    sessions: list[Session] = field(default_factory=list)

    @property
    def total_minutes(self) -> float:
        return self.total_time_ms / 60000.0

    @property
    def total_hours(self) -> float:
        return self.total_time_ms / 3600000.0

    @property
    def average_session_ms(self) -> int:
        if self.session_count == 0:
            return 0
        return self.total_time_ms // self.session_count

    def to_dict(self) -> dict[str, Any]:
        return {
            "app_id": self.app_id,
            "app_display_name": self.app_display_name,
            "total_time_ms": self.total_time_ms,
            "session_count": self.session_count,
            "average_session_ms": self.average_session_ms,
        }


@dataclass
class Timeline:
    """All sessions of one calendar day."""

    day_start_ms: int
    sessions: list[Session]
    app_summaries: list[AppUsageSummary]
    total_screen_time_ms: int

    @property
    def total_screen_time_minutes(self) -> float:
        return self.total_screen_time_ms / 60000.0

    @property
    def total_screen_time_hours(self) -> float:
        return self.total_screen_time_ms / 3600000.0

    @property
    def unique_apps_count(self) -> int:
        return len(self.app_summaries)

    def to_dict(self) -> dict[str, Any]:
        return {
            "day_start_ms": self.day_start_ms,
            "total_screen_time_ms": self.total_screen_time_ms,
            "unique_apps_count": self.unique_apps_count,
            "app_summaries": [s.to_dict() for s in self.app_summaries],
            "sessions": [s.to_dict() for s in self.sessions],
        }


@dataclass
class SessionStats:
    """Distribution statistics over a session set."""

    total_sessions: int
    average_session_duration_ms: int
    longest_session: Optional[Session]
    shortest_session: Optional[Session]
    most_used_app: Optional[AppUsageSummary]
