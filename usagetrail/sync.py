"""Sending reconstructed sessions to the sink.

Every session becomes one discrete sink record with its exact start and
duration. The incremental path resumes from the end of the last persisted
session; the refresh paths resend whole windows without looking at it.
"""

import threading
from collections.abc import Sequence
from dataclasses import dataclass
from typing import Optional

from .config import Config
from .cursor import ReconstructionCursor
from .errors import SinkError, SinkWriteFailed, SourceUnavailable, UsageTrailError
from .ids import generate_run_id
from .logging_setup import get_logger, set_run_id
from .models import Session, Timeline
from .parser import SessionParser
from .timeutils import (
    format_date,
    format_datetime,
    format_duration,
    now_ms,
    start_of_day_days_ago,
    start_of_day_ms,
)
from .types import SessionSink

logger = get_logger("sync")

STATUS_OK = "ok"
STATUS_PARTIAL = "partial"
STATUS_CANCELLED = "cancelled"
STATUS_FAILED = "failed"


@dataclass
class SyncResult:
    """Outcome of one sync run."""

    run_id: str
    status: str
    sessions_sent: int
    window_start_ms: int
    window_end_ms: int
    cursor_end_ms: Optional[int] = None
    error: Optional[UsageTrailError] = None

    @property
    def ok(self) -> bool:
        return self.status == STATUS_OK

    @property
    def should_retry(self) -> bool:
        """Whether a scheduler should run the sync again soon."""
        return self.status in (STATUS_FAILED, STATUS_PARTIAL)

    def raise_for_error(self) -> None:
        if self.error is not None:
            raise self.error


class SessionSync:
    """Reconstructs sessions and records them in a sink bucket."""

    def __init__(
        self,
        parser: SessionParser,
        sink: SessionSink,
        config: Optional[Config] = None,
    ):
        self.parser = parser
        self.sink = sink
        self.config = config or Config()
        self.bucket_id = self.config.sink.bucket_id
        self.last_updated_ms: Optional[int] = None

    def ensure_bucket(self) -> None:
        sink_cfg = self.config.sink
        self.sink.ensure_bucket(sink_cfg.bucket_id, sink_cfg.bucket_type, sink_cfg.client)

    def _send(
        self,
        sessions: Sequence[Session],
        cursor: Optional[ReconstructionCursor] = None,
        cancel_event: Optional[threading.Event] = None,
    ) -> tuple[int, Optional[SinkWriteFailed], bool]:
        """Sink sessions in start order, stopping at the first failure.

        Returns:
            (sessions sent, failure or None, cancelled flag)
        """
        progress_every = self.config.sink.progress_every
        sent = 0

        for index, session in enumerate(sorted(sessions, key=lambda s: s.start_ms)):
            if cancel_event is not None and cancel_event.is_set():
                logger.info(f"Sync cancelled after {sent} sessions")
                return sent, None, True

            try:
                self.sink.sink_session(self.bucket_id, session)
            except Exception as e:
                failure = SinkWriteFailed(session, index, str(e))
                failure.__cause__ = e
                logger.error(str(failure))
                return sent, failure, False

            sent += 1
            if cursor is not None:
                cursor.advance(session.end_ms)
            logger.debug(
                f"Inserted session event for {session.app_display_name}: "
                f"{format_duration(session.duration_ms)} ({session.start_ms} - {session.end_ms})"
            )
            if sent % progress_every == 0:
                logger.info(f"Progress: {sent} sessions, last {session.app_display_name}")

        return sent, None, False

    def send_since_checkpoint(
        self,
        cancel_event: Optional[threading.Event] = None,
        until_ms: Optional[int] = None,
    ) -> SyncResult:
        """Send sessions that ended after the last persisted one.

        Never raises for source or sink failures; they are reported on the
        returned result and leave the cursor at the last persisted session.
        """
        run_id = generate_run_id()
        set_run_id(run_id)
        if until_ms is None:
            until_ms = now_ms()

        logger.info("Sending session events since checkpoint")

        try:
            self.ensure_bucket()
            cursor = ReconstructionCursor.from_sink(self.sink, self.bucket_id)
        except Exception as e:
            error = e if isinstance(e, SinkError) else SinkError(str(e))
            if error is not e:
                error.__cause__ = e
            logger.error(f"Could not read checkpoint: {error}")
            return SyncResult(run_id, STATUS_FAILED, 0, 0, until_ms, error=error)

        window_start = cursor.window_start_ms
        self.last_updated_ms = cursor.last_processed_end_ms

        try:
            sessions = self.parser.parse_for_period(window_start, until_ms)
        except SourceUnavailable as e:
            logger.error(f"Aborting run, cursor stays at {cursor.last_processed_end_ms}: {e}")
            return SyncResult(
                run_id,
                STATUS_FAILED,
                0,
                window_start,
                until_ms,
                cursor_end_ms=cursor.last_processed_end_ms,
                error=e,
            )

        sent, failure, cancelled = self._send(sessions, cursor, cancel_event)
        self.last_updated_ms = cursor.last_processed_end_ms

        if failure is not None:
            status = STATUS_PARTIAL
        elif cancelled:
            status = STATUS_CANCELLED
        else:
            status = STATUS_OK

        logger.info(f"Finished sync ({status}), sent {sent} of {len(sessions)} session events")
        return SyncResult(
            run_id,
            status,
            sent,
            window_start,
            until_ms,
            cursor_end_ms=cursor.last_processed_end_ms,
            error=failure,
        )

    def _send_all(self, sessions: Sequence[Session]) -> int:
        """Send sessions without a cursor, raising on the first failure."""
        self.ensure_bucket()
        sent, failure, _ = self._send(sessions)
        if failure is not None:
            raise failure
        return sent

    def send_for_period(self, start_ms: int, end_ms: int) -> int:
        """Resend every session in [start_ms, end_ms)."""
        logger.info(
            f"Sending session events for period: {format_datetime(start_ms)} to "
            f"{format_datetime(end_ms)}"
        )
        sent = self._send_all(self.parser.parse_for_period(start_ms, end_ms))
        logger.info(f"Sent {sent} session events for period")
        return sent

    def force_refresh_day(self, day_start_ms: int) -> int:
        """Resend every session of one day, ignoring the checkpoint.

        Sessions already in the sink are sent again.
        """
        logger.info(f"Sending session events for day: {format_date(day_start_ms)}")
        timeline = self.parser.parse_for_day(day_start_ms)
        sent = self._send_all(timeline.sessions)
        logger.info(f"Sent {sent} session events for day")
        return sent

    def force_refresh_today(self, ts_ms: Optional[int] = None) -> int:
        return self.force_refresh_day(start_of_day_ms(ts_ms))

    def send_for_last_days(self, number_of_days: int, ts_ms: Optional[int] = None) -> int:
        """Resend the sessions of today and the ``number_of_days - 1`` days before."""
        total = 0
        for days_ago in range(number_of_days):
            day_start = start_of_day_days_ago(days_ago, ts_ms)
            total += self.force_refresh_day(day_start)
        logger.info(f"Sent total of {total} session events for last {number_of_days} days")
        return total

    def insert_sessions(self, sessions: Sequence[Session]) -> int:
        """Insert already reconstructed sessions as individual events."""
        logger.info(f"Inserting {len(sessions)} sessions as individual events")
        return self._send_all(sessions)

    def insert_session_event(
        self,
        app_id: str,
        app_display_name: str,
        start_ms: int,
        duration_ms: int,
        component_id: str = "",
    ) -> Session:
        """Insert a single session given by start and duration."""
        session = Session(
            app_id=app_id,
            app_display_name=app_display_name,
            start_ms=start_ms,
            end_ms=start_ms + duration_ms,
            component_id=component_id,
        )
        self._send_all([session])
        return session

    def get_timeline_for_day(self, day_start_ms: int) -> Timeline:
        """Timeline of one day without sending anything."""
        return self.parser.parse_for_day(day_start_ms)

    def get_sessions_since_checkpoint(self, until_ms: Optional[int] = None) -> list[Session]:
        """Sessions the next incremental run would send, without sending them."""
        cursor = ReconstructionCursor.from_sink(self.sink, self.bucket_id)
        return self.parser.parse_since(cursor.window_start_ms, until_ms)

    def session_event_count(self) -> int:
        return self.sink.count_events(self.bucket_id)
