"""Tests for incremental and forced session syncs."""

import threading

import pytest

from tests.helpers.sessions import (
    HOUR,
    MINUTE,
    T0,
    FailingSource,
    FakeSink,
    raw_paused,
    raw_resumed,
)
from usagetrail.config import Config
from usagetrail.errors import SinkError, SinkWriteFailed, SourceUnavailable
from usagetrail.names import DisplayNameResolver
from usagetrail.parser import SessionParser
from usagetrail.source import StaticEventSource
from usagetrail.sync import (
    STATUS_CANCELLED,
    STATUS_FAILED,
    STATUS_OK,
    STATUS_PARTIAL,
    SessionSync,
)
from usagetrail.timeutils import DAY_MS

NOW = T0 + 6 * HOUR


def three_app_events():
    """Three non-overlapping sessions: a [0,10m), b [20m,35m), c [40m,41m)."""
    return [
        raw_resumed("com.a", T0),
        raw_paused("com.a", T0 + 10 * MINUTE),
        raw_resumed("com.b", T0 + 20 * MINUTE),
        raw_paused("com.b", T0 + 35 * MINUTE),
        raw_resumed("com.c", T0 + 40 * MINUTE),
        raw_paused("com.c", T0 + 41 * MINUTE),
    ]


def build_sync(events=None, sink=None, source=None, config=None):
    source = source or StaticEventSource(events or [])
    sink = sink if sink is not None else FakeSink()
    return SessionSync(SessionParser(source), sink, config or Config()), sink


class TestSendSinceCheckpoint:
    """Incremental path."""

    def test_sends_all_sessions_on_empty_sink(self):
        sync, sink = build_sync(three_app_events())
        result = sync.send_since_checkpoint(until_ms=NOW)

        assert result.status == STATUS_OK
        assert result.ok
        assert not result.should_retry
        assert result.sessions_sent == 3
        assert result.window_start_ms == 0
        assert result.window_end_ms == NOW
        assert result.cursor_end_ms == T0 + 41 * MINUTE
        assert [s.app_id for s in sink.sessions] == ["com.a", "com.b", "com.c"]
        assert sync.last_updated_ms == T0 + 41 * MINUTE

    def test_creates_bucket(self):
        sync, sink = build_sync(three_app_events())
        sync.send_since_checkpoint(until_ms=NOW)
        assert sink.buckets == {"aw-watcher-android-test": ("currentwindow", "usagetrail")}

    def test_sessions_sunk_in_start_order(self):
        events = [
            raw_resumed("com.a", T0),
            raw_resumed("com.b", T0 + MINUTE),
            raw_paused("com.b", T0 + 2 * MINUTE),
            raw_paused("com.a", T0 + 10 * MINUTE),
        ]
        sync, sink = build_sync(events)
        sync.send_since_checkpoint(until_ms=NOW)
        starts = [s.start_ms for s in sink.sessions]
        assert starts == sorted(starts)

    def test_second_run_sends_nothing_new(self):
        sync, sink = build_sync(three_app_events())
        sync.send_since_checkpoint(until_ms=NOW)
        result = sync.send_since_checkpoint(until_ms=NOW)

        assert result.status == STATUS_OK
        assert result.sessions_sent == 0
        assert result.window_start_ms == T0 + 41 * MINUTE
        assert sink.count_events("aw-watcher-android-test") == 3

    def test_only_tail_is_processed(self):
        source = StaticEventSource(three_app_events()[:2])
        sync, sink = build_sync(source=source)
        sync.send_since_checkpoint(until_ms=NOW)
        assert len(sink.sessions) == 1

        source.extend(three_app_events()[2:])
        result = sync.send_since_checkpoint(until_ms=NOW)
        assert result.sessions_sent == 2
        assert [s.app_id for s in sink.sessions] == ["com.a", "com.b", "com.c"]

    def test_resume_before_window_end_picked_up_later(self):
        source = StaticEventSource([raw_resumed("com.a", T0)])
        sync, sink = build_sync(source=source)
        assert sync.send_since_checkpoint(until_ms=NOW).sessions_sent == 0

        source.extend([raw_paused("com.a", T0 + 5 * MINUTE)])
        assert sync.send_since_checkpoint(until_ms=NOW).sessions_sent == 1
        assert sink.sessions[0].start_ms == T0

    def test_partial_failure_keeps_cursor_at_last_persisted(self):
        sink = FakeSink(fail_at=3)
        sync, _ = build_sync(three_app_events(), sink=sink)
        result = sync.send_since_checkpoint(until_ms=NOW)

        assert result.status == STATUS_PARTIAL
        assert result.should_retry
        assert result.sessions_sent == 2
        assert result.cursor_end_ms == T0 + 35 * MINUTE
        assert isinstance(result.error, SinkWriteFailed)
        assert isinstance(result.error.__cause__, SinkError)
        assert result.error.session.app_id == "com.c"
        with pytest.raises(SinkWriteFailed):
            result.raise_for_error()

    def test_failure_on_first_write_leaves_cursor_unset(self):
        sync, sink = build_sync(three_app_events(), sink=FakeSink(fail_at=1))
        result = sync.send_since_checkpoint(until_ms=NOW)
        assert result.status == STATUS_PARTIAL
        assert result.sessions_sent == 0
        assert result.cursor_end_ms is None
        assert sink.sessions == []

    def test_retry_after_partial_failure_completes(self):
        sink = FakeSink(fail_at=2)
        sync, _ = build_sync(three_app_events(), sink=sink)
        sync.send_since_checkpoint(until_ms=NOW)

        sink.fail_at = None
        result = sync.send_since_checkpoint(until_ms=NOW)
        assert result.status == STATUS_OK
        assert [s.app_id for s in sink.sessions] == ["com.a", "com.b", "com.c"]

    def test_nested_failure_resumes_after_inner_session(self):
        # a [0,100m) encloses b [10m,20m) and c [30m,40m); writing c fails
        events = [
            raw_resumed("com.a", T0),
            raw_resumed("com.b", T0 + 10 * MINUTE),
            raw_paused("com.b", T0 + 20 * MINUTE),
            raw_resumed("com.c", T0 + 30 * MINUTE),
            raw_paused("com.c", T0 + 40 * MINUTE),
            raw_paused("com.a", T0 + 100 * MINUTE),
        ]
        sink = FakeSink(fail_at=3)
        sync, _ = build_sync(events, sink=sink)

        first = sync.send_since_checkpoint(until_ms=NOW)
        assert first.status == STATUS_PARTIAL
        assert first.cursor_end_ms == T0 + 20 * MINUTE

        retry = sync.send_since_checkpoint(until_ms=NOW)
        assert retry.status == STATUS_OK
        assert retry.window_start_ms == T0 + 20 * MINUTE
        assert retry.sessions_sent == 1
        assert [s.app_id for s in sink.sessions] == ["com.a", "com.b", "com.c"]

        assert sync.send_since_checkpoint(until_ms=NOW).sessions_sent == 0

    def test_lookup_failure_falls_back_to_label(self):
        def lookup(app_id):
            raise OSError("package manager unavailable")

        source = StaticEventSource(three_app_events()[:2])
        parser = SessionParser(source, DisplayNameResolver(lookup=lookup))
        sink = FakeSink()
        result = SessionSync(parser, sink, Config()).send_since_checkpoint(until_ms=NOW)

        assert result.status == STATUS_OK
        assert result.sessions_sent == 1
        assert sink.sessions[0].app_display_name == "a"

    def test_source_unavailable_aborts_without_moving_cursor(self):
        sink = FakeSink(last_end=T0)
        source = FailingSource()
        sync, _ = build_sync(sink=sink, source=source)
        result = sync.send_since_checkpoint(until_ms=NOW)

        assert result.status == STATUS_FAILED
        assert result.should_retry
        assert isinstance(result.error, SourceUnavailable)
        assert result.cursor_end_ms == T0
        assert result.window_start_ms == T0
        assert sink.sessions == []

    def test_sink_query_failure_is_reported(self):
        class BrokenSink(FakeSink):
            def query_last_session_end(self, bucket_id):
                raise SinkError("store offline")

        sync, _ = build_sync(three_app_events(), sink=BrokenSink())
        result = sync.send_since_checkpoint(until_ms=NOW)
        assert result.status == STATUS_FAILED
        assert isinstance(result.error, SinkError)

    def test_cancellation_between_writes(self):
        cancel = threading.Event()

        class CancellingSink(FakeSink):
            def sink_session(self, bucket_id, session):
                super().sink_session(bucket_id, session)
                cancel.set()

        sync, sink = build_sync(three_app_events(), sink=CancellingSink())
        result = sync.send_since_checkpoint(cancel_event=cancel, until_ms=NOW)

        assert result.status == STATUS_CANCELLED
        assert not result.should_retry
        assert result.sessions_sent == 1
        assert result.cursor_end_ms == T0 + 10 * MINUTE

        cancel.clear()
        resumed_run = sync.send_since_checkpoint(cancel_event=cancel, until_ms=NOW)
        assert [s.app_id for s in sink.sessions] == ["com.a", "com.b"]
        assert resumed_run.status == STATUS_CANCELLED

    def test_get_sessions_since_checkpoint_does_not_send(self):
        sync, sink = build_sync(three_app_events())
        sessions = sync.get_sessions_since_checkpoint(until_ms=NOW)
        assert len(sessions) == 3
        assert sink.sessions == []


class TestForcedResend:
    """Paths that bypass the cursor."""

    def test_force_refresh_day_resends(self):
        sync, sink = build_sync(three_app_events())
        sync.send_since_checkpoint(until_ms=NOW)

        assert sync.force_refresh_day(T0) == 3
        assert sink.count_events("aw-watcher-android-test") == 6

    def test_force_refresh_only_covers_day(self):
        events = three_app_events() + [
            raw_resumed("com.d", T0 + DAY_MS + HOUR),
            raw_paused("com.d", T0 + DAY_MS + 2 * HOUR),
        ]
        sync, sink = build_sync(events)
        assert sync.force_refresh_day(T0) == 3
        assert sync.force_refresh_day(T0 + DAY_MS) == 1

    def test_resend_is_identical(self):
        sync, sink = build_sync(three_app_events())
        sync.send_for_period(0, NOW)
        first = list(sink.sessions)
        sync.send_for_period(0, NOW)
        second = sink.sessions[len(first):]
        assert [s.to_dict() for s in first] == [s.to_dict() for s in second]

    def test_forced_resend_raises_on_sink_failure(self):
        sync, _ = build_sync(three_app_events(), sink=FakeSink(fail_at=2))
        with pytest.raises(SinkWriteFailed) as excinfo:
            sync.force_refresh_day(T0)
        assert excinfo.value.index == 1

    def test_forced_resend_raises_on_source_failure(self):
        sync, _ = build_sync(source=FailingSource())
        with pytest.raises(SourceUnavailable):
            sync.force_refresh_day(T0)

    def test_insert_session_event(self):
        sync, sink = build_sync()
        session = sync.insert_session_event("com.x", "X", T0, 5 * MINUTE, "com.x.Main")
        assert session.end_ms == T0 + 5 * MINUTE
        assert sink.sessions == [session]
        assert sync.session_event_count() == 1

    def test_insert_sessions(self):
        sync, sink = build_sync(three_app_events())
        sessions = sync.parser.parse_for_period(0, NOW)
        assert sync.insert_sessions(sessions) == 3

    def test_get_timeline_for_day(self):
        sync, sink = build_sync(three_app_events())
        timeline = sync.get_timeline_for_day(T0)
        assert timeline.total_screen_time_ms == 26 * MINUTE
        assert sink.sessions == []


def test_progress_every_is_configurable():
    config = Config(sink={"progress_every": 1})
    sync, sink = build_sync(three_app_events(), config=config)
    assert sync.send_since_checkpoint(until_ms=NOW).sessions_sent == 3
