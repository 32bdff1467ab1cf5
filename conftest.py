"""Test configuration and fixtures for usagetrail."""

import os
import threading
import time

import pytest

os.environ.setdefault("USAGETRAIL_TEST_MODE", "1")


@pytest.fixture(autouse=True)
def test_mode():
    """Enable test mode for all tests."""
    os.environ["USAGETRAIL_TEST_MODE"] = "1"
    yield


@pytest.fixture
def no_thread_leaks():
    """Fixture to detect thread leaks during tests."""
    initial_non_daemon_threads = {t for t in threading.enumerate() if not t.daemon}

    yield

    # Wait briefly for threads to cleanup
    time.sleep(0.1)

    final_non_daemon_threads = {t for t in threading.enumerate() if not t.daemon}
    leaked_threads = final_non_daemon_threads - initial_non_daemon_threads
    if leaked_threads:
        thread_names = [t.name for t in leaked_threads]
        pytest.fail(f"Test leaked non-daemon threads: {thread_names}")


@pytest.fixture
def fake_clock():
    """Fixture providing a fake millisecond clock for deterministic timing."""
    clock_time = [1_700_000_000_000]

    def get_time():
        return clock_time[0]

    def advance(dt_ms: int):
        clock_time[0] += dt_ms
        return clock_time[0]

    get_time.advance = advance
    return get_time
