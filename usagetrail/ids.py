"""ULID identifiers for sync runs, sink records and journal files."""

import threading

import ulid


class MonotonicULIDFactory:
    """Thread-safe monotonic ULID factory.

    Ids created within the same millisecond still sort in creation order,
    which the session store relies on to break ties between records that
    share a start time.
    """

    def __init__(self):
        self._lock = threading.Lock()

    def new_ulid(self) -> ulid.ULID:
        """Generate a new monotonic ULID."""
        # Sync worker and CLI thread may both mint ids
        with self._lock:
            return ulid.monotonic.new()


# Shared by every id kind so they interleave in one order
_ulid_factory = MonotonicULIDFactory()


def new_id() -> str:
    """Generate a new ULID string.

    Used directly for journal file names, where the id keeps files written
    in the same second in write order.
    """
    return str(_ulid_factory.new_ulid())


def generate_run_id() -> str:
    """Id tagging one sync run in log lines and its ``SyncResult``."""
    return new_id()


def generate_record_id() -> str:
    """Primary key of one sunk session row; later writes sort higher."""
    return new_id()


def is_valid_id(id_str: str) -> bool:
    """Check if a string is a valid ULID."""
    try:
        if not isinstance(id_str, str):
            return False
        ulid.parse(id_str)
        return True
    except (ValueError, TypeError):
        return False
