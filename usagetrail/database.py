"""SQLite session store used as the default sink."""

import socket
import sqlite3
import threading
import time
from pathlib import Path
from typing import Any, Optional

import orjson

from .config import get_effective_config
from .errors import SinkError
from .ids import generate_record_id
from .logging_setup import get_logger
from .models import Session

logger = get_logger("database")

SCHEMA_VERSION = 1


class SessionStore:
    """SQLite bucket/event store with WAL mode.

    Each sunk session becomes its own row in ``events``; rows are never
    merged, so resending a session creates a duplicate row.
    """

    def __init__(self, db_path: Optional[Path] = None):
        """Initialize database connection.

        Args:
            db_path: Path to SQLite database file. If None, uses config path.
        """
        if db_path is None:
            config = get_effective_config()
            db_path = Path(config.storage.sqlite_path)

        self.db_path = Path(db_path)
        self._conn: Optional[sqlite3.Connection] = None
        self._lock = threading.Lock()

        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self._init_database()

    def _init_database(self) -> None:
        """Initialize database with schema and WAL mode."""
        with self._lock:
            conn = self._get_connection()
            conn.execute("PRAGMA journal_mode=WAL")
            self._create_schema(conn)

            version_row = conn.execute(
                "SELECT version FROM schema_version LIMIT 1"
            ).fetchone()
            if version_row is None:
                conn.execute(
                    "INSERT INTO schema_version (version) VALUES (?)", (SCHEMA_VERSION,)
                )
            conn.commit()

        logger.info(f"Database initialized at {self.db_path}")

    def _get_connection(self) -> sqlite3.Connection:
        """Get database connection, creating if necessary."""
        if self._conn is None:
            self._conn = sqlite3.connect(
                str(self.db_path), timeout=30.0, check_same_thread=False
            )
            self._conn.row_factory = sqlite3.Row
        return self._conn

    def _create_schema(self, conn: sqlite3.Connection) -> None:
        conn.executescript(
            """
            CREATE TABLE IF NOT EXISTS schema_version(
                version INTEGER NOT NULL
            );

            CREATE TABLE IF NOT EXISTS buckets(
                id TEXT PRIMARY KEY,
                type TEXT NOT NULL,
                client TEXT NOT NULL,
                hostname TEXT,
                created_utc_ms INTEGER NOT NULL
            );

            CREATE TABLE IF NOT EXISTS events(
                id TEXT PRIMARY KEY,
                bucket_id TEXT NOT NULL REFERENCES buckets(id),
                timestamp_ms INTEGER NOT NULL,
                duration_ms INTEGER NOT NULL,
                data_json TEXT NOT NULL
            );

            CREATE INDEX IF NOT EXISTS idx_events_bucket_ts
                ON events(bucket_id, timestamp_ms);
            """
        )

    def ensure_bucket(self, bucket_id: str, bucket_type: str, client: str) -> None:
        """Create the bucket if it does not exist yet."""
        try:
            with self._lock:
                conn = self._get_connection()
                cursor = conn.execute(
                    """
                    INSERT OR IGNORE INTO buckets (id, type, client, hostname, created_utc_ms)
                    VALUES (?, ?, ?, ?, ?)
                    """,
                    (bucket_id, bucket_type, client, socket.gethostname(), int(time.time() * 1000)),
                )
                conn.commit()
        except sqlite3.Error as e:
            raise SinkError(f"Failed to create bucket {bucket_id}: {e}") from e

        if cursor.rowcount:
            logger.info(f"Created bucket {bucket_id} ({bucket_type})")

    def insert_event(
        self, bucket_id: str, timestamp_ms: int, duration_ms: int, data: dict[str, Any]
    ) -> str:
        """Insert one discrete event and return its id."""
        event_id = generate_record_id()
        try:
            with self._lock:
                conn = self._get_connection()
                conn.execute(
                    """
                    INSERT INTO events (id, bucket_id, timestamp_ms, duration_ms, data_json)
                    VALUES (?, ?, ?, ?, ?)
                    """,
                    (event_id, bucket_id, timestamp_ms, duration_ms, orjson.dumps(data).decode()),
                )
                conn.commit()
        except sqlite3.Error as e:
            raise SinkError(f"Failed to insert event into {bucket_id}: {e}") from e
        return event_id

    def sink_session(self, bucket_id: str, session: Session) -> str:
        return self.insert_event(
            bucket_id, session.start_ms, session.duration_ms, session.to_event_data()
        )

    def query_last_session_end(self, bucket_id: str) -> Optional[int]:
        """End (timestamp + duration) of the bucket's latest-starting event."""
        try:
            with self._lock:
                row = self._get_connection().execute(
                    """
                    SELECT timestamp_ms + duration_ms FROM events
                    WHERE bucket_id = ?
                    ORDER BY timestamp_ms DESC, id DESC
                    LIMIT 1
                    """,
                    (bucket_id,),
                ).fetchone()
        except sqlite3.Error as e:
            raise SinkError(f"Failed to query last event of {bucket_id}: {e}") from e
        return row[0] if row is not None else None

    def get_events(self, bucket_id: str, limit: int = 0) -> list[dict[str, Any]]:
        """Events of a bucket, most recent first; ``limit=0`` means all."""
        query = (
            "SELECT id, timestamp_ms, duration_ms, data_json FROM events "
            "WHERE bucket_id = ? ORDER BY timestamp_ms DESC, id DESC"
        )
        params: tuple = (bucket_id,)
        if limit > 0:
            query += " LIMIT ?"
            params = (bucket_id, limit)

        with self._lock:
            rows = self._get_connection().execute(query, params).fetchall()

        return [
            {
                "id": row["id"],
                "timestamp_ms": row["timestamp_ms"],
                "duration_ms": row["duration_ms"],
                "data": orjson.loads(row["data_json"]),
            }
            for row in rows
        ]

    def count_events(self, bucket_id: str) -> int:
        with self._lock:
            return self._get_connection().execute(
                "SELECT COUNT(*) FROM events WHERE bucket_id = ?", (bucket_id,)
            ).fetchone()[0]

    def list_buckets(self) -> list[dict[str, Any]]:
        with self._lock:
            rows = self._get_connection().execute(
                "SELECT id, type, client, hostname, created_utc_ms FROM buckets ORDER BY id"
            ).fetchall()
        return [dict(row) for row in rows]

    def close(self) -> None:
        """Close database connection."""
        if self._conn:
            self._conn.close()
            self._conn = None
