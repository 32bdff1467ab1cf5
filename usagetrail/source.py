"""Raw usage event sources."""

import gzip
from collections.abc import Generator, Iterable, Sequence
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Optional

import orjson

from .errors import SourceUnavailable
from .ids import new_id
from .logging_setup import get_logger
from .models import UsageEvent

logger = get_logger("source")

JOURNAL_SUFFIX = ".ndjson.gz"


class StaticEventSource:
    """In-memory event source, e.g. for replaying a captured stream."""

    def __init__(self, events: Iterable[UsageEvent] = ()):
        self.events = list(events)

    def extend(self, events: Iterable[UsageEvent]) -> None:
        self.events.extend(events)

    def query_events(self, start_ms: int, end_ms: int) -> list[UsageEvent]:
        return [e for e in self.events if start_ms <= e.timestamp_ms < end_ms]


class JournalEventSource:
    """Reads raw usage events from gzip'd NDJSON journal files.

    Each line holds one ``UsageEvent.to_dict()`` payload. Files are read in
    name order; malformed lines are skipped with a warning.
    """

    def __init__(self, journal_dir: Path):
        self.journal_dir = Path(journal_dir)

    def journal_files(self) -> list[Path]:
        return sorted(self.journal_dir.glob(f"*{JOURNAL_SUFFIX}"))

    def write_batch(self, events: Sequence[UsageEvent]) -> Path:
        """Write events to a new journal file and return its path."""
        self.journal_dir.mkdir(parents=True, exist_ok=True)

        timestamp_str = datetime.now(timezone.utc).strftime("%Y%m%d_%H%M%S")
        file_path = self.journal_dir / f"{timestamp_str}_{new_id()}{JOURNAL_SUFFIX}"
        part_path = file_path.with_name(file_path.name + ".part")

        with gzip.open(part_path, "wb") as f:
            for event in events:
                f.write(orjson.dumps(event.to_dict(), option=orjson.OPT_APPEND_NEWLINE))

        part_path.replace(file_path)
        logger.debug(f"Wrote {len(events)} events to {file_path.name}")
        return file_path

    def _read_journal_lines(
        self, file_path: Path
    ) -> Generator[dict[str, Any], None, None]:
        with gzip.open(file_path, "rt", encoding="utf-8") as f:
            for line in f:
                line = line.strip()
                if not line:
                    continue

                try:
                    yield orjson.loads(line)
                except orjson.JSONDecodeError as e:
                    logger.warning(f"Failed to parse line in {file_path.name}: {e}")

    def query_events(self, start_ms: int, end_ms: int) -> list[UsageEvent]:
        """Events with ``start_ms <= timestamp < end_ms``, in stream order.

        Raises:
            SourceUnavailable: If the journal directory or a file can't be read
        """
        if not self.journal_dir.is_dir():
            raise SourceUnavailable(
                start_ms, end_ms, f"journal directory missing: {self.journal_dir}"
            )

        events = []
        for file_path in self.journal_files():
            try:
                for data in self._read_journal_lines(file_path):
                    event = self._parse_event(data, file_path)
                    if event is not None and start_ms <= event.timestamp_ms < end_ms:
                        events.append(event)
            except (OSError, EOFError) as e:
                raise SourceUnavailable(
                    start_ms, end_ms, f"failed to read {file_path.name}: {e}"
                ) from e

        return events

    def _parse_event(self, data: Any, file_path: Path) -> Optional[UsageEvent]:
        try:
            return UsageEvent.from_dict(data)
        except (KeyError, TypeError, ValueError) as e:
            logger.warning(f"Invalid event in {file_path.name}: {e}")
            return None
