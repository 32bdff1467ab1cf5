"""Logging configuration for usagetrail."""

import logging
import os
import threading
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

ROOT_LOGGER = "usagetrail"

# Global logging state
_logging_initialized = False
_logging_lock = threading.Lock()
_run_id = None
_logged_messages = set()  # Track messages logged once per process


class ContextFormatter(logging.Formatter):
    """Formatter that includes run_id, component, and thread context."""

    def __init__(self):
        super().__init__(
            fmt=(
                "%(asctime)s.%(msecs)03d [%(run_id)s] [%(component)s] "
                "[%(threadName)s] %(levelname)s - %(message)s"
            ),
            datefmt="%Y-%m-%dT%H:%M:%S",
        )

    def formatTime(self, record, datefmt=None):
        """Format time in UTC."""
        dt = datetime.fromtimestamp(record.created, tz=timezone.utc)
        if datefmt:
            return dt.strftime(datefmt)
        return dt.isoformat()

    def format(self, record):
        """Add context fields to log record."""
        if not hasattr(record, "run_id"):
            record.run_id = _run_id or "-"

        if not hasattr(record, "component"):
            parts = record.name.split(".")
            if len(parts) >= 2 and parts[0] == ROOT_LOGGER:
                record.component = parts[1]
            else:
                record.component = "system"

        return super().format(record)


def _test_mode() -> bool:
    return os.getenv("USAGETRAIL_TEST_MODE", "0") == "1"


def setup_logging(
    console_level: str = "INFO",
    file_level: str = "DEBUG",
    run_id: Optional[str] = None,
    log_dir: Optional[Path] = None,
    console: bool = True,
    log_file: bool = True,
) -> logging.Logger:
    """Set up centralized logging configuration.

    Args:
        console_level: Console log level (INFO by default)
        file_level: File log level (DEBUG by default)
        run_id: Run identifier for context
        log_dir: Log directory (./ut_data/logs/ by default)
        console: Whether to enable console logging
        log_file: Whether to write a per-run log file

    Returns:
        Configured logger instance
    """
    global _logging_initialized, _run_id

    with _logging_lock:
        if _logging_initialized:
            return logging.getLogger(ROOT_LOGGER)

        _run_id = run_id

        logger = logging.getLogger(ROOT_LOGGER)
        logger.setLevel(logging.DEBUG)
        logger.handlers.clear()
        logger.propagate = False

        formatter = ContextFormatter()

        if console:
            console_handler = logging.StreamHandler()
            console_handler.setLevel(getattr(logging, console_level.upper()))
            console_handler.setFormatter(formatter)
            logger.addHandler(console_handler)

        file_path = None
        if log_file:
            if log_dir is None:
                log_dir = Path("ut_data/logs")

            log_dir = Path(log_dir)
            log_dir.mkdir(parents=True, exist_ok=True)

            # Per-run log filename: YYYYMMDD_HHMMSS-PID.log
            now = datetime.now(timezone.utc)
            file_path = log_dir / f"{now.strftime('%Y%m%d_%H%M%S')}-{os.getpid()}.log"

            file_handler = logging.FileHandler(file_path, encoding="utf-8")
            file_handler.setLevel(getattr(logging, file_level.upper()))
            file_handler.setFormatter(formatter)
            logger.addHandler(file_handler)

        _logging_initialized = True

        logger.debug(f"Logging initialized - run: {_run_id or '-'}, file: {file_path}")

        return logger


def get_logger(name: str) -> logging.Logger:
    """Get a component logger, initializing logging with defaults if needed.

    Args:
        name: Component name (e.g., 'sync', 'reconstructor')
    """
    if not _logging_initialized:
        setup_logging(console_level="WARNING", log_file=not _test_mode())

    return logging.getLogger(f"{ROOT_LOGGER}.{name}")


def reset_logging() -> None:
    """Close all handlers and allow setup_logging to run again."""
    global _logging_initialized

    with _logging_lock:
        logger = logging.getLogger(ROOT_LOGGER)
        for handler in logger.handlers[:]:
            handler.close()
            logger.removeHandler(handler)
        _logging_initialized = False


def set_run_id(run_id: Optional[str]) -> None:
    """Set the global run ID for logging context."""
    global _run_id
    _run_id = run_id


def get_run_id() -> Optional[str]:
    """Get the current run ID."""
    return _run_id


def log_once(
    logger: logging.Logger,
    level: int,
    message: str,
    *args,
    key: Optional[str] = None,
    **kwargs,
) -> None:
    """Log a message only once per process run.

    Args:
        logger: Logger instance to use
        level: Logging level (e.g., logging.INFO)
        message: Message to log (with format placeholders)
        *args: Message format arguments
        key: Optional custom key for deduplication
        **kwargs: Additional logging kwargs
    """
    if key:
        message_key = f"{logger.name}:{level}:{key}"
    else:
        formatted_msg = message % args if args else message
        message_key = f"{logger.name}:{level}:{formatted_msg}"

    with _logging_lock:
        if message_key in _logged_messages:
            return
        _logged_messages.add(message_key)

    logger.log(level, message, *args, **kwargs)
