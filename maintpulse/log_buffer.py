"""
Recent log records kept in memory for the dashboard's /logs endpoint.

A logging.Handler on the root logger appends every record to a bounded
deque, so push-transport errors and failed requests can be inspected
without shell access to the process.
"""
import logging
import threading
from collections import deque
from typing import Optional

DEFAULT_CAPACITY = 1000
_LOG_FORMAT = "%(asctime)s [%(name)s] %(levelname)s %(message)s"

_lock = threading.Lock()
_handler: Optional["LogBufferHandler"] = None


class LogBufferHandler(logging.Handler):
    """Keeps the last `capacity` records as dicts (ts, name, level, levelno, message)."""

    def __init__(self, capacity: int):
        super().__init__()
        self.records: deque = deque(maxlen=capacity)
        self.setFormatter(logging.Formatter(_LOG_FORMAT))

    def emit(self, record: logging.LogRecord) -> None:
        try:
            entry = {
                "ts": record.created,
                "name": record.name,
                "level": record.levelname,
                "levelno": record.levelno,
                "message": self.format(record),
            }
            with _lock:
                self.records.append(entry)
        except Exception:
            self.handleError(record)


def install_log_handler(capacity: int = DEFAULT_CAPACITY) -> LogBufferHandler:
    """Attach the buffer to the root logger once; later calls return the same handler."""
    global _handler
    with _lock:
        if _handler is None:
            _handler = LogBufferHandler(capacity)
            logging.getLogger().addHandler(_handler)
        return _handler


def uninstall_log_handler() -> None:
    global _handler
    with _lock:
        handler, _handler = _handler, None
    if handler is not None:
        logging.getLogger().removeHandler(handler)


def get_recent_logs(limit: int = 200, min_level: str | None = None) -> list[dict]:
    """Last `limit` entries, optionally only those at or above min_level."""
    with _lock:
        if _handler is None:
            return []
        entries = list(_handler.records)
    if min_level:
        threshold = logging.getLevelName(min_level.upper())
        if isinstance(threshold, int):
            entries = [e for e in entries if e["levelno"] >= threshold]
    if limit <= 0:
        return []
    return entries[-limit:]
