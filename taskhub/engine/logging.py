"""
taskhub Logging — Structured JSON-lines file logging with an async queue.

Implements:
- FileLogger: per-object-type, per-category log files (daily rotation)
- AsyncLogQueue: in-memory queue with background flush (interval / batch size)
- Log entry builders for task operations, web API requests, security and
  system events
- LogRetentionManager: deletes expired files, gzips older ones

Files land at {log_dir}/{object_type}/{category}/{YYYY-MM-DD}.jsonl
"""

from __future__ import annotations

import gzip
import json
import logging
import shutil
import threading
from collections import defaultdict
from datetime import date, datetime, timezone
from pathlib import Path
from queue import Empty, Full, Queue
from typing import Any, Callable, Dict, List, Optional

logger = logging.getLogger("taskhub.engine.logging")

# Valid object types and their permitted categories
OBJECT_TYPE_CATEGORIES = {
    "tasks": ["execution", "performance"],
    "web_apis": ["execution", "performance", "security"],
    "system": ["execution", "security"],
}

# Retention defaults (days)
DEFAULT_RETENTION = {
    "execution": 90,
    "performance": 30,
    "security": 365,
}


class LogEntry:
    """A structured log entry destined for a specific file."""

    __slots__ = ("object_type", "category", "data")

    def __init__(self, object_type: str, category: str, data: Dict[str, Any]):
        self.object_type = object_type
        self.category = category
        self.data = data

    def to_json(self) -> str:
        return json.dumps(self.data, default=str, separators=(",", ":"))

    @property
    def has_known_target(self) -> bool:
        return self.category in OBJECT_TYPE_CATEGORIES.get(self.object_type, ())


def _utc_today() -> date:
    return datetime.now(timezone.utc).date()


class FileLogger:
    """
    Appends JSON lines to {log_dir}/{object_type}/{category}/{date}.jsonl.

    The date comes from the injected ``today`` callable (UTC by default), so
    a batch always lands in a single day's file. Writes are serialized so the
    flush thread and a final drain never interleave lines.
    """

    def __init__(self, log_dir: str = "logs", today: Optional[Callable[[], date]] = None):
        self._log_dir = Path(log_dir)
        self._today = today or _utc_today
        self._lock = threading.Lock()
        for obj_type, categories in OBJECT_TYPE_CATEGORIES.items():
            for cat in categories:
                (self._log_dir / obj_type / cat).mkdir(parents=True, exist_ok=True)

    def write(self, entry: LogEntry) -> None:
        self.write_batch([entry])

    def write_batch(self, entries: List[LogEntry]) -> int:
        """
        Write entries grouped by target file.

        Raises:
            ValueError: an entry names an object type / category pair that
                has no directory. Nothing from the batch is written.
        """
        unknown = sorted({f"{e.object_type}/{e.category}" for e in entries if not e.has_known_target})
        if unknown:
            raise ValueError(f"Unknown log targets: {', '.join(unknown)}")

        file_name = f"{self._today().isoformat()}.jsonl"
        grouped: Dict[Path, List[str]] = defaultdict(list)
        for entry in entries:
            grouped[self._log_dir / entry.object_type / entry.category / file_name].append(entry.to_json())

        with self._lock:
            for file_path, lines in grouped.items():
                with open(file_path, "a", encoding="utf-8") as f:
                    f.write("\n".join(lines))
                    f.write("\n")
        return len(entries)

    @property
    def log_dir(self) -> Path:
        return self._log_dir


class AsyncLogQueue:
    """
    Bounded in-memory queue drained by one background thread.

    push() never blocks or raises: an entry is dropped (and counted) when the
    queue is full, when its target is unknown, or when its batch fails to
    reach disk. The thread wakes at most every flush_interval_ms and writes
    whatever is queued, flush_batch_size entries per write.
    """

    def __init__(
        self,
        file_logger: FileLogger,
        flush_interval_ms: int = 100,
        flush_batch_size: int = 50,
        max_queue_size: int = 10000,
    ):
        self._file_logger = file_logger
        self._flush_interval = flush_interval_ms / 1000.0
        self._flush_batch_size = max(1, flush_batch_size)
        self._queue: Queue[LogEntry] = Queue(maxsize=max_queue_size)
        self._stopping = threading.Event()
        self._flush_thread: Optional[threading.Thread] = None
        self._dropped_count = 0

    def start(self) -> None:
        if self._flush_thread is not None and self._flush_thread.is_alive():
            return
        self._stopping.clear()
        self._flush_thread = threading.Thread(target=self._flush_loop, name="taskhub-log-flush", daemon=True)
        self._flush_thread.start()
        logger.info("Async log queue started")

    def stop(self, timeout: float = 5.0) -> None:
        """Stop the flush thread, then write everything still queued."""
        self._stopping.set()
        if self._flush_thread is not None:
            self._flush_thread.join(timeout=timeout)
            self._flush_thread = None
        while True:
            batch = self._take_batch(wait=False)
            if not batch:
                break
            self._write(batch)
        logger.info(f"Async log queue stopped (dropped: {self._dropped_count})")

    def push(self, entry: LogEntry) -> bool:
        """Queue an entry. Returns False when it was dropped."""
        if not entry.has_known_target:
            logger.warning(f"Dropping log entry for unknown target {entry.object_type}/{entry.category}")
            self._dropped_count += 1
            return False
        try:
            self._queue.put_nowait(entry)
            return True
        except Full:
            self._dropped_count += 1
            return False

    def _flush_loop(self) -> None:
        while not self._stopping.is_set():
            batch = self._take_batch(wait=True)
            if batch:
                self._write(batch)

    def _take_batch(self, wait: bool) -> List[LogEntry]:
        """Up to flush_batch_size entries; waits one interval for the first when asked."""
        batch: List[LogEntry] = []
        try:
            if wait:
                batch.append(self._queue.get(timeout=self._flush_interval))
            while len(batch) < self._flush_batch_size:
                batch.append(self._queue.get_nowait())
        except Empty:
            pass
        return batch

    def _write(self, batch: List[LogEntry]) -> None:
        try:
            self._file_logger.write_batch(batch)
        except OSError as e:
            self._dropped_count += len(batch)
            logger.error(f"Log flush error, {len(batch)} entries lost: {e}")

    @property
    def pending_count(self) -> int:
        return self._queue.qsize()

    @property
    def dropped_count(self) -> int:
        return self._dropped_count


# ---------------------------------------------------------------------------
# Log Entry Builders
# ---------------------------------------------------------------------------

def _base_entry(
    event: str,
    level: str,
    execution_id: Optional[str] = None,
    account_id: Optional[int] = None,
    user_id: Optional[int] = None,
    **extra: Any,
) -> Dict[str, Any]:
    """Build a base log entry with common fields."""
    entry: Dict[str, Any] = {
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "level": level,
        "event": event,
    }
    if execution_id:
        entry["execution_id"] = execution_id
    if account_id is not None:
        entry["account_id"] = account_id
    if user_id is not None:
        entry["user_id"] = user_id
    entry.update(extra)
    return entry


def log_task_operation(
    operation: str,
    account_id: int,
    user_id: int,
    task_id: Optional[int] = None,
    execution_id: Optional[str] = None,
    fields_changed: Optional[List[str]] = None,
    duration_ms: Optional[float] = None,
    error_code: Optional[str] = None,
) -> LogEntry:
    """Build a task CRUD log entry. A set error_code marks a rejected call."""
    data = _base_entry(
        event=f"task_{operation}",
        level="INFO" if error_code is None else "WARNING",
        execution_id=execution_id,
        account_id=account_id,
        user_id=user_id,
        operation=operation,
    )
    if task_id is not None:
        data["task_id"] = task_id
    if fields_changed:
        data["fields_changed"] = fields_changed
    if duration_ms is not None:
        data["duration_ms"] = duration_ms
    if error_code:
        data["error_code"] = error_code
    return LogEntry("tasks", "execution", data)


def log_web_api_request(
    method: str,
    path: str,
    status_code: int,
    duration_ms: float,
    execution_id: Optional[str] = None,
    account_id: Optional[int] = None,
    user_id: Optional[int] = None,
) -> LogEntry:
    """Build a web API request log entry."""
    data = _base_entry(
        event="web_api_request",
        level="INFO" if status_code < 400 else "ERROR" if status_code >= 500 else "WARNING",
        execution_id=execution_id,
        account_id=account_id,
        user_id=user_id,
        method=method,
        path=path,
        status_code=status_code,
        duration_ms=duration_ms,
    )
    return LogEntry("web_apis", "execution", data)


def log_security_event(
    event: str,
    reason: str,
    path: Optional[str] = None,
    client_ip: Optional[str] = None,
    level: str = "WARNING",
) -> LogEntry:
    """Build a security event log entry (rejected credentials)."""
    data = _base_entry(event=event, level=level, reason=reason)
    if path:
        data["path"] = path
    if client_ip:
        data["client_ip"] = client_ip
    return LogEntry("web_apis", "security", data)


def log_system_event(
    event: str,
    level: str = "INFO",
    details: Optional[Dict[str, Any]] = None,
) -> LogEntry:
    """Build a system event log entry (startup, shutdown, unexpected faults)."""
    data = _base_entry(event=event, level=level)
    if details:
        data["details"] = details
    return LogEntry("system", "execution", data)


# ---------------------------------------------------------------------------
# Log Cleanup / Retention
# ---------------------------------------------------------------------------

class LogRetentionManager:
    """
    Cleans up log files older than configured retention periods.
    Files past compress_after_days are gzipped in place.
    """

    def __init__(
        self,
        log_dir: str = "logs",
        retention_days: Optional[Dict[str, int]] = None,
        compress_after_days: int = 7,
    ):
        self._log_dir = Path(log_dir)
        self._retention = retention_days or DEFAULT_RETENTION.copy()
        self._compress_after = compress_after_days

    def cleanup(self, today: Optional[date] = None) -> Dict[str, int]:
        """
        Run retention cleanup across all log directories.

        Returns:
            Dict with counts: {"deleted": N, "compressed": M}
        """
        deleted = 0
        compressed = 0
        today = today or _utc_today()

        for obj_type, categories in OBJECT_TYPE_CATEGORIES.items():
            for cat in categories:
                cat_dir = self._log_dir / obj_type / cat
                if not cat_dir.exists():
                    continue

                retention = self._retention.get(cat, 90)

                for file_path in cat_dir.iterdir():
                    if not file_path.is_file():
                        continue

                    file_date = self._parse_file_date(file_path)
                    if file_date is None:
                        continue

                    age_days = (today - file_date).days

                    if age_days > retention:
                        file_path.unlink()
                        deleted += 1
                        continue

                    if age_days > self._compress_after and file_path.suffix == ".jsonl":
                        self._compress_file(file_path)
                        compressed += 1

        result = {"deleted": deleted, "compressed": compressed}
        logger.info(f"Log cleanup: {result}")
        return result

    def _parse_file_date(self, file_path: Path) -> Optional[date]:
        """Extract date from filename like 2026-02-12.jsonl or 2026-02-12.jsonl.gz."""
        date_str = file_path.name.split(".")[0]
        try:
            return date.fromisoformat(date_str)
        except ValueError:
            return None

    def _compress_file(self, file_path: Path) -> None:
        gz_path = file_path.with_suffix(file_path.suffix + ".gz")
        try:
            with open(file_path, "rb") as f_in:
                with gzip.open(gz_path, "wb") as f_out:
                    shutil.copyfileobj(f_in, f_out)
            file_path.unlink()
        except OSError as e:
            logger.error(f"Failed to compress {file_path}: {e}")
            if gz_path.exists():
                gz_path.unlink()


# ---------------------------------------------------------------------------
# Global Log Queue
# ---------------------------------------------------------------------------

_global_queue: Optional[AsyncLogQueue] = None


def init_logging(
    log_dir: str = "logs",
    flush_interval_ms: int = 100,
    flush_batch_size: int = 50,
    max_queue_size: int = 10000,
    level: str = "INFO",
) -> AsyncLogQueue:
    """Initialize the global async log queue and the stdlib log level."""
    global _global_queue
    logging.getLogger("taskhub").setLevel(level)
    if _global_queue is not None:
        return _global_queue
    file_logger = FileLogger(log_dir=log_dir)
    _global_queue = AsyncLogQueue(
        file_logger=file_logger,
        flush_interval_ms=flush_interval_ms,
        flush_batch_size=flush_batch_size,
        max_queue_size=max_queue_size,
    )
    _global_queue.start()
    return _global_queue


def get_log_queue() -> Optional[AsyncLogQueue]:
    """Get the global async log queue."""
    return _global_queue


def log(entry: LogEntry) -> bool:
    """Push a log entry to the global queue. Non-blocking."""
    if _global_queue is None:
        logger.debug("Log queue not initialized, entry dropped")
        return False
    return _global_queue.push(entry)


def shutdown_logging() -> None:
    """Flush and stop the global log queue."""
    global _global_queue
    if _global_queue:
        _global_queue.stop()
        _global_queue = None
