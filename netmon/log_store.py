"""Capacity-bounded, newest-first store of finalized log entries."""

import collections
import logging
import threading
from typing import Any, Callable

from netmon.models import LogEntry
from netmon.storage import PersistResult, Storage

logger = logging.getLogger(__name__)

LOGS_KEY = "network_logs"
CAPACITY_KEY = "retention_capacity"
DEFAULT_CAPACITY = 100
MIN_CAPACITY = 10

Subscriber = Callable[[list[LogEntry]], None]


def clamp_capacity(value: Any) -> int:
    """Coerce a retention setting to an int no smaller than MIN_CAPACITY."""
    try:
        capacity = int(value)
    except (TypeError, ValueError):
        return MIN_CAPACITY
    return max(MIN_CAPACITY, capacity)


class LogStore:
    """Ordered log history that persists and notifies on every change.

    Mutations, persistence and notification all happen under one lock, so a
    reader never sees a half-truncated list and listeners see changes in
    the order they were made.
    """

    def __init__(self, storage: Storage, capacity: int = DEFAULT_CAPACITY):
        self._storage = storage
        self._lock = threading.RLock()
        self._subscribers: list[Subscriber] = []
        self._capacity_writes: collections.deque = collections.deque()
        self._persist_failures = 0

        self._capacity = self._load_capacity(capacity)
        self._logs = self._load_logs()[: self._capacity]
        self._storage.subscribe(self._on_storage_change)
        subscribe_failures = getattr(self._storage, "subscribe_failures", None)
        if subscribe_failures is not None:
            subscribe_failures(self._on_write_failure)

    def _load_capacity(self, fallback: int) -> int:
        result = self._storage.get(CAPACITY_KEY, None)
        if not result.ok:
            self._record_failure("read", result)
            return clamp_capacity(fallback)
        if result.value is None:
            return clamp_capacity(fallback)
        return clamp_capacity(result.value)

    def _load_logs(self) -> list[LogEntry]:
        result = self._storage.get(LOGS_KEY, [])
        if not result.ok:
            self._record_failure("read", result)
            return []
        raw = result.value if isinstance(result.value, list) else []
        return [LogEntry.from_dict(item) for item in raw if isinstance(item, dict)]

    @property
    def storage(self) -> Storage:
        return self._storage

    @property
    def retention_capacity(self) -> int:
        return self._capacity

    @property
    def persist_failures(self) -> int:
        return self._persist_failures

    def __len__(self) -> int:
        with self._lock:
            return len(self._logs)

    def get_all(self) -> list[LogEntry]:
        with self._lock:
            return list(self._logs)

    def insert(self, entry: LogEntry) -> PersistResult:
        with self._lock:
            self._logs.insert(0, entry)
            del self._logs[self._capacity:]
            return self._commit()

    def clear(self) -> PersistResult:
        with self._lock:
            self._logs = []
            return self._commit()

    def set_retention_capacity(self, value: Any) -> int:
        """Apply a new capacity and truncate existing entries right away."""
        capacity = clamp_capacity(value)
        with self._lock:
            if capacity == self._capacity:
                return capacity
            self._capacity = capacity
            self._capacity_writes.append(capacity)
            result = self._storage.set(CAPACITY_KEY, capacity)
            if not result.ok:
                self._capacity_writes.pop()
                self._record_failure("write", result)
            if len(self._logs) > capacity:
                del self._logs[capacity:]
                self._commit()
            logger.info("Retention capacity set to %d", capacity)
            return capacity

    def subscribe(self, callback: Subscriber) -> Callable[[], None]:
        with self._lock:
            self._subscribers.append(callback)

        def unsubscribe():
            with self._lock:
                if callback in self._subscribers:
                    self._subscribers.remove(callback)

        return unsubscribe

    def _commit(self) -> PersistResult:
        """Persist the full collection, then notify. Caller holds the lock."""
        result = self._storage.set(LOGS_KEY, [e.to_dict() for e in self._logs])
        if not result.ok:
            self._record_failure("write", result)
        snapshot = list(self._logs)
        for callback in list(self._subscribers):
            try:
                callback(snapshot)
            except Exception:
                logger.exception("Log store subscriber failed")
        return result

    def _record_failure(self, operation: str, result: PersistResult) -> None:
        self._persist_failures += 1
        logger.error("Log storage %s failed, keeping in-memory state: %s", operation, result.error)

    def _on_write_failure(self, key: str, value: Any) -> None:
        """A deferred write was rejected after set() had already succeeded."""
        with self._lock:
            self._persist_failures += 1
            if key == CAPACITY_KEY and value in self._capacity_writes:
                self._capacity_writes.remove(value)

    def _on_storage_change(self, key: str, value: Any) -> None:
        if key != CAPACITY_KEY:
            return
        with self._lock:
            if value in self._capacity_writes:
                while self._capacity_writes:
                    if self._capacity_writes.popleft() == value:
                        break
                return
        logger.debug("Retention capacity changed externally to %r", value)
        self.set_retention_capacity(value)
