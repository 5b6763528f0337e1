"""Key/value persistence behind a small get/set/subscribe contract.

Every operation returns a PersistResult instead of raising, so callers can
treat storage trouble as an ordinary outcome.
"""

import copy
import json
import logging
import os
import queue
import tempfile
import threading
from dataclasses import dataclass
from typing import Any, Callable, Optional, Protocol, runtime_checkable

logger = logging.getLogger(__name__)

ChangeListener = Callable[[str, Any], None]


@dataclass(frozen=True)
class PersistResult:
    ok: bool
    value: Any = None
    error: Optional[str] = None

    @classmethod
    def success(cls, value=None) -> "PersistResult":
        return cls(ok=True, value=value)

    @classmethod
    def failure(cls, error) -> "PersistResult":
        return cls(ok=False, error=str(error))


@runtime_checkable
class Storage(Protocol):
    def get(self, key: str, default: Any = None) -> PersistResult: ...

    def set(self, key: str, value: Any) -> PersistResult: ...

    def subscribe(self, listener: ChangeListener) -> Callable[[], None]: ...


class _Listeners:
    def __init__(self):
        self._listeners: list[ChangeListener] = []
        self._lock = threading.Lock()

    def add(self, listener: ChangeListener) -> Callable[[], None]:
        with self._lock:
            self._listeners.append(listener)

        def unsubscribe():
            with self._lock:
                if listener in self._listeners:
                    self._listeners.remove(listener)

        return unsubscribe

    def notify(self, key: str, value: Any) -> None:
        with self._lock:
            listeners = list(self._listeners)
        for listener in listeners:
            try:
                listener(key, value)
            except Exception:
                logger.exception("Storage listener failed for key %s", key)


class MemoryStorage:
    """Process-local storage, mainly for tests and --storage memory."""

    def __init__(self, initial: Optional[dict] = None):
        self._data = copy.deepcopy(initial) if initial else {}
        self._lock = threading.Lock()
        self._listeners = _Listeners()

    def get(self, key: str, default: Any = None) -> PersistResult:
        with self._lock:
            return PersistResult.success(copy.deepcopy(self._data.get(key, default)))

    def set(self, key: str, value: Any) -> PersistResult:
        with self._lock:
            self._data[key] = copy.deepcopy(value)
        self._listeners.notify(key, value)
        return PersistResult.success()

    def subscribe(self, listener: ChangeListener) -> Callable[[], None]:
        return self._listeners.add(listener)


class JsonFileStorage:
    """All keys in one JSON document, replaced atomically on every write."""

    def __init__(self, path: str):
        self._path = path
        self._lock = threading.Lock()
        self._listeners = _Listeners()

    @property
    def path(self) -> str:
        return self._path

    def _read_all(self) -> dict:
        if not os.path.exists(self._path):
            return {}
        with open(self._path, "r", encoding="utf-8") as f:
            data = json.load(f)
        if not isinstance(data, dict):
            raise ValueError(f"{self._path} does not hold a JSON object")
        return data

    def _write_all(self, data: dict) -> None:
        directory = os.path.dirname(os.path.abspath(self._path))
        os.makedirs(directory, exist_ok=True)
        fd, tmp = tempfile.mkstemp(dir=directory)
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(data, f, indent=2)
            os.replace(tmp, self._path)
        except Exception:
            if os.path.exists(tmp):
                os.unlink(tmp)
            raise

    def get(self, key: str, default: Any = None) -> PersistResult:
        with self._lock:
            try:
                data = self._read_all()
            except (OSError, ValueError) as exc:
                return PersistResult.failure(exc)
        return PersistResult.success(data.get(key, default))

    def set(self, key: str, value: Any) -> PersistResult:
        with self._lock:
            try:
                data = self._read_all()
            except (OSError, ValueError) as exc:
                logger.warning("Discarding unreadable storage file %s: %s", self._path, exc)
                data = {}
            data[key] = value
            try:
                self._write_all(data)
            except (OSError, TypeError, ValueError) as exc:
                return PersistResult.failure(exc)
        self._listeners.notify(key, value)
        return PersistResult.success()

    def subscribe(self, listener: ChangeListener) -> Callable[[], None]:
        return self._listeners.add(listener)


_STOP = object()


class QueuedStorage:
    """Applies writes to another storage on a single background thread.

    Writes are FIFO, so they land in the order they were issued. set()
    returns as soon as the write is queued; failures of the real write are
    logged and counted. Failure listeners receive the key and value of
    every write the backend rejected.
    """

    def __init__(self, backend: Storage):
        self._backend = backend
        self._queue: queue.Queue = queue.Queue()
        self._pending: dict[str, Any] = {}
        self._lock = threading.Lock()
        self._failures = 0
        self._failure_listeners = _Listeners()
        self._closed = False
        self._worker = threading.Thread(target=self._run, daemon=True)
        self._worker.start()

    @property
    def failures(self) -> int:
        return self._failures

    def get(self, key: str, default: Any = None) -> PersistResult:
        with self._lock:
            if key in self._pending:
                return PersistResult.success(copy.deepcopy(self._pending[key][1]))
        return self._backend.get(key, default)

    def set(self, key: str, value: Any) -> PersistResult:
        if self._closed:
            return PersistResult.failure("storage queue is closed")
        snapshot = copy.deepcopy(value)
        token = object()
        with self._lock:
            self._pending[key] = (token, snapshot)
        self._queue.put((key, snapshot, token))
        return PersistResult.success()

    def subscribe(self, listener: ChangeListener) -> Callable[[], None]:
        return self._backend.subscribe(listener)

    def subscribe_failures(self, listener: ChangeListener) -> Callable[[], None]:
        return self._failure_listeners.add(listener)

    def flush(self) -> None:
        """Block until every queued write has been applied."""
        self._queue.join()

    def close(self) -> None:
        """Stop accepting writes, apply everything queued, then stop the worker."""
        if self._closed:
            return
        self._closed = True
        self.flush()
        self._queue.put(_STOP)
        self._worker.join(timeout=5)
        logger.info("QueuedStorage closed")

    def _run(self) -> None:
        while True:
            item = self._queue.get()
            try:
                if item is _STOP:
                    return
                key, value, token = item
                result = self._backend.set(key, value)
                with self._lock:
                    if key in self._pending and self._pending[key][0] is token:
                        del self._pending[key]
                if not result.ok:
                    self._failures += 1
                    logger.error("Queued write of %s failed: %s", key, result.error)
                    self._failure_listeners.notify(key, value)
            finally:
                self._queue.task_done()
