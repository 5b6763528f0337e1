"""Pairs start signals with their terminal signal and derives latency."""

import logging
import threading
from typing import Callable, Optional

from netmon.models import (
    LogEntry,
    RequestSignal,
    SignalKind,
    extract_domain,
    ms_to_iso,
    now_ms,
)

logger = logging.getLogger(__name__)


class CorrelationTable:
    """In-flight requests keyed by request id.

    Each id is independent, so interleaved requests never interfere. The
    lock only guards the dict itself.
    """

    def __init__(self, clock: Callable[[], int] = now_ms, max_age_ms: Optional[int] = None):
        self._clock = clock
        self._max_age_ms = max_age_ms
        self._pending: dict[str, int] = {}
        self._lock = threading.Lock()

    def on_start(self, request_id: str, started_at_ms: Optional[int] = None) -> None:
        """Record a start time. A repeated start for the same id resets it."""
        started = started_at_ms if started_at_ms is not None else self._clock()
        with self._lock:
            if request_id in self._pending:
                logger.debug("Duplicate start for request %s, resetting timer", request_id)
            self._pending[request_id] = started

    def on_terminal(
        self,
        request_id: str,
        outcome: RequestSignal,
        observed_at_ms: Optional[int] = None,
    ) -> LogEntry:
        """Finalize a request and drop its pending entry, matched or not."""
        with self._lock:
            started = self._pending.pop(request_id, None)

        reported = outcome.observed_at_ms
        if observed_at_ms is not None:
            end = observed_at_ms
        elif reported is not None:
            end = reported
        else:
            end = self._clock()

        if started is None:
            logger.debug("Terminal signal for %s without a matching start", request_id)
            started = reported if reported is not None else end

        latency = max(0, end - started)

        if outcome.kind is SignalKind.FAILED:
            status_code = 0
            error_reason = outcome.error_reason or "unknown"
        else:
            status_code = outcome.status_code
            error_reason = None

        return LogEntry(
            url=outcome.url,
            domain=extract_domain(outcome.url),
            method=outcome.method,
            status_code=status_code,
            error_reason=error_reason,
            latency_ms=int(latency),
            observed_at=ms_to_iso(end),
        )

    def evict_stale(self, now: Optional[int] = None) -> int:
        """Drop pending starts older than max_age_ms. Returns how many."""
        if self._max_age_ms is None:
            return 0
        cutoff = (now if now is not None else self._clock()) - self._max_age_ms
        with self._lock:
            stale = [rid for rid, started in self._pending.items() if started < cutoff]
            for rid in stale:
                del self._pending[rid]
        if stale:
            logger.info("Evicted %d stale pending requests", len(stale))
        return len(stale)

    def is_pending(self, request_id: str) -> bool:
        with self._lock:
            return request_id in self._pending

    @property
    def pending_count(self) -> int:
        with self._lock:
            return len(self._pending)
