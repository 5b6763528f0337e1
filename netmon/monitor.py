"""Engine facade: signal handling plus the query/command interface."""

import logging
from typing import Optional

from netmon.aggregator import DEFAULT_WINDOW, compute_metrics, metrics_to_dict
from netmon.correlation import CorrelationTable
from netmon.exporter import ExportDocument, export_logs
from netmon.filters import apply_filter, empty_state_message
from netmon.log_store import LogStore
from netmon.models import LogEntry, RequestSignal, SignalKind, is_trackable
from netmon.signals import SignalChannel
from netmon.simulator import generate_batch

logger = logging.getLogger(__name__)

MAX_SAMPLE_COUNT = 1000


def _as_int(value, default: int) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        return default


class NetworkMonitor:
    def __init__(self, store: LogStore, correlations: Optional[CorrelationTable] = None,
                 window_size: int = DEFAULT_WINDOW, visible_rows: int = 10):
        self.store = store
        self.correlations = correlations or CorrelationTable()
        self._window_size = window_size
        self._visible_rows = visible_rows

    def attach(self, channel: SignalChannel):
        """Start consuming signals from channel. Returns a disconnect callable."""
        return channel.connect(self.handle_signal)

    def handle_signal(self, signal: RequestSignal) -> Optional[LogEntry]:
        """Feed one signal through correlation into the store.

        Returns the finalized entry for terminal signals, None otherwise.
        """
        if not is_trackable(signal.url):
            return None

        if signal.kind is SignalKind.START:
            self.correlations.on_start(signal.request_id, signal.observed_at_ms)
            return None

        entry = self.correlations.on_terminal(signal.request_id, signal)
        self.store.insert(entry)
        if signal.kind is SignalKind.FAILED:
            logger.warning("Request failed: %s %s (%s)", entry.method, entry.url, entry.error_reason)
        else:
            logger.debug("Request completed: %s %s -> %s in %d ms",
                         entry.method, entry.url, entry.status_code, entry.latency_ms)
        return entry

    # --- queries and commands ---

    def get_logs(self, query: Optional[str] = None) -> list[LogEntry]:
        return list(apply_filter(self.store.get_all(), query))

    def clear(self) -> None:
        self.store.clear()
        logger.info("Log history cleared")

    def export(self, query: Optional[str] = None, fmt: str = "json") -> ExportDocument:
        return export_logs(self.get_logs(query), fmt=fmt)

    def insert_samples(self, count: int = 10) -> int:
        count = max(0, min(_as_int(count, 10), MAX_SAMPLE_COUNT))
        for entry in generate_batch(count=count):
            self.store.insert(entry)
        return count

    def set_retention(self, capacity) -> int:
        return self.store.set_retention_capacity(capacity)

    def stats(self, query: Optional[str] = None) -> dict:
        return metrics_to_dict(compute_metrics(self.get_logs(query), self._window_size))

    def dashboard(self, query: Optional[str] = None) -> dict:
        all_logs = self.store.get_all()
        visible = list(apply_filter(all_logs, query))
        return {
            "metrics": metrics_to_dict(compute_metrics(visible, self._window_size)),
            "rows": [e.to_dict() for e in visible[: self._visible_rows]],
            "total": len(all_logs),
            "matched": len(visible),
            "message": empty_state_message(len(all_logs), len(visible), query),
            "retention_capacity": self.store.retention_capacity,
            "pending_requests": self.correlations.pending_count,
        }

    def handle_message(self, message: dict) -> dict:
        """Dispatch a {"type": ...} command from the presentation layer."""
        msg_type = (message or {}).get("type")
        query = message.get("query") if message else None

        if msg_type in ("GET_LOGS", "EXPORT_LOGS"):
            return {"logs": [e.to_dict() for e in self.get_logs(query)]}
        if msg_type == "CLEAR_LOGS":
            self.clear()
            return {"ok": True}
        if msg_type == "INSERT_SAMPLE":
            inserted = self.insert_samples(message.get("count", 10))
            return {"ok": True, "inserted": inserted}
        if msg_type == "GET_STATS":
            return self.stats(query)
        if msg_type == "SET_RETENTION":
            capacity = self.set_retention(message.get("capacity"))
            return {"ok": True, "capacity": capacity}

        return {"ok": False, "error": f"unknown message type: {msg_type}"}
