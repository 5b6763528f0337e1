"""Tests for the engine facade and its command interface."""

from netmon.filters import EMPTY_STORE_MESSAGE
from netmon.models import RequestSignal, SignalKind
from netmon.signals import SignalChannel

URL = "https://api.github.com/repos"


def _signal(request_id, kind, at_ms, url=URL, **kwargs):
    return RequestSignal(request_id, url, "GET", kind, observed_at_ms=at_ms, **kwargs)


class TestHandleSignal:
    def test_start_then_completed(self, monitor):
        assert monitor.handle_signal(_signal("1", SignalKind.START, 1000)) is None
        entry = monitor.handle_signal(_signal("1", SignalKind.COMPLETED, 1250, status_code=200))

        assert entry.latency_ms == 250
        assert monitor.store.get_all() == [entry]
        assert monitor.stats()["success_rate_percent"] == 100
        assert monitor.correlations.pending_count == 0

    def test_orphan_failure_is_logged_as_non_success(self, monitor):
        entry = monitor.handle_signal(_signal("2", SignalKind.FAILED, 500, error_reason="timeout"))
        assert entry.status_code == 0
        assert entry.latency_ms >= 0
        assert monitor.stats()["success_rate_percent"] == 0

    def test_non_http_signals_ignored(self, monitor):
        url = "chrome-extension://abcdef/popup.html"
        assert monitor.handle_signal(_signal("3", SignalKind.START, 1, url=url)) is None
        assert monitor.correlations.pending_count == 0
        assert monitor.handle_signal(_signal("3", SignalKind.COMPLETED, 2, url=url, status_code=200)) is None
        assert len(monitor.store) == 0

    def test_attached_channel_with_interleaving(self, monitor):
        channel = SignalChannel()
        monitor.attach(channel)
        channel.emit(_signal("a", SignalKind.START, 100))
        channel.emit(_signal("b", SignalKind.START, 200))
        channel.emit(_signal("b", SignalKind.COMPLETED, 260, status_code=204))
        channel.emit(_signal("a", SignalKind.FAILED, 500, error_reason="net::ERR_FAILED"))

        logs = monitor.store.get_all()
        assert [e.latency_ms for e in logs] == [400, 60]
        assert [e.status_code for e in logs] == [0, 204]
        assert monitor.correlations.pending_count == 0


class TestHandleMessage:
    def _seed(self, monitor):
        monitor.handle_signal(_signal("1", SignalKind.COMPLETED, 10, status_code=200))
        monitor.handle_signal(_signal("2", SignalKind.COMPLETED, 20, url="https://example.com/", status_code=200))

    def test_get_logs(self, monitor):
        self._seed(monitor)
        response = monitor.handle_message({"type": "GET_LOGS"})
        assert [log["domain"] for log in response["logs"]] == ["example.com", "api.github.com"]

    def test_get_logs_with_query(self, monitor):
        self._seed(monitor)
        response = monitor.handle_message({"type": "GET_LOGS", "query": "GitHub"})
        assert [log["domain"] for log in response["logs"]] == ["api.github.com"]

    def test_export_logs(self, monitor):
        self._seed(monitor)
        response = monitor.handle_message({"type": "EXPORT_LOGS"})
        assert len(response["logs"]) == 2

    def test_clear_logs(self, monitor):
        self._seed(monitor)
        assert monitor.handle_message({"type": "CLEAR_LOGS"}) == {"ok": True}
        assert monitor.handle_message({"type": "GET_LOGS"}) == {"logs": []}

    def test_insert_sample_respects_capacity(self, monitor):
        response = monitor.handle_message({"type": "INSERT_SAMPLE", "count": 15})
        assert response == {"ok": True, "inserted": 15}
        assert len(monitor.store) == monitor.store.retention_capacity == 10

    def test_insert_sample_bad_count(self, monitor):
        response = monitor.handle_message({"type": "INSERT_SAMPLE", "count": "many"})
        assert response["inserted"] == 10

    def test_get_stats(self, monitor):
        self._seed(monitor)
        stats = monitor.handle_message({"type": "GET_STATS"})
        assert stats["count"] == 2
        assert len(stats["bars"]) == 2

    def test_set_retention(self, monitor):
        assert monitor.handle_message({"type": "SET_RETENTION", "capacity": 3}) == {"ok": True, "capacity": 10}
        assert monitor.handle_message({"type": "SET_RETENTION", "capacity": 40}) == {"ok": True, "capacity": 40}

    def test_unknown_type(self, monitor):
        response = monitor.handle_message({"type": "PING"})
        assert response["ok"] is False
        assert "PING" in response["error"]


class TestDashboard:
    def test_empty_store_message(self, monitor):
        data = monitor.dashboard()
        assert data["message"] == EMPTY_STORE_MESSAGE
        assert data["rows"] == []

    def test_no_match_message(self, monitor):
        monitor.insert_samples(3)
        data = monitor.dashboard("zzz-not-a-domain")
        assert data["total"] == 3
        assert data["matched"] == 0
        assert data["message"] == "No requests match 'zzz-not-a-domain'"

    def test_rows_are_limited(self, monitor):
        monitor.store.set_retention_capacity(50)
        monitor.insert_samples(30)
        data = monitor.dashboard()
        assert len(data["rows"]) == 10
        assert data["message"] is None
        assert data["retention_capacity"] == 50
