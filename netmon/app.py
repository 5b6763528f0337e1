"""Flask surface for the dashboard and the inbound signal feed."""

import atexit
import logging

from apscheduler.schedulers.background import BackgroundScheduler
from flask import Flask, Response, jsonify, request

from netmon.config import Config
from netmon.correlation import CorrelationTable
from netmon.log_store import LogStore
from netmon.monitor import NetworkMonitor
from netmon.signals import SignalChannel, SignalValidator, signal_from_payload
from netmon.storage import JsonFileStorage, MemoryStorage, QueuedStorage

logger = logging.getLogger(__name__)


def build_storage(config, allow_async=True):
    storage_cfg = config["storage"]
    if storage_cfg["backend"] == "memory":
        storage = MemoryStorage()
    else:
        storage = JsonFileStorage(storage_cfg["path"])
    if allow_async and storage_cfg.get("async_writes"):
        storage = QueuedStorage(storage)
    return storage


def build_monitor(config, storage=None):
    """Wire correlation table, store and monitor from config."""
    storage = storage if storage is not None else build_storage(config)
    stale_after = config["correlation"]["stale_after_seconds"]
    correlations = CorrelationTable(max_age_ms=int(stale_after * 1000) if stale_after else None)
    store = LogStore(storage, capacity=config["retention"]["capacity"])
    return NetworkMonitor(
        store,
        correlations,
        window_size=config["dashboard"]["window_size"],
        visible_rows=config["dashboard"]["visible_rows"],
    )


def create_app(config=None, monitor=None):
    """Flask application factory."""
    app = Flask(__name__)

    if config is None:
        config = Config.from_env()
    if monitor is None:
        monitor = build_monitor(config)

    channel = SignalChannel()
    monitor.attach(channel)
    validator = SignalValidator()
    storage = monitor.store.storage

    app.config["components"] = {
        "config": config,
        "monitor": monitor,
        "storage": storage,
        "channel": channel,
        "validator": validator,
    }

    if isinstance(storage, QueuedStorage):
        atexit.register(storage.close)

    sweep_interval = config["correlation"]["sweep_interval_seconds"]
    if sweep_interval:
        scheduler = BackgroundScheduler()
        scheduler.add_job(monitor.correlations.evict_stale, "interval", seconds=sweep_interval)
        scheduler.start()
        atexit.register(scheduler.shutdown)
        app.config["components"]["scheduler"] = scheduler

    # --- Routes ---

    @app.route("/health")
    def health():
        return jsonify({
            "status": "healthy",
            "stored": len(monitor.store),
            "retention_capacity": monitor.store.retention_capacity,
            "pending_requests": monitor.correlations.pending_count,
            "persist_failures": monitor.store.persist_failures,
            "queued_write_failures": storage.failures if isinstance(storage, QueuedStorage) else 0,
        })

    @app.route("/api/signals", methods=["POST"])
    def ingest_signals():
        body = request.get_json(silent=True)
        payloads = body if isinstance(body, list) else [body]

        errors = []
        for index, payload in enumerate(payloads):
            is_valid, messages = validator.validate(payload)
            if not is_valid:
                errors.extend(f"[{index}] {m}" for m in messages)
        if errors:
            return jsonify({"status": "invalid", "errors": errors}), 400

        signals = [signal_from_payload(payload) for payload in payloads]
        for signal in signals:
            channel.emit(signal)
        return jsonify({"status": "accepted", "count": len(payloads)}), 202

    @app.route("/api/logs", methods=["GET"])
    def get_logs():
        return jsonify(monitor.handle_message({"type": "GET_LOGS", "query": request.args.get("q")}))

    @app.route("/api/logs", methods=["DELETE"])
    def clear_logs():
        return jsonify(monitor.handle_message({"type": "CLEAR_LOGS"}))

    @app.route("/api/logs/export")
    def export_logs():
        fmt = request.args.get("format", "json")
        try:
            document = monitor.export(query=request.args.get("q"), fmt=fmt)
        except ValueError as exc:
            return jsonify({"ok": False, "error": str(exc)}), 400
        return Response(
            document.content,
            mimetype=document.media_type,
            headers={"Content-Disposition": f"attachment; filename={document.filename}"},
        )

    @app.route("/api/logs/sample", methods=["POST"])
    def insert_sample():
        data = request.get_json(silent=True) or {}
        return jsonify(monitor.handle_message({"type": "INSERT_SAMPLE", "count": data.get("count", 10)}))

    @app.route("/api/stats")
    def stats():
        return jsonify(monitor.handle_message({"type": "GET_STATS", "query": request.args.get("q")}))

    @app.route("/api/dashboard-data")
    def dashboard_data():
        return jsonify(monitor.dashboard(request.args.get("q")))

    @app.route("/api/settings/retention", methods=["GET"])
    def get_retention():
        return jsonify({"capacity": monitor.store.retention_capacity})

    @app.route("/api/settings/retention", methods=["PUT"])
    def set_retention():
        data = request.get_json(silent=True) or {}
        return jsonify(monitor.handle_message({"type": "SET_RETENTION", "capacity": data.get("capacity")}))

    @app.route("/api/messages", methods=["POST"])
    def messages():
        data = request.get_json(silent=True)
        if not isinstance(data, dict):
            return jsonify({"ok": False, "error": "expected a JSON object"}), 400
        response = monitor.handle_message(data)
        if response.get("ok") is False:
            return jsonify(response), 400
        return jsonify(response)

    return app
