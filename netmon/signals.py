"""Inbound signal feed: an in-process channel and payload validation."""

import logging
import threading
from collections import defaultdict
from typing import Callable

import jsonschema

from netmon.models import RequestSignal, SignalKind

logger = logging.getLogger(__name__)

SignalHandler = Callable[[RequestSignal], None]

# 9999-12-31T23:59:59.999Z
MAX_TIMESTAMP_MS = 253402300799999

SIGNAL_SCHEMA = {
    "$schema": "https://json-schema.org/draft/2020-12/schema",
    "type": "object",
    "required": ["id", "url", "method", "kind"],
    "properties": {
        "id": {"type": ["string", "integer"]},
        "url": {"type": "string", "minLength": 1},
        "method": {"type": "string", "minLength": 1},
        "kind": {"enum": [k.value for k in SignalKind]},
        "status_code": {"type": "integer", "minimum": 0, "maximum": 999},
        "error": {"type": "string"},
        "timestamp": {"type": "number", "minimum": 0, "maximum": MAX_TIMESTAMP_MS},
    },
    "additionalProperties": False,
    "allOf": [
        {
            "if": {"properties": {"kind": {"const": "completed"}}},
            "then": {"required": ["status_code"]},
        },
    ],
}


class SignalValidator:
    """Validates raw signal payloads against SIGNAL_SCHEMA."""

    def __init__(self, schema=None):
        self._validator = jsonschema.Draft202012Validator(schema or SIGNAL_SCHEMA)
        self._stats = {
            "total": 0,
            "valid": 0,
            "invalid": 0,
            "error_types": defaultdict(int),
        }

    def validate(self, payload):
        """Returns (is_valid, error_messages)."""
        self._stats["total"] += 1
        errors = list(self._validator.iter_errors(payload))

        if not errors:
            self._stats["valid"] += 1
            return True, []

        self._stats["invalid"] += 1
        messages = []
        for error in errors:
            self._stats["error_types"][error.validator] += 1
            messages.append(error.message)
        return False, messages

    def get_stats(self):
        stats = dict(self._stats)
        stats["error_types"] = dict(stats["error_types"])
        return stats


def signal_from_payload(payload: dict) -> RequestSignal:
    """Build a RequestSignal from a payload that already passed validation."""
    observed_at_ms = None
    timestamp = payload.get("timestamp")
    if timestamp is not None:
        try:
            observed_at_ms = int(timestamp)
        except (OverflowError, ValueError):
            logger.debug("Unusable timestamp %r for request %s", timestamp, payload["id"])
    return RequestSignal(
        request_id=str(payload["id"]),
        url=payload["url"],
        method=payload["method"].upper(),
        kind=SignalKind(payload["kind"]),
        status_code=payload.get("status_code"),
        error_reason=payload.get("error"),
        observed_at_ms=observed_at_ms,
    )


class SignalChannel:
    """Fan-out of request signals to connected handlers.

    The engine depends on this contract only, not on how the host delivers
    events.
    """

    def __init__(self):
        self._handlers: list[SignalHandler] = []
        self._lock = threading.Lock()

    def connect(self, handler: SignalHandler) -> Callable[[], None]:
        with self._lock:
            self._handlers.append(handler)

        def disconnect():
            with self._lock:
                if handler in self._handlers:
                    self._handlers.remove(handler)

        return disconnect

    def emit(self, signal: RequestSignal) -> None:
        with self._lock:
            handlers = list(self._handlers)
        for handler in handlers:
            handler(signal)
