"""Request signal and log entry models."""

from dataclasses import dataclass, asdict
from datetime import datetime, timezone
from enum import Enum
from typing import Optional
from urllib.parse import urlsplit


class SignalKind(Enum):
    START = "start"
    COMPLETED = "completed"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self is not SignalKind.START


@dataclass(frozen=True)
class RequestSignal:
    """One lifecycle event for an outbound request, as emitted by the host."""

    request_id: str
    url: str
    method: str
    kind: SignalKind
    status_code: Optional[int] = None
    error_reason: Optional[str] = None
    observed_at_ms: Optional[int] = None


@dataclass(frozen=True)
class LogEntry:
    url: str
    domain: str
    method: str
    status_code: Optional[int]
    error_reason: Optional[str]
    latency_ms: int
    observed_at: str

    @property
    def is_success(self) -> bool:
        return self.status_code is not None and 200 <= self.status_code < 300

    @property
    def is_error(self) -> bool:
        return bool(self.error_reason) or self.status_code == 0

    def to_dict(self) -> dict:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict) -> "LogEntry":
        """Rebuild an entry from its persisted shape.

        Missing fields are filled with neutral values so records written by
        older versions still load.
        """
        url = str(data.get("url") or "")
        status = data.get("status_code")
        try:
            latency = max(0, int(data.get("latency_ms") or 0))
        except (TypeError, ValueError):
            latency = 0
        return cls(
            url=url,
            domain=str(data.get("domain") or extract_domain(url)),
            method=str(data.get("method") or "GET"),
            status_code=int(status) if isinstance(status, (int, float)) else None,
            error_reason=data.get("error_reason", data.get("error")),
            latency_ms=latency,
            observed_at=str(data.get("observed_at") or ""),
        )


def extract_domain(url: str) -> str:
    """Hostname of *url*, or the raw string when it cannot be parsed."""
    try:
        host = urlsplit(url).hostname
    except ValueError:
        return url
    return host or url


def is_trackable(url: str) -> bool:
    """Only HTTP(S) requests are monitored."""
    return url.startswith("http")


def ms_to_iso(epoch_ms: int) -> str:
    """ISO-8601 UTC time for epoch_ms, or the current time if out of range."""
    try:
        return datetime.fromtimestamp(epoch_ms / 1000, tz=timezone.utc).isoformat()
    except (OverflowError, OSError, ValueError):
        return datetime.now(timezone.utc).isoformat()


def now_ms() -> int:
    return int(datetime.now(timezone.utc).timestamp() * 1000)
