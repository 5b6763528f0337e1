"""Health metrics: counts, latency, success rate and responsiveness bars."""

import math
from dataclasses import dataclass, field, asdict
from typing import Sequence

from netmon.models import LogEntry

DEFAULT_WINDOW = 10
MIN_BAR_PERCENT = 6


@dataclass
class Bar:
    domain: str
    latency_ms: int
    height_percent: int


@dataclass
class HealthMetrics:
    count: int = 0
    error_count: int = 0
    average_latency_ms: int = 0
    success_rate_percent: int = 0
    responsiveness_score: int = 0
    bars: list[Bar] = field(default_factory=list)


def _round(value: float) -> int:
    """Round half up, the way the dashboard displays numbers."""
    return int(math.floor(value + 0.5))


def latency_bars(entries: Sequence[LogEntry], window_size: int = DEFAULT_WINDOW) -> list[Bar]:
    """Bars for the newest entries, oldest first. Faster requests get taller bars."""
    window = list(entries[:window_size])
    window.reverse()
    if not window:
        return []
    max_latency = max(e.latency_ms for e in window) or 1
    return [
        Bar(
            domain=e.domain or e.url,
            latency_ms=e.latency_ms,
            height_percent=max(MIN_BAR_PERCENT, _round((1 - e.latency_ms / max_latency) * 100)),
        )
        for e in window
    ]


def responsiveness_score(entries: Sequence[LogEntry], window_size: int = DEFAULT_WINDOW) -> int:
    """Latency proxy in [0, 100]. Not a bandwidth measurement."""
    window = entries[:window_size]
    if not window:
        return 0
    avg = sum(e.latency_ms for e in window) / len(window)
    return min(100, _round((1000 / max(avg, 1)) * 10))


def compute_metrics(entries: Sequence[LogEntry], window_size: int = DEFAULT_WINDOW) -> HealthMetrics:
    """Derive dashboard metrics from a newest-first collection."""
    count = len(entries)
    if count == 0:
        return HealthMetrics()

    total_latency = sum(e.latency_ms for e in entries)
    successes = sum(1 for e in entries if e.is_success)

    return HealthMetrics(
        count=count,
        error_count=sum(1 for e in entries if e.is_error),
        average_latency_ms=_round(total_latency / count),
        success_rate_percent=_round(100 * successes / count),
        responsiveness_score=responsiveness_score(entries, window_size),
        bars=latency_bars(entries, window_size),
    )


def metrics_to_dict(metrics: HealthMetrics) -> dict:
    return asdict(metrics)


def format_metrics_text(metrics: HealthMetrics) -> str:
    """Human-readable metrics summary."""
    lines = []
    lines.append(f"Requests:        {metrics.count}")
    lines.append(f"Errors:          {metrics.error_count}")
    lines.append(f"Avg latency:     {metrics.average_latency_ms} ms")
    lines.append(f"Success rate:    {metrics.success_rate_percent}%")
    lines.append(f"Responsiveness:  {metrics.responsiveness_score}/100")
    if metrics.bars:
        lines.append("")
        lines.append("Recent latency (oldest first):")
        for bar in metrics.bars:
            width = max(1, bar.height_percent // 5)
            lines.append(f"  {bar.domain[:30]:30s} {bar.latency_ms:6d} ms {'#' * width}")
    return "\n".join(lines)
