import random
from datetime import datetime, timezone, timedelta

from netmon.models import LogEntry, extract_domain

URLS = [
    "https://api.github.com/repos/octocat/hello-world",
    "https://www.google.com/complete/search?q=python",
    "https://cdn.jsdelivr.net/npm/chart.js",
    "https://fonts.googleapis.com/css2?family=Inter",
    "https://example.com/api/v1/items",
    "https://static.example.org/img/logo.png",
]
METHODS = ["GET", "GET", "GET", "POST", "PUT", "DELETE"]
STATUS_CODES = [200, 200, 200, 201, 204, 301, 304, 404, 500, 503]
ERRORS = ["net::ERR_TIMED_OUT", "net::ERR_CONNECTION_RESET", "net::ERR_NAME_NOT_RESOLVED"]


def generate_entry(error_rate=0.1, max_latency_ms=1200, rng=random):
    """Generate a single synthetic log entry."""
    url = rng.choice(URLS)
    ts = datetime.now(timezone.utc) - timedelta(seconds=rng.uniform(0, 5))

    if rng.random() < error_rate:
        status_code = 0
        error_reason = rng.choice(ERRORS)
    else:
        status_code = rng.choice(STATUS_CODES)
        error_reason = None

    return LogEntry(
        url=url,
        domain=extract_domain(url),
        method=rng.choice(METHODS),
        status_code=status_code,
        error_reason=error_reason,
        latency_ms=int(rng.uniform(5, max_latency_ms)),
        observed_at=ts.isoformat(),
    )


def generate_batch(count=10, **kwargs):
    """Generate multiple synthetic entries."""
    return [generate_entry(**kwargs) for _ in range(count)]
