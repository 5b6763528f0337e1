"""Export the log history as a downloadable JSON or CSV document."""

import csv
import io
import json
import logging
import os
import tempfile
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Callable, Optional, Sequence

from netmon.models import LogEntry

logger = logging.getLogger(__name__)

CSV_COLUMNS = ["observed_at", "method", "domain", "url", "status_code", "error_reason", "latency_ms"]


@dataclass(frozen=True)
class ExportDocument:
    filename: str
    content: str
    media_type: str
    count: int


def _render_json(entries: Sequence[LogEntry], generated_at: datetime) -> str:
    return json.dumps({
        "generated_at": generated_at.isoformat(),
        "count": len(entries),
        "logs": [e.to_dict() for e in entries],
    }, indent=2)


def _render_csv(entries: Sequence[LogEntry], generated_at: datetime) -> str:
    buf = io.StringIO()
    writer = csv.DictWriter(buf, fieldnames=CSV_COLUMNS, extrasaction="ignore")
    writer.writeheader()
    for entry in entries:
        writer.writerow(entry.to_dict())
    return buf.getvalue()


_RENDERERS: dict[str, tuple[Callable[[Sequence[LogEntry], datetime], str], str]] = {
    "json": (_render_json, "application/json"),
    "csv": (_render_csv, "text/csv"),
}


def export_logs(entries: Sequence[LogEntry], fmt: str = "json",
                now: Optional[datetime] = None) -> ExportDocument:
    """Serialize entries in their current order, stamped with the export time."""
    if fmt not in _RENDERERS:
        raise ValueError(f"unsupported export format: {fmt}")
    generated_at = now or datetime.now(timezone.utc)
    render, media_type = _RENDERERS[fmt]
    return ExportDocument(
        filename=f"network-logs-{generated_at.strftime('%Y%m%d-%H%M%S')}.{fmt}",
        content=render(entries, generated_at),
        media_type=media_type,
        count=len(entries),
    )


def write_export(document: ExportDocument, directory: str) -> str:
    """Write the document into directory atomically. Returns the final path."""
    os.makedirs(directory, exist_ok=True)
    path = os.path.join(directory, document.filename)
    fd, tmp = tempfile.mkstemp(dir=directory)
    try:
        with os.fdopen(fd, "w", encoding="utf-8", newline="") as f:
            f.write(document.content)
        os.replace(tmp, path)
    except Exception:
        if os.path.exists(tmp):
            os.unlink(tmp)
        raise
    logger.info("Exported %d entries to %s", document.count, path)
    return path
