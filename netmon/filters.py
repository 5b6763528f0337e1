"""Live text filter over the log history."""

from typing import Optional, Sequence

from netmon.models import LogEntry

EMPTY_STORE_MESSAGE = "No recent requests recorded"


def matches_query(entry: LogEntry, query: str) -> bool:
    """True if the domain (or the url, when there is no domain) contains query."""
    haystack = entry.domain or entry.url
    return query.lower() in haystack.lower()


def apply_filter(entries: Sequence[LogEntry], query: Optional[str]) -> Sequence[LogEntry]:
    """Ordered subsequence matching query. A blank query returns entries as-is."""
    if not query or not query.strip():
        return entries
    # Surrounding whitespace is trimmed; inner whitespace is matched literally.
    needle = query.strip()
    return [e for e in entries if matches_query(e, needle)]


def empty_state_message(total_count: int, visible_count: int, query: Optional[str]) -> Optional[str]:
    """Message for the "nothing to show" states, or None when rows exist."""
    if total_count == 0:
        return EMPTY_STORE_MESSAGE
    if visible_count == 0:
        return f"No requests match '{(query or '').strip()}'"
    return None
