"""Tests for the domain text filter and empty-state messages."""

from netmon.filters import EMPTY_STORE_MESSAGE, apply_filter, empty_state_message
from netmon.models import LogEntry


def _entry(domain, url=None):
    return LogEntry(
        url=url or f"https://{domain}/path",
        domain=domain,
        method="GET",
        status_code=200,
        error_reason=None,
        latency_ms=50,
        observed_at="2026-10-19T08:00:00+00:00",
    )


ENTRIES = [
    _entry("api.github.com"),
    _entry("fonts.googleapis.com"),
    _entry("raw.githubusercontent.com"),
    _entry("example.com"),
]


class TestApplyFilter:
    def test_empty_query_is_identity(self):
        assert apply_filter(ENTRIES, "") is ENTRIES
        assert apply_filter(ENTRIES, "   ") is ENTRIES
        assert apply_filter(ENTRIES, None) is ENTRIES

    def test_case_insensitive_substring(self):
        result = apply_filter(ENTRIES, "GITHUB")
        assert [e.domain for e in result] == ["api.github.com", "raw.githubusercontent.com"]

    def test_preserves_order(self):
        result = apply_filter(ENTRIES, ".com")
        assert result == ENTRIES

    def test_idempotent(self):
        once = apply_filter(ENTRIES, "goog")
        assert apply_filter(once, "goog") == once

    def test_no_match(self):
        assert apply_filter(ENTRIES, "nothing-here") == []

    def test_matches_domain_not_path(self):
        assert apply_filter(ENTRIES, "path") == []

    def test_falls_back_to_url_without_domain(self):
        entry = _entry("", url="file-like-resource")
        assert apply_filter([entry], "LIKE") == [entry]

    def test_padded_query_is_trimmed(self):
        result = apply_filter(ENTRIES, "  github \t")
        assert [e.domain for e in result] == ["api.github.com", "raw.githubusercontent.com"]

    def test_url_fallback_ignores_leading_space(self):
        entry = _entry("", url="/api/v1/items")
        assert apply_filter([entry], " /api") == [entry]

    def test_inner_whitespace_is_literal(self):
        assert apply_filter(ENTRIES, "api github") == []


class TestEmptyStateMessage:
    def test_empty_store(self):
        assert empty_state_message(0, 0, "") == EMPTY_STORE_MESSAGE
        assert empty_state_message(0, 0, "github") == EMPTY_STORE_MESSAGE

    def test_no_matches_differs_from_empty_store(self):
        message = empty_state_message(5, 0, " github ")
        assert message == "No requests match 'github'"
        assert message != EMPTY_STORE_MESSAGE

    def test_rows_to_show(self):
        assert empty_state_message(5, 2, "github") is None
