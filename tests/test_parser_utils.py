"""Tests for parser helper functions."""

from datetime import datetime, timezone

from news_digest.adapters.parsers.utils import (
    clean_text,
    create_snippet,
    dedupe_by_url,
    is_after_date,
    is_skip_link,
    normalize_url,
    parse_date,
    strip_html,
)
from news_digest.core import CandidateItem


SINCE = datetime(2024, 1, 10, tzinfo=timezone.utc)


def test_clean_text_collapses_whitespace() -> None:
    assert clean_text("  Hello\n\n   world\t! ") == "Hello world !"
    assert clean_text(None) == ""


def test_strip_html() -> None:
    assert strip_html("<p>Hello <b>world</b></p>") == "Hello world"
    assert strip_html("plain text") == "plain text"


def test_create_snippet_cuts_at_word_boundary() -> None:
    """Test long content is cut at the last space and suffixed."""
    text = "word " * 60
    snippet = create_snippet(text, max_length=200)

    assert snippet.endswith("...")
    assert len(snippet) <= 203
    assert not snippet[:-3].endswith(" ")
    assert create_snippet("short text") == "short text"


def test_normalize_url_absolutizes_and_strips_tracking() -> None:
    """Test relative links and tracking parameters."""
    base = "https://www.anthropic.com/news"

    assert normalize_url("/news/claude-3", base) == "https://www.anthropic.com/news/claude-3"
    assert (
        normalize_url("https://x.com/a?utm_source=feed&id=5&ref=home", base)
        == "https://x.com/a?id=5"
    )
    assert normalize_url("https://x.com/a?source=rss", base) == "https://x.com/a"


def test_parse_date_formats() -> None:
    """Test ISO, RFC 2822 and prose date formats."""
    assert parse_date("2024-01-15T10:00:00Z") == datetime(2024, 1, 15, 10, 0, tzinfo=timezone.utc)
    assert parse_date("Mon, 15 Jan 2024 10:00:00 GMT") == datetime(2024, 1, 15, 10, 0, tzinfo=timezone.utc)
    assert parse_date("Published January 15, 2024 by the team").date() == datetime(2024, 1, 15).date()
    assert parse_date("15 Jan 2024").date() == datetime(2024, 1, 15).date()
    assert parse_date("Sept 3, 2024").date() == datetime(2024, 9, 3).date()


def test_parse_date_returns_aware_utc() -> None:
    parsed = parse_date("2024-01-15")
    assert parsed is not None
    assert parsed.tzinfo is not None
    assert parsed.utcoffset().total_seconds() == 0


def test_parse_date_garbage() -> None:
    assert parse_date("") is None
    assert parse_date(None) is None
    assert parse_date("Read more") is None


def test_is_after_date_includes_undated() -> None:
    """Test the date-inclusion rule."""
    assert is_after_date(None, SINCE) is True
    assert is_after_date(SINCE, SINCE) is True
    assert is_after_date(datetime(2024, 1, 9, tzinfo=timezone.utc), SINCE) is False


def test_is_skip_link() -> None:
    assert is_skip_link("https://blog.example.com/tag/ai")
    assert is_skip_link("https://blog.example.com/page/2")
    assert is_skip_link("mailto:team@example.com")
    assert not is_skip_link("https://blog.example.com/2024/new-model")


def test_dedupe_by_url_keeps_first() -> None:
    items = [
        CandidateItem(title="First", url="https://a.com/1"),
        CandidateItem(title="Second", url="https://a.com/2"),
        CandidateItem(title="First again", url="https://a.com/1"),
    ]

    result = dedupe_by_url(items)

    assert [item.title for item in result] == ["First", "Second"]
