"""Tests for RSS 2.0 and Atom feed parsing."""

from datetime import datetime, timezone
from unittest.mock import AsyncMock, MagicMock

import pytest

from news_digest.adapters.parsers.feed_parser import FeedParser
from news_digest.core import EPOCH, FetchResult, Source


RSS_FEED = """<?xml version="1.0" encoding="UTF-8"?>
<rss version="2.0" xmlns:dc="http://purl.org/dc/elements/1.1/">
  <channel>
    <title>Example Blog</title>
    <item>
      <title>Introducing the new model</title>
      <link>https://example.com/blog/new-model</link>
      <pubDate>Mon, 15 Jan 2024 10:00:00 GMT</pubDate>
      <description>&lt;p&gt;We are releasing &lt;b&gt;today&lt;/b&gt;.&lt;/p&gt;</description>
    </item>
    <item>
      <title>Older announcement</title>
      <link>https://example.com/blog/older</link>
      <dc:date>2024-01-02T09:00:00Z</dc:date>
      <description>Earlier news</description>
    </item>
    <item>
      <title>Missing link entry</title>
    </item>
  </channel>
</rss>
"""

ATOM_FEED = """<?xml version="1.0" encoding="utf-8"?>
<feed xmlns="http://www.w3.org/2005/Atom">
  <title>Example Atom</title>
  <entry>
    <title>Atom entry one</title>
    <link rel="self" href="https://example.com/feed/1"/>
    <link rel="alternate" type="text/html" href="https://example.com/posts/1"/>
    <published>2024-03-01T12:00:00Z</published>
    <summary>First summary</summary>
  </entry>
  <entry>
    <title>Atom entry two</title>
    <link href="https://example.com/posts/2"/>
    <updated>2024-02-20T12:00:00Z</updated>
    <content type="html">&lt;p&gt;Second body&lt;/p&gt;</content>
  </entry>
</feed>
"""


def test_can_handle_feed_urls() -> None:
    """Test feed URL patterns."""
    parser = FeedParser(MagicMock())

    assert parser.can_handle("https://example.com/feed")
    assert parser.can_handle("https://example.com/rss/")
    assert parser.can_handle("https://example.com/blog/rss.xml")
    assert parser.can_handle("https://example.com/index.atom/atom")
    assert not parser.can_handle("https://example.com/blog")


def test_parse_rss2() -> None:
    """Test RSS 2.0 items, HTML stripping and dc:date fallback."""
    items = FeedParser(MagicMock()).parse_feed(RSS_FEED, EPOCH)

    assert len(items) == 2
    first, second = items
    assert first.title == "Introducing the new model"
    assert first.url == "https://example.com/blog/new-model"
    assert first.published_at == datetime(2024, 1, 15, 10, 0, tzinfo=timezone.utc)
    assert first.raw_content == "We are releasing today ."
    assert second.published_at == datetime(2024, 1, 2, 9, 0, tzinfo=timezone.utc)


def test_parse_rss2_filters_by_since() -> None:
    """Test items older than the since bound are dropped."""
    since = datetime(2024, 1, 10, tzinfo=timezone.utc)

    items = FeedParser(MagicMock()).parse_feed(RSS_FEED, since)

    assert [item.url for item in items] == ["https://example.com/blog/new-model"]


def test_parse_single_item_rss() -> None:
    """Test a channel with exactly one item."""
    xml = (
        "<rss><channel><item><title>Only one</title>"
        "<link>https://example.com/only</link></item></channel></rss>"
    )

    items = FeedParser(MagicMock()).parse_feed(xml, EPOCH)

    assert len(items) == 1
    assert items[0].published_at is None


def test_parse_atom() -> None:
    """Test Atom entries, alternate links and updated fallback."""
    items = FeedParser(MagicMock()).parse_feed(ATOM_FEED, EPOCH)

    assert [item.url for item in items] == [
        "https://example.com/posts/1",
        "https://example.com/posts/2",
    ]
    assert items[0].raw_content == "First summary"
    assert items[1].raw_content == "Second body"
    assert items[1].published_at == datetime(2024, 2, 20, 12, 0, tzinfo=timezone.utc)


def test_malformed_and_unknown_feeds() -> None:
    """Test malformed XML and unknown roots yield nothing."""
    parser = FeedParser(MagicMock())

    assert parser.parse_feed("<rss><channel><item>", EPOCH) == []
    assert parser.parse_feed("<html><body>not a feed</body></html>", EPOCH) == []


@pytest.mark.asyncio
async def test_extract_fetch_failure_returns_empty() -> None:
    """Test a failed fetch yields no items."""
    fetcher = MagicMock()
    fetcher.fetch = AsyncMock(return_value=FetchResult(success=False, reason="HTTP 404"))
    source = Source(id="blog", name="Blog", news_url="https://example.com/feed")

    items = await FeedParser(fetcher).extract("https://example.com/feed", source, EPOCH)

    assert items == []


@pytest.mark.asyncio
async def test_extract_parses_fetched_feed() -> None:
    """Test extract parses the fetched payload."""
    fetcher = MagicMock()
    fetcher.fetch = AsyncMock(return_value=FetchResult(success=True, payload=ATOM_FEED))
    source = Source(id="blog", name="Blog", news_url="https://example.com/atom")

    items = await FeedParser(fetcher).extract("https://example.com/atom", source, EPOCH)

    assert len(items) == 2
    fetcher.fetch.assert_awaited_once_with("https://example.com/atom")


def test_rss_links_drop_tracking_params() -> None:
    """Test RSS links lose utm params so fetches agree on the URL."""
    xml = """<rss version="2.0"><channel><item>
      <title>Launch day</title>
      <link>https://example.com/blog/launch?utm_source=rss&amp;utm_medium=feed&amp;page=2</link>
    </item></channel></rss>"""

    items = FeedParser(MagicMock()).parse_feed(xml, EPOCH, base_url="https://example.com/feed")

    assert items[0].url == "https://example.com/blog/launch?page=2"


@pytest.mark.asyncio
async def test_extract_resolves_relative_atom_links() -> None:
    """Test relative Atom hrefs are made absolute against the feed URL."""
    xml = """<feed xmlns="http://www.w3.org/2005/Atom"><entry>
      <title>Relative entry</title>
      <link rel="alternate" href="/posts/relative?ref=atom"/>
      <updated>2024-03-01T12:00:00Z</updated>
    </entry></feed>"""
    fetcher = MagicMock()
    fetcher.fetch = AsyncMock(return_value=FetchResult(success=True, payload=xml))
    source = Source(id="blog", name="Blog", news_url="https://example.com/blog/atom")

    items = await FeedParser(fetcher).extract("https://example.com/blog/atom", source, EPOCH)

    assert [item.url for item in items] == ["https://example.com/posts/relative"]
