"""Tests for strategy selection."""

from unittest.mock import AsyncMock, MagicMock

import pytest

from news_digest.adapters.parsers import ParserDispatcher
from news_digest.adapters.parsers.feed_parser import FeedParser
from news_digest.adapters.parsers.html_blog_parser import HtmlBlogParser
from news_digest.core import EPOCH, CandidateItem, Source


def test_select_priority_order() -> None:
    """Test site parsers win over feeds, feeds over generic HTML."""
    dispatcher = ParserDispatcher(MagicMock())

    assert dispatcher.select("https://www.anthropic.com/news").name == "Anthropic Parser"
    assert isinstance(dispatcher.select("https://example.com/blog/rss.xml"), FeedParser)
    assert isinstance(dispatcher.select("https://example.com/blog"), HtmlBlogParser)


def test_site_parser_beats_feed_pattern() -> None:
    """Test a site URL that also looks like a feed goes to the site parser."""
    dispatcher = ParserDispatcher(MagicMock())

    assert dispatcher.select("https://huggingface.co/blog/feed.xml").name == "Hugging Face Parser"


@pytest.mark.asyncio
async def test_extract_uses_selected_strategy() -> None:
    """Test extract delegates to the first capable strategy only."""
    dispatcher = ParserDispatcher(MagicMock())
    item = CandidateItem(title="Feed item title", url="https://example.com/1")
    feed, html = dispatcher.strategies[-2], dispatcher.strategies[-1]
    feed.extract = AsyncMock(return_value=[item])
    html.extract = AsyncMock(return_value=[])
    source = Source(id="ex", name="Example", news_url="https://example.com/feed")

    items = await dispatcher.extract("https://example.com/feed", source, EPOCH)

    assert items == [item]
    html.extract.assert_not_called()


@pytest.mark.asyncio
async def test_extract_with_fallback_tries_next_strategy() -> None:
    """Test fallback moves to the next capable strategy when one finds nothing."""
    dispatcher = ParserDispatcher(MagicMock())
    item = CandidateItem(title="Generic item title", url="https://example.com/2")
    feed, html = dispatcher.strategies[-2], dispatcher.strategies[-1]
    feed.extract = AsyncMock(return_value=[])
    html.extract = AsyncMock(return_value=[item])
    source = Source(id="ex", name="Example", news_url="https://example.com/feed")

    name, items = await dispatcher.extract_with_fallback("https://example.com/feed", source, EPOCH)

    assert name == "HTML Blog Parser"
    assert items == [item]
    feed.extract.assert_awaited_once()


@pytest.mark.asyncio
async def test_extract_with_fallback_nothing_found() -> None:
    dispatcher = ParserDispatcher(MagicMock())
    dispatcher.strategies[-1].extract = AsyncMock(return_value=[])
    source = Source(id="ex", name="Example", news_url="https://example.com/blog")

    name, items = await dispatcher.extract_with_fallback("https://example.com/blog", source, EPOCH)

    assert name == "HTML Blog Parser"
    assert items == []
