"""Tests for the profile-driven site parsers."""

from datetime import datetime, timezone
from unittest.mock import MagicMock

from news_digest.adapters.parsers.site_parsers import (
    MAX_ITEMS,
    SITE_PROFILES,
    SiteParser,
    SiteProfile,
    build_site_parsers,
)
from news_digest.core import EPOCH


def parser_for(name: str) -> SiteParser:
    profile = next(p for p in SITE_PROFILES if p.name == name)
    return SiteParser(profile, MagicMock())


ANTHROPIC_PAGE = """
<html><body>
  <a href="/news">All news</a>
  <article>
    <a href="/news/claude-new-release">
      <h3>Claude gets a new release today</h3>
      <time datetime="2024-05-01">May 1, 2024</time>
      <p>Highlights of the release.</p>
    </a>
  </article>
  <a href="/news/claude-new-release"><h3>Claude gets a new release today</h3></a>
  <article><a href="/news/short"><h3>Short</h3></a></article>
  <article><a href="/careers/open-roles"><h3>We are hiring engineers</h3></a></article>
  <article><a href="/news/older-post"><h3>An older post from last year</h3>
    <span class="date">March 3, 2023</span></a></article>
</body></html>
"""


def test_can_handle_matches_profiles() -> None:
    """Test URL patterns select the right profile."""
    assert parser_for("Anthropic").can_handle("https://www.anthropic.com/news")
    assert parser_for("OpenAI").can_handle("https://openai.com/news/")
    assert parser_for("xAI").can_handle("https://x.ai/news")
    assert not parser_for("xAI").can_handle("https://www.dropbox.ai/news")
    assert not parser_for("Cursor").can_handle("https://www.anthropic.com/news")


def test_parse_page_dedupes_and_absolutizes() -> None:
    """Test dedupe by URL, href rules and absolute links."""
    parser = parser_for("Anthropic")

    items = parser.parse_page(ANTHROPIC_PAGE, "https://www.anthropic.com/news", EPOCH)

    urls = [item.url for item in items]
    assert urls == [
        "https://www.anthropic.com/news/claude-new-release",
        "https://www.anthropic.com/news/older-post",
    ]
    assert items[0].title == "Claude gets a new release today"
    assert items[0].published_at == datetime(2024, 5, 1, tzinfo=timezone.utc)
    assert items[0].raw_content == "Highlights of the release."


def test_parse_page_filters_by_since() -> None:
    """Test dated items before since are dropped."""
    parser = parser_for("Anthropic")
    since = datetime(2024, 1, 1, tzinfo=timezone.utc)

    items = parser.parse_page(ANTHROPIC_PAGE, "https://www.anthropic.com/news", since)

    assert [item.url for item in items] == ["https://www.anthropic.com/news/claude-new-release"]


def test_parse_page_caps_items() -> None:
    """Test no more than MAX_ITEMS items per pass."""
    cards = "".join(
        f'<article><a href="/news/post-{i}"><h2>Announcement number {i}</h2></a></article>'
        for i in range(30)
    )

    items = parser_for("Anthropic").parse_page(
        f"<html><body>{cards}</body></html>", "https://www.anthropic.com/news", EPOCH
    )

    assert len(items) == MAX_ITEMS
    assert items[0].url == "https://www.anthropic.com/news/post-0"


def test_anchor_listing_reads_context_from_parent() -> None:
    """Test anchor-only listings take dates from the surrounding element."""
    html = """
    <div class="row">
      <a href="/index/gpt-update"><h3>Model update for everyone</h3></a>
      <time datetime="2024-06-10T00:00:00Z">Jun 10</time>
    </div>
    """

    items = parser_for("OpenAI").parse_page(html, "https://openai.com/news", EPOCH)

    assert len(items) == 1
    assert items[0].url == "https://openai.com/index/gpt-update"
    assert items[0].published_at == datetime(2024, 6, 10, tzinfo=timezone.utc)


def test_title_falls_back_to_link_text() -> None:
    """Test link text is used when no title element exists."""
    profile = SiteProfile(name="Plain", url_patterns=(r"plain\.example",), container="li", title="h2")
    html = '<ul><li><a href="/posts/a">A plain link title here</a></li></ul>'

    items = SiteParser(profile, MagicMock()).parse_page(html, "https://plain.example/", EPOCH)

    assert items[0].title == "A plain link title here"
    assert items[0].url == "https://plain.example/posts/a"


def test_build_site_parsers_preserves_order() -> None:
    parsers = build_site_parsers(MagicMock())

    assert [p.name for p in parsers] == [f"{p.name} Parser" for p in SITE_PROFILES]
