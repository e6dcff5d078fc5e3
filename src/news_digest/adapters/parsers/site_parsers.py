"""Per-site extraction strategies for news pages without usable feeds.

Every site is described by a SiteProfile row; a single SiteParser walks the
profile's containers and applies the shared acceptance rules (minimum title
length, link absolutization, per-pass URL dedupe, 20 item cap).
"""

import logging
import re
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from bs4 import BeautifulSoup, Tag

from news_digest.adapters.parsers.fetcher import Fetcher
from news_digest.adapters.parsers.utils import (
    clean_text,
    create_snippet,
    is_after_date,
    normalize_url,
    parse_date,
)
from news_digest.core import CandidateItem, ExtractionStrategy, Source


logger = logging.getLogger(__name__)

MIN_TITLE_LENGTH = 10
MAX_ITEMS = 20
INVALID_HREF_PREFIXES = ("#", "mailto:", "tel:", "javascript:")


@dataclass(frozen=True)
class SiteProfile:
    """Selectors and URL rules describing one site's news listing."""

    name: str
    url_patterns: tuple[str, ...]
    container: str
    title: str
    date: str = "time, .date"
    excerpt: Optional[str] = "p"
    link: str = "a"
    href_contains: Optional[str] = None
    skip_hrefs: tuple[str, ...] = ()
    max_title_length: int = 200
    # Anchor-only listings keep date and excerpt next to the link, not inside it
    context_from_parent: bool = False


SITE_PROFILES: list[SiteProfile] = [
    SiteProfile(
        name="OpenAI",
        url_patterns=(r"openai\.com/news", r"openai\.com/blog"),
        container="a[href*='/index/']",
        title="h3, h2, span",
        date="time, [datetime]",
        excerpt=None,
        href_contains="/index/",
        context_from_parent=True,
    ),
    SiteProfile(
        name="Anthropic",
        url_patterns=(r"anthropic\.com/news",),
        container="article, a[href*='/news/'], .post-card",
        title="h2, h3, .title",
        date="time, .date, [datetime]",
        excerpt="p, .excerpt",
        href_contains="/news/",
        skip_hrefs=("/news", "/news/"),
    ),
    SiteProfile(
        name="Google Blog",
        url_patterns=(r"blog\.google", r"googleblog\.com"),
        container="article, .post, [class*='article']",
        title="h2, h3, .title",
    ),
    SiteProfile(
        name="Microsoft Blog",
        url_patterns=(r"microsoft\.com.*blog", r"blog.*microsoft\.com"),
        container="article, .card, [class*='post'], [class*='article']",
        title="h2, h3, h4, .title",
        date="time, .date, [class*='date']",
        excerpt="p, .excerpt",
    ),
    SiteProfile(
        name="Hugging Face",
        url_patterns=(r"huggingface\.co/blog",),
        container="article, a[href*='/blog/']",
        title="h2, h3, .title",
        link="a[href*='/blog/']",
        href_contains="/blog/",
        skip_hrefs=("/blog", "/blog/"),
    ),
    SiteProfile(
        name="Cursor",
        url_patterns=(r"cursor\.com/blog", r"cursor\.sh/blog"),
        container="a[href*='/blog/']",
        title="h2, h3, h4",
        date="time, .date, span",
        href_contains="/blog/",
        skip_hrefs=("/blog", "/blog/"),
        context_from_parent=True,
    ),
    SiteProfile(
        name="Replit",
        url_patterns=(r"blog\.replit\.com", r"replit\.com/blog"),
        container="article, .post, a[href*='/blog/']",
        title="h1, h2, h3",
        skip_hrefs=("/blog", "/blog/"),
    ),
    SiteProfile(
        name="ElevenLabs",
        url_patterns=(r"elevenlabs\.io/blog",),
        container="article, a[href*='/blog/']",
        title="h2, h3, h4",
        date="time, .date, span",
        href_contains="/blog/",
        skip_hrefs=("/blog", "/blog/"),
    ),
    SiteProfile(
        name="n8n",
        url_patterns=(r"blog\.n8n\.io", r"n8n\.io/blog"),
        container="article",
        title="h2, h3",
    ),
    SiteProfile(
        name="Suno",
        url_patterns=(r"suno\.com/blog",),
        container="article, a[href*='/blog/']",
        title="h2, h3",
        skip_hrefs=("/blog", "/blog/"),
    ),
    SiteProfile(
        name="Runway",
        url_patterns=(r"runwayml\.com/news", r"runwayml\.com/blog"),
        container="article, a[href*='/news/'], a[href*='/blog/']",
        title="h2, h3",
        skip_hrefs=("/news", "/news/", "/blog", "/blog/"),
    ),
    SiteProfile(
        name="Perplexity",
        url_patterns=(r"perplexity\.ai/hub", r"perplexity\.ai/blog"),
        container="article, a[href*='/hub/']",
        title="h2, h3",
        skip_hrefs=("/hub", "/hub/"),
    ),
    SiteProfile(
        name="xAI",
        url_patterns=(r"(?<![\w.-])x\.ai/news", r"(?<![\w.-])x\.ai/blog"),
        container="article, a[href*='/news/'], a[href*='/blog/']",
        title="h2, h3",
        skip_hrefs=("/news", "/news/", "/blog", "/blog/"),
    ),
    SiteProfile(
        name="DeepL",
        url_patterns=(r"deepl\.com.*blog",),
        container="article, .blog-post, a[href*='/blog/']",
        title="h2, h3",
        date="time, .date, span",
        skip_hrefs=("/blog", "/blog/"),
    ),
]


def _date_text(scope: Tag, selector: str) -> str:
    elem = scope.select_one(selector)
    if elem is None:
        return ""
    return elem.get("datetime") or elem.get("data-date") or elem.get_text(" ", strip=True)


class SiteParser(ExtractionStrategy):
    """Extraction strategy driven by a SiteProfile."""

    def __init__(self, profile: SiteProfile, fetcher: Fetcher) -> None:
        self.profile = profile
        self.fetcher = fetcher
        self.name = f"{profile.name} Parser"
        self._patterns = [re.compile(p, re.IGNORECASE) for p in profile.url_patterns]

    def can_handle(self, url: str) -> bool:
        return any(pattern.search(url) for pattern in self._patterns)

    async def extract(
        self, url: str, source: Source, since: datetime
    ) -> list[CandidateItem]:
        logger.info("Fetching | parser=%s url=%s", self.name, url)
        result = await self.fetcher.fetch(url)
        if not result.success:
            logger.warning("Fetch failed | parser=%s reason=%s", self.name, result.reason)
            return []
        return self.parse_page(result.payload, url, since)

    def _accept_href(self, href: str) -> bool:
        profile = self.profile
        if not href or href.startswith(INVALID_HREF_PREFIXES):
            return False
        if href in profile.skip_hrefs:
            return False
        if profile.href_contains and profile.href_contains not in href:
            return False
        return True

    def _parse_container(
        self, elem: Tag, base_url: str, since: datetime
    ) -> Optional[CandidateItem]:
        profile = self.profile

        link_elem = elem if elem.name == "a" else elem.select_one(profile.link)
        if link_elem is None:
            return None
        href = (link_elem.get("href") or "").strip()
        if not self._accept_href(href):
            return None

        title_elem = elem.select_one(profile.title)
        title = clean_text(title_elem.get_text(" ") if title_elem else "")
        if not title:
            title = clean_text(link_elem.get_text(" "))
        if len(title) < MIN_TITLE_LENGTH or len(title) > profile.max_title_length:
            return None

        context = elem
        if profile.context_from_parent and elem.parent is not None:
            context = elem.parent

        published_at = parse_date(_date_text(elem, profile.date) or _date_text(context, profile.date))
        if not is_after_date(published_at, since):
            return None

        excerpt = ""
        if profile.excerpt:
            excerpt_elem = context.select_one(profile.excerpt)
            if excerpt_elem is not None:
                excerpt = clean_text(excerpt_elem.get_text(" "))

        return CandidateItem(
            title=title,
            url=normalize_url(href, base_url),
            published_at=published_at,
            raw_content=excerpt,
            snippet=create_snippet(excerpt),
        )

    def parse_page(self, html: str, base_url: str, since: datetime) -> list[CandidateItem]:
        """Extract candidates from a listing page, newest-first in page order."""
        try:
            soup = BeautifulSoup(html, "html.parser")
            containers = soup.select(self.profile.container)
        except Exception as e:
            logger.warning("Parse error | parser=%s error=%s", self.name, e)
            return []

        news: list[CandidateItem] = []
        seen_urls: set[str] = set()

        for elem in containers:
            item = self._parse_container(elem, base_url, since)
            if item is None or item.url in seen_urls:
                continue
            seen_urls.add(item.url)
            news.append(item)
            if len(news) >= MAX_ITEMS:
                break

        logger.info("Found articles | parser=%s count=%d", self.name, len(news))
        return news


def build_site_parsers(fetcher: Fetcher, profiles: list[SiteProfile] = SITE_PROFILES) -> list[SiteParser]:
    """Instantiate one parser per profile, preserving table order."""
    return [SiteParser(profile, fetcher) for profile in profiles]
