"""Generic fallback strategy for HTML blog listings."""

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from bs4 import BeautifulSoup, Tag

from news_digest.adapters.parsers.fetcher import Fetcher
from news_digest.adapters.parsers.utils import (
    clean_text,
    create_snippet,
    dedupe_by_url,
    is_after_date,
    is_skip_link,
    normalize_url,
    parse_date,
)
from news_digest.core import CandidateItem, ExtractionStrategy, Source


logger = logging.getLogger(__name__)

MIN_TITLE_LENGTH = 5
MAX_ITEMS = 20


@dataclass(frozen=True)
class ArticleSelector:
    container: str
    title: str
    link: str
    date: str
    content: str


ARTICLE_SELECTORS = [
    # Semantic markup
    ArticleSelector(
        container="article",
        title="h1, h2, h3, .title, .post-title",
        link="a",
        date="time, .date, .published, .post-date, [datetime]",
        content="p, .excerpt, .summary, .description",
    ),
    ArticleSelector(
        container=".post, .blog-post, .entry",
        title="h1, h2, h3, .title, .post-title",
        link="a",
        date="time, .date, .published",
        content="p, .excerpt, .summary",
    ),
    # Cards
    ArticleSelector(
        container=".card, .news-item, .item",
        title="h2, h3, h4, .title",
        link="a",
        date="time, .date, span",
        content="p, .description",
    ),
    # Lists
    ArticleSelector(
        container="li.post, ul.posts > li, .post-list > li",
        title="a, h2, h3",
        link="a",
        date="time, .date, span",
        content="p, .excerpt",
    ),
    # Grids
    ArticleSelector(
        container=".grid-item, .col, [class*='col-']",
        title="h2, h3, h4, .title a",
        link="a",
        date="time, .date",
        content="p",
    ),
]


def looks_like_xml(payload: str, content_type: str = "") -> bool:
    return "xml" in content_type.lower() or payload.lstrip().startswith("<?xml")


class HtmlBlogParser(ExtractionStrategy):
    """Fallback parser using common blog markup patterns.

    Selector templates are tried in order and the first one whose container
    selector matches anything is used exclusively, even when it yields no
    acceptable items.
    """

    name = "HTML Blog Parser"

    def __init__(self, fetcher: Fetcher) -> None:
        self.fetcher = fetcher

    def can_handle(self, url: str) -> bool:
        return True

    async def extract(
        self, url: str, source: Source, since: datetime
    ) -> list[CandidateItem]:
        logger.info("Fetching | parser=%s url=%s", self.name, url)
        result = await self.fetcher.fetch(url)
        if not result.success:
            logger.warning("Fetch failed | parser=%s reason=%s", self.name, result.reason)
            return []

        if looks_like_xml(result.payload, result.content_type):
            logger.info("Content appears to be XML, skipping | url=%s", url)
            return []

        return self.parse_page(result.payload, url, since)

    def parse_page(self, html: str, base_url: str, since: datetime) -> list[CandidateItem]:
        try:
            soup = BeautifulSoup(html, "html.parser")
        except Exception as e:
            logger.warning("Parse error | parser=%s error=%s", self.name, e)
            return []

        for selector in ARTICLE_SELECTORS:
            articles = soup.select(selector.container)
            if not articles:
                continue

            logger.info(
                "Matched selector | container=%s articles=%d", selector.container, len(articles)
            )
            news = []
            for article in articles:
                item = self._parse_article(article, selector, base_url, since)
                if item is not None:
                    news.append(item)
            return dedupe_by_url(news)[:MAX_ITEMS]

        logger.info("No selector template matched | url=%s", base_url)
        return []

    def _parse_article(
        self, article: Tag, selector: ArticleSelector, base_url: str, since: datetime
    ) -> Optional[CandidateItem]:
        title_elem = article.select_one(selector.title)
        title = clean_text(title_elem.get_text(" ") if title_elem else "")
        if len(title) < MIN_TITLE_LENGTH:
            return None

        link = ""
        link_elem = article.select_one(selector.link)
        if link_elem is not None:
            link = link_elem.get("href") or ""
        if not link and title_elem.name == "a":
            link = title_elem.get("href") or ""
        if not link:
            parent_link = title_elem.find_parent("a")
            if parent_link is not None:
                link = parent_link.get("href") or ""
        if not link:
            return None

        link = normalize_url(link, base_url)
        if is_skip_link(link):
            return None

        published_at = None
        date_elem = article.select_one(selector.date)
        if date_elem is not None:
            published_at = parse_date(
                date_elem.get("datetime") or date_elem.get("data-date") or date_elem.get_text(" ")
            )
        if not is_after_date(published_at, since):
            return None

        content_elem = article.select_one(selector.content)
        raw_content = clean_text(content_elem.get_text(" ") if content_elem else "")

        return CandidateItem(
            title=title,
            url=link,
            published_at=published_at,
            raw_content=raw_content,
            snippet=create_snippet(raw_content),
        )
