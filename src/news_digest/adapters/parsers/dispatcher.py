"""Selection of the extraction strategy for a URL."""

import logging
from datetime import datetime

from news_digest.adapters.parsers.feed_parser import FeedParser
from news_digest.adapters.parsers.fetcher import Fetcher
from news_digest.adapters.parsers.html_blog_parser import HtmlBlogParser
from news_digest.adapters.parsers.site_parsers import SITE_PROFILES, SiteProfile, build_site_parsers
from news_digest.core import CandidateItem, ExtractionStrategy, Source


logger = logging.getLogger(__name__)


class ParserDispatcher:
    """Ordered strategy list: per-site parsers, then feeds, then generic HTML."""

    def __init__(self, fetcher: Fetcher, profiles: list[SiteProfile] = SITE_PROFILES) -> None:
        self.fetcher = fetcher
        self.strategies: list[ExtractionStrategy] = [
            *build_site_parsers(fetcher, profiles),
            FeedParser(fetcher),
            HtmlBlogParser(fetcher),
        ]

    def select(self, url: str) -> ExtractionStrategy:
        """First strategy that can handle the URL. The last one accepts anything."""
        for strategy in self.strategies:
            if strategy.can_handle(url):
                return strategy
        return self.strategies[-1]

    async def extract(self, url: str, source: Source, since: datetime) -> list[CandidateItem]:
        strategy = self.select(url)
        logger.info("Using parser | parser=%s url=%s", strategy.name, url)
        return await strategy.extract(url, source, since)

    async def extract_with_fallback(
        self, url: str, source: Source, since: datetime
    ) -> tuple[str, list[CandidateItem]]:
        """Try every capable strategy in order until one returns items.

        Returns the name of the strategy that produced items (or of the last
        one tried) together with the items.
        """
        name = ""
        for strategy in self.strategies:
            if not strategy.can_handle(url):
                continue
            name = strategy.name
            items = await strategy.extract(url, source, since)
            if items:
                return name, items
            logger.info("Parser returned nothing, trying next | parser=%s url=%s", name, url)
        return name, []
