"""Fetching and extraction strategies."""

from news_digest.adapters.parsers.dispatcher import ParserDispatcher
from news_digest.adapters.parsers.feed_parser import FeedParser
from news_digest.adapters.parsers.fetcher import Fetcher
from news_digest.adapters.parsers.html_blog_parser import HtmlBlogParser
from news_digest.adapters.parsers.site_parsers import SITE_PROFILES, SiteParser, SiteProfile

__all__ = [
    "Fetcher",
    "FeedParser",
    "HtmlBlogParser",
    "SiteParser",
    "SiteProfile",
    "SITE_PROFILES",
    "ParserDispatcher",
]
