"""RSS 2.0 and Atom feed strategy."""

import logging
import re
from datetime import datetime
from typing import Optional
from xml.etree import ElementTree as ET

from news_digest.adapters.parsers.fetcher import Fetcher
from news_digest.adapters.parsers.utils import (
    clean_text,
    create_snippet,
    is_after_date,
    normalize_url,
    parse_date,
    strip_html,
)
from news_digest.core import CandidateItem, ExtractionStrategy, Source


logger = logging.getLogger(__name__)

ATOM_NS = "{http://www.w3.org/2005/Atom}"
DC_NS = "{http://purl.org/dc/elements/1.1/}"
CONTENT_NS = "{http://purl.org/rss/1.0/modules/content/}"

FEED_URL_PATTERNS = [
    re.compile(r"/feed/?$", re.IGNORECASE),
    re.compile(r"/rss/?$", re.IGNORECASE),
    re.compile(r"\.rss$", re.IGNORECASE),
    re.compile(r"\.xml$", re.IGNORECASE),
    re.compile(r"/atom/?$", re.IGNORECASE),
    re.compile(r"feed\.xml", re.IGNORECASE),
    re.compile(r"rss\.xml", re.IGNORECASE),
]


def _text(elem: Optional[ET.Element]) -> str:
    if elem is None:
        return ""
    return "".join(elem.itertext()).strip()


class FeedParser(ExtractionStrategy):
    """Parse RSS 2.0 and Atom feeds."""

    name = "RSS/Atom Parser"

    def __init__(self, fetcher: Fetcher) -> None:
        self.fetcher = fetcher

    def can_handle(self, url: str) -> bool:
        return any(pattern.search(url) for pattern in FEED_URL_PATTERNS)

    async def extract(
        self, url: str, source: Source, since: datetime
    ) -> list[CandidateItem]:
        logger.info("Fetching feed | url=%s", url)
        result = await self.fetcher.fetch(url)
        if not result.success:
            logger.warning("Feed fetch failed | url=%s reason=%s", url, result.reason)
            return []
        return self.parse_feed(result.payload, since, base_url=url)

    def parse_feed(
        self, xml_content: str, since: datetime, base_url: str = ""
    ) -> list[CandidateItem]:
        """Parse feed XML into candidates. Malformed or unknown feeds yield [].

        Links are resolved against base_url and stripped of tracking params.
        """
        try:
            root = ET.fromstring(xml_content.strip())
        except ET.ParseError as e:
            logger.warning("Feed parse error | error=%s", e)
            return []

        if root.tag == "rss" or root.find("channel") is not None:
            items = self._parse_rss2(root, since, base_url)
            logger.info("Parsed RSS 2.0 feed | items=%d", len(items))
            return items

        if root.tag == f"{ATOM_NS}feed":
            items = self._parse_atom(root, since, base_url)
            logger.info("Parsed Atom feed | items=%d", len(items))
            return items

        logger.warning("Unknown feed format | root=%s", root.tag)
        return []

    def _parse_rss2(self, root: ET.Element, since: datetime, base_url: str) -> list[CandidateItem]:
        news = []

        for item in root.iter("item"):
            date_text = _text(item.find("pubDate")) or _text(item.find(f"{DC_NS}date"))
            published_at = parse_date(date_text)
            if not is_after_date(published_at, since):
                continue

            title = clean_text(_text(item.find("title")))
            link = _text(item.find("link"))
            body = _text(item.find("description")) or _text(item.find(f"{CONTENT_NS}encoded"))
            raw_content = strip_html(body)

            if title and link:
                link = normalize_url(link, base_url)
                news.append(CandidateItem(
                    title=title,
                    url=link,
                    published_at=published_at,
                    raw_content=raw_content,
                    snippet=create_snippet(raw_content),
                ))

        return news

    def _atom_link(self, entry: ET.Element) -> str:
        links = entry.findall(f"{ATOM_NS}link")
        if not links:
            return ""
        for link in links:
            if link.get("type") == "text/html" or link.get("rel") == "alternate":
                return link.get("href", "")
        return links[0].get("href", "") or _text(links[0])

    def _parse_atom(self, root: ET.Element, since: datetime, base_url: str) -> list[CandidateItem]:
        news = []

        for entry in root.findall(f"{ATOM_NS}entry"):
            date_text = _text(entry.find(f"{ATOM_NS}published")) or _text(entry.find(f"{ATOM_NS}updated"))
            published_at = parse_date(date_text)
            if not is_after_date(published_at, since):
                continue

            title = clean_text(_text(entry.find(f"{ATOM_NS}title")))
            link = self._atom_link(entry)
            body = _text(entry.find(f"{ATOM_NS}content")) or _text(entry.find(f"{ATOM_NS}summary"))
            raw_content = strip_html(body)

            if title and link:
                link = normalize_url(link, base_url)
                news.append(CandidateItem(
                    title=title,
                    url=link,
                    published_at=published_at,
                    raw_content=raw_content,
                    snippet=create_snippet(raw_content),
                ))

        return news
