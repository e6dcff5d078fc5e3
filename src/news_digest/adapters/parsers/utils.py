"""Shared text, URL and date helpers for extraction strategies."""

import re
from datetime import datetime, timezone
from email.utils import parsedate_to_datetime
from typing import Optional
from urllib.parse import parse_qsl, urlencode, urljoin, urlparse, urlunparse

from bs4 import BeautifulSoup
from dateutil import parser as date_parser

from news_digest.core import CandidateItem


TRACKING_PARAMS = {
    "utm_source",
    "utm_medium",
    "utm_campaign",
    "utm_content",
    "utm_term",
    "ref",
    "source",
}

DATE_PATTERNS = [
    # ISO: 2024-01-15
    re.compile(r"\d{4}-\d{2}-\d{2}"),
    # US: January 15, 2024 / Jan 15 2024
    re.compile(
        r"(?:January|February|March|April|May|June|July|August|September|October|November|December"
        r"|Jan|Feb|Mar|Apr|May|Jun|Jul|Aug|Sep|Sept|Oct|Nov|Dec)\.?\s+\d{1,2},?\s+\d{4}",
        re.IGNORECASE,
    ),
    # EU: 15 January 2024
    re.compile(
        r"\d{1,2}\s+(?:January|February|March|April|May|June|July|August|September|October|November|December"
        r"|Jan|Feb|Mar|Apr|May|Jun|Jul|Aug|Sep|Sept|Oct|Nov|Dec)\.?,?\s+\d{4}",
        re.IGNORECASE,
    ),
]

SKIP_LINK_PATTERNS = [
    re.compile(r"/tag/", re.IGNORECASE),
    re.compile(r"/category/", re.IGNORECASE),
    re.compile(r"/author/", re.IGNORECASE),
    re.compile(r"/page/\d+", re.IGNORECASE),
    re.compile(r"#comments?$", re.IGNORECASE),
    re.compile(r"/search\?", re.IGNORECASE),
    re.compile(r"javascript:", re.IGNORECASE),
    re.compile(r"mailto:", re.IGNORECASE),
]


def clean_text(text: Optional[str]) -> str:
    """Collapse all whitespace runs to single spaces."""
    if not text:
        return ""
    return re.sub(r"\s+", " ", text).strip()


def strip_html(text: Optional[str]) -> str:
    """Drop markup from an HTML fragment, keeping its text."""
    if not text:
        return ""
    if "<" not in text:
        return clean_text(text)
    return clean_text(BeautifulSoup(text, "html.parser").get_text(separator=" "))


def create_snippet(content: str, max_length: int = 200) -> str:
    """Shorten content to max_length, cutting at a word boundary."""
    cleaned = clean_text(content)
    if len(cleaned) <= max_length:
        return cleaned

    last_space = cleaned.rfind(" ", 0, max_length)
    cut_point = last_space if last_space > 0 else max_length
    return cleaned[:cut_point] + "..."


def normalize_url(url: str, base_url: str) -> str:
    """Make a link absolute and drop tracking query parameters."""
    try:
        absolute = urljoin(base_url, url.strip())
        parts = urlparse(absolute)
    except ValueError:
        return url

    if not parts.query:
        return absolute

    kept = [
        (key, value)
        for key, value in parse_qsl(parts.query, keep_blank_values=True)
        if key not in TRACKING_PARAMS
    ]
    return urlunparse(parts._replace(query=urlencode(kept)))


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def parse_date(text: Optional[str]) -> Optional[datetime]:
    """Parse the date formats commonly found on blogs and feeds.

    Returns an aware UTC datetime, or None when nothing date-like is found.
    """
    if not text:
        return None

    cleaned = clean_text(text)
    if not cleaned:
        return None

    try:
        return _as_utc(datetime.fromisoformat(cleaned.replace("Z", "+00:00")))
    except ValueError:
        pass

    try:
        return _as_utc(parsedate_to_datetime(cleaned))
    except (TypeError, ValueError, IndexError):
        pass

    for pattern in DATE_PATTERNS:
        match = pattern.search(cleaned)
        if not match:
            continue
        try:
            return _as_utc(date_parser.parse(match.group(0).replace("Sept", "Sep")))
        except (ValueError, OverflowError):
            continue

    return None


def is_after_date(published_at: Optional[datetime], since: datetime) -> bool:
    """Date-inclusion rule: undated items count as possibly recent."""
    if published_at is None:
        return True
    return published_at >= since


def is_skip_link(url: str) -> bool:
    """Check whether a link points at navigation rather than an article."""
    return any(pattern.search(url) for pattern in SKIP_LINK_PATTERNS)


def dedupe_by_url(items: list[CandidateItem]) -> list[CandidateItem]:
    """Keep the first occurrence of each URL, preserving order."""
    seen: set[str] = set()
    unique = []
    for item in items:
        if item.url in seen:
            continue
        seen.add(item.url)
        unique.append(item)
    return unique
