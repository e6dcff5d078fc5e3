"""Core domain entities."""

import hashlib
from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from enum import Enum
from typing import Optional


EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


class Importance(str, Enum):
    """Importance classification of a stored item."""

    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


@dataclass
class Source:
    """A monitored tool/site."""

    id: str
    name: str
    site_url: Optional[str] = None
    news_url: Optional[str] = None
    lang: str = "en"
    category: Optional[str] = None
    is_active: bool = True
    last_parsed_url: Optional[str] = None
    last_parsed_at: Optional[datetime] = None

    def __post_init__(self) -> None:
        if not self.id:
            raise ValueError("Source id cannot be empty")
        if not self.name:
            raise ValueError("Source name cannot be empty")


@dataclass
class CandidateItem:
    """Item extracted from a page or feed, not yet persisted."""

    title: str
    url: str
    published_at: Optional[datetime] = None
    raw_content: str = ""
    snippet: str = ""

    def __post_init__(self) -> None:
        if not self.title:
            raise ValueError("Title cannot be empty")
        if not self.url:
            raise ValueError("URL cannot be empty")


@dataclass
class StoredItem:
    """Persisted news item."""

    source_id: str
    title: str
    url: str
    fingerprint: str
    published_at: Optional[datetime] = None
    raw_content: str = ""
    snippet: str = ""
    lang: Optional[str] = None
    importance: Optional[Importance] = None
    digest_date: Optional[date] = None
    id: Optional[int] = None
    created_at: Optional[datetime] = None
    source_name: Optional[str] = None


@dataclass
class Digest:
    """Digest for one calendar date."""

    date: date
    summary_md: str
    summary_short: str = ""
    summary_translated: Optional[str] = None
    sources_list: list[str] = field(default_factory=list)
    item_ids: list[int] = field(default_factory=list)
    created_at: Optional[datetime] = None

    @property
    def publishable_text(self) -> str:
        """Text handed to the publish channel."""
        return self.summary_translated or self.summary_md


def compute_fingerprint(url: str, title: str) -> str:
    """Deterministic dedup key for an item."""
    return hashlib.sha256(f"{url}|{title}".encode("utf-8")).hexdigest()[:32]


def to_stored_item(candidate: CandidateItem, source: Source) -> StoredItem:
    """Convert an extraction result into its storage form."""
    return StoredItem(
        source_id=source.id,
        title=candidate.title,
        url=candidate.url,
        fingerprint=compute_fingerprint(candidate.url, candidate.title),
        published_at=candidate.published_at,
        raw_content=candidate.raw_content,
        snippet=candidate.snippet or candidate.raw_content[:200],
        lang=source.lang,
        source_name=source.name,
    )


@dataclass
class FetchResult:
    """Outcome of a single resilient HTTP GET."""

    success: bool
    payload: str = ""
    content_type: str = ""
    status_code: Optional[int] = None
    reason: Optional[str] = None


@dataclass
class NewContentResult:
    """Outcome of a change-detection pass for one source."""

    has_new_content: bool
    new_items: list[CandidateItem] = field(default_factory=list)
    latest_url: Optional[str] = None
    previous_url: Optional[str] = None
    error: Optional[str] = None


@dataclass
class IngestionReport:
    """Aggregate of one per-source ingestion loop."""

    items: list[StoredItem] = field(default_factory=list)
    sources_total: int = 0
    sources_processed: int = 0
    items_inserted: int = 0
    errors: list[str] = field(default_factory=list)

    @property
    def items_fetched(self) -> int:
        return len(self.items)


@dataclass
class CompletionRequest:
    """Request to a text-generation vendor."""

    system_instruction: str
    user_content: str
    max_output_tokens: int = 2000
    temperature: float = 0.7


@dataclass
class CompletionResult:
    """Text returned by a text-generation vendor."""

    text: str
    provider: str
    model: str


@dataclass
class DigestDraft:
    """Composed digest text before persistence."""

    summary_md: str
    summary_short: str
    sources_list: list[str]


@dataclass
class PublishResult:
    """Outcome of publishing a digest."""

    success: bool
    message_id: Optional[int] = None
    error: Optional[str] = None


@dataclass
class PipelineResult:
    """Aggregate result of one daily pipeline invocation."""

    ok: bool
    date: date
    items_fetched: int = 0
    sources_processed: int = 0
    digest_generated: bool = False
    digest_from_cache: bool = False
    published: bool = False
    items_digested: int = 0
    errors: list[str] = field(default_factory=list)


@dataclass
class RollingPipelineResult:
    """Aggregate result of one rolling-window pipeline invocation."""

    ok: bool
    date: date
    recent_count: int = 0
    missed_count: int = 0
    items_fetched: int = 0
    digest_generated: bool = False
    published: bool = False
    items_marked: int = 0
    errors: list[str] = field(default_factory=list)
    digest: Optional[Digest] = None
