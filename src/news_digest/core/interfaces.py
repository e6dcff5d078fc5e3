"""Core interfaces for adapters."""

from abc import ABC, abstractmethod
from datetime import date, datetime
from typing import Optional

from news_digest.core.entities import (
    CandidateItem,
    CompletionRequest,
    CompletionResult,
    Digest,
    Importance,
    PublishResult,
    Source,
    StoredItem,
)


class ExtractionStrategy(ABC):
    """Interface for turning a news page or feed into candidate items."""

    name: str = "strategy"

    @abstractmethod
    def can_handle(self, url: str) -> bool:
        """Cheap offline check whether this strategy understands the URL."""
        pass

    @abstractmethod
    async def extract(
        self, url: str, source: Source, since: datetime
    ) -> list[CandidateItem]:
        """Fetch the URL and return items newest-first."""
        pass


class Repository(ABC):
    """Interface for persistence of sources, items and digests."""

    @abstractmethod
    async def get_active_sources(self) -> list[Source]:
        pass

    @abstractmethod
    async def get_all_sources(self) -> list[Source]:
        pass

    @abstractmethod
    async def get_source(self, source_id: str) -> Optional[Source]:
        pass

    @abstractmethod
    async def upsert_sources(self, sources: list[Source]) -> None:
        """Insert or update sources, leaving watermarks of existing rows untouched."""
        pass

    @abstractmethod
    async def update_watermark(
        self, source_id: str, last_parsed_url: str, last_parsed_at: datetime
    ) -> None:
        pass

    @abstractmethod
    async def insert_items(self, items: list[StoredItem]) -> int:
        """Insert items, ignoring fingerprint conflicts. Returns inserted count."""
        pass

    @abstractmethod
    async def get_undigested_items(
        self, since: datetime, until: datetime, limit: int = 50
    ) -> list[StoredItem]:
        """Items with no digest marker ingested within [since, until]."""
        pass

    @abstractmethod
    async def get_items_digested_on(self, digest_date: date) -> list[StoredItem]:
        pass

    @abstractmethod
    async def get_recent_undigested(
        self, since: datetime, include_undated: bool = True, undated_limit: int = 20
    ) -> list[StoredItem]:
        pass

    @abstractmethod
    async def get_missed_important(
        self, since: datetime, until: datetime, importance: list[Importance]
    ) -> list[StoredItem]:
        pass

    @abstractmethod
    async def mark_digested(self, item_ids: list[int], digest_date: date) -> int:
        """Set the digest marker on items that have none. Returns updated count."""
        pass

    @abstractmethod
    async def set_importance(self, item_id: int, importance: Importance) -> None:
        pass

    @abstractmethod
    async def get_digest(self, digest_date: date) -> Optional[Digest]:
        pass

    @abstractmethod
    async def save_digest(self, digest: Digest) -> None:
        """Insert or overwrite the digest for its date."""
        pass

    @abstractmethod
    async def get_unprocessed_stats(self) -> dict:
        pass


class TextGenerator(ABC):
    """Interface for text-completion vendors."""

    name: str = "llm"

    @abstractmethod
    async def complete(self, request: CompletionRequest) -> CompletionResult:
        pass


class Publisher(ABC):
    """Interface for outbound publish channels."""

    max_message_length: int = 4096

    @abstractmethod
    async def send(self, text: str) -> PublishResult:
        pass
