"""Watermark-based detection of new content per source."""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import TYPE_CHECKING

from news_digest.core.entities import EPOCH, NewContentResult, Source
from news_digest.core.interfaces import Repository

if TYPE_CHECKING:
    from news_digest.adapters.parsers.dispatcher import ParserDispatcher

logger = logging.getLogger(__name__)


class ChangeDetector:
    """Detect items that appeared since the last check of a source.

    The watermark is the URL of the newest item seen on the previous pass.
    Publish dates are not consulted: many sources omit them, while the newest
    item's URL advances reliably on sites that prepend new posts.
    """

    def __init__(self, dispatcher: ParserDispatcher, repository: Repository) -> None:
        self.dispatcher = dispatcher
        self.repository = repository

    async def check(self, source: Source) -> NewContentResult:
        """Compute new items for a source without touching its watermark."""
        previous_url = source.last_parsed_url

        if not source.news_url:
            logger.debug("No news_url configured | source=%s", source.id)
            return NewContentResult(has_new_content=False, previous_url=previous_url)

        try:
            strategy = self.dispatcher.select(source.news_url)
            logger.info("Checking source | source=%s parser=%s", source.id, strategy.name)
            all_items = await strategy.extract(source.news_url, source, EPOCH)
        except Exception as e:
            logger.warning("Check failed | source=%s error=%s: %s", source.id, type(e).__name__, e)
            return NewContentResult(
                has_new_content=False,
                previous_url=previous_url,
                error=f"{type(e).__name__}: {e}",
            )

        if not all_items:
            logger.info("No items found | source=%s", source.id)
            return NewContentResult(has_new_content=False, previous_url=previous_url)

        latest = all_items[0]

        if not previous_url:
            # First check: only the newest item, not the whole backlog
            logger.info("First check, reporting latest item only | source=%s", source.id)
            return NewContentResult(
                has_new_content=True,
                new_items=[latest],
                latest_url=latest.url,
                previous_url=None,
            )

        if latest.url == previous_url:
            logger.info("No new content | source=%s", source.id)
            return NewContentResult(
                has_new_content=False,
                latest_url=latest.url,
                previous_url=previous_url,
            )

        new_items = []
        for item in all_items:
            if item.url == previous_url:
                break
            new_items.append(item)

        if len(new_items) == len(all_items):
            logger.info(
                "Watermark not found in current listing, treating all %d items as new | source=%s",
                len(all_items), source.id,
            )

        logger.info("New content | source=%s count=%d", source.id, len(new_items))
        return NewContentResult(
            has_new_content=bool(new_items),
            new_items=new_items,
            latest_url=latest.url,
            previous_url=previous_url,
        )

    async def commit(self, source: Source, result: NewContentResult) -> bool:
        """Advance the watermark to the newest URL of a successful check.

        Returns True when the watermark moved.
        """
        if not result.has_new_content or not result.latest_url:
            return False

        now = datetime.now(timezone.utc)
        await self.repository.update_watermark(source.id, result.latest_url, now)
        source.last_parsed_url = result.latest_url
        source.last_parsed_at = now
        logger.debug("Watermark advanced | source=%s url=%s", source.id, result.latest_url)
        return True

    async def check_and_update(self, source: Source, commit: bool = True) -> NewContentResult:
        """Check a source and advance its watermark when new content was found."""
        result = await self.check(source)
        if commit:
            await self.commit(source, result)
        return result
