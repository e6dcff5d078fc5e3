"""Business logic use cases."""

import logging
from datetime import date, datetime, time, timedelta, timezone
from typing import Optional

from news_digest.adapters.digest.digest_composer import DigestComposer
from news_digest.config import Settings
from news_digest.core import (
    ChangeDetector,
    Digest,
    GenerationError,
    Importance,
    IngestionReport,
    NewContentResult,
    PipelineResult,
    Publisher,
    PublishResult,
    Repository,
    RollingPipelineResult,
    Source,
    StorageError,
    StoredItem,
    to_stored_item,
)


logger = logging.getLogger(__name__)


def start_of_day(day: date) -> datetime:
    return datetime.combine(day, time.min, tzinfo=timezone.utc)


def end_of_day(day: date) -> datetime:
    return datetime.combine(day, time.max, tzinfo=timezone.utc)


def utc_today() -> date:
    return datetime.now(timezone.utc).date()


class IngestionService:
    """Run change detection over all active sources and persist new items."""

    def __init__(self, repository: Repository, detector: ChangeDetector) -> None:
        self.repository = repository
        self.detector = detector

    async def ingest(
        self, commit: bool = True, sources: Optional[list[Source]] = None
    ) -> IngestionReport:
        """Sequential loop over the given sources, or all active ones.

        A failing source is recorded in the report and never stops the loop.
        Storage faults propagate. Watermarks advance only after the new items
        have been persisted.
        """
        report = IngestionReport()
        if sources is None:
            sources = await self.repository.get_active_sources()
        report.sources_total = len(sources)
        logger.info("Ingestion started | sources=%d commit=%s", len(sources), commit)

        pending: list[tuple[Source, NewContentResult]] = []

        for source in sources:
            if not source.news_url:
                logger.debug("Skipping source without news_url | source=%s", source.id)
                continue

            try:
                result = await self.detector.check_and_update(source, commit=False)
            except StorageError:
                raise
            except Exception as e:
                report.errors.append(f"Error processing {source.name}: {e}")
                logger.warning("Source failed | source=%s error=%s", source.id, e)
                continue

            if result.error:
                report.errors.append(f"Error processing {source.name}: {result.error}")
                continue

            report.sources_processed += 1
            if not result.has_new_content:
                continue

            items = [to_stored_item(candidate, source) for candidate in result.new_items]
            report.items.extend(items)
            pending.append((source, result))
            logger.info("New items | source=%s count=%d", source.id, len(items))

        if commit:
            report.items_inserted = await self.repository.insert_items(report.items)
            for source, result in pending:
                await self.detector.commit(source, result)

        logger.info(
            "Ingestion finished | processed=%d/%d items=%d inserted=%d errors=%d",
            report.sources_processed, report.sources_total,
            report.items_fetched, report.items_inserted, len(report.errors),
        )
        return report


class DigestService:
    """Compose, persist and publish digests."""

    def __init__(
        self,
        repository: Repository,
        composer: DigestComposer,
        settings: Settings,
        publisher: Optional[Publisher] = None,
    ) -> None:
        self.repository = repository
        self.composer = composer
        self.settings = settings
        self.publisher = publisher

    async def compose(self, items: list[StoredItem], digest_date: date) -> Digest:
        """Generate digest text without persisting anything."""
        draft = await self.composer.compose(items, digest_date)

        translated = None
        if self.settings.digest.secondary_language:
            translated = await self.composer.translate(draft.summary_md)

        return Digest(
            date=digest_date,
            summary_md=draft.summary_md,
            summary_short=draft.summary_short,
            summary_translated=translated,
            sources_list=draft.sources_list,
            item_ids=[item.id for item in items if item.id is not None],
            created_at=datetime.now(timezone.utc),
        )

    async def save(self, digest: Digest) -> int:
        """Persist the digest and mark its items. Returns newly marked count."""
        await self.repository.save_digest(digest)
        return await self.repository.mark_digested(digest.item_ids, digest.date)

    async def publish(self, digest: Digest) -> PublishResult:
        if self.publisher is None:
            return PublishResult(success=False, error="No publisher configured")

        if self.settings.digest.publish_translated:
            text = digest.publishable_text
        else:
            text = digest.summary_md

        logger.info("Publishing digest | date=%s chars=%d", digest.date, len(text))
        return await self.publisher.send(text)


class PipelineService:
    """Entry points for the daily and rolling-window runs.

    Both return a result object and never raise for operational failures.
    """

    def __init__(
        self,
        ingestion: IngestionService,
        digests: DigestService,
        repository: Repository,
        settings: Settings,
    ) -> None:
        self.ingestion = ingestion
        self.digests = digests
        self.repository = repository
        self.settings = settings

    async def _publish(self, digest: Digest, errors: list[str]) -> bool:
        result = await self.digests.publish(digest)
        if not result.success:
            errors.append(f"Publish failed: {result.error}")
            logger.warning("Publish failed | date=%s error=%s", digest.date, result.error)
        return result.success

    async def _eligible_daily_items(self, target_date: date, force_regenerate: bool) -> list[StoredItem]:
        lookback = max(1, self.settings.digest.daily_lookback_days)
        since = start_of_day(target_date - timedelta(days=lookback - 1))
        until = end_of_day(target_date)

        items = await self.repository.get_undigested_items(
            since, until, limit=self.settings.digest.max_items
        )
        if force_regenerate:
            seen_ids = {item.id for item in items}
            for item in await self.repository.get_items_digested_on(target_date):
                if item.id not in seen_ids:
                    items.append(item)
        return items

    async def run_daily(
        self,
        target_date: Optional[date] = None,
        force_regenerate: bool = False,
        skip_fetch: bool = False,
        publish: bool = False,
    ) -> PipelineResult:
        target_date = target_date or utc_today()
        result = PipelineResult(ok=True, date=target_date)
        logger.info(
            "Daily run started | date=%s force=%s skip_fetch=%s publish=%s",
            target_date, force_regenerate, skip_fetch, publish,
        )

        try:
            existing = await self.repository.get_digest(target_date)

            if not skip_fetch:
                report = await self.ingestion.ingest()
                result.items_fetched = report.items_fetched
                result.sources_processed = report.sources_processed
                result.errors.extend(report.errors)

            digest = None
            if existing and not force_regenerate:
                logger.info("Digest served from cache | date=%s", target_date)
                result.digest_from_cache = True
                digest = existing
            else:
                items = await self._eligible_daily_items(target_date, force_regenerate)
                if not items:
                    logger.info("No eligible items, skipping digest | date=%s", target_date)
                else:
                    try:
                        digest = await self.digests.compose(items, target_date)
                    except GenerationError as e:
                        result.errors.append(f"Digest generation failed: {e}")
                        logger.error("Digest generation failed | date=%s error=%s", target_date, e)
                    else:
                        result.items_digested = await self.digests.save(digest)
                        result.digest_generated = True

            if publish and digest is not None:
                result.published = await self._publish(digest, result.errors)

        except StorageError as e:
            result.ok = False
            result.errors.append(f"Storage error: {e}")
            logger.error("Daily run aborted by storage error | date=%s error=%s", target_date, e)
        except Exception as e:
            result.ok = False
            result.errors.append(f"Pipeline fatal error: {type(e).__name__}: {e}")
            logger.exception("Daily run failed | date=%s", target_date)

        logger.info(
            "Daily run finished | date=%s ok=%s generated=%s cached=%s published=%s errors=%d",
            target_date, result.ok, result.digest_generated, result.digest_from_cache,
            result.published, len(result.errors),
        )
        return result

    async def run_rolling(
        self,
        recent_days: int = 3,
        missed_days: int = 7,
        fetch_fresh: bool = True,
        publish: bool = False,
        dry_run: bool = False,
    ) -> RollingPipelineResult:
        today = utc_today()
        result = RollingPipelineResult(ok=True, date=today)
        settings = self.settings.digest
        logger.info(
            "Rolling run started | recent=%dd missed=%dd fetch=%s publish=%s dry_run=%s",
            recent_days, missed_days, fetch_fresh, publish, dry_run,
        )

        try:
            fresh: list[StoredItem] = []
            if fetch_fresh:
                report = await self.ingestion.ingest(commit=not dry_run)
                result.items_fetched = report.items_fetched
                result.errors.extend(report.errors)
                fresh = report.items

            now = datetime.now(timezone.utc)
            recent_cutoff = now - timedelta(days=recent_days)
            missed_cutoff = now - timedelta(days=missed_days)

            recent = await self.repository.get_recent_undigested(
                recent_cutoff,
                include_undated=settings.include_undated,
                undated_limit=settings.undated_limit,
            )
            missed = await self.repository.get_missed_important(
                missed_cutoff,
                recent_cutoff,
                [Importance(level) for level in settings.missed_importance],
            )

            if dry_run:
                # Fresh items were not persisted, so union by fingerprint
                known = {item.fingerprint for item in recent}
                for item in fresh:
                    in_window = item.published_at is None or item.published_at >= recent_cutoff
                    if in_window and item.fingerprint not in known:
                        known.add(item.fingerprint)
                        recent.append(item)
                union = recent + [item for item in missed if item.fingerprint not in known]
            else:
                recent_ids = {item.id for item in recent}
                union = recent + [item for item in missed if item.id not in recent_ids]

            result.recent_count = len(recent)
            result.missed_count = len(missed)
            logger.info(
                "Rolling window | recent=%d missed=%d union=%d",
                result.recent_count, result.missed_count, len(union),
            )

            if not union:
                logger.info("No eligible items, skipping digest")
                return result

            try:
                digest = await self.digests.compose(union, today)
            except GenerationError as e:
                result.errors.append(f"Digest generation failed: {e}")
                logger.error("Digest generation failed | error=%s", e)
                return result

            result.digest = digest
            result.digest_generated = True

            if dry_run:
                logger.info("Dry run, digest not saved | items=%d", len(union))
                return result

            result.items_marked = await self.digests.save(digest)

            if publish:
                result.published = await self._publish(digest, result.errors)

        except StorageError as e:
            result.ok = False
            result.errors.append(f"Storage error: {e}")
            logger.error("Rolling run aborted by storage error | error=%s", e)
        except Exception as e:
            result.ok = False
            result.errors.append(f"Pipeline fatal error: {type(e).__name__}: {e}")
            logger.exception("Rolling run failed")

        return result
