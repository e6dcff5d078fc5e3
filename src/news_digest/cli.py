"""CLI entry point for news digest."""

import asyncio
import uuid
from datetime import date, datetime
from pathlib import Path
from typing import Optional

import typer

from news_digest.adapters.digest.digest_composer import DigestComposer
from news_digest.adapters.llm import create_text_generator
from news_digest.adapters.notifications.telegram_publisher import TelegramPublisher
from news_digest.adapters.parsers import Fetcher, ParserDispatcher
from news_digest.adapters.storage import SQLiteRepository, load_sources
from news_digest.config import Settings, get_settings
from news_digest.core import EPOCH, ChangeDetector, NewsDigestError
from news_digest.logging_config import set_run_context, setup_logging
from news_digest.use_cases import DigestService, IngestionService, PipelineService


app = typer.Typer(help="Collect AI tool news and compile it into digests.", no_args_is_help=True)

state = {"config": Path("config.yaml"), "verbose": False}


def _banner(title: str) -> None:
    print("\n" + "=" * 70)
    print(title)
    print("=" * 70)


def _load(run_kind: str) -> Settings:
    settings = get_settings(state["config"])
    setup_logging(settings.logging, verbose=state["verbose"])
    set_run_context(f"{run_kind}-{uuid.uuid4().hex[:8]}")
    return settings


def build_dispatcher(settings: Settings) -> ParserDispatcher:
    fetcher = Fetcher(
        timeout=settings.fetch.timeout,
        max_retries=settings.fetch.max_retries,
        backoff_base=settings.fetch.backoff_base,
        proxy_url=settings.proxy_url,
    )
    return ParserDispatcher(fetcher)


def build_pipeline(settings: Settings, repository: SQLiteRepository) -> PipelineService:
    """Wire adapters and services for one run."""
    detector = ChangeDetector(build_dispatcher(settings), repository)
    ingestion = IngestionService(repository, detector)

    publisher = None
    if settings.telegram_configured:
        publisher = TelegramPublisher(
            bot_token=settings.telegram_bot_token,
            channel_id=settings.telegram_channel_id,
            parse_mode=settings.telegram.parse_mode,
            max_message_length=settings.telegram.max_message_length,
            chunk_delay=settings.telegram.chunk_delay,
            timeout=settings.telegram.timeout,
        )

    composer = DigestComposer(create_text_generator(settings), settings)
    digests = DigestService(repository, composer, settings, publisher=publisher)
    return PipelineService(ingestion, digests, repository, settings)


def _print_errors(errors: list[str]) -> None:
    if not errors:
        return
    print(f"\n⚠️  Errors ({len(errors)}):")
    for error in errors:
        print(f"  • {error}")


@app.callback()
def main(
    config: Path = typer.Option(Path("config.yaml"), "--config", "-c", help="Path to config.yaml"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Debug logging"),
) -> None:
    """News digest pipeline."""
    state["config"] = config
    state["verbose"] = verbose


@app.command()
def daily(
    target_date: Optional[datetime] = typer.Option(
        None, "--date", formats=["%Y-%m-%d"], help="Digest date (default: today, UTC)"
    ),
    force: bool = typer.Option(False, "--force", help="Regenerate even if a digest exists"),
    skip_fetch: bool = typer.Option(False, "--skip-fetch", help="Do not fetch sources"),
    publish: bool = typer.Option(False, "--publish", help="Publish to Telegram"),
) -> None:
    """Run the daily digest pipeline."""
    settings = _load("daily")
    digest_date: Optional[date] = target_date.date() if target_date else None

    _banner("📰 NEWS DIGEST - daily run")
    try:
        with SQLiteRepository(settings.storage.db_path) as repository:
            pipeline = build_pipeline(settings, repository)
            result = asyncio.run(pipeline.run_daily(
                target_date=digest_date,
                force_regenerate=force,
                skip_fetch=skip_fetch,
                publish=publish,
            ))
            digest = asyncio.run(repository.get_digest(result.date))
    except NewsDigestError as e:
        print(f"\n❌ {e}")
        raise typer.Exit(code=1)

    print(f"\n📅 Date: {result.date.isoformat()}")
    print(f"  • Sources processed: {result.sources_processed}")
    print(f"  • Items fetched: {result.items_fetched}")
    if result.digest_from_cache:
        print("  • Digest: served from cache")
    elif result.digest_generated:
        print(f"  • Digest: generated ({result.items_digested} items marked)")
    else:
        print("  • Digest: not generated")
    if publish:
        print(f"  • Published: {'✓' if result.published else '✗'}")

    if digest is not None:
        _banner("📝 DIGEST")
        print(digest.summary_md)

    _print_errors(result.errors)
    if not result.ok:
        raise typer.Exit(code=1)


@app.command()
def rolling(
    recent: Optional[int] = typer.Option(None, "--recent", help="Recent window in days"),
    missed: Optional[int] = typer.Option(None, "--missed", help="Missed window in days"),
    skip_fetch: bool = typer.Option(False, "--skip-fetch", help="Do not fetch sources"),
    publish: bool = typer.Option(False, "--publish", help="Publish to Telegram"),
    dry_run: bool = typer.Option(False, "--dry-run", help="Compose only, write nothing"),
) -> None:
    """Run the rolling-window digest pipeline."""
    settings = _load("rolling")
    recent_days = recent if recent is not None else settings.digest.recent_days
    missed_days = missed if missed is not None else settings.digest.missed_days

    _banner("📰 NEWS DIGEST - rolling run")
    print(f"  • Recent window: {recent_days} days")
    print(f"  • Missed window: {missed_days} days (importance: {', '.join(settings.digest.missed_importance)})")
    if dry_run:
        print("  • 🔍 Dry run: nothing will be saved")

    try:
        with SQLiteRepository(settings.storage.db_path) as repository:
            pipeline = build_pipeline(settings, repository)
            result = asyncio.run(pipeline.run_rolling(
                recent_days=recent_days,
                missed_days=missed_days,
                fetch_fresh=not skip_fetch,
                publish=publish and not dry_run,
                dry_run=dry_run,
            ))
    except NewsDigestError as e:
        print(f"\n❌ {e}")
        raise typer.Exit(code=1)

    print(f"\n📅 Date: {result.date.isoformat()}")
    print(f"  • Items fetched: {result.items_fetched}")
    print(f"  • Recent: {result.recent_count}, missed important: {result.missed_count}")
    print(f"  • Digest generated: {'✓' if result.digest_generated else '✗'}")
    if not dry_run:
        print(f"  • Items marked: {result.items_marked}")
    if publish and not dry_run:
        print(f"  • Published: {'✓' if result.published else '✗'}")

    if result.digest is not None:
        _banner("📝 DIGEST")
        print(result.digest.summary_md)

    _print_errors(result.errors)
    if not result.ok:
        raise typer.Exit(code=1)


async def _check(settings: Settings, repository: SQLiteRepository, source_id: Optional[str], dry: bool) -> int:
    if source_id:
        source = await repository.get_source(source_id)
        if source is None:
            print(f"❌ Unknown source: {source_id}")
            return 1
        sources = [source]
    else:
        sources = await repository.get_active_sources()

    dispatcher = build_dispatcher(settings)
    detector = ChangeDetector(dispatcher, repository)

    if not dry:
        report = await IngestionService(repository, detector).ingest(sources=sources)
        print(f"\n✓ Sources processed: {report.sources_processed}/{report.sources_total}")
        print(f"✓ New items: {report.items_fetched} (inserted: {report.items_inserted})")
        for item in report.items:
            print(f"  • [{item.source_name}] {item.title}\n    {item.url}")
        _print_errors(report.errors)
        return 0

    for source in sources:
        if not source.news_url:
            continue
        print(f"\n🔍 {source.name} ({source.id})")
        print(f"  └─ URL: {source.news_url}")
        print(f"  └─ Parser: {dispatcher.select(source.news_url).name}")
        print(f"  └─ Watermark: {source.last_parsed_url or '-'}")

        result = await detector.check(source)
        if result.error:
            print(f"  └─ ❌ {result.error}")
            continue
        if result.has_new_content:
            print(f"  └─ New items: {len(result.new_items)}")
            for item in result.new_items:
                print(f"     • {item.title}\n       {item.url}")
            continue

        print("  └─ No new content")
        if result.latest_url is None:
            name, items = await dispatcher.extract_with_fallback(source.news_url, source, EPOCH)
            print(f"  └─ Fallback parsers: {name or '-'} found {len(items)} items")
    return 0


@app.command()
def check(
    source_id: Optional[str] = typer.Argument(None, help="Source id (default: all active)"),
    dry: bool = typer.Option(False, "--dry", help="Report only, do not persist or move watermarks"),
) -> None:
    """Check sources for new content."""
    settings = _load("check")
    _banner("🔍 NEWS DIGEST - source check")
    try:
        with SQLiteRepository(settings.storage.db_path) as repository:
            code = asyncio.run(_check(settings, repository, source_id, dry))
    except NewsDigestError as e:
        print(f"\n❌ {e}")
        raise typer.Exit(code=1)
    if code:
        raise typer.Exit(code=code)


@app.command("seed-sources")
def seed_sources(
    file: Optional[Path] = typer.Argument(None, help="YAML file with a 'sources' list (default: storage.sources_file)"),
) -> None:
    """Insert or update sources from a YAML file."""
    settings = _load("seed")
    try:
        sources = load_sources(file or settings.storage.sources_file)
        with SQLiteRepository(settings.storage.db_path) as repository:
            asyncio.run(repository.upsert_sources(sources))
    except NewsDigestError as e:
        print(f"❌ {e}")
        raise typer.Exit(code=1)

    print(f"✓ Seeded {len(sources)} sources into {settings.storage.db_path}")
    for source in sources:
        status = "✓" if source.is_active else "✗"
        print(f"  {status} {source.name} ({source.id}): {source.news_url or '-'}")


@app.command()
def stats() -> None:
    """Show items waiting for a digest."""
    settings = _load("stats")
    try:
        with SQLiteRepository(settings.storage.db_path) as repository:
            data = asyncio.run(repository.get_unprocessed_stats())
            sources = asyncio.run(repository.get_all_sources())
    except NewsDigestError as e:
        print(f"❌ {e}")
        raise typer.Exit(code=1)

    active = sum(1 for source in sources if source.is_active)
    _banner("📊 UNPROCESSED ITEMS")
    print(f"  • Sources: {active} active / {len(sources)} total")
    print(f"  • Total: {data['total']}")
    print(f"  • With dates: {data['with_dates']}")
    print(f"  • Without dates: {data['without_dates']}")
    if data["by_source"]:
        print("\nBy source:")
        for source_id, count in sorted(data["by_source"].items(), key=lambda kv: -kv[1]):
            print(f"  • {source_id}: {count}")


if __name__ == "__main__":
    app()
