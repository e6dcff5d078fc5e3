"""SQLite storage for sources, news items and digests.

Database Schema:
    sources table:
        - id (TEXT, PK): stable source identifier, e.g. 'claude'
        - name, site_url, news_url, lang, category, is_active
        - last_parsed_url / last_parsed_at: change-detection watermark

    news_items table:
        - id (INTEGER, PK)
        - fingerprint (TEXT, UNIQUE): dedup key over url and title
        - published_at (TEXT, nullable), created_at (TEXT): UTC timestamps
        - importance (TEXT, nullable): 'high' / 'medium' / 'low'
        - digest_date (TEXT, nullable): set once when the item enters a digest

    digests table:
        - date (TEXT, UNIQUE): one digest per calendar date
        - sources_list / item_ids: JSON arrays

Timestamps are stored as fixed-width UTC strings so that SQL comparisons
order them chronologically.
"""

import json
import logging
import sqlite3
from contextlib import contextmanager
from datetime import date, datetime, timezone
from pathlib import Path
from typing import Any, Iterator, Optional

from news_digest.core import (
    Digest,
    Importance,
    Repository,
    Source,
    StorageError,
    StoredItem,
)


logger = logging.getLogger(__name__)

TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M:%S.%f"


def _ts(value: Optional[datetime]) -> Optional[str]:
    if value is None:
        return None
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).strftime(TIMESTAMP_FORMAT)


def _parse_ts(value: Optional[str]) -> Optional[datetime]:
    if not value:
        return None
    return datetime.strptime(value, TIMESTAMP_FORMAT).replace(tzinfo=timezone.utc)


def _parse_date(value: Optional[str]) -> Optional[date]:
    if not value:
        return None
    return date.fromisoformat(value)


class SQLiteRepository(Repository):
    """Repository backed by a single SQLite file.

    Example:
        >>> with SQLiteRepository("news_digest.db") as repo:
        ...     sources = await repo.get_active_sources()
    """

    SCHEMA = """
    CREATE TABLE IF NOT EXISTS sources (
        id TEXT PRIMARY KEY,
        name TEXT NOT NULL,
        site_url TEXT,
        news_url TEXT,
        lang TEXT DEFAULT 'en',
        category TEXT,
        is_active INTEGER DEFAULT 1,
        last_parsed_url TEXT,
        last_parsed_at TEXT
    );

    CREATE TABLE IF NOT EXISTS news_items (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        source_id TEXT NOT NULL REFERENCES sources(id) ON DELETE CASCADE,
        title TEXT NOT NULL,
        url TEXT NOT NULL,
        fingerprint TEXT NOT NULL UNIQUE,
        published_at TEXT,
        raw_content TEXT,
        snippet TEXT,
        lang TEXT,
        importance TEXT,
        digest_date TEXT,
        created_at TEXT NOT NULL
    );

    CREATE INDEX IF NOT EXISTS idx_items_source ON news_items(source_id);
    CREATE INDEX IF NOT EXISTS idx_items_published ON news_items(published_at);
    CREATE INDEX IF NOT EXISTS idx_items_created ON news_items(created_at);
    CREATE INDEX IF NOT EXISTS idx_items_digest_date ON news_items(digest_date);

    CREATE TABLE IF NOT EXISTS digests (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        date TEXT NOT NULL UNIQUE,
        summary_md TEXT NOT NULL,
        summary_short TEXT,
        summary_translated TEXT,
        sources_list TEXT DEFAULT '[]',
        item_ids TEXT DEFAULT '[]',
        created_at TEXT NOT NULL
    );
    """

    ITEM_SELECT = """
        SELECT news_items.*, sources.name AS source_name
        FROM news_items
        LEFT JOIN sources ON sources.id = news_items.source_id
    """

    path: Path
    conn: sqlite3.Connection

    def __init__(self, path: Path | str):
        self.path = Path(path)
        try:
            self.conn = sqlite3.connect(str(self.path))
            self.conn.row_factory = sqlite3.Row
            if str(self.path) != ":memory:":
                self.conn.execute("PRAGMA journal_mode=WAL")
            self.conn.execute("PRAGMA foreign_keys=ON")
            self.conn.executescript(self.SCHEMA)
            self.conn.commit()
        except sqlite3.Error as e:
            raise StorageError(f"Cannot open database {self.path}: {e}") from e
        logger.debug("Database initialized | path=%s", self.path)

    @contextmanager
    def _guard(self, operation: str) -> Iterator[None]:
        """Translate sqlite3 errors into StorageError, rolling back writes."""
        try:
            yield
        except sqlite3.Error as e:
            self.conn.rollback()
            logger.error("Storage operation failed | op=%s error=%s", operation, e)
            raise StorageError(f"{operation} failed: {e}") from e

    def _row_to_source(self, row: sqlite3.Row) -> Source:
        return Source(
            id=row["id"],
            name=row["name"],
            site_url=row["site_url"],
            news_url=row["news_url"],
            lang=row["lang"] or "en",
            category=row["category"],
            is_active=bool(row["is_active"]),
            last_parsed_url=row["last_parsed_url"],
            last_parsed_at=_parse_ts(row["last_parsed_at"]),
        )

    def _row_to_item(self, row: sqlite3.Row) -> StoredItem:
        return StoredItem(
            id=row["id"],
            source_id=row["source_id"],
            title=row["title"],
            url=row["url"],
            fingerprint=row["fingerprint"],
            published_at=_parse_ts(row["published_at"]),
            raw_content=row["raw_content"] or "",
            snippet=row["snippet"] or "",
            lang=row["lang"],
            importance=Importance(row["importance"]) if row["importance"] else None,
            digest_date=_parse_date(row["digest_date"]),
            created_at=_parse_ts(row["created_at"]),
            source_name=row["source_name"],
        )

    def _row_to_digest(self, row: sqlite3.Row) -> Digest:
        return Digest(
            date=date.fromisoformat(row["date"]),
            summary_md=row["summary_md"],
            summary_short=row["summary_short"] or "",
            summary_translated=row["summary_translated"],
            sources_list=json.loads(row["sources_list"] or "[]"),
            item_ids=json.loads(row["item_ids"] or "[]"),
            created_at=_parse_ts(row["created_at"]),
        )

    def _items(self, where: str, params: list[Any], operation: str) -> list[StoredItem]:
        with self._guard(operation):
            cursor = self.conn.execute(f"{self.ITEM_SELECT} {where}", params)
            return [self._row_to_item(row) for row in cursor.fetchall()]

    # Sources

    async def get_active_sources(self) -> list[Source]:
        with self._guard("get_active_sources"):
            cursor = self.conn.execute(
                "SELECT * FROM sources WHERE is_active = 1 ORDER BY name ASC"
            )
            return [self._row_to_source(row) for row in cursor.fetchall()]

    async def get_all_sources(self) -> list[Source]:
        with self._guard("get_all_sources"):
            cursor = self.conn.execute("SELECT * FROM sources ORDER BY name ASC")
            return [self._row_to_source(row) for row in cursor.fetchall()]

    async def get_source(self, source_id: str) -> Optional[Source]:
        with self._guard("get_source"):
            row = self.conn.execute(
                "SELECT * FROM sources WHERE id = ?", (source_id,)
            ).fetchone()
        return self._row_to_source(row) if row else None

    async def upsert_sources(self, sources: list[Source]) -> None:
        with self._guard("upsert_sources"):
            self.conn.executemany(
                """
                INSERT INTO sources (id, name, site_url, news_url, lang, category, is_active)
                VALUES (?, ?, ?, ?, ?, ?, ?)
                ON CONFLICT(id) DO UPDATE SET
                    name = excluded.name,
                    site_url = excluded.site_url,
                    news_url = excluded.news_url,
                    lang = excluded.lang,
                    category = excluded.category,
                    is_active = excluded.is_active
                """,
                [
                    (s.id, s.name, s.site_url, s.news_url, s.lang, s.category, int(s.is_active))
                    for s in sources
                ],
            )
            self.conn.commit()
        logger.info("Sources upserted | count=%d", len(sources))

    async def update_watermark(
        self, source_id: str, last_parsed_url: str, last_parsed_at: datetime
    ) -> None:
        with self._guard("update_watermark"):
            self.conn.execute(
                "UPDATE sources SET last_parsed_url = ?, last_parsed_at = ? WHERE id = ?",
                (last_parsed_url, _ts(last_parsed_at), source_id),
            )
            self.conn.commit()

    # Items

    async def insert_items(self, items: list[StoredItem]) -> int:
        if not items:
            return 0

        now = datetime.now(timezone.utc)
        with self._guard("insert_items"):
            before = self.conn.total_changes
            self.conn.executemany(
                """
                INSERT INTO news_items (
                    source_id, title, url, fingerprint, published_at,
                    raw_content, snippet, lang, importance, created_at
                ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                ON CONFLICT(fingerprint) DO NOTHING
                """,
                [
                    (
                        item.source_id,
                        item.title,
                        item.url,
                        item.fingerprint,
                        _ts(item.published_at),
                        item.raw_content,
                        item.snippet,
                        item.lang,
                        item.importance.value if item.importance else None,
                        _ts(item.created_at or now),
                    )
                    for item in items
                ],
            )
            inserted = self.conn.total_changes - before
            self.conn.commit()

        logger.info("Items inserted | offered=%d inserted=%d", len(items), inserted)
        return inserted

    async def get_undigested_items(
        self, since: datetime, until: datetime, limit: int = 50
    ) -> list[StoredItem]:
        return self._items(
            """
            WHERE news_items.digest_date IS NULL
              AND news_items.created_at >= ? AND news_items.created_at <= ?
            ORDER BY news_items.created_at DESC
            LIMIT ?
            """,
            [_ts(since), _ts(until), limit],
            "get_undigested_items",
        )

    async def get_items_digested_on(self, digest_date: date) -> list[StoredItem]:
        return self._items(
            "WHERE news_items.digest_date = ? ORDER BY news_items.created_at DESC",
            [digest_date.isoformat()],
            "get_items_digested_on",
        )

    async def get_recent_undigested(
        self, since: datetime, include_undated: bool = True, undated_limit: int = 20
    ) -> list[StoredItem]:
        items = self._items(
            """
            WHERE news_items.digest_date IS NULL AND news_items.published_at >= ?
            ORDER BY news_items.published_at DESC
            """,
            [_ts(since)],
            "get_recent_undigested",
        )
        if include_undated and undated_limit > 0:
            items += self._items(
                """
                WHERE news_items.digest_date IS NULL AND news_items.published_at IS NULL
                ORDER BY news_items.created_at DESC
                LIMIT ?
                """,
                [undated_limit],
                "get_recent_undigested",
            )
        return items

    async def get_missed_important(
        self, since: datetime, until: datetime, importance: list[Importance]
    ) -> list[StoredItem]:
        if not importance:
            return []
        placeholders = ",".join("?" * len(importance))
        return self._items(
            f"""
            WHERE news_items.digest_date IS NULL
              AND news_items.published_at >= ? AND news_items.published_at < ?
              AND news_items.importance IN ({placeholders})
            ORDER BY news_items.published_at DESC
            """,
            [_ts(since), _ts(until), *[Importance(i).value for i in importance]],
            "get_missed_important",
        )

    async def mark_digested(self, item_ids: list[int], digest_date: date) -> int:
        if not item_ids:
            return 0
        placeholders = ",".join("?" * len(item_ids))
        with self._guard("mark_digested"):
            cursor = self.conn.execute(
                f"""
                UPDATE news_items SET digest_date = ?
                WHERE id IN ({placeholders}) AND digest_date IS NULL
                """,
                [digest_date.isoformat(), *item_ids],
            )
            self.conn.commit()
        logger.info("Items marked digested | date=%s count=%d", digest_date, cursor.rowcount)
        return cursor.rowcount

    async def set_importance(self, item_id: int, importance: Importance) -> None:
        with self._guard("set_importance"):
            self.conn.execute(
                "UPDATE news_items SET importance = ? WHERE id = ?",
                (Importance(importance).value, item_id),
            )
            self.conn.commit()

    # Digests

    async def get_digest(self, digest_date: date) -> Optional[Digest]:
        with self._guard("get_digest"):
            row = self.conn.execute(
                "SELECT * FROM digests WHERE date = ?", (digest_date.isoformat(),)
            ).fetchone()
        return self._row_to_digest(row) if row else None

    async def save_digest(self, digest: Digest) -> None:
        created_at = digest.created_at or datetime.now(timezone.utc)
        with self._guard("save_digest"):
            self.conn.execute(
                """
                INSERT INTO digests (
                    date, summary_md, summary_short, summary_translated,
                    sources_list, item_ids, created_at
                ) VALUES (?, ?, ?, ?, ?, ?, ?)
                ON CONFLICT(date) DO UPDATE SET
                    summary_md = excluded.summary_md,
                    summary_short = excluded.summary_short,
                    summary_translated = excluded.summary_translated,
                    sources_list = excluded.sources_list,
                    item_ids = excluded.item_ids,
                    created_at = excluded.created_at
                """,
                (
                    digest.date.isoformat(),
                    digest.summary_md,
                    digest.summary_short,
                    digest.summary_translated,
                    json.dumps(digest.sources_list, ensure_ascii=False),
                    json.dumps(digest.item_ids),
                    _ts(created_at),
                ),
            )
            self.conn.commit()
        logger.info("Digest saved | date=%s items=%d", digest.date, len(digest.item_ids))

    async def get_unprocessed_stats(self) -> dict:
        with self._guard("get_unprocessed_stats"):
            rows = self.conn.execute(
                "SELECT source_id, published_at FROM news_items WHERE digest_date IS NULL"
            ).fetchall()

        by_source: dict[str, int] = {}
        for row in rows:
            by_source[row["source_id"]] = by_source.get(row["source_id"], 0) + 1

        with_dates = sum(1 for row in rows if row["published_at"])
        return {
            "total": len(rows),
            "with_dates": with_dates,
            "without_dates": len(rows) - with_dates,
            "by_source": by_source,
        }

    def close(self) -> None:
        self.conn.close()

    def __enter__(self) -> "SQLiteRepository":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()
