"""Storage adapters."""

from news_digest.adapters.storage.source_loader import load_sources
from news_digest.adapters.storage.sqlite_repository import SQLiteRepository

__all__ = ["SQLiteRepository", "load_sources"]
