"""Load monitored sources from a YAML file."""

from pathlib import Path

import yaml

from news_digest.core import ConfigurationError, Source


SOURCE_FIELDS = ("id", "name", "site_url", "news_url", "lang", "category", "is_active")


def load_sources(path: Path) -> list[Source]:
    """Read a list of sources.

    Expected layout:

        sources:
          - id: claude
            name: Claude
            site_url: https://claude.ai
            news_url: https://www.anthropic.com/news
            category: llm
    """
    if not path.exists():
        raise ConfigurationError(f"Sources file not found: {path}")

    with open(path, "r", encoding="utf-8") as f:
        data = yaml.safe_load(f) or {}

    entries = data.get("sources", []) if isinstance(data, dict) else data
    if not isinstance(entries, list):
        raise ConfigurationError(f"Expected a list of sources in {path}")

    sources = []
    seen_ids: set[str] = set()
    for index, entry in enumerate(entries, start=1):
        if not isinstance(entry, dict):
            raise ConfigurationError(f"Source #{index} in {path} is not a mapping")
        try:
            source = Source(**{key: entry[key] for key in SOURCE_FIELDS if key in entry})
        except (TypeError, ValueError) as e:
            raise ConfigurationError(f"Invalid source #{index} in {path}: {e}") from e
        if source.id in seen_ids:
            raise ConfigurationError(f"Duplicate source id '{source.id}' in {path}")
        seen_ids.add(source.id)
        sources.append(source)

    return sources
