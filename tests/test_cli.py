"""Tests for the command line interface."""

import logging
from pathlib import Path

import pytest
from typer.testing import CliRunner

from news_digest.cli import app


runner = CliRunner()


@pytest.fixture
def config_file(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Config pointing storage at a temp directory."""
    for name in ("NEWS_DIGEST_DB", "LLM_PROVIDER", "TELEGRAM_BOT_TOKEN", "TELEGRAM_CHANNEL_ID"):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("ANTHROPIC_API_KEY", "test-key")

    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level

    path = tmp_path / "config.yaml"
    path.write_text(
        f"storage:\n  db_path: {tmp_path / 'news.db'}\nlogging:\n  level: WARNING\n",
        encoding="utf-8",
    )
    yield path

    root.handlers[:] = handlers
    root.setLevel(level)


@pytest.fixture
def sources_file(tmp_path: Path) -> Path:
    path = tmp_path / "sources.yaml"
    path.write_text(
        """
sources:
  - id: claude
    name: Claude
    news_url: https://www.anthropic.com/news
  - id: dalle
    name: DALL-E
    is_active: false
""",
        encoding="utf-8",
    )
    return path


def test_seed_sources_and_stats(config_file: Path, sources_file: Path) -> None:
    """Test seeding sources then reading stats."""
    result = runner.invoke(app, ["--config", str(config_file), "seed-sources", str(sources_file)])

    assert result.exit_code == 0
    assert "Seeded 2 sources" in result.output
    assert "Claude (claude)" in result.output

    result = runner.invoke(app, ["--config", str(config_file), "stats"])

    assert result.exit_code == 0
    assert "Sources: 1 active / 2 total" in result.output
    assert "Total: 0" in result.output


def test_seed_sources_invalid_file(config_file: Path, tmp_path: Path) -> None:
    result = runner.invoke(app, ["--config", str(config_file), "seed-sources", str(tmp_path / "absent.yaml")])

    assert result.exit_code == 1
    assert "Sources file not found" in result.output


def test_daily_without_items(config_file: Path) -> None:
    """Test a daily run with nothing to digest succeeds."""
    result = runner.invoke(app, ["--config", str(config_file), "daily", "--skip-fetch", "--date", "2024-05-01"])

    assert result.exit_code == 0
    assert "Date: 2024-05-01" in result.output
    assert "Digest: not generated" in result.output


def test_check_unknown_source(config_file: Path) -> None:
    result = runner.invoke(app, ["--config", str(config_file), "check", "nope"])

    assert result.exit_code == 1
    assert "Unknown source: nope" in result.output
