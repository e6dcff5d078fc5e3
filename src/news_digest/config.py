"""Configuration management."""

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

import yaml


DIGEST_SYSTEM_PROMPT = """You are an AI news curator specializing in AI tools and technologies.
Your task is to create a daily digest of AI news in a clear, concise, and engaging format.

Guidelines:
- Write in a professional but accessible tone
- Group news by tool/category when appropriate
- Highlight the most important updates first
- Use markdown formatting for better readability
- Include emojis sparingly to make the digest more engaging
- Focus on what's new and why it matters
- Keep the summary informative but not overwhelming

Respond with a JSON object with two string fields:
- "summary_md": the full markdown digest (brief intro, news items with short descriptions, short takeaway)
- "summary_short": 2-3 sentences max, suitable for a notification"""

DIGEST_USER_PROMPT = """Please create an AI news digest for {date}.

Here are the news items:

{news_section}

Return the JSON object only."""

TRANSLATION_SYSTEM_PROMPT = """You are a professional translator of technology news.
Translate the markdown text into {language}. Keep the markdown structure, links,
product names and emojis unchanged. Return only the translated text."""


@dataclass
class FetchConfig:
    """HTTP fetch settings."""
    timeout: float = 15.0
    max_retries: int = 2
    backoff_base: float = 1.0
    proxy_url: Optional[str] = None
    proxy_enabled: bool = False


@dataclass
class LLMConfig:
    """Text-generation vendor settings."""
    provider: str = "claude"
    claude_model: str = "claude-sonnet-4-20250514"
    openai_model: str = "gpt-4o-mini"
    openai_base_url: str = "https://api.openai.com/v1"
    max_tokens: int = 2000
    temperature: float = 0.7
    max_retries: int = 5
    initial_retry_delay: float = 2.0
    request_timeout: float = 120.0


@dataclass
class TelegramConfig:
    """Telegram channel settings."""
    parse_mode: str = "Markdown"
    max_message_length: int = 4096
    chunk_delay: float = 0.5
    timeout: float = 30.0


@dataclass
class DigestConfig:
    """Digest window and composition settings."""
    daily_lookback_days: int = 1
    max_items: int = 50
    recent_days: int = 3
    missed_days: int = 7
    missed_importance: list = field(default_factory=lambda: ["high"])
    include_undated: bool = True
    undated_limit: int = 20
    secondary_language: Optional[str] = None
    translation_retries: int = 2
    publish_translated: bool = True


@dataclass
class StorageConfig:
    """Storage settings."""
    db_path: Path = Path("news_digest.db")
    sources_file: Path = Path("sources.yaml")


@dataclass
class LoggingConfig:
    """Logging settings."""
    level: str = "INFO"
    format: str = "text"


@dataclass
class PromptsConfig:
    """Prompts for text generation."""
    digest: dict = field(default_factory=lambda: {
        "system": DIGEST_SYSTEM_PROMPT,
        "user": DIGEST_USER_PROMPT,
    })
    translation: dict = field(default_factory=lambda: {
        "system": TRANSLATION_SYSTEM_PROMPT,
    })


@dataclass
class Settings:
    """Application settings."""

    # Secrets (from environment only)
    anthropic_api_key: str = ""
    openai_api_key: str = ""
    telegram_bot_token: str = ""
    telegram_channel_id: str = ""

    fetch: FetchConfig = field(default_factory=FetchConfig)
    llm: LLMConfig = field(default_factory=LLMConfig)
    telegram: TelegramConfig = field(default_factory=TelegramConfig)
    digest: DigestConfig = field(default_factory=DigestConfig)
    storage: StorageConfig = field(default_factory=StorageConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)
    prompts: PromptsConfig = field(default_factory=PromptsConfig)

    @property
    def proxy_url(self) -> Optional[str]:
        """Proxy for fetches, only when enabled."""
        if self.fetch.proxy_enabled and self.fetch.proxy_url:
            return self.fetch.proxy_url
        return None

    @property
    def telegram_configured(self) -> bool:
        return bool(self.telegram_bot_token and self.telegram_channel_id)


def _env_bool(value: str) -> bool:
    return value.strip().lower() in ("1", "true", "yes", "on")


def load_config(config_path: Path = Path("config.yaml")) -> dict:
    """Load configuration from YAML file."""
    if not config_path.exists():
        return {}

    with open(config_path, "r", encoding="utf-8") as f:
        return yaml.safe_load(f) or {}


def get_settings(config_path: Path = Path("config.yaml")) -> Settings:
    """Get application settings from YAML config and environment."""
    config = load_config(config_path)

    settings = Settings(
        anthropic_api_key=os.getenv("ANTHROPIC_API_KEY", ""),
        openai_api_key=os.getenv("OPENAI_API_KEY", ""),
        telegram_bot_token=os.getenv("TELEGRAM_BOT_TOKEN", ""),
        telegram_channel_id=os.getenv("TELEGRAM_CHANNEL_ID", ""),
    )

    # Apply YAML config
    for section in ("fetch", "llm", "telegram", "digest", "logging"):
        if section in config:
            target = getattr(settings, section)
            for key, value in (config[section] or {}).items():
                setattr(target, key, value)

    if "storage" in config:
        for key, value in (config["storage"] or {}).items():
            setattr(settings.storage, key, Path(value))

    if "prompts" in config:
        prompts = PromptsConfig()
        for key, value in (config["prompts"] or {}).items():
            getattr(prompts, key).update(value)
        settings.prompts = prompts

    # Environment overrides
    if os.getenv("PROXY_URL"):
        settings.fetch.proxy_url = os.getenv("PROXY_URL")
    if os.getenv("PROXY_ENABLED"):
        settings.fetch.proxy_enabled = _env_bool(os.getenv("PROXY_ENABLED", ""))
    if os.getenv("FETCH_TIMEOUT"):
        settings.fetch.timeout = float(os.getenv("FETCH_TIMEOUT", "15"))
    if os.getenv("FETCH_RETRY_COUNT"):
        settings.fetch.max_retries = int(os.getenv("FETCH_RETRY_COUNT", "2"))
    if os.getenv("LLM_PROVIDER"):
        settings.llm.provider = os.getenv("LLM_PROVIDER", "claude")
    if os.getenv("NEWS_DIGEST_DB"):
        settings.storage.db_path = Path(os.getenv("NEWS_DIGEST_DB", ""))

    return settings
