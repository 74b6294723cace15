"""
Configuration management for the Pulse AI news aggregator.
Runtime knobs come from environment variables (or .env); the source catalogue
and keyword lists are static module-level configuration.
"""

from functools import lru_cache
from typing import List

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # ── Collection ──
    # Hard cap on the ranked collection; oldest-by-publication evicted first.
    max_records: int = Field(default=500, alias="MAX_RECORDS")

    # ── Feed adapter ──
    feed_timeout: float = Field(default=10.0, alias="FEED_TIMEOUT")
    feed_max_items: int = Field(default=20, alias="FEED_MAX_ITEMS")
    description_max_chars: int = Field(default=300, alias="DESCRIPTION_MAX_CHARS")
    # Drop entries whose detected language differs from the source language.
    language_filter: bool = Field(default=False, alias="LANGUAGE_FILTER")

    # ── Ranked-list adapter (Hacker News) ──
    hn_list_timeout: float = Field(default=8.0, alias="HN_LIST_TIMEOUT")
    hn_item_timeout: float = Field(default=5.0, alias="HN_ITEM_TIMEOUT")
    hn_max_items: int = Field(default=30, alias="HN_MAX_ITEMS")
    hn_max_concurrent: int = Field(default=30, alias="HN_MAX_CONCURRENT")

    # ── Aggregator ──
    # Outer per-adapter budget; adapters enforce their own tighter timeouts.
    source_timeout: float = Field(default=30.0, alias="SOURCE_TIMEOUT")
    # Audit marks a reachable source "slow" above this response time.
    slow_source_ms: int = Field(default=8000, alias="SLOW_SOURCE_MS")
    active_sources: str = Field(default="", alias="ACTIVE_SOURCES")

    # ── Query boundary ──
    page_size_default: int = Field(default=20, alias="PAGE_SIZE_DEFAULT")
    page_size_max: int = Field(default=50, alias="PAGE_SIZE_MAX")
    search_min_chars: int = Field(default=2, alias="SEARCH_MIN_CHARS")
    search_max_results: int = Field(default=30, alias="SEARCH_MAX_RESULTS")
    trending_window_hours: int = Field(default=48, alias="TRENDING_WINDOW_HOURS")
    trending_limit: int = Field(default=20, alias="TRENDING_LIMIT")

    # ── Persistence ──
    # "sqlite" mirrors the collection via SQLAlchemy so separate CLI runs share it;
    # "memory" keeps it in-process only.
    persistence_backend: str = Field(default="sqlite", alias="PERSISTENCE_BACKEND")
    database_url: str = Field(default="sqlite:///./pulse.db", alias="DATABASE_URL")

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        extra = "ignore"
        populate_by_name = True

    @field_validator("page_size_max")
    @classmethod
    def cap_page_size_max(cls, v: int) -> int:
        """Pages never exceed 50 records, whatever the environment says."""
        return min(max(1, v), MAX_PAGE_SIZE)

    def get_active_source_ids(self) -> List[str]:
        """Source ids to ingest: ACTIVE_SOURCES if set, else the defaults."""
        ids = [s.strip() for s in self.active_sources.split(",") if s.strip()]
        return ids or list(DEFAULT_ACTIVE_SOURCES)


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


# Browser-like User-Agent; several publishers reject the default httpx agent.
USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
)

# Hard ceiling for PAGE_SIZE_MAX.
MAX_PAGE_SIZE = 50

FEED_ACCEPT = "application/rss+xml, application/xml, text/xml"

HN_API_BASE = "https://hacker-news.firebaseio.com/v0"

# Title allow-list for the ranked-list adapter (case-insensitive substring match).
AI_KEYWORDS = [
    "ai", "artificial intelligence", "machine learning", "llm", "gpt",
    "openai", "anthropic", "deepmind", "neural", "transformer",
    "diffusion", "chatbot",
]

NEWS_SOURCES = {
    # ─────────────────────────────────────────────────────────────────────────
    # Syndication feeds
    # ─────────────────────────────────────────────────────────────────────────
    "techcrunch_ai": {
        "id": "techcrunch_ai",
        "name": "TechCrunch AI",
        "source_type": "rss",
        "url": "https://techcrunch.com",
        "feed_url": "https://techcrunch.com/category/artificial-intelligence/feed/",
        "language": "en",
    },
    "verge_ai": {
        "id": "verge_ai",
        "name": "The Verge AI",
        "source_type": "rss",
        "url": "https://www.theverge.com",
        "feed_url": "https://www.theverge.com/rss/ai-artificial-intelligence/index.xml",
        "language": "en",
    },
    "venturebeat_ai": {
        "id": "venturebeat_ai",
        "name": "VentureBeat AI",
        "source_type": "rss",
        "url": "https://venturebeat.com",
        "feed_url": "https://venturebeat.com/category/ai/feed/",
        "language": "en",
    },
    "mit_tech_review": {
        "id": "mit_tech_review",
        "name": "MIT Tech Review",
        "source_type": "rss",
        "url": "https://www.technologyreview.com",
        "feed_url": "https://www.technologyreview.com/feed/",
        "language": "en",
    },
    "ars_technica_ai": {
        "id": "ars_technica_ai",
        "name": "Ars Technica AI",
        "source_type": "rss",
        "url": "https://arstechnica.com",
        "feed_url": "https://feeds.arstechnica.com/arstechnica/technology-lab",
        "language": "en",
    },
    "wired_ai": {
        "id": "wired_ai",
        "name": "Wired AI",
        "source_type": "rss",
        "url": "https://www.wired.com",
        "feed_url": "https://www.wired.com/feed/tag/ai/latest/rss",
        "language": "en",
    },
    # ─────────────────────────────────────────────────────────────────────────
    # Ranked lists (id list + per-item resolution)
    # ─────────────────────────────────────────────────────────────────────────
    "hacker_news": {
        "id": "hacker_news",
        "name": "Hacker News",
        "source_type": "ranked_list",
        "url": "https://news.ycombinator.com",
        "api_endpoint": HN_API_BASE,
        "language": "en",
    },
}

DEFAULT_ACTIVE_SOURCES = [
    "techcrunch_ai", "verge_ai", "venturebeat_ai",
    "mit_tech_review", "ars_technica_ai", "wired_ai",
    "hacker_news",
]
