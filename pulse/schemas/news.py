"""
News record and source data models.

These models represent the raw material of the pipeline: normalized records
fetched from the configured sources, and the source descriptors themselves.

Hierarchy: NewsSource → Record → (merged into the RankedStore collection)
"""

from datetime import datetime, timezone
from typing import Optional

from pydantic import BaseModel, Field, field_validator

from .base import Category, SourceType


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class NewsSource(BaseModel):
    """News source configuration."""
    id: str
    name: str
    source_type: SourceType = SourceType.RSS

    # Connection
    url: str = ""
    feed_url: Optional[str] = None
    api_endpoint: Optional[str] = None

    language: Optional[str] = "en"


class Record(BaseModel):
    """
    One normalized item from any source.

    `id` is the fingerprint of `url` and is the identity key inside the
    collection. `published_at` is best-effort from source metadata and falls
    back to ingestion time; `ingested_at` is always stamped by the pipeline.
    Both are timezone-aware UTC.
    """
    id: str
    title: str
    description: str = ""
    url: str
    image_url: Optional[str] = None
    source_name: str
    category: Category = Category.GENERAL

    published_at: datetime = Field(default_factory=_utcnow)
    ingested_at: datetime = Field(default_factory=_utcnow)

    @field_validator('title', 'url', mode='before')
    @classmethod
    def require_non_blank(cls, v):
        if v is None or not str(v).strip():
            raise ValueError("must be non-empty")
        return str(v).strip()

    @field_validator('published_at', 'ingested_at', mode='after')
    @classmethod
    def ensure_utc(cls, v: datetime) -> datetime:
        """Naive datetimes are taken to be UTC."""
        if v.tzinfo is None:
            return v.replace(tzinfo=timezone.utc)
        return v.astimezone(timezone.utc)
