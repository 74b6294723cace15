"""
Base class for source adapters.

An adapter turns one upstream endpoint into normalized Records. The public
fetch() is an isolation boundary: retrieval, parse and timeout failures are
caught here, logged, and returned as an empty SourceBatch with `error` set.
One broken source must never abort an ingestion run.
"""

import asyncio
import logging
import time
from abc import ABC, abstractmethod
from calendar import timegm
from datetime import datetime, timezone
from email.utils import parsedate_to_datetime
from typing import Any, List, Optional

import httpx

from pulse.config import Settings, get_settings
from pulse.news.categorizer import classify
from pulse.news.fingerprint import canonical_url, clean_text, clean_title, fingerprint
from pulse.schemas import (
    HealthStatus, NewsSource, Record, SourceBatch, SourceHealth, SourceHealthState,
)

logger = logging.getLogger(__name__)


def parse_published(value: Any) -> Optional[datetime]:
    """Best-effort publication time → aware UTC datetime, or None.

    Accepts datetimes, epoch seconds, time.struct_time (feedparser's
    *_parsed fields, always UTC), ISO 8601 and RFC 822 strings.
    """
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value if value.tzinfo else value.replace(tzinfo=timezone.utc)
    if isinstance(value, time.struct_time):
        return datetime.fromtimestamp(timegm(value), tz=timezone.utc)
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        try:
            return datetime.fromtimestamp(value, tz=timezone.utc)
        except (OverflowError, OSError, ValueError):
            return None

    text = str(value).strip()
    try:
        parsed = datetime.fromisoformat(text.replace("Z", "+00:00"))
    except ValueError:
        try:
            parsed = parsedate_to_datetime(text)
        except (TypeError, ValueError, IndexError):
            return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


class SourceAdapter(ABC):
    """Abstract base for source adapters."""

    def __init__(self, source: NewsSource, settings: Optional[Settings] = None):
        self.source = source
        self.settings = settings or get_settings()
        self.health = SourceHealthState()

    @property
    def source_id(self) -> str:
        return self.source.id

    @property
    def name(self) -> str:
        return self.source.name

    @property
    @abstractmethod
    def timeout(self) -> float:
        """Total time budget for one fetch of this source, in seconds."""

    @abstractmethod
    async def _fetch_records(self, client: httpx.AsyncClient) -> List[Record]:
        """Retrieve and normalize records. May raise; fetch() contains it."""

    @abstractmethod
    async def _probe(self, client: httpx.AsyncClient, result: SourceHealth) -> SourceHealth:
        """Minimal reachability check used by audit()."""

    async def fetch(self, client: httpx.AsyncClient) -> SourceBatch:
        """Fetch this source. Never raises (except on cancellation)."""
        start = time.monotonic()
        error: Optional[str] = None
        records: List[Record] = []

        try:
            records = await asyncio.wait_for(self._fetch_records(client), timeout=self.timeout)
        except asyncio.TimeoutError:
            error = f"timeout after {self.timeout:.0f}s"
            logger.warning(f"[TIMEOUT] {self.name}: fetch exceeded {self.timeout:.0f}s, skipping")
        except Exception as e:
            error = f"{type(e).__name__}: {e}"
            logger.warning(f"[FAIL] {self.name}: {error}")

        elapsed_ms = int((time.monotonic() - start) * 1000)
        self._track_health(len(records), error)
        if error is None:
            logger.info(f"[OK] {self.name}: {len(records)} records ({elapsed_ms}ms)")

        return SourceBatch(
            source_id=self.source_id,
            source_name=self.name,
            records=records,
            error=error,
            elapsed_ms=elapsed_ms,
        )

    async def audit(self, client: httpx.AsyncClient) -> SourceHealth:
        """Dry-run reachability check; classifies the source's current state."""
        result = SourceHealth(source_id=self.source_id, name=self.name)
        start = time.monotonic()
        try:
            result = await asyncio.wait_for(self._probe(client, result), timeout=self.timeout)
        except asyncio.TimeoutError:
            result.status = HealthStatus.BROKEN
            result.error = f"timeout after {self.timeout:.0f}s"
        except Exception as e:
            result.status = HealthStatus.BROKEN
            result.error = str(e)
        result.response_time_ms = int((time.monotonic() - start) * 1000)

        if result.status == HealthStatus.OK and result.response_time_ms > self.settings.slow_source_ms:
            result.status = HealthStatus.SLOW
        return result

    def _track_health(self, count: int, error: Optional[str]) -> None:
        if error is None:
            self.health.last_success = datetime.now(timezone.utc)
            self.health.consecutive_failures = 0
            self.health.records_fetched = count
        else:
            self.health.consecutive_failures += 1
            self.health.last_error = error

    def _build_record(
        self,
        title: Optional[str],
        url: Optional[str],
        description: Optional[str] = None,
        image_url: Optional[str] = None,
        published_at: Any = None,
        classify_description: bool = True,
    ) -> Optional[Record]:
        """Normalize raw fields into a Record; None when title or url is missing."""
        title = clean_title(title)
        url = canonical_url(url)
        if not title or not url:
            return None

        description = clean_text(description, self.settings.description_max_chars)
        now = datetime.now(timezone.utc)
        category = classify(title, description if classify_description else "")

        return Record(
            id=fingerprint(url),
            title=title,
            description=description or title,
            url=url,
            image_url=image_url or None,
            source_name=self.name,
            category=category,
            published_at=parse_published(published_at) or now,
            ingested_at=now,
        )
