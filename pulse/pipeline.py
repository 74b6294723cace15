"""
Service boundary for the ingestion core.

PulseService wires the aggregator to the ranked store and exposes the four
boundary operations (trigger, list, search, trending) plus a source audit.
Transports (CLI, HTTP, schedulers) call these and only format the results.
"""

import asyncio
import logging
from datetime import datetime, timezone
from typing import List, Optional

from pulse.config import Settings, get_settings
from pulse.database import get_persistence
from pulse.news.aggregator import Aggregator, build_adapters
from pulse.news.store import RankedStore
from pulse.schemas import (
    IngestionResult, RecordPage, SearchResult, SourceHealth, TrendEntry,
)

logger = logging.getLogger(__name__)


class PulseService:
    """Ingestion trigger + read-side queries over one RankedStore."""

    def __init__(self, store: RankedStore, aggregator: Aggregator, settings: Optional[Settings] = None):
        self.store = store
        self.aggregator = aggregator
        self.settings = settings or get_settings()
        self._run_lock = asyncio.Lock()

    @classmethod
    def from_settings(cls, settings: Optional[Settings] = None) -> "PulseService":
        """Default wiring: configured persistence, active sources, loaded store."""
        settings = settings or get_settings()
        store = RankedStore(
            persistence=get_persistence(settings),
            max_records=settings.max_records,
            max_page_size=settings.page_size_max,
            min_query_chars=settings.search_min_chars,
            trending_window_hours=settings.trending_window_hours,
        )
        store.load()
        aggregator = Aggregator(build_adapters(settings=settings), settings=settings)
        return cls(store, aggregator, settings)

    async def run_ingestion(self) -> IngestionResult:
        """One ingestion run. Overlapping triggers queue behind each other.

        A degraded run (every source failed, nothing fetched) returns
        success=False and leaves the collection untouched.
        """
        async with self._run_lock:
            batch = await self.aggregator.ingest()
            timestamp = datetime.now(timezone.utc)

            if batch.degraded:
                return IngestionResult(
                    success=False,
                    degraded=True,
                    error="All sources failed; collection left unchanged",
                    total_in_collection=len(self.store),
                    timestamp=timestamp,
                    sources=batch.outcomes,
                )

            added = self.store.insert_merge(batch.records)
            return IngestionResult(
                success=True,
                records_ingested=len(batch.records),
                records_added=added,
                total_in_collection=len(self.store),
                timestamp=timestamp,
                sources=batch.outcomes,
            )

    def list_records(
        self,
        category: Optional[str] = None,
        page: int = 1,
        page_size: Optional[int] = None,
    ) -> RecordPage:
        if page_size is None:
            page_size = self.settings.page_size_default
        return self.store.list(category=category, page=page, page_size=page_size)

    def search_records(self, query: str) -> SearchResult:
        matches = self.store.search(query)
        return SearchResult(
            records=matches[: self.settings.search_max_results],
            query=query,
            total_matches=len(matches),
        )

    def get_trending(self, limit: Optional[int] = None) -> List[TrendEntry]:
        if limit is None:
            limit = self.settings.trending_limit
        return self.store.trending(limit)

    async def audit_sources(self) -> List[SourceHealth]:
        return await self.aggregator.audit_sources()
