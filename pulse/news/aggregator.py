"""
Multi-source fan-out for one ingestion run.

Every configured adapter runs concurrently against one shared httpx client,
each under its own outer timeout. Outcomes are collected in adapter order
(wait-for-all, never first-error), so completion order cannot leak into the
result. The merged batch is de-duplicated by URL (first occurrence wins) and
sorted newest-first; it is handed to the store, never applied here.
"""

import asyncio
import logging
import time
from typing import Dict, Iterable, List, Optional

import httpx

from pulse.config import NEWS_SOURCES, USER_AGENT, Settings, get_settings
from pulse.schemas import (
    HealthStatus, IngestionBatch, NewsSource, Record, SourceBatch, SourceHealth,
    SourceOutcome, SourceType,
)
from pulse.tools.hn_tool import RankedListAdapter
from pulse.tools.rss_tool import RSSFeedAdapter
from pulse.tools.source_adapter import SourceAdapter

logger = logging.getLogger(__name__)

_ADAPTER_TYPES = {
    SourceType.RSS: RSSFeedAdapter,
    SourceType.RANKED_LIST: RankedListAdapter,
}


def build_adapters(
    source_ids: Optional[Iterable[str]] = None,
    settings: Optional[Settings] = None,
) -> List[SourceAdapter]:
    """Instantiate adapters for the given source ids (defaults to active sources)."""
    settings = settings or get_settings()
    source_ids = list(source_ids) if source_ids is not None else settings.get_active_source_ids()

    adapters: List[SourceAdapter] = []
    for sid in source_ids:
        config = NEWS_SOURCES.get(sid)
        if not config:
            logger.warning(f"Unknown source id '{sid}', skipping")
            continue
        source = NewsSource(**config)
        adapters.append(_ADAPTER_TYPES[source.source_type](source, settings))
    return adapters


def dedupe_by_url(records: Iterable[Record]) -> List[Record]:
    """Keep the first record seen for each URL, preserving input order."""
    seen = set()
    unique = []
    for record in records:
        if record.url in seen:
            continue
        seen.add(record.url)
        unique.append(record)
    return unique


def sort_newest_first(records: Iterable[Record]) -> List[Record]:
    """Stable sort by published_at descending."""
    return sorted(records, key=lambda r: r.published_at, reverse=True)


class Aggregator:
    """Concurrent fetch → merge → url dedup → sort."""

    def __init__(
        self,
        adapters: List[SourceAdapter],
        settings: Optional[Settings] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.adapters = adapters
        self.settings = settings or get_settings()
        self._transport = transport

    def _client(self) -> httpx.AsyncClient:
        # One client per run for connection pooling across sources.
        return httpx.AsyncClient(
            transport=self._transport,
            headers={"User-Agent": USER_AGENT},
            follow_redirects=True,
        )

    async def _fetch_isolated(self, adapter: SourceAdapter, client: httpx.AsyncClient) -> SourceBatch:
        """Outer guard: an adapter that hangs or raises still yields a batch."""
        timeout = self.settings.source_timeout
        start = time.monotonic()
        try:
            return await asyncio.wait_for(adapter.fetch(client), timeout=timeout)
        except asyncio.TimeoutError:
            logger.warning(f"[TIMEOUT] {adapter.name}: fetch timeout ({timeout:.0f}s), skipping")
            error = f"timeout after {timeout:.0f}s"
        except Exception as e:
            logger.warning(f"[FAIL] {adapter.name}: adapter raised {type(e).__name__}: {e}")
            error = f"{type(e).__name__}: {e}"
        return SourceBatch(
            source_id=adapter.source_id,
            source_name=adapter.name,
            error=error,
            elapsed_ms=int((time.monotonic() - start) * 1000),
        )

    async def fetch_all(self) -> List[SourceBatch]:
        """Run every adapter concurrently; one batch per adapter, in adapter order."""
        if not self.adapters:
            return []

        async with self._client() as client:
            tasks = [self._fetch_isolated(adapter, client) for adapter in self.adapters]
            results = await asyncio.gather(*tasks, return_exceptions=True)

        batches: List[SourceBatch] = []
        for adapter, result in zip(self.adapters, results):
            if isinstance(result, BaseException):
                logger.warning(f"Source fetch failed: {adapter.name}: {result}")
                result = SourceBatch(
                    source_id=adapter.source_id, source_name=adapter.name, error=str(result),
                )
            batches.append(result)
        return batches

    async def ingest(self) -> IngestionBatch:
        """One run: fan out, merge, dedupe by url, sort newest-first."""
        batches = await self.fetch_all()

        merged: List[Record] = []
        for batch in batches:
            merged.extend(batch.records)

        records = sort_newest_first(dedupe_by_url(merged))
        outcomes = [
            SourceOutcome(
                source_id=b.source_id,
                source_name=b.source_name,
                count=len(b.records),
                error=b.error,
                elapsed_ms=b.elapsed_ms,
            )
            for b in batches
        ]
        degraded = not records and not any(b.ok for b in batches)

        failed = sum(1 for b in batches if not b.ok)
        logger.info(
            f"[INGEST] {len(records)} unique records from {len(batches)} sources "
            f"({len(merged)} before dedup, {failed} failed)"
        )
        if degraded:
            logger.error("[INGEST] Degraded run: every source failed and nothing was fetched")

        return IngestionBatch(records=records, outcomes=outcomes, degraded=degraded)

    async def audit_sources(self) -> List[SourceHealth]:
        """Dry-run reachability audit of every adapter, in parallel."""
        async with self._client() as client:
            results = await asyncio.gather(
                *[adapter.audit(client) for adapter in self.adapters], return_exceptions=True,
            )

        audits: List[SourceHealth] = []
        for adapter, result in zip(self.adapters, results):
            if isinstance(result, BaseException):
                logger.warning(f"Audit task failed: {adapter.name}: {result}")
                result = SourceHealth(
                    source_id=adapter.source_id, name=adapter.name,
                    status=HealthStatus.BROKEN, error=str(result),
                )
            audits.append(result)

        counts: Dict[HealthStatus, int] = {}
        for audit in audits:
            counts[audit.status] = counts.get(audit.status, 0) + 1
        summary = ", ".join(f"{n} {status.value}" for status, n in counts.items())
        logger.info(f"Source audit: {summary or 'no sources'}, {len(audits)} total")
        return audits
