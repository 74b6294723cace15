"""
Ranked-list adapter (Hacker News Firebase API by default).

Two-step fetch:
  1. GET <base>/topstories.json → ranked list of item ids
  2. Resolve the first N ids concurrently (semaphore-capped), each with its
     own timeout; a slow or broken id is dropped without stalling the rest

Survivors are kept only when their title mentions a topical keyword
(case-insensitive substring against AI_KEYWORDS). Output follows rank
order, never completion order.
"""

import asyncio
import logging
from typing import Any, Dict, List, Optional, Sequence

import httpx

from pulse.config import AI_KEYWORDS, HN_API_BASE, USER_AGENT
from pulse.schemas import HealthStatus, Record, SourceHealth
from pulse.tools.source_adapter import SourceAdapter

logger = logging.getLogger(__name__)


def matches_keywords(title: str, keywords: Sequence[str] = AI_KEYWORDS) -> bool:
    title_lower = (title or "").lower()
    return any(kw in title_lower for kw in keywords)


class RankedListAdapter(SourceAdapter):
    """Ranked id list + per-item resolution → keyword-filtered Records."""

    list_path = "topstories.json"
    keywords: Sequence[str] = AI_KEYWORDS

    @property
    def base_url(self) -> str:
        return (self.source.api_endpoint or HN_API_BASE).rstrip("/")

    @property
    def timeout(self) -> float:
        # Id list, then ceil(n / concurrency) waves of per-item resolution.
        limit = max(1, self.settings.hn_max_concurrent)
        waves = -(-self.settings.hn_max_items // limit)
        return self.settings.hn_list_timeout + waves * self.settings.hn_item_timeout

    async def _get_json(self, client: httpx.AsyncClient, path: str, timeout: float) -> Any:
        response = await client.get(
            f"{self.base_url}/{path}",
            headers={"User-Agent": USER_AGENT},
            timeout=timeout,
        )
        response.raise_for_status()
        return response.json()

    async def _fetch_ids(self, client: httpx.AsyncClient) -> List[int]:
        timeout = self.settings.hn_list_timeout
        ids = await asyncio.wait_for(self._get_json(client, self.list_path, timeout), timeout=timeout)
        if not isinstance(ids, list):
            raise ValueError(f"expected id list, got {type(ids).__name__}")
        return ids

    async def _fetch_records(self, client: httpx.AsyncClient) -> List[Record]:
        ids = (await self._fetch_ids(client))[: self.settings.hn_max_items]
        items = await self._resolve_items(client, ids)

        records = []
        for item in items:
            record = self._parse_item(item)
            if record:
                records.append(record)

        logger.debug(f"{self.name}: {len(records)}/{len(ids)} items passed keyword filter")
        return records

    async def _resolve_items(self, client: httpx.AsyncClient, ids: List[int]) -> List[Optional[Dict]]:
        """Fetch every id concurrently; failures come back as None in rank order."""
        semaphore = asyncio.Semaphore(max(1, self.settings.hn_max_concurrent))
        timeout = self.settings.hn_item_timeout

        async def _fetch_one(item_id) -> Optional[Dict]:
            async with semaphore:
                try:
                    item = await asyncio.wait_for(
                        self._get_json(client, f"item/{item_id}.json", timeout),
                        timeout=timeout,
                    )
                except asyncio.TimeoutError:
                    logger.debug(f"⏱️ {self.name}: item {item_id} timed out")
                    return None
                except Exception as e:
                    logger.debug(f"{self.name}: item {item_id} failed: {e}")
                    return None
                return item if isinstance(item, dict) else None

        return list(await asyncio.gather(*[_fetch_one(i) for i in ids]))

    def _parse_item(self, item: Optional[Dict]) -> Optional[Record]:
        if not item:
            return None
        title = item.get("title")
        url = item.get("url")
        if not title or not url:
            return None
        if not matches_keywords(title, self.keywords):
            return None

        # Story items carry no body; the description falls back to the title.
        return self._build_record(
            title=title,
            url=url,
            published_at=item.get("time"),
            classify_description=False,
        )

    async def _probe(self, client: httpx.AsyncClient, result: SourceHealth) -> SourceHealth:
        response = await client.get(
            f"{self.base_url}/{self.list_path}",
            headers={"User-Agent": USER_AGENT},
            timeout=self.settings.hn_list_timeout,
        )
        result.http_status = response.status_code
        if response.status_code != 200:
            result.status = HealthStatus.BROKEN
            result.error = f"HTTP {response.status_code}"
            return result
        try:
            ids = response.json()
        except ValueError as e:
            result.status = HealthStatus.PARSE_ERROR
            result.error = str(e)
            return result

        result.item_count = len(ids) if isinstance(ids, list) else 0
        result.status = HealthStatus.OK if result.item_count else HealthStatus.EMPTY
        return result
