"""
Syndication feed adapter (RSS / Atom).

Fetches one feed with httpx, parses it with feedparser, and normalizes the
first N entries into Records: markup stripped from descriptions, a
representative image pulled from the entry HTML or its media attachments,
category and id assigned inline.
"""

import logging
import re
from typing import Any, Dict, List, Optional

import feedparser
import httpx
from langdetect import DetectorFactory, LangDetectException, detect

from pulse.config import FEED_ACCEPT, USER_AGENT
from pulse.schemas import HealthStatus, Record, SourceHealth
from pulse.tools.source_adapter import SourceAdapter

DetectorFactory.seed = 0  # Deterministic language detection

logger = logging.getLogger(__name__)

_IMG_SRC_RE = re.compile(r"""<img[^>]+src=["']([^"']+)["']""", re.IGNORECASE)


def _entry_html(entry: Dict[str, Any]) -> str:
    """Full HTML body of an entry (content:encoded), if the feed carries one."""
    for block in entry.get("content") or []:
        value = block.get("value") if isinstance(block, dict) else None
        if value:
            return value
    return ""


def extract_image(entry: Dict[str, Any]) -> Optional[str]:
    """First <img> in the entry HTML, else the first image-like attachment."""
    for markup in (_entry_html(entry), entry.get("summary") or ""):
        match = _IMG_SRC_RE.search(markup)
        if match:
            return match.group(1)

    for enclosure in entry.get("enclosures") or []:
        href = enclosure.get("href") or enclosure.get("url")
        kind = enclosure.get("type") or ""
        if href and (not kind or kind.startswith("image/")):
            return href

    for key in ("media_content", "media_thumbnail"):
        for media in entry.get(key) or []:
            if media.get("url"):
                return media["url"]
    return None


class RSSFeedAdapter(SourceAdapter):
    """Feed adapter: one syndication feed → Records."""

    @property
    def timeout(self) -> float:
        return self.settings.feed_timeout

    @property
    def feed_url(self) -> str:
        return self.source.feed_url or self.source.url

    def _is_target_language(self, text: str) -> bool:
        """Check if text is in the source's language using langdetect.

        Returns True when filtering is off, the source declares no language,
        or the text is too short for reliable detection (< 20 chars).
        """
        target_lang = self.source.language
        if not self.settings.language_filter or not target_lang:
            return True
        if not text or len(text.strip()) < 20:
            return True
        try:
            return detect(text[:500]) == target_lang
        except LangDetectException:
            return True  # Ambiguous, let through

    async def _get_feed(self, client: httpx.AsyncClient) -> httpx.Response:
        headers = {"User-Agent": USER_AGENT, "Accept": FEED_ACCEPT}
        return await client.get(
            self.feed_url, headers=headers, follow_redirects=True, timeout=self.timeout,
        )

    async def _fetch_records(self, client: httpx.AsyncClient) -> List[Record]:
        response = await self._get_feed(client)
        response.raise_for_status()

        feed = feedparser.parse(response.text)
        if feed.bozo and not feed.entries:
            raise ValueError(f"feed parse error: {feed.bozo_exception}")

        entries = feed.entries[: self.settings.feed_max_items]
        logger.debug(f"{self.name}: feed returned {len(feed.entries)} entries, using {len(entries)}")

        records = []
        for entry in entries:
            record = self._parse_entry(entry)
            if record:
                records.append(record)
        return records

    def _parse_entry(self, entry: Dict[str, Any]) -> Optional[Record]:
        """Parse a feed entry into a Record; None if it lacks title or link."""
        title = entry.get("title")
        link = entry.get("link")
        if not title or not link:
            return None

        description = entry.get("summary") or entry.get("description") or _entry_html(entry)

        if not self._is_target_language(f"{title} {description[:200]}"):
            logger.debug(f"Filtered non-{self.source.language} entry: {title[:60]}...")
            return None

        return self._build_record(
            title=title,
            url=link,
            description=description,
            image_url=extract_image(entry),
            published_at=entry.get("published_parsed") or entry.get("updated_parsed"),
        )

    async def _probe(self, client: httpx.AsyncClient, result: SourceHealth) -> SourceHealth:
        if not self.feed_url:
            result.status = HealthStatus.BROKEN
            result.error = "No feed_url configured"
            return result

        response = await self._get_feed(client)
        result.http_status = response.status_code
        if response.status_code != 200:
            result.status = HealthStatus.BROKEN
            result.error = f"HTTP {response.status_code}"
            return result

        feed = feedparser.parse(response.text)
        if feed.bozo and not feed.entries:
            result.status = HealthStatus.PARSE_ERROR
            result.error = f"XML parse error: {feed.bozo_exception}"
            return result

        result.item_count = len(feed.entries)
        result.status = HealthStatus.OK if feed.entries else HealthStatus.EMPTY
        return result
