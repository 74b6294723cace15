"""
Bounded, newest-first record collection with search and keyword trends.

The RankedStore exclusively owns the collection. insert_merge() is the only
mutation path; it and every reader hold the same lock, so a reader never
observes a merged-but-not-yet-resorted collection and overlapping ingestion
runs serialize instead of interleaving.

INVARIANTS (after every insert_merge):
  - ids are unique
  - len(collection) <= max_records
  - published_at is non-increasing along the collection
"""

import logging
import math
import threading
from datetime import datetime, timedelta, timezone
from typing import Dict, Iterable, List, Optional, Union

from pulse.config import MAX_PAGE_SIZE
from pulse.database import Persistence, PersistenceError
from pulse.schemas import Category, Record, RecordPage, TrendEntry
from pulse.shared.stopwords import TRENDING_STOP, clean_token

logger = logging.getLogger(__name__)

DEFAULT_MAX_RECORDS = 500
MIN_QUERY_CHARS = 2
TRENDING_WINDOW_HOURS = 48


def _sort_newest_first(records: Iterable[Record]) -> List[Record]:
    return sorted(records, key=lambda r: r.published_at, reverse=True)


class RankedStore:
    """Single-writer owner of the record collection."""

    def __init__(
        self,
        persistence: Optional[Persistence] = None,
        max_records: int = DEFAULT_MAX_RECORDS,
        max_page_size: int = MAX_PAGE_SIZE,
        min_query_chars: int = MIN_QUERY_CHARS,
        trending_window_hours: int = TRENDING_WINDOW_HOURS,
    ):
        self.persistence = persistence
        self.max_records = max_records
        self.max_page_size = min(max(1, max_page_size), MAX_PAGE_SIZE)
        self.min_query_chars = min_query_chars
        self.trending_window_hours = trending_window_hours

        self._lock = threading.RLock()
        self._records: List[Record] = []
        self._last_updated: Optional[datetime] = None

    # ── Lifecycle ─────────────────────────────────────────────────────

    def load(self) -> int:
        """Replace the collection with the persisted one, if any.

        Returns the number of records loaded. Persistence failures are logged
        and leave the store empty; the process keeps running in-memory.
        """
        if self.persistence is None:
            return 0
        try:
            loaded = self.persistence.load()
        except PersistenceError as e:
            logger.warning(f"Persistence load failed, starting empty: {e}")
            return 0
        if loaded is None:
            logger.info("No persisted collection found, starting empty")
            return 0

        records, last_updated = loaded
        with self._lock:
            unique: Dict[str, Record] = {}
            for record in records:
                unique.setdefault(record.id, record)
            self._records = _sort_newest_first(unique.values())[: self.max_records]
            self._last_updated = last_updated
            count = len(self._records)

        logger.info(f"Loaded {count} records from persistence (last updated {last_updated})")
        return count

    # ── Mutation ──────────────────────────────────────────────────────

    def insert_merge(self, batch: Iterable[Record]) -> int:
        """Merge a batch into the collection; returns how many were new.

        Records whose id is already present (in the collection or earlier in
        the batch) are skipped. New records are prepended, the whole
        collection is re-sorted newest-first and truncated to max_records,
        then mirrored to persistence on a best-effort basis.
        """
        with self._lock:
            existing = {r.id for r in self._records}
            fresh: List[Record] = []
            for record in batch:
                if record.id in existing:
                    continue
                existing.add(record.id)
                fresh.append(record)

            merged = _sort_newest_first(fresh + self._records)
            evicted = max(0, len(merged) - self.max_records)
            self._records = merged[: self.max_records]
            self._last_updated = datetime.now(timezone.utc)

            logger.info(
                f"Merged {len(fresh)} new records "
                f"(collection={len(self._records)}, evicted={evicted})"
            )
            self._persist()
            return len(fresh)

    def _persist(self) -> None:
        if self.persistence is None:
            return
        try:
            self.persistence.save(list(self._records), self._last_updated)
        except PersistenceError as e:
            logger.warning(f"Persistence save failed, in-memory collection kept: {e}")

    # ── Queries ───────────────────────────────────────────────────────

    def records(self) -> List[Record]:
        """Consistent snapshot of the collection, newest first."""
        with self._lock:
            return list(self._records)

    def __len__(self) -> int:
        with self._lock:
            return len(self._records)

    @property
    def last_updated(self) -> Optional[datetime]:
        with self._lock:
            return self._last_updated

    def list(
        self,
        category: Optional[Union[Category, str]] = None,
        page: int = 1,
        page_size: int = 20,
    ) -> RecordPage:
        """One 1-indexed page of the collection, optionally filtered by category.

        page < 1 is treated as 1; page_size is clamped to [1, max_page_size].
        Pages past the end come back empty with the correct totals.
        """
        page = max(1, int(page or 1))
        page_size = min(max(1, int(page_size or 1)), self.max_page_size)

        records = self.records()
        wanted = category.value if isinstance(category, Category) else category
        if wanted and wanted != "all":
            records = [r for r in records if r.category.value == wanted]

        total = len(records)
        start = (page - 1) * page_size
        return RecordPage(
            records=records[start:start + page_size],
            page=page,
            page_size=page_size,
            total=total,
            total_pages=math.ceil(total / page_size),
        )

    def search(self, query: Optional[str]) -> List[Record]:
        """All records whose title, description or source name contain query.

        Case-insensitive substring match, newest first, uncapped. Queries
        shorter than min_query_chars (after stripping) match nothing.
        """
        q = (query or "").strip().lower()
        if len(q) < self.min_query_chars:
            return []
        return [
            r for r in self.records()
            if q in r.title.lower()
            or q in r.description.lower()
            or q in r.source_name.lower()
        ]

    def trending(self, limit: int = 15, now: Optional[datetime] = None) -> List[TrendEntry]:
        """Most frequent title keywords among records published in the window.

        Titles are lowercased and split on whitespace; each token is reduced
        to [a-z0-9-]. Tokens shorter than 3 chars or in TRENDING_STOP are
        dropped. Ties keep first-seen order (collection order, newest first).
        """
        if limit <= 0:
            return []
        now = now or datetime.now(timezone.utc)
        cutoff = now - timedelta(hours=self.trending_window_hours)

        counts: Dict[str, int] = {}
        for record in self.records():
            if record.published_at <= cutoff:
                continue
            for word in record.title.lower().split():
                token = clean_token(word)
                if len(token) < 3 or token in TRENDING_STOP:
                    continue
                counts[token] = counts.get(token, 0) + 1

        ranked = sorted(counts.items(), key=lambda kv: kv[1], reverse=True)
        return [TrendEntry(keyword=k, count=c) for k, c in ranked[:limit]]
