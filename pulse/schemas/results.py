"""
Result models for ingestion runs and collection queries.

These are the shapes that cross the core's boundary: per-source batches
inside a run, the merged batch handed to the store, and the responses of
the trigger/list/search/trending operations.
"""

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field

from .base import HealthStatus
from .news import Record


class SourceBatch(BaseModel):
    """Output of one source adapter for one run. Never an exception."""
    source_id: str
    source_name: str
    records: List[Record] = Field(default_factory=list)
    error: Optional[str] = None
    elapsed_ms: int = 0

    @property
    def ok(self) -> bool:
        return self.error is None


class SourceOutcome(BaseModel):
    """Per-source summary attached to an ingestion result."""
    source_id: str
    source_name: str
    count: int = 0
    error: Optional[str] = None
    elapsed_ms: int = 0


class IngestionBatch(BaseModel):
    """Merged, url-deduplicated, newest-first batch from one aggregator run."""
    records: List[Record] = Field(default_factory=list)
    outcomes: List[SourceOutcome] = Field(default_factory=list)
    degraded: bool = False


class IngestionResult(BaseModel):
    """Trigger response. `degraded` runs leave the collection untouched."""
    success: bool
    records_ingested: int = 0
    records_added: int = 0
    total_in_collection: int = 0
    timestamp: datetime
    degraded: bool = False
    error: Optional[str] = None
    sources: List[SourceOutcome] = Field(default_factory=list)


class RecordPage(BaseModel):
    """One page of the (optionally category-filtered) collection."""
    records: List[Record] = Field(default_factory=list)
    page: int = 1
    page_size: int = 20
    total: int = 0
    total_pages: int = 0


class SearchResult(BaseModel):
    records: List[Record] = Field(default_factory=list)
    query: str = ""
    total_matches: int = 0


class TrendEntry(BaseModel):
    keyword: str
    count: int


class SourceHealth(BaseModel):
    """Dry-run audit result for a single source."""
    source_id: str
    name: str
    status: HealthStatus = HealthStatus.BROKEN
    http_status: Optional[int] = None
    response_time_ms: int = 0
    item_count: int = 0
    error: Optional[str] = None


class SourceHealthState(BaseModel):
    """Rolling health tracked across runs for one adapter."""
    last_success: Optional[datetime] = None
    consecutive_failures: int = 0
    last_error: Optional[str] = None
    records_fetched: int = 0
