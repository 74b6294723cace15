"""
Schemas package: all data models for the Pulse aggregator.

Models are organized by domain in submodules:
  - base.py: Category / SourceType / HealthStatus enums
  - news.py: NewsSource, Record
  - results.py: per-source batches, ingestion results, query responses
"""

# base.py: enums
from pulse.schemas.base import Category, CATEGORY_LABELS, SourceType, HealthStatus

# news.py: record models
from pulse.schemas.news import NewsSource, Record

# results.py: run and query results
from pulse.schemas.results import (
    SourceBatch, SourceOutcome, IngestionBatch, IngestionResult,
    RecordPage, SearchResult, TrendEntry, SourceHealth, SourceHealthState,
)

__all__ = [
    "Category", "CATEGORY_LABELS", "SourceType", "HealthStatus",
    "NewsSource", "Record",
    "SourceBatch", "SourceOutcome", "IngestionBatch", "IngestionResult",
    "RecordPage", "SearchResult", "TrendEntry", "SourceHealth", "SourceHealthState",
]
