"""
Layer 1: News ingestion and structuring.

Modules:
- categorizer: keyword-based topical classification
- fingerprint: stable record ids + text normalization
- aggregator (Aggregator): concurrent multi-source fetch, url dedup, sort
- store (RankedStore): bounded newest-first collection, search, trending
"""

from pulse.news.categorizer import classify
from pulse.news.fingerprint import fingerprint
