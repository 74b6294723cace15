"""Pulse: concurrent multi-source AI news ingestion with a bounded ranked store."""

__version__ = "1.0.0"
