# Source adapters
from .source_adapter import SourceAdapter
from .rss_tool import RSSFeedAdapter
from .hn_tool import RankedListAdapter

__all__ = [
    "SourceAdapter",
    "RSSFeedAdapter",
    "RankedListAdapter",
]
