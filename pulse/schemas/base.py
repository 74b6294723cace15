"""
Common enums used across the entire application.

These define the vocabulary of the system: the closed set of topical
categories a record can carry, and the kinds of upstream source we ingest.
"""

from enum import Enum


class Category(str, Enum):
    """
    Topical category of a record.

    Declaration order is significant: the classifier breaks score ties in
    favour of the category declared first. GENERAL is the fallback for text
    that matches no keyword set and always comes last.
    """
    SOFTWARE_ENGINEERING = "software_engineering"
    CONTENT_GENERATION = "content_generation"
    VIDEO_MEDIA = "video_media"
    EDUCATION = "education"
    RESEARCH = "research"
    BUSINESS = "business"
    GENERAL = "general"


CATEGORY_LABELS = {
    Category.SOFTWARE_ENGINEERING: "Software Engineering",
    Category.CONTENT_GENERATION: "Content Generation",
    Category.VIDEO_MEDIA: "Video & Media",
    Category.EDUCATION: "Education",
    Category.RESEARCH: "Research",
    Category.BUSINESS: "Business & Industry",
    Category.GENERAL: "General AI",
}


class SourceType(str, Enum):
    """Data source type."""
    RSS = "rss"
    RANKED_LIST = "ranked_list"


class HealthStatus(str, Enum):
    """Outcome of a source audit."""
    OK = "ok"
    EMPTY = "empty"
    BROKEN = "broken"
    PARSE_ERROR = "parse_error"
    SLOW = "slow"
