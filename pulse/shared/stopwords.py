"""
Stopword sets and token cleanup for title keyword counting.

Used by:
  - pulse.news.store (trending keywords)
"""
from __future__ import annotations

import re

_NON_KEYWORD_CHARS = re.compile(r"[^a-z0-9-]")

# Function words and headline filler that never make a useful trend keyword.
# Punctuation-only tokens are listed because they survive whitespace splitting.
TRENDING_STOP = frozenset({
    "the", "a", "an", "and", "or", "but", "in", "on", "at", "to", "for",
    "of", "with", "by", "from", "is", "it", "its", "as", "are", "was",
    "be", "has", "have", "had", "do", "does", "did", "will", "can",
    "not", "this", "that", "these", "those", "i", "we", "you", "he",
    "she", "they", "my", "your", "his", "her", "our", "their", "what",
    "which", "who", "when", "where", "why", "how", "all", "each",
    "every", "both", "few", "more", "most", "other", "some", "such",
    "no", "nor", "only", "own", "same", "so", "than", "too", "very",
    "just", "because", "about", "into", "through", "up", "new", "also",
    "after", "over", "could", "would", "should", "now", "may", "one",
    "two", "first", "been", "being", "get", "got", "make", "like",
    "use", "used", "using", "says", "said", "out", "if", "then",
    "-", "–", "—", "|", "", "vs", "via", "per",
})


def clean_token(word: str) -> str:
    """Lowercase a whitespace-split token and keep only [a-z0-9-]."""
    return _NON_KEYWORD_CHARS.sub("", word.lower())
