"""
Stable identity keys for records.

The id of a record is a 32-bit rolling hash of its canonical URL, folded to
base-36. It is an identity key, not a security boundary: no salt, no clock,
no per-process randomness, so the same URL maps to the same id across runs
and restarts (unlike Python's built-in hash()).
"""

import html
import re
from typing import Optional

_BASE36 = "0123456789abcdefghijklmnopqrstuvwxyz"

_TAG_RE = re.compile(r"<[^>]*>")
_WS_RE = re.compile(r"\s+")


def _to_int32(value: int) -> int:
    value &= 0xFFFFFFFF
    return value - 0x100000000 if value & 0x80000000 else value


def _base36(value: int) -> str:
    if value == 0:
        return "0"
    digits = []
    while value:
        value, rem = divmod(value, 36)
        digits.append(_BASE36[rem])
    return "".join(reversed(digits))


def canonical_url(url: Optional[str]) -> str:
    """The link as published, minus surrounding whitespace."""
    return (url or "").strip()


def fingerprint(url: str) -> str:
    """Deterministic compact id for a URL (h = h * 31 + unit, wrapped to int32).

    Iterates UTF-16 code units, so astral characters contribute two units.
    """
    data = canonical_url(url).encode("utf-16-le")
    h = 0
    for i in range(0, len(data), 2):
        unit = data[i] | (data[i + 1] << 8)
        h = _to_int32((h << 5) - h + unit)
    return _base36(abs(h))


def clean_title(text: Optional[str]) -> str:
    """Decode entities and collapse whitespace. Angle brackets are kept."""
    if not text:
        return ""
    return _WS_RE.sub(" ", html.unescape(str(text))).strip()


def clean_text(text: Optional[str], max_chars: Optional[int] = None) -> str:
    """Strip HTML tags, decode entities, collapse whitespace, bound length."""
    if not text:
        return ""
    cleaned = _TAG_RE.sub("", str(text))
    cleaned = html.unescape(cleaned)
    cleaned = _WS_RE.sub(" ", cleaned).strip()
    if max_chars is not None:
        cleaned = cleaned[:max_chars].rstrip()
    return cleaned
