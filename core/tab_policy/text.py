"""Shared text normalization helpers."""

from __future__ import annotations

import re
from typing import List, Tuple

WHITESPACE_RE = re.compile(r"\s+")


def split_words(text: str) -> List[str]:
    """Split on whitespace runs, dropping empty tokens."""
    return [word for word in WHITESPACE_RE.split(text or "") if word]


def truncate_words(text: str, limit: int) -> Tuple[str, int]:
    """Return the first `limit` words joined by spaces and the untruncated word count."""
    words = split_words(text)
    return " ".join(words[:limit]), len(words)


def clip(value: str, limit: int) -> str:
    value = str(value or "")
    if limit <= 0 or len(value) <= limit:
        return value
    return value[:limit] + "..."
