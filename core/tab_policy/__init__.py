"""Shared tab policy used across export and reorganization stages."""

from .matching import host_matches_base, host_or_path_marker_matches, match_domain_pattern, match_rule
from .text import clip, split_words, truncate_words
from .taxonomy import (
    BACKOFF_MESSAGE_HINTS,
    BACKOFF_STATUS_CODES,
    CATEGORY_RULES,
    LEGAL_BLOCK_STATUS,
    RETRYABLE_CLIENT_STATUS_CODES,
    SKIP_EXTENSIONS,
    SKIP_HOSTS,
    SKIP_PREFIXES,
)

__all__ = [
    "host_matches_base",
    "host_or_path_marker_matches",
    "match_domain_pattern",
    "match_rule",
    "clip",
    "split_words",
    "truncate_words",
    "BACKOFF_MESSAGE_HINTS",
    "BACKOFF_STATUS_CODES",
    "CATEGORY_RULES",
    "LEGAL_BLOCK_STATUS",
    "RETRYABLE_CLIENT_STATUS_CODES",
    "SKIP_EXTENSIONS",
    "SKIP_HOSTS",
    "SKIP_PREFIXES",
]
