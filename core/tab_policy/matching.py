"""Shared hostname matching helpers."""

from __future__ import annotations

from typing import Iterable, Optional, Tuple


def host_matches_base(host: str, base: str) -> bool:
    """True when `host` is `base` or one of its subdomains."""
    host_norm = str(host or "").strip().lower()
    base_norm = str(base or "").strip().lower()
    if not host_norm or not base_norm:
        return False

    if host_norm == base_norm:
        return True
    return host_norm.endswith("." + base_norm)


def host_or_path_marker_matches(host: str, path: str, marker: str) -> bool:
    """Match `host` against a bare host marker or a `host/path` prefix marker."""
    needle = str(marker or "").strip().lower()
    if not needle:
        return False
    if "/" in needle:
        marker_host, marker_path = needle.split("/", 1)
        path_norm = str(path or "").strip().lower()
        return host_matches_base(host, marker_host) and path_norm.startswith("/" + marker_path)
    return host_matches_base(host, needle)


def match_rule(host: str, pattern: str) -> Optional[str]:
    """Return which rule (exact, suffix, substring) matches `pattern` to `host`."""
    host_norm = str(host or "").strip().lower()
    pattern_norm = str(pattern or "").strip().lower()
    if not host_norm or not pattern_norm:
        return None
    if host_norm == pattern_norm:
        return "exact"
    if host_norm.endswith("." + pattern_norm):
        return "suffix"
    # Substring matching can over-match ("docs" hits "mydocs-example.com").
    if pattern_norm in host_norm:
        return "substring"
    return None


def match_domain_pattern(host: str, patterns: Iterable[str]) -> Optional[Tuple[str, str]]:
    """First pattern in `patterns` that matches `host`, with the rule that fired."""
    for pattern in patterns:
        rule = match_rule(host, pattern)
        if rule is not None:
            return pattern, rule
    return None
