"""URL utilities and the pre-fetch domain filter."""

import urllib.parse
from typing import Iterable

from core.tab_policy.matching import host_or_path_marker_matches
from core.tab_policy.taxonomy import SKIP_EXTENSIONS, SKIP_HOSTS, SKIP_PREFIXES

from .settings import FetchConfig


def domain_of(url: str, fallback: str = "unknown") -> str:
    try:
        parsed = urllib.parse.urlsplit(url)
        return (parsed.hostname or "").lower() or fallback
    except Exception:
        return fallback


def should_skip_domain(
    url: str,
    skip_hosts: Iterable[str] = SKIP_HOSTS,
    skip_prefixes: Iterable[str] = SKIP_PREFIXES,
) -> bool:
    """True when `url` is blocklisted or cannot be addressed at all."""
    if not isinstance(url, str) or not url.strip():
        return True
    lower_url = url.strip().lower()
    if any(lower_url.startswith(prefix) for prefix in skip_prefixes):
        return True

    try:
        parsed = urllib.parse.urlsplit(lower_url)
        host = (parsed.hostname or "").lower()
    except Exception:
        return True

    if parsed.scheme not in {"http", "https"} or not host:
        return True
    path = parsed.path or "/"
    return any(host_or_path_marker_matches(host, path, marker) for marker in skip_hosts)


def should_skip_content_type(url: str, skip_extensions: Iterable[str] = SKIP_EXTENSIONS) -> bool:
    if not isinstance(url, str):
        return True
    try:
        path = urllib.parse.urlsplit(url.strip()).path.lower()
    except Exception:
        return True
    return any(path.endswith(ext) for ext in skip_extensions)


def skip_reason(url: str, config: FetchConfig) -> str:
    """Return why `url` must not be fetched, or an empty string."""
    if should_skip_domain(url, skip_hosts=config.skip_hosts, skip_prefixes=config.skip_prefixes):
        return "Domain skipped"
    if should_skip_content_type(url, skip_extensions=config.skip_extensions):
        return "Content type skipped"
    return ""


def should_skip(url: str, config: FetchConfig = FetchConfig()) -> bool:
    return bool(skip_reason(url, config))
