"""Keep mode: close every open tab whose URL is not in a listing document."""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from typing import Callable, Iterable, List, Optional, Sequence, TextIO, Tuple

from core.browser.chrome import TabDirectoryError, find_tab_by_url
from core.browser.models import TabRef
from core.tab_policy.text import clip

from .executor import TabDirectory


@dataclass
class KeepResult:
    closed: List[str] = field(default_factory=list)
    failed: List[Tuple[str, str]] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "closed": list(self.closed),
            "failed": [{"url": url, "reason": reason} for url, reason in self.failed],
        }


def find_tabs_to_close(tabs: Sequence[TabRef], keep_urls: Iterable[str]) -> List[TabRef]:
    keep = set(keep_urls)
    return [tab for tab in tabs if tab.url not in keep]


def close_tabs(
    directory: TabDirectory,
    doomed: Sequence[TabRef],
    *,
    pacing_sec: float = 0.2,
    sleep_fn: Callable[[float], None] = time.sleep,
    stderr: Optional[TextIO] = None,
) -> KeepResult:
    """Close `doomed` tabs from the last window/tab backwards, re-resolving each by URL."""
    result = KeepResult()
    ordered = sorted(doomed, key=lambda t: (t.window_position, t.tab_position), reverse=True)
    for tab in ordered:
        try:
            current = find_tab_by_url(directory.list_tabs(), tab.url)
            if current is None:
                result.failed.append((tab.url, "Tab no longer found"))
                continue
            directory.close_tab(current.window_position, current.tab_position)
        except TabDirectoryError as exc:
            result.failed.append((tab.url, str(exc)))
            if stderr is not None:
                print(f"Failed to close {clip(tab.url, 80)}: {exc}", file=stderr)
            continue
        result.closed.append(tab.url)
        if stderr is not None:
            print(f"Closed: {clip(tab.title or tab.url, 60)}", file=stderr)
        if pacing_sec > 0:
            sleep_fn(pacing_sec)
    return result
