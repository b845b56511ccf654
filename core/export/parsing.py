"""Parsing of tab-listing documents written by the dump and export modes."""

import re
from dataclasses import dataclass
from typing import Dict, List, Optional, Tuple

from core.browser.models import WindowGroup

from .urls import domain_of

WINDOW_HEADER_RE = re.compile(r"^#{1,3}\s*(?:\*\*)?Window\s+(\d+)(?:\*\*)?\s*\((\d+)\s+tabs?\)", re.IGNORECASE)
WINDOW_BULLET_RE = re.compile(r"^-?\s*\*\*Window\s+(\d+)\*\*\s*\((\d+)\s+tabs?\)", re.IGNORECASE)
LIST_MARKER_RE = re.compile(r"^(?:[-*+]|\d+\.)\s+")
DOMAIN_SUFFIX_RE = re.compile(r"^\(([^()\s]+)\)\s*(?:-\s*(.*))?$")
BARE_URL_RE = re.compile(r"https?://[^\s)\]>]+")


@dataclass(frozen=True)
class ListedTab:
    title: str
    url: str
    domain: str
    summary: Optional[str]
    window_position: int
    tab_position: int


def _scan_delimited(text: str, idx: int, opener: str, closer: str) -> Optional[Tuple[str, int]]:
    """Read a balanced `opener...closer` run starting at `text[idx]`, honoring backslash escapes."""
    if idx >= len(text) or text[idx] != opener:
        return None
    idx += 1
    depth = 1
    chars: List[str] = []
    escaped = False
    while idx < len(text):
        ch = text[idx]
        idx += 1
        if escaped:
            chars.append(ch)
            escaped = False
            continue
        if ch == "\\":
            escaped = True
            continue
        if ch == opener:
            depth += 1
        elif ch == closer:
            depth -= 1
            if depth == 0:
                return "".join(chars), idx
        chars.append(ch)
    return None


def _scan_link_target(text: str, idx: int) -> Optional[Tuple[str, int]]:
    """Read `(url)` or `(<url>)` starting at `text[idx]`."""
    if text[idx:idx + 2] != "(<":
        return _scan_delimited(text, idx, "(", ")")
    angled = _scan_delimited(text, idx + 1, "<", ">")
    if angled is None:
        return None
    url, idx = angled
    while idx < len(text) and text[idx].isspace():
        idx += 1
    if idx >= len(text) or text[idx] != ")":
        return None
    return url, idx + 1


def split_markdown_link(text: str) -> Optional[Tuple[str, str, str]]:
    """Split `[title](url) rest` into `(title, url, rest)`."""
    stripped = text.strip()
    title_part = _scan_delimited(stripped, 0, "[", "]")
    if title_part is None:
        return None
    title, idx = title_part
    while idx < len(stripped) and stripped[idx].isspace():
        idx += 1
    url_part = _scan_link_target(stripped, idx)
    if url_part is None:
        return None
    url, idx = url_part

    title = title.strip()
    url = url.strip()
    if not title or not url:
        return None
    return title, url, stripped[idx:].strip()


def parse_link_line(line: str) -> Optional[Tuple[str, str, str]]:
    """Parse a list item holding a link: `- [t](u) ...`, `    - [t](u) ...` or `1. [t](u) ...`."""
    stripped = line.strip()
    marker = LIST_MARKER_RE.match(stripped)
    if not marker:
        return None
    return split_markdown_link(stripped[marker.end():])


def _window_header(line: str) -> Optional[int]:
    stripped = line.strip()
    match = WINDOW_HEADER_RE.match(stripped) or WINDOW_BULLET_RE.match(stripped)
    return int(match.group(1)) if match else None


def parse_listing(markdown: str) -> List[WindowGroup[ListedTab]]:
    """Windows and tabs from a fast-dump or full-export document.

    Tab lines before the first window header are ignored; a repeated window
    header continues the existing group.
    """
    groups: List[WindowGroup[ListedTab]] = []
    by_index: Dict[int, WindowGroup[ListedTab]] = {}
    current: Optional[WindowGroup[ListedTab]] = None

    for line in markdown.splitlines():
        window_index = _window_header(line)
        if window_index is not None:
            current = by_index.get(window_index)
            if current is None:
                current = WindowGroup(window_index=window_index)
                by_index[window_index] = current
                groups.append(current)
            continue
        if current is None:
            continue

        parsed = parse_link_line(line)
        if parsed is None:
            continue
        title, url, rest = parsed
        domain = domain_of(url)
        summary = None
        match = DOMAIN_SUFFIX_RE.match(rest)
        if match:
            domain = match.group(1)
            summary = (match.group(2) or "").strip() or None
        elif rest.startswith("-"):
            summary = rest[1:].strip() or None

        current.tabs.append(
            ListedTab(
                title=title,
                url=url,
                domain=domain,
                summary=summary,
                window_position=current.window_index,
                tab_position=len(current.tabs) + 1,
            )
        )
    return groups


def extract_urls(markdown: str) -> List[str]:
    """Every http(s) URL in `markdown`, from links and bare text, first-seen order."""
    seen: Dict[str, None] = {}
    for line in markdown.splitlines():
        parsed = parse_link_line(line)
        text = line
        if parsed is not None:
            if parsed[1].lower().startswith(("http://", "https://")):
                seen.setdefault(parsed[1], None)
            # Only text after the link; its title and target are already read.
            text = parsed[2]
        for match in BARE_URL_RE.finditer(text):
            seen.setdefault(match.group(0), None)
    return list(seen)
