"""Tab-listing documents: the fast dump and the full export."""

from typing import List, Optional, Sequence

from core.browser.models import TabRef, WindowGroup

from .models import FetchResult, PipelineCounts
from .urls import domain_of

LINK_UNSAFE_CHARS = "()<>\\"


def escape_link_text(text: str) -> str:
    return str(text or "").replace("\\", "\\\\").replace("[", "\\[").replace("]", "\\]")


def link_target(url: str) -> str:
    """`url` as a link destination; anything a bare destination cannot carry goes in `<...>`."""
    if not any(ch in LINK_UNSAFE_CHARS or ch.isspace() for ch in url):
        return url
    escaped = url.replace("\\", "\\\\").replace("<", "\\<").replace(">", "\\>")
    return f"<{escaped}>"


def render_tab_line(title: str, url: str, suffix: Optional[str] = None) -> str:
    line = f"[{escape_link_text(title) or escape_link_text(url)}]({link_target(url)}) ({domain_of(url)})"
    if suffix:
        line += f" - {suffix}"
    return line


def result_suffix(result: FetchResult) -> Optional[str]:
    if result.summary_generated and result.summary:
        return result.summary
    if result.skipped:
        return f"*{result.skip_reason or 'Skipped'}*"
    if result.failed:
        return "*Content unavailable*"
    return None


def render_fast_markdown(groups: Sequence[WindowGroup[TabRef]], ts: str) -> str:
    total = sum(group.tab_count for group in groups)
    lines: List[str] = [
        f"# Chrome Tabs Fast Dump - {ts}",
        "",
        f"**{total} tabs across {len(groups)} windows**",
        "",
    ]
    for group in groups:
        lines.append(f"## Window {group.window_index} ({group.tab_count} tabs)")
        lines.append("")
        for tab in group.tabs:
            lines.append("- " + render_tab_line(tab.title, tab.url))
        lines.append("")
    return "\n".join(lines)


def render_full_markdown(
    groups: Sequence[WindowGroup[FetchResult]],
    counts: PipelineCounts,
    ts: str,
) -> str:
    lines: List[str] = [
        f"# Chrome Tabs Export - {ts}",
        "",
        f"**{counts.total} tabs across {len(groups)} windows**",
        f"- Content read: {counts.succeeded} tabs",
        f"- Skipped: {counts.skipped} tabs",
        f"- Failed: {counts.failed} tabs",
        f"- Summaries generated: {counts.summarized} tabs",
        "",
    ]
    for group in groups:
        lines.append(f"- **Window {group.window_index}** ({group.tab_count} tabs)")
        for result in group.tabs:
            lines.append("    - " + render_tab_line(result.title, result.url, result_suffix(result)))
        lines.append("")
    return "\n".join(lines)
