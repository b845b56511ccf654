"""Google Chrome tab directory driven through `osascript`.

Every positional argument (window/tab index) is only meaningful right after a
fresh `list_tabs()`: Chrome renumbers windows by z-order and tabs by strip
position whenever anything moves, closes or opens. Window ids are stable for
the life of a window and are carried on each `TabRef` so callers can find a
window again after the numbering shifts.
"""

import json
import subprocess
from typing import Callable, List, Optional, Sequence

from .models import TabRef

OSASCRIPT = "/usr/bin/osascript"
DEFAULT_TIMEOUT_SEC = 30

LIST_TABS_JXA = """
const chrome = Application("Google Chrome");
const windows = chrome.windows();
const out = [];
for (let i = 0; i < windows.length; i++) {
    const w = windows[i];
    const tabs = w.tabs();
    const rows = [];
    for (let j = 0; j < tabs.length; j++) {
        rows.push({title: tabs[j].title(), url: tabs[j].url()});
    }
    out.push({index: i + 1, id: w.id(), tabs: rows});
}
JSON.stringify(out);
"""


class TabDirectoryError(RuntimeError):
    pass


def _describe_failure(detail: str) -> str:
    lowered = detail.lower()
    if "isn't running" in lowered or "-600" in lowered:
        return "Google Chrome is not running. Start it and try again."
    if "not authorized" in lowered or "-1743" in lowered:
        return (
            "Not allowed to control Google Chrome. Grant access in "
            "System Settings > Privacy & Security > Automation."
        )
    if "got an error" in lowered:
        return f"Cannot access Chrome: {detail}"
    return detail or "osascript failed"


def parse_tab_listing(raw: str) -> List[TabRef]:
    try:
        windows = json.loads(raw.strip() or "[]")
    except ValueError as exc:
        raise TabDirectoryError(f"Unreadable tab listing: {raw[:200]}") from exc
    if not isinstance(windows, list):
        raise TabDirectoryError("Unreadable tab listing: expected a list of windows")

    tabs: List[TabRef] = []
    for w_offset, window in enumerate(windows):
        if not isinstance(window, dict):
            continue
        window_position = int(window.get("index") or w_offset + 1)
        window_id = window.get("id")
        for t_offset, tab in enumerate(window.get("tabs") or []):
            if not isinstance(tab, dict):
                continue
            tabs.append(
                TabRef(
                    title=str(tab.get("title") or ""),
                    url=str(tab.get("url") or ""),
                    window_position=window_position,
                    tab_position=t_offset + 1,
                    window_id=int(window_id) if window_id is not None else None,
                )
            )
    return tabs


class ChromeTabDirectory:
    """Read and mutate Chrome's windows/tabs through AppleScript and JXA."""

    def __init__(
        self,
        *,
        run_fn: Callable[..., subprocess.CompletedProcess] = subprocess.run,
        timeout_sec: float = DEFAULT_TIMEOUT_SEC,
    ):
        self._run = run_fn
        self._timeout = timeout_sec

    def _osascript(self, script: str, *, javascript: bool = False) -> str:
        cmd = [OSASCRIPT]
        if javascript:
            cmd += ["-l", "JavaScript"]
        cmd += ["-e", script]
        try:
            proc = self._run(cmd, capture_output=True, text=True, timeout=self._timeout)
        except subprocess.TimeoutExpired as exc:
            raise TabDirectoryError(f"osascript timed out after {self._timeout}s") from exc
        except OSError as exc:
            raise TabDirectoryError(f"osascript unavailable: {exc}") from exc
        if proc.returncode != 0:
            detail = (proc.stderr or proc.stdout or "").strip()
            raise TabDirectoryError(_describe_failure(detail))
        return proc.stdout or ""

    def list_tabs(self) -> List[TabRef]:
        return parse_tab_listing(self._osascript(LIST_TABS_JXA, javascript=True))

    def create_window(self) -> int:
        """Open a new window and return its stable id."""
        out = self._osascript(
            'tell application "Google Chrome"\n'
            "    set newWindow to make new window\n"
            "    return id of newWindow\n"
            "end tell"
        )
        try:
            return int(out.strip())
        except ValueError as exc:
            raise TabDirectoryError(f"Unexpected window id from Chrome: {out.strip()!r}") from exc

    def move_tab(self, from_window: int, from_pos: int, to_window: int) -> None:
        self._osascript(
            'tell application "Google Chrome"\n'
            f"    move tab {int(from_pos)} of window {int(from_window)} to end of tabs of window {int(to_window)}\n"
            "end tell"
        )

    def close_tab(self, window: int, pos: int) -> None:
        self._osascript(
            'tell application "Google Chrome"\n'
            f"    close tab {int(pos)} of window {int(window)}\n"
            "end tell"
        )


def find_tab_by_url(tabs: Sequence[TabRef], url: str) -> Optional[TabRef]:
    """First tab whose URL equals `url`; duplicates resolve to the earliest."""
    for tab in tabs:
        if tab.url == url:
            return tab
    return None


def find_window_position(tabs: Sequence[TabRef], window_id: Optional[int]) -> Optional[int]:
    if window_id is None:
        return None
    for tab in tabs:
        if tab.window_id == window_id:
            return tab.window_position
    return None
