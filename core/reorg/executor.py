"""Reorganization Executor.

Chrome renumbers windows and tabs after every create, move or close, so no
position survives a mutation. Each move re-reads the directory, finds the tab
by URL and the destination window by its stable id, and only then mutates.
"""

from __future__ import annotations

import time
from typing import Callable, List, Optional, Protocol, Sequence, TextIO

from core.browser.chrome import TabDirectoryError, find_tab_by_url, find_window_position
from core.browser.models import TabRef
from core.tab_policy.text import clip

from .models import PlannedTab, ReorgFailure, ReorgOutcome, ReorgTarget

PLACEHOLDER_PREFIXES = ("chrome://newtab", "chrome://new-tab-page", "about:blank")


class TabDirectory(Protocol):
    def list_tabs(self) -> List[TabRef]: ...

    def create_window(self) -> int: ...

    def move_tab(self, from_window: int, from_pos: int, to_window: int) -> None: ...

    def close_tab(self, window: int, pos: int) -> None: ...


def _emit(stderr: Optional[TextIO], message: str) -> None:
    if stderr is not None:
        print(message, file=stderr)


def _window_id_at(tabs: Sequence[TabRef], position: Optional[int]) -> Optional[int]:
    for tab in tabs:
        if tab.window_position == position:
            return tab.window_id
    return None


def _destination_position(tabs: Sequence[TabRef], window_id: Optional[int], fallback: Optional[int]) -> Optional[int]:
    if window_id is None:
        if fallback is not None and any(t.window_position == fallback for t in tabs):
            return fallback
        return None
    return find_window_position(tabs, window_id)


def _in_window(tab: TabRef, window_id: Optional[int], position: int) -> bool:
    if window_id is not None and tab.window_id is not None:
        return tab.window_id == window_id
    return tab.window_position == position


class _Run:
    def __init__(
        self,
        directory: TabDirectory,
        outcome: ReorgOutcome,
        pacing_sec: float,
        sleep_fn: Callable[[float], None],
        stderr: Optional[TextIO],
    ):
        self.directory = directory
        self.outcome = outcome
        self.pacing_sec = pacing_sec
        self.sleep_fn = sleep_fn
        self.stderr = stderr

    def pace(self) -> None:
        if self.pacing_sec > 0:
            self.sleep_fn(self.pacing_sec)

    def fail(self, target: ReorgTarget, url: str, reason: str) -> None:
        self.outcome.failures.append(ReorgFailure(target=target.name, url=url, reason=reason))
        _emit(self.stderr, f"   Failed: {clip(url, 80)} ({reason})")

    def move(self, target: ReorgTarget, planned: PlannedTab, dest_id: Optional[int], dest_fallback: Optional[int]) -> None:
        url = planned.tab.url
        try:
            fresh = self.directory.list_tabs()
        except TabDirectoryError as exc:
            self.fail(target, url, f"Could not read tabs: {exc}")
            return

        dest_pos = _destination_position(fresh, dest_id, dest_fallback)
        if dest_pos is None:
            self.fail(target, url, "Destination window no longer exists")
            return

        outside = [t for t in fresh if not _in_window(t, dest_id, dest_pos)]
        current = find_tab_by_url(outside, url)
        if current is None:
            if find_tab_by_url(fresh, url) is not None:
                self.outcome.already_in_place += 1
                return
            self.fail(target, url, "Tab no longer found")
            return

        _emit(self.stderr, f"   Moving: {clip(current.title or url, 50)}")
        try:
            self.directory.move_tab(current.window_position, current.tab_position, dest_pos)
        except TabDirectoryError as exc:
            self.fail(target, url, str(exc))
        else:
            self.outcome.tabs_moved += 1
        self.pace()

    def close_placeholder(self, target: ReorgTarget, window_id: int) -> None:
        try:
            fresh = self.directory.list_tabs()
        except TabDirectoryError as exc:
            _emit(self.stderr, f"   Could not tidy new window: {exc}")
            return
        window_tabs = [t for t in fresh if t.window_id == window_id]
        placeholders = [t for t in window_tabs if t.url.lower().startswith(PLACEHOLDER_PREFIXES)]
        if not placeholders or len(window_tabs) <= len(placeholders):
            return
        tab = placeholders[0]
        try:
            self.directory.close_tab(tab.window_position, tab.tab_position)
        except TabDirectoryError as exc:
            _emit(self.stderr, f"   Could not close new-tab page in {target.name}: {exc}")
            return
        self.outcome.placeholders_closed += 1
        self.pace()


def execute_plan(
    targets: Sequence[ReorgTarget],
    directory: TabDirectory,
    *,
    pacing_sec: float = 0.2,
    sleep_fn: Callable[[float], None] = time.sleep,
    stderr: Optional[TextIO] = None,
) -> ReorgOutcome:
    """Apply `targets` in order; per-tab problems become `outcome.failures`.

    Only the initial directory read may raise (`TabDirectoryError`).
    """
    initial = directory.list_tabs()
    outcome = ReorgOutcome()
    run = _Run(directory, outcome, pacing_sec, sleep_fn, stderr)

    for target in targets:
        _emit(stderr, f"Processing: {target.name}...")
        if target.creates_window:
            try:
                dest_id: Optional[int] = directory.create_window()
            except TabDirectoryError as exc:
                for planned in target.tabs:
                    run.fail(target, planned.tab.url, f"Could not create window: {exc}")
                continue
            outcome.windows_created += 1
            dest_fallback = None
            run.pace()
        else:
            dest_fallback = target.existing_window_index
            dest_id = _window_id_at(initial, dest_fallback)
            if dest_id is None and _destination_position(initial, None, dest_fallback) is None:
                for planned in target.tabs:
                    run.fail(target, planned.tab.url, f"Window {dest_fallback} does not exist")
                continue

        for planned in target.tabs:
            run.move(target, planned, dest_id, dest_fallback)

        if target.creates_window and dest_id is not None:
            run.close_placeholder(target, dest_id)

    _emit(
        stderr,
        f"Reorganization complete: {outcome.windows_created} new windows, "
        f"{outcome.tabs_moved} tabs moved, {outcome.already_in_place} already in place, "
        f"{len(outcome.failures)} failures",
    )
    return outcome
