"""Pytest configuration: shared markers and an in-memory Chrome tab directory."""

from typing import Dict, List, Optional, Sequence, Tuple

import pytest

from core.browser.chrome import TabDirectoryError
from core.browser.models import TabRef


def pytest_configure(config):
    config.addinivalue_line(
        "markers",
        "integration: multi-module scenarios wired together with in-memory fakes.",
    )


class FakeChrome:
    """Tab directory that renumbers like Chrome does.

    New windows take position 1 (front-most), a window whose last tab leaves
    disappears, and every mutation shifts the positions of later tabs.
    """

    NEW_TAB_URL = "chrome://newtab/"

    def __init__(self, windows: Sequence[Sequence[Tuple[str, str]]] = ()):
        self.windows: List[Dict] = []
        self._next_id = 100
        for tabs in windows:
            self.windows.append({"id": self._take_id(), "tabs": [list(t) for t in tabs]})
        self.calls: List[Tuple] = []
        self.fail_move_urls = set()
        self.fail_create = False
        self.list_error: Optional[str] = None

    def _take_id(self) -> int:
        self._next_id += 1
        return self._next_id

    def list_tabs(self) -> List[TabRef]:
        self.calls.append(("list",))
        if self.list_error:
            raise TabDirectoryError(self.list_error)
        out = []
        for w_idx, window in enumerate(self.windows, start=1):
            for t_idx, (title, url) in enumerate(window["tabs"], start=1):
                out.append(TabRef(title=title, url=url, window_position=w_idx, tab_position=t_idx, window_id=window["id"]))
        return out

    def create_window(self) -> int:
        self.calls.append(("create",))
        if self.fail_create:
            raise TabDirectoryError("Cannot create window")
        window_id = self._take_id()
        self.windows.insert(0, {"id": window_id, "tabs": [["New Tab", self.NEW_TAB_URL]]})
        return window_id

    def _window(self, position: int) -> Dict:
        if not 1 <= position <= len(self.windows):
            raise TabDirectoryError(f"Invalid window index {position}")
        return self.windows[position - 1]

    def _drop_empty(self) -> None:
        self.windows = [w for w in self.windows if w["tabs"]]

    def move_tab(self, from_window: int, from_pos: int, to_window: int) -> None:
        self.calls.append(("move", from_window, from_pos, to_window))
        source = self._window(from_window)
        target = self._window(to_window)
        if not 1 <= from_pos <= len(source["tabs"]):
            raise TabDirectoryError(f"Invalid tab index {from_pos}")
        if source["tabs"][from_pos - 1][1] in self.fail_move_urls:
            raise TabDirectoryError("Chrome got an error: can't move tab")
        tab = source["tabs"].pop(from_pos - 1)
        target["tabs"].append(tab)
        self._drop_empty()

    def close_tab(self, window: int, pos: int) -> None:
        self.calls.append(("close", window, pos))
        source = self._window(window)
        if not 1 <= pos <= len(source["tabs"]):
            raise TabDirectoryError(f"Invalid tab index {pos}")
        source["tabs"].pop(pos - 1)
        self._drop_empty()

    def urls_by_window(self) -> List[List[str]]:
        return [[url for _title, url in w["tabs"]] for w in self.windows]


@pytest.fixture
def fake_chrome():
    return FakeChrome
