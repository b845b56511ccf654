"""Data models for tab reorganization plans and their execution."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional, Tuple

from core.browser.models import TabRef


class TargetAction(str, Enum):
    CREATE_NEW_WINDOW = "create_new_window"
    USE_EXISTING_WINDOW = "use_existing_window"


@dataclass(frozen=True)
class UrlSelection:
    url: str
    reason: str = ""


@dataclass(frozen=True)
class WindowRecommendation:
    """One recommended window as written in a plan document.

    A recommendation selects tabs either by explicit `urls` or, when it has
    none, by `domains` patterns.
    """

    name: str
    purpose: str = ""
    domains: Tuple[str, ...] = ()
    urls: Tuple[UrlSelection, ...] = ()
    estimated_tabs: int = 0
    priority: str = "medium"

    @property
    def selects_by_url(self) -> bool:
        return bool(self.urls)


@dataclass(frozen=True)
class PlannedTab:
    tab: TabRef
    matched_by: str
    rule: str
    reason: str = ""


@dataclass
class ReorgTarget:
    name: str
    purpose: str
    action: TargetAction
    existing_window_index: Optional[int] = None
    domains: Tuple[str, ...] = ()
    urls: Tuple[UrlSelection, ...] = ()
    priority: str = "medium"
    tabs: List[PlannedTab] = field(default_factory=list)

    @property
    def creates_window(self) -> bool:
        return self.action is TargetAction.CREATE_NEW_WINDOW

    @property
    def tab_count(self) -> int:
        return len(self.tabs)


@dataclass(frozen=True)
class ReorgFailure:
    target: str
    url: str
    reason: str


@dataclass
class ReorgOutcome:
    tabs_moved: int = 0
    windows_created: int = 0
    already_in_place: int = 0
    placeholders_closed: int = 0
    failures: List[ReorgFailure] = field(default_factory=list)

    def to_dict(self) -> Dict:
        return {
            "tabs_moved": self.tabs_moved,
            "windows_created": self.windows_created,
            "already_in_place": self.already_in_place,
            "placeholders_closed": self.placeholders_closed,
            "failures": [
                {"target": f.target, "url": f.url, "reason": f.reason} for f in self.failures
            ],
        }
