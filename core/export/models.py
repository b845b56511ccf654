"""Data models for content export."""

from dataclasses import dataclass
from enum import Enum
from typing import Optional

from core.browser.models import TabRef


class FetchStatus(str, Enum):
    SUCCESS = "success"
    SKIPPED = "skipped"
    FAILED = "failed"


@dataclass(frozen=True)
class FetchResult:
    title: str
    url: str
    window_position: int
    tab_position: int
    status: FetchStatus
    content: str = ""
    word_count: int = 0
    skip_reason: Optional[str] = None
    summary: Optional[str] = None
    summary_generated: bool = False
    last_error: Optional[str] = None
    summary_error: Optional[str] = None
    attempts: int = 0

    @classmethod
    def from_tab(cls, tab: TabRef, status: FetchStatus, **fields) -> "FetchResult":
        return cls(
            title=tab.title,
            url=tab.url,
            window_position=tab.window_position,
            tab_position=tab.tab_position,
            status=status,
            **fields,
        )

    @property
    def succeeded(self) -> bool:
        return self.status is FetchStatus.SUCCESS

    @property
    def skipped(self) -> bool:
        return self.status is FetchStatus.SKIPPED

    @property
    def failed(self) -> bool:
        return self.status is FetchStatus.FAILED


@dataclass(frozen=True)
class PipelineCounts:
    total: int = 0
    succeeded: int = 0
    skipped: int = 0
    failed: int = 0
    summarized: int = 0
