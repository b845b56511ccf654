"""Data models for browser tab snapshots."""

from dataclasses import dataclass, field
from typing import Generic, List, Optional, Sequence, TypeVar


@dataclass(frozen=True)
class TabRef:
    """One open tab as the browser reported it at a single instant.

    `window_position` and `tab_position` are 1-based and only valid until the
    next mutating call; `url` is the only identity that survives mutations.
    """

    title: str
    url: str
    window_position: int
    tab_position: int
    window_id: Optional[int] = None


T = TypeVar("T")


@dataclass
class WindowGroup(Generic[T]):
    window_index: int
    tabs: List[T] = field(default_factory=list)

    @property
    def tab_count(self) -> int:
        return len(self.tabs)


def group_by_window(items: Sequence[T]) -> List[WindowGroup[T]]:
    """Regroup a flat, window-major list by each item's `window_position`.

    Groups appear in first-seen order and tabs keep their relative order.
    """
    groups: List[WindowGroup[T]] = []
    by_index = {}
    for item in items:
        index = int(getattr(item, "window_position"))
        group = by_index.get(index)
        if group is None:
            group = WindowGroup(window_index=index)
            by_index[index] = group
            groups.append(group)
        group.tabs.append(item)
    return groups
