"""Reorganization Planner: plan source plus a tab snapshot into ordered targets."""

from __future__ import annotations

import urllib.parse
from typing import List, Optional, Sequence, Set, TextIO, Tuple

from core.browser.models import TabRef
from core.tab_policy.matching import match_domain_pattern
from core.tab_policy.text import clip

from .models import PlannedTab, ReorgTarget, TargetAction, WindowRecommendation
from .plan_doc import PlanSource, recommendations_from_source


def _host(url: str) -> Optional[str]:
    try:
        return (urllib.parse.urlsplit(url).hostname or "").lower() or None
    except ValueError:
        return None


def select_tabs(
    current_tabs: Sequence[TabRef],
    rec: WindowRecommendation,
    claimed: Set[int],
) -> List[PlannedTab]:
    """Tabs matched by `rec`, in snapshot order, skipping indexes already in `claimed`.

    Matched indexes are added to `claimed`.
    """
    wanted = {sel.url: sel.reason for sel in rec.urls}
    picked: List[PlannedTab] = []
    for idx, tab in enumerate(current_tabs):
        if idx in claimed:
            continue
        if rec.selects_by_url:
            if tab.url not in wanted:
                continue
            planned = PlannedTab(tab=tab, matched_by=tab.url, rule="url", reason=wanted[tab.url])
        else:
            host = _host(tab.url)
            hit = match_domain_pattern(host, rec.domains) if host else None
            if hit is None:
                continue
            planned = PlannedTab(tab=tab, matched_by=hit[0], rule=hit[1])
        claimed.add(idx)
        picked.append(planned)
    return picked


def plan_reorganization(
    current_tabs: Sequence[TabRef],
    plan_source: PlanSource,
    *,
    reuse_first_window: bool = True,
    existing_window_index: int = 1,
    stderr: Optional[TextIO] = None,
) -> List[ReorgTarget]:
    """Resolve each recommended window to the current tabs it should receive.

    The first recommendation reuses window `existing_window_index` when
    `reuse_first_window` is set; every other one gets a new window. Actions are
    fixed by position in the plan before empty targets are dropped. A tab goes
    to the first target that matches it.
    """
    claimed: Set[int] = set()
    targets: List[ReorgTarget] = []
    for position, rec in enumerate(recommendations_from_source(plan_source)):
        reuse = reuse_first_window and position == 0
        tabs = select_tabs(current_tabs, rec, claimed)
        if not tabs:
            if stderr is not None:
                print(f"Skipping {rec.name}: no matching tabs", file=stderr)
            continue
        targets.append(
            ReorgTarget(
                name=rec.name,
                purpose=rec.purpose,
                action=TargetAction.USE_EXISTING_WINDOW if reuse else TargetAction.CREATE_NEW_WINDOW,
                existing_window_index=existing_window_index if reuse else None,
                domains=rec.domains,
                urls=rec.urls,
                priority=rec.priority,
                tabs=tabs,
            )
        )
    return targets


def plan_totals(targets: Sequence[ReorgTarget]) -> Tuple[int, int]:
    """`(new_windows, tabs_to_move)` for a confirmation prompt."""
    return sum(1 for t in targets if t.creates_window), sum(t.tab_count for t in targets)


def describe_plan(targets: Sequence[ReorgTarget]) -> List[str]:
    lines: List[str] = []
    for target in targets:
        where = "new window" if target.creates_window else f"window {target.existing_window_index}"
        lines.append(f"{target.name} ({where}, priority {target.priority})")
        if target.purpose:
            lines.append(f"   Purpose: {target.purpose}")
        lines.append(f"   Matched tabs: {target.tab_count}")
        for planned in target.tabs:
            lines.append(f"     - {clip(planned.tab.title or planned.tab.url, 60)} [{planned.rule}: {planned.matched_by}]")
    return lines
