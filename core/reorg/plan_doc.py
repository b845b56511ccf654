"""Plan documents: two parsers feeding one canonical recommendation list, plus the writer.

A recommendations document carries each window twice: a fenced ```json block
with `recommended_windows`, and `#### N. Name` headings followed by
`**Purpose:**`, `**Estimated tabs:**`, `**Priority:**` and `**Key domains:**`
lines. Hand-written plans may carry only the headings (`N. **Name**` works as
well). The structured block wins whenever it is present.
"""

from __future__ import annotations

import json
import re
from typing import Dict, Iterable, List, Optional, Sequence, Union

from core.browser.models import WindowGroup
from core.export.parsing import ListedTab

from .models import UrlSelection, WindowRecommendation

FENCED_JSON_RE = re.compile(r"```(?:json)?[ \t]*\n(.*?)\n```", re.DOTALL | re.IGNORECASE)
NUMBERED_HEADING_RE = re.compile(r"^(?:#{1,6}\s*)?\d+\.\s*(?:\*\*(?P<bold>.+?)\*\*|(?P<plain>.+?))\s*$")
FIELD_RE = re.compile(r"^\*\*(?P<label>[^*]+?):\*\*\s*(?P<value>.*)$")
PRIORITIES = {"high", "medium", "low"}

PlanSource = Union[str, Dict, Sequence[WindowRecommendation]]


class PlanError(ValueError):
    pass


def _as_int(value: object, default: int = 0) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        match = re.search(r"\d+", str(value or ""))
        return int(match.group(0)) if match else default


def _normalize_priority(value: object) -> str:
    candidate = str(value or "").strip().lower()
    return candidate if candidate in PRIORITIES else "medium"


def _split_domains(value: Union[str, Iterable[str], None]) -> tuple:
    if value is None:
        return ()
    items = value.split(",") if isinstance(value, str) else value
    return tuple(d for d in (str(item).strip().lower() for item in items) if d)


def _url_selections(raw: object) -> tuple:
    if not isinstance(raw, list):
        return ()
    out = []
    for entry in raw:
        if isinstance(entry, str) and entry.strip():
            out.append(UrlSelection(url=entry.strip()))
        elif isinstance(entry, dict) and str(entry.get("url") or "").strip():
            out.append(UrlSelection(url=str(entry["url"]).strip(), reason=str(entry.get("reason") or "").strip()))
    return tuple(out)


def recommendation_from_dict(raw: Dict) -> Optional[WindowRecommendation]:
    name = str(raw.get("window_name") or raw.get("name") or "").strip()
    if not name:
        return None
    return WindowRecommendation(
        name=name,
        purpose=str(raw.get("purpose") or "").strip(),
        domains=_split_domains(raw.get("tab_domains") or raw.get("domains")),
        urls=_url_selections(raw.get("urls") or raw.get("tabs")),
        estimated_tabs=_as_int(raw.get("estimated_tab_count")),
        priority=_normalize_priority(raw.get("priority")),
    )


def recommendations_from_dict(payload: Dict) -> List[WindowRecommendation]:
    raw_windows = payload.get("recommended_windows")
    if not isinstance(raw_windows, list):
        return []
    recs = (recommendation_from_dict(w) for w in raw_windows if isinstance(w, dict))
    return [rec for rec in recs if rec is not None]


def parse_structured_block(markdown: str) -> Optional[List[WindowRecommendation]]:
    """Recommendations from the first JSON object holding `recommended_windows`.

    Returns None when the document has no such object.
    """
    candidates = [m.group(1) for m in FENCED_JSON_RE.finditer(markdown)]
    if markdown.lstrip().startswith("{"):
        candidates.append(markdown)
    for candidate in candidates:
        try:
            payload = json.loads(candidate)
        except ValueError:
            continue
        if isinstance(payload, dict) and "recommended_windows" in payload:
            return recommendations_from_dict(payload)
    return None


def parse_heading_text(markdown: str) -> List[WindowRecommendation]:
    """Recommendations from numbered headings and their `**Label:**` lines.

    A numbered heading only becomes a window once at least one known label
    follows it, so ordinary numbered lists are ignored.
    """
    recs: List[WindowRecommendation] = []
    current: Optional[Dict] = None

    def flush():
        if current is not None and current["fields"]:
            recs.append(
                WindowRecommendation(
                    name=current["name"],
                    purpose=current["purpose"],
                    domains=current["domains"],
                    estimated_tabs=current["estimated"],
                    priority=current["priority"],
                )
            )

    in_fence = False
    for raw_line in markdown.splitlines():
        line = raw_line.strip()
        if line.startswith("```"):
            in_fence = not in_fence
            continue
        if in_fence:
            continue

        heading = NUMBERED_HEADING_RE.match(line)
        if heading:
            flush()
            name = (heading.group("bold") or heading.group("plain") or "").strip()
            current = {"name": name, "purpose": "", "domains": (), "estimated": 0, "priority": "medium", "fields": 0}
            continue
        if line.startswith("#"):
            flush()
            current = None
            continue
        if current is None:
            continue

        field = FIELD_RE.match(line)
        if not field:
            continue
        label = field.group("label").strip().lower()
        value = field.group("value").strip()
        if label == "purpose":
            current["purpose"] = value
        elif label == "estimated tabs":
            current["estimated"] = _as_int(value)
        elif label == "priority":
            current["priority"] = _normalize_priority(value)
        elif label == "key domains":
            current["domains"] = _split_domains(value)
        else:
            continue
        current["fields"] += 1

    flush()
    return recs


def parse_plan_document(markdown: str) -> List[WindowRecommendation]:
    recs = parse_structured_block(markdown)
    if not recs:
        recs = parse_heading_text(markdown)
    if not recs:
        raise PlanError("No window recommendations found in plan document")
    return recs


def recommendations_from_source(source: PlanSource) -> List[WindowRecommendation]:
    if isinstance(source, str):
        return parse_plan_document(source)
    if isinstance(source, dict):
        recs = recommendations_from_dict(source)
        if not recs:
            raise PlanError("Plan object has no recommended_windows")
        return recs
    return list(source)


def _recommendation_json(rec: WindowRecommendation) -> Dict:
    out: Dict = {
        "window_name": rec.name,
        "purpose": rec.purpose,
        "tab_domains": list(rec.domains),
        "estimated_tab_count": rec.estimated_tabs,
        "priority": rec.priority,
    }
    if rec.urls:
        out["urls"] = [{"url": u.url, "reason": u.reason} for u in rec.urls]
    return out


def render_recommendations_doc(
    windows: Sequence[WindowGroup[ListedTab]],
    narrative: str,
    structured: Dict,
    *,
    source: str,
    ts: str,
) -> str:
    total = sum(w.tab_count for w in windows)
    lines: List[str] = [
        "# Chrome Tab Organization Recommendations",
        f"Generated: {ts}",
        f"Source: {source}",
        f"Total tabs: {total} across {len(windows)} windows",
        "",
        "## AI Analysis",
        "",
        (narrative or "No recommendations generated").strip(),
        "",
    ]

    recs = recommendations_from_dict(structured)
    analysis = structured.get("analysis") if isinstance(structured.get("analysis"), dict) else None
    if analysis is not None or recs:
        lines += ["## Structured Recommendations", ""]
    elif structured.get("raw_response"):
        lines += ["## Structured Recommendations", "", str(structured["raw_response"]).strip(), ""]

    if analysis is not None:
        lines += ["### Current State Analysis", f"**Current Organization:** {analysis.get('current_state', '')}", ""]
        for label, key in (("Main Issues", "main_issues"), ("Identified Patterns", "identified_patterns")):
            values = analysis.get(key)
            if isinstance(values, list) and values:
                lines.append(f"**{label}:**")
                lines += [f"- {v}" for v in values]
                lines.append("")

    if recs:
        lines += ["### Recommended Window Organization", ""]
        for idx, rec in enumerate(recs, start=1):
            lines.append(f"#### {idx}. {rec.name}")
            lines.append(f"**Purpose:** {rec.purpose}")
            lines.append(f"**Estimated tabs:** {rec.estimated_tabs}")
            lines.append(f"**Priority:** {rec.priority}")
            if rec.domains:
                lines.append(f"**Key domains:** {', '.join(rec.domains)}")
            lines.append("")

    actions = [a for a in structured.get("specific_actions") or [] if isinstance(a, dict)]
    if actions:
        lines += ["### Specific Actions", ""]
        for idx, action in enumerate(actions, start=1):
            lines.append(f"{idx}. **{str(action.get('action') or 'action').replace('_', ' ').upper()}**")
            lines.append(f"   - Description: {action.get('description', '')}")
            affected = action.get("tabs_affected")
            if isinstance(affected, list) and affected:
                lines.append(f"   - Affects: {', '.join(str(a) for a in affected)}")
            lines.append(f"   - Benefit: {action.get('reason', '')}")
            lines.append("")

    benefits = structured.get("productivity_benefits")
    if isinstance(benefits, list) and benefits:
        lines += ["### Expected Productivity Benefits", ""]
        lines += [f"- {b}" for b in benefits]
        lines.append("")

    if recs:
        block = {
            "recommended_windows": [_recommendation_json(r) for r in recs],
            "specific_actions": actions,
        }
        lines += ["### Machine-readable plan", "", "```json", json.dumps(block, indent=2), "```", ""]

    lines += ["## Current Window Details (for reference)", ""]
    for window in windows:
        lines.append(f"### Window {window.window_index} ({window.tab_count} tabs)")
        by_domain: Dict[str, List[str]] = {}
        for tab in window.tabs:
            by_domain.setdefault(tab.domain, []).append(tab.title)
        for domain, titles in by_domain.items():
            lines.append(f"**{domain}** ({len(titles)} tabs):")
            lines += [f"  - {title}" for title in titles]
        lines.append("")
    return "\n".join(lines)
