"""AI reorganization analysis over a parsed tab listing."""

from __future__ import annotations

import json
from concurrent.futures import ThreadPoolExecutor
from typing import Callable, Dict, List, Sequence, Tuple

from core.browser.models import WindowGroup
from core.export.parsing import ListedTab
from core.tab_policy.taxonomy import CATEGORY_RULES

CompleteFn = Callable[[str, str], str]

NARRATIVE_SYSTEM_PROMPT = """You are a productivity expert who helps users organize their browser tabs efficiently. You will analyze Chrome browser tabs across multiple windows and provide structured recommendations for reorganizing them into logical groups.

Your task is to:
1. Think through the tab patterns and relationships step by step
2. Identify natural groupings based on domains, topics, work contexts, etc.
3. Provide specific, actionable recommendations for window organization"""

NARRATIVE_FOCUS = """Focus on practical productivity improvements like grouping by:
- General personal (personal vs work vs side projects)
- Different work projects/contexts
- Research topics
- Social media/entertainment
- Tools/utilities
- Shopping/commerce
- Documentation/references"""

STRUCTURED_SYSTEM_PROMPT = """You are a browser productivity expert. Analyze the provided tabs and create a structured reorganization plan.

Return your response as a JSON object with this exact structure:
{
  "analysis": {
    "current_state": "Brief description of current organization",
    "main_issues": ["Issue 1", "Issue 2"],
    "identified_patterns": ["Pattern 1", "Pattern 2"]
  },
  "recommended_windows": [
    {
      "window_name": "Descriptive name for this window group",
      "purpose": "What this window is for",
      "tab_domains": ["domain1.com", "domain2.com"],
      "estimated_tab_count": 0,
      "priority": "high|medium|low"
    }
  ],
  "specific_actions": [
    {
      "action": "create_new_window|move_tabs|close_duplicates",
      "description": "What to do",
      "tabs_affected": ["domain1.com"],
      "reason": "Why this helps productivity"
    }
  ],
  "productivity_benefits": ["Benefit 1", "Benefit 2"]
}"""


def categorize_tab(domain: str, title: str) -> str:
    domain_norm = str(domain or "").lower()
    title_norm = str(title or "").lower()
    for category, domain_keywords, title_keywords in CATEGORY_RULES:
        if any(k in domain_norm for k in domain_keywords) or any(k in title_norm for k in title_keywords):
            return category
    return "general"


def _total_tabs(windows: Sequence[WindowGroup[ListedTab]]) -> int:
    return sum(w.tab_count for w in windows)


def narrative_payload(windows: Sequence[WindowGroup[ListedTab]]) -> List[Dict]:
    return [
        {
            "windowIndex": w.window_index,
            "tabCount": w.tab_count,
            "tabs": [
                {"title": t.title, "url": t.url, "domain": t.domain, "summary": t.summary}
                for t in w.tabs
            ],
        }
        for w in windows
    ]


def structured_payload(windows: Sequence[WindowGroup[ListedTab]]) -> List[Dict]:
    return [
        {
            "windowIndex": w.window_index,
            "tabCount": w.tab_count,
            "domains": list(dict.fromkeys(t.domain for t in w.tabs)),
            "tabs": [
                {"title": t.title, "domain": t.domain, "category": categorize_tab(t.domain, t.title)}
                for t in w.tabs
            ],
        }
        for w in windows
    ]


def get_narrative(windows: Sequence[WindowGroup[ListedTab]], *, complete_fn: CompleteFn) -> str:
    user = (
        f"Please analyze these Chrome tabs across {len(windows)} windows "
        f"({_total_tabs(windows)} total tabs) and provide reorganization recommendations.\n\n"
        f"Current tab organization:\n{json.dumps(narrative_payload(windows), indent=2)}\n\n"
        "Please provide:\n"
        "1. Chain of thought analysis of the current tab patterns\n"
        "2. Structured recommendations for reorganizing into logical windows\n"
        "3. Specific suggestions for which tabs to group together and why\n\n"
        f"{NARRATIVE_FOCUS}"
    )
    return complete_fn(NARRATIVE_SYSTEM_PROMPT, user) or "No recommendations generated"


def get_structured(windows: Sequence[WindowGroup[ListedTab]], *, complete_fn: CompleteFn) -> Dict:
    """Structured plan as a dict; a non-JSON reply comes back as `{"raw_response": text}`."""
    user = (
        f"Analyze these {len(windows)} Chrome windows with {_total_tabs(windows)} total tabs:\n\n"
        f"{json.dumps(structured_payload(windows), indent=2)}\n\n"
        "Provide a structured reorganization plan as JSON."
    )
    content = complete_fn(STRUCTURED_SYSTEM_PROMPT, user) or "{}"
    try:
        parsed = json.loads(content)
    except ValueError:
        return {"raw_response": content}
    if not isinstance(parsed, dict):
        return {"raw_response": content}
    return parsed


def analyze(
    windows: Sequence[WindowGroup[ListedTab]],
    *,
    narrative_fn: CompleteFn,
    structured_fn: CompleteFn,
) -> Tuple[str, Dict]:
    """Run the narrative and structured analyses concurrently; either failure propagates."""
    with ThreadPoolExecutor(max_workers=2) as executor:
        narrative = executor.submit(get_narrative, windows, complete_fn=narrative_fn)
        structured = executor.submit(get_structured, windows, complete_fn=structured_fn)
        return narrative.result(), structured.result()
