import json

import pytest

from core.browser.models import WindowGroup
from core.export.parsing import ListedTab
from core.reorg.models import UrlSelection, WindowRecommendation
from core.reorg.plan_doc import (
    PlanError,
    parse_heading_text,
    parse_plan_document,
    parse_structured_block,
    recommendations_from_source,
    render_recommendations_doc,
)

STRUCTURED = {
    "analysis": {
        "current_state": "Everything is mixed.",
        "main_issues": ["Work and shopping share a window"],
        "identified_patterns": ["Lots of docs"],
    },
    "recommended_windows": [
        {
            "window_name": "Docs",
            "purpose": "Reference material",
            "tab_domains": ["Docs.Example.com", "readthedocs.io"],
            "estimated_tab_count": 4,
            "priority": "High",
        },
        {
            "window_name": "Shopping",
            "purpose": "Things to buy",
            "tab_domains": ["shop.example.com"],
            "estimated_tab_count": "2 tabs",
            "priority": "whenever",
        },
    ],
    "specific_actions": [
        {"action": "create_new_window", "description": "Split docs", "tabs_affected": ["docs.example.com"], "reason": "Focus"}
    ],
    "productivity_benefits": ["Less switching"],
}

HEADINGS_ONLY = """# Plan

Steps I considered:
1. Look at the tabs
2. Group them

### Recommended Window Organization

#### 1. Docs
**Purpose:** Reference material
**Estimated tabs:** 4
**Priority:** high
**Key domains:** docs.example.com, readthedocs.io

2. **Shopping**
**Purpose:** Things to buy
**Estimated tabs:** 2
**Priority:** whenever
**Key domains:** shop.example.com

## Current Window Details (for reference)

### Window 1 (2 tabs)
"""

EXPECTED = [
    WindowRecommendation(
        name="Docs",
        purpose="Reference material",
        domains=("docs.example.com", "readthedocs.io"),
        estimated_tabs=4,
        priority="high",
    ),
    WindowRecommendation(
        name="Shopping",
        purpose="Things to buy",
        domains=("shop.example.com",),
        estimated_tabs=2,
        priority="medium",
    ),
]


def _windows():
    tabs = [
        ListedTab("Guide", "https://docs.example.com/g", "docs.example.com", None, 1, 1),
        ListedTab("Cart", "https://shop.example.com/c", "shop.example.com", None, 1, 2),
    ]
    return [WindowGroup(window_index=1, tabs=tabs)]


def test_structured_and_heading_encodings_agree():
    fenced = "Some text\n\n```json\n" + json.dumps(STRUCTURED) + "\n```\n"

    assert parse_structured_block(fenced) == EXPECTED
    assert parse_heading_text(HEADINGS_ONLY) == EXPECTED
    assert parse_plan_document(fenced) == parse_plan_document(HEADINGS_ONLY)


def test_bare_json_document_is_accepted():
    assert parse_plan_document(json.dumps(STRUCTURED)) == EXPECTED


def test_structured_block_wins_over_headings():
    doc = HEADINGS_ONLY + "\n```json\n" + json.dumps({"recommended_windows": [{"window_name": "Only"}]}) + "\n```\n"

    assert [r.name for r in parse_plan_document(doc)] == ["Only"]


def test_unrelated_fenced_json_is_ignored():
    doc = '```json\n{"foo": 1}\n```\n' + HEADINGS_ONLY

    assert parse_structured_block(doc) is None
    assert [r.name for r in parse_plan_document(doc)] == ["Docs", "Shopping"]


def test_plan_without_recommendations_raises():
    with pytest.raises(PlanError):
        parse_plan_document("# Notes\n\n1. Buy milk\n2. Call mom\n")
    with pytest.raises(PlanError):
        recommendations_from_source({"analysis": {}})


def test_url_selections_are_read_from_structured_plans():
    payload = {
        "recommended_windows": [
            {"window_name": "Pick", "urls": ["https://a.example/", {"url": "https://b.example/", "reason": "open PR"}]}
        ]
    }

    rec = recommendations_from_source(payload)[0]

    assert rec.selects_by_url
    assert rec.urls == (UrlSelection("https://a.example/"), UrlSelection("https://b.example/", "open PR"))


def test_sequence_source_passes_through():
    assert recommendations_from_source(EXPECTED) == EXPECTED


def test_rendered_document_parses_back_through_both_paths():
    doc = render_recommendations_doc(_windows(), "Group docs together.", STRUCTURED, source="tabs.md", ts="2026-03-01 09:30:00")

    assert doc.startswith("# Chrome Tab Organization Recommendations")
    assert "## AI Analysis" in doc
    assert "Group docs together." in doc
    assert "#### 1. Docs" in doc
    assert "### Specific Actions" in doc
    assert "1. **CREATE NEW WINDOW**" in doc
    assert "- Less switching" in doc
    assert "### Window 1 (2 tabs)" in doc
    assert parse_structured_block(doc) == EXPECTED
    assert parse_heading_text(doc) == EXPECTED


def test_raw_response_is_kept_verbatim():
    doc = render_recommendations_doc(_windows(), "", {"raw_response": "not json at all"}, source="live", ts="ts")

    assert "No recommendations generated" in doc
    assert "not json at all" in doc
    assert "```json" not in doc
    with pytest.raises(PlanError):
        parse_plan_document(doc)
