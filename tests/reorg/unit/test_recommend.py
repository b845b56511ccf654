import json
import threading

import pytest

from core.browser.models import WindowGroup
from core.export.llm import CompletionError
from core.export.parsing import ListedTab
from core.reorg.recommend import (
    NARRATIVE_SYSTEM_PROMPT,
    STRUCTURED_SYSTEM_PROMPT,
    analyze,
    categorize_tab,
    get_structured,
    structured_payload,
)


def _windows():
    return [
        WindowGroup(
            window_index=1,
            tabs=[
                ListedTab("PR #12", "https://github.com/acme/app/pull/12", "github.com", "A pull request.", 1, 1),
                ListedTab("Checkout", "https://store.example/cart", "store.example", None, 1, 2),
                ListedTab("Issue", "https://github.com/acme/app/issues/3", "github.com", None, 1, 3),
            ],
        ),
        WindowGroup(
            window_index=2,
            tabs=[ListedTab("Morning", "https://news.example/today", "news.example", None, 2, 1)],
        ),
    ]


@pytest.mark.parametrize(
    "domain,title,expected",
    [
        ("app.slack.com", "general", "work"),
        ("github.com", "repo", "development"),
        ("example.org", "REST API reference", "development"),
        ("www.youtube.com", "video", "social"),
        ("store.example", "Your cart", "shopping"),
        ("medium.com", "essay", "reading"),
        ("example.org", "Home", "general"),
    ],
)
def test_categorize_tab(domain, title, expected):
    assert categorize_tab(domain, title) == expected


def test_structured_payload_lists_unique_domains_in_order():
    payload = structured_payload(_windows())

    assert payload[0]["domains"] == ["github.com", "store.example"]
    assert payload[0]["tabs"][1] == {"title": "Checkout", "domain": "store.example", "category": "shopping"}
    assert payload[1]["tabCount"] == 1


def test_analyze_runs_both_calls_and_parses_json():
    seen = {}
    lock = threading.Lock()

    def narrative(system, user):
        with lock:
            seen["narrative"] = (system, user)
        return "Group the GitHub tabs."

    def structured(system, user):
        with lock:
            seen["structured"] = (system, user)
        return json.dumps({"recommended_windows": [{"window_name": "Code"}]})

    text, plan = analyze(_windows(), narrative_fn=narrative, structured_fn=structured)

    assert text == "Group the GitHub tabs."
    assert plan == {"recommended_windows": [{"window_name": "Code"}]}
    assert seen["narrative"][0] == NARRATIVE_SYSTEM_PROMPT
    assert "across 2 windows (4 total tabs)" in seen["narrative"][1]
    assert "A pull request." in seen["narrative"][1]
    assert seen["structured"][0] == STRUCTURED_SYSTEM_PROMPT
    assert '"category": "development"' in seen["structured"][1]


def test_non_json_structured_reply_is_kept_raw():
    assert get_structured(_windows(), complete_fn=lambda s, u: "Sorry, no JSON today") == {
        "raw_response": "Sorry, no JSON today"
    }
    assert get_structured(_windows(), complete_fn=lambda s, u: "[1, 2]") == {"raw_response": "[1, 2]"}
    assert get_structured(_windows(), complete_fn=lambda s, u: "") == {}


def test_empty_narrative_gets_placeholder():
    text, _plan = analyze(_windows(), narrative_fn=lambda s, u: "", structured_fn=lambda s, u: "{}")

    assert text == "No recommendations generated"


def test_analysis_failures_propagate():
    def broken(system, user):
        raise CompletionError("OpenAI HTTP 500")

    with pytest.raises(CompletionError):
        analyze(_windows(), narrative_fn=lambda s, u: "ok", structured_fn=broken)
