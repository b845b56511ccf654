from core.export.parsing import extract_urls, parse_link_line, parse_listing, split_markdown_link

FAST_DUMP = """# Chrome Tabs Fast Dump - 2026-03-01 09:30:00

**3 tabs across 2 windows**

## Window 1 (2 tabs)

- [Python docs](https://docs.python.org/3/) (docs.python.org)
- [Tricky \\[title\\] (v2)](https://example.com/a_(b)) (example.com)

## Window 2 (1 tabs)

- [News](https://news.example.org/today) (news.example.org)
"""

FULL_EXPORT = """# Chrome Tabs Export - 2026-03-01 09:30:00

**2 tabs across 1 windows**
- Content read: 1 tabs

- **Window 3** (2 tabs)
    - [Guide](https://guide.example/) (guide.example) - A long guide - with dashes.
    - [Mail](https://mail.google.com/) (mail.google.com) - *Domain skipped*
"""


def test_split_markdown_link_handles_nesting_and_escapes():
    assert split_markdown_link("[a \\] b](https://x.org/(1)) tail") == ("a ] b", "https://x.org/(1)", "tail")
    assert split_markdown_link("no link here") is None
    assert split_markdown_link("[](https://x.org)") is None


def test_parse_link_line_requires_list_marker():
    assert parse_link_line("- [t](https://u.example)") == ("t", "https://u.example", "")
    assert parse_link_line("12. [t](https://u.example) (u.example)")[1] == "https://u.example"
    assert parse_link_line("[t](https://u.example)") is None


def test_parse_fast_dump_headers():
    groups = parse_listing(FAST_DUMP)

    assert [(g.window_index, g.tab_count) for g in groups] == [(1, 2), (2, 1)]
    tricky = groups[0].tabs[1]
    assert tricky.title == "Tricky [title] (v2)"
    assert tricky.url == "https://example.com/a_(b)"
    assert tricky.domain == "example.com"
    assert tricky.tab_position == 2
    assert groups[1].tabs[0].window_position == 2


def test_parse_full_export_bullet_headers_and_summaries():
    groups = parse_listing(FULL_EXPORT)

    assert len(groups) == 1
    assert groups[0].window_index == 3
    guide, mail = groups[0].tabs
    assert guide.summary == "A long guide - with dashes."
    assert mail.summary == "*Domain skipped*"


def test_tabs_before_first_header_are_ignored_and_repeated_headers_merge():
    md = "\n".join(
        [
            "- [Orphan](https://orphan.example/)",
            "## Window 1 (1 tabs)",
            "- [A](https://a.example/)",
            "## Window 2 (1 tabs)",
            "- [B](https://b.example/)",
            "## Window 1 (1 tabs)",
            "- [C](https://c.example/)",
        ]
    )

    groups = parse_listing(md)

    assert [(g.window_index, [t.title for t in g.tabs]) for g in groups] == [(1, ["A", "C"]), (2, ["B"])]
    assert groups[0].tabs[1].tab_position == 2


def test_extract_urls_collects_links_and_bare_urls_once():
    md = "\n".join(
        [
            "- [A](https://a.example/)",
            "- [Local](file:///tmp/x.html)",
            "See https://bare.example/path and (https://a.example/).",
            "- [A again](https://a.example/)",
        ]
    )

    assert extract_urls(md) == ["https://a.example/", "https://bare.example/path"]


def test_angle_bracket_link_targets():
    assert split_markdown_link("[Q](<https://example.com/q?x=a)b>) (example.com)") == (
        "Q",
        "https://example.com/q?x=a)b",
        "(example.com)",
    )
    assert split_markdown_link("[S](<https://example.net/a b\\<c\\>>)")[1] == "https://example.net/a b<c>"
    assert split_markdown_link("[Q](<https://example.com/unclosed)") is None


def test_extract_urls_does_not_add_fragments_of_link_targets():
    md = "- [Q](<https://example.com/q?x=a)b>) (example.com) - see https://other.example/x"

    assert extract_urls(md) == ["https://example.com/q?x=a)b", "https://other.example/x"]
