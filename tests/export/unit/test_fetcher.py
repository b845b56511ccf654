from io import StringIO

import pytest

from core.browser.models import TabRef
from core.export.fetcher import SUMMARY_SYSTEM_PROMPT, TOO_LITTLE_CONTENT, build_summary_prompt, fetch_tab
from core.export.models import FetchStatus
from core.export.reader import ReaderError
from core.export.settings import FetchConfig


def _tab(url="https://example.com/post", title="Post"):
    return TabRef(title=title, url=url, window_position=1, tab_position=1)


def _words(n):
    return " ".join(f"w{i}" for i in range(n))


class ScriptedReader:
    """Reader fake that raises or returns the scripted outcomes in order."""

    def __init__(self, *outcomes):
        self.outcomes = list(outcomes)
        self.calls = 0

    def __call__(self, url):
        self.calls += 1
        outcome = self.outcomes.pop(0)
        if isinstance(outcome, Exception):
            raise outcome
        return outcome


def _no_network(_url):
    raise AssertionError("reader must not be called")


def test_blocklisted_url_is_skipped_without_network():
    result = fetch_tab(_tab("https://github.com/org/repo"), read_fn=_no_network)

    assert result.status is FetchStatus.SKIPPED
    assert result.skip_reason == "Domain skipped"
    assert result.attempts == 0


def test_binary_extension_is_skipped_without_network():
    result = fetch_tab(_tab("https://example.com/paper.pdf"), read_fn=_no_network)

    assert result.skipped
    assert result.skip_reason == "Content type skipped"


def test_short_page_is_skipped_as_too_little_content():
    result = fetch_tab(_tab(), read_fn=ScriptedReader(_words(99)), summarize_fn=_no_network)

    assert result.status is FetchStatus.SKIPPED
    assert result.skip_reason == TOO_LITTLE_CONTENT
    assert result.word_count == 99
    assert not result.summary_generated


def test_mid_length_page_succeeds_without_summary():
    def summarize(_system, _user):
        raise AssertionError("pages under 200 words are not summarized")

    result = fetch_tab(_tab(), read_fn=ScriptedReader(_words(150)), summarize_fn=summarize)

    assert result.status is FetchStatus.SUCCESS
    assert result.word_count == 150
    assert result.summary is None
    assert result.summary_generated is False


def test_long_page_is_summarized_with_fixed_prompt():
    prompts = []

    def summarize(system, user):
        prompts.append((system, user))
        return " A **factual** summary. "

    result = fetch_tab(_tab(title="Guide"), read_fn=ScriptedReader(_words(250)), summarize_fn=summarize)

    assert result.succeeded
    assert result.summary == "A **factual** summary."
    assert result.summary_generated is True
    assert prompts[0][0] == SUMMARY_SYSTEM_PROMPT
    assert prompts[0][1].startswith("Title: Guide\nURL: https://example.com/post\n\nContent:\nw0 w1")


def test_content_is_truncated_but_word_count_is_not():
    config = FetchConfig(words_limit=120)

    result = fetch_tab(_tab(), config=config, read_fn=ScriptedReader(_words(300)))

    assert result.word_count == 300
    assert len(result.content.split()) == 120


def test_summary_failure_keeps_success_and_records_error_separately():
    def summarize(_system, _user):
        raise RuntimeError("OpenAI chat completion failed: HTTP 500")

    stderr = StringIO()
    result = fetch_tab(_tab(), read_fn=ScriptedReader(_words(400)), summarize_fn=summarize, stderr=stderr)

    assert result.status is FetchStatus.SUCCESS
    assert result.summary_generated is False
    assert result.summary_error == "OpenAI chat completion failed: HTTP 500"
    assert result.last_error is None
    assert "LLM summary failed" in stderr.getvalue()


def test_rate_limit_backs_off_then_succeeds():
    sleeps = []
    reader = ScriptedReader(
        ReaderError("HTTP 429: Too Many Requests", status=429),
        ReaderError("HTTP 503: Service Unavailable", status=503),
        _words(120),
    )

    result = fetch_tab(_tab(), read_fn=reader, sleep_fn=sleeps.append)

    assert result.succeeded
    assert result.attempts == 3
    assert sleeps == [0.5, 1.0]


def test_backoff_track_gives_up_after_five_attempts():
    sleeps = []
    reader = ScriptedReader(*[ReaderError("HTTP 429: Too Many Requests", status=429)] * 6)

    result = fetch_tab(_tab(), read_fn=reader, sleep_fn=sleeps.append)

    assert result.status is FetchStatus.FAILED
    assert reader.calls == 5
    assert sleeps == [0.5, 1.0, 2.0, 4.0]
    assert result.last_error == "HTTP 429: Too Many Requests"


def test_plain_track_gives_up_after_three_attempts():
    sleeps = []
    reader = ScriptedReader(*[ReaderError("Network error: reset")] * 4)

    result = fetch_tab(_tab(), read_fn=reader, sleep_fn=sleeps.append)

    assert result.failed
    assert reader.calls == 3
    assert sleeps == [1.0, 2.0]


@pytest.mark.parametrize("status", [451, 404, 403])
def test_permanent_errors_fail_immediately(status):
    sleeps = []
    reader = ScriptedReader(ReaderError(f"HTTP {status}: blocked", status=status))

    result = fetch_tab(_tab(), read_fn=reader, sleep_fn=sleeps.append)

    assert result.failed
    assert reader.calls == 1
    assert sleeps == []


def test_status_invariants_hold_across_outcomes():
    reader_outcomes = [_words(10), _words(99), _words(100), _words(199), _words(200), ReaderError("x", status=404)]
    for outcome in reader_outcomes:
        result = fetch_tab(_tab(), read_fn=ScriptedReader(outcome), summarize_fn=lambda s, u: "ok")
        if result.word_count < 100:
            assert not result.succeeded
        if result.succeeded:
            assert result.word_count >= 100
        if result.summary_generated:
            assert result.succeeded


def test_build_summary_prompt_clips_content():
    prompt = build_summary_prompt("T", "https://u", "x" * 20, char_limit=5)

    assert prompt == "Title: T\nURL: https://u\n\nContent:\nxxxxx..."
