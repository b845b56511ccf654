"""Resilient Fetcher: one reader call plus one optional summary per tab."""

from __future__ import annotations

import functools
import time
from typing import Callable, Optional, TextIO

from core.browser.models import TabRef
from core.tab_policy.text import clip, truncate_words

from .models import FetchResult, FetchStatus
from .reader import read_url
from .retry import RetryTrack, attempt_budget, classify_error, retry_delay_ms
from .settings import FetchConfig
from .urls import skip_reason

SUMMARY_SYSTEM_PROMPT = (
    "You summarize web pages. Reply with a factual summary of at most 2 sentences. "
    "Use markdown **bold** or *italics* for key terms. No preamble, no opinions."
)

TOO_LITTLE_CONTENT = "Too little content"

ReadFn = Callable[[str], str]
SummarizeFn = Callable[[str, str], str]


def _emit(stderr: Optional[TextIO], message: str) -> None:
    if stderr is not None:
        print(message, file=stderr)


def make_reader(config: FetchConfig, api_key: Optional[str] = None) -> ReadFn:
    return functools.partial(
        read_url,
        base_url=config.reader_base_url,
        timeout=config.reader_timeout_sec,
        api_key=api_key,
    )


def build_summary_prompt(title: str, url: str, content: str, char_limit: int = 10000) -> str:
    return f"Title: {title}\nURL: {url}\n\nContent:\n{clip(content, char_limit)}"


def _read_with_retry(
    tab: TabRef,
    *,
    config: FetchConfig,
    read_fn: ReadFn,
    sleep_fn: Callable[[float], None],
    stderr: Optional[TextIO],
):
    """Return `(text, None, attempts)` on success or `(None, last_error, attempts)`."""
    attempt = 0
    while True:
        try:
            return read_fn(tab.url), None, attempt + 1
        except Exception as exc:
            last_error = str(exc) or exc.__class__.__name__
            track = classify_error(exc)
            delay_ms = retry_delay_ms(track, attempt, config.retry)
            if delay_ms is None:
                return None, last_error, attempt + 1

            label = "Rate limited" if track is RetryTrack.BACKOFF else "Fetch error"
            _emit(
                stderr,
                f"  {label} - retrying in {delay_ms / 1000:.1f}s "
                f"({attempt + 2}/{attempt_budget(track, config.retry)}): {last_error}",
            )
            sleep_fn(delay_ms / 1000)
            attempt += 1


def fetch_tab(
    tab: TabRef,
    *,
    config: FetchConfig = FetchConfig(),
    read_fn: Optional[ReadFn] = None,
    summarize_fn: Optional[SummarizeFn] = None,
    sleep_fn: Callable[[float], None] = time.sleep,
    stderr: Optional[TextIO] = None,
) -> FetchResult:
    """Fetch and optionally summarize one tab; never raises for per-tab failures.

    Blocklisted URLs return `SKIPPED` without touching the network. Fetch errors
    are retried per `config.retry` and end as `FAILED`. Pages under
    `config.min_words` words are `SKIPPED`; pages of at least
    `config.summary_min_words` words get one summary call whose failure is
    recorded in `summary_error` without changing the `SUCCESS` status.
    """
    reason = skip_reason(tab.url, config)
    if reason:
        return FetchResult.from_tab(tab, FetchStatus.SKIPPED, skip_reason=reason)

    if read_fn is None:
        read_fn = make_reader(config)
    text, last_error, attempts = _read_with_retry(
        tab, config=config, read_fn=read_fn, sleep_fn=sleep_fn, stderr=stderr
    )
    if text is None:
        _emit(stderr, f"  Failed after {attempts} attempt(s): {last_error}")
        return FetchResult.from_tab(tab, FetchStatus.FAILED, last_error=last_error, attempts=attempts)

    content, word_count = truncate_words(text, config.words_limit)
    if word_count < config.min_words:
        return FetchResult.from_tab(
            tab,
            FetchStatus.SKIPPED,
            word_count=word_count,
            skip_reason=TOO_LITTLE_CONTENT,
            attempts=attempts,
        )

    summary = None
    summary_error = None
    if word_count >= config.summary_min_words and summarize_fn is not None:
        try:
            summary = summarize_fn(
                SUMMARY_SYSTEM_PROMPT,
                build_summary_prompt(tab.title, tab.url, content, config.summary_char_limit),
            ).strip() or None
            if summary is None:
                summary_error = "Empty summary"
        except Exception as exc:
            summary_error = str(exc) or exc.__class__.__name__
        if summary_error:
            _emit(stderr, f"  LLM summary failed: {summary_error}")

    return FetchResult.from_tab(
        tab,
        FetchStatus.SUCCESS,
        content=content,
        word_count=word_count,
        summary=summary,
        summary_generated=summary is not None,
        summary_error=summary_error,
        attempts=attempts,
    )
