"""Sequential Pipeline Runner over a flat, window-major list of tabs."""

import time
from typing import Callable, List, Optional, Sequence, TextIO

from core.browser.models import TabRef, WindowGroup, group_by_window
from core.tab_policy.text import clip

from .models import FetchResult, PipelineCounts

CheckpointFn = Callable[[List[FetchResult], int, int], object]


def checkpoint_interval(total: int) -> int:
    return max(5, int(total * 0.025))


def should_checkpoint(current: int, total: int) -> bool:
    return current == total or current % checkpoint_interval(total) == 0


def run_pipeline(
    tabs: Sequence[TabRef],
    fetch_fn: Callable[[TabRef], FetchResult],
    *,
    checkpoint_fn: Optional[CheckpointFn] = None,
    stderr: Optional[TextIO] = None,
    clock_fn: Callable[[], float] = time.monotonic,
) -> List[FetchResult]:
    """Fetch every tab one at a time; results keep the input order.

    `checkpoint_fn(results_so_far, current, total)` runs on the checkpoint
    cadence and on the last tab. An `OSError` from it does not stop the run.
    """
    results: List[FetchResult] = []
    total = len(tabs)
    started = clock_fn()
    for current, tab in enumerate(tabs, start=1):
        if stderr is not None:
            print(f"[{current}/{total}] Reading: {clip(tab.title or tab.url, 80)}", file=stderr)
        results.append(fetch_fn(tab))

        if checkpoint_fn is None or not should_checkpoint(current, total):
            continue
        try:
            checkpoint_fn(list(results), current, total)
        except OSError:
            continue
        if stderr is not None:
            elapsed = clock_fn() - started
            print(
                f"Progress saved: {current}/{total} ({current / total * 100:.1f}%) - {elapsed:.1f}s elapsed",
                file=stderr,
            )
    return results


def count_results(results: Sequence[FetchResult]) -> PipelineCounts:
    return PipelineCounts(
        total=len(results),
        succeeded=sum(1 for r in results if r.succeeded),
        skipped=sum(1 for r in results if r.skipped),
        failed=sum(1 for r in results if r.failed),
        summarized=sum(1 for r in results if r.summary_generated),
    )


def regroup_results(results: Sequence[FetchResult]) -> List[WindowGroup[FetchResult]]:
    return group_by_window(results)


def format_counts(counts: PipelineCounts, elapsed_sec: float) -> str:
    return (
        f"Processed {counts.total} tabs in {elapsed_sec:.1f}s: "
        f"succeeded={counts.succeeded} skipped={counts.skipped} "
        f"failed={counts.failed} summarized={counts.summarized}"
    )
