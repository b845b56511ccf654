#!/usr/bin/env python3
"""Dump, export, prune and reorganize open Google Chrome tabs.

Modes:
- dump [--fast]: write a listing of every open tab. Without --fast the full
  export also reads each page through the content reader, summarizes it and
  writes `open-tabs-<ts>.md` (a fast listing is always written first).
- export: same as `dump` without --fast.
- keep <listing.md>: close every open tab whose URL is not in the listing.
- recommend <listing.md>: ask the LLM for a window organization plan.
- reorganize (<plan.md> | --live): apply a plan to the live browser.

Env:
- OpenAI API key from the Keychain (service TabSweep, account openai), then
  OPENAI_API_KEY. Required by export, recommend and reorganize --live.
- Optional JINA_API_KEY for the content reader.
- TABSWEEP_CONFIG_PATH points at an optional JSON config file.
"""

import functools
import json
import sys
import time
from datetime import datetime
from pathlib import Path
from typing import Callable, List, Optional, Tuple

from rich.prompt import Confirm

from core.browser.chrome import ChromeTabDirectory, TabDirectoryError
from core.browser.models import TabRef, WindowGroup, group_by_window
from core.export.checkpoint import remove_checkpoint, render_checkpoint, write_checkpoint
from core.export.fetcher import fetch_tab, make_reader
from core.export.llm import CompletionError, chat_completer, resolve_openai_api_key
from core.export.markdown import render_fast_markdown, render_full_markdown
from core.export.parsing import ListedTab, extract_urls, parse_listing
from core.export.pipeline import count_results, format_counts, regroup_results, run_pipeline
from core.export.reader import resolve_reader_api_key
from core.export.settings import cfg_bool, fetch_config_from_cfg, resolve_cfg
from core.export.urls import domain_of
from core.reorg.executor import TabDirectory, execute_plan
from core.reorg.keep import close_tabs, find_tabs_to_close
from core.reorg.plan_doc import PlanError, render_recommendations_doc
from core.reorg.planner import describe_plan, plan_reorganization, plan_totals
from core.reorg.recommend import analyze
from core.tab_policy.text import clip

VERBOSE = False
JSON_OUTPUT = False
ASSUME_YES = False
FAST = False
LIVE = False
OUT_DIR: Optional[Path] = None
COMMANDS = ("dump", "export", "keep", "recommend", "reorganize")
USAGE = (
    "usage: tabsweep dump [--fast] | export | keep <listing.md> | recommend <listing.md> | "
    "reorganize (<plan.md> | --live)  [--out DIR] [--yes] [--json] [--verbose]"
)

EXIT_OK = 0
EXIT_FATAL = 1
EXIT_USAGE = 2
EXIT_NOOP = 3

ConfirmFn = Callable[[str], bool]


class UsageError(ValueError):
    pass


def log(msg: str) -> None:
    if not VERBOSE:
        return
    ts = datetime.now().strftime("%Y-%m-%d %H:%M:%S")
    print(f"[tabsweep] {ts} {msg}", file=sys.stderr)


def parse_args(argv: List[str]) -> Tuple[str, List[str]]:
    """Set the module flags from `argv` and return `(command, positional_args)`."""
    global VERBOSE, JSON_OUTPUT, ASSUME_YES, FAST, LIVE, OUT_DIR
    VERBOSE = False
    JSON_OUTPUT = False
    ASSUME_YES = False
    FAST = False
    LIVE = False
    OUT_DIR = None
    positional: List[str] = []
    args = list(argv[1:])
    idx = 0
    while idx < len(args):
        arg = args[idx]
        if arg in ("-v", "--verbose"):
            VERBOSE = True
        elif arg == "--json":
            JSON_OUTPUT = True
        elif arg in ("-y", "--yes"):
            ASSUME_YES = True
        elif arg in ("-f", "--fast"):
            FAST = True
        elif arg == "--live":
            LIVE = True
        elif arg == "--out":
            if idx + 1 >= len(args):
                raise UsageError("--out requires a directory")
            idx += 1
            OUT_DIR = Path(args[idx]).expanduser()
        elif arg.startswith("--out="):
            OUT_DIR = Path(arg.split("=", 1)[1]).expanduser()
        elif arg in ("-h", "--help"):
            print(USAGE, file=sys.stderr)
            raise SystemExit(0)
        elif arg.startswith("-"):
            raise UsageError(f"unknown option: {arg}")
        else:
            positional.append(arg)
        idx += 1

    if not positional:
        raise UsageError("missing command")
    command, rest = positional[0], positional[1:]
    if command not in COMMANDS:
        raise UsageError(f"unknown command: {command}")
    if FAST and command != "dump":
        raise UsageError("--fast only applies to dump")
    if LIVE and command != "reorganize":
        raise UsageError("--live only applies to reorganize")

    if command in ("dump", "export"):
        expected = 0
    elif command == "reorganize":
        expected = 0 if LIVE else 1
    else:
        expected = 1
    if len(rest) != expected:
        if expected == 0:
            raise UsageError(f"{command} takes no file argument")
        raise UsageError(f"{command} requires exactly one markdown file")
    return command, rest


def emit_result(*, status: str, reason: str = "", paths: Optional[List[Path]] = None, **fields) -> None:
    paths = [p for p in paths or [] if p]
    if JSON_OUTPUT:
        payload = {"status": status, "reason": reason, "paths": [str(p) for p in paths]}
        payload.update(fields)
        print(json.dumps(payload, sort_keys=True))
        return
    for path in paths:
        print(str(path))


def confirm(message: str, confirm_fn: Optional[ConfirmFn] = None) -> bool:
    if ASSUME_YES:
        return True
    if confirm_fn is None:
        return bool(Confirm.ask(message, default=False))
    return bool(confirm_fn(message))


def file_stamp(now: datetime) -> str:
    return now.strftime("%Y-%m-%dT%H-%M-%S")


def display_stamp(now: datetime) -> str:
    return now.strftime("%Y-%m-%d %H:%M:%S")


def _write(path: Path, text: str) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(text, encoding="utf-8")
    return path


def _read_input(path: Path) -> Optional[str]:
    try:
        return path.read_text(encoding="utf-8", errors="replace")
    except OSError as exc:
        print(f"Cannot read {path}: {exc}", file=sys.stderr)
        return None


def _require_api_key(api_key_fn: Callable[[], Optional[str]], mode: str) -> Optional[str]:
    api_key = api_key_fn()
    if not api_key:
        print(
            f"OpenAI API key not found; {mode} needs one. Store it in the Keychain "
            "(service TabSweep, account openai) or set OPENAI_API_KEY.",
            file=sys.stderr,
        )
    return api_key


def listing_from_tabs(tabs: List[TabRef]) -> List[WindowGroup[ListedTab]]:
    listed = [
        ListedTab(
            title=t.title,
            url=t.url,
            domain=domain_of(t.url),
            summary=None,
            window_position=t.window_position,
            tab_position=t.tab_position,
        )
        for t in tabs
    ]
    return group_by_window(listed)


def run_dump(
    cfg: dict,
    *,
    directory: TabDirectory,
    out_dir: Path,
    fast: bool,
    api_key_fn: Callable[[], Optional[str]] = resolve_openai_api_key,
    read_fn=None,
    summarize_fn=None,
    sleep_fn: Callable[[float], None] = time.sleep,
    now_fn: Callable[[], datetime] = datetime.now,
) -> int:
    started = time.monotonic()
    api_key = None
    if not fast:
        api_key = _require_api_key(api_key_fn, "the full export")
        if not api_key:
            return EXIT_FATAL

    tabs = directory.list_tabs()
    log(f"listed {len(tabs)} tabs")
    if not tabs:
        print("No open tabs found.", file=sys.stderr)
        emit_result(status="noop", reason="no_tabs")
        return EXIT_NOOP

    now = now_fn()
    fast_path = _write(
        out_dir / f"open-tabs-fast-{file_stamp(now)}.md",
        render_fast_markdown(group_by_window(tabs), display_stamp(now)),
    )
    print(f"Fast dump saved: {fast_path}", file=sys.stderr)
    if fast:
        emit_result(status="ok", reason="fast_dump", paths=[fast_path], tabs=len(tabs))
        return EXIT_OK

    config = fetch_config_from_cfg(cfg)
    if read_fn is None:
        read_fn = make_reader(config, resolve_reader_api_key())
    if summarize_fn is None:
        summarize_fn = chat_completer(config.summary_model, api_key)
    fetch = functools.partial(
        fetch_tab,
        config=config,
        read_fn=read_fn,
        summarize_fn=summarize_fn,
        sleep_fn=sleep_fn,
        stderr=sys.stderr,
    )

    checkpoint_path = Path(str(cfg.get("checkpointPath") or "open-tabs-progress.tmp.md")).expanduser()
    if not checkpoint_path.is_absolute():
        checkpoint_path = out_dir / checkpoint_path

    def checkpoint(results, current, total):
        text = render_checkpoint(results, current, total, display_stamp(now_fn()))
        if not write_checkpoint(checkpoint_path, text):
            raise OSError(f"Could not write checkpoint {checkpoint_path}")

    results = run_pipeline(tabs, fetch, checkpoint_fn=checkpoint, stderr=sys.stderr)
    counts = count_results(results)
    print(format_counts(counts, time.monotonic() - started), file=sys.stderr)

    now = now_fn()
    export_path = _write(
        out_dir / f"open-tabs-{file_stamp(now)}.md",
        render_full_markdown(regroup_results(results), counts, display_stamp(now)),
    )
    remove_checkpoint(checkpoint_path)
    print(f"Export saved: {export_path}", file=sys.stderr)
    emit_result(
        status="ok",
        reason="export",
        paths=[fast_path, export_path],
        total=counts.total,
        succeeded=counts.succeeded,
        skipped=counts.skipped,
        failed=counts.failed,
        summarized=counts.summarized,
    )
    return EXIT_OK


def run_keep(
    cfg: dict,
    listing_path: Path,
    *,
    directory: TabDirectory,
    confirm_fn: Optional[ConfirmFn] = None,
    sleep_fn: Callable[[float], None] = time.sleep,
) -> int:
    markdown = _read_input(listing_path)
    if markdown is None:
        return EXIT_FATAL
    keep_urls = extract_urls(markdown)
    log(f"{len(keep_urls)} URLs to keep from {listing_path}")
    if not keep_urls:
        print(f"No URLs found in {listing_path}; refusing to close every tab.", file=sys.stderr)
        emit_result(status="noop", reason="no_urls")
        return EXIT_NOOP

    doomed = find_tabs_to_close(directory.list_tabs(), keep_urls)
    if not doomed:
        print("Every open tab is in the listing; nothing to close.", file=sys.stderr)
        emit_result(status="noop", reason="nothing_to_close")
        return EXIT_NOOP

    print(f"Tabs not in {listing_path.name}:", file=sys.stderr)
    for tab in doomed:
        print(f"  - {clip(tab.title or tab.url, 60)} ({tab.url})", file=sys.stderr)
    if not confirm(f"Close {len(doomed)} tabs?", confirm_fn):
        print("Cancelled; no tabs closed.", file=sys.stderr)
        emit_result(status="declined", reason="user_declined")
        return EXIT_OK

    result = close_tabs(
        directory,
        doomed,
        pacing_sec=float(cfg.get("pacingDelaySec", 0.2)),
        sleep_fn=sleep_fn,
        stderr=sys.stderr,
    )
    print(f"Closed {len(result.closed)} tabs, {len(result.failed)} failed.", file=sys.stderr)
    emit_result(status="ok", reason="keep", **result.to_dict())
    return EXIT_OK


def write_recommendations(
    cfg: dict,
    windows: List[WindowGroup[ListedTab]],
    *,
    source: str,
    out_dir: Path,
    api_key: str,
    narrative_fn=None,
    structured_fn=None,
    now_fn: Callable[[], datetime] = datetime.now,
) -> Tuple[Path, str]:
    if narrative_fn is None:
        narrative_fn = chat_completer(str(cfg.get("narrativeModel") or "gpt-5"), api_key)
    if structured_fn is None:
        structured_fn = chat_completer(
            str(cfg.get("structuredModel") or "gpt-4o"), api_key, temperature=0.2, json_mode=True
        )
    narrative, structured = analyze(windows, narrative_fn=narrative_fn, structured_fn=structured_fn)
    now = now_fn()
    doc = render_recommendations_doc(windows, narrative, structured, source=source, ts=display_stamp(now))
    path = _write(out_dir / f"chrome-organization-recommendations-{file_stamp(now)}.md", doc)
    return path, doc


def run_recommend(
    cfg: dict,
    listing_path: Path,
    *,
    out_dir: Path,
    api_key_fn: Callable[[], Optional[str]] = resolve_openai_api_key,
    narrative_fn=None,
    structured_fn=None,
    now_fn: Callable[[], datetime] = datetime.now,
) -> int:
    api_key = _require_api_key(api_key_fn, "recommend")
    if not api_key:
        return EXIT_FATAL
    markdown = _read_input(listing_path)
    if markdown is None:
        return EXIT_FATAL

    windows = parse_listing(markdown)
    if not any(w.tabs for w in windows):
        print(f"No windows/tabs found in {listing_path}; is it a tabsweep listing?", file=sys.stderr)
        emit_result(status="noop", reason="no_tabs")
        return EXIT_NOOP
    log(f"parsed {sum(w.tab_count for w in windows)} tabs across {len(windows)} windows")

    try:
        path, _doc = write_recommendations(
            cfg,
            windows,
            source=listing_path.name,
            out_dir=out_dir,
            api_key=api_key,
            narrative_fn=narrative_fn,
            structured_fn=structured_fn,
            now_fn=now_fn,
        )
    except CompletionError as exc:
        print(f"AI analysis failed: {exc}", file=sys.stderr)
        return EXIT_FATAL
    print(f"Recommendations saved to: {path}", file=sys.stderr)
    emit_result(status="ok", reason="recommend", paths=[path])
    return EXIT_OK


def run_reorganize(
    cfg: dict,
    plan_path: Optional[Path],
    *,
    directory: TabDirectory,
    out_dir: Path,
    confirm_fn: Optional[ConfirmFn] = None,
    api_key_fn: Callable[[], Optional[str]] = resolve_openai_api_key,
    narrative_fn=None,
    structured_fn=None,
    sleep_fn: Callable[[float], None] = time.sleep,
    now_fn: Callable[[], datetime] = datetime.now,
) -> int:
    """Apply a plan document, or with `plan_path=None` generate one from the live tabs first."""
    paths: List[Path] = []
    if plan_path is None:
        api_key = _require_api_key(api_key_fn, "reorganize --live")
        if not api_key:
            return EXIT_FATAL
        current = directory.list_tabs()
        if not current:
            print("No open tabs found.", file=sys.stderr)
            emit_result(status="noop", reason="no_tabs")
            return EXIT_NOOP
        try:
            rec_path, plan_text = write_recommendations(
                cfg,
                listing_from_tabs(current),
                source="live Chrome tabs",
                out_dir=out_dir,
                api_key=api_key,
                narrative_fn=narrative_fn,
                structured_fn=structured_fn,
                now_fn=now_fn,
            )
        except CompletionError as exc:
            print(f"AI analysis failed: {exc}", file=sys.stderr)
            return EXIT_FATAL
        print(f"Recommendations saved to: {rec_path}", file=sys.stderr)
        paths.append(rec_path)
    else:
        plan_text = _read_input(plan_path)
        if plan_text is None:
            return EXIT_FATAL
        current = directory.list_tabs()

    try:
        targets = plan_reorganization(
            current,
            plan_text,
            reuse_first_window=cfg_bool(cfg.get("reuseFirstWindow"), True),
            stderr=sys.stderr if VERBOSE else None,
        )
    except PlanError as exc:
        print(f"{exc}; is this a tabsweep recommendations file?", file=sys.stderr)
        return EXIT_FATAL
    if not targets:
        print("No tabs matched the recommended windows.", file=sys.stderr)
        emit_result(status="noop", reason="no_matches", paths=paths)
        return EXIT_NOOP

    for line in describe_plan(targets):
        print(line, file=sys.stderr)
    new_windows, tab_count = plan_totals(targets)
    question = (
        f"Execute this reorganization plan? This will create {new_windows} new windows "
        f"and move {tab_count} tabs."
    )
    if not confirm(question, confirm_fn):
        print("Reorganization cancelled.", file=sys.stderr)
        emit_result(status="declined", reason="user_declined", paths=paths)
        return EXIT_OK

    outcome = execute_plan(
        targets,
        directory,
        pacing_sec=float(cfg.get("pacingDelaySec", 0.2)),
        sleep_fn=sleep_fn,
        stderr=sys.stderr,
    )
    if outcome.tabs_moved:
        print("Tip: run `tabsweep keep` to close any remaining unwanted tabs.", file=sys.stderr)
    emit_result(status="ok", reason="reorganize", paths=paths, **outcome.to_dict())
    return EXIT_OK


def main(argv: Optional[List[str]] = None) -> int:
    argv = sys.argv if argv is None else argv
    try:
        command, rest = parse_args(argv)
    except UsageError as exc:
        print(f"tabsweep: {exc}\n{USAGE}", file=sys.stderr)
        return EXIT_USAGE

    try:
        cfg = resolve_cfg()
    except ValueError as exc:
        print(str(exc), file=sys.stderr)
        return EXIT_FATAL
    out_dir = OUT_DIR or Path(str(cfg.get("outputDir") or ".")).expanduser()
    directory = ChromeTabDirectory()
    log(f"start {command}")

    try:
        if command in ("dump", "export"):
            return run_dump(cfg, directory=directory, out_dir=out_dir, fast=FAST)
        if command == "keep":
            return run_keep(cfg, Path(rest[0]).expanduser(), directory=directory)
        if command == "recommend":
            return run_recommend(cfg, Path(rest[0]).expanduser(), out_dir=out_dir)
        plan_path = None if LIVE else Path(rest[0]).expanduser()
        return run_reorganize(cfg, plan_path, directory=directory, out_dir=out_dir)
    except TabDirectoryError as exc:
        print(f"Cannot read Chrome tabs: {exc}", file=sys.stderr)
        emit_result(status="error", reason="directory_unreadable")
        return EXIT_FATAL


if __name__ == "__main__":
    raise SystemExit(main(sys.argv))
