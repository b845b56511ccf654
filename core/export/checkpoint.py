"""Progress checkpoint: a whole-file snapshot rewritten during long exports."""

import os
import tempfile
from pathlib import Path
from typing import Sequence

from .markdown import render_tab_line, result_suffix
from .models import FetchResult


def render_checkpoint(results: Sequence[FetchResult], current: int, total: int, ts: str) -> str:
    succeeded = sum(1 for r in results if r.succeeded)
    summarized = sum(1 for r in results if r.summary_generated)
    lines = [
        f"# Chrome Tabs Progress - {ts}",
        "",
        f"Progress: {current}/{total} tabs processed",
        f"Successful: {succeeded}, Summaries: {summarized}",
        "",
    ]
    for idx, result in enumerate(results, start=1):
        lines.append(f"{idx}. " + render_tab_line(result.title, result.url, result_suffix(result)))
    lines.append("")
    return "\n".join(lines)


def write_checkpoint(path: Path, text: str) -> bool:
    """Replace `path` with `text` atomically; returns False instead of raising."""
    path = Path(path)
    tmp_name = None
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(prefix=".tabsweep-", suffix=".tmp", dir=str(path.parent))
        with os.fdopen(fd, "w", encoding="utf-8") as fh:
            fh.write(text)
        os.replace(tmp_name, path)
        return True
    except OSError:
        if tmp_name:
            try:
                os.unlink(tmp_name)
            except OSError:
                pass
        return False


def remove_checkpoint(path: Path) -> bool:
    try:
        Path(path).unlink()
        return True
    except OSError:
        return False
