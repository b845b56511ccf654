"""Runtime configuration: defaults, config.json, and environment overrides."""

from __future__ import annotations

import json
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Optional, Tuple

from core.tab_policy.taxonomy import SKIP_EXTENSIONS, SKIP_HOSTS, SKIP_PREFIXES

DEFAULT_CFG_PATH = Path(
    os.environ.get("TABSWEEP_CONFIG_PATH", "~/.config/tabsweep/config.json")
).expanduser()

DEFAULT_CFG: Dict = {
    "readerBaseUrl": "https://r.jina.ai/",
    "readerTimeoutSec": 30,
    "wordsLimit": 30000,
    "minWords": 100,
    "summaryMinWords": 200,
    "summaryCharLimit": 10000,
    "initialDelayMs": 500,
    "maxDelayMs": 10000,
    "maxBackoffAttempts": 5,
    "maxRetries": 3,
    "plainDelayMs": 1000,
    "summaryModel": "gpt-5-nano",
    "narrativeModel": "gpt-5",
    "structuredModel": "gpt-4o",
    "pacingDelaySec": 0.2,
    "checkpointPath": "open-tabs-progress.tmp.md",
    "outputDir": ".",
    "skipDomains": [],
    "skipExtensions": [],
    "reuseFirstWindow": True,
}

ENV_OVERRIDES = (
    ("TABSWEEP_READER_URL", "readerBaseUrl", str),
    ("TABSWEEP_READER_TIMEOUT", "readerTimeoutSec", float),
    ("TABSWEEP_SUMMARY_MODEL", "summaryModel", str),
    ("TABSWEEP_NARRATIVE_MODEL", "narrativeModel", str),
    ("TABSWEEP_STRUCTURED_MODEL", "structuredModel", str),
    ("TABSWEEP_PACING_DELAY", "pacingDelaySec", float),
    ("TABSWEEP_OUTPUT_DIR", "outputDir", str),
)


def cfg_bool(value: object, default: bool = False) -> bool:
    if value is None:
        return default
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)):
        return bool(value)
    v = str(value).strip().lower()
    if v in {"1", "true", "yes", "y", "on"}:
        return True
    if v in {"0", "false", "no", "n", "off"}:
        return False
    return default


def load_cfg(path: Path) -> Dict:
    """Read a JSON config file; a missing file yields an empty mapping."""
    if not path.exists():
        return {}
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except ValueError as exc:
        raise ValueError(f"Config is not valid JSON: {path} ({exc})") from exc
    if not isinstance(data, dict):
        raise ValueError(f"Config must be a JSON object: {path}")
    return data


def env_overrides(environ: Optional[Dict[str, str]] = None) -> Dict:
    environ = os.environ if environ is None else environ
    out: Dict = {}
    for env_name, key, cast in ENV_OVERRIDES:
        raw = environ.get(env_name)
        if raw is None or not str(raw).strip():
            continue
        try:
            out[key] = cast(str(raw).strip())
        except ValueError:
            continue
    return out


def merge_cfg(file_cfg: Dict | None, override_cfg: Dict | None) -> Dict:
    merged = dict(DEFAULT_CFG)
    if file_cfg:
        merged.update(file_cfg)
    if override_cfg:
        merged.update(override_cfg)
    return merged


def resolve_cfg(path: Path = DEFAULT_CFG_PATH, environ: Optional[Dict[str, str]] = None) -> Dict:
    return merge_cfg(load_cfg(path), env_overrides(environ))


@dataclass(frozen=True)
class RetryPolicy:
    initial_delay_ms: int = 500
    max_delay_ms: int = 10000
    max_backoff_attempts: int = 5
    max_plain_attempts: int = 3
    plain_delay_ms: int = 1000


@dataclass(frozen=True)
class FetchConfig:
    """Immutable knobs for the domain filter, fetcher and pipeline runner."""

    skip_prefixes: Tuple[str, ...] = SKIP_PREFIXES
    skip_hosts: Tuple[str, ...] = SKIP_HOSTS
    skip_extensions: Tuple[str, ...] = SKIP_EXTENSIONS
    reader_base_url: str = "https://r.jina.ai/"
    reader_timeout_sec: float = 30.0
    words_limit: int = 30000
    min_words: int = 100
    summary_min_words: int = 200
    summary_char_limit: int = 10000
    summary_model: str = "gpt-5-nano"
    retry: RetryPolicy = RetryPolicy()


def fetch_config_from_cfg(cfg: Dict) -> FetchConfig:
    extra_hosts = tuple(str(d).strip().lower() for d in cfg.get("skipDomains") or [] if str(d).strip())
    extra_exts = tuple(str(e).strip().lower() for e in cfg.get("skipExtensions") or [] if str(e).strip())
    return FetchConfig(
        skip_hosts=SKIP_HOSTS + extra_hosts,
        skip_extensions=SKIP_EXTENSIONS + extra_exts,
        reader_base_url=str(cfg.get("readerBaseUrl") or DEFAULT_CFG["readerBaseUrl"]),
        reader_timeout_sec=float(cfg.get("readerTimeoutSec", 30)),
        words_limit=int(cfg.get("wordsLimit", 30000)),
        min_words=int(cfg.get("minWords", 100)),
        summary_min_words=int(cfg.get("summaryMinWords", 200)),
        summary_char_limit=int(cfg.get("summaryCharLimit", 10000)),
        summary_model=str(cfg.get("summaryModel") or DEFAULT_CFG["summaryModel"]),
        retry=RetryPolicy(
            initial_delay_ms=int(cfg.get("initialDelayMs", 500)),
            max_delay_ms=int(cfg.get("maxDelayMs", 10000)),
            max_backoff_attempts=int(cfg.get("maxBackoffAttempts", 5)),
            max_plain_attempts=int(cfg.get("maxRetries", 3)),
            plain_delay_ms=int(cfg.get("plainDelayMs", 1000)),
        ),
    )
