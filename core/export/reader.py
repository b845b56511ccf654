"""Content reader client (r.jina.ai-style URL-to-markdown service)."""

import os
import socket
import urllib.error
import urllib.request
from typing import Optional

READER_HEADERS = {
    "X-Engine": "direct",
    "X-Return-Format": "markdown",
    "X-Timeout": "2",
}


class ReaderError(RuntimeError):
    """Reader failure; `status` is the HTTP status when one was received."""

    def __init__(self, message: str, status: Optional[int] = None):
        super().__init__(message)
        self.status = status


def resolve_reader_api_key() -> Optional[str]:
    value = os.environ.get("JINA_API_KEY")
    if value:
        value = value.strip()
    return value or None


def read_url(
    url: str,
    *,
    base_url: str = "https://r.jina.ai/",
    timeout: float = 30.0,
    api_key: Optional[str] = None,
) -> str:
    headers = dict(READER_HEADERS)
    if api_key:
        headers["Authorization"] = f"Bearer {api_key}"
    req = urllib.request.Request(base_url + url, headers=headers, method="GET")
    try:
        with urllib.request.urlopen(req, timeout=timeout) as resp:
            status = getattr(resp, "status", 200) or 200
            if not 200 <= int(status) < 300:
                raise ReaderError(f"HTTP {status}: {getattr(resp, 'reason', '')}".strip(), status=int(status))
            return resp.read().decode("utf-8", errors="replace")
    except urllib.error.HTTPError as exc:
        raise ReaderError(f"HTTP {exc.code}: {exc.reason}", status=exc.code) from exc
    except urllib.error.URLError as exc:
        if isinstance(exc.reason, socket.timeout):
            raise ReaderError(f"Request timed out after {timeout:g}s") from exc
        raise ReaderError(f"Network error: {exc.reason}") from exc
    except (socket.timeout, TimeoutError) as exc:
        raise ReaderError(f"Request timed out after {timeout:g}s") from exc
