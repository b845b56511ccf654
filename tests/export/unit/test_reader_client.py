import socket
import urllib.error
from io import BytesIO

import pytest

from core.export import reader


class DummyResp:
    def __init__(self, body: bytes, status: int = 200, reason: str = "OK"):
        self._body = body
        self.status = status
        self.reason = reason

    def __enter__(self):
        return self

    def __exit__(self, *_args):
        return False

    def read(self):
        return self._body


def test_read_url_sends_reader_headers_and_returns_text(monkeypatch):
    captured = {}

    def fake_urlopen(req, timeout):
        captured["url"] = req.full_url
        captured["timeout"] = timeout
        captured["headers"] = dict(req.header_items())
        return DummyResp("# Title\n\nBody".encode("utf-8"))

    monkeypatch.setattr(reader.urllib.request, "urlopen", fake_urlopen)

    text = reader.read_url("https://example.com/a", base_url="https://reader.test/", timeout=12, api_key="jina")

    assert text == "# Title\n\nBody"
    assert captured["url"] == "https://reader.test/https://example.com/a"
    assert captured["timeout"] == 12
    assert captured["headers"]["X-return-format"] == "markdown"
    assert captured["headers"]["Authorization"] == "Bearer jina"


def test_http_error_carries_status(monkeypatch):
    def fake_urlopen(req, timeout):
        raise urllib.error.HTTPError(req.full_url, 429, "Too Many Requests", {}, BytesIO(b""))

    monkeypatch.setattr(reader.urllib.request, "urlopen", fake_urlopen)

    with pytest.raises(reader.ReaderError) as exc:
        reader.read_url("https://example.com/")

    assert exc.value.status == 429
    assert "HTTP 429" in str(exc.value)


def test_non_success_status_without_http_error_still_raises(monkeypatch):
    monkeypatch.setattr(reader.urllib.request, "urlopen", lambda req, timeout: DummyResp(b"", status=504, reason="Gateway Timeout"))

    with pytest.raises(reader.ReaderError) as exc:
        reader.read_url("https://example.com/")

    assert exc.value.status == 504


def test_timeout_is_reported_without_status(monkeypatch):
    def fake_urlopen(req, timeout):
        raise urllib.error.URLError(socket.timeout("timed out"))

    monkeypatch.setattr(reader.urllib.request, "urlopen", fake_urlopen)

    with pytest.raises(reader.ReaderError) as exc:
        reader.read_url("https://example.com/", timeout=30)

    assert exc.value.status is None
    assert "timed out after 30s" in str(exc.value)


def test_resolve_reader_api_key_strips(monkeypatch):
    monkeypatch.setenv("JINA_API_KEY", "  k  ")
    assert reader.resolve_reader_api_key() == "k"
    monkeypatch.delenv("JINA_API_KEY")
    assert reader.resolve_reader_api_key() is None
