"""OpenAI chat-completion helpers for summaries and reorganization analysis."""

import json
import os
import subprocess
import urllib.error
import urllib.request
from pathlib import Path
from typing import Callable, Optional

CHAT_COMPLETIONS_URL = "https://api.openai.com/v1/chat/completions"
KEYCHAIN_SERVICE = os.environ.get("TABSWEEP_KEYCHAIN_SERVICE", "TabSweep")
KEYCHAIN_ACCOUNT = os.environ.get("TABSWEEP_KEYCHAIN_ACCOUNT", "openai")


class CompletionError(RuntimeError):
    pass


def key_from_keychain(service: str, account: str) -> Optional[str]:
    security_path = "/usr/bin/security"
    if not Path(security_path).exists():
        return None

    cmd = [
        security_path,
        "find-generic-password",
        "-s",
        service,
        "-a",
        account,
        "-w",
    ]
    try:
        proc = subprocess.run(cmd, capture_output=True, text=True, timeout=10)
    except Exception:
        return None
    if proc.returncode != 0:
        return None

    value = proc.stdout.strip()
    return value or None


def resolve_openai_api_key(
    keychain_service: str = KEYCHAIN_SERVICE,
    keychain_account: str = KEYCHAIN_ACCOUNT,
) -> Optional[str]:
    value = key_from_keychain(keychain_service, keychain_account)
    if value:
        return value

    value = os.environ.get("OPENAI_API_KEY")
    if value:
        value = value.strip()
    return value or None


def _temperature_value(default: Optional[float]) -> Optional[float]:
    raw = os.environ.get("TABSWEEP_TEMPERATURE")
    if raw is None:
        return default
    value = str(raw).strip()
    if not value:
        return None
    return float(value)


def _error_detail(exc: urllib.error.HTTPError) -> str:
    body = ""
    try:
        body = exc.read().decode("utf-8", errors="replace")
    except Exception:
        body = ""

    detail = f"HTTP {exc.code}"
    if not body:
        return detail

    try:
        parsed = json.loads(body)
    except Exception:
        parsed = None

    if isinstance(parsed, dict):
        err = parsed.get("error")
        if isinstance(err, dict):
            msg = err.get("message")
            param = err.get("param")
            code = err.get("code")
            parts = [piece for piece in [msg, f"param={param}" if param else None, f"code={code}" if code else None] if piece]
            return f"{detail} " + " | ".join(parts) if parts else f"{detail} {body[:500]}"
    return f"{detail} {body[:500]}"


def _post_chat_completion(payload: dict, api_key: str, timeout: float = 120) -> dict:
    req = urllib.request.Request(
        CHAT_COMPLETIONS_URL,
        data=json.dumps(payload).encode("utf-8"),
        headers={
            "Authorization": f"Bearer {api_key}",
            "Content-Type": "application/json",
        },
        method="POST",
    )
    try:
        with urllib.request.urlopen(req, timeout=timeout) as resp:
            return json.loads(resp.read().decode("utf-8"))
    except urllib.error.HTTPError as exc:
        raise CompletionError(f"OpenAI chat completion failed: {_error_detail(exc)}") from exc
    except (urllib.error.URLError, TimeoutError, OSError) as exc:
        raise CompletionError(f"OpenAI chat completion failed: {exc}") from exc
    except ValueError as exc:
        raise CompletionError("OpenAI chat completion returned a non-JSON body") from exc


def openai_chat_text(
    system: str,
    user: str,
    model: str,
    api_key: str,
    *,
    temperature: Optional[float] = None,
    json_mode: bool = False,
) -> str:
    if not api_key:
        raise CompletionError(
            "OpenAI API key not found. Checked: "
            f"Keychain (service={KEYCHAIN_SERVICE}, account={KEYCHAIN_ACCOUNT}), "
            "env OPENAI_API_KEY."
        )

    payload = {
        "model": model,
        "messages": [
            {"role": "system", "content": system},
            {"role": "user", "content": user},
        ],
    }
    if json_mode:
        payload["response_format"] = {"type": "json_object"}
    temperature = _temperature_value(temperature)
    if temperature is not None:
        payload["temperature"] = temperature

    try:
        data = _post_chat_completion(payload=payload, api_key=api_key)
    except CompletionError as exc:
        text = str(exc).lower()
        if "temperature" in payload and "temperature" in text and "unsupported" in text:
            payload.pop("temperature", None)
            data = _post_chat_completion(payload=payload, api_key=api_key)
        else:
            raise

    try:
        content = data["choices"][0]["message"]["content"]
    except (KeyError, IndexError, TypeError) as exc:
        raise CompletionError(f"OpenAI response has no message content: {str(data)[:500]}") from exc
    return str(content or "").strip()


def chat_completer(
    model: str,
    api_key: str,
    *,
    temperature: Optional[float] = None,
    json_mode: bool = False,
) -> Callable[[str, str], str]:
    """Bind model and credentials into a `(system, user) -> text` callable."""

    def complete(system: str, user: str) -> str:
        return openai_chat_text(system, user, model, api_key, temperature=temperature, json_mode=json_mode)

    return complete
