from __future__ import annotations

import re
from collections.abc import Mapping
from typing import Any

REDACTED = "***"

_SENSITIVE_KEY_PARTS = (
    "key",
    "salt",
    "secret",
    "password",
    "token",
)

# IMGPROXY_SIGNATURE_KEY=..., signature_salt: ..., encryption_key="..."
_ASSIGNMENT_RE = re.compile(
    r"(?i)\b(?P<name>[A-Za-z_]*(?:key|salt|secret|password|token))(?P<sep>\s*[=:]\s*)(?P<quote>[\"']?)(?P<value>[^\s\"',;&]+)"
)
_URI_USERINFO_RE = re.compile(r"(?i)\b(?P<scheme>https?)://(?P<user>[^\s/:@]+):(?P<password>[^\s/@]+)@")


def is_sensitive_key(key: str) -> bool:
    key_l = key.lower()
    return any(part in key_l for part in _SENSITIVE_KEY_PARTS)


def redact_text(text: str) -> str:
    text = _URI_USERINFO_RE.sub(lambda m: f"{m.group('scheme')}://{m.group('user')}:{REDACTED}@", text)
    text = _ASSIGNMENT_RE.sub(lambda m: f"{m.group('name')}{m.group('sep')}{m.group('quote')}{REDACTED}", text)
    return text


def redact_any(value: Any) -> Any:
    if value is None:
        return None
    if isinstance(value, str):
        return redact_text(value)
    if isinstance(value, bytes):
        try:
            return redact_text(value.decode("utf-8", errors="replace")).encode("utf-8")
        except Exception:
            return value
    if isinstance(value, Mapping):
        out: dict[Any, Any] = {}
        for k, v in value.items():
            if isinstance(k, str) and is_sensitive_key(k):
                out[k] = REDACTED
            else:
                out[k] = redact_any(v)
        return out
    if isinstance(value, (list, tuple)):
        seq = [redact_any(v) for v in value]
        return type(value)(seq) if isinstance(value, tuple) else seq
    return value
