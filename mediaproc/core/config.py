from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Mapping

from mediaproc.core.errors import ConfigurationError, ErrorCode
from mediaproc.core.logging import get_logger

log = get_logger(__name__)

SOURCE_LOADERS = ("uri", "local")

MAX_SIGNATURE_SIZE = 32
MAX_URL_CHUNK_SIZE = 128


@dataclass(frozen=True, slots=True)
class Settings:
    api_endpoint: str
    source_loader: str
    source_uri: str
    encryption: bool
    encryption_key: bytes | None
    signature: bool
    signature_key: bytes | None
    signature_salt: bytes | None
    signature_size: int
    url_chunk_size: int
    processing_pdf: bool
    log_level: str

    @property
    def encryption_enabled(self) -> bool:
        return bool(self.encryption and self.encryption_key)


def _get(env: Mapping[str, str], key: str, default: str) -> str:
    value = env.get(key, default)
    return (value or "").strip()


def _get_bool(env: Mapping[str, str], key: str, default: bool) -> bool:
    raw = _get(env, key, "1" if default else "0").lower()
    if raw in {"1", "true", "yes", "y", "on"}:
        return True
    if raw in {"0", "false", "no", "n", "off"}:
        return False
    return default


def _get_int(env: Mapping[str, str], key: str, default: int, *, lo: int, hi: int) -> int:
    try:
        value = int(_get(env, key, str(default)) or str(default))
    except ValueError:
        log.warning("config_int_invalid key=%s default=%s", key, default)
        value = default
    return max(lo, min(int(value), hi))


def _decode_hex(raw: str, *, name: str) -> bytes | None:
    raw = (raw or "").strip()
    if not raw:
        return None
    try:
        return bytes.fromhex(raw)
    except ValueError as exc:
        raise ConfigurationError(ErrorCode.INVALID_KEY, f"{name} must be hex", {"name": name}) from exc


def load_settings(env: Mapping[str, str] | None = None) -> Settings:
    env = os.environ if env is None else env

    api_endpoint = _get(env, "IMGPROXY_API_ENDPOINT", "")
    source_loader = _get(env, "IMGPROXY_SOURCE_LOADER", "uri").lower() or "uri"
    source_uri = _get(env, "IMGPROXY_SOURCE_URI", "")

    encryption = _get_bool(env, "IMGPROXY_ENCRYPTION", False)
    signature = _get_bool(env, "IMGPROXY_SIGNATURE", False)

    encryption_key = _decode_hex(_get(env, "IMGPROXY_ENCRYPTION_KEY", ""), name="IMGPROXY_ENCRYPTION_KEY")
    signature_key = _decode_hex(_get(env, "IMGPROXY_SIGNATURE_KEY", ""), name="IMGPROXY_SIGNATURE_KEY")
    signature_salt = _decode_hex(_get(env, "IMGPROXY_SIGNATURE_SALT", ""), name="IMGPROXY_SIGNATURE_SALT")

    signature_size = _get_int(env, "IMGPROXY_SIGNATURE_SIZE", 0, lo=0, hi=MAX_SIGNATURE_SIZE)
    url_chunk_size = _get_int(env, "IMGPROXY_URL_CHUNK_SIZE", 0, lo=0, hi=MAX_URL_CHUNK_SIZE)

    settings = Settings(
        api_endpoint=api_endpoint,
        source_loader=source_loader,
        source_uri=source_uri,
        encryption=encryption,
        encryption_key=encryption_key,
        signature=signature,
        signature_key=signature_key,
        signature_salt=signature_salt,
        signature_size=signature_size,
        url_chunk_size=url_chunk_size,
        processing_pdf=_get_bool(env, "IMGPROXY_PROCESSING_PDF", False),
        log_level=_get(env, "LOG_LEVEL", "INFO").upper() or "INFO",
    )

    missing: list[str] = []
    if settings.signature and not settings.signature_key:
        missing.append("IMGPROXY_SIGNATURE_KEY")
    if settings.signature and not settings.signature_salt:
        missing.append("IMGPROXY_SIGNATURE_SALT")
    if settings.encryption and not settings.encryption_key:
        missing.append("IMGPROXY_ENCRYPTION_KEY")
    if missing:
        raise ConfigurationError(
            ErrorCode.MISSING_SECRET,
            f"Missing required env vars: {', '.join(missing)}",
            {"missing": missing},
        )

    if settings.source_loader not in SOURCE_LOADERS:
        raise ConfigurationError(
            ErrorCode.UNSUPPORTED_SOURCE_LOADER,
            f"Unsupported source loader: {settings.source_loader}",
            {"allowed": list(SOURCE_LOADERS)},
        )

    return settings
