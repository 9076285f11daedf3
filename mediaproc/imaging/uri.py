from __future__ import annotations

import base64
import binascii
import hashlib
import hmac
from dataclasses import dataclass, field
from enum import Enum
from typing import Any
from urllib.parse import urlparse

from mediaproc.core.config import MAX_SIGNATURE_SIZE, Settings
from mediaproc.core.crypto import SourceEncryptor
from mediaproc.core.errors import ConfigurationError, ErrorCode, UrlBuilderError
from mediaproc.core.logging import get_logger
from mediaproc.core.metrics import observe_url_built
from mediaproc.imaging.directive import (
    OPTION_CROP,
    OPTION_DPR,
    OPTION_GRAVITY,
    OPTION_HEIGHT,
    OPTION_MIN_HEIGHT,
    OPTION_MIN_WIDTH,
    OPTION_RESIZE_TYPE,
    OPTION_WIDTH,
    Crop,
    Gravity,
    GravityType,
    ProcessingDirective,
    ResizeType,
)

log = get_logger(__name__)

INSECURE_SIGNATURE = "insecure"
ENCRYPTED_SOURCE_PREFIX = "enc"


def is_absolute_url(url: str) -> bool:
    try:
        parsed = urlparse((url or "").strip())
    except ValueError:
        return False
    return parsed.scheme.lower() in {"http", "https"} and bool(parsed.netloc)


@dataclass(frozen=True, slots=True)
class EndpointConfig:
    endpoint: str
    signature_key: bytes | None = field(default=None, repr=False)
    signature_salt: bytes | None = field(default=None, repr=False)
    signature_size: int = 0
    encryption_key: bytes | None = field(default=None, repr=False)
    url_chunk_size: int = 0

    def __post_init__(self) -> None:
        if not is_absolute_url(self.endpoint):
            raise ConfigurationError(
                ErrorCode.INVALID_ENDPOINT,
                "api endpoint must be an absolute http(s) URL",
                {"endpoint": self.endpoint},
            )
        object.__setattr__(self, "endpoint", self.endpoint.strip().rstrip("/"))
        if not 0 <= int(self.signature_size) <= MAX_SIGNATURE_SIZE:
            raise ConfigurationError(
                ErrorCode.INVALID_KEY,
                f"signature size must be between 0 and {MAX_SIGNATURE_SIZE}",
                {"signature_size": self.signature_size},
            )
        if int(self.url_chunk_size) < 0:
            raise ConfigurationError(ErrorCode.NOT_CONFIGURED, "url chunk size must not be negative")
        if self.encryption_key is not None:
            try:
                SourceEncryptor.from_key(self.encryption_key)
            except ValueError as exc:
                raise ConfigurationError(ErrorCode.INVALID_KEY, str(exc)) from exc

    @property
    def signing_enabled(self) -> bool:
        return bool(self.signature_key) and bool(self.signature_salt)

    @property
    def encryption_enabled(self) -> bool:
        return bool(self.encryption_key)

    @classmethod
    def from_settings(cls, settings: Settings) -> "EndpointConfig":
        return cls(
            endpoint=settings.api_endpoint,
            signature_key=settings.signature_key if settings.signature else None,
            signature_salt=settings.signature_salt if settings.signature else None,
            signature_size=int(settings.signature_size),
            encryption_key=settings.encryption_key if settings.encryption else None,
            url_chunk_size=int(settings.url_chunk_size),
        )


def urlsafe_b64_no_pad(raw: bytes) -> str:
    return base64.urlsafe_b64encode(raw).rstrip(b"=").decode("ascii")


def _urlsafe_b64_decode(encoded: str) -> bytes:
    encoded = encoded.strip()
    try:
        return base64.urlsafe_b64decode(encoded + "=" * (-len(encoded) % 4))
    except (binascii.Error, ValueError) as exc:
        raise ValueError("invalid base64url segment") from exc


def _chunk(encoded: str, chunk_size: int) -> str:
    if chunk_size <= 0 or len(encoded) <= chunk_size:
        return encoded
    return "/".join(encoded[i : i + chunk_size] for i in range(0, len(encoded), chunk_size))


def encode_source_url(
    source_url: str,
    *,
    encryptor: SourceEncryptor | None = None,
    chunk_size: int = 0,
) -> str:
    if not source_url:
        raise ValueError("source_url is required")

    if encryptor is None:
        return _chunk(urlsafe_b64_no_pad(source_url.encode("utf-8")), chunk_size)

    encoded = urlsafe_b64_no_pad(encryptor.encrypt(source_url))
    return f"{ENCRYPTED_SOURCE_PREFIX}/{_chunk(encoded, chunk_size)}"


def decode_source_segment(segment: str, *, encryptor: SourceEncryptor | None = None) -> str:
    segment = (segment or "").strip().strip("/")
    if not segment:
        raise ValueError("segment is required")

    prefix = ENCRYPTED_SOURCE_PREFIX + "/"
    if segment.startswith(prefix):
        if encryptor is None:
            raise ValueError("encrypted source requires an encryption key")
        return encryptor.decrypt(_urlsafe_b64_decode(segment[len(prefix) :].replace("/", "")))

    try:
        return _urlsafe_b64_decode(segment.replace("/", "")).decode("utf-8")
    except UnicodeDecodeError as exc:
        raise ValueError("source segment is not valid utf-8") from exc


def sign_path(key: bytes, salt: bytes, path_after_signature: str, *, size: int = 0) -> str:
    if not path_after_signature.startswith("/"):
        raise ValueError("path_after_signature must start with '/'")

    mac = hmac.new(key, digestmod=hashlib.sha256)
    mac.update(salt)
    mac.update(path_after_signature.encode("utf-8"))
    digest = mac.digest()
    if size > 0:
        digest = digest[:size]
    return urlsafe_b64_no_pad(digest)


def format_number(value: Any) -> str:
    if isinstance(value, Enum):
        return str(value.value)
    if isinstance(value, bool):
        return "1" if value else "0"
    if isinstance(value, int):
        return str(value)
    if isinstance(value, float):
        if value.is_integer():
            return str(int(value))
        return f"{value:.6f}".rstrip("0").rstrip(".")
    return str(value)


class BuilderState(str, Enum):
    EMPTY = "empty"
    SOURCE_SET = "source_set"
    OPTIONS_ACCUMULATED = "options_accumulated"
    FINALIZED = "finalized"


def _non_negative(name: str, value: int) -> int:
    value = int(value)
    if value < 0:
        raise ValueError(f"{name} must not be negative")
    return value


class ImgproxyUri:
    """Accumulates processing options for one request and renders the imgproxy URL.

    Options are keyed by kind, so setting one twice overwrites it, and they are
    serialized in a fixed order no matter in which order the setters ran:
    resize type, size, min-width, min-height, gravity, crop, dpr.

    An instance belongs to a single request; the ``EndpointConfig`` it is built
    from is immutable and can be shared freely.
    """

    def __init__(self, config: EndpointConfig) -> None:
        self.config = config
        self._encryptor = SourceEncryptor.from_key(config.encryption_key) if config.encryption_enabled else None
        self._source: str | None = None
        self._options: dict[str, Any] = {}
        self._hash: str | None = None
        self._finalized = False

    @property
    def state(self) -> BuilderState:
        if self._source is None:
            return BuilderState.EMPTY
        if self._finalized:
            return BuilderState.FINALIZED
        if self._options:
            return BuilderState.OPTIONS_ACCUMULATED
        return BuilderState.SOURCE_SET

    @property
    def source(self) -> str | None:
        return self._source

    @property
    def hash(self) -> str | None:
        return self._hash

    def _set(self, name: str, value: Any) -> None:
        self._options[name] = value
        self._finalized = False

    def set_source(self, locator: str) -> None:
        locator = (locator or "").strip()
        if not locator:
            raise ValueError("source locator is required")
        self._source = locator
        self._finalized = False

    def set_type(self, resize_type: ResizeType | str) -> None:
        self._set(OPTION_RESIZE_TYPE, ResizeType(resize_type))

    def set_width(self, width: int) -> None:
        self._set(OPTION_WIDTH, _non_negative("width", width))

    def set_height(self, height: int) -> None:
        self._set(OPTION_HEIGHT, _non_negative("height", height))

    def set_min_width(self, width: int) -> None:
        self._set(OPTION_MIN_WIDTH, _non_negative("min-width", width))

    def set_min_height(self, height: int) -> None:
        self._set(OPTION_MIN_HEIGHT, _non_negative("min-height", height))

    def set_crop(self, width: int, height: int, gravity: Gravity | None = None) -> None:
        self._set(
            OPTION_CROP,
            Crop(
                width=_non_negative("crop width", width),
                height=_non_negative("crop height", height),
                gravity=gravity,
            ),
        )

    def set_gravity(
        self,
        gravity: Gravity | GravityType | str,
        x: float | int | None = None,
        y: float | int | None = None,
    ) -> None:
        if not isinstance(gravity, Gravity):
            gravity_type = GravityType(gravity)
            if gravity_type is GravityType.FOCUS_POINT:
                gravity = Gravity.focus_point(x if x is not None else 0.5, y if y is not None else 0.5)
            else:
                gravity = Gravity(type=gravity_type, x=x, y=y)
        self._set(OPTION_GRAVITY, gravity)

    def set_device_pixel_ratio(self, dpr: float) -> None:
        dpr = float(dpr)
        if dpr <= 0:
            raise ValueError("dpr must be positive")
        self._set(OPTION_DPR, dpr)

    def set_hash(self, value: str | None) -> None:
        self._hash = value or None

    def apply(self, directive: ProcessingDirective) -> None:
        for option in directive:
            args = option.args
            if option.name == OPTION_RESIZE_TYPE:
                self.set_type(args[0])
            elif option.name == OPTION_WIDTH:
                self.set_width(args[0])
            elif option.name == OPTION_HEIGHT:
                self.set_height(args[0])
            elif option.name == OPTION_MIN_WIDTH:
                self.set_min_width(args[0])
            elif option.name == OPTION_MIN_HEIGHT:
                self.set_min_height(args[0])
            elif option.name == OPTION_CROP:
                self.set_crop(*args)
            elif option.name == OPTION_GRAVITY:
                self.set_gravity(*args)
            elif option.name == OPTION_DPR:
                self.set_device_pixel_ratio(args[0])
            else:
                raise ValueError(f"unsupported option: {option.name}")
        if directive.source_hash:
            self.set_hash(directive.source_hash)

    def option_segments(self) -> list[str]:
        o = self._options
        segments: list[str] = []

        if OPTION_RESIZE_TYPE in o:
            segments.append(f"rt:{format_number(o[OPTION_RESIZE_TYPE])}")
        if OPTION_WIDTH in o or OPTION_HEIGHT in o:
            segments.append(f"s:{o.get(OPTION_WIDTH, 0)}:{o.get(OPTION_HEIGHT, 0)}")
        if OPTION_MIN_WIDTH in o:
            segments.append(f"mw:{o[OPTION_MIN_WIDTH]}")
        if OPTION_MIN_HEIGHT in o:
            segments.append(f"mh:{o[OPTION_MIN_HEIGHT]}")
        if OPTION_GRAVITY in o:
            segments.append(":".join(["g", *(format_number(a) for a in o[OPTION_GRAVITY].args())]))
        if OPTION_CROP in o:
            crop: Crop = o[OPTION_CROP]
            parts = ["c", str(crop.width), str(crop.height)]
            if crop.gravity is not None:
                parts.extend(format_number(a) for a in crop.gravity.args())
            segments.append(":".join(parts))
        if OPTION_DPR in o:
            segments.append(f"dpr:{format_number(o[OPTION_DPR])}")

        return segments

    def options_path(self) -> str:
        return "/".join(self.option_segments())

    def source_segment(self) -> str:
        if self._source is None:
            raise UrlBuilderError(ErrorCode.MISSING_SOURCE, "source must be set before building the URL")
        return encode_source_url(
            self._source,
            encryptor=self._encryptor,
            chunk_size=int(self.config.url_chunk_size),
        )

    def path(self) -> str:
        source = self.source_segment()
        options = self.options_path()
        return f"/{options}/{source}" if options else f"/{source}"

    def signature(self, path: str) -> str:
        cfg = self.config
        key, salt = cfg.signature_key, cfg.signature_salt
        if not key or not salt:
            return INSECURE_SIGNATURE
        return sign_path(key, salt, path, size=int(cfg.signature_size))

    def build(self) -> str:
        path = self.path()
        url = f"{self.config.endpoint}/{self.signature(path)}{path}"
        self._finalized = True

        observe_url_built(signed=self.config.signing_enabled, encrypted=self._encryptor is not None)
        log.debug(
            "imgproxy_url_built signed=%s encrypted=%s options=%s",
            self.config.signing_enabled,
            self._encryptor is not None,
            self.options_path(),
        )
        return url

    def __str__(self) -> str:
        return self.build()
