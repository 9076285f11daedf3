from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any


class ErrorCode(str, Enum):
    # configuration
    NOT_CONFIGURED = "NOT_CONFIGURED"
    INVALID_ENDPOINT = "INVALID_ENDPOINT"
    INVALID_KEY = "INVALID_KEY"
    MISSING_SECRET = "MISSING_SECRET"
    UNSUPPORTED_SOURCE_LOADER = "UNSUPPORTED_SOURCE_LOADER"
    # construction
    MISSING_SOURCE = "MISSING_SOURCE"
    UNSUPPORTED_TASK = "UNSUPPORTED_TASK"


@dataclass(frozen=True, slots=True)
class ProcessingError(Exception):
    code: ErrorCode
    message: str
    details: dict[str, Any] | None = None

    def __str__(self) -> str:
        return f"{self.code.value}: {self.message}"


@dataclass(frozen=True, slots=True)
class ConfigurationError(ProcessingError):
    pass


@dataclass(frozen=True, slots=True)
class UrlBuilderError(ProcessingError):
    pass


def error_body(*, code: ErrorCode, message: str, details: dict[str, Any] | None = None) -> dict[str, Any]:
    return {
        "ok": False,
        "code": code.value,
        "message": str(message or "").strip() or code.value.lower().replace("_", " "),
        "details": details or {},
    }
