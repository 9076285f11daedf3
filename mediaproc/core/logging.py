from __future__ import annotations

import logging

from mediaproc.core.redact import redact_any


class RedactFilter(logging.Filter):
    def filter(self, record: logging.LogRecord) -> bool:
        try:
            message = record.getMessage()
            record.msg = redact_any(message)
            record.args = ()
            for key, value in list(record.__dict__.items()):
                if key.startswith("_") or key in {"msg", "args", "exc_info", "exc_text", "stack_info"}:
                    continue
                record.__dict__[key] = redact_any(value)
        except Exception:
            pass
        return True


def configure_logging(level: int | str = logging.INFO) -> None:
    if isinstance(level, str):
        level = logging.getLevelName(level.strip().upper() or "INFO")
        if not isinstance(level, int):
            level = logging.INFO
    logging.basicConfig(level=level, format="%(levelname)s %(name)s %(message)s")
    root = logging.getLogger()
    if not any(isinstance(f, RedactFilter) for f in root.filters):
        root.addFilter(RedactFilter())


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)
