from __future__ import annotations

from prometheus_client import Counter

URL_MODES: tuple[str, ...] = (
    "signed",
    "insecure",
    "encrypted",
)

REJECT_REASONS: tuple[str, ...] = (
    "not_configured",
    "storage_not_public",
    "task_name",
    "mime_type",
)

URLS_BUILT_TOTAL = Counter(
    "mediaproc_urls_built_total",
    "Total imgproxy URLs materialized by signing mode.",
    ["mode"],
)

TASKS_REJECTED_TOTAL = Counter(
    "mediaproc_tasks_rejected_total",
    "Total processing tasks declined by the imgproxy service, by reason.",
    ["reason"],
)


def _init_labelsets() -> None:
    for mode in URL_MODES:
        URLS_BUILT_TOTAL.labels(mode=mode).inc(0)
    for reason in REJECT_REASONS:
        TASKS_REJECTED_TOTAL.labels(reason=reason).inc(0)


_init_labelsets()


def observe_url_built(*, signed: bool, encrypted: bool) -> None:
    URLS_BUILT_TOTAL.labels(mode="signed" if signed else "insecure").inc()
    if encrypted:
        URLS_BUILT_TOTAL.labels(mode="encrypted").inc()


def observe_task_rejected(*, reason: str) -> None:
    reason = (reason or "").strip()
    if reason not in REJECT_REASONS:
        return
    TASKS_REJECTED_TOTAL.labels(reason=reason).inc()
