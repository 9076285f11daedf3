from __future__ import annotations

import dataclasses
from dataclasses import dataclass
from typing import Protocol

from mediaproc.core.config import Settings
from mediaproc.core.errors import ConfigurationError, ErrorCode, ProcessingError
from mediaproc.core.logging import get_logger
from mediaproc.core.metrics import observe_task_rejected
from mediaproc.imaging.dimension import ImageDimension
from mediaproc.imaging.mapper import TransformRequest, map_request, select_resize_type
from mediaproc.imaging.sources import (
    OnlineMediaHelper,
    OnlineMediaPreviewSource,
    SourceFile,
    SourceResolver,
    build_source_resolver,
)
from mediaproc.imaging.uri import EndpointConfig, ImgproxyUri

log = get_logger(__name__)

TASK_PREVIEW = "Preview"
TASK_CROP_SCALE_MASK = "CropScaleMask"
SUPPORTED_TASK_NAMES = (TASK_PREVIEW, TASK_CROP_SCALE_MASK)

IMAGE_MIME_TYPES: tuple[str, ...] = (
    "image/jpeg",
    "image/png",
    "image/webp",
    "image/avif",
    "image/gif",
    "image/ico",
    "image/heic",
    "image/heif",
    "image/bmp",
    "image/tiff",
    "video/youtube",
    "video/vimeo",
)
PDF_MIME_TYPE = "application/pdf"


@dataclass(frozen=True, slots=True)
class ProcessingTask:
    name: str
    source_file: SourceFile
    configuration: TransformRequest


@dataclass(frozen=True, slots=True)
class ImageServiceResult:
    url: str
    dimension: ImageDimension


class ImageService(Protocol):
    identifier: str

    def has_configuration(self) -> bool: ...

    def can_process_task(self, task: ProcessingTask) -> bool: ...

    def process_task(self, task: ProcessingTask) -> ImageServiceResult: ...


class ImgproxyImageService:
    identifier = "imgproxy"

    def __init__(
        self,
        settings: Settings,
        *,
        source: SourceResolver | None = None,
        online_media: OnlineMediaHelper | None = None,
    ) -> None:
        self.settings = settings
        self.source = source or build_source_resolver(settings)
        self.online_media = (
            OnlineMediaPreviewSource(base_uri=settings.source_uri, helper=online_media)
            if online_media is not None
            else None
        )

        self.endpoint: EndpointConfig | None = None
        self.configuration_error: ConfigurationError | None = None
        try:
            self.endpoint = EndpointConfig.from_settings(settings)
        except ConfigurationError as exc:
            self.configuration_error = exc
            log.warning("imgproxy_not_configured code=%s message=%s", exc.code.value, exc.message)

    def has_configuration(self) -> bool:
        return self.endpoint is not None

    def supported_mime_types(self) -> tuple[str, ...]:
        if self.settings.processing_pdf:
            return IMAGE_MIME_TYPES + (PDF_MIME_TYPE,)
        return IMAGE_MIME_TYPES

    def _rejection_reason(self, task: ProcessingTask) -> str | None:
        if not self.has_configuration():
            return "not_configured"
        if not task.source_file.storage_public:
            return "storage_not_public"
        if task.name not in SUPPORTED_TASK_NAMES:
            return "task_name"
        if task.source_file.mime_type not in self.supported_mime_types():
            return "mime_type"
        return None

    def can_process_task(self, task: ProcessingTask) -> bool:
        reason = self._rejection_reason(task)
        if reason is None:
            return True
        observe_task_rejected(reason=reason)
        log.debug(
            "imgproxy_task_rejected reason=%s task=%s mime_type=%s",
            reason,
            task.name,
            task.source_file.mime_type,
        )
        return False

    def _resolve_source(self, file: SourceFile) -> str:
        if file.is_online_media:
            if self.online_media is None:
                raise ConfigurationError(
                    ErrorCode.NOT_CONFIGURED,
                    "online media previews need an online media helper",
                    {"extension": file.extension},
                )
            return self.online_media.get_source(file)
        return self.source.get_source(file)

    def process_task(self, task: ProcessingTask) -> ImageServiceResult:
        if self.endpoint is None:
            raise self.configuration_error or ConfigurationError(ErrorCode.NOT_CONFIGURED, "imgproxy is not configured")

        reason = self._rejection_reason(task)
        if reason is not None:
            raise ProcessingError(
                ErrorCode.UNSUPPORTED_TASK,
                f"imgproxy cannot process this task: {reason}",
                {"reason": reason, "task": task.name, "mime_type": task.source_file.mime_type},
            )

        file = task.source_file
        request = task.configuration
        if request.source_width is None and request.source_height is None and file.width and file.height:
            request = dataclasses.replace(request, source_width=file.width, source_height=file.height)

        uri = ImgproxyUri(self.endpoint)
        uri.set_source(self._resolve_source(file))

        directive = map_request(request, source_hash=file.sha1)
        uri.apply(directive)

        dimension = ImageDimension.from_request(request, select_resize_type(request))
        return ImageServiceResult(url=uri.build(), dimension=dimension)
