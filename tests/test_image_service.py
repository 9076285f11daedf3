from __future__ import annotations

import base64

import pytest

from mediaproc.core.config import load_settings
from mediaproc.core.errors import ConfigurationError, ErrorCode, ProcessingError
from mediaproc.imaging.dimension import ImageDimension
from mediaproc.imaging.mapper import Area, TransformRequest
from mediaproc.imaging.service import (
    PDF_MIME_TYPE,
    TASK_CROP_SCALE_MASK,
    TASK_PREVIEW,
    ImgproxyImageService,
    ProcessingTask,
)
from mediaproc.imaging.sources import SourceFile

ENV = {
    "IMGPROXY_API_ENDPOINT": "https://imgproxy.example",
    "IMGPROXY_SOURCE_URI": "https://www.example",
}


def _b64(text: str) -> str:
    return base64.urlsafe_b64encode(text.encode("utf-8")).rstrip(b"=").decode("ascii")


def _service(**env: str) -> ImgproxyImageService:
    return ImgproxyImageService(load_settings({**ENV, **env}))


def _task(name: str = TASK_PREVIEW, request: TransformRequest | None = None, **file_kwargs) -> ProcessingTask:  # type: ignore[no-untyped-def]
    file = {
        "identifier": "/user_upload/a.jpg",
        "mime_type": "image/jpeg",
        "extension": "jpg",
        "public_url": "/fileadmin/a.jpg",
        "width": 1200,
        "height": 800,
    }
    file.update(file_kwargs)
    return ProcessingTask(name=name, source_file=SourceFile(**file), configuration=request or TransformRequest())


class _PreviewHelper:
    def get_preview_image(self, file: SourceFile) -> str:
        return "/var/www/html/public/typo3temp/assets/online_media/" + file.identifier.strip("/") + ".jpg"


def test_has_configuration() -> None:
    assert _service().has_configuration() is True
    assert _service(IMGPROXY_API_ENDPOINT="").has_configuration() is False


def test_unconfigured_service_declines_and_raises() -> None:
    service = _service(IMGPROXY_API_ENDPOINT="not a url")
    task = _task()

    assert service.can_process_task(task) is False
    with pytest.raises(ConfigurationError) as exc:
        service.process_task(task)
    assert exc.value.code == ErrorCode.INVALID_ENDPOINT


@pytest.mark.parametrize("name", [TASK_PREVIEW, TASK_CROP_SCALE_MASK, "Other"])
@pytest.mark.parametrize("mime_type", ["image/jpeg", "image/png", PDF_MIME_TYPE, "text/plain"])
def test_non_public_storage_is_never_processed(name: str, mime_type: str) -> None:
    service = _service(IMGPROXY_PROCESSING_PDF="1")
    assert service.can_process_task(_task(name, mime_type=mime_type, storage_public=False)) is False


def test_supported_tasks_and_mime_types() -> None:
    service = _service()
    assert service.can_process_task(_task(TASK_PREVIEW)) is True
    assert service.can_process_task(_task(TASK_CROP_SCALE_MASK, mime_type="image/webp")) is True
    assert service.can_process_task(_task("Other")) is False
    assert service.can_process_task(_task(mime_type="text/plain")) is False


def test_pdf_needs_opt_in() -> None:
    pdf = _task(mime_type=PDF_MIME_TYPE, extension="pdf")
    assert _service().can_process_task(pdf) is False
    assert _service(IMGPROXY_PROCESSING_PDF="1").can_process_task(pdf) is True
    assert PDF_MIME_TYPE in _service(IMGPROXY_PROCESSING_PDF="1").supported_mime_types()


def test_process_task_builds_url_and_dimension() -> None:
    result = _service().process_task(_task(request=TransformRequest(width=300, height=200)))

    assert result.url == "https://imgproxy.example/insecure/rt:force/s:300:200/" + _b64(
        "https://www.example/fileadmin/a.jpg"
    )
    assert result.dimension == ImageDimension(300, 200)


def test_process_task_uses_file_size_as_source_size() -> None:
    result = _service().process_task(_task(request=TransformRequest(width=600)))
    assert result.dimension == ImageDimension(600, 400)


def test_process_task_keeps_normalized_focus_area() -> None:
    request = TransformRequest(width=300, focus_area=Area(offset_left=0.25, offset_top=0.25, width=0.5, height=0.5))
    url = _service().process_task(_task(request=request)).url
    assert "/s:300:0/g:fp:0.5:0.5/" in url


def test_process_task_normalizes_pixel_focus_area_by_file_size() -> None:
    request = TransformRequest(
        width=300,
        focus_area=Area(offset_left=0, offset_top=0, width=600, height=400),
        focus_in_pixels=True,
    )
    url = _service().process_task(_task(request=request)).url
    assert "/g:fp:0.25:0.25/" in url


def test_process_task_is_signed_when_enabled() -> None:
    service = _service(
        IMGPROXY_SIGNATURE="1",
        IMGPROXY_SIGNATURE_KEY="736563726574",
        IMGPROXY_SIGNATURE_SALT="68656C6C6F",
    )
    url = service.process_task(_task(request=TransformRequest(width=300))).url
    assert not url.startswith("https://imgproxy.example/insecure/")
    assert url.endswith("/rt:force/s:300:0/" + _b64("https://www.example/fileadmin/a.jpg"))


def test_online_media_uses_preview_image() -> None:
    service = ImgproxyImageService(load_settings(ENV), online_media=_PreviewHelper())
    task = _task(identifier="/clip", mime_type="video/youtube", extension="youtube", public_url=None)

    assert service.can_process_task(task) is True
    url = service.process_task(task).url
    assert url.endswith(_b64("https://www.example/typo3temp/assets/online_media/clip.jpg"))


def test_online_media_without_helper_is_not_configured() -> None:
    task = _task(identifier="/clip", mime_type="video/vimeo", extension="vimeo", public_url=None)
    with pytest.raises(ConfigurationError) as exc:
        _service().process_task(task)
    assert exc.value.code == ErrorCode.NOT_CONFIGURED


@pytest.mark.parametrize(
    ("task", "reason"),
    [
        (_task(storage_public=False), "storage_not_public"),
        (_task("Other"), "task_name"),
        (_task(mime_type=PDF_MIME_TYPE, extension="pdf"), "mime_type"),
    ],
)
def test_process_task_rejects_unsupported_tasks(task: ProcessingTask, reason: str) -> None:
    with pytest.raises(ProcessingError) as exc:
        _service().process_task(task)
    assert exc.value.code == ErrorCode.UNSUPPORTED_TASK
    assert exc.value.details["reason"] == reason
