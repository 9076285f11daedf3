from __future__ import annotations

from mediaproc.imaging.dimension import ImageDimension
from mediaproc.imaging.directive import ResizeType
from mediaproc.imaging.mapper import Area, TransformRequest


def test_no_targets_keeps_source_size() -> None:
    request = TransformRequest(source_width=1200, source_height=800)
    assert ImageDimension.from_request(request) == ImageDimension(1200, 800)


def test_unknown_source_without_targets() -> None:
    assert ImageDimension.from_request(TransformRequest()) == ImageDimension(0, 0)


def test_force_uses_exact_box() -> None:
    request = TransformRequest(width=300, height=300, source_width=1200, source_height=800)
    assert ImageDimension.from_request(request) == ImageDimension(300, 300)


def test_force_scales_missing_side() -> None:
    request = TransformRequest(width=300, source_width=1200, source_height=800)
    assert ImageDimension.from_request(request) == ImageDimension(300, 200)


def test_force_scales_missing_width() -> None:
    request = TransformRequest(height=200, source_width=1200, source_height=800)
    assert ImageDimension.from_request(request) == ImageDimension(300, 200)


def test_fit_keeps_aspect_ratio() -> None:
    request = TransformRequest(width="600m", height="600m", source_width=1200, source_height=800)
    assert ImageDimension.from_request(request) == ImageDimension(600, 400)


def test_fit_with_max_bounds_never_upscales() -> None:
    request = TransformRequest(max_width=2000, max_height=2000, source_width=1200, source_height=800)
    assert ImageDimension.from_request(request) == ImageDimension(1200, 800)


def test_fill_uses_requested_box() -> None:
    request = TransformRequest(width="400c", height="400c", source_width=1200, source_height=800)
    assert ImageDimension.from_request(request, ResizeType.FILL) == ImageDimension(400, 400)


def test_crop_is_the_base_size() -> None:
    request = TransformRequest(
        width="50m",
        crop=Area(offset_left=5, offset_top=5, width=100, height=50),
        source_width=1200,
        source_height=800,
    )
    assert ImageDimension.from_request(request) == ImageDimension(50, 25)


def test_min_bounds_scale_up() -> None:
    request = TransformRequest(width=100, min_height=200, source_width=400, source_height=200)
    assert ImageDimension.from_request(request) == ImageDimension(400, 200)


def test_str() -> None:
    assert str(ImageDimension(300, 200)) == "300x200"
