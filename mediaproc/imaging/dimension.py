from __future__ import annotations

from dataclasses import dataclass

from mediaproc.imaging.directive import ResizeType
from mediaproc.imaging.mapper import TransformRequest, select_resize_type


@dataclass(frozen=True, slots=True)
class ImageDimension:
    width: int
    height: int

    def __str__(self) -> str:
        return f"{self.width}x{self.height}"

    @classmethod
    def from_request(cls, request: TransformRequest, resize_type: ResizeType | None = None) -> "ImageDimension":
        """Predict the pixel size imgproxy will deliver for ``request``.

        Starts from the crop size (or the source size), applies the resize mode
        against the width/height bounds, then scales up to the min bounds.
        """
        resize_type = resize_type or select_resize_type(request)

        if request.crop is not None and not request.crop.is_empty():
            base_w, base_h = float(request.crop.width), float(request.crop.height)
        else:
            base_w, base_h = float(request.source_width or 0), float(request.source_height or 0)

        width_value = request.width_value
        height_value = request.height_value
        target_w = width_value.value if width_value is not None and width_value.value is not None else request.max_width
        target_h = (
            height_value.value if height_value is not None and height_value.value is not None else request.max_height
        )

        w, h = _resize(base_w, base_h, target_w, target_h, resize_type)
        w, h = _apply_min(w, h, request.min_width, request.min_height)

        if w <= 0 or h <= 0:
            return cls(width=max(0, round(w)), height=max(0, round(h)))
        return cls(width=max(1, round(w)), height=max(1, round(h)))


def _resize(
    base_w: float,
    base_h: float,
    target_w: int | None,
    target_h: int | None,
    resize_type: ResizeType,
) -> tuple[float, float]:
    if not target_w and not target_h:
        return base_w, base_h

    has_ratio = base_w > 0 and base_h > 0

    if resize_type is ResizeType.FIT:
        if not has_ratio:
            return float(target_w or 0), float(target_h or 0)
        scales = []
        if target_w:
            scales.append(target_w / base_w)
        if target_h:
            scales.append(target_h / base_h)
        scale = min(min(scales), 1.0)
        return base_w * scale, base_h * scale

    if target_w and target_h:
        return float(target_w), float(target_h)

    # one side given: the other follows the aspect ratio
    if not has_ratio:
        return float(target_w or 0), float(target_h or 0)
    if target_w:
        return float(target_w), base_h * target_w / base_w
    target_h = target_h or 0
    return base_w * target_h / base_h, float(target_h)


def _apply_min(w: float, h: float, min_w: int | None, min_h: int | None) -> tuple[float, float]:
    if w <= 0 or h <= 0:
        return float(max(w, min_w or 0)), float(max(h, min_h or 0))
    scale = 1.0
    if min_w and w < min_w:
        scale = max(scale, min_w / w)
    if min_h and h < min_h:
        scale = max(scale, min_h / h)
    return w * scale, h * scale
