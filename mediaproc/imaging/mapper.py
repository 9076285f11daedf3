from __future__ import annotations

import re
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

from mediaproc.imaging.directive import (
    OPTION_CROP,
    OPTION_DPR,
    OPTION_GRAVITY,
    OPTION_HEIGHT,
    OPTION_MIN_HEIGHT,
    OPTION_MIN_WIDTH,
    OPTION_RESIZE_TYPE,
    OPTION_WIDTH,
    DirectiveDraft,
    Gravity,
    ProcessingDirective,
    ResizeType,
)
from mediaproc.imaging.focus import calculate_center, clamp_unit

MARKER_EXACT = ""
MARKER_MAX = "m"
MARKER_COVER = "c"

# "300", "300m", "300c", "300c+20", "m"
_DIMENSION_RE = re.compile(r"^(?P<value>\d+(?:\.\d+)?)?(?P<marker>[mc])?(?P<offset>[+-]\d+)?$")


@dataclass(frozen=True, slots=True)
class Area:
    offset_left: float
    offset_top: float
    width: float
    height: float

    def is_empty(self) -> bool:
        return self.width <= 0 or self.height <= 0

    @classmethod
    def from_value(cls, value: Any) -> "Area | None":
        if value is None or isinstance(value, Area):
            return value
        if isinstance(value, Mapping):
            return cls(
                offset_left=float(value.get("offsetLeft", value.get("x", 0)) or 0),
                offset_top=float(value.get("offsetTop", value.get("y", 0)) or 0),
                width=float(value.get("width", 0) or 0),
                height=float(value.get("height", 0) or 0),
            )
        raise TypeError(f"unsupported area value: {type(value).__name__}")


@dataclass(frozen=True, slots=True)
class DimensionValue:
    value: int | None
    marker: str = MARKER_EXACT

    @property
    def is_exact(self) -> bool:
        return self.value is not None and self.marker == MARKER_EXACT

    @property
    def is_max(self) -> bool:
        return self.marker == MARKER_MAX

    @property
    def is_cover(self) -> bool:
        return self.marker == MARKER_COVER


def parse_dimension(raw: int | float | str | None) -> DimensionValue | None:
    if raw is None:
        return None
    if isinstance(raw, bool):
        raise TypeError("dimension must not be bool")
    if isinstance(raw, (int, float)):
        return DimensionValue(value=int(raw))

    text = str(raw).strip()
    if not text:
        return None
    m = _DIMENSION_RE.match(text)
    if not m:
        raise ValueError(f"invalid dimension: {raw!r}")
    value = m.group("value")
    return DimensionValue(
        value=int(float(value)) if value is not None else None,
        marker=m.group("marker") or MARKER_EXACT,
    )


@dataclass(frozen=True, slots=True)
class TransformRequest:
    width: int | str | None = None
    height: int | str | None = None
    min_width: int | None = None
    min_height: int | None = None
    max_width: int | None = None
    max_height: int | None = None
    crop: Area | None = None
    focus_area: Area | None = None
    dpr: float | None = None
    source_width: int | None = None
    source_height: int | None = None
    # focus_area is in source pixels rather than already in [0, 1]
    focus_in_pixels: bool = False

    @property
    def width_value(self) -> DimensionValue | None:
        return parse_dimension(self.width)

    @property
    def height_value(self) -> DimensionValue | None:
        return parse_dimension(self.height)

    @classmethod
    def from_mapping(
        cls,
        configuration: Mapping[str, Any],
        *,
        source_width: int | None = None,
        source_height: int | None = None,
        focus_in_pixels: bool = False,
    ) -> "TransformRequest":
        def _int(key: str) -> int | None:
            value = configuration.get(key)
            if value is None or value == "":
                return None
            return int(value)

        dpr = configuration.get("dpr")
        return cls(
            width=configuration.get("width"),
            height=configuration.get("height"),
            min_width=_int("minWidth"),
            min_height=_int("minHeight"),
            max_width=_int("maxWidth"),
            max_height=_int("maxHeight"),
            crop=Area.from_value(configuration.get("crop")),
            focus_area=Area.from_value(configuration.get("focusArea")),
            dpr=float(dpr) if dpr not in (None, "") else None,
            source_width=source_width,
            source_height=source_height,
            focus_in_pixels=focus_in_pixels,
        )


def select_resize_type(request: TransformRequest) -> ResizeType:
    width = request.width_value
    height = request.height_value

    width_is_max = width is not None and width.is_max
    height_is_max = height is not None and height.is_max
    width_is_exact = width is not None and width.is_exact
    height_is_exact = height is not None and height.is_exact

    if width_is_max or height_is_max:
        return ResizeType.FIT
    if request.max_width is not None and not width_is_exact:
        return ResizeType.FIT
    if request.max_height is not None and not height_is_exact:
        return ResizeType.FIT

    if (width is not None and width.is_cover) or (height is not None and height.is_cover):
        return ResizeType.FILL

    return ResizeType.FORCE


def _focus_gravity(request: TransformRequest, area: Area) -> Gravity:
    if not request.focus_in_pixels:
        x = calculate_center(area.offset_left, area.width)
        y = calculate_center(area.offset_top, area.height)
        return Gravity.focus_point(clamp_unit(x), clamp_unit(y))

    if not request.source_width or not request.source_height:
        raise ValueError("pixel focus area needs the source size")
    x = calculate_center(area.offset_left, area.width, request.source_width)
    y = calculate_center(area.offset_top, area.height, request.source_height)
    return Gravity.focus_point(clamp_unit(x), clamp_unit(y))


def _bound(exact: DimensionValue | None, maximum: int | None) -> int | None:
    if exact is not None and exact.value is not None:
        return exact.value
    if maximum is not None:
        return int(maximum)
    return None


def map_request(request: TransformRequest, *, source_hash: str | None = None) -> ProcessingDirective:
    draft = DirectiveDraft(source_hash=source_hash)
    draft.add(OPTION_RESIZE_TYPE, select_resize_type(request))

    if request.crop is not None:
        crop = request.crop
        draft.add(
            OPTION_CROP,
            int(crop.width),
            int(crop.height),
            Gravity.top_left(int(crop.offset_left), int(crop.offset_top)),
        )

    if request.focus_area is not None and not request.focus_area.is_empty():
        draft.add(OPTION_GRAVITY, _focus_gravity(request, request.focus_area))

    width = _bound(request.width_value, request.max_width)
    if width is not None:
        draft.add(OPTION_WIDTH, width)

    if request.min_width is not None:
        draft.add(OPTION_MIN_WIDTH, int(request.min_width))

    height = _bound(request.height_value, request.max_height)
    if height is not None:
        draft.add(OPTION_HEIGHT, height)

    if request.min_height is not None:
        draft.add(OPTION_MIN_HEIGHT, int(request.min_height))

    if request.dpr is not None and request.dpr > 1:
        draft.add(OPTION_DPR, float(request.dpr))

    return draft.freeze()
