from __future__ import annotations

from collections.abc import Iterator
from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class ResizeType(str, Enum):
    FIT = "fit"
    FILL = "fill"
    FORCE = "force"


class GravityType(str, Enum):
    NORTH = "no"
    SOUTH = "so"
    EAST = "ea"
    WEST = "we"
    NORTH_EAST = "noea"
    NORTH_WEST = "nowe"
    SOUTH_EAST = "soea"
    SOUTH_WEST = "sowe"
    CENTER = "ce"
    SMART = "sm"
    FOCUS_POINT = "fp"


GRAVITY_TOP_LEFT = GravityType.NORTH_WEST
GRAVITY_FOCUS_POINT = GravityType.FOCUS_POINT

# option names, in the order the mapper emits them
OPTION_RESIZE_TYPE = "resize-type"
OPTION_CROP = "crop"
OPTION_GRAVITY = "gravity"
OPTION_WIDTH = "width"
OPTION_MIN_WIDTH = "min-width"
OPTION_HEIGHT = "height"
OPTION_MIN_HEIGHT = "min-height"
OPTION_DPR = "dpr"

OPTION_NAMES: tuple[str, ...] = (
    OPTION_RESIZE_TYPE,
    OPTION_CROP,
    OPTION_GRAVITY,
    OPTION_WIDTH,
    OPTION_MIN_WIDTH,
    OPTION_HEIGHT,
    OPTION_MIN_HEIGHT,
    OPTION_DPR,
)


@dataclass(frozen=True, slots=True)
class Gravity:
    type: GravityType
    x: float | int | None = None
    y: float | int | None = None

    @classmethod
    def top_left(cls, x: int = 0, y: int = 0) -> "Gravity":
        return cls(type=GRAVITY_TOP_LEFT, x=int(x), y=int(y))

    @classmethod
    def focus_point(cls, x: float, y: float) -> "Gravity":
        x, y = float(x), float(y)
        if not (0.0 <= x <= 1.0 and 0.0 <= y <= 1.0):
            raise ValueError("focus point coordinates must be within [0, 1]")
        return cls(type=GRAVITY_FOCUS_POINT, x=x, y=y)

    def args(self) -> tuple[Any, ...]:
        if self.x is None and self.y is None:
            return (self.type.value,)
        return (self.type.value, self.x if self.x is not None else 0, self.y if self.y is not None else 0)


@dataclass(frozen=True, slots=True)
class Crop:
    width: int
    height: int
    gravity: Gravity | None = None


@dataclass(frozen=True, slots=True)
class DirectiveOption:
    name: str
    args: tuple[Any, ...]

    @property
    def value(self) -> Any:
        return self.args[0] if len(self.args) == 1 else self.args


@dataclass(frozen=True, slots=True)
class ProcessingDirective:
    options: tuple[DirectiveOption, ...] = ()
    source_hash: str | None = None

    def names(self) -> tuple[str, ...]:
        return tuple(o.name for o in self.options)

    def get(self, name: str) -> DirectiveOption | None:
        for option in self.options:
            if option.name == name:
                return option
        return None

    def __contains__(self, name: object) -> bool:
        return any(o.name == name for o in self.options)

    def __iter__(self) -> Iterator[DirectiveOption]:
        return iter(self.options)

    def __len__(self) -> int:
        return len(self.options)


@dataclass(slots=True)
class DirectiveDraft:
    _options: list[DirectiveOption] = field(default_factory=list)
    source_hash: str | None = None

    def add(self, name: str, *args: Any) -> None:
        if name not in OPTION_NAMES:
            raise ValueError(f"unsupported option: {name}")
        if name == OPTION_RESIZE_TYPE and any(o.name == name for o in self._options):
            raise ValueError("resize-type is already decided")
        option = DirectiveOption(name=name, args=tuple(args))
        for idx, existing in enumerate(self._options):
            if existing.name == name:
                self._options[idx] = option
                return
        self._options.append(option)

    def freeze(self) -> ProcessingDirective:
        return ProcessingDirective(options=tuple(self._options), source_hash=self.source_hash)
