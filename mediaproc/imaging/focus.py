from __future__ import annotations


def calculate_center(offset: float, size: float, dimension: float | None = None) -> float:
    """Midpoint of ``[offset, offset + size]`` along one axis.

    With ``dimension`` the coordinates are taken as pixels and the midpoint is
    returned as a fraction of that dimension; without it they are assumed to be
    normalized already and the raw midpoint is returned.
    """
    center = float(offset) + float(size) / 2
    if dimension is None:
        return center
    if dimension <= 0:
        raise ValueError("dimension must be positive")
    return center / float(dimension)


def clamp_unit(value: float) -> float:
    return max(0.0, min(float(value), 1.0))
