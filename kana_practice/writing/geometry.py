"""Point, bounds and shape normalization for handwriting verification."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Sequence

import numpy as np


@dataclass(frozen=True)
class Point:
    x: float
    y: float

    def to_dict(self) -> dict:
        return {"x": self.x, "y": self.y}


PointCloud = Sequence[Point] | np.ndarray


def as_array(points: PointCloud) -> np.ndarray:
    """Stack points into an ``(N, 2)`` float array."""
    if isinstance(points, np.ndarray):
        return points.astype(float).reshape(-1, 2)
    return np.array([(p.x, p.y) for p in points], dtype=float).reshape(-1, 2)


@dataclass(frozen=True)
class Bounds:
    min_x: float
    max_x: float
    min_y: float
    max_y: float

    @property
    def width(self) -> float:
        return self.max_x - self.min_x

    @property
    def height(self) -> float:
        return self.max_y - self.min_y

    @property
    def center(self) -> Point:
        return Point((self.min_x + self.max_x) / 2, (self.min_y + self.max_y) / 2)

    @classmethod
    def of_points(cls, points: PointCloud) -> Bounds:
        arr = as_array(points)
        if arr.size == 0:
            raise ValueError("cannot compute bounds of an empty point set")
        (min_x, min_y), (max_x, max_y) = arr.min(axis=0), arr.max(axis=0)
        return cls(min_x=float(min_x), max_x=float(max_x), min_y=float(min_y), max_y=float(max_y))


@dataclass(frozen=True, eq=False)
class NormalizedShape:
    points: np.ndarray
    bounds: Bounds


def normalize(points: PointCloud) -> NormalizedShape:
    """Map a point cloud into a translation- and scale-free frame.

    Points are shifted to the bounding box origin and divided by the longer
    side, so the longer axis spans [0, 1] and proportions are kept. A
    degenerate cloud (every point identical) uses a scale of 1 and collapses
    onto the origin. ``bounds`` keeps the extents before normalization.
    """
    arr = as_array(points)
    bounds = Bounds.of_points(arr)
    scale = float(np.ptp(arr, axis=0).max())
    if scale == 0:
        scale = 1.0
    return NormalizedShape(points=(arr - arr.min(axis=0)) / scale, bounds=bounds)


def is_finite(points: PointCloud) -> bool:
    return bool(np.isfinite(as_array(points)).all())


def as_points(raw: Iterable[object]) -> list[Point]:
    """Coerce ``Point``, ``(x, y)`` pairs or ``{"x", "y"}`` dicts into points."""
    out: list[Point] = []
    for item in raw:
        if isinstance(item, Point):
            out.append(item)
        elif isinstance(item, dict):
            out.append(Point(float(item["x"]), float(item["y"])))
        else:
            x, y = item  # type: ignore[misc]
            out.append(Point(float(x), float(y)))
    return out
