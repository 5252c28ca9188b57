"""Stroke-type recognition and stroke-order checking.

Each finished stroke is reduced to its chord direction, its path length
relative to the whole drawing and its mean turning angle. From those it is
classified as horizontal, vertical, diagonal or curve, then compared with the
expected stroke sequence of the target character.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Sequence

import numpy as np

from kana_practice.writing.geometry import PointCloud, as_array

HORIZONTAL = "horizontal"
VERTICAL = "vertical"
DIAGONAL = "diagonal"
CURVE = "curve"
STROKE_TYPES = (HORIZONTAL, VERTICAL, DIAGONAL, CURVE)

MIN_CURVE_POINTS = 3
MAX_POINTS = 100
DIRECTION_TOLERANCE = 15.0  # degrees off the axis
CURVE_TOLERANCE = 0.3  # radians of mean turning
LENGTH_TOLERANCE = 0.2
CONFIDENCE_THRESHOLD = 0.8

TYPE_WEIGHT = 0.4
DIRECTION_WEIGHT = 0.3
LENGTH_WEIGHT = 0.2
CURVE_WEIGHT = 0.1

EXPECTED_LENGTH = {HORIZONTAL: 1.0, VERTICAL: 1.0, DIAGONAL: 1.414, CURVE: 1.5}
EXPECTED_CURVATURE = 0.5

EXPECTED_STROKES: dict[str, tuple[str, ...]] = {
    "あ": (CURVE, HORIZONTAL, VERTICAL),
    "い": (DIAGONAL, DIAGONAL),
    "う": (CURVE, HORIZONTAL),
    "え": (VERTICAL, HORIZONTAL, DIAGONAL),
    "お": (HORIZONTAL, VERTICAL, CURVE),
    "ア": (DIAGONAL, HORIZONTAL),
    "イ": (VERTICAL, DIAGONAL),
    "ウ": (HORIZONTAL, VERTICAL),
    "エ": (HORIZONTAL, VERTICAL, HORIZONTAL),
    "オ": (HORIZONTAL, VERTICAL, HORIZONTAL),
}

MESSAGE_STROKE_CORRECT = "Correct stroke!"

DIRECTION_HINTS = {
    HORIZONTAL: "Keep the stroke closer to horizontal",
    VERTICAL: "Keep the stroke closer to vertical",
    DIAGONAL: "Slant the stroke at about 45 degrees",
}


@dataclass(frozen=True)
class StrokeAnalysis:
    stroke_type: str
    direction: float
    length: float
    curvature: float
    point_count: int

    def to_dict(self) -> dict:
        return {
            "type": self.stroke_type,
            "direction": self.direction,
            "length": self.length,
            "curvature": self.curvature,
            "point_count": self.point_count,
        }


@dataclass(frozen=True)
class StrokeFeedback:
    index: int
    expected: str
    actual: str
    is_correct: bool
    confidence: float
    message: str
    suggestions: tuple[str, ...] = ()

    def to_dict(self) -> dict:
        return {
            "index": self.index,
            "expected": self.expected,
            "actual": self.actual,
            "is_correct": self.is_correct,
            "confidence": self.confidence,
            "message": self.message,
            "suggestions": list(self.suggestions),
        }


@dataclass(frozen=True)
class StrokeReview:
    expected: tuple[str, ...]
    feedback: tuple[StrokeFeedback, ...]
    order_score: float
    missing: int
    extra: int

    @property
    def is_complete(self) -> bool:
        return self.missing == 0 and self.extra == 0

    def to_dict(self) -> dict:
        return {
            "expected": list(self.expected),
            "feedback": [f.to_dict() for f in self.feedback],
            "order_score": self.order_score,
            "missing": self.missing,
            "extra": self.extra,
            "is_complete": self.is_complete,
        }


def expected_strokes(character: str) -> tuple[str, ...] | None:
    return EXPECTED_STROKES.get(character)


def _prepare(arr: np.ndarray) -> np.ndarray:
    """Drop repeated samples and average long strokes down to MAX_POINTS."""
    if len(arr) > 1:
        keep = np.ones(len(arr), dtype=bool)
        keep[1:] = np.any(np.diff(arr, axis=0) != 0, axis=1)
        arr = arr[keep]
    if len(arr) > MAX_POINTS:
        window = math.ceil(len(arr) / MAX_POINTS)
        arr = np.array([arr[i : i + window].mean(axis=0) for i in range(0, len(arr), window)])
    return arr


def turning(arr: np.ndarray) -> float:
    """Mean turning angle, in radians, over thirds-sized windows of the stroke."""
    n = len(arr)
    if n < 3:
        return 0.0
    segments = max(1, n // 3)
    total = 0.0
    for i in range(segments):
        seg = arr[i * n // segments : (i + 1) * n // segments]
        if len(seg) < 3:
            continue
        first = seg[len(seg) // 2] - seg[0]
        second = seg[-1] - seg[len(seg) // 2]
        diff = abs(math.atan2(second[1], second[0]) - math.atan2(first[1], first[0]))
        total += min(diff, 2 * math.pi - diff)
    return total / segments


def direction_class(direction: float) -> str:
    """Axis family of a chord direction given in degrees."""
    folded = abs(direction) % 180.0
    off_horizontal = min(folded, 180.0 - folded)
    if off_horizontal <= DIRECTION_TOLERANCE:
        return HORIZONTAL
    if off_horizontal >= 90.0 - DIRECTION_TOLERANCE:
        return VERTICAL
    return DIAGONAL


def classify(direction: float, curvature: float, point_count: int) -> str:
    if point_count >= MIN_CURVE_POINTS and curvature > CURVE_TOLERANCE:
        return CURVE
    return direction_class(direction)


def analyze_stroke(points: PointCloud, scale: float | None = None) -> StrokeAnalysis:
    """Measure one stroke.

    ``scale`` is the extent that ``length`` is relative to, normally the
    longer side of the whole drawing. It defaults to the stroke's own extent.
    """
    arr = _prepare(as_array(points))
    if len(arr) == 0:
        raise ValueError("stroke has no points")
    delta = arr[-1] - arr[0]
    direction = math.degrees(math.atan2(delta[1], delta[0]))
    path = float(np.linalg.norm(np.diff(arr, axis=0), axis=1).sum())
    if scale is None:
        scale = float(np.ptp(arr, axis=0).max())
    length = path / scale if scale > 0 else 0.0
    curvature = turning(arr)
    return StrokeAnalysis(
        stroke_type=classify(direction, curvature, len(arr)),
        direction=direction,
        length=length,
        curvature=curvature,
        point_count=len(arr),
    )


def check_stroke(analysis: StrokeAnalysis, expected: str, index: int = 0) -> StrokeFeedback:
    if expected not in STROKE_TYPES:
        raise ValueError(f"unknown stroke type: {expected}")
    actual = analysis.stroke_type
    type_match = actual == expected
    direction_match = expected == CURVE or direction_class(analysis.direction) == expected
    length_ratio = analysis.length / EXPECTED_LENGTH[expected]
    length_match = abs(length_ratio - 1) <= LENGTH_TOLERANCE
    if expected == CURVE:
        curvature_match = abs(analysis.curvature - EXPECTED_CURVATURE) <= CURVE_TOLERANCE
    else:
        curvature_match = analysis.curvature <= CURVE_TOLERANCE

    confidence = round(
        (TYPE_WEIGHT if type_match else 0.0)
        + (DIRECTION_WEIGHT if direction_match else 0.0)
        + (LENGTH_WEIGHT if length_match else 0.0)
        + (CURVE_WEIGHT if curvature_match else 0.0),
        3,
    )
    if confidence >= CONFIDENCE_THRESHOLD:
        return StrokeFeedback(index, expected, actual, True, confidence, MESSAGE_STROKE_CORRECT)

    problems: list[str] = []
    suggestions: list[str] = []
    if not type_match:
        problems.append(f"Expected a {expected} stroke, but drew a {actual} stroke")
        suggestions.append(f"Try to draw a {expected} stroke instead of a {actual} stroke")
    if not direction_match:
        problems.append("The stroke direction is incorrect")
        suggestions.append(DIRECTION_HINTS[expected])
    if not length_match:
        problems.append("The stroke length is incorrect")
        suggestions.append("Make the stroke shorter" if length_ratio > 1 else "Make the stroke longer")
    if expected == CURVE and not curvature_match:
        problems.append("The curve shape is incorrect")
        more_or_less = "less" if analysis.curvature > EXPECTED_CURVATURE else "more"
        suggestions.append(f"Make the curve {more_or_less} pronounced")
    return StrokeFeedback(
        index, expected, actual, False, confidence, ". ".join(problems), tuple(suggestions)
    )


def review_strokes(strokes: Sequence[PointCloud], expected: Sequence[str]) -> StrokeReview:
    """Check drawn strokes, in drawing order, against an expected sequence.

    The order score is the mean confidence over the expected strokes and is 0
    unless exactly as many strokes were drawn as expected.
    """
    arrays = [as_array(s) for s in strokes]
    scale = 1.0
    if arrays:
        combined = np.vstack(arrays)
        if combined.size:
            scale = float(np.ptp(combined, axis=0).max()) or 1.0

    feedback = tuple(
        check_stroke(analyze_stroke(arr, scale=scale), kind, index=i)
        for i, (arr, kind) in enumerate(zip(arrays, expected))
    )
    if expected and len(arrays) == len(expected):
        order_score = round(sum(f.confidence for f in feedback) / len(expected), 3)
    else:
        order_score = 0.0
    return StrokeReview(
        expected=tuple(expected),
        feedback=feedback,
        order_score=order_score,
        missing=max(0, len(expected) - len(arrays)),
        extra=max(0, len(arrays) - len(expected)),
    )
