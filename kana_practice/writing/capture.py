from __future__ import annotations

import logging
import math
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Callable, Mapping, Sequence

from kana_practice.writing.geometry import Point
from kana_practice.writing.scoring import VerificationResult

logger = logging.getLogger(__name__)

PRACTICE_MODE = "PRACTICE"
FREE_MODE = "FREE"
ALLOWED_MODES = {PRACTICE_MODE, FREE_MODE}
DEFAULT_STROKE_COLOR = "#000000"


class StrokeStateError(RuntimeError):
    """Raised when the caller drives the pad out of order."""


@dataclass
class Stroke:
    points: list[Point]
    color: str = DEFAULT_STROKE_COLOR
    closed: bool = False

    def __post_init__(self) -> None:
        if not self.points:
            raise StrokeStateError("a stroke needs at least one point")

    def append(self, point: Point) -> None:
        if self.closed:
            raise StrokeStateError("stroke is already finished")
        self.points.append(point)

    def to_dict(self) -> dict:
        return {"points": [p.to_dict() for p in self.points], "color": self.color}


RenderCallback = Callable[[Sequence[Stroke], Stroke | None], None]
Verifier = Callable[[Sequence[Point]], VerificationResult | None]


def pad_point(x: float, y: float) -> Point:
    x, y = float(x), float(y)
    if not (math.isfinite(x) and math.isfinite(y)):
        raise ValueError(f"coordinates must be finite: ({x}, {y})")
    return Point(x, y)


def normalize_mode(value: object) -> str:
    mode = str(value or PRACTICE_MODE).strip().upper()
    if mode not in ALLOWED_MODES:
        raise ValueError(f"unsupported writing mode: {value}")
    return mode


@dataclass
class WritingPad:
    """Ordered strokes for one drawing attempt.

    Every structural change hands the full stroke list to ``render``. In
    practice mode, finishing or undoing a stroke re-runs ``verifier`` over
    all retained points and keeps the outcome in ``result``.
    """

    mode: str = PRACTICE_MODE
    render: RenderCallback | None = None
    verifier: Verifier | None = None
    strokes: list[Stroke] = field(default_factory=list)
    active: Stroke | None = None
    result: VerificationResult | None = None

    def __post_init__(self) -> None:
        self.mode = normalize_mode(self.mode)

    def begin_stroke(self, x: float, y: float, color: str = DEFAULT_STROKE_COLOR) -> Stroke:
        if self.active is not None:
            raise StrokeStateError("previous stroke was not finished")
        self.active = Stroke(points=[pad_point(x, y)], color=color)
        self._redraw()
        return self.active

    def extend_stroke(self, x: float, y: float) -> Stroke | None:
        if self.active is None:
            return None
        self.active.append(pad_point(x, y))
        self._redraw()
        return self.active

    def end_stroke(self) -> list[Stroke]:
        if self.active is None:
            return list(self.strokes)
        self.active.closed = True
        self.strokes.append(self.active)
        self.active = None
        self._redraw()
        if self.mode == PRACTICE_MODE:
            self.reverify()
        return list(self.strokes)

    def undo_last_stroke(self) -> list[Stroke]:
        if self.strokes:
            self.strokes.pop()
        self._redraw()
        if self.mode == PRACTICE_MODE:
            self.reverify()
        return list(self.strokes)

    def clear(self) -> None:
        self.strokes.clear()
        self.active = None
        self.result = None
        self._redraw()

    def all_points(self) -> list[Point]:
        return [p for stroke in self.strokes for p in stroke.points]

    def point_count(self) -> int:
        return sum(len(stroke.points) for stroke in self.strokes)

    def reverify(self) -> VerificationResult | None:
        if not self.strokes or self.verifier is None:
            self.result = None
        else:
            self.result = self.verifier(self.all_points())
        return self.result

    def _redraw(self) -> None:
        if self.render is not None:
            self.render(list(self.strokes), self.active)


@dataclass(frozen=True)
class CanvasRect:
    left: float
    top: float
    width: float
    height: float


def canvas_point(client_x: float, client_y: float, rect: CanvasRect) -> Point:
    """Viewport coordinates to canvas-relative ones, clamped to the canvas."""
    x = min(max(float(client_x) - rect.left, 0.0), rect.width)
    y = min(max(float(client_y) - rect.top, 0.0), rect.height)
    return Point(x, y)


class PointerBinding(ABC):
    """Feeds one input family's events into a ``WritingPad``."""

    def __init__(self, pad: WritingPad, rect: CanvasRect, color: str = DEFAULT_STROKE_COLOR) -> None:
        self.pad = pad
        self.rect = rect
        self.color = color

    @abstractmethod
    def client_position(self, event: Mapping) -> tuple[float, float] | None:
        ...

    def press(self, event: Mapping) -> Stroke | None:
        position = self.client_position(event)
        if position is None:
            return None
        point = canvas_point(position[0], position[1], self.rect)
        return self.pad.begin_stroke(point.x, point.y, color=self.color)

    def move(self, event: Mapping) -> Stroke | None:
        position = self.client_position(event)
        if position is None:
            return None
        point = canvas_point(position[0], position[1], self.rect)
        return self.pad.extend_stroke(point.x, point.y)

    def release(self, event: Mapping | None = None) -> list[Stroke]:
        return self.pad.end_stroke()


class MouseBinding(PointerBinding):
    def client_position(self, event: Mapping) -> tuple[float, float] | None:
        if "clientX" not in event or "clientY" not in event:
            return None
        return float(event["clientX"]), float(event["clientY"])


class TouchBinding(PointerBinding):
    def client_position(self, event: Mapping) -> tuple[float, float] | None:
        touches = event.get("touches") or event.get("changedTouches") or []
        if not touches:
            logger.debug("touch event without touch points ignored")
            return None
        first = touches[0]
        return float(first["clientX"]), float(first["clientY"])
