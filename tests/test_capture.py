from __future__ import annotations

import pytest

from kana_practice.writing.capture import (
    FREE_MODE,
    CanvasRect,
    MouseBinding,
    PointerBinding,
    Stroke,
    StrokeStateError,
    TouchBinding,
    WritingPad,
    canvas_point,
)
from kana_practice.writing.geometry import Point
from kana_practice.writing.scoring import VerificationResult


class RenderLog:
    def __init__(self) -> None:
        self.frames: list[tuple[int, bool]] = []

    def __call__(self, strokes, active):
        self.frames.append((len(strokes), active is not None))


def test_begin_extend_end_builds_one_stroke():
    render = RenderLog()
    pad = WritingPad(render=render)

    stroke = pad.begin_stroke(1, 2)
    pad.extend_stroke(3, 4)
    strokes = pad.end_stroke()

    assert strokes == [stroke]
    assert stroke.points == [Point(1, 2), Point(3, 4)]
    assert stroke.closed is True
    assert pad.active is None
    assert render.frames == [(0, True), (0, True), (1, False)]


def test_extend_without_active_stroke_is_noop():
    pad = WritingPad()

    assert pad.extend_stroke(5, 5) is None
    assert pad.strokes == []


def test_end_without_active_stroke_is_noop():
    pad = WritingPad()

    assert pad.end_stroke() == []


def test_begin_twice_is_rejected():
    pad = WritingPad()
    pad.begin_stroke(0, 0)

    with pytest.raises(StrokeStateError):
        pad.begin_stroke(1, 1)


def test_closed_stroke_is_immutable():
    pad = WritingPad()
    pad.begin_stroke(0, 0)
    (stroke,) = pad.end_stroke()

    with pytest.raises(StrokeStateError):
        stroke.append(Point(1, 1))


def test_stroke_requires_a_point():
    with pytest.raises(StrokeStateError):
        Stroke(points=[])


def test_practice_mode_verifies_on_end_and_undo():
    seen = []

    def verifier(points):
        seen.append(len(points))
        return VerificationResult(False, "", float(len(points)))

    pad = WritingPad(verifier=verifier)
    pad.begin_stroke(0, 0)
    pad.extend_stroke(1, 1)
    pad.end_stroke()
    pad.begin_stroke(2, 2)
    pad.end_stroke()

    assert pad.result.accuracy == 3
    pad.undo_last_stroke()
    assert pad.result.accuracy == 2
    pad.undo_last_stroke()
    assert pad.result is None
    assert seen == [2, 3, 2]


def test_free_mode_does_not_verify():
    calls = []
    pad = WritingPad(mode=FREE_MODE, verifier=lambda pts: calls.append(pts))

    pad.begin_stroke(0, 0)
    pad.end_stroke()
    pad.undo_last_stroke()

    assert calls == []
    assert pad.result is None


def test_clear_drops_strokes_and_verdict():
    render = RenderLog()
    pad = WritingPad(render=render, verifier=lambda pts: VerificationResult(True, "ok", 1.0))
    pad.begin_stroke(0, 0)
    pad.end_stroke()
    pad.begin_stroke(4, 4)

    pad.clear()

    assert pad.strokes == []
    assert pad.active is None
    assert pad.result is None
    assert render.frames[-1] == (0, False)


def test_unknown_mode_is_rejected():
    with pytest.raises(ValueError):
        WritingPad(mode="sketch")


def test_canvas_point_is_relative_and_clamped():
    rect = CanvasRect(left=100, top=50, width=300, height=200)

    assert canvas_point(130, 70, rect) == Point(30, 20)
    assert canvas_point(20, 500, rect) == Point(0, 200)


def test_mouse_and_touch_bindings_produce_identical_strokes():
    rect = CanvasRect(left=10, top=20, width=200, height=200)
    mouse_pad = WritingPad(mode=FREE_MODE)
    touch_pad = WritingPad(mode=FREE_MODE)
    mouse = MouseBinding(mouse_pad, rect)
    touch = TouchBinding(touch_pad, rect)

    for x, y in [(15, 25), (40, 60), (90, 120)]:
        if (x, y) == (15, 25):
            mouse.press({"clientX": x, "clientY": y})
            touch.press({"touches": [{"clientX": x, "clientY": y}]})
        else:
            mouse.move({"clientX": x, "clientY": y})
            touch.move({"touches": [{"clientX": x, "clientY": y}]})
    mouse.release()
    touch.release({"touches": [], "changedTouches": [{"clientX": 90, "clientY": 120}]})

    assert [s.points for s in mouse_pad.strokes] == [s.points for s in touch_pad.strokes]
    assert mouse_pad.strokes[0].points[0] == Point(5, 5)


def test_mouse_move_without_press_is_ignored():
    pad = WritingPad(mode=FREE_MODE)
    mouse = MouseBinding(pad, CanvasRect(0, 0, 100, 100))

    assert mouse.move({"clientX": 5, "clientY": 5}) is None
    assert mouse.release() == []


def test_touch_event_without_touches_is_ignored():
    pad = WritingPad(mode=FREE_MODE)
    touch = TouchBinding(pad, CanvasRect(0, 0, 100, 100))

    assert touch.press({"touches": []}) is None
    assert pad.active is None


@pytest.mark.parametrize("bad", [float("nan"), float("inf")])
def test_non_finite_coordinates_are_rejected(bad):
    pad = WritingPad()

    with pytest.raises(ValueError):
        pad.begin_stroke(bad, 0)
    assert pad.active is None

    pad.begin_stroke(0, 0)
    with pytest.raises(ValueError):
        pad.extend_stroke(1, bad)
    assert pad.active.points == [Point(0, 0)]


def test_pointer_binding_needs_a_client_position():
    with pytest.raises(TypeError):
        PointerBinding(WritingPad(), CanvasRect(0, 0, 100, 100))
