from __future__ import annotations

import numpy as np
import pytest

from kana_practice.writing.geometry import Bounds, Point, as_array, as_points, is_finite, normalize

SAMPLE = [Point(12, 40), Point(30, 18), Point(55, 70), Point(80, 44), Point(41, 90)]


def _scaled(points, k):
    return [Point(p.x * k, p.y * k) for p in points]


def _translated(points, dx, dy):
    return [Point(p.x + dx, p.y + dy) for p in points]


@pytest.mark.parametrize("k", [0.25, 3.0, 17.5])
def test_normalize_is_scale_invariant(k):
    base = normalize(SAMPLE)
    scaled = normalize(_scaled(SAMPLE, k))

    np.testing.assert_allclose(base.points, scaled.points)
    assert scaled.bounds.width == pytest.approx(base.bounds.width * k)
    assert scaled.bounds.height == pytest.approx(base.bounds.height * k)


def test_normalize_is_translation_invariant():
    base = normalize(SAMPLE)
    moved = normalize(_translated(SAMPLE, -250.0, 1234.5))

    np.testing.assert_allclose(base.points, moved.points)


def test_normalize_keeps_pre_normalization_bounds():
    shape = normalize(SAMPLE)

    assert shape.points.shape == (5, 2)
    assert shape.bounds.min_x == 12
    assert shape.bounds.max_y == 90
    assert shape.bounds.width == 68
    assert shape.bounds.height == 72
    assert shape.points[:, 1].max() == pytest.approx(1.0)
    assert shape.points[:, 0].max() == pytest.approx(68 / 72)


def test_normalize_degenerate_cloud_has_no_nan():
    shape = normalize([Point(5, 5), Point(5, 5), Point(5, 5)])

    assert shape.bounds.width == 0
    assert shape.bounds.height == 0
    assert not np.isnan(shape.points).any()
    assert (shape.points == 0).all()


def test_normalize_accepts_arrays():
    arr = np.array([(p.x, p.y) for p in SAMPLE])

    np.testing.assert_allclose(normalize(arr).points, normalize(SAMPLE).points)


def test_bounds_of_empty_points_raises():
    with pytest.raises(ValueError):
        Bounds.of_points([])


def test_as_array_of_no_points_keeps_two_columns():
    assert as_array([]).shape == (0, 2)


def test_is_finite_flags_nan_and_infinity():
    assert is_finite(SAMPLE) is True
    assert is_finite(SAMPLE + [Point(float("nan"), 1)]) is False
    assert is_finite([Point(0, float("inf"))]) is False


def test_as_points_accepts_pairs_and_dicts():
    points = as_points([(1, 2), {"x": 3, "y": 4.5}, Point(6, 7)])

    assert points == [Point(1.0, 2.0), Point(3.0, 4.5), Point(6, 7)]
