"""Heuristic similarity between a drawn point cloud and a reference skeleton.

Three signals are combined:

* aspect ratio of the raw bounding boxes,
* per-cell point counts on a 5x5 grid over each normalized shape,
* the directed Hausdorff distance from drawn points to reference points.

The weighted sum is divided by the leniency factor (a raw 0.6 already counts
as a perfect score) and clamped to [0, 1]. A drawing passes only when the
result is strictly above the pass threshold. The weights and thresholds come
from ``VerificationPolicy`` and are a fixed product contract.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Sequence

import numpy as np
from scipy.spatial import cKDTree

from kana_practice.config import VerificationPolicy
from kana_practice.writing.geometry import (
    Bounds,
    NormalizedShape,
    Point,
    PointCloud,
    as_array,
    is_finite,
    normalize,
)
from kana_practice.writing.references import ReferenceCharacterEntry

logger = logging.getLogger(__name__)

ASPECT_EPSILON = 1e-6
DEFAULT_POLICY = VerificationPolicy()

MESSAGE_CORRECT = "Great job! That looks right."
MESSAGE_RETRY = "Not quite. Check the proportions and try again."
MESSAGE_INCOMPLETE = "Incomplete drawing. Keep going before checking."


@dataclass(frozen=True)
class VerificationResult:
    is_correct: bool
    message: str
    accuracy: float

    def to_dict(self) -> dict:
        return {"is_correct": self.is_correct, "message": self.message, "accuracy": self.accuracy}


@dataclass(frozen=True)
class ScoreBreakdown:
    shape: float
    aspect: float
    grid: float
    raw: float
    accuracy: float


def aspect_ratio(bounds: Bounds) -> float:
    if bounds.width == 0 and bounds.height == 0:
        return 1.0
    return bounds.width / max(bounds.height, ASPECT_EPSILON)


def aspect_score(drawn: Bounds, reference: Bounds) -> float:
    return 1 - min(1.0, abs(aspect_ratio(drawn) - aspect_ratio(reference)))


def grid_histogram(points: PointCloud, cells: int = 5) -> np.ndarray:
    arr = as_array(points)
    extent = np.ptp(arr, axis=0)
    extent[extent == 0] = 1.0
    last = cells - 1
    index = np.clip(np.floor((arr - arr.min(axis=0)) / extent * last), 0, last).astype(int)
    return np.bincount(index[:, 1] * cells + index[:, 0], minlength=cells * cells)


def grid_score(drawn: PointCloud, reference: PointCloud, cells: int = 5) -> float:
    drawn_counts = grid_histogram(drawn, cells)
    ref_counts = grid_histogram(reference, cells)
    denominator = np.maximum(np.maximum(drawn_counts, ref_counts), 1)
    return float(np.mean(1 - np.abs(drawn_counts - ref_counts) / denominator))


def directed_hausdorff(source: PointCloud, target: PointCloud) -> float:
    """Largest distance from a source point to its nearest target point."""
    distances, _ = cKDTree(as_array(target)).query(as_array(source))
    return float(np.max(distances))


def shape_score(drawn: PointCloud, reference: PointCloud) -> float:
    return max(0.0, 1 - 2 * directed_hausdorff(drawn, reference))


def score_shapes(
    drawn: NormalizedShape,
    reference: NormalizedShape,
    policy: VerificationPolicy = DEFAULT_POLICY,
) -> ScoreBreakdown:
    shape = shape_score(drawn.points, reference.points)
    aspect = aspect_score(drawn.bounds, reference.bounds)
    grid = grid_score(drawn.points, reference.points, policy.grid_cells)
    raw = policy.shape_weight * shape + policy.aspect_weight * aspect + policy.grid_weight * grid
    accuracy = max(0.0, min(1.0, raw / policy.leniency))
    return ScoreBreakdown(shape=shape, aspect=aspect, grid=grid, raw=raw, accuracy=accuracy)


def result_for_accuracy(accuracy: float, policy: VerificationPolicy = DEFAULT_POLICY) -> VerificationResult:
    passed = accuracy > policy.pass_threshold
    return VerificationResult(
        is_correct=passed,
        message=MESSAGE_CORRECT if passed else MESSAGE_RETRY,
        accuracy=accuracy,
    )


def verify(
    drawn_points: Sequence[Point],
    entry: ReferenceCharacterEntry,
    policy: VerificationPolicy = DEFAULT_POLICY,
) -> VerificationResult:
    if not is_finite(drawn_points):
        raise ValueError("drawn points must be finite numbers")
    if len(drawn_points) < policy.min_points:
        return VerificationResult(is_correct=False, message=MESSAGE_INCOMPLETE, accuracy=0.0)

    breakdown = score_shapes(normalize(drawn_points), normalize(entry.reference_points), policy)
    logger.debug(
        "verify %s: shape=%.3f aspect=%.3f grid=%.3f raw=%.3f accuracy=%.3f",
        entry.character,
        breakdown.shape,
        breakdown.aspect,
        breakdown.grid,
        breakdown.raw,
        breakdown.accuracy,
    )
    return result_for_accuracy(breakdown.accuracy, policy)
