from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from typing import Callable, Sequence

from kana_practice.config import VerificationPolicy
from kana_practice.writing.geometry import Bounds, Point

logger = logging.getLogger(__name__)

PatternLookup = Callable[[str], Sequence[tuple[float, float]] | None]

# Loose stroke skeletons on a 100x100 design grid. Only the vowels and the
# k-row are hand-authored; everything else uses DEFAULT_PATTERN.
STROKE_PATTERNS: dict[str, tuple[tuple[float, float], ...]] = {
    "あ": ((20, 30), (80, 30), (50, 10), (50, 90), (20, 60), (80, 60)),
    "い": ((30, 20), (28, 40), (30, 60), (35, 75), (40, 80), (70, 30), (72, 45), (72, 60)),
    "う": ((40, 15), (60, 20), (30, 40), (50, 35), (70, 45), (65, 65), (50, 85)),
    "え": ((40, 15), (60, 20), (30, 40), (65, 40), (35, 80), (50, 65), (70, 85)),
    "お": ((20, 35), (70, 35), (45, 15), (45, 85), (30, 75), (40, 60), (70, 60), (75, 80), (75, 25), (80, 30)),
    "か": ((20, 35), (60, 35), (62, 55), (58, 80), (50, 85), (40, 15), (35, 50), (25, 85), (75, 25), (82, 40), (85, 55)),
    "き": ((25, 25), (70, 20), (25, 45), (75, 40), (45, 10), (55, 55), (60, 65), (35, 75), (50, 85), (70, 85)),
    "く": ((70, 10), (65, 15), (60, 20), (50, 30), (40, 40), (30, 50), (40, 60), (50, 70), (60, 80), (70, 90)),
    "け": ((25, 15), (22, 50), (25, 85), (45, 35), (60, 35), (85, 35), (70, 15), (72, 45), (70, 70), (62, 90)),
    "こ": ((30, 25), (50, 22), (70, 25), (65, 30), (25, 70), (40, 78), (60, 80), (78, 75)),
}

DEFAULT_PATTERN: tuple[tuple[float, float], ...] = (
    (20, 20),
    (80, 20),
    (80, 80),
    (20, 80),
    (50, 20),
    (50, 80),
)

EDGE_BAND = 0.3


def find_pattern(character: str) -> Sequence[tuple[float, float]] | None:
    return STROKE_PATTERNS.get(character)


@dataclass(frozen=True)
class KeyFeatures:
    center: Point
    width: float
    height: float
    top_points: tuple[Point, ...]
    bottom_points: tuple[Point, ...]
    left_points: tuple[Point, ...]
    right_points: tuple[Point, ...]

    def to_dict(self) -> dict:
        return {
            "center": self.center.to_dict(),
            "width": self.width,
            "height": self.height,
            "top_points": [p.to_dict() for p in self.top_points],
            "bottom_points": [p.to_dict() for p in self.bottom_points],
            "left_points": [p.to_dict() for p in self.left_points],
            "right_points": [p.to_dict() for p in self.right_points],
        }


@dataclass(frozen=True)
class ReferenceCharacterEntry:
    character: str
    romaji: str
    category: str
    reference_points: tuple[Point, ...]
    key_features: KeyFeatures
    grid_size: int = 100
    is_placeholder: bool = False

    def to_dict(self) -> dict:
        return {
            "character": self.character,
            "romaji": self.romaji,
            "category": self.category,
            "reference_points": [p.to_dict() for p in self.reference_points],
            "key_features": self.key_features.to_dict(),
            "grid_size": self.grid_size,
            "is_placeholder": self.is_placeholder,
        }


def extract_key_features(points: Sequence[Point]) -> KeyFeatures:
    bounds = Bounds.of_points(points)
    width = bounds.width
    height = bounds.height
    top_limit = bounds.min_y + EDGE_BAND * height
    bottom_limit = bounds.min_y + (1 - EDGE_BAND) * height
    left_limit = bounds.min_x + EDGE_BAND * width
    right_limit = bounds.min_x + (1 - EDGE_BAND) * width
    return KeyFeatures(
        center=bounds.center,
        width=width,
        height=height,
        top_points=tuple(p for p in points if p.y <= top_limit),
        bottom_points=tuple(p for p in points if p.y >= bottom_limit),
        left_points=tuple(p for p in points if p.x <= left_limit),
        right_points=tuple(p for p in points if p.x >= right_limit),
    )


class ReferenceStore:
    """Per-session cache of reference skeletons, filled on first use."""

    def __init__(
        self,
        pattern_lookup: PatternLookup = find_pattern,
        policy: VerificationPolicy | None = None,
    ) -> None:
        self.pattern_lookup = pattern_lookup
        self.policy = policy or VerificationPolicy()
        self._entries: dict[str, ReferenceCharacterEntry] = {}
        self._lock = threading.Lock()

    def __contains__(self, character: object) -> bool:
        return character in self._entries

    def __len__(self) -> int:
        return len(self._entries)

    def get(self, character: str) -> ReferenceCharacterEntry | None:
        return self._entries.get(character)

    def get_or_create(self, character: str, romaji: str, category: str) -> ReferenceCharacterEntry:
        if not character:
            raise ValueError("character is empty")
        with self._lock:
            cached = self._entries.get(character)
            if cached is not None:
                return cached
            entry = self._build_entry(character, romaji, category)
            self._entries[character] = entry
            return entry

    def _build_entry(self, character: str, romaji: str, category: str) -> ReferenceCharacterEntry:
        raw = self.pattern_lookup(character)
        placeholder = not raw
        if placeholder:
            logger.debug("no stroke pattern for %r, using default skeleton", character)
            raw = DEFAULT_PATTERN
        points = tuple(Point(float(x), float(y)) for x, y in raw)
        return ReferenceCharacterEntry(
            character=character,
            romaji=romaji,
            category=category,
            reference_points=points,
            key_features=extract_key_features(points),
            grid_size=self.policy.reference_grid_size,
            is_placeholder=placeholder,
        )
