from __future__ import annotations

import logging
import os
import threading
import time
import uuid
from collections import OrderedDict
from datetime import datetime, timezone
from typing import Callable, Sequence

from kana_practice.config import VerificationPolicy
from kana_practice.kana.catalog import get_kana_by_character
from kana_practice.services.progress import ProgressTracker
from kana_practice.writing.capture import PRACTICE_MODE, RenderCallback, Stroke, WritingPad
from kana_practice.writing.geometry import Point, is_finite
from kana_practice.writing.references import ReferenceCharacterEntry, ReferenceStore
from kana_practice.writing.scoring import VerificationResult, verify
from kana_practice.writing.strokes import StrokeReview, expected_strokes, review_strokes

UTC = timezone.utc
DEFAULT_CATEGORY = "gojuon"

logger = logging.getLogger(__name__)


class PracticeSession:
    """One learner's writing practice: a pad, a target and its own reference cache."""

    def __init__(
        self,
        *,
        store: ReferenceStore | None = None,
        tracker: ProgressTracker | None = None,
        mode: str = PRACTICE_MODE,
        render: RenderCallback | None = None,
        policy: VerificationPolicy | None = None,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self.policy = policy or VerificationPolicy()
        self.store = store if store is not None else ReferenceStore(policy=self.policy)
        self.tracker = tracker
        self.clock = clock or (lambda: datetime.now(UTC))
        self.target: ReferenceCharacterEntry | None = None
        self.pad = WritingPad(mode=mode, render=render, verifier=self._verify)

    @property
    def mode(self) -> str:
        return self.pad.mode

    @property
    def strokes(self) -> list[Stroke]:
        return list(self.pad.strokes)

    @property
    def result(self) -> VerificationResult | None:
        return self.pad.result

    def select_target(
        self,
        character: str,
        romaji: str | None = None,
        category: str | None = None,
    ) -> ReferenceCharacterEntry:
        character = str(character or "").strip()
        if not character:
            raise ValueError("character is empty")
        kana = get_kana_by_character(character)
        entry = self.store.get_or_create(
            character,
            romaji or (kana.romaji if kana else ""),
            category or (kana.category if kana else DEFAULT_CATEGORY),
        )
        self.target = entry
        self.pad.clear()
        return entry

    def begin_stroke(self, x: float, y: float, color: str | None = None) -> Stroke:
        if color:
            return self.pad.begin_stroke(x, y, color=color)
        return self.pad.begin_stroke(x, y)

    def extend_stroke(self, x: float, y: float) -> Stroke | None:
        return self.pad.extend_stroke(x, y)

    def end_stroke(self) -> list[Stroke]:
        return self.pad.end_stroke()

    def undo_last_stroke(self) -> list[Stroke]:
        return self.pad.undo_last_stroke()

    def clear(self) -> None:
        self.pad.clear()

    def draw_stroke(self, points: Sequence[Point], color: str | None = None) -> list[Stroke]:
        """Replay a whole pointer-down to pointer-up gesture."""
        if not points:
            raise ValueError("stroke has no points")
        if not is_finite(points):
            raise ValueError("stroke coordinates must be finite numbers")
        first, rest = points[0], points[1:]
        self.begin_stroke(first.x, first.y, color=color)
        for p in rest:
            self.extend_stroke(p.x, p.y)
        return self.end_stroke()

    def check(self) -> VerificationResult | None:
        """Verify the current strokes regardless of mode."""
        if not self.pad.strokes:
            return None
        self.pad.result = self._verify(self.pad.all_points())
        return self.result

    def review_strokes(self) -> StrokeReview | None:
        """Stroke-type and stroke-order feedback, when the target has an expected order."""
        if self.target is None:
            return None
        expected = expected_strokes(self.target.character)
        if expected is None:
            return None
        return review_strokes([s.points for s in self.pad.strokes], expected)

    def _verify(self, points: Sequence[Point]) -> VerificationResult | None:
        if self.target is None:
            return None
        previous = self.pad.result
        result = verify(points, self.target, self.policy)
        was_correct = previous is not None and previous.is_correct
        if result.is_correct and not was_correct and self.tracker is not None:
            self.tracker.notify_mastered(self.target.character, self.clock(), self.target.category)
        return result

    def to_dict(self) -> dict:
        result = self.result
        review = self.review_strokes()
        return {
            "mode": self.mode,
            "target": self.target.to_dict() if self.target else None,
            "strokes": [s.to_dict() for s in self.pad.strokes],
            "point_count": self.pad.point_count(),
            "result": result.to_dict() if result else None,
            "stroke_review": review.to_dict() if review else None,
        }


class SessionRegistry:
    """In-memory sessions keyed by id, bounded in size and idle time.

    Sessions untouched for ``idle_seconds`` are dropped on the next access, and
    once ``max_sessions`` is reached the least recently used one is evicted.
    """

    def __init__(
        self,
        max_sessions: int | None = None,
        idle_seconds: float | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if max_sessions is None:
            max_sessions = int(os.getenv("KANA_PRACTICE_MAX_SESSIONS", "500"))
        if idle_seconds is None:
            idle_seconds = float(os.getenv("KANA_PRACTICE_SESSION_IDLE_SEC", "3600"))
        self.max_sessions = max(1, int(max_sessions))
        self.idle_seconds = max(1.0, float(idle_seconds))
        self.clock = clock
        self._sessions: OrderedDict[str, tuple[float, PracticeSession]] = OrderedDict()
        self._lock = threading.Lock()

    def add(self, session: PracticeSession) -> str:
        session_id = uuid.uuid4().hex
        with self._lock:
            now = self.clock()
            self._prune(now)
            while len(self._sessions) >= self.max_sessions:
                evicted, _ = self._sessions.popitem(last=False)
                logger.info("writing session evicted: %s", evicted)
            self._sessions[session_id] = (now, session)
        return session_id

    def get(self, session_id: str) -> PracticeSession:
        with self._lock:
            now = self.clock()
            self._prune(now)
            entry = self._sessions.get(session_id)
            if entry is None:
                raise KeyError(session_id)
            self._sessions[session_id] = (now, entry[1])
            self._sessions.move_to_end(session_id)
            return entry[1]

    def discard(self, session_id: str) -> None:
        with self._lock:
            if self._sessions.pop(session_id, None) is None:
                raise KeyError(session_id)

    def __len__(self) -> int:
        with self._lock:
            self._prune(self.clock())
            return len(self._sessions)

    def _prune(self, now: float) -> None:
        cutoff = now - self.idle_seconds
        stale = [sid for sid, (touched, _) in self._sessions.items() if touched < cutoff]
        for sid in stale:
            self._sessions.pop(sid, None)
        if stale:
            logger.info("expired %d idle writing session(s)", len(stale))
