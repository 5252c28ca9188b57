from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone

from kana_practice.config import VerificationPolicy

UTC = timezone.utc
MIN_EASE = 1.3
DEFAULT_EASE = 2.5
PASSING_QUALITY = 3


@dataclass
class SRSState:
    last_review_at: str | None
    next_review_at: str | None
    level: int = 0
    ease: float = DEFAULT_EASE
    interval_days: int = 0
    consecutive_correct: int = 0
    consecutive_incorrect: int = 0
    total_reviews: int = 0


@dataclass
class SRSUpdate:
    state: SRSState
    status: str


def next_state(previous: SRSState | None, quality: int, now: datetime | None = None) -> SRSUpdate:
    """Schedule the next review from a 1-5 recall grade (3 and up is a pass)."""
    if not 1 <= int(quality) <= 5:
        raise ValueError("quality must be between 1 and 5")
    quality = int(quality)
    now = now or datetime.now(UTC)
    state = previous or SRSState(last_review_at=None, next_review_at=now.isoformat())

    ease = state.ease
    passed = quality >= PASSING_QUALITY

    if passed:
        correct = state.consecutive_correct + 1
        incorrect = 0
        if state.level == 0:
            interval = 1
        elif state.level == 1:
            interval = 6
        else:
            interval = max(1, round(state.interval_days * ease))
            miss = 5 - quality
            ease = max(MIN_EASE, round(ease + (0.1 - miss * (0.08 + miss * 0.02)), 2))
        level = state.level + 1
    else:
        correct = 0
        incorrect = state.consecutive_incorrect + 1
        interval = 1
        ease = max(MIN_EASE, round(ease - 0.2, 2))
        level = 0

    status = derive_status(level=level, consecutive_correct=correct, passed=passed)
    return SRSUpdate(
        state=SRSState(
            last_review_at=now.isoformat(),
            next_review_at=(now + timedelta(days=interval)).isoformat(),
            level=level,
            ease=ease,
            interval_days=interval,
            consecutive_correct=correct,
            consecutive_incorrect=incorrect,
            total_reviews=state.total_reviews + 1,
        ),
        status=status,
    )


def derive_status(*, level: int, consecutive_correct: int, passed: bool) -> str:
    if not passed:
        return "LEARNING"
    if level >= 3 and consecutive_correct >= 3:
        return "MASTERED"
    if level >= 2:
        return "REVIEWING"
    return "LEARNING"


def quality_from_accuracy(accuracy: float, policy: VerificationPolicy | None = None) -> int:
    """Grade a drawing score on the 1-5 recall scale."""
    policy = policy or VerificationPolicy()
    if accuracy >= 0.99:
        return 5
    if accuracy > policy.pass_threshold:
        return 4
    if accuracy >= 0.6:
        return 2
    return 1


def state_from_row(row: dict | None) -> SRSState | None:
    if row is None:
        return None
    return SRSState(
        last_review_at=row.get("last_review_at"),
        next_review_at=row.get("next_review_at"),
        level=int(row.get("level", 0)),
        ease=float(row.get("ease", DEFAULT_EASE)),
        interval_days=int(row.get("interval_days", 0)),
        consecutive_correct=int(row.get("consecutive_correct", 0)),
        consecutive_incorrect=int(row.get("consecutive_incorrect", 0)),
        total_reviews=int(row.get("total_reviews", 0)),
    )
