from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Protocol

from kana_practice.kana.catalog import get_kana_by_character
from kana_practice.scheduler.srs import next_state, state_from_row
from kana_practice.storage.db import Database

UTC = timezone.utc
MASTERY_QUALITY = 4

logger = logging.getLogger(__name__)


class ProgressTracker(Protocol):
    def notify_mastered(self, character: str, timestamp: datetime, category: str) -> object:
        ...


class DatabaseProgressTracker:
    """Stores writing mastery as spaced-repetition reviews in SQLite."""

    def __init__(self, db: Database) -> None:
        self.db = db

    def notify_mastered(self, character: str, timestamp: datetime, category: str) -> dict:
        logger.info("character mastered: %s (%s)", character, category)
        return self.review(
            character,
            quality=MASTERY_QUALITY,
            now=timestamp,
            category=category,
            mastered=True,
        )

    def review(
        self,
        character: str,
        *,
        quality: int,
        now: datetime | None = None,
        category: str | None = None,
        mastered: bool = False,
    ) -> dict:
        now = now or datetime.now(UTC)
        row = self.db.get_progress(character)
        if row is None:
            kana = get_kana_by_character(character)
            row = self.db.ensure_progress(
                character=character,
                category=category or (kana.category if kana else "gojuon"),
                romaji=kana.romaji if kana else None,
            )

        update = next_state(state_from_row(row), quality, now=now)
        mastered_at = now.isoformat() if mastered or update.status == "MASTERED" else None
        return self.db.save_progress(character=character, update=update, mastered_at=mastered_at)
