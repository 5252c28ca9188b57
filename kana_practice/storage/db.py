from __future__ import annotations

import sqlite3
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from pathlib import Path

from kana_practice.config import DB_PATH
from kana_practice.scheduler.srs import DEFAULT_EASE, SRSUpdate

UTC = timezone.utc
ALLOWED_STATUSES = {"NEW", "LEARNING", "REVIEWING", "MASTERED"}
RETENTION_WINDOW = timedelta(days=7)


@dataclass
class WritingAttempt:
    character: str
    category: str
    accuracy: float
    is_correct: bool
    stroke_count: int = 0
    point_count: int = 0
    created_at: str | None = None


class Database:
    def __init__(self, db_path: Path = DB_PATH) -> None:
        self.db_path = db_path

    @contextmanager
    def connect(self):
        conn = sqlite3.connect(self.db_path)
        conn.row_factory = sqlite3.Row
        try:
            yield conn
            conn.commit()
        finally:
            conn.close()

    def initialize(self) -> None:
        schema_path = Path(__file__).with_name("schema.sql")
        Path(self.db_path).parent.mkdir(parents=True, exist_ok=True)
        with self.connect() as conn:
            conn.executescript(schema_path.read_text(encoding="utf-8"))

    def ensure_progress(self, *, character: str, category: str, romaji: str | None) -> dict:
        with self.connect() as conn:
            conn.execute(
                """
                INSERT OR IGNORE INTO character_progress (character, category, romaji, next_review_at)
                VALUES (?, ?, ?, ?)
                """,
                (character, category, romaji, _iso_now()),
            )
            row = conn.execute(
                "SELECT * FROM character_progress WHERE character = ?", (character,)
            ).fetchone()
        return dict(row)

    def get_progress(self, character: str) -> dict | None:
        with self.connect() as conn:
            row = conn.execute(
                "SELECT * FROM character_progress WHERE character = ?", (character,)
            ).fetchone()
        return dict(row) if row else None

    def save_progress(self, *, character: str, update: SRSUpdate, mastered_at: str | None = None) -> dict:
        state = update.state
        with self.connect() as conn:
            cur = conn.execute(
                """
                UPDATE character_progress
                SET level = ?,
                    ease = ?,
                    interval_days = ?,
                    consecutive_correct = ?,
                    consecutive_incorrect = ?,
                    total_reviews = ?,
                    status = ?,
                    last_review_at = ?,
                    next_review_at = ?,
                    mastered_at = COALESCE(mastered_at, ?),
                    updated_at = CURRENT_TIMESTAMP
                WHERE character = ?
                """,
                (
                    state.level,
                    state.ease,
                    state.interval_days,
                    state.consecutive_correct,
                    state.consecutive_incorrect,
                    state.total_reviews,
                    update.status,
                    state.last_review_at,
                    state.next_review_at,
                    mastered_at,
                    character,
                ),
            )
            if cur.rowcount == 0:
                raise KeyError(character)
            row = conn.execute(
                "SELECT * FROM character_progress WHERE character = ?", (character,)
            ).fetchone()
        return dict(row)

    def list_progress(
        self,
        *,
        status: str | None = None,
        category: str | None = None,
        limit: int = 200,
        offset: int = 0,
    ) -> list[dict]:
        clauses: list[str] = []
        params: list[object] = []
        if status:
            normalized = _normalize_status(status)
            clauses.append("status = ?")
            params.append(normalized)
        if category:
            clauses.append("category = ?")
            params.append(str(category).strip().lower())
        where = f"WHERE {' AND '.join(clauses)}" if clauses else ""
        params.extend([max(1, min(int(limit), 1000)), max(0, int(offset))])
        with self.connect() as conn:
            rows = conn.execute(
                f"""
                SELECT * FROM character_progress
                {where}
                ORDER BY created_at ASC, character ASC
                LIMIT ? OFFSET ?
                """,
                params,
            ).fetchall()
        return [dict(row) for row in rows]

    def get_due_items(self, *, now: datetime | None = None, limit: int = 50) -> list[dict]:
        now = now or datetime.now(UTC)
        with self.connect() as conn:
            rows = conn.execute(
                """
                SELECT * FROM character_progress
                WHERE next_review_at IS NOT NULL AND next_review_at <= ?
                ORDER BY next_review_at ASC
                LIMIT ?
                """,
                (now.isoformat(), max(1, int(limit))),
            ).fetchall()
        return [dict(row) for row in rows]

    def get_new_items(self, limit: int = 10) -> list[dict]:
        with self.connect() as conn:
            rows = conn.execute(
                """
                SELECT * FROM character_progress
                WHERE level = 0
                ORDER BY created_at ASC, character ASC
                LIMIT ?
                """,
                (max(1, int(limit)),),
            ).fetchall()
        return [dict(row) for row in rows]

    def reset_progress(self, character: str) -> dict:
        with self.connect() as conn:
            cur = conn.execute(
                """
                UPDATE character_progress
                SET level = 0,
                    ease = ?,
                    interval_days = 0,
                    consecutive_correct = 0,
                    consecutive_incorrect = 0,
                    total_reviews = 0,
                    status = 'NEW',
                    mastered_at = NULL,
                    last_review_at = NULL,
                    next_review_at = ?,
                    updated_at = CURRENT_TIMESTAMP
                WHERE character = ?
                """,
                (DEFAULT_EASE, _iso_now(), character),
            )
            if cur.rowcount == 0:
                raise KeyError(character)
            row = conn.execute(
                "SELECT * FROM character_progress WHERE character = ?", (character,)
            ).fetchone()
        return dict(row)

    def delete_progress(self, character: str) -> dict:
        with self.connect() as conn:
            row = conn.execute(
                "SELECT * FROM character_progress WHERE character = ?", (character,)
            ).fetchone()
            if row is None:
                raise KeyError(character)
            conn.execute("DELETE FROM character_progress WHERE character = ?", (character,))
        return dict(row)

    def save_attempt(self, attempt: WritingAttempt) -> dict:
        with self.connect() as conn:
            cur = conn.execute(
                """
                INSERT INTO writing_attempts
                (character, category, accuracy, is_correct, stroke_count, point_count, created_at)
                VALUES (?, ?, ?, ?, ?, ?, COALESCE(?, CURRENT_TIMESTAMP))
                """,
                (
                    attempt.character,
                    attempt.category,
                    float(attempt.accuracy),
                    int(bool(attempt.is_correct)),
                    int(attempt.stroke_count),
                    int(attempt.point_count),
                    attempt.created_at,
                ),
            )
            row = conn.execute(
                "SELECT * FROM writing_attempts WHERE id = ?", (int(cur.lastrowid),)
            ).fetchone()
        return _decode_attempt(row)

    def list_attempts(self, *, character: str | None = None, limit: int = 50) -> list[dict]:
        limit = max(1, min(int(limit), 500))
        with self.connect() as conn:
            if character:
                rows = conn.execute(
                    """
                    SELECT * FROM writing_attempts
                    WHERE character = ?
                    ORDER BY id DESC
                    LIMIT ?
                    """,
                    (character, limit),
                ).fetchall()
            else:
                rows = conn.execute(
                    "SELECT * FROM writing_attempts ORDER BY id DESC LIMIT ?", (limit,)
                ).fetchall()
        return [_decode_attempt(row) for row in rows]

    def progress_stats(self, *, now: datetime | None = None) -> dict:
        now = now or datetime.now(UTC)
        items = self.list_progress(limit=1000)
        due = [i for i in items if i.get("next_review_at") and i["next_review_at"] <= now.isoformat()]
        recent: list[dict] = []
        for item in items:
            reviewed = _parse_dt(item.get("last_review_at"))
            if reviewed is not None and now - reviewed < RETENTION_WINDOW:
                recent.append(item)
        retained = [i for i in recent if int(i["consecutive_correct"]) > 0]
        return {
            "total_items": len(items),
            "due_items": len(due),
            "new_items": sum(1 for i in items if int(i["level"]) == 0),
            "learning_items": sum(1 for i in items if int(i["level"]) == 1),
            "review_items": sum(1 for i in items if int(i["level"]) > 1),
            "mastered_items": sum(1 for i in items if i["status"] == "MASTERED"),
            "average_ease": (
                round(sum(float(i["ease"]) for i in items) / len(items), 3) if items else DEFAULT_EASE
            ),
            "retention_rate": round(len(retained) / len(recent), 3) if recent else 0.0,
            "total_reviews": sum(int(i["total_reviews"]) for i in items),
        }


def _decode_attempt(row: sqlite3.Row) -> dict:
    data = dict(row)
    data["is_correct"] = bool(data["is_correct"])
    return data


def _iso_now() -> str:
    return datetime.now(UTC).isoformat()


def _normalize_status(value: object) -> str:
    key = str(value or "").strip().upper()
    if key not in ALLOWED_STATUSES:
        raise ValueError(f"invalid status: {value}")
    return key


def _parse_dt(value: object) -> datetime | None:
    if not value:
        return None
    try:
        parsed = datetime.fromisoformat(str(value))
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=UTC)
    return parsed
