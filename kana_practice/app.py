from __future__ import annotations

from contextlib import asynccontextmanager
from datetime import datetime, timezone

from fastapi import FastAPI, HTTPException, Query, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles

from kana_practice.api.schemas import (
    ProgressReviewRequest,
    SessionCreateRequest,
    StrokeModel,
    TargetUpdateRequest,
    TTSRequest,
    VerifyRequest,
)
from kana_practice.config import ARTIFACTS_DIR, configure_logging, ensure_dirs
from kana_practice.kana.catalog import get_kana_by_character, list_kana
from kana_practice.scheduler.srs import quality_from_accuracy
from kana_practice.services.progress import DatabaseProgressTracker
from kana_practice.services.speech import SpeechService
from kana_practice.storage.db import Database, WritingAttempt
from kana_practice.writing.capture import FREE_MODE, StrokeStateError
from kana_practice.writing.geometry import Point, as_points
from kana_practice.writing.session import PracticeSession, SessionRegistry

UTC = timezone.utc

db = Database()
speech_service = SpeechService()
sessions = SessionRegistry()


@asynccontextmanager
async def lifespan(_app: FastAPI):
    configure_logging()
    ensure_dirs()
    db.initialize()
    yield


app = FastAPI(title="Kana Writing Practice", version="0.1.0", lifespan=lifespan)
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["*"],
    allow_headers=["*"],
)

app.mount("/artifacts", StaticFiles(directory=str(ARTIFACTS_DIR), check_dir=False), name="artifacts")


@app.exception_handler(RequestValidationError)
async def validation_error(_request: Request, exc: RequestValidationError) -> JSONResponse:
    # Echoed inputs may hold NaN or Infinity, which strict JSON cannot encode.
    errors = [{k: v for k, v in err.items() if k != "input"} for err in exc.errors()]
    return JSONResponse(status_code=422, content={"detail": jsonable_encoder(errors)})


@app.get("/health")
def health() -> dict:
    return {"status": "ok"}


@app.get("/api/kana")
def kana_list(
    script: str | None = Query(default=None),
    category: str | None = Query(default=None),
    row: str | None = Query(default=None),
) -> dict:
    try:
        items = list_kana(script=script, category=category, row=row)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    return {"ok": True, "items": [k.to_dict() for k in items], "total": len(items)}


@app.get("/api/kana/{character}")
def kana_detail(character: str) -> dict:
    kana = get_kana_by_character(character)
    if kana is None:
        raise HTTPException(status_code=404, detail="unknown kana")
    return {"ok": True, "kana": kana.to_dict()}


@app.post("/api/writing/sessions")
def create_session(req: SessionCreateRequest) -> dict:
    try:
        session = PracticeSession(tracker=DatabaseProgressTracker(db), mode=req.mode)
        session.select_target(req.character, romaji=req.romaji, category=req.category)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    session_id = sessions.add(session)
    return {"ok": True, "session_id": session_id, **session.to_dict()}


@app.get("/api/writing/sessions/{session_id}")
def get_session(session_id: str) -> dict:
    session = _get_session(session_id)
    return {"ok": True, "session_id": session_id, **session.to_dict()}


@app.put("/api/writing/sessions/{session_id}/target")
def update_session_target(session_id: str, req: TargetUpdateRequest) -> dict:
    session = _get_session(session_id)
    try:
        session.select_target(req.character, romaji=req.romaji, category=req.category)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    return {"ok": True, "session_id": session_id, **session.to_dict()}


@app.post("/api/writing/sessions/{session_id}/strokes")
def add_session_stroke(session_id: str, req: StrokeModel) -> dict:
    session = _get_session(session_id)
    try:
        session.draw_stroke(_points(req), color=req.color)
    except StrokeStateError as exc:
        raise HTTPException(status_code=409, detail=str(exc)) from exc
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    return {"ok": True, "session_id": session_id, **session.to_dict()}


@app.post("/api/writing/sessions/{session_id}/undo")
def undo_session_stroke(session_id: str) -> dict:
    session = _get_session(session_id)
    session.undo_last_stroke()
    return {"ok": True, "session_id": session_id, **session.to_dict()}


@app.post("/api/writing/sessions/{session_id}/clear")
def clear_session(session_id: str) -> dict:
    session = _get_session(session_id)
    session.clear()
    return {"ok": True, "session_id": session_id, **session.to_dict()}


@app.delete("/api/writing/sessions/{session_id}")
def delete_session(session_id: str) -> dict:
    try:
        sessions.discard(session_id)
    except KeyError as exc:
        raise HTTPException(status_code=404, detail="session not found") from exc
    return {"ok": True, "session_id": session_id}


@app.post("/api/writing/verify")
def verify_writing(req: VerifyRequest) -> dict:
    session = PracticeSession(tracker=DatabaseProgressTracker(db), mode=FREE_MODE)
    try:
        entry = session.select_target(req.character, category=req.category)
        for stroke in req.strokes:
            session.draw_stroke(_points(stroke), color=stroke.color)
        result = session.check()
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc

    point_count = session.pad.point_count()
    if result is None:
        raise HTTPException(status_code=400, detail="no strokes submitted")

    attempt = db.save_attempt(
        WritingAttempt(
            character=entry.character,
            category=entry.category,
            accuracy=result.accuracy,
            is_correct=result.is_correct,
            stroke_count=len(req.strokes),
            point_count=point_count,
            created_at=datetime.now(UTC).isoformat(),
        )
    )
    review = session.review_strokes()
    return {
        "ok": True,
        "result": result.to_dict(),
        "stroke_review": review.to_dict() if review else None,
        "attempt": attempt,
        "reference": entry.to_dict(),
    }


@app.get("/api/writing/attempts")
def writing_attempts(
    character: str | None = Query(default=None),
    limit: int = Query(default=50, ge=1, le=500),
) -> dict:
    return {"ok": True, "items": db.list_attempts(character=character, limit=limit)}


@app.get("/api/progress")
def progress_list(
    status: str | None = Query(default=None),
    category: str | None = Query(default=None),
    limit: int = Query(default=200, ge=1, le=1000),
) -> dict:
    try:
        items = db.list_progress(status=status, category=category, limit=limit)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    return {"ok": True, "items": items}


@app.get("/api/progress/due")
def progress_due(limit: int = Query(default=50, ge=1, le=500)) -> dict:
    return {"ok": True, "items": db.get_due_items(limit=limit)}


@app.get("/api/progress/new")
def progress_new(limit: int = Query(default=10, ge=1, le=200)) -> dict:
    return {"ok": True, "items": db.get_new_items(limit=limit)}


@app.get("/api/progress/stats")
def progress_stats() -> dict:
    return {"ok": True, "stats": db.progress_stats()}


@app.post("/api/progress/review")
def progress_review(req: ProgressReviewRequest) -> dict:
    character = req.character.strip()
    if not character:
        raise HTTPException(status_code=400, detail="character is empty")
    if req.quality is not None:
        quality = req.quality
    elif req.accuracy is not None:
        quality = quality_from_accuracy(req.accuracy)
    else:
        raise HTTPException(status_code=400, detail="quality or accuracy is required")
    tracker = DatabaseProgressTracker(db)
    item = tracker.review(character, quality=quality, category=req.category)
    return {"ok": True, "item": item}


@app.post("/api/progress/{character}/reset")
def progress_reset(character: str) -> dict:
    try:
        item = db.reset_progress(character)
    except KeyError as exc:
        raise HTTPException(status_code=404, detail="no progress for character") from exc
    return {"ok": True, "item": item}


@app.delete("/api/progress/{character}")
def progress_delete(character: str) -> dict:
    try:
        item = db.delete_progress(character)
    except KeyError as exc:
        raise HTTPException(status_code=404, detail="no progress for character") from exc
    return {"ok": True, "item": item}


@app.get("/api/speech/voices")
def speech_voices() -> dict:
    return {"ok": True, "voices": speech_service.list_voices()}


@app.post("/api/speech/tts")
async def speech_tts(req: TTSRequest) -> dict:
    text = (req.text or req.character or "").strip()
    if not text:
        raise HTTPException(status_code=400, detail="text is empty")
    try:
        out = await speech_service.synthesize(text=text, voice=req.voice)
    except Exception as exc:
        raise HTTPException(status_code=503, detail=f"TTS unavailable: {exc}") from exc

    return {
        "ok": True,
        "audio_url": "/artifacts/" + str(out.relative_to(ARTIFACTS_DIR)).replace("\\", "/"),
    }


def _get_session(session_id: str) -> PracticeSession:
    try:
        return sessions.get(session_id)
    except KeyError as exc:
        raise HTTPException(status_code=404, detail="session not found") from exc


def _points(stroke: StrokeModel) -> list[Point]:
    return as_points(p.model_dump() for p in stroke.points)
