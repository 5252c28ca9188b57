from __future__ import annotations

import json

import pytest

import kana_practice.app as app_module
from kana_practice.config import AUDIO_DIR
from kana_practice.writing.references import STROKE_PATTERNS


def _stroke(character):
    return {"points": [{"x": x, "y": y} for x, y in STROKE_PATTERNS[character]]}


def test_health(client):
    assert client.get("/health").json() == {"status": "ok"}


def test_kana_list_and_detail(client):
    resp = client.get("/api/kana", params={"script": "katakana", "category": "handakuon"})
    assert resp.status_code == 200
    body = resp.json()
    assert body["total"] == 5
    assert body["items"][0]["character"] == "パ"

    detail = client.get("/api/kana/し").json()
    assert detail["kana"]["romaji"] == "shi"

    assert client.get("/api/kana", params={"script": "latin"}).status_code == 400
    assert client.get("/api/kana/★").status_code == 404


def test_writing_session_flow(client, temp_db):
    created = client.post("/api/writing/sessions", json={"character": "か"})
    assert created.status_code == 200
    session_id = created.json()["session_id"]
    assert created.json()["target"]["romaji"] == "ka"

    drawn = client.post(f"/api/writing/sessions/{session_id}/strokes", json=_stroke("か")).json()
    assert drawn["result"]["is_correct"] is True
    assert drawn["point_count"] == 11
    assert temp_db.get_progress("か")["level"] == 1

    undone = client.post(f"/api/writing/sessions/{session_id}/undo").json()
    assert undone["strokes"] == []
    assert undone["result"] is None

    retarget = client.put(f"/api/writing/sessions/{session_id}/target", json={"character": "き"}).json()
    assert retarget["target"]["character"] == "き"

    client.post(f"/api/writing/sessions/{session_id}/strokes", json=_stroke("き"))
    cleared = client.post(f"/api/writing/sessions/{session_id}/clear").json()
    assert cleared["point_count"] == 0

    assert client.delete(f"/api/writing/sessions/{session_id}").json()["ok"] is True
    assert client.get(f"/api/writing/sessions/{session_id}").status_code == 404
    assert client.delete(f"/api/writing/sessions/{session_id}").status_code == 404


def test_session_rejects_bad_mode_and_empty_stroke(client):
    assert client.post("/api/writing/sessions", json={"character": "か", "mode": "sketch"}).status_code == 400

    session_id = client.post("/api/writing/sessions", json={"character": "か"}).json()["session_id"]
    resp = client.post(f"/api/writing/sessions/{session_id}/strokes", json={"points": []})
    assert resp.status_code == 422


def test_verify_logs_attempt(client, temp_db):
    resp = client.post("/api/writing/verify", json={"character": "け", "strokes": [_stroke("け")]})

    assert resp.status_code == 200
    body = resp.json()
    assert body["result"]["is_correct"] is True
    assert body["attempt"]["point_count"] == 10
    assert body["reference"]["character"] == "け"
    assert body["stroke_review"] is None

    history = client.get("/api/writing/attempts", params={"character": "け"}).json()["items"]
    assert len(history) == 1
    assert history[0]["is_correct"] is True
    assert temp_db.get_progress("け") is not None


def test_verify_incomplete_drawing_is_not_correct(client, temp_db):
    resp = client.post(
        "/api/writing/verify",
        json={"character": "あ", "strokes": [{"points": [{"x": 1, "y": 1}, {"x": 2, "y": 2}]}]},
    )

    assert resp.json()["result"]["is_correct"] is False
    assert resp.json()["result"]["accuracy"] == 0
    assert temp_db.get_progress("あ") is None


def test_verify_without_strokes(client):
    assert client.post("/api/writing/verify", json={"character": "あ", "strokes": []}).status_code == 400


def test_progress_endpoints(client):
    reviewed = client.post("/api/progress/review", json={"character": "さ", "quality": 5}).json()
    assert reviewed["item"]["level"] == 1

    graded = client.post("/api/progress/review", json={"character": "し", "accuracy": 0.3}).json()
    assert graded["item"]["status"] == "LEARNING"
    assert graded["item"]["consecutive_incorrect"] == 1

    assert client.post("/api/progress/review", json={"character": "す"}).status_code == 400
    assert client.post("/api/progress/review", json={"character": "す", "quality": 9}).status_code == 422

    items = client.get("/api/progress").json()["items"]
    assert {i["character"] for i in items} == {"さ", "し"}
    assert client.get("/api/progress", params={"status": "bogus"}).status_code == 400

    stats = client.get("/api/progress/stats").json()["stats"]
    assert stats["total_items"] == 2
    assert stats["total_reviews"] == 2

    assert client.get("/api/progress/due").json()["items"] == []
    assert [i["character"] for i in client.get("/api/progress/new").json()["items"]] == ["し"]

    assert client.post("/api/progress/さ/reset").json()["item"]["status"] == "NEW"
    assert client.delete("/api/progress/さ").json()["item"]["character"] == "さ"
    assert client.delete("/api/progress/さ").status_code == 404
    assert client.post("/api/progress/さ/reset").status_code == 404


def test_speech_voices(client):
    voices = client.get("/api/speech/voices").json()["voices"]

    assert voices["ja-JP"][0]["id"] == "ja-JP-NanamiNeural"


def test_speech_tts_returns_audio_url(client, monkeypatch):
    calls = []

    async def fake_synthesize(*, text, voice=None):
        calls.append((text, voice))
        return AUDIO_DIR / "tts_fake.mp3"

    monkeypatch.setattr(app_module.speech_service, "synthesize", fake_synthesize)

    resp = client.post("/api/speech/tts", json={"character": "あ"})

    assert resp.status_code == 200
    assert resp.json()["audio_url"] == "/artifacts/audio/tts_fake.mp3"
    assert calls == [("あ", None)]


def test_speech_tts_unavailable(client, monkeypatch):
    async def broken(*, text, voice=None):
        raise RuntimeError("no engine")

    monkeypatch.setattr(app_module.speech_service, "synthesize", broken)

    assert client.post("/api/speech/tts", json={"text": "かな"}).status_code == 503
    assert client.post("/api/speech/tts", json={}).status_code == 400


def _post_raw(client, url, payload):
    # NaN and Infinity are not valid JSON, so the body is encoded by hand.
    return client.post(
        url,
        content=json.dumps(payload, allow_nan=True),
        headers={"content-type": "application/json"},
    )


@pytest.mark.parametrize("bad", [float("nan"), float("inf")])
def test_non_finite_coordinates_are_rejected(client, temp_db, bad):
    points = [{"x": i * 10, "y": 5} for i in range(12)]
    points[4]["y"] = bad

    resp = _post_raw(client, "/api/writing/verify", {"character": "け", "strokes": [{"points": points}]})
    assert resp.status_code == 422
    assert all("input" not in err for err in resp.json()["detail"])
    assert client.get("/api/writing/attempts").json()["items"] == []

    session_id = client.post("/api/writing/sessions", json={"character": "か"}).json()["session_id"]
    resp = _post_raw(client, f"/api/writing/sessions/{session_id}/strokes", {"points": points})
    assert resp.status_code == 422

    session = client.get(f"/api/writing/sessions/{session_id}").json()
    assert session["strokes"] == []
    drawn = client.post(f"/api/writing/sessions/{session_id}/strokes", json=_stroke("か")).json()
    assert drawn["result"]["is_correct"] is True


def test_session_reports_stroke_order(client):
    session_id = client.post("/api/writing/sessions", json={"character": "エ"}).json()["session_id"]

    for stroke in (
        [(i * 10, 0) for i in range(11)],
        [(50, i * 10) for i in range(11)],
        [(i * 10, 100) for i in range(11)],
    ):
        body = client.post(
            f"/api/writing/sessions/{session_id}/strokes",
            json={"points": [{"x": x, "y": y} for x, y in stroke]},
        ).json()

    review = body["stroke_review"]
    assert review["order_score"] == 1.0
    assert review["is_complete"] is True
    assert [f["actual"] for f in review["feedback"]] == ["horizontal", "vertical", "horizontal"]
