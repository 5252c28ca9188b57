from __future__ import annotations

import sys
from pathlib import Path

import pytest
from fastapi.testclient import TestClient

sys.path.insert(0, str(Path(__file__).resolve().parents[1]))

import kana_practice.app as app_module
from kana_practice.storage.db import Database


@pytest.fixture()
def temp_db(tmp_path):
    db = Database(tmp_path / "kana_practice_test.db")
    db.initialize()
    return db


@pytest.fixture()
def client(temp_db, monkeypatch):
    monkeypatch.setattr(app_module, "db", temp_db)
    with TestClient(app_module.app) as c:
        yield c


class RecordingTracker:
    def __init__(self) -> None:
        self.calls: list[tuple] = []

    def notify_mastered(self, character, timestamp, category):
        self.calls.append((character, timestamp, category))


@pytest.fixture()
def tracker():
    return RecordingTracker()
