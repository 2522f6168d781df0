"""Tests for the FastAPI application routes."""
from __future__ import annotations

import asyncio
import json
import random
from unittest.mock import patch

import pytest
from fastapi.testclient import TestClient

from vocab_chapters import app as app_module
from vocab_chapters.app import app
from vocab_chapters.config import Settings
from vocab_chapters.manager import DictionaryManager
from vocab_chapters.models import ExternalState
from vocab_chapters.store import (
    STORAGE_KEY,
    DictionaryStore,
    MemoryKeyValueStore,
    SQLiteKeyValueStore,
)


@pytest.fixture
def test_app(tmp_path):
    """Set up test app with an in-memory store and settings."""
    kv = MemoryKeyValueStore()
    mgr = DictionaryManager(DictionaryStore(kv), rng=random.Random(7))
    settings = Settings(db_path=str(tmp_path / "test.db"))

    # Set globals BEFORE creating TestClient so startup() is a no-op
    app_module._manager = mgr
    app_module._settings = settings
    app_module._external = ExternalState()
    app_module._pending_alert = None

    with patch("vocab_chapters.app.save_settings"):
        client = TestClient(app, raise_server_exceptions=False)
        yield client, mgr, kv
        client.close()

    app_module._manager = None
    app_module._settings = None
    app_module._external = ExternalState()
    app_module._pending_alert = None


@pytest.fixture
def test_app_with_data(test_app):
    client, mgr, kv = test_app
    client.post("/api/chapters", json={"name": "Pets"})
    client.post("/api/chapters/Pets/words", json={"word": "dog", "translation": "câine"})
    client.post("/api/chapters/Pets/words", json={"word": "cat", "translation": "pisică"})
    return client, mgr, kv


def _answer_all(client, state_path, answer_path, answers):
    """Answer every question in the running quiz; returns the last response."""
    data = client.get(state_path).json()
    quiz = data.get("quiz", data)
    last = None
    while quiz["status"] == "in_progress":
        last = client.post(answer_path, json={"answer": answers[quiz["question"]["word"]]}).json()
        quiz = last["quiz"]
    return last


class TestHome:
    def test_routes(self, test_app):
        client, _, _ = test_app
        data = client.get("/api/routes").json()
        assert [r["name"] for r in data["routes"]] == ["dictionary", "external"]


class TestChaptersAPI:
    def test_empty(self, test_app):
        client, _, _ = test_app
        data = client.get("/api/dictionary").json()
        assert data["chapters"] == []
        assert data["selected"] is None
        assert data["quiz"]["status"] == "idle"

    def test_add_chapter(self, test_app):
        client, _, kv = test_app
        resp = client.post("/api/chapters", json={"name": "Verbs"})
        assert resp.status_code == 200
        data = resp.json()
        assert data["chapters"] == [{"name": "Verbs", "word_count": 0}]
        assert data["selected"] == "Verbs"
        assert json.loads(kv.get(STORAGE_KEY)) == {"Verbs": []}

    def test_duplicate_chapter(self, test_app):
        client, _, _ = test_app
        client.post("/api/chapters", json={"name": "Verbs"})
        resp = client.post("/api/chapters", json={"name": "Verbs"})
        assert resp.status_code == 400
        assert "error" in resp.json()

    def test_select_chapter(self, test_app_with_data):
        client, _, _ = test_app_with_data
        client.post("/api/chapters", json={"name": "Verbs"})
        data = client.post("/api/chapters/select", json={"name": "Pets"}).json()
        assert data["selected"] == "Pets"
        assert [w["word"] for w in data["words"]] == ["dog", "cat"]

    def test_select_unknown(self, test_app):
        client, _, _ = test_app
        resp = client.post("/api/chapters/select", json={"name": "Nope"})
        assert resp.status_code == 404

    def test_delete_selected(self, test_app_with_data):
        client, _, kv = test_app_with_data
        data = client.delete("/api/chapters").json()
        assert data["chapters"] == []
        assert data["selected"] is None
        assert json.loads(kv.get(STORAGE_KEY)) == {}

    def test_delete_without_selection(self, test_app):
        client, _, _ = test_app
        resp = client.delete("/api/chapters")
        assert resp.status_code == 400

    def test_delete_by_name(self, test_app_with_data):
        client, _, _ = test_app_with_data
        assert client.delete("/api/chapters/Pets").json()["chapters"] == []
        assert client.delete("/api/chapters/Pets").status_code == 404

    def test_add_word_validation(self, test_app_with_data):
        client, _, _ = test_app_with_data
        resp = client.post("/api/chapters/Pets/words", json={"word": "bird"})
        assert resp.status_code == 400

    def test_delete_word(self, test_app_with_data):
        client, _, _ = test_app_with_data
        data = client.delete("/api/chapters/Pets/words/0").json()
        assert data["words"] == [{"word": "cat", "translation": "pisică"}]

    def test_delete_word_out_of_range(self, test_app_with_data):
        client, _, _ = test_app_with_data
        assert client.delete("/api/chapters/Pets/words/9").status_code == 400

    def test_save_failure_reported_as_alert(self, test_app):
        client, mgr, kv = test_app
        with patch.object(kv, "set", side_effect=OSError("disk full")):
            resp = client.post("/api/chapters", json={"name": "Verbs"})
        assert resp.status_code == 200
        data = resp.json()
        assert data["alert"]
        assert data["selected"] == "Verbs"
        assert kv.get(STORAGE_KEY) is None


class TestLoadAlert:
    def test_alert_shown_once(self, test_app):
        client, _, _ = test_app
        app_module._pending_alert = "Could not load the dictionary."
        assert client.get("/api/dictionary").json()["alert"] == "Could not load the dictionary."
        assert client.get("/api/dictionary").json()["alert"] is None

    def test_startup_with_corrupt_store(self, test_app, tmp_path, monkeypatch):
        client, _, _ = test_app
        db = tmp_path / "corrupt.db"
        kv = SQLiteKeyValueStore(db)
        kv.set(STORAGE_KEY, "{not json")
        kv.close()

        monkeypatch.delenv("VOCAB_CHAPTERS_NO_LOAD", raising=False)
        app_module._manager = None
        with patch("vocab_chapters.app.load_settings", return_value=Settings(db_path=str(db))):
            asyncio.run(app_module.startup())
        try:
            first = client.get("/api/dictionary").json()
            assert first["alert"] == "Could not load the dictionary."
            assert first["chapters"] == []
            assert client.get("/api/dictionary").json()["alert"] is None
            # the app stays usable
            assert client.post("/api/chapters", json={"name": "Verbs"}).status_code == 200
        finally:
            app_module._manager.store.kv.close()


class TestRequestValidation:
    def test_null_answer(self, test_app_with_data):
        client, _, _ = test_app_with_data
        client.post("/api/quiz/start")
        resp = client.post("/api/quiz/answer", json={"answer": None})
        assert resp.status_code == 400
        assert "answer" in resp.json()["error"]
        # the quiz did not advance
        assert client.get("/api/quiz").json()["index"] == 0

    @pytest.mark.parametrize("path,body", [
        ("/api/chapters", {"name": 5}),
        ("/api/chapters/select", {"name": None}),
        ("/api/chapters/Pets/words", {"word": "bird", "translation": ["pasăre"]}),
        ("/api/external/import", {"text": None}),
    ])
    def test_non_string_fields(self, test_app_with_data, path, body):
        client, _, _ = test_app_with_data
        resp = client.post(path, json=body)
        assert resp.status_code == 400
        assert "error" in resp.json()

    def test_body_not_an_object(self, test_app):
        client, _, _ = test_app
        resp = client.post("/api/chapters", json=["Verbs"])
        assert resp.status_code == 400

    def test_body_not_json(self, test_app):
        client, _, _ = test_app
        resp = client.post(
            "/api/chapters", content=b"{oops", headers={"content-type": "application/json"}
        )
        assert resp.status_code == 400


class TestDictionaryQuizAPI:
    def test_start_without_selection(self, test_app):
        client, _, _ = test_app
        assert client.post("/api/quiz/start").status_code == 400

    def test_start_empty_chapter(self, test_app):
        client, _, _ = test_app
        client.post("/api/chapters", json={"name": "Empty"})
        assert client.post("/api/quiz/start").status_code == 400

    def test_answer_without_quiz(self, test_app):
        client, _, _ = test_app
        assert client.post("/api/quiz/answer", json={"answer": "x"}).status_code == 400

    def test_full_quiz(self, test_app_with_data):
        client, _, _ = test_app_with_data
        data = client.post("/api/quiz/start").json()
        assert data["status"] == "in_progress"
        assert data["total"] == 2
        assert "translation" not in data["question"]

        answers = {"dog": " Câine ", "cat": "wrong"}
        last = _answer_all(client, "/api/quiz", "/api/quiz/answer", answers)
        assert last["quiz"]["status"] == "finished"
        assert last["quiz"]["summary"] == {"score": 1, "total": 2, "percentage": 50.0}

        # answering after the end is rejected
        assert client.post("/api/quiz/answer", json={"answer": "x"}).status_code == 400

    def test_answer_reports_correct_translation(self, test_app_with_data):
        client, _, _ = test_app_with_data
        word = client.post("/api/quiz/start").json()["question"]["word"]
        data = client.post("/api/quiz/answer", json={"answer": "nope"}).json()
        assert data["correct"] is False
        assert data["word"] == word
        assert data["correct_translation"] in {"câine", "pisică"}
        assert data["quiz"]["index"] == 1

    def test_restart_and_finish(self, test_app_with_data):
        client, _, _ = test_app_with_data
        client.post("/api/quiz/start")
        client.post("/api/quiz/answer", json={"answer": "câine"})
        data = client.post("/api/quiz/restart").json()
        assert data["index"] == 0
        assert data["score"] == 0
        assert client.post("/api/quiz/finish").json()["status"] == "idle"
        assert client.get("/api/quiz").json()["status"] == "idle"


class TestExternalAPI:
    def test_import(self, test_app):
        client, _, kv = test_app
        resp = client.post("/api/external/import", json={
            "text": "Animals\ndog=câine\ncat=pisică\nmalformedline\n",
        })
        assert resp.status_code == 200
        data = resp.json()
        assert data["name"] == "Animals"
        assert len(data["words"]) == 2
        # never persisted
        assert kv.get(STORAGE_KEY) is None
        assert client.get("/api/external").json()["name"] == "Animals"

    def test_import_empty(self, test_app):
        client, _, _ = test_app
        resp = client.post("/api/external/import", json={"text": "\n \n"})
        assert resp.status_code == 400
        assert client.get("/api/external").json()["name"] is None

    def test_quiz_without_import(self, test_app):
        client, _, _ = test_app
        assert client.post("/api/external/quiz/start").status_code == 400

    def test_quiz_name_only_file(self, test_app):
        client, _, _ = test_app
        client.post("/api/external/import", json={"text": "Nothing here"})
        assert client.post("/api/external/quiz/start").status_code == 400

    def test_full_quiz(self, test_app):
        client, _, _ = test_app
        client.post("/api/external/import", json={"text": "Pets\ndog=câine\ncat=pisică"})
        assert client.post("/api/external/quiz/start").json()["total"] == 2
        answers = {"dog": "câine", "cat": "PISICĂ"}
        last = _answer_all(client, "/api/external", "/api/external/quiz/answer", answers)
        assert last["quiz"]["summary"]["percentage"] == 100.0

        data = client.post("/api/external/quiz/restart").json()
        assert data["status"] == "in_progress"
        assert data["score"] == 0


class TestSettingsAPI:
    def test_get_settings(self, test_app):
        client, _, _ = test_app
        data = client.get("/api/settings").json()
        assert data["storage_key"] == "dictionaries"

    def test_update_settings(self, test_app):
        client, _, _ = test_app
        data = client.put("/api/settings", json={"port": 9000, "bogus": 1}).json()
        assert data["port"] == 9000
        assert "bogus" not in data
