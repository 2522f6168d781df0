"""FastAPI application: the home, dictionary and external-dictionary screens as JSON routes."""
from __future__ import annotations

import logging
import os
from dataclasses import replace

logging.basicConfig(level=logging.INFO, format="%(name)s | %(message)s")

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from vocab_chapters import quiz
from vocab_chapters.config import Settings, load_settings, save_settings
from vocab_chapters.errors import (
    PersistenceError,
    QuizStateError,
    UnknownChapterError,
    ValidationError,
    VocabError,
)
from vocab_chapters.manager import DictionaryManager
from vocab_chapters.models import DictionaryState, ExternalState, QuizSession
from vocab_chapters.parsers.chapter_parser import parse_chapter_text
from vocab_chapters.store import DictionaryStore, SQLiteKeyValueStore

app = FastAPI(title="Vocab Chapters")

# Global state (initialized in startup)
_manager: DictionaryManager | None = None
_settings: Settings | None = None
_external = ExternalState()
_pending_alert: str | None = None

_import_log = logging.getLogger("vocab_chapters.import")


def get_manager() -> DictionaryManager:
    assert _manager is not None
    return _manager


def get_settings() -> Settings:
    assert _settings is not None
    return _settings


@app.on_event("startup")
async def startup():
    global _manager, _settings, _pending_alert
    if _manager is not None:
        return  # Already initialized (e.g. by tests)
    _settings = load_settings()
    kv = SQLiteKeyValueStore(_settings.db_full_path)
    _manager = DictionaryManager(DictionaryStore(kv, key=_settings.storage_key))
    if os.environ.get("VOCAB_CHAPTERS_NO_LOAD"):
        return
    try:
        _manager.load()
    except PersistenceError as e:
        _pending_alert = str(e)


@app.on_event("shutdown")
async def shutdown():
    if _manager:
        _manager.store.kv.close()


@app.exception_handler(VocabError)
async def vocab_error_handler(request: Request, exc: VocabError):
    status = 404 if isinstance(exc, UnknownChapterError) else 400
    return JSONResponse({"error": str(exc)}, status_code=status)


async def _body(request: Request) -> dict:
    if not await request.body():
        return {}
    try:
        body = await request.json()
    except ValueError as e:
        raise ValidationError("The request body is not valid JSON.") from e
    if not isinstance(body, dict):
        raise ValidationError("The request body must be a JSON object.")
    return body


def _text(body: dict, name: str) -> str:
    value = body.get(name, "")
    if not isinstance(value, str):
        raise ValidationError(f'"{name}" must be a string.')
    return value


def _dictionary_payload(state: DictionaryState, alert: str | None = None) -> dict:
    global _pending_alert
    alert = alert or _pending_alert
    _pending_alert = None
    selected = state.selected
    words = state.dictionary.get(selected, []) if selected else []
    return {
        "chapters": [
            {"name": name, "word_count": len(ws)} for name, ws in state.dictionary.items()
        ],
        "selected": selected,
        "words": [w.to_dict() for w in words],
        "quiz": quiz.session_to_dict(state.quiz),
        "alert": alert,
    }


def _mutate(fn, *args) -> dict:
    """Apply a manager mutation; a failed save is reported as an alert, not an error."""
    try:
        state = fn(*args)
    except PersistenceError as e:
        return _dictionary_payload(get_manager().state, alert=str(e))
    return _dictionary_payload(state)


def _answer_payload(before: QuizSession, after: QuizSession, answer: str) -> dict:
    pair = before.shuffled[before.index]
    return {
        "correct": quiz.is_correct(pair, answer),
        "word": pair.word,
        "correct_translation": pair.translation,
        "quiz": quiz.session_to_dict(after),
    }


# ── Home ──────────────────────────────────────────────────────────────────

@app.get("/api/routes")
async def api_routes():
    return {
        "routes": [
            {"name": "dictionary", "path": "/api/dictionary"},
            {"name": "external", "path": "/api/external"},
        ]
    }


# ── Dictionary screen ─────────────────────────────────────────────────────

@app.get("/api/dictionary")
async def api_dictionary():
    return _dictionary_payload(get_manager().state)


@app.post("/api/chapters")
async def api_add_chapter(request: Request):
    body = await _body(request)
    return _mutate(get_manager().add_chapter, _text(body, "name"))


@app.post("/api/chapters/select")
async def api_select_chapter(request: Request):
    body = await _body(request)
    return _dictionary_payload(get_manager().select_chapter(_text(body, "name")))


@app.delete("/api/chapters")
async def api_delete_selected_chapter():
    return _mutate(get_manager().delete_chapter, None)


@app.delete("/api/chapters/{name}")
async def api_delete_chapter(name: str):
    if name not in get_manager().state.dictionary:
        raise UnknownChapterError(f'No chapter named "{name}".')
    return _mutate(get_manager().delete_chapter, name)


@app.post("/api/chapters/{name}/words")
async def api_add_word(name: str, request: Request):
    body = await _body(request)
    return _mutate(
        get_manager().add_word, name, _text(body, "word"), _text(body, "translation")
    )


@app.delete("/api/chapters/{name}/words/{index}")
async def api_delete_word(name: str, index: int):
    return _mutate(get_manager().delete_word, name, index)


# ── Dictionary quiz ───────────────────────────────────────────────────────

@app.get("/api/quiz")
async def api_quiz():
    return quiz.session_to_dict(get_manager().state.quiz)


@app.post("/api/quiz/start")
async def api_quiz_start():
    return quiz.session_to_dict(get_manager().start_quiz())


@app.post("/api/quiz/answer")
async def api_quiz_answer(request: Request):
    body = await _body(request)
    answer = _text(body, "answer")
    m = get_manager()
    before = m.state.quiz
    if before is None:
        raise QuizStateError("No quiz has been started.")
    after = m.submit_answer(answer)
    return _answer_payload(before, after, answer)


@app.post("/api/quiz/restart")
async def api_quiz_restart():
    return quiz.session_to_dict(get_manager().restart_quiz())


@app.post("/api/quiz/finish")
async def api_quiz_finish():
    get_manager().finish_quiz()
    return quiz.session_to_dict(None)


# ── External dictionary screen ────────────────────────────────────────────

def _external_payload(state: ExternalState) -> dict:
    chapter = state.chapter
    return {
        "name": chapter.name if chapter else None,
        "words": [w.to_dict() for w in chapter.words] if chapter else [],
        "quiz": quiz.session_to_dict(state.quiz),
    }


@app.get("/api/external")
async def api_external():
    return _external_payload(_external)


@app.post("/api/external/import")
async def api_external_import(request: Request):
    global _external
    body = await _body(request)
    chapter = parse_chapter_text(_text(body, "text"))
    _import_log.info("Imported %s (%d words)", chapter.name, len(chapter.words))
    _external = ExternalState(chapter=chapter)
    return _external_payload(_external)


@app.post("/api/external/quiz/start")
async def api_external_quiz_start():
    global _external
    if _external.chapter is None:
        raise QuizStateError("No dictionary has been imported.")
    _external = replace(_external, quiz=quiz.start(_external.chapter))
    return quiz.session_to_dict(_external.quiz)


@app.post("/api/external/quiz/answer")
async def api_external_quiz_answer(request: Request):
    global _external
    body = await _body(request)
    answer = _text(body, "answer")
    before = _external.quiz
    if before is None:
        raise QuizStateError("No quiz has been started.")
    _external = replace(_external, quiz=quiz.submit_answer(before, answer))
    return _answer_payload(before, _external.quiz, answer)


@app.post("/api/external/quiz/restart")
async def api_external_quiz_restart():
    global _external
    if _external.quiz is None:
        raise QuizStateError("No quiz has been started.")
    _external = replace(_external, quiz=quiz.restart(_external.quiz))
    return quiz.session_to_dict(_external.quiz)


# ── Settings ──────────────────────────────────────────────────────────────

@app.get("/api/settings")
async def api_get_settings():
    return get_settings().to_dict()


@app.put("/api/settings")
async def api_update_settings(request: Request):
    body = await _body(request)
    s = get_settings()
    known = {f.name for f in Settings.__dataclass_fields__.values()}
    for k, v in body.items():
        if k in known:
            setattr(s, k, v)
    save_settings(s)
    return s.to_dict()
