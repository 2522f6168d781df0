"""Chapter management as pure (state, args) -> state reducers, plus a stateful
wrapper that persists the whole dictionary after every mutation."""
from __future__ import annotations

import logging
import random
from dataclasses import replace

from vocab_chapters import quiz
from vocab_chapters.errors import (
    DuplicateChapterError,
    NoSelectionError,
    PersistenceError,
    QuizStateError,
    UnknownChapterError,
    ValidationError,
)
from vocab_chapters.models import DictionaryState, QuizSession, WordPair
from vocab_chapters.store import DictionaryStore

log = logging.getLogger("vocab_chapters.manager")


# ── Reducers ─────────────────────────────────────────────────────────────

def add_chapter(state: DictionaryState, name: str) -> DictionaryState:
    name = (name or "").strip()
    if not name or name in state.dictionary:
        raise DuplicateChapterError("The chapter already exists or the name is empty.")
    dictionary = {**state.dictionary, name: []}
    return replace(state, dictionary=dictionary, selected=name)


def select_chapter(state: DictionaryState, name: str) -> DictionaryState:
    if name not in state.dictionary:
        raise UnknownChapterError(f'No chapter named "{name}".')
    return replace(state, selected=name)


def delete_chapter(state: DictionaryState, name: str | None = None) -> DictionaryState:
    target = name or state.selected
    if not target or target not in state.dictionary:
        raise NoSelectionError("No chapter selected for deletion.")
    dictionary = {k: v for k, v in state.dictionary.items() if k != target}
    quiz_session = state.quiz
    if quiz_session is not None and quiz_session.chapter.name == target:
        quiz_session = None
    selected = None if state.selected == target else state.selected
    return replace(state, dictionary=dictionary, selected=selected, quiz=quiz_session)


def add_word(
    state: DictionaryState, chapter_name: str, word: str, translation: str
) -> DictionaryState:
    word = (word or "").strip()
    translation = (translation or "").strip()
    if not (word and translation and chapter_name):
        raise ValidationError("Fill in the word and translation, or select a chapter.")
    if chapter_name not in state.dictionary:
        raise UnknownChapterError(f'No chapter named "{chapter_name}".')
    words = [*state.dictionary[chapter_name], WordPair(word, translation)]
    return replace(state, dictionary={**state.dictionary, chapter_name: words})


def delete_word(state: DictionaryState, chapter_name: str | None, index: int) -> DictionaryState:
    if not chapter_name:
        return state
    if chapter_name not in state.dictionary:
        raise UnknownChapterError(f'No chapter named "{chapter_name}".')
    words = state.dictionary[chapter_name]
    if not 0 <= index < len(words):
        raise ValidationError(f"No word at position {index}.")
    words = [w for i, w in enumerate(words) if i != index]
    return replace(state, dictionary={**state.dictionary, chapter_name: words})


# ── Stateful manager ─────────────────────────────────────────────────────

class DictionaryManager:
    """Holds the current DictionaryState and keeps the store in step with it.

    The in-memory state is always replaced before saving, so a failed save
    raises PersistenceError while the visible state already reflects the
    mutation.
    """

    def __init__(self, store: DictionaryStore, rng: random.Random | None = None):
        self.store = store
        self.rng = rng
        self.state = DictionaryState()

    def load(self) -> None:
        try:
            self.state = DictionaryState(dictionary=self.store.load())
        except PersistenceError as e:
            log.warning("Load failed, keeping in-memory state: %s", e.__cause__ or e)
            raise

    def _commit(self, new_state: DictionaryState) -> DictionaryState:
        self.state = new_state
        try:
            self.store.save(new_state.dictionary)
        except PersistenceError as e:
            log.warning("Save failed: %s", e.__cause__ or e)
            raise
        return new_state

    def add_chapter(self, name: str) -> DictionaryState:
        state = self._commit(add_chapter(self.state, name))
        log.info("Added chapter %s", state.selected)
        return state

    def select_chapter(self, name: str) -> DictionaryState:
        self.state = select_chapter(self.state, name)
        return self.state

    def delete_chapter(self, name: str | None = None) -> DictionaryState:
        target = name or self.state.selected
        state = self._commit(delete_chapter(self.state, name))
        log.info("Deleted chapter %s", target)
        return state

    def add_word(self, chapter_name: str, word: str, translation: str) -> DictionaryState:
        return self._commit(add_word(self.state, chapter_name, word, translation))

    def delete_word(self, chapter_name: str | None, index: int) -> DictionaryState:
        new_state = delete_word(self.state, chapter_name, index)
        if new_state is self.state:
            return self.state
        return self._commit(new_state)

    # ── Quiz over the selected chapter ──

    def start_quiz(self) -> QuizSession:
        if not self.state.selected:
            raise NoSelectionError("Select a chapter first.")
        session = quiz.start(self.state.chapter(self.state.selected), self.rng)
        self.state = replace(self.state, quiz=session)
        return session

    def _active_quiz(self) -> QuizSession:
        if self.state.quiz is None:
            raise QuizStateError("No quiz has been started.")
        return self.state.quiz

    def submit_answer(self, raw_input: str) -> QuizSession:
        session = quiz.submit_answer(self._active_quiz(), raw_input)
        self.state = replace(self.state, quiz=session)
        return session

    def restart_quiz(self) -> QuizSession:
        session = quiz.restart(self._active_quiz(), self.rng)
        self.state = replace(self.state, quiz=session)
        return session

    def finish_quiz(self) -> None:
        self.state = replace(self.state, quiz=None)
