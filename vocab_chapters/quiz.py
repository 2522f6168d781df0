"""Quiz engine: Fisher-Yates shuffle and the idle -> in_progress -> finished state machine.

Sessions are immutable; every operation returns a new QuizSession.
"""
from __future__ import annotations

import logging
import random
from collections.abc import Sequence
from dataclasses import replace
from typing import TypeVar

from vocab_chapters.errors import EmptyChapterError, QuizStateError
from vocab_chapters.models import (
    FINISHED,
    IDLE,
    IN_PROGRESS,
    Chapter,
    QuizResult,
    QuizSession,
    WordPair,
)

log = logging.getLogger("vocab_chapters.quiz")

T = TypeVar("T")


def shuffle(items: Sequence[T], rng: random.Random | None = None) -> list[T]:
    """Return a uniformly random permutation of *items*, leaving the input untouched."""
    rng = rng or random
    out = list(items)
    for i in range(len(out) - 1, 0, -1):
        j = rng.randint(0, i)
        out[i], out[j] = out[j], out[i]
    return out


def normalize_answer(text: str) -> str:
    return text.strip().casefold()


def start(chapter: Chapter, rng: random.Random | None = None) -> QuizSession:
    if not chapter.words:
        raise EmptyChapterError(f'Chapter "{chapter.name}" has no words.')
    log.info("Quiz started on %s (%d words)", chapter.name, len(chapter.words))
    return QuizSession(chapter=chapter, shuffled=tuple(shuffle(chapter.words, rng)))


def restart(session: QuizSession, rng: random.Random | None = None) -> QuizSession:
    """Start over on the same chapter with a fresh shuffle."""
    return start(session.chapter, rng)


def current_question(session: QuizSession) -> WordPair:
    if session.status != IN_PROGRESS:
        raise QuizStateError("The quiz is not in progress.")
    return session.shuffled[session.index]


def is_correct(pair: WordPair, raw_input: str) -> bool:
    return normalize_answer(raw_input) == normalize_answer(pair.translation)


def submit_answer(session: QuizSession, raw_input: str) -> QuizSession:
    pair = current_question(session)
    score = session.score + (1 if is_correct(pair, raw_input) else 0)
    index = session.index + 1
    status = FINISHED if index == session.total else IN_PROGRESS
    if status == FINISHED:
        log.info("Quiz finished on %s: %d/%d", session.chapter.name, score, session.total)
    # the input buffer is cleared once the answer is consumed
    return replace(session, index=index, score=score, status=status, last_input="")


def result(session: QuizSession) -> QuizResult:
    if not session.finished:
        raise QuizStateError("The quiz has not finished yet.")
    return QuizResult(score=session.score, total=session.total)


def session_to_dict(session: QuizSession | None) -> dict:
    """Serialise a session for the API without leaking the pending translation."""
    if session is None:
        return {"status": IDLE, "index": 0, "total": 0, "score": 0, "question": None}
    data = {
        "status": session.status,
        "chapter": session.chapter.name,
        "index": session.index,
        "total": session.total,
        "score": session.score,
        "question": None,
    }
    if session.finished:
        data["summary"] = result(session).to_dict()
    else:
        data["question"] = {"word": current_question(session).word}
    return data
