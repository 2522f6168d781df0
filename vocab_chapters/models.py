from __future__ import annotations

from dataclasses import dataclass, field

IDLE = "idle"
IN_PROGRESS = "in_progress"
FINISHED = "finished"


@dataclass(frozen=True)
class WordPair:
    word: str
    translation: str

    def to_dict(self) -> dict:
        return {"word": self.word, "translation": self.translation}


@dataclass(frozen=True)
class Chapter:
    name: str
    words: tuple[WordPair, ...] = ()


# chapter name -> words, insertion order is display order
Dictionary = dict[str, list[WordPair]]


@dataclass(frozen=True)
class QuizSession:
    chapter: Chapter
    shuffled: tuple[WordPair, ...]
    index: int = 0
    score: int = 0
    last_input: str = ""
    status: str = IN_PROGRESS  # idle | in_progress | finished

    @property
    def total(self) -> int:
        return len(self.shuffled)

    @property
    def finished(self) -> bool:
        return self.status == FINISHED


@dataclass(frozen=True)
class QuizResult:
    score: int
    total: int

    @property
    def percentage(self) -> float:
        return round(self.score / self.total * 100, 2)

    def to_dict(self) -> dict:
        return {"score": self.score, "total": self.total, "percentage": self.percentage}


@dataclass(frozen=True)
class DictionaryState:
    dictionary: Dictionary = field(default_factory=dict)
    selected: str | None = None
    quiz: QuizSession | None = None

    def chapter(self, name: str) -> Chapter:
        return Chapter(name=name, words=tuple(self.dictionary[name]))


@dataclass(frozen=True)
class ExternalState:
    chapter: Chapter | None = None
    quiz: QuizSession | None = None
