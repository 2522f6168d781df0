"""Error taxonomy. Every error is recoverable and carries a user-facing message."""
from __future__ import annotations


class VocabError(Exception):
    """Base class; the message is shown to the user as an alert."""


class PersistenceError(VocabError):
    pass


class ValidationError(VocabError):
    pass


class DuplicateChapterError(ValidationError):
    pass


class NoSelectionError(ValidationError):
    pass


class UnknownChapterError(ValidationError):
    pass


class EmptyChapterError(ValidationError):
    pass


class EmptyInputError(ValidationError):
    pass


class QuizStateError(ValidationError):
    pass


class ImportFileError(VocabError):
    pass
