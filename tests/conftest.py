"""Shared test fixtures."""
from __future__ import annotations

import random

import pytest

from vocab_chapters.manager import DictionaryManager
from vocab_chapters.models import Chapter, DictionaryState, WordPair
from vocab_chapters.store import DictionaryStore, MemoryKeyValueStore, SQLiteKeyValueStore


@pytest.fixture
def kv():
    return MemoryKeyValueStore()


@pytest.fixture
def sqlite_kv(tmp_path):
    """A fresh temporary SQLite blob store."""
    store = SQLiteKeyValueStore(tmp_path / "test.db")
    yield store
    store.close()


@pytest.fixture
def store(kv):
    return DictionaryStore(kv)


@pytest.fixture
def rng():
    return random.Random(1234)


@pytest.fixture
def manager(store, rng):
    return DictionaryManager(store, rng=rng)


@pytest.fixture
def sample_words():
    return [
        WordPair("dog", "câine"),
        WordPair("cat", "pisică"),
        WordPair("house", "casă"),
        WordPair("run", "a alerga"),
    ]


@pytest.fixture
def sample_chapter(sample_words):
    return Chapter(name="Animals", words=tuple(sample_words))


@pytest.fixture
def sample_state(sample_words):
    return DictionaryState(dictionary={"Animals": list(sample_words), "Verbs": []})


@pytest.fixture
def chapter_text():
    """Minimal import file content for parser testing."""
    return "Animals\ndog=câine\ncat=pisică\nmalformedline\n"
