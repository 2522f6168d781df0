"""Whole-blob persistence of the dictionary under a single key."""
from __future__ import annotations

import json
import logging
import sqlite3
from abc import ABC, abstractmethod
from pathlib import Path

from vocab_chapters.errors import PersistenceError
from vocab_chapters.models import Dictionary, WordPair

log = logging.getLogger("vocab_chapters.store")

STORAGE_KEY = "dictionaries"

SCHEMA = """
CREATE TABLE IF NOT EXISTS kv (
    key TEXT PRIMARY KEY,
    value TEXT NOT NULL
);
"""


class KeyValueStore(ABC):
    @abstractmethod
    def get(self, key: str) -> str | None:
        ...

    @abstractmethod
    def set(self, key: str, value: str) -> None:
        ...

    def close(self) -> None:
        pass


class MemoryKeyValueStore(KeyValueStore):
    def __init__(self, data: dict[str, str] | None = None):
        self.data = dict(data or {})

    def get(self, key: str) -> str | None:
        return self.data.get(key)

    def set(self, key: str, value: str) -> None:
        self.data[key] = value


class SQLiteKeyValueStore(KeyValueStore):
    def __init__(self, db_path: Path):
        self.db_path = db_path
        self.conn = sqlite3.connect(str(db_path), check_same_thread=False)
        self.conn.execute("PRAGMA journal_mode=WAL")
        self.conn.executescript(SCHEMA)
        self.conn.commit()

    def get(self, key: str) -> str | None:
        row = self.conn.execute("SELECT value FROM kv WHERE key = ?", (key,)).fetchone()
        return row[0] if row else None

    def set(self, key: str, value: str) -> None:
        self.conn.execute(
            "INSERT OR REPLACE INTO kv (key, value) VALUES (?, ?)", (key, value)
        )
        self.conn.commit()

    def close(self) -> None:
        self.conn.close()


def dictionary_to_json(dictionary: Dictionary) -> str:
    payload = {
        name: [w.to_dict() for w in words] for name, words in dictionary.items()
    }
    return json.dumps(payload, ensure_ascii=False)


def dictionary_from_json(text: str) -> Dictionary:
    raw = json.loads(text)
    if not isinstance(raw, dict):
        raise ValueError("stored dictionary is not an object")
    dictionary: Dictionary = {}
    for name, words in raw.items():
        if not isinstance(words, list):
            raise ValueError(f"chapter {name!r} is not a list")
        pairs = []
        for w in words:
            if not isinstance(w, dict):
                raise ValueError(f"malformed entry in chapter {name!r}")
            word, translation = w.get("word"), w.get("translation")
            if not (isinstance(word, str) and isinstance(translation, str)):
                raise ValueError(f"malformed entry in chapter {name!r}")
            pairs.append(WordPair(word=word, translation=translation))
        dictionary[name] = pairs
    return dictionary


class DictionaryStore:
    def __init__(self, kv: KeyValueStore, key: str = STORAGE_KEY):
        self.kv = kv
        self.key = key

    def load(self) -> Dictionary:
        try:
            blob = self.kv.get(self.key)
        except (sqlite3.Error, OSError) as e:
            raise PersistenceError("Could not load the dictionary.") from e
        if blob is None:
            return {}
        try:
            dictionary = dictionary_from_json(blob)
        except (ValueError, KeyError, TypeError) as e:
            raise PersistenceError("Could not load the dictionary.") from e
        log.info("Loaded %d chapters", len(dictionary))
        return dictionary

    def save(self, dictionary: Dictionary) -> None:
        try:
            self.kv.set(self.key, dictionary_to_json(dictionary))
        except (sqlite3.Error, OSError) as e:
            raise PersistenceError("Could not save the dictionary.") from e
