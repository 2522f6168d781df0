"""Parse an externally supplied chapter file.

Format:
  Animals            <- first non-empty line is the chapter name
  dog=câine          <- every later line is word=translation
  cat=pisică

Lines without exactly one '=' are dropped silently.
"""
from __future__ import annotations

from pathlib import Path

from vocab_chapters.errors import EmptyInputError, ImportFileError
from vocab_chapters.models import Chapter, WordPair


def parse_chapter_text(text: str) -> Chapter:
    lines = [line.strip() for line in text.split("\n")]
    lines = [line for line in lines if line]
    if not lines:
        raise EmptyInputError("The file is empty or contains no valid data.")

    words: list[WordPair] = []
    for line in lines[1:]:
        parts = line.split("=")
        if len(parts) != 2:
            continue
        words.append(WordPair(word=parts[0].strip(), translation=parts[1].strip()))

    return Chapter(name=lines[0], words=tuple(words))


def parse_chapter_file(path: Path, encoding: str = "utf-8") -> Chapter:
    try:
        text = path.read_text(encoding=encoding)
    except (OSError, UnicodeDecodeError) as e:
        raise ImportFileError(f"Could not read {path.name}.") from e
    return parse_chapter_text(text)
