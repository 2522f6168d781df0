"""CLI entry point for vocab-chapters.

Usage:
  python -m vocab_chapters serve [--port PORT] [--host HOST]
  python -m vocab_chapters stop
  python -m vocab_chapters status
  python -m vocab_chapters chapters
  python -m vocab_chapters quiz FILE
"""
from __future__ import annotations

import os
import signal
import sys
from pathlib import Path

PID_FILE = Path(__file__).resolve().parent.parent / ".server.pid"


def main():
    args = sys.argv[1:]
    command = args[0] if args else "serve"

    if command == "serve":
        _serve(args[1:])
    elif command == "stop":
        _stop()
    elif command == "status":
        _status()
    elif command == "chapters":
        _chapters()
    elif command == "quiz":
        _quiz(args[1:])
    else:
        print(f"Unknown command: {command}")
        print("Commands: serve, stop, status, chapters, quiz")
        sys.exit(1)


def _parse_flag(args: list[str], name: str, default: str) -> str:
    for i, a in enumerate(args):
        if a == name and i + 1 < len(args):
            return args[i + 1]
    return default


def _read_pid() -> int | None:
    """Read PID from file, return None if stale or missing."""
    if not PID_FILE.exists():
        return None
    try:
        pid = int(PID_FILE.read_text().strip())
        os.kill(pid, 0)
        return pid
    except (ValueError, ProcessLookupError, PermissionError):
        _remove_pid()
        return None


def _write_pid() -> None:
    PID_FILE.write_text(str(os.getpid()))


def _remove_pid() -> None:
    PID_FILE.unlink(missing_ok=True)


def _stop() -> bool:
    """Stop a running server. Returns True if a server was stopped."""
    pid = _read_pid()
    if pid is None:
        print("Server is not running.")
        return False
    try:
        os.kill(pid, signal.SIGTERM)
        print(f"Stopped server (PID {pid}).")
        _remove_pid()
        return True
    except ProcessLookupError:
        print("Server was not running (stale PID file removed).")
        _remove_pid()
        return False


def _status():
    pid = _read_pid()
    if pid is None:
        print("Server is not running.")
    else:
        print(f"Server is running (PID {pid}).")


def _serve(args: list[str]):
    import uvicorn

    from vocab_chapters.config import load_settings

    existing = _read_pid()
    if existing is not None:
        print(f"Server already running (PID {existing}). Use 'stop' first.")
        sys.exit(1)

    settings = load_settings()
    port = int(_parse_flag(args, "--port", str(settings.port)))
    host = _parse_flag(args, "--host", settings.host)
    _write_pid()

    print(f"Starting Vocab Chapters on http://{host}:{port}")
    print("Press Ctrl+C to stop\n")
    try:
        uvicorn.run("vocab_chapters.app:app", host=host, port=port, reload=False)
    finally:
        _remove_pid()


def _chapters():
    from vocab_chapters.config import load_settings
    from vocab_chapters.errors import PersistenceError
    from vocab_chapters.store import DictionaryStore, SQLiteKeyValueStore

    settings = load_settings()
    kv = SQLiteKeyValueStore(settings.db_full_path)
    try:
        dictionary = DictionaryStore(kv, key=settings.storage_key).load()
    except PersistenceError as e:
        print(f"Error: {e}")
        sys.exit(1)
    finally:
        kv.close()

    if not dictionary:
        print("No chapters yet.")
        return
    for name, words in dictionary.items():
        print(f"  {name:30s} {len(words)} words")


def run_quiz(chapter, ask=input, out=print):
    """Run a terminal quiz over *chapter*; returns the QuizResult."""
    from vocab_chapters import quiz

    session = quiz.start(chapter)
    while not session.finished:
        pair = quiz.current_question(session)
        answer = ask(f"[{session.index + 1}/{session.total}] {pair.word} = ")
        if quiz.is_correct(pair, answer):
            out("  correct")
        else:
            out(f"  wrong, it is: {pair.translation}")
        session = quiz.submit_answer(session, answer)

    res = quiz.result(session)
    out(f"\nScore: {res.score}/{res.total} ({res.percentage:.2f} / 100)")
    return res


def _quiz(args: list[str]):
    from vocab_chapters.config import load_settings
    from vocab_chapters.errors import VocabError
    from vocab_chapters.parsers.chapter_parser import parse_chapter_file

    if not args:
        print("Usage: python -m vocab_chapters quiz FILE")
        sys.exit(1)

    settings = load_settings()
    try:
        chapter = parse_chapter_file(Path(args[0]), encoding=settings.import_encoding)
        print(f"Dictionary: {chapter.name} ({len(chapter.words)} words)\n")
        run_quiz(chapter)
    except VocabError as e:
        print(f"Error: {e}")
        sys.exit(1)
    except (KeyboardInterrupt, EOFError):
        print("\nQuiz aborted.")


if __name__ == "__main__":
    main()
