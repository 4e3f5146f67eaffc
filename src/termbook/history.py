from __future__ import annotations

import json
import time
from dataclasses import dataclass
from pathlib import Path

HISTORY_STATE_VERSION = 1


@dataclass(frozen=True, slots=True)
class ReadingPosition:
    chapter: int = 0
    line: int = 0


def _book_key(book_path: Path) -> str:
    return str(Path(book_path).expanduser().resolve())


class ReadingHistory:
    """Last reading position per book, kept in one JSON file."""

    def __init__(self, path: Path) -> None:
        self.path = path

    def _empty_state(self) -> dict[str, object]:
        return {"version": HISTORY_STATE_VERSION, "books": {}}

    def _load_state(self) -> dict[str, object]:
        if not self.path.exists():
            return self._empty_state()
        try:
            raw = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError):
            return self._empty_state()
        if not isinstance(raw, dict) or not isinstance(raw.get("books"), dict):
            return self._empty_state()
        books: dict[str, dict[str, object]] = {}
        for key, entry in raw["books"].items():
            if not isinstance(key, str) or not isinstance(entry, dict):
                continue
            chapter = entry.get("chapter")
            line = entry.get("line")
            if not isinstance(chapter, int) or not isinstance(line, int):
                continue
            updated = entry.get("updated_at")
            books[key] = {
                "chapter": max(0, chapter),
                "line": max(0, line),
                "updated_at": updated if isinstance(updated, (int, float)) else None,
            }
        return {"version": HISTORY_STATE_VERSION, "books": books}

    def load(self, book_path: Path) -> ReadingPosition:
        books = self._load_state()["books"]
        entry = books.get(_book_key(book_path))  # type: ignore[union-attr]
        if entry is None:
            return ReadingPosition()
        return ReadingPosition(chapter=entry["chapter"], line=entry["line"])

    def save(self, book_path: Path, position: ReadingPosition) -> None:
        state = self._load_state()
        books = state["books"]
        books[_book_key(book_path)] = {  # type: ignore[index]
            "chapter": position.chapter,
            "line": position.line,
            "updated_at": time.time(),
        }
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(
            json.dumps(state, ensure_ascii=False, indent=2),
            encoding="utf-8",
        )
