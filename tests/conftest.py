from __future__ import annotations

from pathlib import Path
from typing import Callable

import pytest

from helpers import default_entries, write_epub


@pytest.fixture
def make_epub(tmp_path: Path) -> Callable[..., Path]:
    counter = {"n": 0}

    def _make(
        overrides: dict[str, str | bytes | None] | None = None,
        *,
        mimetype: str | None = "application/epub+zip",
    ) -> Path:
        entries: dict[str, str | bytes] = default_entries()
        for name, data in (overrides or {}).items():
            if data is None:
                entries.pop(name, None)
            else:
                entries[name] = data
        counter["n"] += 1
        return write_epub(tmp_path / f"book{counter['n']}.epub", entries, mimetype=mimetype)

    return _make


@pytest.fixture
def sample_epub(make_epub) -> Path:
    return make_epub()
