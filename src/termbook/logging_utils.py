from __future__ import annotations

from rich.console import Console

_DEBUG_LOG = False
_CONSOLE: Console | None = None


def set_debug_logging(enabled: bool) -> None:
    global _DEBUG_LOG
    _DEBUG_LOG = enabled


def _console() -> Console:
    global _CONSOLE
    if _CONSOLE is None:
        _CONSOLE = Console(stderr=True, highlight=False)
    return _CONSOLE


def debug_log(message: str) -> None:
    if _DEBUG_LOG:
        _console().print(f"[termbook debug] {message}", markup=False)
