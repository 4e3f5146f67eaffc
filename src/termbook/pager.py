from __future__ import annotations

import curses
import tempfile
from pathlib import Path
from typing import Protocol

from rich.console import Console
from rich.style import Style
from rich.text import Text

from .config import ReaderConfig
from .errors import EpubFormatError, EpubIOError, EpubLookupError
from .history import ReadingHistory, ReadingPosition
from .logging_utils import debug_log
from .render import RenderedChapter
from .viewer import find_image_viewer, open_image

CHAPTER_ERRORS = (EpubFormatError, EpubIOError, EpubLookupError)

_KEY_NAMES = {
    27: "esc",
    curses.KEY_NPAGE: "pagedown",
    curses.KEY_PPAGE: "pageup",
    curses.KEY_DOWN: "down",
    curses.KEY_UP: "up",
    curses.KEY_RIGHT: "right",
    curses.KEY_LEFT: "left",
    curses.KEY_HOME: "g",
    curses.KEY_END: "G",
}
_ENTER_KEYS = {10, 13, curses.KEY_ENTER}


class Book(Protocol):
    def __len__(self) -> int: ...

    def render(self, index: int) -> RenderedChapter: ...


def wrap_lines(lines: list[Text], width: int) -> list[Text]:
    """Soft-wrap display lines to ``width`` cells, keeping blank lines."""
    console = Console(width=width, force_terminal=True, highlight=False)
    wrapped: list[Text] = []
    for line in lines:
        if not line.plain:
            wrapped.append(Text())
            continue
        wrapped.extend(line.wrap(console, width))
    return wrapped


class Pager:
    """Scroll and chapter navigation over a book, independent of the screen."""

    def __init__(self, book: Book, *, rows: int, width: int, position: ReadingPosition | None = None) -> None:
        self.book = book
        self.rows = max(1, rows)
        self.width = max(1, width)
        self.chapter = 0
        self.line = 0
        self.rendered: RenderedChapter | None = None
        self.lines: list[Text] = []
        self.message: str | None = None
        start = position or ReadingPosition()
        chapter = min(max(start.chapter, 0), max(len(book) - 1, 0))
        if not self._load(chapter) and chapter != 0:
            self._load(0)
        self.line = min(max(start.line, 0), self._last_line())

    @property
    def position(self) -> ReadingPosition:
        return ReadingPosition(chapter=self.chapter, line=self.line)

    def _load(self, index: int) -> bool:
        try:
            rendered = self.book.render(index)
        except CHAPTER_ERRORS as exc:
            self.message = f"chapter {index + 1}: {exc}"
            debug_log(self.message)
            return False
        self.chapter = index
        self.rendered = rendered
        self.lines = wrap_lines(rendered.lines, self.width)
        return True

    def _last_line(self) -> int:
        return max(len(self.lines) - 1, 0)

    def _last_page(self) -> int:
        return (self._last_line() // self.rows) * self.rows

    def resize(self, rows: int, width: int) -> None:
        self.rows = max(1, rows)
        if max(1, width) != self.width:
            self.width = max(1, width)
            if self.rendered is not None:
                self.lines = wrap_lines(self.rendered.lines, self.width)
        self.line = min(self.line, self._last_line())

    def visible_lines(self) -> list[Text]:
        return self.lines[self.line : self.line + self.rows]

    def page_down(self) -> None:
        if len(self.lines) - self.line > self.rows:
            self.line += self.rows
        elif self.chapter < len(self.book) - 1:
            if self._load(self.chapter + 1):
                self.line = 0

    def page_up(self) -> None:
        if self.line >= self.rows:
            self.line -= self.rows
        elif self.line == 0 and self.chapter > 0:
            if self._load(self.chapter - 1):
                self.line = self._last_page()
        else:
            self.line = 0

    def line_down(self) -> None:
        if self._last_line() > self.line:
            self.line += 1

    def line_up(self) -> None:
        if self.line > 0:
            self.line -= 1

    def next_chapter(self) -> None:
        if self.chapter < len(self.book) - 1 and self._load(self.chapter + 1):
            self.line = 0

    def previous_chapter(self) -> None:
        if self.chapter > 0 and self._load(self.chapter - 1):
            self.line = 0

    def chapter_start(self) -> None:
        self.line = 0

    def chapter_end(self) -> None:
        self.line = self._last_page()

    def handle_key(self, key: str) -> bool:
        """Apply one key; return ``False`` when the pager should close."""
        self.message = None
        if key in {"q", "esc"}:
            return False
        if key in {" ", "pagedown"}:
            self.page_down()
        elif key == "pageup":
            self.page_up()
        elif key in {"j", "down"}:
            self.line_down()
        elif key in {"k", "up"}:
            self.line_up()
        elif key in {"l", "right"}:
            self.next_chapter()
        elif key in {"h", "left"}:
            self.previous_chapter()
        elif key == "g":
            self.chapter_start()
        elif key == "G":
            self.chapter_end()
        return True


def _style_attr(style: Style | None) -> int:
    if style is None:
        return curses.A_NORMAL
    attr = curses.A_NORMAL
    if style.bold:
        attr |= curses.A_BOLD
    if style.italic:
        attr |= getattr(curses, "A_ITALIC", curses.A_NORMAL)
    if style.underline:
        attr |= curses.A_UNDERLINE
    if style.reverse:
        attr |= curses.A_REVERSE
    return attr


def _draw_line(screen, console: Console, y: int, x: int, line: Text, max_x: int) -> None:
    for segment in line.render(console):
        if not segment.text or x >= max_x:
            continue
        text = segment.text[: max_x - x]
        try:
            screen.addstr(y, x, text, _style_attr(segment.style))
        except curses.error:
            pass
        x += segment.cell_length


def _key_name(code: int) -> str | None:
    if code in _KEY_NAMES:
        return _KEY_NAMES[code]
    if 0 <= code < 256:
        return chr(code)
    return None


class TerminalReader:
    """curses front end for :class:`Pager`."""

    def __init__(self, epub, config: ReaderConfig, history: ReadingHistory | None, start: ReadingPosition) -> None:
        self.epub = epub
        self.config = config
        self.history = history
        self.start = start
        self.viewer = find_image_viewer(config.image_viewer)
        self._console = Console(force_terminal=True, highlight=False)
        self._image_dir: tempfile.TemporaryDirectory | None = None

    def _geometry(self, screen) -> tuple[int, int, int]:
        rows, cols = screen.getmaxyx()
        width = min(self.config.text_width, cols)
        indent = (cols - width) // 2 if cols > width else 0
        return max(rows - 1, 1), width, indent

    def _status(self, pager: Pager) -> str:
        if pager.message:
            return pager.message
        parts = [self.epub.title or self.epub.path.name]
        try:
            title = self.epub.chapter_title(pager.chapter)
        except EpubLookupError:
            title = None
        if title:
            parts.append(title)
        total = max(len(pager.lines), 1)
        parts.append(f"{pager.chapter + 1}/{len(self.epub)}")
        parts.append(f"{min(100, (pager.line + pager.rows) * 100 // total)}%")
        return " | ".join(parts)

    def _draw(self, screen, pager: Pager, indent: int) -> None:
        screen.erase()
        rows, cols = screen.getmaxyx()
        for offset, line in enumerate(pager.visible_lines()):
            _draw_line(screen, self._console, offset, indent, line, cols)
        status = self._status(pager)[: max(cols - 1, 0)]
        try:
            screen.addstr(rows - 1, 0, status, curses.A_DIM)
        except curses.error:
            pass
        screen.refresh()

    def _prompt_number(self, screen, pager: Pager) -> int | None:
        digits = ""
        rows, cols = screen.getmaxyx()
        while True:
            prompt = f"open image: {digits}"[: max(cols - 1, 0)]
            screen.move(rows - 1, 0)
            screen.clrtoeol()
            try:
                screen.addstr(rows - 1, 0, prompt)
            except curses.error:
                pass
            screen.refresh()
            code = screen.getch()
            if code in _ENTER_KEYS:
                return int(digits) if digits else None
            if code == 27:
                return None
            if code in (curses.KEY_BACKSPACE, 127, 8):
                digits = digits[:-1]
            elif 48 <= code <= 57:
                digits += chr(code)

    def open_image(self, pager: Pager, image_index: int) -> None:
        if self.viewer is None:
            pager.message = "no image viewer found"
            return
        if self._image_dir is None:
            self._image_dir = tempfile.TemporaryDirectory(prefix="termbook-")
        try:
            image = self.epub.extract_image(
                pager.chapter,
                image_index,
                directory=self._image_dir.name,
                rendered=pager.rendered,
            )
        except CHAPTER_ERRORS as exc:
            pager.message = str(exc)
            return
        open_image(image, self.viewer)
        pager.message = f"opened image {image_index}"

    def _loop(self, screen) -> ReadingPosition:
        try:
            curses.curs_set(0)
        except curses.error:
            pass
        screen.keypad(True)
        rows, width, indent = self._geometry(screen)
        pager = Pager(self.epub, rows=rows, width=width, position=self.start)
        while True:
            self._draw(screen, pager, indent)
            code = screen.getch()
            if code == curses.KEY_RESIZE:
                rows, width, indent = self._geometry(screen)
                pager.resize(rows, width)
                continue
            key = _key_name(code)
            if key is None:
                continue
            if key == "o":
                number = self._prompt_number(screen, pager)
                if number is not None:
                    self.open_image(pager, number)
                continue
            if not pager.handle_key(key):
                return pager.position

    def run(self) -> ReadingPosition:
        try:
            position = curses.wrapper(self._loop)
        finally:
            if self._image_dir is not None:
                self._image_dir.cleanup()
        if self.history is not None:
            self.history.save(Path(self.epub.path), position)
        return position
