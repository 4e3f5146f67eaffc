from __future__ import annotations

import argparse
import sys
import tomllib
from importlib import metadata
from pathlib import Path

from rich.console import Console

from .config import ConfigError, ReaderConfig, load_config
from .epub import Epub
from .errors import EpubFormatError, EpubIOError, EpubLookupError
from .history import ReadingHistory, ReadingPosition
from .logging_utils import set_debug_logging

EPUB_ERRORS = (EpubIOError, EpubFormatError, EpubLookupError)


def _read_local_version() -> str | None:
    try:
        pyproject_path = Path(__file__).resolve().parents[2] / "pyproject.toml"
    except IndexError:  # pragma: no cover
        return None
    try:
        with pyproject_path.open("rb") as fh:
            data = tomllib.load(fh)
    except (FileNotFoundError, tomllib.TOMLDecodeError):
        return None
    return data.get("project", {}).get("version")


try:
    __version__ = metadata.version("termbook")
except metadata.PackageNotFoundError:
    __version__ = _read_local_version() or "0.0.0+unknown"


def _add_version_flag(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "-v",
        "--version",
        action="version",
        version=f"termbook {__version__}",
    )


def _add_common_flags(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--config",
        help="Path to a config.toml (default: ~/.config/termbook/config.toml)",
    )
    parser.add_argument(
        "--debug",
        action="store_true",
        help="Print debug messages to stderr.",
    )


def build_parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(
        description="Read an EPUB in the terminal. Use `termbook toc` to list chapters.",
    )
    _add_version_flag(ap)
    ap.add_argument("path", help="Path of the .epub file")
    ap.add_argument(
        "-c",
        "--chapter",
        type=int,
        help="Open at this chapter (1-based) instead of the saved position",
    )
    ap.add_argument(
        "--dump",
        action="store_true",
        help="Print every chapter to stdout instead of opening the pager",
    )
    ap.add_argument(
        "-w",
        "--width",
        type=int,
        help="Maximum text width in the pager",
    )
    ap.add_argument(
        "--viewer",
        help="Command used to open images (e.g. 'feh')",
    )
    _add_common_flags(ap)
    return ap


def build_toc_parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(
        prog="termbook toc",
        description="List the chapters of an EPUB in reading order.",
    )
    _add_version_flag(ap)
    ap.add_argument("path", help="Path of the .epub file")
    _add_common_flags(ap)
    return ap


def _load_config(args: argparse.Namespace) -> ReaderConfig:
    config_path = Path(args.config).expanduser() if args.config else None
    try:
        config = load_config(config_path)
    except ConfigError as exc:
        raise SystemExit(str(exc)) from exc
    if getattr(args, "width", None):
        config.text_width = max(20, args.width)
    if getattr(args, "viewer", None):
        config.image_viewer = args.viewer
    set_debug_logging(bool(args.debug or config.debug))
    return config


def _open_epub(path: str) -> Epub:
    try:
        return Epub.open(path)
    except EPUB_ERRORS as exc:
        raise SystemExit(f"termbook: {exc}") from exc


def _run_dump(epub: Epub, console: Console) -> int:
    for index in range(len(epub)):
        try:
            chapter = epub.render(index)
        except EPUB_ERRORS as exc:
            raise SystemExit(f"termbook: {exc}") from exc
        console.print(chapter.text, soft_wrap=True)
        console.print("---", markup=False)
    return 0


def _run_toc(args: argparse.Namespace) -> int:
    _load_config(args)
    console = Console(highlight=False)
    with _open_epub(args.path) as epub:
        if epub.title:
            heading = epub.title if not epub.author else f"{epub.title} / {epub.author}"
            console.print(heading, markup=False)
        for index in range(len(epub)):
            try:
                path = epub.chapter_path(index)
                title = epub.chapter_title(index)
            except EpubLookupError as exc:
                console.print(f"{index + 1:>4}  <{exc}>", markup=False)
                continue
            label = title or "-"
            console.print(f"{index + 1:>4}  {label}  ({path})", markup=False)
    return 0


def _run_reader(args: argparse.Namespace) -> int:
    config = _load_config(args)
    with _open_epub(args.path) as epub:
        if args.dump:
            return _run_dump(epub, Console(highlight=False))
        if len(epub) == 0:
            raise SystemExit("termbook: the book has no chapters to show")

        history = ReadingHistory(config.resolved_history_file())
        if args.chapter is not None:
            if not 1 <= args.chapter <= len(epub):
                raise SystemExit(f"termbook: --chapter must be between 1 and {len(epub)}")
            start = ReadingPosition(chapter=args.chapter - 1, line=0)
        else:
            start = history.load(epub.path)

        from .pager import TerminalReader  # curses is only needed for the pager.

        TerminalReader(epub, config, history, start).run()
    return 0


def main(argv: list[str] | None = None) -> int:
    if argv is None:
        argv = sys.argv[1:]

    if argv and argv[0] == "toc":
        toc_args = build_toc_parser().parse_args(argv[1:])
        return _run_toc(toc_args)

    parser = build_parser()
    if not argv:
        parser.print_help()
        return 0
    args = parser.parse_args(argv)
    return _run_reader(args)


if __name__ == "__main__":
    raise SystemExit(main())
