from __future__ import annotations

import zipfile
from pathlib import Path

from .errors import EpubFormatError, EpubIOError
from .logging_utils import debug_log

EPUB_MIMETYPE = "application/epub+zip"
MIMETYPE_ENTRY = "mimetype"


class EpubArchive:
    """Random-access reader over the zip container of an EPUB.

    The archive owns its ``zipfile.ZipFile`` handle. It is not safe to share
    one instance between threads.
    """

    def __init__(self, path: Path, zf: zipfile.ZipFile) -> None:
        self.path = path
        self._zf = zf

    @classmethod
    def open(cls, path: str | Path) -> "EpubArchive":
        archive_path = Path(path)
        try:
            zf = zipfile.ZipFile(archive_path, "r")
        except FileNotFoundError as exc:
            raise EpubIOError(f"unable to open '{archive_path}': file not found") from exc
        except zipfile.BadZipFile as exc:
            raise EpubIOError(f"unable to open '{archive_path}': {exc}") from exc
        except OSError as exc:
            raise EpubIOError(f"unable to open '{archive_path}': {exc}") from exc

        archive = cls(archive_path, zf)
        try:
            archive._check_mimetype()
        except Exception:
            zf.close()
            raise
        debug_log(f"opened {archive_path} ({len(zf.infolist())} entries)")
        return archive

    def _check_mimetype(self) -> None:
        infos = self._zf.infolist()
        if not infos:
            raise EpubFormatError(f"'{self.path}': archive is empty")
        first = infos[0]
        if first.filename != MIMETYPE_ENTRY:
            raise EpubFormatError(
                f"'{self.path}': first entry is {first.filename!r}, expected {MIMETYPE_ENTRY!r}"
            )
        if first.compress_type != zipfile.ZIP_STORED:
            raise EpubFormatError(f"'{self.path}': mimetype entry must be stored uncompressed")
        mimetype = self.read_text(MIMETYPE_ENTRY)
        if mimetype.strip() != EPUB_MIMETYPE:
            raise EpubFormatError(f"invalid mimetype: {mimetype.strip()!r}")

    def has_entry(self, name: str) -> bool:
        try:
            self._zf.getinfo(name)
        except KeyError:
            return False
        return True

    def read_bytes(self, name: str) -> bytes:
        try:
            with self._zf.open(name, "r") as handle:
                return handle.read()
        except KeyError as exc:
            raise EpubIOError(f"{name}: no such entry in '{self.path}'") from exc
        except (zipfile.BadZipFile, OSError, RuntimeError) as exc:
            raise EpubIOError(f"{name}: {exc}") from exc

    def read_text(self, name: str) -> str:
        raw = self.read_bytes(name)
        try:
            return raw.decode("utf-8-sig")
        except UnicodeDecodeError as exc:
            raise EpubFormatError(f"{name}: not valid UTF-8 ({exc.reason} at byte {exc.start})") from exc

    def close(self) -> None:
        self._zf.close()

    def __enter__(self) -> "EpubArchive":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()
