from __future__ import annotations

import os
import tempfile
from pathlib import Path, PurePosixPath

from .archive import EpubArchive
from .errors import EpubLookupError
from .logging_utils import debug_log
from .package import CONTAINER_PATH, Container, Package, parse_container, parse_package, resolve_relative_path
from .render import RenderedChapter, render_chapter
from .toc import TocEntry, load_toc


class Epub:
    """An opened publication: its reading order and per-chapter rendering.

    Nothing rendered is cached; ``render`` reparses the chapter every call.
    """

    def __init__(
        self,
        archive: EpubArchive,
        container: Container,
        package: Package,
        toc: list[TocEntry] | None = None,
    ) -> None:
        self.archive = archive
        self.container = container
        self.package = package
        self.toc = toc or []

    @classmethod
    def open(cls, path: str | Path) -> "Epub":
        archive = EpubArchive.open(path)
        try:
            container = parse_container(archive.read_text(CONTAINER_PATH))
            debug_log(f"package document at {container.package_path}")
            package = parse_package(
                archive.read_text(container.package_path),
                container.base_path,
                source=container.package_path,
            )
            debug_log(f"{len(package.manifest)} manifest items, {len(package.spine)} spine items")
            toc = load_toc(archive, package)
        except Exception:
            archive.close()
            raise
        return cls(archive, container, package, toc)

    @property
    def path(self) -> Path:
        return self.archive.path

    @property
    def title(self) -> str | None:
        return self.package.title

    @property
    def author(self) -> str | None:
        if not self.package.authors:
            return None
        return ", ".join(self.package.authors)

    @property
    def spine(self) -> list[str]:
        return list(self.package.spine)

    def __len__(self) -> int:
        return len(self.package.spine)

    def _check_index(self, index: int) -> None:
        if not 0 <= index < len(self):
            raise EpubLookupError(f"chapter index {index} out of range (0..{len(self) - 1})")

    def chapter_path(self, index: int) -> str:
        self._check_index(index)
        idref = self.package.spine[index]
        item = self.package.manifest.get(idref)
        if item is None:
            raise EpubLookupError(f"spine item '{idref}' has no manifest entry")
        return item.path

    def chapter_title(self, index: int) -> str | None:
        path = self.chapter_path(index)
        for entry in self.toc:
            if entry.path == path and entry.title:
                return entry.title
        return None

    def render(self, index: int) -> RenderedChapter:
        path = self.chapter_path(index)
        debug_log(f"rendering chapter {index} from {path}")
        return render_chapter(self.archive.read_text(path), source=path)

    def image_path(self, index: int, image_index: int, rendered: RenderedChapter | None = None) -> str:
        """Archive path of the ``image_index``-th image of chapter ``index``."""
        chapter_path = self.chapter_path(index)
        if rendered is None:
            rendered = self.render(index)
        if not 0 <= image_index < len(rendered.images):
            raise EpubLookupError(
                f"image {image_index} out of range for chapter {index} ({len(rendered.images)} images)"
            )
        resolved = resolve_relative_path(chapter_path, rendered.images[image_index])
        if not self.archive.has_entry(resolved):
            raise EpubLookupError(f"image '{resolved}' not found in '{self.path}'")
        return resolved

    def extract_image(
        self,
        index: int,
        image_index: int,
        directory: str | Path | None = None,
        rendered: RenderedChapter | None = None,
    ) -> Path:
        """Copy one image out of the archive into a new temporary file."""
        resolved = self.image_path(index, image_index, rendered)
        data = self.archive.read_bytes(resolved)
        suffix = PurePosixPath(resolved).suffix
        fd, tmp_name = tempfile.mkstemp(prefix="termbook-", suffix=suffix, dir=directory)
        with os.fdopen(fd, "wb") as handle:
            handle.write(data)
        debug_log(f"extracted {resolved} to {tmp_name}")
        return Path(tmp_name)

    def close(self) -> None:
        self.archive.close()

    def __enter__(self) -> "Epub":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()
