from .archive import EpubArchive
from .epub import Epub
from .errors import EpubFormatError, EpubIOError, EpubLookupError
from .package import Container, ManifestItem, Package, parse_container, parse_package
from .render import RenderedChapter, StyleState, render_chapter
from .toc import TocEntry

__all__ = [
    "Epub",
    "EpubArchive",
    "EpubIOError",
    "EpubFormatError",
    "EpubLookupError",
    "Container",
    "ManifestItem",
    "Package",
    "parse_container",
    "parse_package",
    "RenderedChapter",
    "StyleState",
    "render_chapter",
    "TocEntry",
]
