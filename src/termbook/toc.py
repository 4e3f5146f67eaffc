from __future__ import annotations

import xml.etree.ElementTree as ET
from dataclasses import dataclass

from bs4 import BeautifulSoup

from .archive import EpubArchive
from .errors import EpubFormatError, EpubIOError
from .logging_utils import debug_log
from .package import Package, find_child, get_attr, resolve_relative_path, split_fragment, strip_tag

NCX_MEDIA_TYPE = "application/x-dtbncx+xml"


@dataclass(frozen=True, slots=True)
class TocEntry:
    title: str
    path: str
    fragment: str | None = None


def parse_nav_document(html: str) -> list[tuple[str, str]]:
    """Return ``(href, title)`` pairs from an EPUB3 navigation document."""
    soup = BeautifulSoup(html, "html.parser")
    nav_tags = []
    for nav in soup.find_all("nav"):
        nav_type = (nav.get("epub:type") or "").lower()
        role = (nav.get("role") or "").lower()
        if "toc" in nav_type or role == "doc-toc":
            nav_tags.append(nav)
    if not nav_tags:
        nav_tags = soup.find_all("nav")
    entries: list[tuple[str, str]] = []
    for nav in nav_tags:
        for anchor in nav.find_all("a"):
            href = anchor.get("href")
            if not href:
                continue
            entries.append((href, anchor.get_text(" ", strip=True)))
    return entries


def parse_ncx_document(xml_text: str) -> list[tuple[str, str]]:
    """Return ``(src, label)`` pairs from an NCX navMap, depth first."""
    try:
        root = ET.fromstring(xml_text)
    except ET.ParseError:
        return []

    def _collect(elem: ET.Element, acc: list[tuple[str, str]]) -> None:
        for nav_point in elem:
            if not isinstance(nav_point.tag, str) or strip_tag(nav_point.tag) != "navPoint":
                continue
            content = find_child(nav_point, "content")
            src = get_attr(content, "src") if content is not None else None
            if src:
                label = find_child(nav_point, "navLabel")
                text = "".join(label.itertext()).strip() if label is not None else ""
                acc.append((src, " ".join(text.split())))
            _collect(nav_point, acc)

    nav_map = find_child(root, "navMap")
    if nav_map is None:
        return []
    entries: list[tuple[str, str]] = []
    _collect(nav_map, entries)
    return entries


def _candidates(package: Package) -> tuple[list[str], list[str]]:
    nav_paths: list[str] = []
    ncx_paths: list[str] = []
    for item in package.manifest.values():
        properties = (item.properties or "").split()
        if "nav" in properties:
            nav_paths.append(item.path)
        if (item.media_type or "").lower() == NCX_MEDIA_TYPE:
            ncx_paths.append(item.path)
    if package.toc_id and package.toc_id in package.manifest:
        preferred = package.manifest[package.toc_id].path
        if preferred in ncx_paths:
            ncx_paths.remove(preferred)
        ncx_paths.insert(0, preferred)
    return nav_paths, ncx_paths


def _entries_from(archive: EpubArchive, doc_path: str, parser) -> list[TocEntry]:
    try:
        raw_entries = parser(archive.read_text(doc_path))
    except (EpubIOError, EpubFormatError) as exc:
        debug_log(f"skipping table of contents {doc_path}: {exc}")
        return []
    entries: list[TocEntry] = []
    for href, title in raw_entries:
        _, fragment = split_fragment(href)
        entries.append(
            TocEntry(
                title=title,
                path=resolve_relative_path(doc_path, href),
                fragment=fragment,
            )
        )
    return entries


def load_toc(archive: EpubArchive, package: Package) -> list[TocEntry]:
    """Read the navigation document, or the NCX when there is none."""
    nav_paths, ncx_paths = _candidates(package)
    for nav_path in nav_paths:
        entries = _entries_from(archive, nav_path, parse_nav_document)
        if entries:
            debug_log(f"table of contents from {nav_path} ({len(entries)} entries)")
            return entries
    for ncx_path in ncx_paths:
        entries = _entries_from(archive, ncx_path, parse_ncx_document)
        if entries:
            debug_log(f"table of contents from {ncx_path} ({len(entries)} entries)")
            return entries
    return []
