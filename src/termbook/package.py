from __future__ import annotations

import posixpath
import xml.etree.ElementTree as ET
from dataclasses import dataclass, field
from pathlib import PurePosixPath
from urllib.parse import unquote

from .errors import EpubFormatError

CONTAINER_PATH = "META-INF/container.xml"
DC_NAMESPACE = "http://purl.org/dc/elements/1.1/"


@dataclass(frozen=True, slots=True)
class Container:
    package_path: str
    base_path: str


@dataclass(frozen=True, slots=True)
class ManifestItem:
    id: str
    path: str
    media_type: str | None = None
    properties: str | None = None


@dataclass(slots=True)
class Package:
    manifest: dict[str, ManifestItem]
    spine: list[str]
    title: str | None = None
    authors: list[str] = field(default_factory=list)
    toc_id: str | None = None


def strip_tag(tag: str) -> str:
    return tag.split("}", 1)[-1] if "}" in tag else tag


def get_attr(elem: ET.Element, name: str) -> str | None:
    for attr, value in elem.attrib.items():
        if strip_tag(attr) == name:
            return value
    return None


def find_child(elem: ET.Element, name: str) -> ET.Element | None:
    for child in elem:
        if isinstance(child.tag, str) and strip_tag(child.tag) == name:
            return child
    return None


def find_path(root: ET.Element, path: str) -> ET.Element | None:
    """Descend ``path`` one direct child per segment, starting at ``root``.

    The first segment names ``root`` itself. Namespaces are ignored.
    """
    parts = path.split("/")
    if strip_tag(root.tag) != parts[0]:
        return None
    node: ET.Element | None = root
    for part in parts[1:]:
        node = find_child(node, part)
        if node is None:
            return None
    return node


def parse_xml(xml: str, source: str) -> ET.Element:
    try:
        return ET.fromstring(xml)
    except ET.ParseError as exc:
        raise EpubFormatError(f"{source}: {exc}") from exc


def parse_container(xml: str) -> Container:
    root = parse_xml(xml, CONTAINER_PATH)
    rootfile = find_path(root, "container/rootfiles/rootfile")
    if rootfile is None:
        raise EpubFormatError(f"{CONTAINER_PATH}: unable to find rootfile node")
    package_path = get_attr(rootfile, "full-path")
    if package_path is None:
        raise EpubFormatError(f"{CONTAINER_PATH}: rootfile node missing full-path attribute")
    base_path = "/".join(package_path.split("/")[:-1])
    return Container(package_path=package_path, base_path=base_path)


def resolve_href(base_path: str, href: str) -> str:
    return f"{base_path}/{href}" if base_path else href


def split_fragment(href: str) -> tuple[str, str | None]:
    if "#" in href:
        base, fragment = href.split("#", 1)
        return base, unquote(fragment)
    return href, None


def resolve_relative_path(base_file: str, href: str) -> str:
    """Resolve ``href`` against the directory of the archive entry ``base_file``."""
    target, _ = split_fragment(href)
    target = unquote(target)
    base = str(PurePosixPath(base_file).parent)
    if base not in ("", ".", "/"):
        combined = posixpath.join(base, target)
    else:
        combined = target
    return posixpath.normpath(combined).lstrip("/")


def _parse_manifest(root: ET.Element, base_path: str, source: str) -> dict[str, ManifestItem]:
    manifest_node = find_path(root, "package/manifest")
    if manifest_node is None:
        raise EpubFormatError(f"{source}: unable to find manifest node")
    manifest: dict[str, ManifestItem] = {}
    for item in manifest_node:
        if not isinstance(item.tag, str) or strip_tag(item.tag) != "item":
            continue
        item_id = get_attr(item, "id")
        if item_id is None:
            raise EpubFormatError(f"{source}: manifest item missing id attribute")
        href = get_attr(item, "href")
        if href is None:
            raise EpubFormatError(f"{source}: manifest item '{item_id}' missing href attribute")
        manifest[item_id] = ManifestItem(
            id=item_id,
            path=resolve_href(base_path, href),
            media_type=get_attr(item, "media-type"),
            properties=get_attr(item, "properties"),
        )
    return manifest


def _parse_spine(root: ET.Element, source: str) -> tuple[list[str], str | None]:
    spine_node = find_path(root, "package/spine")
    if spine_node is None:
        raise EpubFormatError(f"{source}: unable to find spine node")
    spine: list[str] = []
    for itemref in spine_node:
        if not isinstance(itemref.tag, str) or strip_tag(itemref.tag) != "itemref":
            continue
        linear = get_attr(itemref, "linear")
        if linear is not None and linear != "yes":
            continue
        idref = get_attr(itemref, "idref")
        if idref is None:
            raise EpubFormatError(f"{source}: spine itemref missing idref attribute")
        spine.append(idref)
    return spine, get_attr(spine_node, "toc")


def _parse_metadata(root: ET.Element) -> tuple[str | None, list[str]]:
    title: str | None = None
    for title_el in root.iter(f"{{{DC_NAMESPACE}}}title"):
        text = "".join(title_el.itertext()).strip()
        if text:
            title = text
            break
    authors: list[str] = []
    for creator_el in root.iter(f"{{{DC_NAMESPACE}}}creator"):
        name = "".join(creator_el.itertext()).strip()
        if not name or name in authors:
            continue
        role = get_attr(creator_el, "role")
        if role and role.lower() not in {"aut", "author"}:
            continue
        authors.append(name)
    return title, authors


def parse_package(xml: str, base_path: str, source: str = "package document") -> Package:
    """Build the manifest and the linear reading order of a package document.

    Spine entries are kept as manifest ids and are not checked against the
    manifest here; a dangling id surfaces when that chapter is looked up.
    """
    root = parse_xml(xml, source)
    manifest = _parse_manifest(root, base_path, source)
    spine, toc_id = _parse_spine(root, source)
    title, authors = _parse_metadata(root)
    return Package(manifest=manifest, spine=spine, title=title, authors=authors, toc_id=toc_id)
