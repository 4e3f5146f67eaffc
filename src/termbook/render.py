from __future__ import annotations

import xml.etree.ElementTree as ET
from dataclasses import dataclass, field, replace
from html.entities import name2codepoint

from rich.style import Style
from rich.text import Text

from .errors import EpubFormatError
from .package import get_attr, strip_tag

HEADING_TAGS = {"h1", "h2", "h3", "h4", "h5", "h6"}
BOLD_TAGS = {"b", "strong"}
ITALIC_TAGS = {"i", "em"}
SUPPRESSED_TAGS = {"script", "style"}

IMAGE_PLACEHOLDER = "[IMG:{index}]"
IMAGE_STYLE = Style(reverse=True)

# Named HTML entities resolve when the chapter declares the XHTML DOCTYPE.
_HTML_ENTITIES = {name: chr(codepoint) for name, codepoint in name2codepoint.items()}


@dataclass(frozen=True, slots=True)
class StyleState:
    """Formatting context inherited from the ancestors of a node."""

    body: bool = False
    paragraph: bool = False
    link: bool = False
    bold: bool = False
    italic: bool = False
    underline: bool = False
    suppressed: bool = False
    heading: bool = False

    def shows_text(self) -> bool:
        return self.body and not self.suppressed and (self.paragraph or self.heading)

    def text_style(self) -> Style | None:
        bold = self.heading or self.bold
        reverse = self.heading
        underline = self.underline or self.link
        if not (bold or reverse or underline or self.italic):
            return None
        return Style(
            bold=bold or None,
            italic=self.italic or None,
            underline=underline or None,
            reverse=reverse or None,
        )


@dataclass(slots=True)
class RenderedChapter:
    lines: list[Text]
    images: list[str] = field(default_factory=list)

    @property
    def text(self) -> Text:
        return Text("\n").join(self.lines)

    def plain_lines(self) -> list[str]:
        return [line.plain for line in self.lines]


def enter_element(tag: str, state: StyleState) -> tuple[StyleState, bool]:
    """Return the state for the children of ``tag`` and whether it opens a block."""
    if tag == "body":
        return replace(state, body=True), False
    if tag == "p":
        return replace(state, paragraph=True), not state.paragraph
    if tag == "div":
        return state, not state.paragraph
    if tag in HEADING_TAGS:
        return replace(state, heading=True), not state.paragraph
    if tag == "a":
        return replace(state, link=True), False
    if tag in BOLD_TAGS:
        return replace(state, bold=True), False
    if tag in ITALIC_TAGS:
        return replace(state, italic=True), False
    if tag == "u":
        return replace(state, underline=True), False
    if tag in SUPPRESSED_TAGS:
        return replace(state, suppressed=True), False
    return state, False


def strip_text(text: Text) -> Text:
    plain = text.plain
    start = len(plain) - len(plain.lstrip())
    end = len(plain.rstrip())
    if start == 0 and end == len(plain):
        return text
    if start >= end:
        return Text()
    return text.divide([start, end])[1]


def _append_text(output: Text, value: str | None, state: StyleState) -> None:
    if value and state.shows_text():
        output.append(value, style=state.text_style())


def render_element(elem: ET.Element, state: StyleState, images: list[str]) -> Text:
    output = Text()
    if not isinstance(elem.tag, str):
        return output
    tag = strip_tag(elem.tag)
    child_state, opens_block = enter_element(tag, state)

    if tag == "br":
        output.append("\n")
    elif tag == "img":
        src = get_attr(elem, "src")
        if src is None:
            raise EpubFormatError("img element missing src attribute")
        output.append(IMAGE_PLACEHOLDER.format(index=len(images)), style=IMAGE_STYLE)
        images.append(src)

    inner = Text()
    _append_text(inner, elem.text, child_state)
    for child in elem:
        inner.append_text(render_element(child, child_state, images))
        _append_text(inner, child.tail, child_state)

    if opens_block:
        block = strip_text(inner)
        if block.plain:
            output.append_text(block)
            output.append("\n\n")
    else:
        output.append_text(inner)
    return output


def parse_chapter(xml: str, source: str = "chapter") -> ET.Element:
    parser = ET.XMLParser()
    parser.entity.update(_HTML_ENTITIES)
    try:
        parser.feed(xml)
        return parser.close()
    except ET.ParseError as exc:
        raise EpubFormatError(f"{source}: {exc}") from exc


def render_chapter(xml: str, source: str = "chapter") -> RenderedChapter:
    """Render one XHTML chapter into styled display lines and its image list.

    Either the whole document parses and renders, or ``EpubFormatError`` is
    raised. Lines are not wrapped to any width.
    """
    root = parse_chapter(xml, source)
    images: list[str] = []
    try:
        text = strip_text(render_element(root, StyleState(), images))
    except EpubFormatError as exc:
        raise EpubFormatError(f"{source}: {exc}") from exc
    except RecursionError as exc:
        raise EpubFormatError(f"{source}: markup nested too deeply to render") from exc
    if not text.plain:
        return RenderedChapter(lines=[], images=images)
    lines = list(text.split("\n", allow_blank=True))
    return RenderedChapter(lines=lines, images=images)
