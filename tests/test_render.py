from __future__ import annotations

import pytest
from rich.text import Text

from termbook.errors import EpubFormatError
from termbook.render import StyleState, enter_element, render_chapter, strip_text


def _runs(line: Text) -> list[tuple[str, object]]:
    return [(line.plain[span.start : span.end], span.style) for span in line.spans]


def _xhtml(body: str) -> str:
    return (
        '<?xml version="1.0" encoding="utf-8"?>\n'
        '<html xmlns="http://www.w3.org/1999/xhtml">'
        "<head><title>Ignored title</title></head>"
        f"<body>{body}</body></html>"
    )


def test_nested_inline_styles_stay_in_one_block() -> None:
    chapter = render_chapter("<body><p>Hello <b>bold <i>both</i></b> plain</p></body>")
    assert chapter.plain_lines() == ["Hello bold both plain"]
    runs = _runs(chapter.lines[0])
    assert [text for text, _ in runs] == ["bold ", "both"]
    bold_style, both_style = (style for _, style in runs)
    assert bold_style.bold and not bold_style.italic
    assert both_style.bold and both_style.italic
    assert chapter.images == []


def test_siblings_do_not_share_style() -> None:
    chapter = render_chapter(_xhtml("<p><i>slanted</i>upright <u>under</u><a href='#x'>link</a></p>"))
    runs = _runs(chapter.lines[0])
    assert [text for text, _ in runs] == ["slanted", "under", "link"]
    assert runs[0][1].italic and not runs[0][1].underline
    assert runs[1][1].underline and not runs[1][1].italic
    assert runs[2][1].underline


def test_heading_is_bold_and_reversed() -> None:
    chapter = render_chapter(_xhtml("<h2>Title <em>part</em></h2><p>Body</p>"))
    assert chapter.plain_lines() == ["Title part", "", "Body"]
    (title_text, title_style), (part_text, part_style) = _runs(chapter.lines[0])
    assert title_text == "Title "
    assert title_style.bold and title_style.reverse
    assert part_text == "part"
    assert part_style.bold and part_style.reverse and part_style.italic
    assert _runs(chapter.lines[2]) == []


def test_blocks_are_separated_by_one_blank_line() -> None:
    chapter = render_chapter(_xhtml("<p>  One  </p>\n<p>Two</p><div><p>Three</p><p>Four</p></div>"))
    assert chapter.plain_lines() == ["One", "", "Two", "", "Three", "", "Four"]


def test_empty_blocks_add_nothing() -> None:
    chapter = render_chapter(_xhtml("<p>   </p><div><span>\n</span></div><p>x</p>"))
    assert chapter.plain_lines() == ["x"]


def test_paragraph_inside_paragraph_does_not_break() -> None:
    chapter = render_chapter(_xhtml("<p>Outer <p>inner</p> end</p>"))
    assert chapter.plain_lines() == ["Outer inner end"]


def test_text_without_block_ancestor_is_dropped() -> None:
    chapter = render_chapter(_xhtml("loose text<span>also loose</span><p>kept</p>tail<div>div only</div>"))
    assert chapter.plain_lines() == ["kept"]


def test_text_outside_body_is_dropped() -> None:
    chapter = render_chapter("<html><head><title>Title</title></head><p>no body</p></html>")
    assert chapter.lines == []
    assert chapter.images == []


def test_script_and_style_are_suppressed() -> None:
    chapter = render_chapter(
        _xhtml("<p>before<script>alert('x')</script>after</p><h1><style>h1 {}</style>Head</h1>")
    )
    assert chapter.plain_lines() == ["beforeafter", "", "Head"]
    assert all("alert" not in line for line in chapter.plain_lines())


def test_line_break_splits_lines_inside_block() -> None:
    chapter = render_chapter(_xhtml("<p>line one<br/>line two</p>"))
    assert chapter.plain_lines() == ["line one", "line two"]


def test_images_are_numbered_in_document_order() -> None:
    chapter = render_chapter(_xhtml('<p><img src="a.png"/> and <img src="b.png"/></p>'))
    assert chapter.plain_lines() == ["[IMG:0] and [IMG:1]"]
    assert chapter.images == ["a.png", "b.png"]
    runs = _runs(chapter.lines[0])
    assert [text for text, _ in runs] == ["[IMG:0]", "[IMG:1]"]
    assert all(style.reverse for _, style in runs)


def test_images_outside_paragraphs_are_still_recorded() -> None:
    chapter = render_chapter(_xhtml('<div><img src="cover.jpg"/></div><p>text</p>'))
    assert chapter.plain_lines() == ["[IMG:0]", "", "text"]
    assert chapter.images == ["cover.jpg"]


def test_image_without_src_is_format_error() -> None:
    with pytest.raises(EpubFormatError) as excinfo:
        render_chapter(_xhtml('<p><img alt="x"/></p>'), source="OEBPS/ch1.xhtml")
    assert "src" in str(excinfo.value)
    assert "OEBPS/ch1.xhtml" in str(excinfo.value)


def test_malformed_xml_is_format_error() -> None:
    with pytest.raises(EpubFormatError) as excinfo:
        render_chapter("<html><body><p>open</body></html>", source="broken.xhtml")
    assert "broken.xhtml" in str(excinfo.value)


def test_named_entities_resolve_with_xhtml_doctype() -> None:
    xml = (
        '<?xml version="1.0" encoding="utf-8"?>\n'
        '<!DOCTYPE html PUBLIC "-//W3C//DTD XHTML 1.1//EN" '
        '"http://www.w3.org/TR/xhtml11/DTD/xhtml11.dtd">\n'
        '<html xmlns="http://www.w3.org/1999/xhtml"><body><p>a&nbsp;b &amp; c</p></body></html>'
    )
    assert render_chapter(xml).plain_lines() == ["a\xa0b & c"]


def test_rendering_is_deterministic() -> None:
    xml = _xhtml('<h1>T</h1><p>Hello <b>bold</b><img src="a.png"/></p>')
    first = render_chapter(xml)
    second = render_chapter(xml)
    assert first == second
    assert first.text.markup == second.text.markup


def test_heading_and_div_inside_paragraph_do_not_break() -> None:
    chapter = render_chapter(_xhtml("<p>a <h2>b</h2> <div>c</div> d</p>"))
    assert chapter.plain_lines() == ["a b c d"]
    runs = _runs(chapter.lines[0])
    assert [text for text, _ in runs] == ["b"]
    assert runs[0][1].bold and runs[0][1].reverse


def test_heading_inside_div_is_its_own_block() -> None:
    chapter = render_chapter(_xhtml("<div><h1>T</h1><p>x</p></div>"))
    assert chapter.plain_lines() == ["T", "", "x"]


def test_deep_nesting_is_format_error() -> None:
    depth = 5000
    xml = _xhtml("<p>" + "<span>" * depth + "deep" + "</span>" * depth + "</p>")
    with pytest.raises(EpubFormatError) as excinfo:
        render_chapter(xml, source="OEBPS/deep.xhtml")
    assert "OEBPS/deep.xhtml" in str(excinfo.value)
    assert "nested too deeply" in str(excinfo.value)


def test_enter_element_block_rules() -> None:
    outside = StyleState(body=True)
    inside = StyleState(body=True, paragraph=True)
    assert enter_element("p", outside) == (StyleState(body=True, paragraph=True), True)
    assert enter_element("p", inside) == (inside, False)
    assert enter_element("div", outside) == (outside, True)
    assert enter_element("div", inside) == (inside, False)
    assert enter_element("h3", outside) == (StyleState(body=True, heading=True), True)
    assert enter_element("span", inside) == (inside, False)
    assert enter_element("strong", inside)[0].bold
    assert enter_element("script", inside)[0].suppressed


def test_style_state_shows_text_only_in_body_blocks() -> None:
    assert not StyleState(paragraph=True).shows_text()
    assert not StyleState(body=True).shows_text()
    assert StyleState(body=True, heading=True).shows_text()
    assert not StyleState(body=True, paragraph=True, suppressed=True).shows_text()
    assert StyleState(body=True, paragraph=True).text_style() is None


def test_strip_text_keeps_spans_aligned() -> None:
    text = Text("  ")
    text.append("bold", style="bold")
    text.append("  ")
    stripped = strip_text(text)
    assert stripped.plain == "bold"
    assert [(span.start, span.end) for span in stripped.spans] == [(0, 4)]
    assert strip_text(Text("   ")).plain == ""
