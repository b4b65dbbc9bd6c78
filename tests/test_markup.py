# tests/test_markup.py

from __future__ import annotations

from its_done.core.markup import (
    BulletList,
    Document,
    Paragraph,
    Table,
    render_markdown,
    to_html,
    to_plain_text,
)


def test_empty_input() -> None:
    assert render_markdown("") == Document(blocks=())
    assert to_html(render_markdown("")) == ""


def test_html_is_escaped_before_markup() -> None:
    html = to_html(render_markdown("<script>alert(1)</script> & **bold**"))
    assert html == "<p>&lt;script&gt;alert(1)&lt;/script&gt; &amp; <strong>bold</strong></p>"


def test_paragraph_line_breaks_and_italic() -> None:
    html = to_html(render_markdown("line one\nline *two*"))
    assert html == "<p>line one<br/>line <em>two</em></p>"


def test_blocks_split_on_blank_lines() -> None:
    doc = render_markdown("Intro\n\n* one\n* **two**\n   \nOutro")
    assert [type(b) for b in doc.blocks] == [Paragraph, BulletList, Paragraph]
    assert to_html(doc) == "<p>Intro</p><ul><li>one</li><li><strong>two</strong></li></ul><p>Outro</p>"


def test_table() -> None:
    text = "| Name | Price |\n|------|-------|\n| Tea | **$2** |\n| Coffee | $3 |"
    doc = render_markdown(text)
    assert isinstance(doc.blocks[0], Table)
    assert to_html(doc) == (
        "<table><thead><tr><th>Name</th><th>Price</th></tr></thead>"
        "<tbody><tr><td>Tea</td><td><strong>$2</strong></td></tr>"
        "<tr><td>Coffee</td><td>$3</td></tr></tbody></table>"
    )


def test_pipe_without_separator_is_paragraph() -> None:
    doc = render_markdown("a | b\nc | d")
    assert isinstance(doc.blocks[0], Paragraph)


def test_plain_text_rendering() -> None:
    text = "**Plan** for A&B:\n\n* first\n* second\n\n| k | v |\n| --- | --- |\n| x | 1 |"
    assert to_plain_text(render_markdown(text)) == (
        "Plan for A&B:\n\n"
        "  • first\n  • second\n\n"
        "k | v\n-----\nx | 1"
    )


def test_bold_spans_a_line_break() -> None:
    assert to_html(render_markdown("**multi\nline**")) == "<p><strong>multi<br/>line</strong></p>"


def test_italic_wraps_bold_run() -> None:
    assert to_html(render_markdown("*a **b** c*")) == "<p><em>a <strong>b</strong> c</em></p>"


def test_crossed_emphasis_stays_well_formed() -> None:
    html = to_html(render_markdown("*a **b* c**"))
    assert html == "<p><em>a <strong>b</strong></em><strong> c</strong></p>"


def test_control_characters_cannot_inject_markup() -> None:
    assert to_html(render_markdown("x\x01y\x02z")) == "<p>xyz</p>"
