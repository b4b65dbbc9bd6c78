# src/its_done/core/markup.py

"""
Minimal markdown renderer for LLM output.

Supported subset:
- blocks separated by blank lines
- pipe tables (header row, "---" separator row, body rows)
- bullet lists ("* item")
- paragraphs (single newlines become line breaks)
- inline **bold** and *italic*

Key invariants:
- `&`, `<`, `>` are escaped before any structure is built; text nodes hold
  escaped text
- inline formatting runs on leaf spans only, after block classification.
"""

from __future__ import annotations

import html
import logging
import re
from dataclasses import dataclass
from typing import Union

logger = logging.getLogger(__name__)

_BLOCK_SPLIT = re.compile(r"\n\s*\n")
_BOLD = re.compile(r"\*\*(.*?)\*\*")
_ITALIC = re.compile(r"\*(.*?)\*")
_LIST_MARKER = re.compile(r"^\s*\*\s")


# ---- display tree ----


@dataclass(frozen=True, slots=True)
class Text:
    value: str  # already escaped


@dataclass(frozen=True, slots=True)
class Strong:
    children: tuple[Inline, ...]


@dataclass(frozen=True, slots=True)
class Emphasis:
    children: tuple[Inline, ...]


@dataclass(frozen=True, slots=True)
class LineBreak:
    pass


Inline = Union[Text, Strong, Emphasis, LineBreak]


@dataclass(frozen=True, slots=True)
class Paragraph:
    children: tuple[Inline, ...]


@dataclass(frozen=True, slots=True)
class BulletList:
    items: tuple[tuple[Inline, ...], ...]


@dataclass(frozen=True, slots=True)
class Table:
    headers: tuple[tuple[Inline, ...], ...]
    rows: tuple[tuple[tuple[Inline, ...], ...], ...]


Block = Union[Paragraph, BulletList, Table]


@dataclass(frozen=True, slots=True)
class Document:
    blocks: tuple[Block, ...]


class TableParseError(ValueError):
    pass


# ---- parsing ----


# Markers standing in for tags between the regex passes and tree building.
_BR, _S_OPEN, _S_CLOSE, _E_OPEN, _E_CLOSE = "\x00", "\x01", "\x02", "\x03", "\x04"
_MARKERS = re.compile("[\x00-\x04]")


def escape_text(text: str) -> str:
    text = _MARKERS.sub("", text)
    return text.replace("&", "&amp;").replace("<", "&lt;").replace(">", "&gt;")


def _build_tree(marked: str) -> tuple[Inline, ...]:
    """Turn a marked-up string into nodes; crossed spans are closed and reopened."""
    root: list[Inline] = []
    stack: list[tuple[type, list[Inline]]] = []
    buf: list[str] = []

    def current() -> list[Inline]:
        return stack[-1][1] if stack else root

    def flush() -> None:
        if buf:
            current().append(Text("".join(buf)))
            buf.clear()

    def close_top() -> None:
        kind, children = stack.pop()
        current().append(kind(tuple(children)))

    for ch in marked:
        if ch == _BR:
            flush()
            current().append(LineBreak())
        elif ch in (_S_OPEN, _E_OPEN):
            flush()
            stack.append((Strong if ch == _S_OPEN else Emphasis, []))
        elif ch in (_S_CLOSE, _E_CLOSE):
            flush()
            kind = Strong if ch == _S_CLOSE else Emphasis
            reopen: list[type] = []
            while stack and stack[-1][0] is not kind:
                reopen.append(stack[-1][0])
                close_top()
            if stack:
                close_top()
            for k in reversed(reopen):
                stack.append((k, []))
        else:
            buf.append(ch)
    flush()
    while stack:
        close_top()
    return tuple(root)


def format_inline(s: str) -> tuple[Inline, ...]:
    """
    Apply **bold** then *italic* to a whole (escaped) leaf span.

    Newlines become line breaks first, so emphasis may cross them, and the
    italic pass sees bold runs as part of the text it wraps.
    """
    marked = s.replace("\n", _BR)
    marked = _BOLD.sub(lambda m: f"{_S_OPEN}{m.group(1)}{_S_CLOSE}", marked)
    marked = _ITALIC.sub(lambda m: f"{_E_OPEN}{m.group(1)}{_E_CLOSE}", marked)
    return _build_tree(marked)


def _split_row(line: str) -> list[str]:
    cells = [c.strip() for c in line.split("|")]
    if cells and cells[0] == "":
        cells = cells[1:]
    if cells and cells[-1] == "":
        cells = cells[:-1]
    return cells


def _parse_table(block: str) -> Table:
    lines = [ln for ln in block.strip().split("\n")]
    if len(lines) < 2:
        raise TableParseError("table needs a header and a separator row")

    headers = _split_row(lines[0])
    if not headers:
        raise TableParseError("table header has no cells")

    rows = tuple(
        tuple(format_inline(c) for c in _split_row(ln))
        for ln in lines[2:]
        if ln.strip()
    )
    return Table(headers=tuple(format_inline(h) for h in headers), rows=rows)


def _looks_like_table(block: str) -> bool:
    if "|" not in block:
        return False
    lines = block.strip().split("\n")
    return len(lines) >= 2 and "---" in lines[1]


def _parse_list(block: str) -> BulletList:
    items = tuple(
        format_inline(_LIST_MARKER.sub("", line, count=1).strip())
        for line in block.split("\n")
        if line.strip()
    )
    return BulletList(items=items)


def _parse_paragraph(block: str) -> Paragraph:
    return Paragraph(children=format_inline(block))


def _parse_block(raw_block: str) -> Block:
    block = escape_text(raw_block)

    if _looks_like_table(block):
        try:
            return _parse_table(block)
        except TableParseError:
            logger.debug("Table parse failed; rendering as paragraph", exc_info=True)

    if block.strip().startswith("* "):
        return _parse_list(block)

    return _parse_paragraph(block)


def render_markdown(text: str) -> Document:
    if not text:
        return Document(blocks=())
    blocks = tuple(_parse_block(b) for b in _BLOCK_SPLIT.split(text) if b.strip())
    return Document(blocks=blocks)


# ---- serializers ----


def _inline_html(nodes: tuple[Inline, ...]) -> str:
    parts: list[str] = []
    for node in nodes:
        if isinstance(node, Text):
            parts.append(node.value)
        elif isinstance(node, Strong):
            parts.append(f"<strong>{_inline_html(node.children)}</strong>")
        elif isinstance(node, Emphasis):
            parts.append(f"<em>{_inline_html(node.children)}</em>")
        elif isinstance(node, LineBreak):
            parts.append("<br/>")
    return "".join(parts)


def to_html(doc: Document) -> str:
    out: list[str] = []
    for block in doc.blocks:
        if isinstance(block, Paragraph):
            out.append(f"<p>{_inline_html(block.children)}</p>")
        elif isinstance(block, BulletList):
            items = "".join(f"<li>{_inline_html(item)}</li>" for item in block.items)
            out.append(f"<ul>{items}</ul>")
        elif isinstance(block, Table):
            head = "".join(f"<th>{_inline_html(h)}</th>" for h in block.headers)
            body = "".join(
                "<tr>" + "".join(f"<td>{_inline_html(c)}</td>" for c in row) + "</tr>"
                for row in block.rows
            )
            out.append(f"<table><thead><tr>{head}</tr></thead><tbody>{body}</tbody></table>")
    return "".join(out)


def _inline_text(nodes: tuple[Inline, ...]) -> str:
    parts: list[str] = []
    for node in nodes:
        if isinstance(node, Text):
            parts.append(html.unescape(node.value))
        elif isinstance(node, (Strong, Emphasis)):
            parts.append(_inline_text(node.children))
        elif isinstance(node, LineBreak):
            parts.append("\n")
    return "".join(parts)


def to_plain_text(doc: Document) -> str:
    """Terminal rendering: formatting dropped, entities restored."""
    out: list[str] = []
    for block in doc.blocks:
        if isinstance(block, Paragraph):
            out.append(_inline_text(block.children))
        elif isinstance(block, BulletList):
            out.append("\n".join(f"  • {_inline_text(item)}" for item in block.items))
        elif isinstance(block, Table):
            header = " | ".join(_inline_text(h) for h in block.headers)
            lines = [header, "-" * len(header)]
            lines.extend(" | ".join(_inline_text(c) for c in row) for row in block.rows)
            out.append("\n".join(lines))
    return "\n\n".join(out)
