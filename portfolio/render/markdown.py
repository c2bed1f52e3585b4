"""Line-oriented Markdown parser for streamed pitches.

Re-run on the whole accumulated text after every fragment, so it is a pure
function of its input: no state survives between calls and equal input
gives equal output. Only the subset the pitch prompt asks for is
recognised: three heading levels, bullet lists, paragraphs and **bold**.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Union

BOLD_RE = re.compile(r"\*\*(.*?)\*\*")

HEADING_MARKERS = (("# ", 1), ("## ", 2), ("### ", 3))
LIST_MARKERS = ("- ", "* ")


@dataclass(frozen=True)
class Span:
    text: str
    bold: bool = False


@dataclass(frozen=True)
class Heading:
    """Level 1 is the title, 2 a section, 3 a subsection."""

    key: int
    level: int
    spans: tuple[Span, ...]


@dataclass(frozen=True)
class Paragraph:
    key: int
    spans: tuple[Span, ...]


@dataclass(frozen=True)
class BulletList:
    key: int
    items: tuple[tuple[Span, ...], ...]


Block = Union[Heading, Paragraph, BulletList]


def parse_inline(text: str) -> tuple[Span, ...]:
    """Split text into plain and bold spans.

    An opening ``**`` with no closing pair stays in the plain text.
    """
    spans: list[Span] = []
    pos = 0
    for match in BOLD_RE.finditer(text):
        if match.start() > pos:
            spans.append(Span(text[pos:match.start()]))
        if match.group(1):
            spans.append(Span(match.group(1), bold=True))
        pos = match.end()
    if pos < len(text):
        spans.append(Span(text[pos:]))
    return tuple(spans)


def _heading_level(line: str) -> tuple[int, str] | None:
    for marker, level in HEADING_MARKERS:
        if line.startswith(marker):
            return level, line[len(marker):].strip()
    return None


def _list_item(line: str) -> str | None:
    for marker in LIST_MARKERS:
        if line.startswith(marker):
            return line[len(marker):].strip()
    return None


def parse_markdown(text: str) -> list[Block]:
    """Parse text into blocks, one pass over its non-blank lines."""
    blocks: list[Block] = []
    pending: list[tuple[Span, ...]] = []

    def flush_list() -> None:
        if pending:
            blocks.append(BulletList(key=len(blocks), items=tuple(pending)))
            pending.clear()

    for raw in text.split("\n"):
        line = raw.strip()
        if not line:
            continue

        item = _list_item(line)
        if item is not None:
            pending.append(parse_inline(item))
            continue

        flush_list()
        heading = _heading_level(line)
        if heading is not None:
            level, title = heading
            blocks.append(Heading(key=len(blocks), level=level, spans=parse_inline(title)))
        else:
            blocks.append(Paragraph(key=len(blocks), spans=parse_inline(line)))

    flush_list()
    return blocks


def plain_text(spans: tuple[Span, ...]) -> str:
    return "".join(span.text for span in spans)
