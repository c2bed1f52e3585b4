"""Terminal rendering with rich.

``to_renderable`` draws parsed blocks; ``LivePitchView`` keeps a live region
in sync with a PitchSession by re-parsing its text on every update.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from rich.console import Console, Group, RenderableType
from rich.live import Live
from rich.panel import Panel
from rich.rule import Rule
from rich.spinner import Spinner
from rich.text import Text

from portfolio.render.markdown import BulletList, Heading, Paragraph, Span, parse_markdown

if TYPE_CHECKING:
    from portfolio.client.session import PitchSession
    from portfolio.render.display import DisplayConfig, Palette
    from portfolio.render.markdown import Block


def render_spans(spans: tuple[Span, ...], palette: Palette, style: str | None = None) -> Text:
    text = Text(style=style or palette.text)
    for span in spans:
        text.append(span.text, style=palette.bold if span.bold else None)
    return text


def _render_block(block: Block, palette: Palette) -> RenderableType:
    if isinstance(block, Heading):
        if block.level == 1:
            return Group(render_spans(block.spans, palette, palette.title), Rule(style=palette.bullet))
        style = palette.section if block.level == 2 else palette.subsection
        return render_spans(block.spans, palette, style)
    if isinstance(block, BulletList):
        lines = []
        for item in block.items:
            line = Text("  • ", style=palette.bullet)
            line.append_text(render_spans(item, palette))
            lines.append(line)
        return Group(*lines)
    if isinstance(block, Paragraph):
        return render_spans(block.spans, palette)
    raise TypeError(f"Unknown block type: {type(block).__name__}")


def to_renderable(blocks: list[Block], display: DisplayConfig) -> RenderableType:
    """Blocks in order, separated by blank lines."""
    palette = display.palette
    parts: list[RenderableType] = []
    for block in blocks:
        if parts:
            parts.append(Text(""))
        parts.append(_render_block(block, palette))
    return Group(*parts)


def error_panel(message: str, display: DisplayConfig) -> Panel:
    palette = display.palette
    return Panel(
        Text(message, style=palette.text),
        title="An Error Occurred",
        border_style=palette.error,
    )


class LivePitchView:
    """Live terminal region that follows a PitchSession."""

    def __init__(self, console: Console, display: DisplayConfig) -> None:
        self._console = console
        self._display = display
        self._live: Live | None = None

    def start(self) -> None:
        self._live = Live(
            Spinner("dots", text="Generating pitch..."),
            console=self._console,
            refresh_per_second=10,
        )
        self._live.start()

    def update(self, session: PitchSession) -> None:
        if self._live is None:
            return
        if session.error:
            self._live.update(error_panel(session.error, self._display))
        elif session.pitch:
            self._live.update(to_renderable(parse_markdown(session.pitch), self._display))

    def finish(self) -> None:
        if self._live is not None:
            self._live.stop()
            self._live = None
