"""Markdown parsing and terminal rendering for streamed text."""

from portfolio.render.display import DisplayConfig, get_display, init_display, shutdown_display
from portfolio.render.markdown import BulletList, Heading, Paragraph, Span, parse_markdown

__all__ = [
    "BulletList",
    "DisplayConfig",
    "Heading",
    "Paragraph",
    "Span",
    "get_display",
    "init_display",
    "parse_markdown",
    "shutdown_display",
]
