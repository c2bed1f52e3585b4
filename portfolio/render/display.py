"""Display configuration and its process-wide provider.

Rendering functions take a ``DisplayConfig`` argument explicitly. The
provider owns the current value: it is created at startup, replaced when the
user toggles the theme, and torn down on shutdown.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from pathlib import Path
from typing import TYPE_CHECKING, Literal

import yaml

if TYPE_CHECKING:
    from portfolio.config import DisplaySettings

logger = logging.getLogger(__name__)

Theme = Literal["dark", "light"]


@dataclass(frozen=True)
class Palette:
    """rich style strings for each kind of block."""

    title: str
    section: str
    subsection: str
    text: str
    bullet: str
    bold: str
    error: str


PALETTES: dict[str, Palette] = {
    "dark": Palette(
        title="bold cyan",
        section="bold bright_white",
        subsection="bold bright_cyan",
        text="white",
        bullet="cyan",
        bold="bold bright_white",
        error="bold red",
    ),
    "light": Palette(
        title="bold blue",
        section="bold black",
        subsection="bold dark_cyan",
        text="black",
        bullet="blue",
        bold="bold black",
        error="bold red3",
    ),
}


@dataclass(frozen=True)
class DisplayConfig:
    theme: Theme = "dark"
    width: int | None = None

    @property
    def palette(self) -> Palette:
        return PALETTES[self.theme]


class DisplayProvider:
    """Owns the current DisplayConfig and, optionally, its persisted theme."""

    def __init__(self, initial: DisplayConfig, state_path: str | None = None) -> None:
        self._current = initial
        self._state_path = Path(state_path) if state_path else None
        self._dirty = False

    @property
    def current(self) -> DisplayConfig:
        return self._current

    def start(self) -> DisplayConfig:
        """Apply a previously saved theme, if any."""
        saved = self._read_state()
        if saved in PALETTES:
            self._current = replace(self._current, theme=saved)
        return self._current

    def toggle_theme(self) -> DisplayConfig:
        theme: Theme = "light" if self._current.theme == "dark" else "dark"
        self._current = replace(self._current, theme=theme)
        self._dirty = True
        logger.info(f"Display theme set to {theme}")
        return self._current

    def shutdown(self) -> None:
        """Persist the theme if it was toggled during this run."""
        if self._dirty:
            self._write_state()
            self._dirty = False

    def _read_state(self) -> str | None:
        if self._state_path is None or not self._state_path.exists():
            return None
        try:
            data = yaml.safe_load(self._state_path.read_text()) or {}
        except yaml.YAMLError as e:
            logger.warning(f"Ignoring unreadable display state {self._state_path}: {e}")
            return None
        return data.get("theme") if isinstance(data, dict) else None

    def _write_state(self) -> None:
        if self._state_path is None:
            return
        self._state_path.parent.mkdir(parents=True, exist_ok=True)
        self._state_path.write_text(yaml.safe_dump({"theme": self._current.theme}))


# ---------------------------------------------------------------------------
# Process-wide provider
# ---------------------------------------------------------------------------

_provider: DisplayProvider | None = None


def init_display(settings: DisplaySettings, width: int | None = None) -> DisplayProvider:
    """Create the provider at startup."""
    global _provider
    _provider = DisplayProvider(
        DisplayConfig(theme=settings.theme, width=width),
        state_path=settings.state_path,
    )
    _provider.start()
    return _provider


def get_display() -> DisplayProvider:
    """Return the provider. Raises if not yet initialised."""
    if _provider is None:
        raise RuntimeError("Display not initialised — call init_display() first")
    return _provider


def shutdown_display() -> None:
    global _provider
    if _provider is not None:
        _provider.shutdown()
        _provider = None
