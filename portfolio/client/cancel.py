"""Cancellation token checked by the stream read loop between chunks."""

from __future__ import annotations

import asyncio


class CancelToken:
    """One-shot cancellation flag for a single generation run."""

    def __init__(self) -> None:
        self._event = asyncio.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()
