"""Pitch session — owns the accumulated text for one user.

One generation cycle moves Idle → Requesting → Streaming → Completed or
Failed. A cancelled cycle returns to Idle. At most one cycle is in flight;
what happens to a second submission is decided by the single-flight policy:

    reject   the submission is refused while a cycle is in flight
    restart  the in-flight cycle is cancelled and the new one starts

Each cycle gets its own CancelToken and only the current cycle may write
into ``pitch``, so two responses can never interleave.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from contextlib import aclosing
from enum import Enum
from typing import Literal

from portfolio.client.cancel import CancelToken
from portfolio.client.client import PitchClient
from portfolio.client.errors import UNKNOWN_ERROR, TransportError

logger = logging.getLogger(__name__)


class GenerationState(str, Enum):
    IDLE = "idle"
    REQUESTING = "requesting"
    STREAMING = "streaming"
    COMPLETED = "completed"
    FAILED = "failed"


IN_FLIGHT = (GenerationState.REQUESTING, GenerationState.STREAMING)


class PitchSession:
    def __init__(
        self,
        client: PitchClient,
        on_update: Callable[[PitchSession], None] | None = None,
        single_flight: Literal["reject", "restart"] = "reject",
    ) -> None:
        self._client = client
        self._on_update = on_update
        self._single_flight = single_flight
        self._token: CancelToken | None = None

        self.state = GenerationState.IDLE
        self.pitch = ""
        self.error: str | None = None

    @property
    def in_flight(self) -> bool:
        return self.state in IN_FLIGHT

    @property
    def can_submit(self) -> bool:
        """False while a request is in flight (the submit control is disabled)."""
        return not self.in_flight

    async def submit(self, problem: str) -> bool:
        """Run one generation cycle to completion.

        Returns True when the pitch completed. Blank input is inert: nothing
        is sent and the session is left untouched.
        """
        if not problem.strip():
            return False

        if self.in_flight:
            if self._single_flight == "reject":
                logger.info("Submission rejected: a pitch is already being generated")
                return False
            logger.info("Restarting: cancelling the in-flight pitch")
            self._cancel_current()

        token = CancelToken()
        self._token = token
        self.pitch = ""
        self.error = None
        self._set_state(GenerationState.REQUESTING)

        try:
            async with aclosing(self._client.stream_pitch(problem, cancel=token)) as fragments:
                async for content in fragments:
                    if token.cancelled:
                        break
                    if self.state is GenerationState.REQUESTING:
                        self.state = GenerationState.STREAMING
                    self.pitch += content
                    self._notify()
        except TransportError as e:
            if self._token is token:
                self.error = str(e)
                self._finish(GenerationState.FAILED)
            return False
        except asyncio.CancelledError:
            # The task running this cycle was cancelled from outside.
            token.cancel()
            if self._token is token:
                self._finish(GenerationState.IDLE)
            raise
        except Exception:
            if self._token is token:
                self.error = UNKNOWN_ERROR
                self._finish(GenerationState.FAILED)
            raise

        if token.cancelled:
            # Superseded runs leave state alone; the new run owns it.
            if self._token is token:
                self._finish(GenerationState.IDLE)
            return False

        self._finish(GenerationState.COMPLETED)
        return True

    def close(self) -> None:
        """Teardown: stop any in-flight stream."""
        if self.in_flight:
            logger.info("Session closed with a pitch in flight; cancelling")
        self._cancel_current()
        if self.in_flight:
            self._set_state(GenerationState.IDLE)

    def dismiss_error(self) -> None:
        if self.state is GenerationState.FAILED:
            self.error = None
            self._set_state(GenerationState.IDLE)

    def _cancel_current(self) -> None:
        if self._token is not None:
            self._token.cancel()
            self._token = None

    def _finish(self, state: GenerationState) -> None:
        self._token = None
        self._set_state(state)

    def _set_state(self, state: GenerationState) -> None:
        logger.debug(f"Pitch session: {self.state.value} -> {state.value}")
        self.state = state
        self._notify()

    def _notify(self) -> None:
        if self._on_update is not None:
            self._on_update(self)
