"""HTTP client for the pitch and assistant streaming endpoints."""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator

import httpx

from portfolio.client.cancel import CancelToken
from portfolio.client.errors import (
    NETWORK_ERROR,
    UNKNOWN_ERROR,
    EmptyBodyError,
    MalformedFragmentError,
    ProblemValidationError,
    TransportError,
)
from portfolio.client.stream import LineDecoder, parse_fragment
from portfolio.schemas import ChatTurn

logger = logging.getLogger(__name__)

PITCH_PATH = "/api/generate-pitch"
ASSISTANT_PATH = "/api/ask-assistant"


def _error_message(response: httpx.Response) -> str:
    """Server-provided message from an error body, else the generic fallback."""
    try:
        body = response.json()
    except ValueError:
        return UNKNOWN_ERROR
    if isinstance(body, dict):
        for key in ("message", "error", "detail"):
            value = body.get(key)
            if isinstance(value, str) and value:
                return value
    return UNKNOWN_ERROR


class PitchClient:
    """Sends requests and exposes each streamed response as text fragments.

    Usage::

        async with PitchClient("http://localhost:5000") as client:
            async for text in client.stream_pitch("Our churn is rising"):
                ...
    """

    def __init__(
        self,
        base_url: str,
        timeout: float = 60.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._http = httpx.AsyncClient(base_url=base_url, timeout=timeout, transport=transport)

    async def __aenter__(self) -> PitchClient:
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._http.aclose()

    def stream_pitch(
        self, problem: str, cancel: CancelToken | None = None
    ) -> AsyncIterator[str]:
        """Yield pitch text fragments in arrival order.

        Raises ProblemValidationError immediately, before any request is
        made, when ``problem`` is blank.
        """
        if not problem.strip():
            raise ProblemValidationError("A business problem is required")
        return self._stream(PITCH_PATH, {"businessProblem": problem}, cancel)

    def stream_answer(
        self,
        question: str,
        history: list[ChatTurn] | None = None,
        cancel: CancelToken | None = None,
    ) -> AsyncIterator[str]:
        if not question.strip():
            raise ProblemValidationError("A question is required")
        payload = {
            "question": question,
            "history": [turn.model_dump() for turn in history or []],
        }
        return self._stream(ASSISTANT_PATH, payload, cancel)

    async def _stream(
        self, path: str, payload: dict, cancel: CancelToken | None
    ) -> AsyncIterator[str]:
        try:
            async with self._http.stream("POST", path, json=payload) as response:
                if not response.is_success:
                    await response.aread()
                    message = _error_message(response)
                    logger.warning(f"POST {path} failed: status={response.status_code} message={message!r}")
                    raise TransportError(message, status_code=response.status_code)

                decoder = LineDecoder()
                received = False
                async for chunk in response.aiter_bytes():
                    if cancel is not None and cancel.cancelled:
                        logger.info(f"POST {path} cancelled mid-stream")
                        return
                    if chunk:
                        received = True
                    for line in decoder.feed(chunk):
                        text = self._content(line)
                        if text:
                            yield text

                for line in decoder.flush():
                    text = self._content(line)
                    if text:
                        yield text

                if not received:
                    raise EmptyBodyError(status_code=response.status_code)
        except httpx.RequestError as e:
            logger.warning(f"POST {path} network error: {e}")
            raise TransportError(NETWORK_ERROR) from e

    @staticmethod
    def _content(line: str) -> str | None:
        """Text carried by one line; malformed lines are logged and skipped."""
        try:
            fragment = parse_fragment(line)
        except MalformedFragmentError as e:
            logger.warning(str(e))
            return None
        if fragment is None:
            return None
        if fragment.error:
            raise TransportError(fragment.error)
        return fragment.content
