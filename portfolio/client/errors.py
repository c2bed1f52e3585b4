"""Errors raised while requesting and consuming a streamed pitch.

All of them are local to one generation cycle; none are fatal to the
session, and the user can always resubmit.
"""

from __future__ import annotations

UNKNOWN_ERROR = "An unknown error occurred."
NETWORK_ERROR = "Could not reach the pitch generator. Please check your connection and try again."
EMPTY_BODY_ERROR = "The pitch generator returned an empty response."


class PitchError(Exception):
    """Base class for pitch client errors."""


class ProblemValidationError(PitchError):
    """The submitted problem is empty or whitespace only. Never sent."""


class TransportError(PitchError):
    """Network failure or non-success status.

    ``str(err)`` is the text shown to the user.
    """

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class EmptyBodyError(TransportError):
    """A success status whose body yielded no bytes."""

    def __init__(self, status_code: int | None = None) -> None:
        super().__init__(EMPTY_BODY_ERROR, status_code=status_code)


class MalformedFragmentError(PitchError):
    """One ``data:`` line could not be parsed. Logged and skipped."""

    def __init__(self, line: str) -> None:
        super().__init__(f"Malformed stream fragment: {line[:200]!r}")
        self.line = line
