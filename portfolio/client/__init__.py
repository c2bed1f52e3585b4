"""Streaming client for the pitch generator."""

from portfolio.client.cancel import CancelToken
from portfolio.client.client import PitchClient
from portfolio.client.errors import (
    EmptyBodyError,
    MalformedFragmentError,
    PitchError,
    ProblemValidationError,
    TransportError,
)
from portfolio.client.session import GenerationState, PitchSession

__all__ = [
    "CancelToken",
    "EmptyBodyError",
    "GenerationState",
    "MalformedFragmentError",
    "PitchClient",
    "PitchError",
    "PitchSession",
    "ProblemValidationError",
    "TransportError",
]
