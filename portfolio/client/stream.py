"""Wire decoding for streamed responses.

Bytes arrive in arbitrary chunks. ``LineDecoder`` turns them into complete
text lines, keeping split multi-byte characters and partial lines until the
rest arrives. ``parse_fragment`` turns one ``data:`` line into a
``StreamFragment``.
"""

from __future__ import annotations

import codecs

from pydantic import ValidationError

from portfolio.client.errors import MalformedFragmentError
from portfolio.schemas import StreamFragment

DATA_PREFIX = "data:"


class LineDecoder:
    """Incremental bytes → lines decoder.

    Blank lines (the SSE event separators) are dropped.
    """

    def __init__(self, encoding: str = "utf-8") -> None:
        self._decoder = codecs.getincrementaldecoder(encoding)(errors="replace")
        self._buffer = ""

    def feed(self, data: bytes) -> list[str]:
        """Decode a chunk and return the lines it completed."""
        self._buffer += self._decoder.decode(data)
        *lines, self._buffer = self._buffer.split("\n")
        return _non_blank(lines)

    def flush(self) -> list[str]:
        """Return whatever is left once the stream has closed."""
        self._buffer += self._decoder.decode(b"", final=True)
        rest, self._buffer = self._buffer, ""
        return _non_blank([rest])


def _non_blank(lines: list[str]) -> list[str]:
    return [line.rstrip("\r") for line in lines if line.strip()]


def parse_fragment(line: str) -> StreamFragment | None:
    """Parse one stream line.

    Returns None for lines that carry no payload (no ``data:`` marker).
    Raises MalformedFragmentError when the payload is not a JSON object with
    a string ``content`` field.
    """
    if not line.startswith(DATA_PREFIX):
        return None

    payload = line[len(DATA_PREFIX):].strip()
    try:
        return StreamFragment.model_validate_json(payload)
    except ValidationError as e:
        raise MalformedFragmentError(line) from e
