"""
Stream reassembler — turns raw event-stream bytes into text deltas.

Network chunks arrive split at arbitrary byte offsets: mid-line and even
mid-character. Two carry-overs handle that:
  1. an incremental UTF-8 decoder holds back an incomplete trailing code point
  2. a line buffer holds back the trailing fragment after the last newline
Only complete lines are parsed.

A stream that ends without a final newline loses that last fragment. This is
deliberate permissive behaviour; close() logs what was dropped.
"""

from __future__ import annotations

import codecs
import json
import logging
from typing import AsyncIterable, AsyncIterator, Iterable, Iterator

from chatrelay.extractors import DELTA_EXTRACTORS, extract

logger = logging.getLogger(__name__)

DATA_PREFIX = "data: "
DONE_SENTINEL = "[DONE]"


def parse_line(line: str) -> str | None:
    """Return the text delta carried by one complete line, or None."""
    line = line.strip()
    if not line or not line.startswith(DATA_PREFIX):
        return None
    payload = line[len(DATA_PREFIX):]
    if payload == DONE_SENTINEL:
        return None
    try:
        doc = json.loads(payload)
    except json.JSONDecodeError:
        # Not JSON, treat as raw text
        return payload
    return extract(doc, DELTA_EXTRACTORS)


class StreamReassembler:
    """Incremental decoder for one response stream."""

    def __init__(self):
        self._decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")
        self._carry = ""

    @property
    def pending(self) -> str:
        """Text received after the last newline, not yet parsed."""
        return self._carry

    def feed(self, chunk: bytes) -> list[str]:
        """Consume one network chunk; return the deltas it completed."""
        text = self._carry + self._decoder.decode(chunk)
        lines = text.split("\n")
        self._carry = lines.pop()
        deltas = []
        for line in lines:
            delta = parse_line(line)
            if delta:
                deltas.append(delta)
        return deltas

    def close(self) -> list[str]:
        """End of stream. Anything still carried over is discarded."""
        leftover = self._carry + self._decoder.decode(b"", final=True)
        self._carry = ""
        if leftover.strip():
            logger.debug("Dropping unterminated stream fragment (%d chars)", len(leftover))
        return []


def iter_deltas(chunks: Iterable[bytes]) -> Iterator[str]:
    reassembler = StreamReassembler()
    for chunk in chunks:
        yield from reassembler.feed(chunk)
    yield from reassembler.close()


async def aiter_deltas(chunks: AsyncIterable[bytes]) -> AsyncIterator[str]:
    """Lazy delta sequence over an async byte stream (e.g. httpx aiter_bytes)."""
    reassembler = StreamReassembler()
    async for chunk in chunks:
        for delta in reassembler.feed(chunk):
            yield delta
    for delta in reassembler.close():
        yield delta
