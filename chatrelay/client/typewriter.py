"""
Typewriter renderer — reveals a growing buffer at a fixed per-frame rate.

The network reader and the reveal tick never talk to each other directly.
The reader appends to a StreamState and eventually closes it; the tick reads
that state fresh on every frame. Reveal is clamped to what has actually
arrived, so a slow download shows as a slow reveal, never a jump ahead.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Callable, Protocol

from chatrelay.conversation import Message

logger = logging.getLogger(__name__)

DEFAULT_CHARS_PER_FRAME = 3
DEFAULT_FRAME_INTERVAL = 1 / 60


class TickHandle(Protocol):
    def stop(self) -> None: ...


# schedule(interval_seconds, callback) -> handle; textual's set_interval fits as-is
Scheduler = Callable[[float, Callable[[], None]], TickHandle]


@dataclass
class StreamState:
    """Per-response buffer shared by the network reader and the tick."""
    received_buffer: str = ""
    revealed_length: int = 0
    upstream_closed: bool = False

    def append(self, delta: str) -> None:
        self.received_buffer += delta

    def close(self) -> None:
        self.upstream_closed = True

    @property
    def caught_up(self) -> bool:
        return self.revealed_length >= len(self.received_buffer)

    @property
    def final(self) -> bool:
        return self.upstream_closed and self.revealed_length == len(self.received_buffer)


class _IntervalHandle:
    def __init__(self, task: asyncio.Task):
        self._task = task

    def stop(self) -> None:
        self._task.cancel()


def asyncio_interval(interval: float, callback: Callable[[], None]) -> _IntervalHandle:
    """Call callback every interval seconds on the running loop until stopped."""
    async def _run():
        while True:
            await asyncio.sleep(interval)
            callback()

    return _IntervalHandle(asyncio.get_running_loop().create_task(_run()))


class Typewriter:
    """Drives one assistant message from StreamState to its final content."""

    def __init__(
        self,
        message: Message,
        state: StreamState,
        schedule: Scheduler = asyncio_interval,
        chars_per_frame: int = DEFAULT_CHARS_PER_FRAME,
        frame_interval: float = DEFAULT_FRAME_INTERVAL,
        on_frame: Callable[[Message], None] | None = None,
        on_finalize: Callable[[Message], None] | None = None,
    ):
        self.message = message
        self.state = state
        self.schedule = schedule
        self.chars_per_frame = max(1, int(chars_per_frame))
        self.frame_interval = frame_interval
        self.on_frame = on_frame
        self.on_finalize = on_finalize
        self._handle: TickHandle | None = None
        self._done = False

    @property
    def running(self) -> bool:
        return self._handle is not None and not self._done

    @property
    def finalized(self) -> bool:
        return self._done

    def start(self) -> None:
        if self._handle is not None or self._done:
            return
        self.message.is_animating = True
        self._handle = self.schedule(self.frame_interval, self.tick)

    def tick(self) -> None:
        """Advance one frame. No-op once finalized."""
        if self._done:
            return
        state = self.state
        target = len(state.received_buffer)
        state.revealed_length = min(state.revealed_length + self.chars_per_frame, target)
        if state.final:
            self._finalize()
            return
        self.message.content = state.received_buffer[:state.revealed_length]
        if self.on_frame:
            try:
                self.on_frame(self.message)
            except Exception:
                logger.exception("Frame callback failed, stopping reveal")
                self.abort()

    def abort(self) -> None:
        """Force a stopped, non-animating terminal state (network or frame hook failure)."""
        if self._done:
            return
        self._done = True
        self._stop()
        self.state.close()
        self.message.is_animating = False

    def _finalize(self) -> None:
        self._done = True
        self._stop()
        # Snap to the full buffer in case deltas landed after the last frame
        self.message.content = self.state.received_buffer
        self.message.is_animating = False
        if self.on_finalize:
            self.on_finalize(self.message)

    def _stop(self) -> None:
        if self._handle is not None:
            self._handle.stop()
