"""
Shared fixtures: an in-memory config, fake byte streams, a manual tick clock.
"""

import httpx
import pytest

from chatrelay import config as cfg_mod


@pytest.fixture
def test_cfg():
    return {
        "server": {"host": "127.0.0.1", "port": 8787},
        "upstream": {
            "provider": "inworld",
            "url": "https://upstream.test/completeChat",
            "api_key": "test-key",
            "timeout": 5,
            "stream": False,
        },
        "generation": {"max_tokens": 1024, "temperature": 0.7},
        "models": {"default": "openai:gpt-4.1-nano"},
        "persona": {"owner": "Ada", "site": "ada.example"},
        "client": {"relay_url": "http://relay.test/", "max_turns": 20, "max_input_length": 200},
        "logging": {"level": "WARNING"},
    }


@pytest.fixture
def use_config(test_cfg):
    """Install test_cfg as the cached config for the duration of a test."""
    orig = cfg_mod._config
    cfg_mod._config = test_cfg
    try:
        yield test_cfg
    finally:
        cfg_mod._config = orig


class ChunkStream(httpx.AsyncByteStream):
    """Response body delivered in the given chunks, optionally failing at the end."""

    def __init__(self, chunks, error: Exception | None = None):
        self.chunks = list(chunks)
        self.error = error

    async def __aiter__(self):
        for chunk in self.chunks:
            yield chunk
        if self.error is not None:
            raise self.error


def sse_response(chunks, error=None, status=200) -> httpx.Response:
    return httpx.Response(
        status,
        headers={"content-type": "text/event-stream"},
        stream=ChunkStream(chunks, error),
    )


class ManualTimer:
    def __init__(self, interval, callback):
        self.interval = interval
        self.callback = callback
        self.active = True

    def stop(self):
        self.active = False


class ManualClock:
    """Scheduler stand-in: frames only advance when the test says so."""

    def __init__(self):
        self.timers: list[ManualTimer] = []

    def __call__(self, interval, callback):
        timer = ManualTimer(interval, callback)
        self.timers.append(timer)
        return timer

    @property
    def active(self) -> bool:
        return any(t.active for t in self.timers)

    def tick(self, frames: int = 1):
        for _ in range(frames):
            for timer in list(self.timers):
                if timer.active:
                    timer.callback()

    def run(self, max_frames: int = 10_000) -> int:
        frames = 0
        while self.active and frames < max_frames:
            self.tick()
            frames += 1
        return frames


@pytest.fixture
def clock():
    return ManualClock()


@pytest.fixture
def sse():
    """Factory for event-stream responses: sse([b"data: ...\\n\\n"], error=...)."""
    return sse_response
