"""
Tests for the typewriter renderer and its StreamState.
"""

import asyncio
import random

import pytest

from chatrelay.client.typewriter import StreamState, Typewriter, asyncio_interval
from chatrelay.conversation import Message


def make(clock, chars=3, **kwargs):
    msg = Message("assistant", "", is_animating=True)
    state = StreamState()
    tw = Typewriter(msg, state, schedule=clock, chars_per_frame=chars, **kwargs)
    return msg, state, tw


def test_stream_state_final():
    s = StreamState()
    assert not s.final
    s.append("ab")
    s.close()
    assert not s.final
    s.revealed_length = 2
    assert s.final


def test_reveal_is_rate_limited(clock):
    msg, state, tw = make(clock, chars=3)
    tw.start()
    state.append("abcdefgh")
    clock.tick()
    assert msg.content == "abc"
    clock.tick()
    assert msg.content == "abcdef"
    assert msg.is_animating


def test_reveal_waits_for_data(clock):
    msg, state, tw = make(clock, chars=5)
    tw.start()
    state.append("ab")
    clock.tick(3)
    assert state.revealed_length == 2
    assert msg.content == "ab"
    assert tw.running  # still open upstream, keeps ticking
    state.append("cdefg")
    clock.tick()
    assert msg.content == "abcdefg"


def test_finalizes_only_when_closed_and_caught_up(clock):
    finalized = []
    msg, state, tw = make(clock, chars=4, on_finalize=finalized.append)
    tw.start()
    state.append("abcdef")
    state.close()
    clock.tick()
    assert not tw.finalized
    clock.tick()
    assert tw.finalized
    assert finalized == [msg]
    assert msg.content == "abcdef"
    assert not msg.is_animating
    assert not clock.active


def test_finalization_is_idempotent(clock):
    msg, state, tw = make(clock, chars=100)
    tw.start()
    state.append("done")
    state.close()
    clock.tick()
    assert tw.finalized
    state.append(" late")  # nothing after final may change the message
    tw.tick()
    tw.tick()
    assert msg.content == "done"
    assert not msg.is_animating


def test_reveal_never_exceeds_buffer(clock):
    """Random bursts of data interleaved with frames."""
    rng = random.Random(1234)
    msg, state, tw = make(clock, chars=4)
    tw.start()
    for _ in range(500):
        if rng.random() < 0.3:
            state.append("x" * rng.randint(0, 12))
        clock.tick()
        assert state.revealed_length <= len(state.received_buffer)
        assert len(msg.content) <= len(state.received_buffer)
    state.close()
    clock.run()
    assert msg.content == state.received_buffer


def test_empty_closed_stream_finalizes_on_first_tick(clock):
    msg, state, tw = make(clock)
    tw.start()
    state.close()
    clock.tick()
    assert tw.finalized
    assert msg.content == ""


def test_abort_stops_animation(clock):
    msg, state, tw = make(clock)
    tw.start()
    state.append("partial")
    clock.tick()
    tw.abort()
    assert not msg.is_animating
    assert not tw.running
    assert not clock.active
    assert state.upstream_closed
    clock.tick()
    assert msg.content == "par"


def test_on_frame_called(clock):
    frames = []
    msg, state, tw = make(clock, chars=1, on_frame=lambda m: frames.append(m.content))
    tw.start()
    state.append("ab")
    clock.tick(2)
    assert frames == ["a", "ab"]


def test_start_twice_schedules_once(clock):
    _, _, tw = make(clock)
    tw.start()
    tw.start()
    assert len(clock.timers) == 1


@pytest.mark.asyncio
async def test_asyncio_interval_drives_reveal():
    msg = Message("assistant", "")
    state = StreamState()
    done = asyncio.Event()
    tw = Typewriter(msg, state, schedule=asyncio_interval, chars_per_frame=2,
                    frame_interval=0.001, on_finalize=lambda m: done.set())
    tw.start()
    state.append("hello world")
    state.close()
    await asyncio.wait_for(done.wait(), timeout=2)
    assert msg.content == "hello world"


def test_failing_frame_hook_stops_reveal(clock):
    def explode(_msg):
        raise RuntimeError("widget gone")

    msg, state, tw = make(clock, chars=1, on_frame=explode)
    tw.start()
    state.append("abc")
    clock.tick()
    assert not tw.running
    assert not msg.is_animating
    assert not clock.active
    assert msg.content == "a"
