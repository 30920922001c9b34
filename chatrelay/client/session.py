"""
Chat session — the client half of the relay.

Owns the visible message list, enforces one request at a time, reads the
relay's reply (event-stream or JSON) into a StreamState and lets a Typewriter
reveal it. Failures never escape send(): they become an assistant message.
"""

from __future__ import annotations

import asyncio
import json
import logging
from typing import Callable

import httpx

from chatrelay.catalog import DEFAULT_MODEL_ID
from chatrelay.client.reassembler import aiter_deltas
from chatrelay.client.typewriter import (
    DEFAULT_CHARS_PER_FRAME,
    DEFAULT_FRAME_INTERVAL,
    Scheduler,
    StreamState,
    Typewriter,
    asyncio_interval,
)
from chatrelay.config import get_config
from chatrelay.conversation import MAX_INPUT_LENGTH, MAX_TURNS, Message, clamp_input, trim_conversation
from chatrelay.extractors import CLIENT_REPLY_EXTRACTORS, extract

logger = logging.getLogger(__name__)

EVENT_STREAM = "text/event-stream"


class RelayHTTPError(Exception):
    """Non-2xx reply from the relay."""

    def __init__(self, status_code: int, response: str = ""):
        super().__init__(f"HTTP error! status: {status_code}")
        self.status_code = status_code
        self.response = response


def _envelope_text(resp: httpx.Response) -> str:
    try:
        data = resp.json()
    except ValueError:
        return ""
    if isinstance(data, dict) and isinstance(data.get("response"), str):
        return data["response"]
    return ""


def reply_text(resp: httpx.Response) -> str:
    """Assistant text from a non-streamed relay reply."""
    try:
        data = resp.json()
    except ValueError:
        return resp.text
    if isinstance(data, str):
        return data
    return extract(data, CLIENT_REPLY_EXTRACTORS) or json.dumps(data)


class ChatSession:
    """One conversation against one relay."""

    def __init__(
        self,
        relay_url: str,
        model_id: str | None = None,
        max_turns: int = MAX_TURNS,
        max_input_length: int = MAX_INPUT_LENGTH,
        timeout: float = 60,
        schedule: Scheduler = asyncio_interval,
        chars_per_frame: int = DEFAULT_CHARS_PER_FRAME,
        frame_interval: float = DEFAULT_FRAME_INTERVAL,
        transport: httpx.AsyncBaseTransport | None = None,
        on_update: Callable[[], None] | None = None,
    ):
        self.relay_url = relay_url
        self.model_id = model_id
        self.max_turns = max_turns
        self.max_input_length = max_input_length
        self.timeout = timeout
        self.schedule = schedule
        self.chars_per_frame = chars_per_frame
        self.frame_interval = frame_interval
        self.transport = transport
        self.on_update = on_update
        self.messages: list[Message] = []
        self.pending = False
        self._typewriter: Typewriter | None = None

    @classmethod
    def from_config(cls, cfg: dict | None = None, **kwargs) -> "ChatSession":
        client_cfg = (cfg if cfg is not None else get_config()).get("client", {})
        opts = {
            "relay_url": client_cfg.get("relay_url", "http://localhost:8787"),
            "max_turns": client_cfg.get("max_turns", MAX_TURNS),
            "max_input_length": client_cfg.get("max_input_length", MAX_INPUT_LENGTH),
            "timeout": client_cfg.get("timeout", 60),
            "chars_per_frame": client_cfg.get("chars_per_frame", DEFAULT_CHARS_PER_FRAME),
            "frame_interval": client_cfg.get("frame_interval", DEFAULT_FRAME_INTERVAL),
        }
        opts.update(kwargs)
        return cls(**opts)

    @property
    def animating(self) -> bool:
        return self._typewriter is not None and self._typewriter.running

    @property
    def busy(self) -> bool:
        """True while a request is pending or a reveal is still running."""
        return self.pending or self.animating

    def _client(self, timeout: float | None = None) -> httpx.AsyncClient:
        return httpx.AsyncClient(timeout=timeout or self.timeout, transport=self.transport)

    def _notify(self) -> None:
        if self.on_update:
            self.on_update()

    async def send(self, text: str) -> bool:
        """
        Send one user message. Returns False if refused (blank or busy).
        Returns once the network side is done; the reveal may still be running.
        """
        text = clamp_input(text, self.max_input_length)
        if not text or self.busy:
            return False

        self.messages = trim_conversation(self.messages + [Message("user", text)], self.max_turns)
        body = {"messages": [m.to_payload() for m in self.messages]}
        if self.model_id:
            body["model"] = self.model_id

        self.pending = True
        self._notify()
        try:
            await self._exchange(body)
        except asyncio.CancelledError:
            self._abort_reply()
            raise
        except Exception as e:
            logger.warning("Chat error: %s", e)
            self._fail(e)
        finally:
            self.pending = False
            self._notify()
        return True

    async def _exchange(self, body: dict) -> None:
        async with self._client() as client:
            async with client.stream("POST", self.relay_url, json=body) as resp:
                if resp.status_code >= 400:
                    await resp.aread()
                    raise RelayHTTPError(resp.status_code, _envelope_text(resp))

                if EVENT_STREAM in resp.headers.get("content-type", ""):
                    state = self._begin_reply()
                    async for delta in aiter_deltas(resp.aiter_bytes()):
                        state.append(delta)
                    state.close()
                else:
                    await resp.aread()
                    state = self._begin_reply()
                    state.append(reply_text(resp))
                    state.close()

    def _begin_reply(self) -> StreamState:
        message = Message("assistant", "", is_animating=True)
        state = StreamState()
        self._typewriter = Typewriter(
            message,
            state,
            schedule=self.schedule,
            chars_per_frame=self.chars_per_frame,
            frame_interval=self.frame_interval,
            on_frame=lambda _m: self._notify(),
            on_finalize=lambda _m: self._notify(),
        )
        self.messages.append(message)
        self._typewriter.start()
        return state

    def _abort_reply(self) -> None:
        """Stop the in-flight reveal and drop its half-built message."""
        tw = self._typewriter
        if tw is None or tw.finalized:
            return
        tw.abort()
        if tw.message in self.messages:
            self.messages.remove(tw.message)

    def _fail(self, error: Exception) -> None:
        self._abort_reply()
        if isinstance(error, RelayHTTPError) and error.response:
            content = f"Connection error: {error}. {error.response}"
        else:
            content = (
                f"Connection error: {error}. "
                "The relay may need to be configured to handle chat requests."
            )
        self.messages.append(Message("assistant", content))

    async def wait_idle(self, poll: float = 0.05) -> None:
        """Block until no request is pending and the reveal has finished."""
        while self.busy:
            await asyncio.sleep(poll)

    async def fetch_models(self) -> dict:
        """
        Model catalog from the relay, for the selector.
        Falls back to the hard-coded default when the relay can't be reached.
        """
        url = httpx.URL(self.relay_url).join("/models")
        try:
            async with self._client(timeout=10) as client:
                resp = await client.get(url)
                resp.raise_for_status()
                data = resp.json()
            return {
                "models": list(data.get("models", [])),
                "default": data.get("default") or DEFAULT_MODEL_ID,
            }
        except (httpx.HTTPError, ValueError, AttributeError) as e:
            logger.warning("Failed to fetch models from %s: %s", url, e)
            return {"models": [], "default": DEFAULT_MODEL_ID}

    async def health(self) -> dict:
        url = httpx.URL(self.relay_url).join("/health")
        async with self._client(timeout=5) as client:
            resp = await client.get(url)
            resp.raise_for_status()
            return resp.json()
