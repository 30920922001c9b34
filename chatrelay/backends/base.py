"""
Base upstream abstraction.
Every upstream translates the abstract conversation into its own schema and
returns an UpstreamReply the relay can classify without knowing the provider.
"""

from __future__ import annotations

import abc
import logging
import time
from dataclasses import dataclass, field
from typing import AsyncIterator

import httpx

from chatrelay.catalog import ModelDescriptor

logger = logging.getLogger(__name__)

EVENT_STREAM = "text/event-stream"


@dataclass
class UpstreamReply:
    """What came back from the upstream, before classification."""
    status_code: int
    content_type: str = ""
    data: dict = field(default_factory=dict)
    stream: AsyncIterator[bytes] | None = None
    latency_ms: float = 0.0

    @property
    def ok(self) -> bool:
        return 200 <= self.status_code < 300

    @property
    def is_stream(self) -> bool:
        return self.stream is not None

    @property
    def message(self) -> str:
        """Best-effort error message from the upstream body."""
        msg = self.data.get("message") or self.data.get("error")
        if isinstance(msg, dict):
            msg = msg.get("message")
        return str(msg) if msg else ""


class BaseUpstream(abc.ABC):
    """
    Abstract base for upstream LLM APIs.
    Subclasses supply headers and payload translation; sending is shared.
    """

    def __init__(
        self,
        name: str,
        url: str,
        api_key: str = "",
        timeout: float = 60,
        stream: bool = False,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.name = name
        self.url = url
        self.api_key = api_key or ""
        self.timeout = timeout
        self.stream = stream
        self.transport = transport

    @property
    def configured(self) -> bool:
        return bool(self.api_key)

    @abc.abstractmethod
    def _headers(self) -> dict:
        """Request headers including auth."""
        ...

    @abc.abstractmethod
    def build_payload(self, messages: list[dict], model: ModelDescriptor, generation: dict) -> dict:
        """
        Translate abstract messages (role: user|assistant|system) into the
        upstream request body.
        """
        ...

    async def send(self, payload: dict) -> UpstreamReply:
        """
        POST the payload. Event-stream replies are returned unread as a byte
        iterator that owns the connection; everything else is read and decoded.
        Transport errors before a response propagate as httpx exceptions.
        """
        client = httpx.AsyncClient(timeout=self.timeout, transport=self.transport)
        t0 = time.monotonic()
        try:
            request = client.build_request("POST", self.url, headers=self._headers(), json=payload)
            resp = await client.send(request, stream=True)
        except httpx.HTTPError:
            await client.aclose()
            raise
        latency = (time.monotonic() - t0) * 1000
        content_type = resp.headers.get("content-type", "")

        if 200 <= resp.status_code < 300 and EVENT_STREAM in content_type:
            logger.debug("Upstream '%s' streaming after %.0fms", self.name, latency)
            return UpstreamReply(
                status_code=resp.status_code,
                content_type=content_type,
                stream=self._iter_body(client, resp),
                latency_ms=latency,
            )

        try:
            await resp.aread()
        finally:
            await resp.aclose()
            await client.aclose()

        try:
            data = resp.json()
        except ValueError:
            data = {"message": resp.text[:200]}
        if not isinstance(data, dict):
            data = {"message": str(data)[:200]}

        return UpstreamReply(
            status_code=resp.status_code,
            content_type=content_type,
            data=data,
            latency_ms=latency,
        )

    @staticmethod
    async def _iter_body(client: httpx.AsyncClient, resp: httpx.Response) -> AsyncIterator[bytes]:
        try:
            async for chunk in resp.aiter_bytes():
                yield chunk
        finally:
            await resp.aclose()
            await client.aclose()

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__} name={self.name!r} url={self.url!r}>"
