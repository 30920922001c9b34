"""
Relay: the core of chatrelay.
Takes a client conversation, translates it for the configured upstream,
and hands back either a complete reply or the upstream's event stream.

Every request is independent. The only shared objects are the config and
the model catalog, both read-only.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from typing import AsyncIterator

import httpx

from chatrelay.backends import BaseUpstream, UpstreamReply, make_upstream
from chatrelay.catalog import ModelDescriptor, resolve_model
from chatrelay.config import get_config
from chatrelay.conversation import ROLES
from chatrelay.errors import (
    InvalidRequest,
    RelayError,
    StreamTransportError,
    Unconfigured,
    UpstreamAuthError,
    UpstreamError,
    UpstreamThrottled,
)
from chatrelay.extractors import COMPLETION_EXTRACTORS, extract

logger = logging.getLogger(__name__)

SYSTEM_PROMPT_TEMPLATE = """You are {owner}'s AI assistant on {site}. You're helpful, friendly, and concise.

About {owner}:
- Software engineer and builder
- Interested in AI, web development, and creative technology
- This website showcases their work and projects

Formatting:
- Use markdown for formatting your responses
- Use **bold** for emphasis and key terms
- Use *italics* for subtle emphasis
- Format links as [text](url) - always include full URLs
- Use `inline code` for technical terms, commands, or code snippets
- Use code blocks with language specification for multi-line code
- Use bullet points and numbered lists when appropriate
- Keep responses brief and conversational

If asked about something you don't know about {owner} specifically, be honest and helpful anyway."""


def build_system_prompt(persona: dict | None = None) -> str:
    persona = persona or {}
    return SYSTEM_PROMPT_TEMPLATE.format(
        owner=persona.get("owner", "the site owner"),
        site=persona.get("site", "this site"),
    )


@dataclass
class RelayResult:
    """A complete reply, or a live byte stream of provider-native SSE frames."""
    model: str
    response: str = ""
    stream: AsyncIterator[bytes] | None = None

    @property
    def is_stream(self) -> bool:
        return self.stream is not None

    def to_dict(self) -> dict:
        return {"response": self.response, "model": self.model}


def sse_frame(payload) -> bytes:
    data = payload if isinstance(payload, str) else json.dumps(payload)
    return f"data: {data}\n\n".encode()


class ChatRelay:
    """Stateless translator between clients and one upstream LLM API."""

    def __init__(self, cfg: dict | None = None, upstream: BaseUpstream | None = None):
        self.cfg = cfg if cfg is not None else get_config()
        self.upstream = upstream or make_upstream(self.cfg.get("upstream", {}))
        self.generation = dict(self.cfg.get("generation", {}))
        self.default_model = self.cfg.get("models", {}).get("default")
        self.system_prompt = build_system_prompt(self.cfg.get("persona"))

    @property
    def has_api_key(self) -> bool:
        return self.upstream.configured

    @staticmethod
    def validate(body) -> list[dict]:
        """Return the messages list or raise InvalidRequest."""
        if not isinstance(body, dict):
            raise InvalidRequest("request body must be a JSON object")
        messages = body.get("messages")
        if not isinstance(messages, list):
            raise InvalidRequest("messages array required")
        for m in messages:
            if not isinstance(m, dict):
                raise InvalidRequest("each message must be an object")
        return messages

    def resolve(self, body: dict) -> ModelDescriptor:
        return resolve_model(body.get("model"), self.default_model)

    def build_messages(self, messages: list[dict]) -> list[dict]:
        """System prompt first, then the client's turns in order."""
        out = [{"role": "system", "content": self.system_prompt}]
        for m in messages:
            content = m.get("content", "")
            role = m.get("role")
            out.append({
                # Unknown or non-string roles are treated as user turns
                "role": role if isinstance(role, str) and role in ROLES else "user",
                "content": content if isinstance(content, str) else json.dumps(content),
            })
        return out

    async def relay(self, body) -> RelayResult:
        """
        Run one chat request through the upstream.
        Raises a RelayError subclass for every failure.
        """
        messages = self.validate(body)
        model = self.resolve(body)

        if not self.upstream.configured:
            raise Unconfigured(f"{self.upstream.name} API key not configured")

        payload = self.upstream.build_payload(self.build_messages(messages), model, self.generation)

        try:
            reply = await self.upstream.send(payload)
        except httpx.HTTPError as e:
            logger.warning("Upstream '%s' unreachable: %s", self.upstream.name, e)
            raise UpstreamError(f"upstream unreachable: {e}") from e

        if not reply.ok:
            raise self._classify(reply)

        if reply.is_stream:
            logger.info("Streaming %s from '%s'", model.id, self.upstream.name)
            return RelayResult(model=model.model, stream=self._guard_stream(reply.stream))

        content = extract(reply.data, COMPLETION_EXTRACTORS)
        if not content:
            logger.error("Unexpected response format from '%s': %s",
                         self.upstream.name, json.dumps(reply.data)[:500])
            raise UpstreamError("no content in upstream reply", detail="No response from AI")

        logger.info("Upstream '%s' answered %s in %.0fms (%d chars)",
                    self.upstream.name, model.id, reply.latency_ms, len(content))
        return RelayResult(model=model.model, response=content)

    def _classify(self, reply: UpstreamReply) -> RelayError:
        """Map an upstream failure status onto the error taxonomy."""
        logger.error("Upstream '%s' error %d: %s", self.upstream.name,
                     reply.status_code, reply.message or reply.data)
        if reply.status_code in (401, 403):
            return UpstreamAuthError(f"upstream rejected credentials ({reply.status_code})")
        if reply.status_code == 429:
            return UpstreamThrottled("upstream rate limited")
        return UpstreamError(
            f"upstream HTTP {reply.status_code}",
            detail=reply.message or None,
        )

    @staticmethod
    async def _guard_stream(stream: AsyncIterator[bytes]) -> AsyncIterator[bytes]:
        """
        Pass upstream bytes through untouched. A transport or decoding failure
        mid-stream becomes one synthesized frame plus [DONE] instead of a torn
        connection.
        """
        try:
            async for chunk in stream:
                yield chunk
        except httpx.HTTPError as e:
            err = StreamTransportError(str(e))
            logger.warning("Upstream stream interrupted: %s", e)
            # Leading newline closes any half-written line the client is holding
            yield b"\n" + sse_frame({"error": err.code, "response": err.response})
            yield sse_frame("[DONE]")
