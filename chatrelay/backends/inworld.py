"""
Inworld LLM upstream — one endpoint fronting many model providers.
The provider is chosen per request through servingId.modelId.serviceProvider.
"""

from __future__ import annotations

import logging
import secrets

from chatrelay.backends.base import BaseUpstream
from chatrelay.catalog import ModelDescriptor

logger = logging.getLogger(__name__)

DEFAULT_URL = "https://api.inworld.ai/llm/v1alpha/completions:completeChat"

ROLE_MAP = {
    "system": "MESSAGE_ROLE_SYSTEM",
    "user": "MESSAGE_ROLE_USER",
    "assistant": "MESSAGE_ROLE_ASSISTANT",
}


def _user_id() -> str:
    """Throwaway per-request user id; nothing is tied to it."""
    return "web-user-" + secrets.token_hex(3)


class InworldUpstream(BaseUpstream):
    """Inworld completeChat API with Basic auth."""

    def __init__(self, name: str = "inworld", url: str = DEFAULT_URL, **kwargs):
        super().__init__(name=name, url=url or DEFAULT_URL, **kwargs)

    def _headers(self) -> dict:
        headers = {"Content-Type": "application/json"}
        if self.api_key:
            headers["Authorization"] = f"Basic {self.api_key}"
        return headers

    def build_payload(self, messages: list[dict], model: ModelDescriptor, generation: dict) -> dict:
        payload = {
            "servingId": {
                "modelId": {
                    "model": model.model,
                    "serviceProvider": model.provider_token,
                },
                "userId": _user_id(),
            },
            "messages": [
                {
                    "role": ROLE_MAP.get(m.get("role"), ROLE_MAP["user"]),
                    "content": m.get("content", ""),
                }
                for m in messages
            ],
            "textGenerationConfig": {
                "maxTokens": generation.get("max_tokens", 1024),
                "temperature": generation.get("temperature", 0.7),
            },
        }
        if self.stream:
            payload["textGenerationConfig"]["stream"] = True
        return payload
