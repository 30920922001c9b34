"""
Generic OpenAI-compatible upstream.

Works with anything that implements POST /chat/completions:
OpenAI itself, OpenRouter, vLLM, llama.cpp server, Ollama.
Only the bare model id is sent; the provider half of the selector is ours.
"""

from __future__ import annotations

import logging

from chatrelay.backends.base import BaseUpstream
from chatrelay.catalog import ModelDescriptor

logger = logging.getLogger(__name__)


class OpenAICompatibleUpstream(BaseUpstream):
    """Bearer-auth upstream speaking the OpenAI chat schema."""

    def __init__(self, name: str = "openai_compat", url: str = "", **kwargs):
        url = url.rstrip("/")
        if url and not url.endswith("/chat/completions"):
            url = f"{url}/chat/completions"
        super().__init__(name=name, url=url, **kwargs)

    def _headers(self) -> dict:
        headers = {"Content-Type": "application/json"}
        if self.api_key:
            headers["Authorization"] = f"Bearer {self.api_key}"
        return headers

    def build_payload(self, messages: list[dict], model: ModelDescriptor, generation: dict) -> dict:
        return {
            "model": model.model,
            "messages": [
                {
                    "role": m.get("role") if m.get("role") in ("system", "user", "assistant") else "user",
                    "content": m.get("content", ""),
                }
                for m in messages
            ],
            "max_tokens": generation.get("max_tokens", 1024),
            "temperature": generation.get("temperature", 0.7),
            "stream": self.stream,
        }
