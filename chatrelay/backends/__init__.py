"""
Upstream adapters for chatrelay.
"""
from __future__ import annotations

import logging

from chatrelay.backends.base import BaseUpstream, UpstreamReply
from chatrelay.backends.inworld import InworldUpstream
from chatrelay.backends.openai_compat import OpenAICompatibleUpstream

logger = logging.getLogger(__name__)

# Provider name → upstream class
PROVIDERS: dict[str, type[BaseUpstream]] = {
    "inworld": InworldUpstream,
    "openai_compat": OpenAICompatibleUpstream,
}


def make_upstream(cfg: dict, transport=None) -> BaseUpstream:
    """Instantiate the upstream described by the `upstream` config block."""
    provider = cfg.get("provider", "inworld")
    cls = PROVIDERS.get(provider)
    if cls is None:
        logger.warning("Unknown upstream provider '%s', using inworld", provider)
        cls = InworldUpstream
    return cls(
        url=cfg.get("url", ""),
        api_key=cfg.get("api_key", ""),
        timeout=cfg.get("timeout", 60),
        stream=bool(cfg.get("stream", False)),
        transport=transport,
    )


__all__ = [
    "BaseUpstream",
    "UpstreamReply",
    "InworldUpstream",
    "OpenAICompatibleUpstream",
    "PROVIDERS",
    "make_upstream",
]
