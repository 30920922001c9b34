"""
Model catalog — the static table of providers and models the relay offers.

Model ids handed to clients are composite "<provider>:<model>" keys.
The upstream provider token (SERVICE_PROVIDER_*) never leaves the relay.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum

logger = logging.getLogger(__name__)

SEPARATOR = ":"


class Provider(str, Enum):
    ANTHROPIC = "anthropic"
    OPENAI = "openai"
    GOOGLE = "google"
    FIREWORKS = "fireworks"
    GROQ = "groq"
    MISTRAL = "mistral"


# Provider → upstream service token
PROVIDER_TOKENS: dict[Provider, str] = {
    Provider.ANTHROPIC: "SERVICE_PROVIDER_ANTHROPIC",
    Provider.OPENAI: "SERVICE_PROVIDER_OPENAI",
    Provider.GOOGLE: "SERVICE_PROVIDER_GOOGLE",
    Provider.FIREWORKS: "SERVICE_PROVIDER_FIREWORKS",
    Provider.GROQ: "SERVICE_PROVIDER_GROQ",
    Provider.MISTRAL: "SERVICE_PROVIDER_MISTRAL",
}

# Provider → [(model id, display name)], in selector order
_TABLE: dict[Provider, list[tuple[str, str]]] = {
    Provider.ANTHROPIC: [
        ("claude-opus-4-1", "Claude Opus 4.1"),
        ("claude-sonnet-4-0", "Claude Sonnet 4.0"),
        ("claude-3-5-haiku-latest", "Claude 3.5 Haiku"),
    ],
    Provider.OPENAI: [
        ("gpt-4.1", "GPT-4.1"),
        ("gpt-4.1-mini", "GPT-4.1 Mini"),
        ("gpt-4.1-nano", "GPT-4.1 Nano"),
    ],
    Provider.GOOGLE: [
        ("gemini-2.5-flash", "Gemini 2.5 Flash"),
        ("gemini-2.5-flash-lite", "Gemini 2.5 Flash Lite"),
    ],
    Provider.FIREWORKS: [
        ("accounts/fireworks/models/deepseek-v3-0324", "DeepSeek V3"),
        ("accounts/fireworks/models/llama4-maverick-instruct-basic", "Llama 4 Maverick"),
    ],
    Provider.GROQ: [
        ("llama-3.1-8b-instant", "Llama 3.1 8B Instant"),
        ("gemma2-9b-it", "Gemma 2 9B"),
    ],
    Provider.MISTRAL: [
        ("mistral-small-latest", "Mistral Small"),
        ("ministral-8b-latest", "Ministral 8B"),
    ],
}

DEFAULT_MODEL_ID = "openai:gpt-4.1-nano"


@dataclass(frozen=True)
class ModelDescriptor:
    """One selectable model."""
    id: str
    name: str
    provider: Provider

    @property
    def model(self) -> str:
        """The bare upstream model id (everything after the first separator)."""
        return self.id.split(SEPARATOR, 1)[1]

    @property
    def provider_token(self) -> str:
        return PROVIDER_TOKENS[self.provider]

    def to_dict(self) -> dict:
        return {"id": self.id, "name": self.name, "provider": self.provider.value}


MODELS: tuple[ModelDescriptor, ...] = tuple(
    ModelDescriptor(id=f"{provider.value}{SEPARATOR}{model_id}", name=name, provider=provider)
    for provider, entries in _TABLE.items()
    for model_id, name in entries
)

_BY_ID: dict[str, ModelDescriptor] = {m.id: m for m in MODELS}


def get_model(model_id: str) -> ModelDescriptor | None:
    return _BY_ID.get(model_id)


def default_model(configured: str | None = None) -> ModelDescriptor:
    """
    Return the default descriptor.
    A configured default is honoured only if it names a catalog entry.
    """
    if configured:
        found = _BY_ID.get(configured)
        if found:
            return found
        logger.warning("Configured default model '%s' not in catalog, using %s",
                       configured, DEFAULT_MODEL_ID)
    return _BY_ID[DEFAULT_MODEL_ID]


def list_models(configured_default: str | None = None) -> tuple[list[ModelDescriptor], str]:
    """Return (models in selector order, default id)."""
    return list(MODELS), default_model(configured_default).id


def resolve_model(selector: str | None, configured_default: str | None = None) -> ModelDescriptor:
    """
    Resolve a client model selector to a catalog entry.

    Splits on the first separator only, since model ids may contain colons.
    Unknown providers or models fall back to the default without raising.
    """
    fallback = default_model(configured_default)
    if not selector or not isinstance(selector, str):
        return fallback

    provider_key, _, model_id = selector.partition(SEPARATOR)
    try:
        provider = Provider(provider_key)
    except ValueError:
        logger.debug("Unknown provider '%s' in '%s', using %s", provider_key, selector, fallback.id)
        return fallback

    found = _BY_ID.get(f"{provider.value}{SEPARATOR}{model_id}")
    if found is None:
        logger.debug("Unknown model '%s' for %s, using %s", model_id, provider.value, fallback.id)
        return fallback
    return found
