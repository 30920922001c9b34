"""
Extractor strategies for the response shapes we accept.

Each extractor takes a decoded JSON document and returns the text it finds,
or None. extract() tries a list of them in order and stops at the first hit,
so supporting a new upstream shape means adding one entry to a list.
"""

from __future__ import annotations

from typing import Any, Callable, Sequence

Extractor = Callable[[Any], "str | None"]


def field_path(*keys: str | int) -> Extractor:
    """Build an extractor that walks dict keys / list indices to a non-empty string."""
    def extract(doc: Any) -> str | None:
        node = doc
        for key in keys:
            if isinstance(key, int):
                if not isinstance(node, list) or len(node) <= key:
                    return None
            elif not isinstance(node, dict) or key not in node:
                return None
            node = node[key]
        if isinstance(node, str) and node:
            return node
        return None

    extract.__name__ = "field_path(" + ".".join(str(k) for k in keys) + ")"
    return extract


# Complete (non-streamed) assistant replies
COMPLETION_EXTRACTORS: tuple[Extractor, ...] = (
    field_path("result", "choices", 0, "message", "content"),  # Inworld
    field_path("choices", 0, "message", "content"),            # OpenAI
    field_path("response"),                                     # relay envelope
)

# Incremental deltas inside "data:" frames
DELTA_EXTRACTORS: tuple[Extractor, ...] = (
    field_path("choices", 0, "delta", "content"),
    field_path("result", "choices", 0, "delta", "content"),
    field_path("response"),
)

# Client side also accepts a bare "message" field
CLIENT_REPLY_EXTRACTORS: tuple[Extractor, ...] = COMPLETION_EXTRACTORS + (
    field_path("message"),
)


def extract(doc: Any, extractors: Sequence[Extractor]) -> str | None:
    """Return the first match from extractors, or None."""
    for extractor in extractors:
        found = extractor(doc)
        if found is not None:
            return found
    return None
