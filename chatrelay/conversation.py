"""
Conversation model shared by the relay and the client.
"""

from __future__ import annotations

from dataclasses import dataclass

ROLES = ("user", "assistant", "system")

MAX_TURNS = 20  # one turn = one user + one assistant message
MAX_INPUT_LENGTH = 200


@dataclass
class Message:
    role: str
    content: str
    is_animating: bool = False

    def to_payload(self) -> dict:
        """Wire form sent to the relay (animation state stays client-side)."""
        return {"role": self.role, "content": self.content}


def trim_conversation(messages: list, max_turns: int = MAX_TURNS) -> list:
    """
    Keep at most max_turns user/assistant pairs.
    Whole pairs are dropped from the head, so the 41st message evicts the
    oldest pair and the survivors keep their order.
    """
    limit = max_turns * 2
    excess = len(messages) - limit
    if excess <= 0:
        return list(messages)
    drop = excess + (excess % 2)
    return list(messages[drop:])


def clamp_input(text: str, limit: int = MAX_INPUT_LENGTH) -> str:
    return text.strip()[:limit]
