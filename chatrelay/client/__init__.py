"""
Client side of chatrelay: stream reassembly, typewriter reveal, chat session.
"""
from chatrelay.client.reassembler import StreamReassembler, aiter_deltas, iter_deltas
from chatrelay.client.session import ChatSession
from chatrelay.client.typewriter import StreamState, Typewriter, asyncio_interval

__all__ = [
    "StreamReassembler",
    "aiter_deltas",
    "iter_deltas",
    "ChatSession",
    "StreamState",
    "Typewriter",
    "asyncio_interval",
]
