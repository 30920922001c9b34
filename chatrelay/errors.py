"""
Relay error taxonomy.

Every failure the relay can report maps to one of these. Each carries a
machine code, an HTTP status and a human-readable fallback so the client
always has something to show, even on failure.
"""

from __future__ import annotations


class RelayError(Exception):
    code = "relay_error"
    status_code = 500
    default_response = "Something went wrong. Please try again."

    def __init__(self, message: str = "", response: str | None = None, detail=None):
        super().__init__(message or self.code)
        self.response = response or self.default_response
        self.detail = detail

    def envelope(self) -> dict:
        body = {"error": self.code, "response": self.response}
        if self.detail:
            body["detail"] = self.detail
        return body


class InvalidRequest(RelayError):
    """Malformed client payload. Not retried."""
    code = "invalid_request"
    status_code = 400
    default_response = "Invalid request: messages array required."


class Unconfigured(RelayError):
    """Upstream credential missing. Operator-fixable."""
    code = "unconfigured"
    status_code = 500
    default_response = "The AI is not configured yet. Please set up the INWORLD_API_KEY secret."


class UpstreamAuthError(RelayError):
    code = "upstream_auth"
    status_code = 500
    default_response = "The AI service rejected our credentials. Please try again later."


class UpstreamThrottled(RelayError):
    """Upstream rate limit. The caller may retry after a backoff; we never do."""
    code = "rate_limited"
    status_code = 429
    default_response = "Too many requests. Please try again in a moment."


class UpstreamError(RelayError):
    code = "upstream_error"
    status_code = 500
    default_response = "Something went wrong with the AI. Please try again."


class StreamTransportError(RelayError):
    """Network interruption mid-stream. Reported in-band, never as a status."""
    code = "stream_interrupted"
    status_code = 502
    default_response = "The connection to the AI was interrupted. Please try again."


class UnhandledError(RelayError):
    """Anything the relay did not anticipate. Logged with a traceback."""
    code = "unhandled"
    status_code = 500
