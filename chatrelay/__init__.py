"""chatrelay — relay chat messages to an LLM API and stream the reply back."""

__version__ = "1.0.0"
