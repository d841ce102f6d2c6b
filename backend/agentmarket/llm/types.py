"""
LLM provider types, dataclasses, and exceptions.

WHAT: Standard type definitions for reasoning-backend interactions
WHY: Ensure consistent contracts across all providers and the agent layer
HOW: TypedDict for messages, dataclasses for results/status, exception hierarchy for errors
"""

from typing import TypedDict, Literal
from dataclasses import dataclass


# Message format compatible with OpenAI-style APIs
ChatMessage = TypedDict(
    "ChatMessage",
    {"role": Literal["system", "user", "assistant"], "content": str}
)


@dataclass
class LLMResult:
    """Complete LLM generation result."""
    text: str
    usage: dict
    model: str


@dataclass
class ProviderStatus:
    """Health status of an LLM provider."""
    available: bool
    base_url: str
    models: list[str] | None = None
    error: str | None = None


# Provider exceptions
class LLMProviderError(Exception):
    """Base class for reasoning-backend failures."""
    pass


class ProviderTimeoutError(LLMProviderError):
    """Request to provider timed out."""
    pass


class ProviderUnavailableError(LLMProviderError):
    """Provider is not reachable or down."""
    pass


class ProviderDisabledError(LLMProviderError):
    """Provider is disabled in configuration."""
    pass


class ProviderResponseError(LLMProviderError):
    """Provider returned an invalid or error response."""
    pass
