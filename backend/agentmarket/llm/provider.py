"""
LLM provider protocol definition.

WHAT: Abstract interface for reasoning backends
WHY: The orchestrator only needs a configured check and a one-shot generate call
HOW: Protocol with is_configured, ping and generate
"""

from typing import Protocol
from .types import ChatMessage, LLMResult, ProviderStatus


class LLMProvider(Protocol):
    """Protocol defining the interface all LLM providers must implement."""

    def is_configured(self) -> bool:
        """True when the backend may be called; False selects the demo generator."""
        ...

    async def ping(self) -> ProviderStatus:
        """Check provider health and availability."""
        ...

    async def generate(
        self,
        messages: list[ChatMessage],
        *,
        temperature: float,
        max_tokens: int,
        stop: list[str] | None = None,
        model: str | None = None
    ) -> LLMResult:
        """Generate a complete response (non-streaming)."""
        ...
