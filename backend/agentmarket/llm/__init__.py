"""LLM provider layer."""

from .types import (
    ChatMessage,
    LLMResult,
    ProviderStatus,
    LLMProviderError,
    ProviderTimeoutError,
    ProviderUnavailableError,
    ProviderDisabledError,
    ProviderResponseError,
)
from .provider import LLMProvider
from .provider_factory import get_provider, reset_provider, set_provider

__all__ = [
    "ChatMessage",
    "LLMResult",
    "ProviderStatus",
    "LLMProviderError",
    "ProviderTimeoutError",
    "ProviderUnavailableError",
    "ProviderDisabledError",
    "ProviderResponseError",
    "LLMProvider",
    "get_provider",
    "reset_provider",
    "set_provider",
]
