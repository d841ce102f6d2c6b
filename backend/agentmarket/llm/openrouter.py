"""
OpenRouter provider implementation.

WHAT: Hosted reasoning backend via the OpenRouter API
WHY: Cloud-based models when local inference is unavailable
HOW: OpenAI-compatible API with authorization headers and retry logic
"""

import httpx

from .retry import post_chat_completion
from .types import ChatMessage, LLMResult, ProviderStatus, ProviderDisabledError
from ..core.config import settings
from ..utils.logger import get_logger

logger = get_logger(__name__)


class OpenRouterProvider:
    """OpenRouter LLM provider (disabled by default)."""

    def __init__(self):
        """Initialize OpenRouter provider (checks if enabled)."""
        self.enabled = settings.LLM_ENABLE_OPENROUTER
        self.base_url = settings.OPENROUTER_BASE_URL.rstrip("/")
        self.api_key = settings.OPENROUTER_API_KEY
        self.default_model = settings.OPENROUTER_DEFAULT_MODEL
        self.max_retries = settings.LLM_MAX_RETRIES
        self.retry_delay = settings.LLM_RETRY_DELAY
        self.client = None

        if self.enabled:
            if not self.api_key or not self.api_key.strip():
                logger.error("OpenRouter enabled but OPENROUTER_API_KEY is not set or empty!")
                raise ProviderDisabledError(
                    "OpenRouter is enabled but OPENROUTER_API_KEY is not set or empty. "
                    "Set OPENROUTER_API_KEY in your .env file."
                )

            self.client = httpx.AsyncClient(
                timeout=httpx.Timeout(5.0, read=60.0),  # Longer timeout for cloud API
                limits=httpx.Limits(max_keepalive_connections=10, max_connections=20),
                headers={
                    "Authorization": f"Bearer {self.api_key}",
                    "HTTP-Referer": settings.APP_NAME,
                    "X-Title": settings.APP_NAME,
                },
            )
            logger.info(f"OpenRouter provider initialized (enabled, model: {self.default_model})")
        else:
            logger.info("OpenRouter provider initialized (disabled)")

    def is_configured(self) -> bool:
        return self.enabled and self.client is not None

    def _check_enabled(self):
        if not self.is_configured():
            raise ProviderDisabledError(
                "OpenRouter provider is disabled. Set LLM_ENABLE_OPENROUTER=true to enable."
            )

    async def ping(self) -> ProviderStatus:
        """
        Check OpenRouter availability by fetching the models list.

        A disabled provider reports unavailable instead of raising.
        """
        if not self.is_configured():
            return ProviderStatus(available=False, base_url=self.base_url, error="Provider disabled")

        try:
            response = await self.client.get(f"{self.base_url}/models", timeout=10.0)
            response.raise_for_status()
            data = response.json()

            models = [model.get("id") for model in data.get("data", [])]
            logger.info(f"OpenRouter ping success ({len(models)} models available)")

            return ProviderStatus(
                available=True,
                base_url=self.base_url,
                models=models[:10] if models else None,
            )
        except httpx.TimeoutException:
            logger.warning("OpenRouter ping timeout")
            return ProviderStatus(available=False, base_url=self.base_url, error="Request timed out")
        except httpx.ConnectError:
            logger.warning("OpenRouter not reachable")
            return ProviderStatus(available=False, base_url=self.base_url, error="Connection refused")
        except (httpx.HTTPError, ValueError) as e:
            logger.error(f"OpenRouter ping failed: {e}")
            return ProviderStatus(available=False, base_url=self.base_url, error=str(e))

    async def generate(
        self,
        messages: list[ChatMessage],
        *,
        temperature: float,
        max_tokens: int,
        stop: list[str] | None = None,
        model: str | None = None
    ) -> LLMResult:
        """
        Generate complete response (non-streaming).

        Raises:
            ProviderDisabledError: Provider not enabled
            ProviderTimeoutError: Request timed out
            ProviderUnavailableError: OpenRouter not reachable
            ProviderResponseError: Invalid response from OpenRouter
        """
        self._check_enabled()

        payload = {
            "model": model or self.default_model,
            "messages": messages,
            "temperature": temperature,
            "max_tokens": max_tokens,
            "stream": False
        }
        if stop:
            payload["stop"] = stop

        return await post_chat_completion(
            self.client,
            f"{self.base_url}/chat/completions",
            payload,
            label="OpenRouter",
            max_retries=self.max_retries,
            retry_delay=self.retry_delay,
        )

    async def close(self):
        """Close the HTTP client."""
        if self.client is not None:
            await self.client.aclose()
