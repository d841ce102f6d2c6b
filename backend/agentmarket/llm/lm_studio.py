"""
LM Studio provider implementation.

WHAT: Local reasoning backend via LM Studio's OpenAI-compatible server
WHY: Local-first inference without external API dependencies
HOW: HTTPX client with retries; disabled unless LM_STUDIO_ENABLED is set
"""

import httpx

from .retry import post_chat_completion
from .types import ChatMessage, LLMResult, ProviderStatus
from ..core.config import settings
from ..utils.logger import get_logger

logger = get_logger(__name__)


class LMStudioProvider:
    """LM Studio LLM provider with retry logic."""

    def __init__(self, timeout: float | None = None, max_retries: int | None = None,
                 retry_delay: float | None = None):
        self.enabled = settings.LM_STUDIO_ENABLED
        self.base_url = settings.LM_STUDIO_BASE_URL.rstrip("/")
        self.default_model = settings.LM_STUDIO_DEFAULT_MODEL
        self.timeout = timeout if timeout is not None else settings.LM_STUDIO_TIMEOUT
        self.max_retries = max_retries if max_retries is not None else settings.LLM_MAX_RETRIES
        self.retry_delay = retry_delay if retry_delay is not None else settings.LLM_RETRY_DELAY

        # Create async client with connection pooling
        self.client = httpx.AsyncClient(
            timeout=httpx.Timeout(5.0, read=self.timeout),
            limits=httpx.Limits(
                max_keepalive_connections=10,
                max_connections=20
            ),
        )

    def is_configured(self) -> bool:
        return self.enabled

    def _disable_thinking(self, messages: list[ChatMessage]) -> list[ChatMessage]:
        """
        Append the /no_think directive for Qwen3-style local models.

        Goes on the system message when there is one, otherwise on the first
        user message. The input list is not mutated.
        """
        modified = [dict(m) for m in messages]
        for role, joiner in (("system", "\n\n"), ("user", " ")):
            for msg in modified:
                if msg.get("role") == role:
                    if "/no_think" not in msg.get("content", ""):
                        msg["content"] = f"{msg.get('content', '')}{joiner}/no_think"
                    return modified
        return modified

    async def ping(self) -> ProviderStatus:
        """
        Check LM Studio availability.

        Returns:
            ProviderStatus with availability and model list
        """
        try:
            response = await self.client.get(f"{self.base_url}/models", timeout=5.0)
            response.raise_for_status()
            data = response.json()

            models = [m.get("id") for m in data.get("data", [])]

            return ProviderStatus(
                available=True,
                base_url=self.base_url,
                models=models if models else None
            )
        except httpx.TimeoutException:
            logger.warning("LM Studio ping timed out")
            return ProviderStatus(available=False, base_url=self.base_url, error="Connection timeout")
        except httpx.ConnectError:
            logger.warning("LM Studio not reachable")
            return ProviderStatus(
                available=False,
                base_url=self.base_url,
                error="Connection refused - is LM Studio running?"
            )
        except (httpx.HTTPError, ValueError) as e:
            logger.error(f"LM Studio ping failed: {e}")
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
            ProviderTimeoutError: Request timed out
            ProviderUnavailableError: LM Studio not reachable
            ProviderResponseError: Invalid response from LM Studio
        """
        model_to_use = model or self.default_model
        logger.debug(f"Using model: {model_to_use}")

        payload = {
            "model": model_to_use,
            "messages": self._disable_thinking(messages),
            "temperature": temperature,
            "max_tokens": max_tokens,
            "stream": False,
            # Qwen3-specific parameter to disable thinking mode
            "enable_thinking": False,
        }
        if stop:
            payload["stop"] = stop

        return await post_chat_completion(
            self.client,
            f"{self.base_url}/chat/completions",
            payload,
            label="LM Studio",
            max_retries=self.max_retries,
            retry_delay=self.retry_delay,
        )

    async def close(self):
        """Close the HTTP client."""
        await self.client.aclose()
