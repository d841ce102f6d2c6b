"""
Chat-completion request with retries.

WHAT: One POST to an OpenAI-compatible /chat/completions endpoint
WHY: Both providers share the same wire format and failure mapping
HOW: Exponential backoff on timeouts, refused connections and 5xx; 4xx fails fast
"""

import asyncio
import json

import httpx

from .types import (
    LLMResult,
    ProviderTimeoutError,
    ProviderUnavailableError,
    ProviderResponseError,
)
from ..utils.logger import get_logger

logger = get_logger(__name__)


async def post_chat_completion(
    client: httpx.AsyncClient,
    url: str,
    payload: dict,
    *,
    label: str,
    max_retries: int,
    retry_delay: float,
) -> LLMResult:
    """
    POST a chat-completion payload and return the first choice.

    Raises:
        ProviderTimeoutError: every attempt timed out
        ProviderUnavailableError: backend refused every connection
        ProviderResponseError: 4xx, exhausted 5xx, or malformed body
    """
    attempts = max(1, max_retries)

    for attempt in range(attempts):
        try:
            response = await client.post(url, json=payload)
            response.raise_for_status()
            data = response.json()

            text = data["choices"][0]["message"]["content"] or ""
            usage = data.get("usage") or {}
            response_model = data.get("model", payload.get("model", ""))

            logger.info(
                f"{label} generate success (model: {response_model}, "
                f"tokens: {usage.get('total_tokens', 'unknown')})"
            )
            return LLMResult(text=text, usage=usage, model=response_model)

        except httpx.TimeoutException as e:
            logger.warning(f"{label} timeout (attempt {attempt + 1}/{attempts})")
            if attempt == attempts - 1:
                raise ProviderTimeoutError(f"Request timed out after {attempts} attempts") from e

        except httpx.ConnectError as e:
            logger.error(f"{label} connection refused (attempt {attempt + 1}/{attempts})")
            if attempt == attempts - 1:
                raise ProviderUnavailableError(f"{label} is not reachable") from e

        except httpx.HTTPStatusError as e:
            status = e.response.status_code
            if status < 500:
                # Client errors don't retry
                raise ProviderResponseError(f"HTTP {status}: {e.response.text}") from e
            logger.error(f"{label} server error {status} (attempt {attempt + 1}/{attempts})")
            if attempt == attempts - 1:
                raise ProviderResponseError(f"Server error: {status}") from e

        except (KeyError, IndexError, TypeError, json.JSONDecodeError) as e:
            logger.error(f"Invalid response from {label}: {e}")
            raise ProviderResponseError(f"Invalid response format: {e}") from e

        await asyncio.sleep(retry_delay * (2 ** attempt))

    raise ProviderResponseError(f"{label} returned no result")
