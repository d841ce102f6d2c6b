"""
Unit tests for exception -> HTTP mapping.

WHAT: Test status codes and error bodies per exception class
WHY: Clients branch on status and error code
HOW: Call the handlers directly and decode the JSONResponse
"""

import json

import pytest

from agentmarket.llm.types import (
    LLMProviderError,
    ProviderDisabledError,
    ProviderResponseError,
    ProviderTimeoutError,
    ProviderUnavailableError,
)
from agentmarket.middleware.error_handler import api_exception_handler, provider_error_handler
from agentmarket.utils.exceptions import (
    AwaitingHumanInputError,
    EscrowAlreadyExistsError,
    EscrowNotFoundError,
    InvalidStateError,
    NegotiationNotFoundError,
    ResourceNotFoundError,
    StepConflictError,
    ValidationError,
)


def _decode(response):
    return response.status_code, json.loads(response.body)


@pytest.mark.unit
class TestApiExceptionHandler:
    """Test domain exception mapping."""

    @pytest.mark.asyncio
    @pytest.mark.parametrize("exc,status,code", [
        (NegotiationNotFoundError("n1"), 404, "NEGOTIATION_NOT_FOUND"),
        (ResourceNotFoundError("buy_agent", "b1"), 404, "BUY_AGENT_NOT_FOUND"),
        (EscrowNotFoundError("n1"), 404, "ESCROW_NOT_FOUND"),
        (StepConflictError("n1"), 409, "ALREADY_PROCESSING"),
        (EscrowAlreadyExistsError("n1"), 409, "ESCROW_ALREADY_EXISTS"),
        (InvalidStateError("nope", current_state="agreed"), 400, "INVALID_STATE"),
        (AwaitingHumanInputError("n1"), 400, "AWAITING_HUMAN_INPUT"),
        (ValidationError("bad"), 400, "VALIDATION_ERROR"),
    ])
    async def test_status_and_code(self, exc, status, code):
        status_code, body = _decode(await api_exception_handler(None, exc))

        assert status_code == status
        assert body["error"] == code
        assert body["message"] == exc.message
        assert "timestamp" in body

    @pytest.mark.asyncio
    async def test_details_passed_through(self):
        _, body = _decode(await api_exception_handler(None, InvalidStateError("x", current_state="agreed", ball="seller")))
        assert body["details"] == {"current_state": "agreed", "ball": "seller"}


@pytest.mark.unit
class TestProviderErrorHandler:
    """Test reasoning-backend failure mapping."""

    @pytest.mark.asyncio
    @pytest.mark.parametrize("exc,status,code", [
        (ProviderDisabledError("off"), 400, "LLM_PROVIDER_DISABLED"),
        (ProviderTimeoutError("slow"), 503, "LLM_TIMEOUT"),
        (ProviderUnavailableError("down"), 503, "LLM_UNAVAILABLE"),
        (ProviderResponseError("garbage"), 502, "LLM_BAD_GATEWAY"),
        (LLMProviderError("other"), 502, "LLM_ERROR"),
    ])
    async def test_status_and_code(self, exc, status, code):
        status_code, body = _decode(await provider_error_handler(None, exc))

        assert status_code == status
        assert body["error"] == code
        assert body["message"] == str(exc)
