"""
Global error handling middleware.

WHAT: Translate exceptions to appropriate HTTP responses
WHY: Clients must tell not-found, invalid-state, conflict and backend failures apart
HOW: FastAPI exception handlers producing {error, message, details, timestamp}
"""

from datetime import datetime
from typing import Any

from fastapi import Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from ..llm.types import (
    LLMProviderError,
    ProviderTimeoutError,
    ProviderUnavailableError,
    ProviderDisabledError,
    ProviderResponseError,
)
from ..utils.exceptions import (
    APIException,
    NegotiationNotFoundError,
    ResourceNotFoundError,
    EscrowNotFoundError,
    StepConflictError,
    EscrowAlreadyExistsError,
    SellAgentAlreadyExistsError,
)
from ..utils.logger import get_logger

logger = get_logger(__name__)

NOT_FOUND_ERRORS = (NegotiationNotFoundError, ResourceNotFoundError, EscrowNotFoundError)
CONFLICT_ERRORS = (StepConflictError, EscrowAlreadyExistsError, SellAgentAlreadyExistsError)

# (exception, status, error code, hint) per provider failure
PROVIDER_ERRORS = (
    (ProviderDisabledError, status.HTTP_400_BAD_REQUEST, "LLM_PROVIDER_DISABLED",
     "Check LLM provider configuration"),
    (ProviderTimeoutError, status.HTTP_503_SERVICE_UNAVAILABLE, "LLM_TIMEOUT",
     "LLM provider request timed out"),
    (ProviderUnavailableError, status.HTTP_503_SERVICE_UNAVAILABLE, "LLM_UNAVAILABLE",
     "LLM provider is not reachable"),
    (ProviderResponseError, status.HTTP_502_BAD_GATEWAY, "LLM_BAD_GATEWAY",
     "LLM provider returned an invalid response"),
)


def error_body(error: str, message: str, details: Any = None) -> dict:
    return {
        "error": error,
        "message": message,
        "details": details,
        "timestamp": datetime.now().isoformat()
    }


async def provider_error_handler(request: Request, exc: LLMProviderError):
    """
    Handle reasoning-backend failures.

    WHAT: Disabled, timed out, unreachable or malformed backend
    WHY: The step aborted with nothing persisted; the caller may retry
    HOW: Look up status and code by exception class; unknown subclasses are 502
    """
    for exc_cls, status_code, code, hint in PROVIDER_ERRORS:
        if isinstance(exc, exc_cls):
            break
    else:
        status_code, code, hint = status.HTTP_502_BAD_GATEWAY, "LLM_ERROR", "LLM provider failed"

    logger.error(f"Provider error ({code}): {exc}")
    return JSONResponse(
        status_code=status_code,
        content=error_body(code, str(exc) or hint, {"hint": hint}),
    )


async def validation_error_handler(request: Request, exc: RequestValidationError):
    """
    Handle FastAPI RequestValidationError.

    WHAT: Request validation failed
    WHY: Invalid request payload
    HOW: Return 400 with JSON-safe field errors
    """
    logger.warning(f"Validation error: {exc.errors()}")

    cleaned_errors = []
    for error in exc.errors():
        cleaned_error = {
            "type": error.get("type"),
            "loc": list(error.get("loc", ())),
            "msg": error.get("msg"),
        }
        if "ctx" in error:
            cleaned_error["ctx"] = {
                k: str(v) if isinstance(v, Exception) else v for k, v in error["ctx"].items()
            }
        cleaned_errors.append(cleaned_error)

    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content=error_body("VALIDATION_ERROR", "Request validation failed", cleaned_errors),
    )


async def api_exception_handler(request: Request, exc: APIException):
    """
    Handle domain exceptions.

    404 for missing rows, 409 for conflicts, 400 for invalid state,
    awaiting-human and validation.
    """
    if isinstance(exc, NOT_FOUND_ERRORS):
        status_code = status.HTTP_404_NOT_FOUND
    elif isinstance(exc, CONFLICT_ERRORS):
        status_code = status.HTTP_409_CONFLICT
    else:
        status_code = status.HTTP_400_BAD_REQUEST

    logger.warning(f"API exception: {exc.code} - {exc.message}")
    return JSONResponse(
        status_code=status_code,
        content=error_body(exc.code, exc.message, exc.details),
    )


def register_exception_handlers(app):
    """
    Register all exception handlers with FastAPI app.

    Args:
        app: FastAPI application instance
    """
    app.add_exception_handler(LLMProviderError, provider_error_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)
    app.add_exception_handler(APIException, api_exception_handler)

    logger.info("Exception handlers registered")
