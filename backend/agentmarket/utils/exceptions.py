"""
Domain exceptions for the negotiation and escrow controllers.

WHAT: Business exceptions that map to HTTP status codes
WHY: Callers must tell not-found, invalid-state, awaiting-human and conflict apart
HOW: APIException base with error code, message and details
"""

from typing import Optional, List, Dict, Any


class APIException(Exception):
    """Base class for business logic exceptions."""

    def __init__(self, message: str, code: str, details: Optional[Any] = None):
        super().__init__(message)
        self.message = message
        self.code = code
        self.details = details


class NegotiationNotFoundError(APIException):
    """Raised when a negotiation does not exist."""

    def __init__(self, negotiation_id: str):
        super().__init__(
            message=f"Negotiation not found: {negotiation_id}",
            code="NEGOTIATION_NOT_FOUND",
            details={"negotiation_id": negotiation_id}
        )


class ResourceNotFoundError(APIException):
    """Raised when a listing, buy agent or other referenced row is missing."""

    def __init__(self, resource: str, resource_id: str):
        super().__init__(
            message=f"{resource.replace('_', ' ').capitalize()} not found: {resource_id}",
            code=f"{resource.upper()}_NOT_FOUND",
            details={f"{resource}_id": resource_id}
        )


class EscrowNotFoundError(APIException):
    """Raised when no escrow record exists for a negotiation."""

    def __init__(self, negotiation_id: str):
        super().__init__(
            message=f"Escrow record not found for negotiation: {negotiation_id}",
            code="ESCROW_NOT_FOUND",
            details={"negotiation_id": negotiation_id}
        )


class InvalidStateError(APIException):
    """Raised when an operation is not valid for the current negotiation/escrow state."""

    def __init__(self, message: str, current_state: Optional[str] = None, **details):
        if current_state is not None:
            details["current_state"] = current_state
        super().__init__(
            message=message,
            code="INVALID_STATE",
            details=details or None
        )


class AwaitingHumanInputError(APIException):
    """Raised when a step is requested while the ball is with a human."""

    def __init__(self, negotiation_id: str):
        super().__init__(
            message="Waiting for human input",
            code="AWAITING_HUMAN_INPUT",
            details={"negotiation_id": negotiation_id}
        )


class StepConflictError(APIException):
    """Raised when a step for the same negotiation is already executing."""

    def __init__(self, negotiation_id: str):
        super().__init__(
            message=f"A step is already processing for negotiation {negotiation_id}",
            code="ALREADY_PROCESSING",
            details={"negotiation_id": negotiation_id}
        )


class EscrowAlreadyExistsError(APIException):
    """Raised when an escrow is created twice for one negotiation."""

    def __init__(self, negotiation_id: str):
        super().__init__(
            message=f"Escrow already exists for negotiation {negotiation_id}",
            code="ESCROW_ALREADY_EXISTS",
            details={"negotiation_id": negotiation_id}
        )


class ValidationError(APIException):
    """Raised for malformed external input."""

    def __init__(self, message: str, field_errors: Optional[List[Dict[str, str]]] = None):
        super().__init__(
            message=message,
            code="VALIDATION_ERROR",
            details={"field_errors": field_errors} if field_errors else None
        )


class SellAgentAlreadyExistsError(APIException):
    """Raised when a listing already has its seller agent."""

    def __init__(self, listing_id: str):
        super().__init__(
            message=f"Listing {listing_id} already has a seller agent",
            code="SELL_AGENT_ALREADY_EXISTS",
            details={"listing_id": listing_id}
        )
