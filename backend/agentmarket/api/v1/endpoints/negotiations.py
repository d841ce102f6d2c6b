"""
Negotiation endpoints.

WHAT: Create, list and read negotiations and their messages
WHY: Clients open a negotiation for a match and render its history
HOW: Negotiation manager reads; 201 on create, 200 when the active one is returned
"""

from typing import Optional

from fastapi import APIRouter, Query, Response, status

from ....core.models import NegotiationState
from ....core.negotiation_manager import negotiation_manager
from ....models.api_schemas import (
    CreateNegotiationRequest,
    MessageListResponse,
    NegotiationDetailResponse,
    NegotiationListResponse,
    NegotiationResponse,
)

router = APIRouter()


@router.post("/negotiations", response_model=NegotiationResponse, status_code=status.HTTP_201_CREATED)
async def create_negotiation(request: CreateNegotiationRequest, response: Response):
    """Create the negotiation for a (buy agent, listing) pair, or return the active one."""
    negotiation, created = await negotiation_manager.create_negotiation(
        request.buy_agent_id,
        request.listing_id,
        auto_start=request.auto_start,
    )
    if not created:
        response.status_code = status.HTTP_200_OK
    return NegotiationResponse(negotiation=negotiation, created=created)


@router.get("/negotiations", response_model=NegotiationListResponse)
async def list_negotiations(
    listing_id: Optional[str] = Query(None),
    buy_agent_id: Optional[str] = Query(None),
    state: Optional[NegotiationState] = Query(None),
):
    negotiations = negotiation_manager.list_negotiations(
        listing_id=listing_id,
        buy_agent_id=buy_agent_id,
        state=state,
    )
    return NegotiationListResponse(negotiations=negotiations)


@router.get("/negotiations/{negotiation_id}", response_model=NegotiationDetailResponse)
async def get_negotiation(negotiation_id: str):
    negotiation = negotiation_manager.get_negotiation(negotiation_id)
    messages = negotiation_manager.list_messages(negotiation_id)
    return NegotiationDetailResponse(negotiation=negotiation, messages=messages)


@router.get("/negotiations/{negotiation_id}/messages", response_model=MessageListResponse)
async def list_messages(negotiation_id: str):
    return MessageListResponse(messages=negotiation_manager.list_messages(negotiation_id))
