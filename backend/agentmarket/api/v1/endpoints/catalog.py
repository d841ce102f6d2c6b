"""
Listing and agent endpoints.

WHAT: Create and list listings, buy agents and sell agents
WHY: Clients configure budgets and floors before opening a negotiation
HOW: Thin wrappers over the catalog service; 201 on create
"""

from typing import Optional

from fastapi import APIRouter, Query, status

from ....core.models import ListingStatus
from ....models.api_schemas import (
    BuyAgentListResponse,
    BuyAgentResponse,
    CreateBuyAgentRequest,
    CreateListingRequest,
    CreateSellAgentRequest,
    ListingListResponse,
    ListingResponse,
    SellAgentListResponse,
    SellAgentResponse,
)
from ....services import catalog

router = APIRouter()


@router.post("/listings", response_model=ListingResponse, status_code=status.HTTP_201_CREATED)
async def create_listing(request: CreateListingRequest):
    return ListingResponse(listing=catalog.create_listing(request))


@router.get("/listings", response_model=ListingListResponse)
async def list_listings(
    listing_status: Optional[ListingStatus] = Query(None, alias="status"),
    category: Optional[str] = Query(None),
    search: Optional[str] = Query(None),
    limit: int = Query(50, ge=1, le=200),
    offset: int = Query(0, ge=0),
):
    listings = catalog.list_listings(
        status=listing_status,
        category=category,
        search=search,
        limit=limit,
        offset=offset,
    )
    return ListingListResponse(listings=listings)


@router.post("/buy-agents", response_model=BuyAgentResponse, status_code=status.HTTP_201_CREATED)
async def create_buy_agent(request: CreateBuyAgentRequest):
    return BuyAgentResponse(agent=catalog.create_buy_agent(request))


@router.get("/buy-agents", response_model=BuyAgentListResponse)
async def list_buy_agents(user_id: Optional[str] = Query(None)):
    return BuyAgentListResponse(agents=catalog.list_buy_agents(user_id=user_id))


@router.post("/sell-agents", response_model=SellAgentResponse, status_code=status.HTTP_201_CREATED)
async def create_sell_agent(request: CreateSellAgentRequest):
    """Attach a seller agent to a listing; omit min_price to leave the floor unset."""
    return SellAgentResponse(agent=catalog.create_sell_agent(request))


@router.get("/sell-agents", response_model=SellAgentListResponse)
async def list_sell_agents(
    listing_id: Optional[str] = Query(None),
    user_id: Optional[str] = Query(None),
):
    return SellAgentListResponse(agents=catalog.list_sell_agents(listing_id=listing_id, user_id=user_id))
