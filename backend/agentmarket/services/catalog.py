"""
Listings and agent configuration.

WHAT: Create and list listings, buy agents and sell agents
WHY: A negotiation needs a listing and a buy agent; budgets live on the agents
HOW: Short get_db() transactions returning pydantic views; listing creation is logged as an event
"""

from typing import List, Optional

from sqlalchemy import or_

from ..core.database import get_db
from ..core.models import BuyAgent, EventType, Listing, ListingStatus, SellAgent
from ..models.api_schemas import CreateBuyAgentRequest, CreateListingRequest, CreateSellAgentRequest
from ..models.negotiation import BuyAgentInfo, ListingInfo, SellAgentInfo
from ..utils.exceptions import ResourceNotFoundError, SellAgentAlreadyExistsError
from ..utils.logger import get_logger
from .event_log import record_event

logger = get_logger(__name__)


def create_listing(request: CreateListingRequest) -> ListingInfo:
    with get_db() as db:
        listing = Listing(**request.model_dump(mode="json"), status=ListingStatus.ACTIVE)
        db.add(listing)
        db.flush()
        record_event(
            db,
            EventType.LISTING_CREATED,
            {"title": listing.title, "price": listing.ask_price},
            listing_id=listing.id,
            user_id=listing.seller_user_id,
        )
        logger.info(f"Listing {listing.id} created ({listing.title}, ask=${listing.ask_price})")
        return ListingInfo.model_validate(listing)


def list_listings(
    *,
    status: Optional[ListingStatus] = None,
    category: Optional[str] = None,
    search: Optional[str] = None,
    limit: int = 50,
    offset: int = 0,
) -> List[ListingInfo]:
    """Newest first; search matches title or description, case-insensitively."""
    with get_db() as db:
        query = db.query(Listing)
        if status:
            query = query.filter(Listing.status == status)
        if category:
            query = query.filter(Listing.category == category)
        if search:
            pattern = f"%{search}%"
            query = query.filter(or_(Listing.title.ilike(pattern), Listing.description.ilike(pattern)))
        rows = query.order_by(Listing.created_at.desc()).offset(offset).limit(limit).all()
        return [ListingInfo.model_validate(row) for row in rows]


def create_buy_agent(request: CreateBuyAgentRequest) -> BuyAgentInfo:
    with get_db() as db:
        agent = BuyAgent(**request.model_dump())
        db.add(agent)
        db.flush()
        logger.info(f"Buy agent {agent.id} created ({agent.name}, max=${agent.max_price})")
        return BuyAgentInfo.model_validate(agent)


def list_buy_agents(user_id: Optional[str] = None) -> List[BuyAgentInfo]:
    with get_db() as db:
        query = db.query(BuyAgent)
        if user_id:
            query = query.filter(BuyAgent.user_id == user_id)
        return [BuyAgentInfo.model_validate(row) for row in query.order_by(BuyAgent.created_at.desc()).all()]


def create_sell_agent(request: CreateSellAgentRequest) -> SellAgentInfo:
    """
    Attach the seller agent to a listing.

    A missing min_price is stored as NULL, never as 0.

    Raises:
        ResourceNotFoundError: listing missing
        SellAgentAlreadyExistsError: the listing already has one
    """
    with get_db() as db:
        if db.get(Listing, request.listing_id) is None:
            raise ResourceNotFoundError("listing", request.listing_id)
        existing = db.query(SellAgent).filter(SellAgent.listing_id == request.listing_id).first()
        if existing is not None:
            raise SellAgentAlreadyExistsError(request.listing_id)

        agent = SellAgent(**request.model_dump())
        db.add(agent)
        db.flush()
        logger.info(f"Sell agent {agent.id} created for listing {agent.listing_id} (min={agent.min_price})")
        return SellAgentInfo.model_validate(agent)


def list_sell_agents(listing_id: Optional[str] = None, user_id: Optional[str] = None) -> List[SellAgentInfo]:
    with get_db() as db:
        query = db.query(SellAgent)
        if listing_id:
            query = query.filter(SellAgent.listing_id == listing_id)
        if user_id:
            query = query.filter(SellAgent.user_id == user_id)
        return [SellAgentInfo.model_validate(row) for row in query.order_by(SellAgent.created_at.desc()).all()]
