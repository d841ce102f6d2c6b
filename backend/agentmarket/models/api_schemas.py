"""
Pydantic API schemas.

WHAT: Request and response models for the HTTP surface
WHY: Type-safe validation and serialization of the client contract
HOW: Pydantic v2 models with validators and constraints
"""

from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, Field, field_validator

from ..core.models import Urgency
from .negotiation import (
    BuyAgentInfo, ConditionNote, ListingInfo, MessageRecord, NegotiationSnapshot,
    NegotiationSummary, SellAgentInfo,
)


# ========== Orchestration ==========

class StepRequest(BaseModel):
    negotiation_id: str = Field(..., min_length=1)
    auto_continue: bool = False


class StepResponse(BaseModel):
    message: MessageRecord
    negotiation: NegotiationSnapshot
    is_agreed: bool


class HumanResponseRequest(BaseModel):
    negotiation_id: str = Field(..., min_length=1)
    response: str = Field(..., min_length=1, max_length=2000)
    target: Optional[Literal["buyer", "seller"]] = None
    auto_continue: bool = False

    @field_validator("response")
    @classmethod
    def validate_response(cls, v: str) -> str:
        """Reject whitespace-only replies."""
        if not v.strip():
            raise ValueError("response must not be blank")
        return v.strip()


class HumanResponseResponse(BaseModel):
    message: MessageRecord
    negotiation: NegotiationSnapshot


# ========== Listings and agents ==========

class CreateListingRequest(BaseModel):
    title: str = Field(..., min_length=1, max_length=200)
    description: str = ""
    category: str = Field(..., min_length=1, max_length=100)
    structured: Dict[str, Any] = Field(default_factory=dict)
    ask_price: float = Field(..., ge=0)
    condition_notes: List[ConditionNote] = Field(default_factory=list)
    haggling_ammo: List[str] = Field(default_factory=list)
    image_urls: List[str] = Field(default_factory=list)
    seller_user_id: Optional[str] = Field(default=None, max_length=100)

    @field_validator("title", "category")
    @classmethod
    def validate_not_blank(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("must not be blank")
        return v.strip()


class ListingResponse(BaseModel):
    listing: ListingInfo


class ListingListResponse(BaseModel):
    listings: List[ListingInfo]


class CreateBuyAgentRequest(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    category: str = Field(..., min_length=1, max_length=100)
    filters: Dict[str, Any] = Field(default_factory=dict)
    prompt: str = ""
    max_price: float = Field(..., ge=0)
    urgency: Urgency = Urgency.MEDIUM
    internal_notes: Optional[str] = None
    user_id: Optional[str] = Field(default=None, max_length=100)


class BuyAgentResponse(BaseModel):
    agent: BuyAgentInfo


class BuyAgentListResponse(BaseModel):
    agents: List[BuyAgentInfo]


class CreateSellAgentRequest(BaseModel):
    listing_id: str = Field(..., min_length=1)
    name: str = Field(..., min_length=1, max_length=100)
    # None means no floor yet; the seller agent will ask its human for one
    min_price: Optional[float] = Field(default=None, ge=0)
    urgency: Urgency = Urgency.MEDIUM
    preferences: Dict[str, Any] = Field(default_factory=dict)
    internal_notes: Optional[str] = None
    user_id: Optional[str] = Field(default=None, max_length=100)


class SellAgentResponse(BaseModel):
    agent: SellAgentInfo


class SellAgentListResponse(BaseModel):
    agents: List[SellAgentInfo]


# ========== Negotiations ==========

class CreateNegotiationRequest(BaseModel):
    buy_agent_id: str = Field(..., min_length=1)
    listing_id: str = Field(..., min_length=1)
    auto_start: bool = False


class NegotiationResponse(BaseModel):
    negotiation: NegotiationSummary
    created: bool = False


class NegotiationListResponse(BaseModel):
    negotiations: List[NegotiationSummary]


class NegotiationDetailResponse(BaseModel):
    negotiation: NegotiationSummary
    messages: List[MessageRecord]


class MessageListResponse(BaseModel):
    messages: List[MessageRecord]


# ========== Escrow ==========

class EscrowActionRequest(BaseModel):
    negotiation_id: str = Field(..., min_length=1)
    # Validated by the escrow controller so unknown actions share its error path
    action: str = Field(..., min_length=1)
    tx_hash: Optional[str] = Field(default=None, max_length=100)
    item_id: Optional[str] = Field(default=None, max_length=100)
    contract_address: Optional[str] = Field(default=None, max_length=100)


class EscrowActionResponse(BaseModel):
    negotiation: Dict[str, Any]
    escrow: Dict[str, Any]


class EscrowResponse(BaseModel):
    escrow: Dict[str, Any]


# ========== Events ==========

class EventListResponse(BaseModel):
    events: List[Dict[str, Any]]
    next_cursor: Optional[int] = None


# ========== Dev seed ==========

class SeedResponse(BaseModel):
    listings: List[Dict[str, Any]]
    buy_agents: List[Dict[str, Any]]
    sell_agents: List[Dict[str, Any]]
