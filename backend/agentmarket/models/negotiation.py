"""
Negotiation domain models.

WHAT: Typed, store-independent views of listings, agents, messages and step results
WHY: The orchestrator stays pure; it never touches ORM sessions
HOW: Pydantic v2 models built from ORM rows via from_attributes
"""

from datetime import datetime
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

from ..core.models import BallOwner, MessageRole, NegotiationState, Urgency


class UserPrompt(BaseModel):
    """
    A request, embedded in an agent turn, that hands control to a human.

    kind is "min_price" only when a seller agent asks its human for a floor;
    only the reply to such a question may become the effective min price.
    """

    target: Literal["buyer", "seller"]
    question: str = ""
    choices: Optional[list[str]] = None
    kind: Literal["question", "min_price"] = "question"


class ParsedMessage(BaseModel):
    """Structured form of one agent (or human) turn."""

    answer: str = ""
    status_message: str = ""
    price_proposal: Optional[float] = None
    concessions: list[str] = Field(default_factory=list)
    user_prompt: Optional[UserPrompt] = None


class ConditionNote(BaseModel):
    issue: str
    confidence: Literal["high", "medium", "low"] = "medium"


class ListingInfo(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    title: str
    description: str = ""
    category: str = ""
    structured: dict = Field(default_factory=dict)
    ask_price: float
    condition_notes: list[ConditionNote] = Field(default_factory=list)
    haggling_ammo: list[str] = Field(default_factory=list)
    status: str = "active"


class BuyAgentInfo(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    name: str = ""
    category: str = ""
    prompt: str = ""
    max_price: float
    urgency: Urgency = Urgency.MEDIUM
    internal_notes: Optional[str] = None


class SellAgentInfo(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    listing_id: str = ""
    name: str = ""
    min_price: Optional[float] = None  # None = never set, distinct from 0
    urgency: Urgency = Urgency.MEDIUM
    internal_notes: Optional[str] = None


class NegotiationSnapshot(BaseModel):
    """The externally visible negotiation state pushed to clients."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    state: NegotiationState
    ball: BallOwner
    agreed_price: Optional[float] = None


class NegotiationSummary(NegotiationSnapshot):
    """Snapshot plus the pair it belongs to, for listings and detail views."""

    buy_agent_id: str
    listing_id: str
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class MessageRecord(BaseModel):
    """A persisted message as the orchestrator and clients see it."""

    id: str
    negotiation_id: str
    role: MessageRole
    raw: str = ""
    parsed: Optional[ParsedMessage] = None
    created_at: Optional[datetime] = None

    @classmethod
    def from_row(cls, row) -> "MessageRecord":
        """Build from an ORM Message; unreadable stored JSON becomes None."""
        try:
            parsed = ParsedMessage.model_validate(row.parsed) if row.parsed else None
        except ValueError:
            parsed = None
        return cls(
            id=row.message_id,
            negotiation_id=row.negotiation_id,
            role=row.role,
            raw=row.raw or "",
            parsed=parsed,
            created_at=row.created_at,
        )


class OrchestrationContext(BaseModel):
    """Everything one step needs, loaded by the lifecycle controller."""

    listing: ListingInfo
    buy_agent: BuyAgentInfo
    sell_agent: Optional[SellAgentInfo] = None
    negotiation: NegotiationSnapshot
    messages: list[MessageRecord] = Field(default_factory=list)


class OrchestrationResult(BaseModel):
    """What a step computed; the controller decides how to persist it."""

    role: MessageRole
    raw: str
    parsed: ParsedMessage
    new_ball: BallOwner
    is_agreed: bool = False
    agreed_price: Optional[float] = None


class StepOutcome(BaseModel):
    """Result returned to callers of run_step / submit_human_response."""

    message: MessageRecord
    negotiation: NegotiationSnapshot
    is_agreed: bool = False
