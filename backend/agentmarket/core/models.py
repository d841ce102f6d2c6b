"""
ORM models for marketplace persistence.

WHAT: SQLAlchemy models for listings, agents, negotiations, messages, escrows, events
WHY: The relational store is the source of truth for every negotiation transition
HOW: Declarative models with constraints, partial unique index and ordering indexes
"""

from datetime import datetime
from uuid import uuid4
from sqlalchemy import (
    Column, Integer, String, Float, DateTime, Text, JSON,
    ForeignKey, CheckConstraint, Index, Enum as SQLEnum, text
)
from sqlalchemy.orm import relationship
import enum

from .database import Base


def _enum_column(enum_cls, **kwargs):
    """Store enum values (not member names) so raw SQL filters stay readable."""
    return Column(
        SQLEnum(enum_cls, values_callable=lambda e: [m.value for m in e], native_enum=False, length=32),
        **kwargs
    )


class ListingStatus(str, enum.Enum):
    DRAFT = "draft"
    ACTIVE = "active"
    NEGOTIATING = "negotiating"
    SOLD = "sold"
    CANCELLED = "cancelled"


class Urgency(str, enum.Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class NegotiationState(str, enum.Enum):
    """Negotiation lifecycle, bargaining states first then escrow states."""
    IDLE = "idle"
    NEGOTIATING = "negotiating"
    AGREED = "agreed"
    ESCROW_CREATED = "escrow_created"
    FUNDED = "funded"
    CONFIRMED = "confirmed"
    FLAGGED = "flagged"
    RESOLVED = "resolved"


TERMINAL_STATES = (NegotiationState.CONFIRMED, NegotiationState.RESOLVED)


class BallOwner(str, enum.Enum):
    """Who must act next."""
    BUYER = "buyer"
    SELLER = "seller"
    HUMAN = "human"


class MessageRole(str, enum.Enum):
    BUYER_AGENT = "buyer_agent"
    SELLER_AGENT = "seller_agent"
    SYSTEM = "system"
    HUMAN = "human"


class EventType(str, enum.Enum):
    LISTING_CREATED = "listing_created"
    MATCH_FOUND = "match_found"
    NEGOTIATION_STARTED = "negotiation_started"
    BUYER_PROPOSES = "buyer_proposes"
    SELLER_COUNTERS = "seller_counters"
    HUMAN_INPUT_REQUIRED = "human_input_required"
    HUMAN_RESPONDED = "human_responded"
    DEAL_AGREED = "deal_agreed"
    ESCROW_CREATED = "escrow_created"
    ESCROW_FUNDED = "escrow_funded"
    DELIVERY_CONFIRMED = "delivery_confirmed"
    ISSUE_FLAGGED = "issue_flagged"
    ISSUE_RESOLVED = "issue_resolved"
    AGENT_PROCESSING = "agent_processing"


class Listing(Base):
    """
    Listing table - an item offered for sale.

    WHAT: Listing facts the agents negotiate over
    WHY: Ask price, condition notes and haggling ammo feed both prompts
    HOW: JSON columns for structured attributes and note lists
    """
    __tablename__ = "listings"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid4()))
    seller_user_id = Column(String(100), nullable=True)
    title = Column(String(200), nullable=False)
    description = Column(Text, nullable=False, default="")
    category = Column(String(100), nullable=False)
    structured = Column(JSON, nullable=False, default=dict)
    ask_price = Column(Float, nullable=False)
    condition_notes = Column(JSON, nullable=False, default=list)  # [{"issue", "confidence"}]
    haggling_ammo = Column(JSON, nullable=False, default=list)  # [str]
    image_urls = Column(JSON, nullable=False, default=list)
    status = _enum_column(ListingStatus, nullable=False, default=ListingStatus.ACTIVE)
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)
    updated_at = Column(DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow)

    sell_agent = relationship("SellAgent", back_populates="listing", uselist=False)

    __table_args__ = (
        CheckConstraint("ask_price >= 0", name="check_ask_price_non_negative"),
        Index("idx_listings_category", "category"),
        Index("idx_listings_status", "status"),
    )

    def __repr__(self):
        return f"<Listing(id={self.id}, title={self.title}, ask=${self.ask_price})>"


class BuyAgent(Base):
    """Buyer-side agent configuration."""
    __tablename__ = "buy_agents"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid4()))
    user_id = Column(String(100), nullable=True)
    name = Column(String(100), nullable=False)
    category = Column(String(100), nullable=False)
    filters = Column(JSON, nullable=False, default=dict)
    prompt = Column(Text, nullable=False, default="")
    max_price = Column(Float, nullable=False)
    urgency = _enum_column(Urgency, nullable=False, default=Urgency.MEDIUM)
    internal_notes = Column(Text, nullable=True)
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)

    __table_args__ = (
        CheckConstraint("max_price >= 0", name="check_max_price_non_negative"),
    )

    def __repr__(self):
        return f"<BuyAgent(id={self.id}, name={self.name}, max=${self.max_price})>"


class SellAgent(Base):
    """
    Seller-side agent configuration, at most one per listing.

    min_price is nullable on purpose: NULL means the seller never gave a
    floor, which is not the same as a floor of zero.
    """
    __tablename__ = "sell_agents"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid4()))
    user_id = Column(String(100), nullable=True)
    listing_id = Column(String(36), ForeignKey("listings.id", ondelete="CASCADE"), unique=True, nullable=False)
    name = Column(String(100), nullable=False)
    min_price = Column(Float, nullable=True)
    urgency = _enum_column(Urgency, nullable=False, default=Urgency.MEDIUM)
    preferences = Column(JSON, nullable=False, default=dict)
    internal_notes = Column(Text, nullable=True)
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)

    listing = relationship("Listing", back_populates="sell_agent")

    def __repr__(self):
        return f"<SellAgent(id={self.id}, listing={self.listing_id}, min={self.min_price})>"


class Negotiation(Base):
    """
    Negotiation table - one buy agent bargaining over one listing.

    WHAT: Current state and ball owner of a negotiation
    WHY: The (state, ball) pair is the single pointer every step reads and writes
    HOW: Partial unique index keeps one non-terminal negotiation per pair
    """
    __tablename__ = "negotiations"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid4()))
    buy_agent_id = Column(String(36), ForeignKey("buy_agents.id", ondelete="CASCADE"), nullable=False)
    listing_id = Column(String(36), ForeignKey("listings.id", ondelete="CASCADE"), nullable=False)
    state = _enum_column(NegotiationState, nullable=False, default=NegotiationState.IDLE)
    ball = _enum_column(BallOwner, nullable=False, default=BallOwner.BUYER)
    agreed_price = Column(Float, nullable=True)
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)
    updated_at = Column(DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow)

    messages = relationship(
        "Message",
        back_populates="negotiation",
        order_by="Message.id",
        cascade="all, delete-orphan"
    )
    escrow = relationship("Escrow", back_populates="negotiation", uselist=False)

    __table_args__ = (
        Index("idx_negotiations_state", "state"),
        Index(
            "uq_active_negotiation_pair",
            "buy_agent_id",
            "listing_id",
            unique=True,
            sqlite_where=text("state NOT IN ('confirmed', 'resolved')"),
            postgresql_where=text("state NOT IN ('confirmed', 'resolved')"),
        ),
    )

    def __repr__(self):
        return f"<Negotiation(id={self.id}, state={self.state}, ball={self.ball})>"


class Message(Base):
    """
    Message table - append-only turn history.

    WHAT: One agent, human or system turn
    WHY: Ordered messages are the negotiation's history; raw kept for audit
    HOW: Surrogate integer id breaks created_at ties inside one transaction
    """
    __tablename__ = "messages"

    id = Column(Integer, primary_key=True, autoincrement=True)
    message_id = Column(String(36), unique=True, nullable=False, default=lambda: str(uuid4()))
    negotiation_id = Column(String(36), ForeignKey("negotiations.id", ondelete="CASCADE"), nullable=False)
    role = _enum_column(MessageRole, nullable=False)
    raw = Column(Text, nullable=False, default="")
    parsed = Column(JSON, nullable=False, default=dict)
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)

    negotiation = relationship("Negotiation", back_populates="messages")

    __table_args__ = (
        Index("idx_messages_negotiation_created", "negotiation_id", "created_at"),
    )

    def __repr__(self):
        return f"<Message(id={self.message_id}, role={self.role})>"


class Escrow(Base):
    """
    Escrow table - settlement record, one per negotiation.

    Each tx_* slot is written exactly once by the escrow controller.
    """
    __tablename__ = "escrows"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid4()))
    negotiation_id = Column(String(36), ForeignKey("negotiations.id", ondelete="CASCADE"), unique=True, nullable=False)
    contract_address = Column(String(100), nullable=False, default="")
    item_id = Column(String(100), nullable=False)
    tx_create = Column(String(100), nullable=True)
    tx_deposit = Column(String(100), nullable=True)
    tx_confirm = Column(String(100), nullable=True)
    tx_flag = Column(String(100), nullable=True)
    tx_update_price = Column(String(100), nullable=True)
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)

    negotiation = relationship("Negotiation", back_populates="escrow")

    def __repr__(self):
        return f"<Escrow(negotiation={self.negotiation_id}, item={self.item_id})>"


class AppEvent(Base):
    """
    Event table - append-only activity feed and polling replay log.

    WHAT: Loosely typed notification with JSON payload
    WHY: Clients without a live connection replay deltas with an id cursor
    HOW: Monotonic integer id; negotiation/listing ids denormalized for filtering
    """
    __tablename__ = "events"

    id = Column(Integer, primary_key=True, autoincrement=True)
    type = _enum_column(EventType, nullable=False)
    payload = Column(JSON, nullable=False, default=dict)
    user_id = Column(String(100), nullable=True)
    negotiation_id = Column(String(36), nullable=True)
    listing_id = Column(String(36), nullable=True)
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)

    __table_args__ = (
        Index("idx_events_negotiation", "negotiation_id"),
        Index("idx_events_listing", "listing_id"),
        Index("idx_events_created_at", "created_at"),
    )

    def __repr__(self):
        return f"<AppEvent(id={self.id}, type={self.type})>"
