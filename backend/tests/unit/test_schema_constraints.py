"""
Schema and constraint tests.

WHAT: Test CHECK constraints, the active-pair unique index and message ordering
WHY: Ensure data integrity at database level
HOW: Insert invalid data and verify IntegrityError is raised
"""

import pytest
from sqlalchemy.exc import IntegrityError

from agentmarket.core.database import get_db
from agentmarket.core.models import (
    BuyAgent, Escrow, Listing, Message, MessageRole, Negotiation, NegotiationState, SellAgent,
)
from tests.fixtures.factories import make_marketplace, make_negotiation


@pytest.mark.unit
class TestCheckConstraints:
    """Test CHECK constraints."""

    def test_listing_ask_price_non_negative(self):
        with pytest.raises(IntegrityError):
            with get_db() as db:
                db.add(Listing(title="Bad", category="misc", ask_price=-1))

    def test_buy_agent_max_price_non_negative(self):
        with pytest.raises(IntegrityError):
            with get_db() as db:
                db.add(BuyAgent(name="Bad", category="misc", max_price=-5))


@pytest.mark.unit
class TestUniqueConstraints:
    """Test unique constraints and the partial index."""

    def test_one_active_negotiation_per_pair(self):
        market = make_marketplace()
        make_negotiation(market)
        with pytest.raises(IntegrityError):
            make_negotiation(market, state=NegotiationState.AGREED)

    def test_terminal_negotiations_do_not_block(self):
        market = make_marketplace()
        make_negotiation(market, state=NegotiationState.CONFIRMED)
        make_negotiation(market, state=NegotiationState.RESOLVED)
        make_negotiation(market)

        with get_db() as db:
            assert db.query(Negotiation).count() == 3

    def test_one_sell_agent_per_listing(self):
        market = make_marketplace()
        with pytest.raises(IntegrityError):
            with get_db() as db:
                db.add(SellAgent(listing_id=market["listing_id"], name="Second seller"))

    def test_one_escrow_per_negotiation(self):
        negotiation_id = make_negotiation(make_marketplace())
        with pytest.raises(IntegrityError):
            with get_db() as db:
                db.add(Escrow(negotiation_id=negotiation_id, item_id="0x1"))
                db.add(Escrow(negotiation_id=negotiation_id, item_id="0x2"))


@pytest.mark.unit
class TestNullableFloor:
    """Test that an unset seller floor stays distinct from zero."""

    def test_min_price_null_and_zero(self):
        with_null = make_marketplace(min_price=None)
        with_zero = make_marketplace(min_price=0)

        with get_db() as db:
            assert db.get(SellAgent, with_null["sell_agent_id"]).min_price is None
            assert db.get(SellAgent, with_zero["sell_agent_id"]).min_price == 0


@pytest.mark.unit
class TestMessageOrdering:
    """Test that messages written in one transaction keep insertion order."""

    def test_relationship_orders_by_insertion(self):
        negotiation_id = make_negotiation(make_marketplace())
        with get_db() as db:
            for role in (MessageRole.BUYER_AGENT, MessageRole.SELLER_AGENT, MessageRole.HUMAN):
                db.add(Message(negotiation_id=negotiation_id, role=role, raw="", parsed={}))

        with get_db() as db:
            negotiation = db.get(Negotiation, negotiation_id)
            assert [m.role for m in negotiation.messages] == [
                MessageRole.BUYER_AGENT, MessageRole.SELLER_AGENT, MessageRole.HUMAN,
            ]
