"""
Integration tests for the escrow lifecycle controller.

WHAT: Test the settlement transition table and its error paths
WHY: Escrow transactions drive the negotiation's final states and must be linear
HOW: Agreed negotiations in a real SQLite store, EscrowManager.apply_action
"""

import re

import pytest

from agentmarket.core.config import settings
from agentmarket.core.database import get_db
from agentmarket.core.escrow_manager import EscrowManager
from agentmarket.core.models import AppEvent, BallOwner, EventType, NegotiationState
from agentmarket.services.realtime import realtime_hub
from agentmarket.utils.exceptions import (
    EscrowAlreadyExistsError,
    EscrowNotFoundError,
    InvalidStateError,
    NegotiationNotFoundError,
    ValidationError,
)
from tests.fixtures.factories import make_marketplace, make_negotiation, set_state


@pytest.fixture
def escrow():
    return EscrowManager()


@pytest.fixture
def agreed_id():
    market = make_marketplace(min_price=800)
    return make_negotiation(market, state=NegotiationState.AGREED, ball=BallOwner.SELLER, agreed_price=850)


def _state(result):
    return result["negotiation"]["state"], result["negotiation"]["ball"]


@pytest.mark.integration
class TestEscrowTransitions:
    """Test the happy paths through settlement."""

    def test_create_deposit_confirm(self, escrow, agreed_id):
        created = escrow.apply_action(agreed_id, "create", tx_hash="0xcreate")
        assert _state(created) == ("escrow_created", "buyer")
        assert created["escrow"]["tx_create"] == "0xcreate"
        assert re.match(r"^0x[0-9a-f]{32}$", created["escrow"]["item_id"])

        funded = escrow.apply_action(agreed_id, "deposit", tx_hash="0xdeposit")
        assert _state(funded) == ("funded", "buyer")

        confirmed = escrow.apply_action(agreed_id, "confirm", tx_hash="0xconfirm")
        assert _state(confirmed) == ("confirmed", "seller")
        assert confirmed["negotiation"]["agreed_price"] == 850

        record = escrow.get_escrow(agreed_id)
        assert record["tx_create"] == "0xcreate"
        assert record["tx_deposit"] == "0xdeposit"
        assert record["tx_confirm"] == "0xconfirm"
        assert record["tx_flag"] is None

        with get_db() as db:
            types = [
                e.type for e in
                db.query(AppEvent).filter(AppEvent.negotiation_id == agreed_id).order_by(AppEvent.id).all()
            ]
        assert types == [EventType.ESCROW_CREATED, EventType.ESCROW_FUNDED, EventType.DELIVERY_CONFIRMED]

    def test_flag_and_resolve(self, escrow, agreed_id):
        escrow.apply_action(agreed_id, "create", tx_hash="0x1")
        escrow.apply_action(agreed_id, "deposit", tx_hash="0x2")

        flagged = escrow.apply_action(agreed_id, "flag", tx_hash="0x3")
        assert _state(flagged) == ("flagged", "human")

        resolved = escrow.apply_action(agreed_id, "update_price", tx_hash="0x4")
        assert _state(resolved) == ("resolved", "buyer")
        assert resolved["escrow"]["tx_update_price"] == "0x4"

    def test_custom_item_and_contract(self, escrow, agreed_id):
        result = escrow.apply_action(
            agreed_id, "create", tx_hash="0x1", item_id="0xitem", contract_address="0xcontract"
        )
        assert result["escrow"]["item_id"] == "0xitem"
        assert result["escrow"]["contract_address"] == "0xcontract"

    def test_mock_transactions_generate_hash(self, escrow, agreed_id, monkeypatch):
        monkeypatch.setattr(settings, "ESCROW_MOCK_TRANSACTIONS", True)
        result = escrow.apply_action(agreed_id, "create")
        assert re.match(r"^0x[0-9a-f]{64}$", result["escrow"]["tx_create"])

    @pytest.mark.asyncio
    async def test_transition_publishes_escrow_delta(self, escrow, agreed_id):
        queue = realtime_hub.subscribe(agreed_id)
        escrow.apply_action(agreed_id, "create", tx_hash="0x1")

        delta = queue.get_nowait()
        assert delta["type"] == "update"
        assert delta["negotiation"]["state"] == "escrow_created"
        assert delta["escrow"]["tx_create"] == "0x1"
        assert "message" not in delta


@pytest.mark.integration
class TestEscrowErrors:
    """Test escrow rejection paths."""

    def test_unknown_action(self, escrow, agreed_id):
        with pytest.raises(ValidationError):
            escrow.apply_action(agreed_id, "refund", tx_hash="0x1")

    def test_missing_tx_hash(self, escrow, agreed_id):
        with pytest.raises(ValidationError):
            escrow.apply_action(agreed_id, "create", tx_hash="  ")

    def test_unknown_negotiation(self, escrow):
        with pytest.raises(NegotiationNotFoundError):
            escrow.apply_action("missing", "create", tx_hash="0x1")

    def test_create_before_agreement(self, escrow):
        negotiation_id = make_negotiation(make_marketplace())
        with pytest.raises(InvalidStateError):
            escrow.apply_action(negotiation_id, "create", tx_hash="0x1")

    def test_second_create(self, escrow, agreed_id):
        escrow.apply_action(agreed_id, "create", tx_hash="0x1")
        with pytest.raises(EscrowAlreadyExistsError):
            escrow.apply_action(agreed_id, "create", tx_hash="0x2")

    def test_deposit_without_escrow(self, escrow, agreed_id):
        with pytest.raises(EscrowNotFoundError):
            escrow.apply_action(agreed_id, "deposit", tx_hash="0x1")

    def test_out_of_order_action(self, escrow, agreed_id):
        escrow.apply_action(agreed_id, "create", tx_hash="0x1")
        with pytest.raises(InvalidStateError):
            escrow.apply_action(agreed_id, "confirm", tx_hash="0x2")

    def test_slot_written_once(self, escrow, agreed_id):
        escrow.apply_action(agreed_id, "create", tx_hash="0x1")
        escrow.apply_action(agreed_id, "deposit", tx_hash="0x2")
        set_state(agreed_id, NegotiationState.ESCROW_CREATED)

        with pytest.raises(InvalidStateError, match="already recorded"):
            escrow.apply_action(agreed_id, "deposit", tx_hash="0x3")
        assert escrow.get_escrow(agreed_id)["tx_deposit"] == "0x2"

    def test_get_missing_escrow(self, escrow, agreed_id):
        with pytest.raises(EscrowNotFoundError):
            escrow.get_escrow(agreed_id)
