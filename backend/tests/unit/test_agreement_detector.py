"""
Unit tests for agreement detection.

WHAT: Test convergence rules and the agreed price
WHY: A buyer must never pay more than the seller asked
HOW: Build message histories and check detect_agreement
"""

import pytest

from agentmarket.core.models import MessageRole
from agentmarket.models.negotiation import ParsedMessage
from agentmarket.services.agreement_detector import detect_agreement, last_price_from
from tests.fixtures.factories import history

BUYER = MessageRole.BUYER_AGENT
SELLER = MessageRole.SELLER_AGENT
HUMAN = MessageRole.HUMAN


def _offer(price):
    return ParsedMessage(answer="offer", price_proposal=price)


@pytest.mark.unit
class TestLastPriceFrom:
    """Test lookup of the latest priced message per role."""

    def test_returns_latest_priced_message(self):
        msgs = history((SELLER, 1000), (BUYER, 700), (SELLER, 900), (SELLER, None))
        assert last_price_from(msgs, SELLER) == 900

    def test_none_when_role_never_priced(self):
        msgs = history((BUYER, None), (SELLER, None))
        assert last_price_from(msgs, BUYER) is None

    def test_ignores_human_prices(self):
        msgs = history((SELLER, None), (HUMAN, 400))
        assert last_price_from(msgs, SELLER) is None


@pytest.mark.unit
class TestDetectAgreement:
    """Test the counterparty-price-wins rule."""

    def test_buyer_meets_seller_price(self):
        msgs = history((SELLER, 800))
        assert detect_agreement(msgs, _offer(800), BUYER) == (True, 800)

    def test_buyer_overshoot_agrees_at_seller_price(self):
        msgs = history((SELLER, 800))
        assert detect_agreement(msgs, _offer(850), BUYER) == (True, 800)

    def test_buyer_below_seller_no_agreement(self):
        msgs = history((SELLER, 800))
        assert detect_agreement(msgs, _offer(750), BUYER) == (False, None)

    def test_seller_undercut_agrees_at_buyer_price(self):
        msgs = history((BUYER, 800))
        assert detect_agreement(msgs, _offer(780), SELLER) == (True, 800)

    def test_seller_above_buyer_no_agreement(self):
        msgs = history((BUYER, 700))
        assert detect_agreement(msgs, _offer(850), SELLER) == (False, None)

    def test_no_price_no_agreement(self):
        msgs = history((SELLER, 800))
        assert detect_agreement(msgs, _offer(None), BUYER) == (False, None)

    def test_no_counterparty_price_no_agreement(self):
        msgs = history((BUYER, 700), (SELLER, None))
        assert detect_agreement(msgs, _offer(900), BUYER) == (False, None)

    def test_uses_latest_counterparty_price(self):
        msgs = history((SELLER, 1000), (BUYER, 700), (SELLER, 850))
        assert detect_agreement(msgs, _offer(900), BUYER) == (True, 850)
