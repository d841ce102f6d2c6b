"""
Unit tests for agent prompt rendering and history helpers.

WHAT: Test phase selection, constraint rendering and seller warnings
WHY: The backend only knows what the prompt tells it
HOW: Build contexts without a database and inspect rendered messages
"""

import pytest

from agentmarket.agents.history import (
    buyer_turn_number,
    effective_min_price,
    format_price,
    human_floor_reply,
    is_price_stalemate,
    render_history,
)
from agentmarket.agents.prompts import build_buyer_prompt, build_seller_prompt
from agentmarket.core.models import BallOwner, MessageRole
from tests.fixtures.factories import FLOOR_REQUEST, context, history, record

BUYER = MessageRole.BUYER_AGENT
SELLER = MessageRole.SELLER_AGENT
HUMAN = MessageRole.HUMAN


def _system(messages):
    return messages[0]["content"]


def _user(messages):
    return messages[1]["content"]


@pytest.mark.unit
class TestHistoryHelpers:
    """Test turn counting, floors and history rendering."""

    def test_buyer_turn_number_counts_buyer_messages(self):
        msgs = history((BUYER, None), (SELLER, None), (BUYER, None))
        assert buyer_turn_number(msgs) == 3
        assert buyer_turn_number([]) == 1

    def test_human_floor_reply_after_seller_question(self):
        msgs = history((BUYER, 700), (SELLER, None, FLOOR_REQUEST), (HUMAN, 800))
        assert human_floor_reply(msgs) == 800

    def test_human_reply_to_buyer_is_not_a_floor(self):
        msgs = history((SELLER, 1000), (BUYER, None), (HUMAN, 900))
        assert human_floor_reply(msgs) is None

    def test_fact_reply_with_dollars_is_not_a_floor(self):
        repairs = {"target": "seller", "question": "Any repairs?", "choices": []}
        msgs = history((BUYER, 700), (SELLER, None, repairs))
        msgs.append(record(HUMAN, 150, answer="Yes, a $150 screen repair last year.", index=2))

        assert human_floor_reply(msgs) is None
        assert effective_min_price(context(msgs)) is None

    def test_configured_min_wins_over_human_reply(self):
        msgs = history((SELLER, None, FLOOR_REQUEST), (HUMAN, 800))
        assert effective_min_price(context(msgs, min_price=850)) == 850

    def test_effective_min_falls_back_to_human_reply(self):
        msgs = history((SELLER, None, FLOOR_REQUEST), (HUMAN, 800))
        assert effective_min_price(context(msgs)) == 800

    def test_effective_min_none_without_seller_agent(self):
        assert effective_min_price(context(with_sell_agent=False)) is None

    def test_price_stalemate_when_both_sides_repeat(self):
        msgs = history((BUYER, 700), (SELLER, 900), (BUYER, 700), (SELLER, 900))
        assert is_price_stalemate(msgs) is True

    def test_no_stalemate_while_a_side_moves(self):
        msgs = history((BUYER, 700), (SELLER, 900), (BUYER, 750), (SELLER, 900))
        assert is_price_stalemate(msgs) is False

    def test_no_stalemate_during_discovery(self):
        msgs = history((BUYER, None), (SELLER, 1000), (BUYER, None), (SELLER, 1000))
        assert is_price_stalemate(msgs) is False

    def test_format_price(self):
        assert format_price(1200) == "$1,200"
        assert format_price(812.5) == "$812.50"

    def test_render_history_prefixes(self):
        msgs = [
            record(BUYER, 700, answer="Would you take 700?", index=0),
            record(SELLER, 900, answer="I can do 900.", index=1),
            record(HUMAN, None, answer="My floor is $850", index=2),
        ]
        rendered = render_history(msgs, SELLER).splitlines()

        assert rendered[0] == "BUYER: Would you take 700? [Proposed: $700]"
        assert rendered[1] == "YOU: I can do 900. [Proposed: $900]"
        assert rendered[2] == "HUMAN: My floor is $850"


@pytest.mark.unit
class TestBuyerPrompt:
    """Test buyer prompt phases and constraints."""

    def test_returns_system_and_user_messages(self):
        messages = build_buyer_prompt(context())
        assert [m["role"] for m in messages] == ["system", "user"]

    def test_first_turn_is_discovery(self):
        system = _system(build_buyer_prompt(context()))
        assert "PHASE: DISCOVERY (turn 1 of 3)" in system
        assert "price_proposal MUST be null" in system

    def test_fourth_turn_is_negotiation(self):
        msgs = history((BUYER, None), (SELLER, 1000), (BUYER, None), (SELLER, None), (BUYER, None), (SELLER, None))
        system = _system(build_buyer_prompt(context(msgs)))
        assert "PHASE: NEGOTIATION (turn 4)" in system

    def test_includes_max_price_and_private_notes(self):
        system = _system(build_buyer_prompt(context(max_price=1200, internal_notes="Bonus next week")))
        assert "Max price: $1,200" in system
        assert "Private notes (never share): Bonus next week" in system
        assert "NEVER propose a price above your max price" in system

    def test_user_message_has_listing_and_empty_history(self):
        user = _user(build_buyer_prompt(context()))
        assert "- Title: Road Bike" in user
        assert "- Ask Price: $1,000" in user
        assert "Scratched top tube (high confidence)" in user
        assert "Tires need replacing" in user
        assert "(Starting negotiation)" in user

    def test_output_contract_targets_buyer(self):
        system = _system(build_buyer_prompt(context()))
        assert '"target": "buyer"' in system
        assert "Do NOT output <think> blocks" in system


@pytest.mark.unit
class TestSellerPrompt:
    """Test seller prompt floors and escalation warnings."""

    def test_unset_min_escalation_warning(self):
        system = _system(build_seller_prompt(context(ball=BallOwner.SELLER)))
        assert "Min acceptable price: NOT SET" in system
        assert "Your minimum price is NOT SET" in system
        assert '"choices": []' in system

    def test_below_min_counter_warning(self):
        msgs = history((BUYER, 700))
        system = _system(build_seller_prompt(context(msgs, ball=BallOwner.SELLER, min_price=850)))

        assert "Min acceptable price: $850" in system
        assert "below your minimum" in system
        assert "Do NOT ask your seller about pricing" in system
        assert "NOT SET" not in system

    def test_human_floor_used_as_min(self):
        msgs = history((BUYER, 700), (SELLER, None, FLOOR_REQUEST), (HUMAN, 800))
        system = _system(build_seller_prompt(context(msgs, ball=BallOwner.SELLER)))
        assert "Min acceptable price: $800" in system

    def test_fact_reply_keeps_min_not_set(self):
        repairs = {"target": "seller", "question": "Any repairs?", "choices": []}
        msgs = history((BUYER, 700), (SELLER, None, repairs))
        msgs.append(record(HUMAN, 150, answer="Yes, a $150 screen repair last year.", index=2))
        system = _system(build_seller_prompt(context(msgs, ball=BallOwner.SELLER)))

        assert "Min acceptable price: NOT SET" in system
        assert "Your minimum price is NOT SET" in system
        assert "$150" not in system

    def test_always_escalate_unknowns(self):
        system = _system(build_seller_prompt(context(ball=BallOwner.SELLER, min_price=850)))
        assert "ALWAYS ask your seller" in system

    def test_history_rendered_from_seller_view(self):
        msgs = [record(BUYER, 700, answer="Would you take 700?")]
        user = _user(build_seller_prompt(context(msgs, ball=BallOwner.SELLER)))
        assert "BUYER: Would you take 700? [Proposed: $700]" in user
