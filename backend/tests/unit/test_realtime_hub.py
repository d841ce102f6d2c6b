"""
Unit tests for realtime fan-out.

WHAT: Test subscribe, publish, drop-on-full and delta shapes
WHY: A slow subscriber must never block a step
HOW: Fresh RealtimeHub instances with small queues
"""

import pytest

from agentmarket.core.models import BallOwner, MessageRole, NegotiationState
from agentmarket.models.negotiation import MessageRecord, NegotiationSnapshot, ParsedMessage
from agentmarket.services.realtime import RealtimeHub, processing_delta, update_delta


def _snapshot(**overrides):
    data = {"id": "n1", "state": NegotiationState.NEGOTIATING, "ball": BallOwner.SELLER}
    data.update(overrides)
    return NegotiationSnapshot(**data)


@pytest.mark.unit
class TestRealtimeHub:
    """Test RealtimeHub."""

    @pytest.mark.asyncio
    async def test_publish_reaches_all_subscribers_in_order(self):
        hub = RealtimeHub(queue_size=10)
        first = hub.subscribe("n1")
        second = hub.subscribe("n1")

        assert hub.publish("n1", {"type": "a"}) == 2
        hub.publish("n1", {"type": "b"})

        for queue in (first, second):
            assert (await queue.get())["type"] == "a"
            assert (await queue.get())["type"] == "b"

    @pytest.mark.asyncio
    async def test_publish_scoped_to_negotiation(self):
        hub = RealtimeHub(queue_size=10)
        queue = hub.subscribe("n1")

        assert hub.publish("n2", {"type": "update"}) == 0
        assert queue.empty()

    @pytest.mark.asyncio
    async def test_full_queue_drops_delta(self):
        hub = RealtimeHub(queue_size=1)
        slow = hub.subscribe("n1")
        fast = hub.subscribe("n1")

        hub.publish("n1", {"type": "first"})
        await fast.get()
        delivered = hub.publish("n1", {"type": "second"})

        assert delivered == 1
        assert (await slow.get())["type"] == "first"
        assert (await fast.get())["type"] == "second"

    @pytest.mark.asyncio
    async def test_unsubscribe(self):
        hub = RealtimeHub(queue_size=10)
        queue = hub.subscribe("n1")
        hub.unsubscribe("n1", queue)

        assert hub.subscriber_count("n1") == 0
        assert hub.publish("n1", {"type": "update"}) == 0
        hub.unsubscribe("n1", queue)


@pytest.mark.unit
class TestDeltas:
    """Test delta payload shapes."""

    def test_update_delta_with_message(self):
        message = MessageRecord(
            id="m1", negotiation_id="n1", role=MessageRole.BUYER_AGENT,
            raw="{}", parsed=ParsedMessage(answer="hi", price_proposal=700),
        )
        delta = update_delta(_snapshot(), message)

        assert delta["type"] == "update"
        assert delta["negotiation"] == {"id": "n1", "state": "negotiating", "ball": "seller", "agreed_price": None}
        assert delta["message"]["role"] == "buyer_agent"
        assert delta["message"]["parsed"]["price_proposal"] == 700
        assert "escrow" not in delta

    def test_update_delta_with_escrow_only(self):
        delta = update_delta(_snapshot(state=NegotiationState.ESCROW_CREATED), escrow={"tx_create": "0xabc"})

        assert "message" not in delta
        assert delta["escrow"] == {"tx_create": "0xabc"}
        assert delta["negotiation"]["state"] == "escrow_created"

    def test_processing_delta(self):
        assert processing_delta("n1", "seller_agent") == {
            "type": "processing", "negotiation_id": "n1", "role": "seller_agent",
        }
