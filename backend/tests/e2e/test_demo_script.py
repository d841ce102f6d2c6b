"""
End-to-end test of the terminal demo.

WHAT: Seed, negotiate, escalate to the seller's human, agree and settle
WHY: The offline demo is the reference walkthrough of the whole system
HOW: Run demo_negotiation.run_demo against the test database
"""

import pytest

from agentmarket.core.models import NegotiationState
from agentmarket.core.negotiation_manager import negotiation_manager

import demo_negotiation


@pytest.mark.e2e
class TestDemoScript:
    """Test the offline demo run."""

    @pytest.mark.asyncio
    async def test_demo_reaches_confirmed_settlement(self, capsys):
        assert await demo_negotiation.run_demo("My minimum is $400", max_steps=20) is True

        output = capsys.readouterr().out
        assert "DEAL AGREED AT $400.00" in output
        assert "escrow confirm  -> state=confirmed ball=seller" in output

        negotiations = negotiation_manager.list_negotiations()
        assert len(negotiations) == 1
        assert negotiations[0].state == NegotiationState.CONFIRMED
        assert negotiations[0].agreed_price == 400

    @pytest.mark.asyncio
    async def test_demo_without_floor_stalls(self, capsys):
        assert await demo_negotiation.run_demo("I'm not sure", max_steps=20) is False
        assert "No agreement after 20 steps" in capsys.readouterr().out
