"""
Demo script to run a complete negotiation in the terminal.

WHAT: Seed -> agent steps -> human reply -> agreement -> escrow, printed turn by turn
WHY: Visual verification of the orchestration flow without a frontend
HOW: Drives the negotiation and escrow managers directly against the configured database
"""

import argparse
import asyncio
import sys
from pathlib import Path

# Add backend to path if running directly
sys.path.insert(0, str(Path(__file__).parent))

from agentmarket.core.database import get_db, init_db
from agentmarket.core.escrow_manager import escrow_manager
from agentmarket.core.models import BallOwner, NegotiationState
from agentmarket.core.negotiation_manager import negotiation_manager
from agentmarket.llm.provider_factory import get_provider
from agentmarket.services.mock_chain import generate_mock_tx_hash
from agentmarket.services.seed import seed_demo_data
from agentmarket.utils.logger import setup_logging, get_logger

setup_logging()
logger = get_logger(__name__)


def print_banner(text: str, char: str = "="):
    """Print a formatted banner."""
    width = 80
    print(f"\n{char * width}\n{text.center(width)}\n{char * width}")


def print_turn(outcome):
    message = outcome.message
    parsed = message.parsed
    price = f" [${parsed.price_proposal:,.2f}]" if parsed and parsed.price_proposal is not None else ""
    print(f"\n{message.role.value.upper()}{price}: {parsed.answer if parsed else message.raw}")
    if parsed and parsed.user_prompt:
        print(f"  -> asks {parsed.user_prompt.target}: {parsed.user_prompt.question}")
    snap = outcome.negotiation
    print(f"  state={snap.state.value} ball={snap.ball.value} agreed_price={snap.agreed_price}")


async def run_demo(floor: str, max_steps: int) -> bool:
    init_db()
    with get_db() as db:
        seeded = seed_demo_data(db)

    listing = seeded["listings"][0]
    buy_agent = seeded["buy_agents"][0]
    provider = get_provider()
    mode = "LLM" if provider.is_configured() else "deterministic demo"

    print_banner(f"{listing['title']} (ask ${listing['ask_price']:,.0f}) - {mode} mode")
    negotiation, created = await negotiation_manager.create_negotiation(buy_agent["id"], listing["id"])
    if not created:
        print(f"Resuming existing negotiation {negotiation.id} ({negotiation.state.value})")

    for _ in range(max_steps):
        current = negotiation_manager.get_negotiation(negotiation.id)
        if current.state != NegotiationState.NEGOTIATING:
            break
        if current.ball == BallOwner.HUMAN:
            print_banner("HUMAN REPLY", "-")
            print(f"HUMAN: {floor}")
            outcome = await negotiation_manager.submit_human_response(negotiation.id, floor)
        else:
            outcome = await negotiation_manager.run_step(negotiation.id)
        print_turn(outcome)

    final = negotiation_manager.get_negotiation(negotiation.id)
    if final.state != NegotiationState.AGREED:
        print(f"\n[INFO] No agreement after {max_steps} steps (state={final.state.value})")
        return False

    print_banner(f"DEAL AGREED AT ${final.agreed_price:,.2f}")
    for action in ("create", "deposit", "confirm"):
        result = escrow_manager.apply_action(negotiation.id, action, tx_hash=generate_mock_tx_hash())
        snap = result["negotiation"]
        print(f"escrow {action:<8} -> state={snap['state']} ball={snap['ball']}")
    return True


async def main():
    """Main entry point."""
    parser = argparse.ArgumentParser(description="Run an offline negotiation demo")
    parser.add_argument("--floor", default="My minimum is $400", help="Seller's human reply when asked")
    parser.add_argument("--max-steps", type=int, default=20)
    args = parser.parse_args()

    try:
        success = await run_demo(args.floor, args.max_steps)
        return 0 if success else 1
    finally:
        await negotiation_manager.drain()


if __name__ == "__main__":
    try:
        exit_code = asyncio.run(main())
        sys.exit(exit_code)
    except KeyboardInterrupt:
        print("\n\n[INFO] Demo interrupted by user")
        sys.exit(1)
