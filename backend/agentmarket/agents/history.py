"""
Helpers that read negotiation history.

WHAT: Turn counting, effective seller floor, stalemate detection and history rendering
WHY: Prompt builders and the demo generator must agree on these facts
HOW: Pure functions over the ordered MessageRecord list
"""

from typing import Optional, Sequence

from ..core.models import MessageRole
from ..models.negotiation import MessageRecord, OrchestrationContext

DISCOVERY_TURNS = 3


def buyer_turn_number(messages: Sequence[MessageRecord]) -> int:
    """Prior buyer_agent messages + 1."""
    return sum(1 for m in messages if m.role == MessageRole.BUYER_AGENT) + 1


def is_discovery_turn(turn: int) -> bool:
    return turn <= DISCOVERY_TURNS


def is_floor_request(message: MessageRecord) -> bool:
    """A seller_agent turn asking its human for a minimum price."""
    return (
        message.role == MessageRole.SELLER_AGENT
        and message.parsed is not None
        and message.parsed.user_prompt is not None
        and message.parsed.user_prompt.kind == "min_price"
    )


def human_floor_reply(messages: Sequence[MessageRecord]) -> Optional[float]:
    """
    Dollar figure from the latest human answer to a floor request.

    Replies to fact questions ("Any repairs?") never count, even when they
    mention dollars.
    """
    for i in range(len(messages) - 1, 0, -1):
        message = messages[i]
        if message.role != MessageRole.HUMAN:
            continue
        if not is_floor_request(messages[i - 1]):
            continue
        if message.parsed and message.parsed.price_proposal is not None:
            return message.parsed.price_proposal
    return None


def effective_min_price(ctx: OrchestrationContext) -> Optional[float]:
    """Configured seller min price, else the floor the seller's human gave."""
    if ctx.sell_agent is not None and ctx.sell_agent.min_price is not None:
        return ctx.sell_agent.min_price
    return human_floor_reply(ctx.messages)


def format_price(value: float) -> str:
    return f"${value:,.0f}" if float(value).is_integer() else f"${value:,.2f}"


def render_history(messages: Sequence[MessageRecord], own_role: MessageRole) -> str:
    """
    One line per message: `PREFIX: text [Proposed: $X]`.

    The acting side's own turns are `YOU`; the other agent is `BUYER` or `SELLER`.
    """
    lines = []
    for m in messages:
        if m.role == own_role:
            prefix = "YOU"
        elif m.role == MessageRole.BUYER_AGENT:
            prefix = "BUYER"
        elif m.role == MessageRole.SELLER_AGENT:
            prefix = "SELLER"
        elif m.role == MessageRole.HUMAN:
            prefix = "HUMAN"
        else:
            prefix = "SYSTEM"

        text = (m.parsed.answer if m.parsed and m.parsed.answer else m.raw).strip()
        line = f"{prefix}: {text}"
        if m.parsed and m.parsed.price_proposal is not None:
            line += f" [Proposed: {format_price(m.parsed.price_proposal)}]"
        lines.append(line)
    return "\n".join(lines)


def is_price_stalemate(messages: Sequence[MessageRecord]) -> bool:
    """Both agents repeated their previous price, so further turns cannot converge."""
    for role in (MessageRole.BUYER_AGENT, MessageRole.SELLER_AGENT):
        prices = [
            m.parsed.price_proposal
            for m in messages
            if m.role == role and m.parsed is not None and m.parsed.price_proposal is not None
        ]
        if len(prices) < 2 or prices[-1] != prices[-2]:
            return False
    return True
