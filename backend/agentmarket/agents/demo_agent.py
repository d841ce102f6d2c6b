"""
Deterministic demo agents.

WHAT: Rule-based buyer and seller turns used when no reasoning backend is configured
WHY: The whole negotiation flow must run offline and reproducibly
HOW: Pure rules over listing, constraints and history; output is serialized JSON
"""

from typing import Optional

from ..core.models import MessageRole
from ..models.negotiation import OrchestrationContext, ParsedMessage, UserPrompt
from ..services.agreement_detector import last_price_from
from .history import buyer_turn_number, effective_min_price, format_price, is_discovery_turn

DISCOVERY_QUESTIONS = (
    "Could you tell me about the item's history? Has it ever needed repairs?",
    "Why are you selling it, and are there any issues not mentioned in the listing?",
    "How old is it, and how heavily has it been used?",
)


def _buyer_price(ctx: OrchestrationContext) -> float:
    ask = ctx.listing.ask_price
    max_price = ctx.buy_agent.max_price
    own_last = last_price_from(ctx.messages, MessageRole.BUYER_AGENT)
    seller_last = last_price_from(ctx.messages, MessageRole.SELLER_AGENT)

    if own_last is None:
        return min(round(ask * 0.75), max_price)
    if seller_last is not None:
        return min(round(seller_last * 1.05), max_price)
    return own_last


def demo_buyer_turn(ctx: OrchestrationContext) -> ParsedMessage:
    turn = buyer_turn_number(ctx.messages)

    if is_discovery_turn(turn):
        return ParsedMessage(
            answer=DISCOVERY_QUESTIONS[turn - 1],
            status_message="Asking a question",
            price_proposal=None,
        )

    opening = last_price_from(ctx.messages, MessageRole.BUYER_AGENT) is None
    price = _buyer_price(ctx)
    if opening:
        answer = (
            f"Thanks for the answers. Given the condition notes on this {ctx.listing.title}, "
            f"I'd like to start at {format_price(price)}."
        )
        status = f"Opening offer: {format_price(price)}"
    elif price >= ctx.buy_agent.max_price:
        answer = f"{format_price(price)} is as high as I can go."
        status = f"Final offer: {format_price(price)}"
    else:
        answer = f"I can go up to {format_price(price)}, but that's getting close to my limit."
        status = f"Raised to {format_price(price)}"

    return ParsedMessage(answer=answer, status_message=status, price_proposal=price)


def demo_seller_turn(ctx: OrchestrationContext) -> ParsedMessage:
    ask = ctx.listing.ask_price
    buyer_last = last_price_from(ctx.messages, MessageRole.BUYER_AGENT)
    min_price: Optional[float] = effective_min_price(ctx)

    if buyer_last is None:
        return ParsedMessage(
            answer=(
                f"Thank you for your interest. The asking price of {format_price(ask)} "
                "reflects the item's quality."
            ),
            status_message=f"Holding at {format_price(ask)}",
            price_proposal=ask,
        )

    if min_price is None and buyer_last < ask:
        return ParsedMessage(
            answer="Let me check with the owner before I respond to your offer.",
            status_message="Asking seller for a minimum",
            price_proposal=None,
            user_prompt=UserPrompt(
                target="seller",
                question=(
                    f"The buyer offered {format_price(buyer_last)} against your ask of "
                    f"{format_price(ask)}. What is the lowest dollar amount you will accept?"
                ),
                choices=[],
                kind="min_price",
            ),
        )

    if min_price is not None and buyer_last < min_price:
        return ParsedMessage(
            answer=f"I can't go that low. The best I can do is {format_price(min_price)}.",
            status_message=f"Countered at {format_price(min_price)}",
            price_proposal=min_price,
        )

    price = round(buyer_last + (ask - buyer_last) * 0.5, 2)
    return ParsedMessage(
        answer=f"I appreciate the offer. I could meet you at {format_price(price)}.",
        status_message=f"Countered at {format_price(price)}",
        price_proposal=price,
    )
