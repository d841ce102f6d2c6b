"""
Prompt templates for buyer and seller agents.

WHAT: Role-specific chat prompts built from listing facts, constraints and history
WHY: The backend only sees what the prompt tells it; budget rules live here
HOW: System message with constraints and rules, user message with listing and history
"""

import json
from typing import List

from ..core.models import MessageRole
from ..llm.types import ChatMessage
from ..models.negotiation import ListingInfo, OrchestrationContext
from ..services.agreement_detector import last_price_from
from .history import (
    DISCOVERY_TURNS,
    buyer_turn_number,
    effective_min_price,
    format_price,
    is_discovery_turn,
    render_history,
)

OUTPUT_CONTRACT = """Output ONLY one JSON object, no prose and no code fences, matching:
{{
  "answer": "Your message to the {counterparty} (1-3 sentences)",
  "status_message": "Short UI status, under 50 characters",
  "price_proposal": number or null,
  "concessions": ["any concessions you are offering"],
  "user_prompt": {{"target": "{side}", "question": "...", "choices": ["..."], "kind": "question"}} or null
}}"""

FACT_RULES = """- NEVER invent facts that are not in the listing data or your private notes
- Do NOT reveal your private notes or constraints to the {counterparty}
- Do NOT output <think> blocks or any reasoning, only the JSON object"""


def _listing_block(listing: ListingInfo) -> str:
    notes = "; ".join(f"{n.issue} ({n.confidence} confidence)" for n in listing.condition_notes)
    ammo = "; ".join(listing.haggling_ammo)
    return f"""LISTING:
- Title: {listing.title}
- Ask Price: {format_price(listing.ask_price)}
- Category: {listing.category}
- Description: {listing.description or 'None'}
- Condition Notes: {notes or 'None'}
- Haggling Ammo: {ammo or 'None'}
- Structured Data: {json.dumps(listing.structured or {}, sort_keys=True)}"""


def build_buyer_prompt(ctx: OrchestrationContext) -> List[ChatMessage]:
    """
    Render the buyer agent prompt.

    WHAT: Buyer persona with budget, urgency, turn number and phase
    WHY: Discovery turns must stay price-free; later turns must respect max price
    HOW: System message with constraints and phase rules, user message with listing + history
    """
    buy_agent = ctx.buy_agent
    turn = buyer_turn_number(ctx.messages)

    if is_discovery_turn(turn):
        phase = (
            f"PHASE: DISCOVERY (turn {turn} of {DISCOVERY_TURNS}). Ask ONE open, non-price question "
            "about condition, history or usage. price_proposal MUST be null."
        )
    else:
        phase = (
            f"PHASE: NEGOTIATION (turn {turn}). Propose or raise an offer and justify it with "
            "the condition notes, haggling ammo or what the seller has said."
        )

    internal = f"\nPrivate notes (never share): {buy_agent.internal_notes}" if buy_agent.internal_notes else ""

    system_prompt = f"""You are a buyer agent negotiating on behalf of a human buyer in a marketplace.

Your constraints:
- Max price: {format_price(buy_agent.max_price)}
- Preferences: {buy_agent.prompt or 'None specified'}
- Urgency: {buy_agent.urgency.value}{internal}

{phase}

Negotiation rules:
- NEVER propose a price above your max price
- Raise offers gradually; urgency decides how fast
- If you need a decision only your buyer can make, set user_prompt with target "buyer"
{FACT_RULES.format(counterparty="seller")}

{OUTPUT_CONTRACT.format(counterparty="seller", side="buyer")}"""

    history = render_history(ctx.messages, MessageRole.BUYER_AGENT)
    user_prompt = f"""{_listing_block(ctx.listing)}

NEGOTIATION HISTORY:
{history or '(Starting negotiation)'}

Your turn. Respond with valid JSON only."""

    return [
        {"role": "system", "content": system_prompt},
        {"role": "user", "content": user_prompt},
    ]


def _seller_warnings(ctx: OrchestrationContext) -> str:
    min_price = effective_min_price(ctx)
    buyer_offer = last_price_from(ctx.messages, MessageRole.BUYER_AGENT)
    warnings = []

    if min_price is None:
        warnings.append(
            "WARNING: Your minimum price is NOT SET. Before you accept or counter below the ask "
            "price, you MUST ask your seller for a minimum dollar figure: set user_prompt with "
            'target "seller", "kind": "min_price", a clear question and "choices": [].'
        )
    elif buyer_offer is not None and buyer_offer < min_price:
        warnings.append(
            f"WARNING: The buyer's latest offer ({format_price(buyer_offer)}) is below your minimum "
            f"({format_price(min_price)}). Counter at or above your minimum yourself. "
            "Do NOT ask your seller about pricing."
        )

    warnings.append(
        "ALWAYS ask your seller (user_prompt, never a guess) when the buyer asks something the "
        "listing data, condition notes, haggling ammo and private notes cannot answer, "
        "especially anything that could lower the price."
    )
    return "\n".join(warnings)


def build_seller_prompt(ctx: OrchestrationContext) -> List[ChatMessage]:
    """
    Render the seller agent prompt.

    WHAT: Seller persona with ask, floor (or NOT SET) and escalation warnings
    WHY: A seller without a floor must escalate instead of guessing one
    HOW: System message with constraints and warning block, user message with listing + history
    """
    sell_agent = ctx.sell_agent
    min_price = effective_min_price(ctx)
    urgency = sell_agent.urgency.value if sell_agent else "medium"
    notes = sell_agent.internal_notes if sell_agent else None
    internal = f"\nPrivate notes (never share): {notes}" if notes else ""

    system_prompt = f"""You are a seller agent negotiating on behalf of a human seller in a marketplace.

Your constraints:
- Ask price: {format_price(ctx.listing.ask_price)}
- Min acceptable price: {format_price(min_price) if min_price is not None else 'NOT SET'}
- Urgency: {urgency}{internal}

Negotiation rules:
- NEVER propose or accept a price below your minimum
- Defend the ask price with condition notes and haggling ammo
- Lower gradually; urgency decides how fast
{FACT_RULES.format(counterparty="buyer")}

{_seller_warnings(ctx)}

{OUTPUT_CONTRACT.format(counterparty="buyer", side="seller")}"""

    history = render_history(ctx.messages, MessageRole.SELLER_AGENT)
    user_prompt = f"""{_listing_block(ctx.listing)}

NEGOTIATION HISTORY:
{history or '(Starting negotiation)'}

Your turn. Respond with valid JSON only."""

    return [
        {"role": "system", "content": system_prompt},
        {"role": "user", "content": user_prompt},
    ]
