"""
Agreement detection.

WHAT: Decide whether a new proposal closes the deal, and at what price
WHY: Convergence is one rule shared by the backend and demo content sources
HOW: Compare against the counterparty's latest priced message; counterparty price wins
"""

from typing import Optional, Sequence

from ..core.models import MessageRole
from ..models.negotiation import MessageRecord, ParsedMessage

COUNTERPARTY = {
    MessageRole.BUYER_AGENT: MessageRole.SELLER_AGENT,
    MessageRole.SELLER_AGENT: MessageRole.BUYER_AGENT,
}


def last_price_from(messages: Sequence[MessageRecord], role: MessageRole) -> Optional[float]:
    """Latest price_proposal among messages of `role`, or None."""
    for message in reversed(messages):
        if message.role == role and message.parsed and message.parsed.price_proposal is not None:
            return message.parsed.price_proposal
    return None


def detect_agreement(
    messages: Sequence[MessageRecord],
    new_message: ParsedMessage,
    role: MessageRole,
) -> tuple[bool, Optional[float]]:
    """
    Check the acting agent's new proposal against the counterparty's standing price.

    A buyer accepts by matching or beating the seller's price; a seller
    accepts by matching or undercutting the buyer's. Either way the agreed
    price is the counterparty's, so the buyer never pays more than the
    seller asked.

    Returns:
        (is_agreed, agreed_price)
    """
    new_price = new_message.price_proposal
    if new_price is None:
        return False, None

    standing = last_price_from(messages, COUNTERPARTY[role])
    if standing is None:
        return False, None

    if role == MessageRole.BUYER_AGENT and new_price >= standing:
        return True, standing
    if role == MessageRole.SELLER_AGENT and new_price <= standing:
        return True, standing
    return False, None
