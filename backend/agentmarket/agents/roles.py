"""
Acting-role dispatch table.

WHAT: Per-role prompt builder, demo rules and hand-off target
WHY: Buyer and seller differ only in these three things
HOW: Frozen dataclass entries keyed by BallOwner
"""

from dataclasses import dataclass
from typing import Callable, List

from ..core.models import BallOwner, MessageRole
from ..llm.types import ChatMessage
from ..models.negotiation import OrchestrationContext, ParsedMessage
from .demo_agent import demo_buyer_turn, demo_seller_turn
from .prompts import build_buyer_prompt, build_seller_prompt


@dataclass(frozen=True)
class AgentRole:
    role: MessageRole
    ball: BallOwner
    other_ball: BallOwner
    build_prompt: Callable[[OrchestrationContext], List[ChatMessage]]
    demo_turn: Callable[[OrchestrationContext], ParsedMessage]


ROLES = {
    BallOwner.BUYER: AgentRole(
        role=MessageRole.BUYER_AGENT,
        ball=BallOwner.BUYER,
        other_ball=BallOwner.SELLER,
        build_prompt=build_buyer_prompt,
        demo_turn=demo_buyer_turn,
    ),
    BallOwner.SELLER: AgentRole(
        role=MessageRole.SELLER_AGENT,
        ball=BallOwner.SELLER,
        other_ball=BallOwner.BUYER,
        build_prompt=build_seller_prompt,
        demo_turn=demo_seller_turn,
    ),
}

# Where the ball goes after a human answers an agent of this role
BALL_FOR_ROLE = {
    MessageRole.BUYER_AGENT: BallOwner.BUYER,
    MessageRole.SELLER_AGENT: BallOwner.SELLER,
}
