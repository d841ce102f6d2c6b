"""
Step orchestrator.

WHAT: Drive exactly one agent turn from a loaded context
WHY: Keeps turn logic free of persistence so both content sources share it
HOW: Role dispatch -> content (backend or demo) -> parse -> agreement -> next ball
"""

import asyncio
import json
from typing import Optional

from ..core.config import settings
from ..core.models import BallOwner, MessageRole
from ..llm.provider import LLMProvider
from ..llm.types import ProviderTimeoutError
from ..models.negotiation import OrchestrationContext, OrchestrationResult, ParsedMessage
from ..services.agreement_detector import detect_agreement
from ..utils.exceptions import InvalidStateError
from ..utils.logger import get_logger
from .history import effective_min_price
from .response_parser import parse_agent_response
from .roles import AgentRole, ROLES

logger = get_logger(__name__)


def acting_role(ctx: OrchestrationContext) -> AgentRole:
    """Role entry for the current ball; a human-held ball cannot be stepped."""
    ball = ctx.negotiation.ball
    if ball == BallOwner.HUMAN:
        raise InvalidStateError(
            "Negotiation is waiting for a human; no agent can act",
            current_state=ctx.negotiation.state.value,
            ball=ball.value,
        )
    return ROLES[ball]


def clamp_to_bounds(ctx: OrchestrationContext, agent: AgentRole, parsed: ParsedMessage) -> ParsedMessage:
    """
    Clamp the acting side's proposal to its own budget.

    Buyers never go above max_price; sellers never go below the effective
    min price once one is known. Prompts ask for this, models do not always
    comply.
    """
    price = parsed.price_proposal
    if price is None:
        return parsed

    if agent.role == MessageRole.BUYER_AGENT:
        bound = ctx.buy_agent.max_price
        clamped = min(price, bound)
    else:
        bound = effective_min_price(ctx)
        clamped = price if bound is None else max(price, bound)

    if clamped == price:
        return parsed
    logger.warning(
        f"Clamped {agent.role.value} proposal for negotiation {ctx.negotiation.id}: "
        f"{price} -> {clamped}"
    )
    return parsed.model_copy(update={"price_proposal": clamped})


def finalize_turn(
    ctx: OrchestrationContext,
    agent: AgentRole,
    raw: str,
    parsed: ParsedMessage,
) -> OrchestrationResult:
    """
    Shared post-processing for both content sources.

    The proposal is clamped to the acting side's budget first. Agreement
    hands the ball to the seller, who opens escrow. Otherwise a user_prompt
    hands it to a human, else to the other agent.
    """
    parsed = clamp_to_bounds(ctx, agent, parsed)
    is_agreed, agreed_price = detect_agreement(ctx.messages, parsed, agent.role)

    if is_agreed:
        new_ball = BallOwner.SELLER
    elif parsed.user_prompt is not None:
        new_ball = BallOwner.HUMAN
    else:
        new_ball = agent.other_ball

    return OrchestrationResult(
        role=agent.role,
        raw=raw,
        parsed=parsed,
        new_ball=new_ball,
        is_agreed=is_agreed,
        agreed_price=agreed_price,
    )


async def run_orchestration_step(
    ctx: OrchestrationContext,
    provider: LLMProvider,
    *,
    timeout: Optional[float] = None,
) -> OrchestrationResult:
    """
    Run one backend-driven turn.

    Raises:
        InvalidStateError: ball is with a human
        ProviderTimeoutError: backend exceeded the step timeout
        LLMProviderError: any other backend transport failure
    """
    agent = acting_role(ctx)
    messages = agent.build_prompt(ctx)
    limit = timeout if timeout is not None else settings.AGENT_STEP_TIMEOUT

    logger.debug(
        f"Backend step for negotiation {ctx.negotiation.id} ({agent.role.value}, "
        f"{len(ctx.messages)} history messages)"
    )

    try:
        result = await asyncio.wait_for(
            provider.generate(
                messages,
                temperature=settings.LLM_DEFAULT_TEMPERATURE,
                max_tokens=settings.LLM_DEFAULT_MAX_TOKENS,
            ),
            timeout=limit,
        )
    except asyncio.TimeoutError as e:
        logger.error(f"Backend step timed out after {limit}s for negotiation {ctx.negotiation.id}")
        raise ProviderTimeoutError(f"Agent step timed out after {limit} seconds") from e

    parsed = parse_agent_response(result.text, agent.role)
    return finalize_turn(ctx, agent, result.text, parsed)


def generate_demo_response(ctx: OrchestrationContext) -> OrchestrationResult:
    """Run one deterministic turn; raw is the serialized parsed message."""
    agent = acting_role(ctx)
    parsed = agent.demo_turn(ctx)
    raw = json.dumps(parsed.model_dump(mode="json"), indent=2)
    return finalize_turn(ctx, agent, raw, parsed)
