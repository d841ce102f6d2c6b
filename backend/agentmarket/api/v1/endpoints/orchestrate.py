"""
Orchestration endpoints.

WHAT: Run one agent step or submit a human reply
WHY: The client drives the negotiation turn by turn (or with auto-continue)
HOW: Thin wrappers over the negotiation manager; errors map via exception handlers
"""

from fastapi import APIRouter

from ....core.negotiation_manager import negotiation_manager
from ....models.api_schemas import (
    HumanResponseRequest,
    HumanResponseResponse,
    StepRequest,
    StepResponse,
)

router = APIRouter()


@router.post("/orchestrate/step", response_model=StepResponse)
async def run_step(request: StepRequest):
    """
    Execute one agent turn.

    404 unknown negotiation, 400 invalid state or awaiting human,
    409 step already processing, 502/503 backend failure.
    """
    outcome = await negotiation_manager.run_step(
        request.negotiation_id,
        auto_continue=request.auto_continue,
    )
    return StepResponse(
        message=outcome.message,
        negotiation=outcome.negotiation,
        is_agreed=outcome.is_agreed,
    )


@router.post("/orchestrate/human-response", response_model=HumanResponseResponse)
async def human_response(request: HumanResponseRequest):
    """Answer the pending agent question and hand the ball back to that agent."""
    outcome = await negotiation_manager.submit_human_response(
        request.negotiation_id,
        request.response,
        target=request.target,
        auto_continue=request.auto_continue,
    )
    return HumanResponseResponse(message=outcome.message, negotiation=outcome.negotiation)
