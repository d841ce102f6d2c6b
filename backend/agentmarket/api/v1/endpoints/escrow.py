"""
Escrow endpoints.

WHAT: Record confirmed settlement transactions and read escrow records
WHY: Escrow progress moves the negotiation through its settlement states
HOW: Escrow manager translation table; 404/409/400 via exception handlers
"""

from fastapi import APIRouter, Query

from ....core.escrow_manager import escrow_manager
from ....models.api_schemas import EscrowActionRequest, EscrowActionResponse, EscrowResponse

router = APIRouter()


@router.post("/escrow", response_model=EscrowActionResponse)
async def escrow_action(request: EscrowActionRequest):
    """
    Apply one escrow action.

    Actions: create, deposit, confirm, flag, update_price.
    """
    result = escrow_manager.apply_action(
        request.negotiation_id,
        request.action,
        tx_hash=request.tx_hash,
        item_id=request.item_id,
        contract_address=request.contract_address,
    )
    return EscrowActionResponse(**result)


@router.get("/escrow", response_model=EscrowResponse)
async def get_escrow(negotiation_id: str = Query(..., min_length=1)):
    return EscrowResponse(escrow=escrow_manager.get_escrow(negotiation_id))
