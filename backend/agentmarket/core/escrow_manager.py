"""
Escrow lifecycle controller.

WHAT: Apply confirmed settlement transactions to a negotiation
WHY: Escrow progress drives the negotiation's state and ball after agreement
HOW: Translation table action -> (required state, tx slot, new state, new ball, event)
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, Optional

from sqlalchemy.orm import Session

from .config import settings
from .database import get_db
from .models import BallOwner, Escrow, EventType, Negotiation, NegotiationState
from ..models.negotiation import NegotiationSnapshot
from ..services.event_log import record_event
from ..services.mock_chain import generate_mock_tx_hash, negotiation_item_id
from ..services.realtime import RealtimeHub, realtime_hub, update_delta
from ..utils.exceptions import (
    EscrowAlreadyExistsError, EscrowNotFoundError, InvalidStateError,
    NegotiationNotFoundError, ValidationError,
)
from ..utils.logger import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class EscrowTransition:
    required_state: NegotiationState
    slot: str
    new_state: NegotiationState
    new_ball: BallOwner
    event: EventType


TRANSITIONS: Dict[str, EscrowTransition] = {
    "create": EscrowTransition(
        NegotiationState.AGREED, "tx_create",
        NegotiationState.ESCROW_CREATED, BallOwner.BUYER, EventType.ESCROW_CREATED,
    ),
    "deposit": EscrowTransition(
        NegotiationState.ESCROW_CREATED, "tx_deposit",
        NegotiationState.FUNDED, BallOwner.BUYER, EventType.ESCROW_FUNDED,
    ),
    "confirm": EscrowTransition(
        NegotiationState.FUNDED, "tx_confirm",
        NegotiationState.CONFIRMED, BallOwner.SELLER, EventType.DELIVERY_CONFIRMED,
    ),
    "flag": EscrowTransition(
        NegotiationState.FUNDED, "tx_flag",
        NegotiationState.FLAGGED, BallOwner.HUMAN, EventType.ISSUE_FLAGGED,
    ),
    "update_price": EscrowTransition(
        NegotiationState.FLAGGED, "tx_update_price",
        NegotiationState.RESOLVED, BallOwner.BUYER, EventType.ISSUE_RESOLVED,
    ),
}


def escrow_to_dict(escrow: Escrow) -> Dict[str, Any]:
    return {
        "id": escrow.id,
        "negotiation_id": escrow.negotiation_id,
        "contract_address": escrow.contract_address,
        "item_id": escrow.item_id,
        "tx_create": escrow.tx_create,
        "tx_deposit": escrow.tx_deposit,
        "tx_confirm": escrow.tx_confirm,
        "tx_flag": escrow.tx_flag,
        "tx_update_price": escrow.tx_update_price,
        "created_at": escrow.created_at.isoformat() if escrow.created_at else None,
    }


class EscrowManager:
    """Single entry point for every escrow transition."""

    def __init__(self, hub: Optional[RealtimeHub] = None):
        self.hub = hub or realtime_hub

    def _resolve_tx_hash(self, tx_hash: Optional[str]) -> str:
        if tx_hash and tx_hash.strip():
            return tx_hash.strip()
        if settings.ESCROW_MOCK_TRANSACTIONS:
            return generate_mock_tx_hash()
        raise ValidationError("tx_hash is required", [{"field": "tx_hash", "message": "required"}])

    def _find_escrow(self, db: Session, negotiation_id: str) -> Optional[Escrow]:
        return db.query(Escrow).filter(Escrow.negotiation_id == negotiation_id).first()

    def apply_action(
        self,
        negotiation_id: str,
        action: str,
        tx_hash: Optional[str] = None,
        item_id: Optional[str] = None,
        contract_address: Optional[str] = None,
    ) -> Dict[str, Any]:
        """
        Record one confirmed transaction and advance the negotiation.

        Returns:
            {"negotiation": snapshot dict, "escrow": escrow dict}

        Raises:
            ValidationError: unknown action or missing tx_hash
            NegotiationNotFoundError: unknown negotiation
            EscrowNotFoundError: non-create action before create
            EscrowAlreadyExistsError: second create
            InvalidStateError: wrong negotiation state or slot already written
        """
        transition = TRANSITIONS.get(action)
        if transition is None:
            raise ValidationError(
                f"Unknown escrow action: {action}",
                [{"field": "action", "message": f"must be one of {', '.join(TRANSITIONS)}"}],
            )
        tx = self._resolve_tx_hash(tx_hash)

        with get_db() as db:
            negotiation = db.get(Negotiation, negotiation_id)
            if negotiation is None:
                raise NegotiationNotFoundError(negotiation_id)

            escrow = self._find_escrow(db, negotiation_id)
            if action == "create":
                if escrow is not None:
                    raise EscrowAlreadyExistsError(negotiation_id)
            elif escrow is None:
                raise EscrowNotFoundError(negotiation_id)

            if negotiation.state != transition.required_state:
                raise InvalidStateError(
                    f"Cannot {action} escrow while negotiation is {negotiation.state.value}",
                    current_state=negotiation.state.value,
                    required_state=transition.required_state.value,
                )

            if escrow is None:
                escrow = Escrow(
                    negotiation_id=negotiation_id,
                    contract_address=contract_address or settings.ESCROW_CONTRACT_ADDRESS,
                    item_id=item_id or negotiation_item_id(negotiation_id),
                )
                db.add(escrow)
            elif getattr(escrow, transition.slot):
                raise InvalidStateError(
                    f"Escrow transaction {transition.slot} is already recorded",
                    current_state=negotiation.state.value,
                )

            setattr(escrow, transition.slot, tx)
            negotiation.state = transition.new_state
            negotiation.ball = transition.new_ball
            negotiation.updated_at = datetime.utcnow()
            db.flush()

            record_event(
                db,
                transition.event,
                {
                    "negotiation_id": negotiation_id,
                    "action": action,
                    "tx_hash": tx,
                    "item_id": escrow.item_id,
                    "agreed_price": negotiation.agreed_price,
                },
                negotiation_id=negotiation_id,
                listing_id=negotiation.listing_id,
            )

            snapshot = NegotiationSnapshot.model_validate(negotiation)
            escrow_data = escrow_to_dict(escrow)

        logger.info(
            f"Escrow {action} on {negotiation_id}: state={snapshot.state.value}, ball={snapshot.ball.value}"
        )
        self.hub.publish(negotiation_id, update_delta(snapshot, escrow=escrow_data))
        return {"negotiation": snapshot.model_dump(mode="json"), "escrow": escrow_data}

    def get_escrow(self, negotiation_id: str) -> Dict[str, Any]:
        with get_db() as db:
            escrow = self._find_escrow(db, negotiation_id)
            if escrow is None:
                raise EscrowNotFoundError(negotiation_id)
            return escrow_to_dict(escrow)


# Singleton instance
escrow_manager = EscrowManager()
