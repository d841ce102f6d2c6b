"""
Append-only event log.

WHAT: Record and page through AppEvent rows
WHY: Clients without a live connection replay activity with an id cursor
HOW: Inserts share the caller's session (same transaction as the state change)
"""

from typing import Any, Dict, List, Optional

from sqlalchemy.orm import Session

from ..core.models import AppEvent, EventType
from ..utils.logger import get_logger

logger = get_logger(__name__)

MAX_PAGE_LIMIT = 200


def record_event(
    db: Session,
    event_type: EventType,
    payload: Optional[Dict[str, Any]] = None,
    *,
    negotiation_id: Optional[str] = None,
    listing_id: Optional[str] = None,
    user_id: Optional[str] = None,
) -> AppEvent:
    """Add an event to the session; the caller's transaction commits it."""
    event = AppEvent(
        type=event_type,
        payload=payload or {},
        negotiation_id=negotiation_id,
        listing_id=listing_id,
        user_id=user_id,
    )
    db.add(event)
    db.flush()
    logger.debug(f"Event {event.id} recorded: {event_type.value} (negotiation={negotiation_id})")
    return event


def event_to_dict(event: AppEvent) -> Dict[str, Any]:
    return {
        "id": event.id,
        "type": event.type.value if isinstance(event.type, EventType) else event.type,
        "payload": event.payload or {},
        "user_id": event.user_id,
        "negotiation_id": event.negotiation_id,
        "listing_id": event.listing_id,
        "created_at": event.created_at.isoformat() if event.created_at else None,
    }


def list_events(
    db: Session,
    *,
    after_id: Optional[int] = None,
    negotiation_id: Optional[str] = None,
    listing_id: Optional[str] = None,
    user_id: Optional[str] = None,
    event_type: Optional[EventType] = None,
    limit: int = 50,
) -> List[AppEvent]:
    """
    Page through events in ascending id order.

    With a cursor, returns the next `limit` events after it. Without one,
    returns the most recent `limit` events, still oldest first.
    """
    limit = max(1, min(limit, MAX_PAGE_LIMIT))
    query = db.query(AppEvent)

    if negotiation_id:
        query = query.filter(AppEvent.negotiation_id == negotiation_id)
    if listing_id:
        query = query.filter(AppEvent.listing_id == listing_id)
    if user_id:
        query = query.filter(AppEvent.user_id == user_id)
    if event_type:
        query = query.filter(AppEvent.type == event_type)

    if after_id is not None:
        return query.filter(AppEvent.id > after_id).order_by(AppEvent.id.asc()).limit(limit).all()

    recent = query.order_by(AppEvent.id.desc()).limit(limit).all()
    return list(reversed(recent))
