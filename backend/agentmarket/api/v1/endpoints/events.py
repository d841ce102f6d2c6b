"""
Event log endpoints.

WHAT: Page through the durable event log, or poll it as an SSE stream
WHY: Clients that cannot hold a per-negotiation stream still see every transition
HOW: Integer id cursor (after_id); the stream polls every EVENT_POLL_INTERVAL seconds
"""

import asyncio
import json
from typing import AsyncIterator, Optional

from fastapi import APIRouter, Query, Request
from sse_starlette.sse import EventSourceResponse

from ....core.config import settings
from ....core.database import get_db
from ....core.models import EventType
from ....models.api_schemas import EventListResponse
from ....services.event_log import event_to_dict, list_events
from ....utils.logger import get_logger

logger = get_logger(__name__)

router = APIRouter()


@router.get("/events", response_model=EventListResponse)
async def get_events(
    after_id: Optional[int] = Query(None, ge=0),
    negotiation_id: Optional[str] = Query(None),
    listing_id: Optional[str] = Query(None),
    user_id: Optional[str] = Query(None),
    event_type: Optional[EventType] = Query(None, alias="type"),
    limit: int = Query(settings.EVENT_PAGE_LIMIT, ge=1, le=200),
):
    """Events in ascending id order; pass the returned next_cursor as after_id."""
    with get_db() as db:
        rows = list_events(
            db,
            after_id=after_id,
            negotiation_id=negotiation_id,
            listing_id=listing_id,
            user_id=user_id,
            event_type=event_type,
            limit=limit,
        )
        events = [event_to_dict(row) for row in rows]

    next_cursor = events[-1]["id"] if events else after_id
    return EventListResponse(events=events, next_cursor=next_cursor)


async def event_poll_generator(
    request: Request,
    negotiation_id: Optional[str],
    listing_id: Optional[str],
) -> AsyncIterator[dict]:
    """
    Yield an init frame with the latest page, then new events as they appear.

    Polls the store, so it also sees events written by other processes.
    """
    with get_db() as db:
        initial = [
            event_to_dict(e)
            for e in list_events(
                db, negotiation_id=negotiation_id, listing_id=listing_id, limit=settings.EVENT_PAGE_LIMIT
            )
        ]
    cursor = initial[-1]["id"] if initial else 0
    yield {"data": json.dumps({"type": "init", "events": initial})}

    try:
        while not await request.is_disconnected():
            await asyncio.sleep(settings.EVENT_POLL_INTERVAL)
            with get_db() as db:
                rows = list_events(
                    db,
                    after_id=cursor,
                    negotiation_id=negotiation_id,
                    listing_id=listing_id,
                    limit=settings.EVENT_PAGE_LIMIT,
                )
                fresh = [event_to_dict(e) for e in rows]
            for event in fresh:
                cursor = event["id"]
                yield {"data": json.dumps({"type": "event", "event": event})}
    finally:
        logger.info("Event stream closed")


@router.get("/events/stream")
async def stream_events(
    request: Request,
    negotiation_id: Optional[str] = Query(None),
    listing_id: Optional[str] = Query(None),
):
    return EventSourceResponse(
        event_poll_generator(request, negotiation_id, listing_id),
        ping=settings.SSE_HEARTBEAT_INTERVAL,
    )
