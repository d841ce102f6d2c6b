"""
Per-negotiation SSE stream.

WHAT: Push every state delta of one negotiation to a connected client
WHY: The arena view animates turns as they happen
HOW: init frame from the store, then deltas from a RealtimeHub subscription
"""

import asyncio
import json
from typing import AsyncIterator

from fastapi import APIRouter, Request
from sse_starlette.sse import EventSourceResponse

from ....core.config import settings
from ....core.negotiation_manager import negotiation_manager
from ....services.realtime import realtime_hub
from ....utils.logger import get_logger

logger = get_logger(__name__)

router = APIRouter()


async def negotiation_delta_generator(
    request: Request,
    negotiation_id: str,
    queue: asyncio.Queue,
    init_frame: dict,
) -> AsyncIterator[dict]:
    """
    Yield the init frame, then deltas until the client disconnects.

    The subscription is registered before the init frame is built, so no
    delta published in between is lost.
    """
    try:
        yield {"data": json.dumps(init_frame)}
        while True:
            try:
                delta = await asyncio.wait_for(queue.get(), timeout=settings.SSE_HEARTBEAT_INTERVAL)
            except asyncio.TimeoutError:
                if await request.is_disconnected():
                    break
                continue
            yield {"data": json.dumps(delta)}
    finally:
        realtime_hub.unsubscribe(negotiation_id, queue)
        logger.info(f"SSE stream ended for negotiation {negotiation_id}")


@router.get("/negotiations/{negotiation_id}/stream")
async def stream_negotiation(negotiation_id: str, request: Request):
    """404 for an unknown negotiation; otherwise an event stream of deltas."""
    negotiation = negotiation_manager.get_negotiation(negotiation_id)

    queue = realtime_hub.subscribe(negotiation_id)
    try:
        messages = negotiation_manager.list_messages(negotiation_id)
    except Exception:
        realtime_hub.unsubscribe(negotiation_id, queue)
        raise

    init_frame = {
        "type": "init",
        "negotiation": negotiation.model_dump(mode="json"),
        "messages": [m.model_dump(mode="json") for m in messages],
    }
    logger.info(f"SSE stream started for negotiation {negotiation_id}")
    return EventSourceResponse(
        negotiation_delta_generator(request, negotiation_id, queue, init_frame),
        ping=settings.SSE_HEARTBEAT_INTERVAL,
    )
