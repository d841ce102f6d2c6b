"""
In-process realtime fan-out.

WHAT: Per-negotiation subscriber registry that pushes state deltas
WHY: Connected clients see every transition without polling
HOW: One bounded asyncio.Queue per subscriber; a full queue drops the delta
"""

import asyncio
from collections import defaultdict
from typing import Any, Dict, Optional, Set

from ..core.config import settings
from ..models.negotiation import MessageRecord, NegotiationSnapshot
from ..utils.logger import get_logger

logger = get_logger(__name__)


class RealtimeHub:
    """
    Best-effort publish/subscribe keyed by negotiation id.

    Delivery order is preserved per subscriber. A slow subscriber loses
    deltas instead of blocking the publisher; the event log is the
    durable replay path.
    """

    def __init__(self, queue_size: Optional[int] = None):
        self.queue_size = queue_size or settings.REALTIME_QUEUE_SIZE
        self._subscribers: Dict[str, Set[asyncio.Queue]] = defaultdict(set)

    def subscribe(self, negotiation_id: str) -> asyncio.Queue:
        queue: asyncio.Queue = asyncio.Queue(maxsize=self.queue_size)
        self._subscribers[negotiation_id].add(queue)
        logger.debug(f"Subscriber added for {negotiation_id} ({len(self._subscribers[negotiation_id])} total)")
        return queue

    def unsubscribe(self, negotiation_id: str, queue: asyncio.Queue) -> None:
        queues = self._subscribers.get(negotiation_id)
        if not queues:
            return
        queues.discard(queue)
        if not queues:
            del self._subscribers[negotiation_id]
        logger.debug(f"Subscriber removed for {negotiation_id}")

    def subscriber_count(self, negotiation_id: str) -> int:
        return len(self._subscribers.get(negotiation_id, ()))

    def publish(self, negotiation_id: str, delta: Dict[str, Any]) -> int:
        """
        Push a delta to every subscriber of a negotiation.

        Returns:
            Number of subscribers that received it
        """
        delivered = 0
        for queue in list(self._subscribers.get(negotiation_id, ())):
            try:
                queue.put_nowait(delta)
                delivered += 1
            except asyncio.QueueFull:
                logger.warning(f"Dropped {delta.get('type')} delta for slow subscriber on {negotiation_id}")
        return delivered

    def clear(self) -> None:
        self._subscribers.clear()


def update_delta(
    snapshot: NegotiationSnapshot,
    message: Optional[MessageRecord] = None,
    escrow: Optional[dict] = None,
) -> Dict[str, Any]:
    """Build the `update` delta clients apply to their local view."""
    delta: Dict[str, Any] = {
        "type": "update",
        "negotiation": snapshot.model_dump(mode="json"),
    }
    if message is not None:
        delta["message"] = message.model_dump(mode="json")
    if escrow is not None:
        delta["escrow"] = escrow
    return delta


def processing_delta(negotiation_id: str, role: str) -> Dict[str, Any]:
    """Informational delta sent before a possibly slow agent call."""
    return {"type": "processing", "negotiation_id": negotiation_id, "role": role}


# Singleton instance
realtime_hub = RealtimeHub()
