"""
Integration tests for the append-only event log.

WHAT: Test recording, cursor paging and filters
WHY: Polling clients replay every transition through the id cursor
HOW: record_event / list_events against the real SQLite store
"""

import pytest

from agentmarket.core.database import get_db
from agentmarket.core.models import EventType
from agentmarket.services.event_log import event_to_dict, list_events, record_event


def _seed_events(count, **scope):
    with get_db() as db:
        return [
            record_event(db, EventType.BUYER_PROPOSES, {"n": i}, **scope).id
            for i in range(count)
        ]


@pytest.mark.integration
class TestEventLog:
    """Test event log paging."""

    def test_ids_increase(self):
        ids = _seed_events(3)
        assert ids == sorted(ids)
        assert len(set(ids)) == 3

    def test_cursor_pages_forward(self):
        ids = _seed_events(5)
        with get_db() as db:
            page = list_events(db, after_id=ids[1], limit=2)
            assert [e.id for e in page] == ids[2:4]

            rest = list_events(db, after_id=page[-1].id)
            assert [e.id for e in rest] == ids[4:]

            assert list_events(db, after_id=ids[-1]) == []

    def test_without_cursor_returns_recent_page_oldest_first(self):
        ids = _seed_events(5)
        with get_db() as db:
            page = list_events(db, limit=3)
            assert [e.id for e in page] == ids[2:]

    def test_filters(self):
        _seed_events(2, negotiation_id="n1", listing_id="l1")
        _seed_events(3, negotiation_id="n2", listing_id="l1", user_id="u1")
        with get_db() as db:
            record_event(db, EventType.DEAL_AGREED, {}, negotiation_id="n1")

        with get_db() as db:
            assert len(list_events(db, negotiation_id="n1")) == 3
            assert len(list_events(db, listing_id="l1")) == 5
            assert len(list_events(db, user_id="u1")) == 3
            agreed = list_events(db, event_type=EventType.DEAL_AGREED)
            assert [e.negotiation_id for e in agreed] == ["n1"]

    def test_limit_clamped(self):
        _seed_events(3)
        with get_db() as db:
            assert len(list_events(db, limit=0)) == 1

    def test_rolled_back_transaction_records_nothing(self):
        with pytest.raises(RuntimeError):
            with get_db() as db:
                record_event(db, EventType.DEAL_AGREED, {}, negotiation_id="n1")
                raise RuntimeError("step failed")

        with get_db() as db:
            assert list_events(db, negotiation_id="n1") == []

    def test_event_to_dict(self):
        with get_db() as db:
            event = record_event(db, EventType.ESCROW_FUNDED, {"tx_hash": "0x1"}, negotiation_id="n1")
            data = event_to_dict(event)

        assert data["type"] == "escrow_funded"
        assert data["payload"] == {"tx_hash": "0x1"}
        assert data["negotiation_id"] == "n1"
        assert data["created_at"] is not None
