"""Tests for the in-memory ticket store and the re-analysis sync."""

from datetime import datetime, timedelta, timezone

import pytest

from categorizer.batch import BatchOrchestrator
from categorizer.store import InMemoryTicketStore, StoredTicket, sync_pending_tickets

NOW = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)


def _ticket(ticket_id, hours_old, **kw):
    return StoredTicket(
        ticket_id=ticket_id,
        title=kw.pop("title", "Payment failed"),
        description=kw.pop("description", "card declined at checkout"),
        created_at=NOW - timedelta(hours=hours_old),
        **kw,
    )


@pytest.fixture
def store():
    return InMemoryTicketStore([
        _ticket("fresh", 1),
        _ticket("oldest", 50),
        _ticket("closed", 60, status="closed"),
        _ticket("analysed-recently", 40, ai_category="Billing", last_ai_analysis=NOW - timedelta(hours=2)),
        _ticket("analysed-stale", 30, ai_category="Billing", last_ai_analysis=NOW - timedelta(hours=30)),
        _ticket("pending", 10, status="PENDING"),
    ])


def test_fetch_pending_oldest_first(store):
    pending = store.fetch_tickets_for_analysis(now=NOW)
    assert [t.ticket_id for t in pending] == ["oldest", "analysed-stale", "pending", "fresh"]


def test_fetch_respects_limit(store):
    assert [t.ticket_id for t in store.fetch_tickets_for_analysis(limit=2, now=NOW)] == ["oldest", "analysed-stale"]


def test_record_analysis(store):
    store.record_analysis("fresh", "Billing", 0.9, "Normal", 0.8, NOW)
    t = store.get("fresh")
    assert t.ai_category == "Billing"
    assert t.ai_confidence == 0.9
    assert t.ai_priority == "Normal"
    assert t.last_ai_analysis == NOW
    assert "fresh" not in [p.ticket_id for p in store.fetch_tickets_for_analysis(now=NOW)]


def test_record_unknown_ticket(store):
    with pytest.raises(KeyError):
        store.record_analysis("missing", "Billing", 0.9, "Normal", 0.8, NOW)


def test_sync_pending_tickets(analyzer):
    now = datetime.now(timezone.utc)
    store = InMemoryTicketStore([
        StoredTicket("a", "Refund not received", "refund for duplicate charge", now - timedelta(hours=3)),
        StoredTicket("b", "URGENT app crash", "crash on startup for everyone", now - timedelta(hours=2)),
        StoredTicket("c", "", "", now - timedelta(hours=1)),
    ])
    batch = sync_pending_tickets(store, BatchOrchestrator(analyzer))

    assert batch.total_processed == 3
    assert batch.success_count == 2
    assert store.get("a").ai_category == "Billing"
    assert store.get("a").ai_priority == "Normal"
    assert store.get("b").ai_priority == "High"
    assert 0.0 <= store.get("b").ai_priority_confidence <= 1.0
    assert store.get("c").ai_category is None
    assert [t.ticket_id for t in store.fetch_tickets_for_analysis()] == ["c"]
