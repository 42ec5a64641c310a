"""Ticket-store collaboration: which tickets need analysis, and where results go.

The real ticket store lives in another service.  :class:`TicketStore` is the
contract the categorizer relies on; :class:`InMemoryTicketStore` implements
it for local runs and tests.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, replace
from datetime import datetime, timedelta, timezone
from typing import Optional, Protocol

from categorizer.batch import BatchOrchestrator
from categorizer.config import REANALYSIS_LIMIT, REANALYSIS_MAX_AGE_HOURS, URGENT_TAG
from categorizer.schemas import AnalysisRequest, BatchRequest, BatchResult

logger = logging.getLogger(__name__)

OPEN_STATUSES = {"open", "in_progress", "pending"}


@dataclass
class StoredTicket:
    ticket_id: str
    title: str
    description: str
    created_at: datetime
    status: str = "open"
    customer_email: Optional[str] = None
    category: Optional[str] = None
    sub_category: Optional[str] = None
    tags: Optional[str] = None
    attachments: Optional[str] = None
    ai_category: Optional[str] = None
    ai_confidence: Optional[float] = None
    ai_priority: Optional[str] = None
    ai_priority_confidence: Optional[float] = None
    last_ai_analysis: Optional[datetime] = None

    def to_request(self) -> AnalysisRequest:
        return AnalysisRequest(
            ticket_id=self.ticket_id,
            title=self.title,
            description=self.description,
            customer_email=self.customer_email,
            category=self.category,
            sub_category=self.sub_category,
            created_at=self.created_at,
            tags=self.tags,
            attachments=self.attachments,
        )


class TicketStore(Protocol):
    def fetch_tickets_for_analysis(
        self, limit: int = REANALYSIS_LIMIT, now: datetime | None = None,
    ) -> list[StoredTicket]:
        """Open tickets with no AI category or a stale analysis, oldest first."""
        ...

    def record_analysis(
        self,
        ticket_id: str,
        category: str,
        confidence: float,
        priority: str,
        priority_confidence: float,
        analyzed_at: datetime,
    ) -> None:
        ...


def needs_analysis(ticket: StoredTicket, now: datetime, max_age: timedelta) -> bool:
    if ticket.status.lower() not in OPEN_STATUSES:
        return False
    if ticket.ai_category is None or ticket.last_ai_analysis is None:
        return True
    return ticket.last_ai_analysis < now - max_age


class InMemoryTicketStore:
    def __init__(self, tickets: list[StoredTicket] | None = None) -> None:
        self._tickets: dict[str, StoredTicket] = {t.ticket_id: t for t in tickets or []}
        self._lock = threading.Lock()

    def add(self, ticket: StoredTicket) -> None:
        with self._lock:
            self._tickets[ticket.ticket_id] = ticket

    def get(self, ticket_id: str) -> StoredTicket | None:
        with self._lock:
            return self._tickets.get(ticket_id)

    def fetch_tickets_for_analysis(
        self, limit: int = REANALYSIS_LIMIT, now: datetime | None = None,
    ) -> list[StoredTicket]:
        now = now or datetime.now(timezone.utc)
        max_age = timedelta(hours=REANALYSIS_MAX_AGE_HOURS)
        with self._lock:
            pending = [t for t in self._tickets.values() if needs_analysis(t, now, max_age)]
        pending.sort(key=lambda t: t.created_at)
        return pending[:limit]

    def record_analysis(
        self,
        ticket_id: str,
        category: str,
        confidence: float,
        priority: str,
        priority_confidence: float,
        analyzed_at: datetime,
    ) -> None:
        with self._lock:
            ticket = self._tickets.get(ticket_id)
            if ticket is None:
                raise KeyError(ticket_id)
            self._tickets[ticket_id] = replace(
                ticket,
                ai_category=category,
                ai_confidence=confidence,
                ai_priority=priority,
                ai_priority_confidence=priority_confidence,
                last_ai_analysis=analyzed_at,
            )


def sync_pending_tickets(
    store: TicketStore,
    orchestrator: BatchOrchestrator,
    *,
    limit: int = REANALYSIS_LIMIT,
) -> BatchResult:
    """Analyse every ticket the store reports as pending and push results back.

    Priority is ``"High"`` for results tagged urgent, else ``"Normal"``; its
    confidence is the result's overall confidence.
    """
    tickets = store.fetch_tickets_for_analysis(limit=limit)
    batch = orchestrator.analyze_batch(BatchRequest(
        tickets=[t.to_request() for t in tickets],
        max_batch_size=max(limit, 1),
    ))

    for result in batch.results:
        priority = "High" if URGENT_TAG in result.suggested_tags else "Normal"
        try:
            store.record_analysis(
                result.ticket_id,
                result.predicted_category,
                result.category_confidence,
                priority,
                result.overall_confidence,
                result.analysis_timestamp,
            )
        except Exception:
            logger.exception("Could not record analysis for ticket %s", result.ticket_id)

    logger.info(
        "Re-analysis sync: %d pending, %d analysed, %d failed",
        len(tickets), batch.success_count, batch.failure_count,
    )
    return batch
