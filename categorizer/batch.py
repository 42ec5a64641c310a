"""Batch orchestration with per-item failure isolation.

Items are fanned out over a bounded thread pool.  Each task carries its
input index and the successes are reassembled in input order, whatever
order the workers finish in.
"""

from __future__ import annotations

import logging
import os
from concurrent.futures import ThreadPoolExecutor, as_completed
from datetime import datetime, timezone

from categorizer.analyzer import TicketAnalyzer, is_urgent
from categorizer.config import BATCH_MAX_WORKERS
from categorizer.schemas import AnalysisRequest, AnalysisResult, BatchError, BatchRequest, BatchResult

logger = logging.getLogger(__name__)


def default_worker_count(cap: int = BATCH_MAX_WORKERS) -> int:
    return max(1, min(cap, os.cpu_count() or 1))


class BatchOrchestrator:
    def __init__(self, analyzer: TicketAnalyzer, max_workers: int | None = None) -> None:
        self.analyzer = analyzer
        self.max_workers = max_workers or default_worker_count()

    def _submission_order(self, tickets: list[AnalysisRequest], prioritize: bool) -> list[int]:
        indices = list(range(len(tickets)))
        if prioritize:
            # Stable: urgent tickets start first, each group keeps input order.
            indices.sort(key=lambda i: not is_urgent(tickets[i]))
        return indices

    def analyze_batch(self, request: BatchRequest) -> BatchResult:
        tickets = request.tickets[: request.max_batch_size]
        if len(request.tickets) > len(tickets):
            logger.info("Batch truncated from %d to %d tickets", len(request.tickets), len(tickets))

        outcomes: list[AnalysisResult | BatchError | None] = [None] * len(tickets)
        started_at = datetime.now(timezone.utc)

        if tickets:
            workers = min(self.max_workers, len(tickets))
            with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="categorizer-batch") as pool:
                futures = {
                    pool.submit(self.analyzer.analyze, tickets[i]): i
                    for i in self._submission_order(tickets, request.prioritize_by_urgency)
                }
                for future in as_completed(futures):
                    index = futures[future]
                    ticket = tickets[index]
                    try:
                        outcomes[index] = future.result()
                    except Exception as exc:
                        logger.warning("Error analyzing ticket %s in batch: %s", ticket.ticket_id, exc)
                        outcomes[index] = BatchError(ticket_id=ticket.ticket_id, message=str(exc))

        ended_at = datetime.now(timezone.utc)
        results = [o for o in outcomes if isinstance(o, AnalysisResult)]
        errors = [o for o in outcomes if isinstance(o, BatchError)]
        batch = BatchResult(
            results=results,
            total_processed=len(tickets),
            success_count=len(results),
            failure_count=len(errors),
            errors=errors,
            batch_start_time=started_at,
            batch_end_time=ended_at,
            processing_time_seconds=(ended_at - started_at).total_seconds(),
        )
        logger.info(
            "Batch of %d analysed in %.3f s — %d ok, %d failed",
            batch.total_processed, batch.processing_time_seconds, batch.success_count, batch.failure_count,
        )
        return batch
