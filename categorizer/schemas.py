"""Pydantic value objects shared by the analyzer, batch orchestrator and API."""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from categorizer.config import MAX_BATCH_SIZE


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


# ── single ticket ─────────────────────────────────────────────────────────────

class AnalysisRequest(BaseModel):
    """One ticket to classify.

    Title and description may each be empty, but not both; the analyzer
    rejects such requests with :class:`~categorizer.errors.ValidationError`.
    """
    ticket_id:      str = Field(default_factory=lambda: str(uuid.uuid4()))
    title:          str = Field("", max_length=500,   examples=["App crashes on login"])
    description:    str = Field("", max_length=10000, examples=["Since the last update the app closes immediately"])
    customer_email: Optional[str] = None
    category:       Optional[str] = None
    sub_category:   Optional[str] = None
    created_at:     datetime = Field(default_factory=_utcnow)
    tags:           Optional[str] = Field(None, description="Comma separated tag references")
    attachments:    Optional[str] = Field(None, description="Comma separated attachment references")

    @property
    def is_blank(self) -> bool:
        return not self.title.strip() and not self.description.strip()

    @property
    def text(self) -> str:
        return f"{self.title} {self.description}"


class AnalysisResult(BaseModel):
    model_config = ConfigDict(protected_namespaces=())

    ticket_id:                  str
    predicted_category:         str
    category_confidence:        float = Field(..., ge=0.0, le=1.0)
    predicted_sub_category:     str
    sub_category_confidence:    float = Field(..., ge=0.0, le=1.0)
    suggested_tags:             list[str] = Field(default_factory=list, max_length=5)
    overall_confidence:         float = Field(..., ge=0.0, le=1.0)
    model_version:              str
    analysis_timestamp:         datetime = Field(default_factory=_utcnow)
    category_probabilities:     dict[str, float] = Field(default_factory=dict)
    sub_category_probabilities: dict[str, float] = Field(default_factory=dict)


# ── batch ─────────────────────────────────────────────────────────────────────

class BatchRequest(BaseModel):
    tickets:               list[AnalysisRequest] = Field(default_factory=list)
    prioritize_by_urgency: bool = True
    max_batch_size:        int = Field(MAX_BATCH_SIZE, ge=1)


class BatchError(BaseModel):
    ticket_id: str
    message:   str


class BatchResult(BaseModel):
    results:                 list[AnalysisResult] = Field(default_factory=list)
    total_processed:         int = 0
    success_count:           int = 0
    failure_count:           int = 0
    errors:                  list[BatchError] = Field(default_factory=list)
    batch_start_time:        datetime
    batch_end_time:          datetime
    processing_time_seconds: float = 0.0


# ── model lifecycle ───────────────────────────────────────────────────────────

class ModelInfo(BaseModel):
    model_config = ConfigDict(protected_namespaces=())

    model_version:         str
    state:                 str
    model_path:            str
    last_trained:          Optional[datetime] = None
    accuracy:              Optional[float] = None
    training_sample_count: int = 0
    training_time_seconds: Optional[float] = None
    category_accuracies:   dict[str, float] = Field(default_factory=dict)
    category_ready:        bool = False
    sub_category_ready:    bool = False
    last_error:            Optional[str] = None


class ReadyStatus(BaseModel):
    is_ready:        bool
    check_timestamp: datetime = Field(default_factory=_utcnow)


class EvaluationResult(BaseModel):
    accuracy:             float = Field(..., ge=0.0, le=1.0)
    test_data_path:       str
    evaluation_timestamp: datetime = Field(default_factory=_utcnow)
