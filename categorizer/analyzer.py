"""Single-ticket analysis: category, sub-category, confidences and tags."""

from __future__ import annotations

import logging
from datetime import datetime, timezone

from categorizer.catalog import DEFAULT_CATALOG, CategoryCatalog
from categorizer.config import MAX_SUGGESTED_TAGS, TAG_KEYWORDS, URGENT_TAG
from categorizer.errors import ModelNotReady, ValidationError
from categorizer.features.builder import build_features, build_features_from_request
from categorizer.lifecycle import ModelLifecycleManager
from categorizer.schemas import AnalysisRequest, AnalysisResult

logger = logging.getLogger(__name__)


def keyword_tags(text: str) -> list[str]:
    """Tags whose keyword group occurs in *text*, in keyword-group order."""
    lowered = (text or "").lower()
    return [tag for keywords, tag in TAG_KEYWORDS if any(k in lowered for k in keywords)]


def suggest_tags(title: str, description: str, category: str) -> list[str]:
    """``[category.lower()]`` followed by keyword tags; unique, at most five."""
    tags = [category.lower()] + keyword_tags(f"{title} {description}")
    return list(dict.fromkeys(tags))[:MAX_SUGGESTED_TAGS]


def is_urgent(request: AnalysisRequest) -> bool:
    return URGENT_TAG in keyword_tags(request.text)


class TicketAnalyzer:
    """Classify one ticket with the slots owned by *manager*."""

    def __init__(self, manager: ModelLifecycleManager, catalog: CategoryCatalog = DEFAULT_CATALOG) -> None:
        self.manager = manager
        self.catalog = catalog

    def analyze(self, request: AnalysisRequest) -> AnalysisResult:
        if request.is_blank:
            raise ValidationError(
                "At least one of Title or Description must be provided",
                {"ticket_id": request.ticket_id},
            )
        category_binding, sub_category_binding = self.manager.bindings()
        if category_binding is None or sub_category_binding is None:
            raise ModelNotReady()

        features = build_features_from_request(request)
        # The sub-category model is independent of the predicted category.
        category = category_binding.predict(features)
        sub_category = sub_category_binding.predict(features)

        category_confidence = category.confidence
        sub_category_confidence = sub_category.confidence

        result = AnalysisResult(
            ticket_id=request.ticket_id,
            predicted_category=category.label,
            category_confidence=category_confidence,
            predicted_sub_category=sub_category.label,
            sub_category_confidence=sub_category_confidence,
            suggested_tags=suggest_tags(request.title, request.description, category.label),
            overall_confidence=(category_confidence + sub_category_confidence) / 2,
            model_version=category_binding.version,
            analysis_timestamp=datetime.now(timezone.utc),
            category_probabilities=category.distribution(),
            sub_category_probabilities=sub_category.distribution(),
        )
        logger.debug(
            "Ticket %s → %s/%s (%.3f)",
            request.ticket_id, result.predicted_category, result.predicted_sub_category,
            result.overall_confidence,
        )
        return result

    # ── Probability views ────────────────────────────────────────────

    def category_probabilities(self, text: str) -> dict[str, float]:
        """Category distribution for free *text*; empty when the model is not loaded."""
        binding = self.manager.category_slot.snapshot()
        if binding is None:
            return {}
        return binding.predict(build_features(text, "")).distribution()

    def sub_category_probabilities(self, text: str, category: str) -> dict[str, float]:
        """Sub-category distribution for *text*, narrowed to *category*.

        Only sub-categories the catalog lists under *category* are kept and
        the result is renormalised.  When *category* is not in the catalog,
        or the model knows none of its sub-categories, the full distribution
        is returned.
        """
        binding = self.manager.sub_category_slot.snapshot()
        if binding is None:
            return {}
        name = self.catalog.canonical(category)
        full = binding.predict(build_features(text, "", category=name or category)).distribution()
        if name is None:
            return full

        allowed = set(self.catalog.sub_categories(name))
        narrowed = {label: p for label, p in full.items() if label in allowed}
        total = sum(narrowed.values())
        if not narrowed or total <= 0:
            return full
        return {label: p / total for label, p in narrowed.items()}
