"""Tests for single-ticket analysis, tag suggestion and probability views."""

import pytest

from categorizer.analyzer import TicketAnalyzer, is_urgent, keyword_tags, suggest_tags
from categorizer.catalog import DEFAULT_CATALOG
from categorizer.errors import ModelNotReady, ValidationError
from categorizer.lifecycle import ModelState
from categorizer.schemas import AnalysisRequest

SAMPLES = [
    AnalysisRequest(title="Refund not received", description="I want a refund for the duplicate charge"),
    AnalysisRequest(title="VPN keeps dropping", description="network connection drops every hour"),
    AnalysisRequest(title="", description="cannot login with my password"),
    AnalysisRequest(title="Add dark mode", description=""),
    AnalysisRequest(title="Found a vulnerability", description="xss in the upload form", tags="security"),
]


# ── Tags ─────────────────────────────────────────────────────────────────

def test_tag_scenario():
    tags = suggest_tags("URGENT: app crash on login", "", "Bug Report")
    assert tags == ["bug report", "urgent", "bug"]


def test_tags_are_unique_and_capped():
    tags = suggest_tags(
        "urgent bug feature request", "billing payment invoice error crash", "Billing",
    )
    assert tags[0] == "billing"
    assert len(tags) == len(set(tags))
    assert len(tags) <= 5
    assert set(tags) == {"billing", "urgent", "bug", "feature-request"}


def test_keyword_tags_case_insensitive():
    assert keyword_tags("EMERGENCY outage") == ["urgent"]
    assert keyword_tags("") == []
    assert is_urgent(AnalysisRequest(title="Critical", description="db is gone"))
    assert not is_urgent(AnalysisRequest(title="Question", description="opening hours"))


# ── Analyze ──────────────────────────────────────────────────────────────

def test_not_ready_raises_without_state_change(empty_manager):
    analyzer = TicketAnalyzer(empty_manager)
    with pytest.raises(ModelNotReady):
        analyzer.analyze(AnalysisRequest(title="Payment failed", description="card declined"))
    assert empty_manager.state is ModelState.UNINITIALIZED
    assert empty_manager.last_attempt is None


@pytest.mark.parametrize("title,description", [("", ""), ("   ", "\n\t")])
def test_blank_request_rejected_before_readiness(empty_manager, title, description):
    with pytest.raises(ValidationError):
        TicketAnalyzer(empty_manager).analyze(AnalysisRequest(title=title, description=description))


@pytest.mark.parametrize("request_", SAMPLES)
def test_result_properties(analyzer, request_):
    result = analyzer.analyze(request_)

    assert result.ticket_id == request_.ticket_id
    assert 0.0 <= result.category_confidence <= 1.0
    assert 0.0 <= result.sub_category_confidence <= 1.0
    assert result.overall_confidence == pytest.approx(
        (result.category_confidence + result.sub_category_confidence) / 2
    )

    cat = result.category_probabilities
    assert sum(cat.values()) == pytest.approx(1.0, abs=1e-6)
    assert max(cat, key=cat.get) == result.predicted_category
    assert result.category_confidence == pytest.approx(cat[result.predicted_category])

    sub = result.sub_category_probabilities
    assert sum(sub.values()) == pytest.approx(1.0, abs=1e-6)
    assert max(sub, key=sub.get) == result.predicted_sub_category

    assert result.suggested_tags[0] == result.predicted_category.lower()
    assert len(result.suggested_tags) == len(set(result.suggested_tags)) <= 5
    assert result.model_version


def test_billing_ticket(analyzer):
    result = analyzer.analyze(SAMPLES[0])
    assert result.predicted_category == "Billing"
    assert result.predicted_sub_category in DEFAULT_CATALOG.sub_categories("Billing")


def test_urgent_ticket_tagged(analyzer):
    result = analyzer.analyze(AnalysisRequest(title="URGENT: app crash on startup", description=""))
    assert "urgent" in result.suggested_tags


def test_description_only_and_title_only(analyzer):
    assert analyzer.analyze(SAMPLES[2]).predicted_category
    assert analyzer.analyze(SAMPLES[3]).predicted_category


# ── Probability views ────────────────────────────────────────────────────

def test_category_probabilities(analyzer):
    probs = analyzer.category_probabilities("credit card payment failed")
    assert set(probs) == set(DEFAULT_CATALOG.categories())
    assert sum(probs.values()) == pytest.approx(1.0, abs=1e-6)


def test_sub_category_probabilities_narrowed_to_catalog(analyzer):
    probs = analyzer.sub_category_probabilities("payment declined at checkout", "billing")
    assert set(probs) <= set(DEFAULT_CATALOG.sub_categories("Billing"))
    assert probs
    assert sum(probs.values()) == pytest.approx(1.0, abs=1e-6)


def test_sub_category_probabilities_unknown_category_returns_full(analyzer):
    probs = analyzer.sub_category_probabilities("payment declined", "Nonexistent")
    assert len(probs) == len(analyzer.manager.sub_category_slot.classifier.labels)
    assert sum(probs.values()) == pytest.approx(1.0, abs=1e-6)


def test_probability_views_empty_when_unready(empty_manager):
    analyzer = TicketAnalyzer(empty_manager)
    assert analyzer.category_probabilities("anything") == {}
    assert analyzer.sub_category_probabilities("anything", "Billing") == {}
