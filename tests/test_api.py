"""Tests for the FastAPI endpoints."""

import shutil

import pytest
from fastapi.testclient import TestClient

import categorizer.api.main as api_main
from categorizer.api.main import app


@pytest.fixture
def client(model_dir_copy, tmp_path):
    with pytest.MonkeyPatch.context() as mp:
        mp.setattr(api_main, "MODEL_DIR", model_dir_copy)
        mp.setattr(api_main, "EVAL_DIR", tmp_path / "eval")
        with TestClient(app) as c:
            yield c


@pytest.fixture
def unready_client(tmp_path):
    with pytest.MonkeyPatch.context() as mp:
        mp.setattr(api_main, "MODEL_DIR", tmp_path / "empty-models")
        mp.setattr(api_main, "EVAL_DIR", tmp_path / "eval")
        with TestClient(app) as c:
            yield c


# ── Readiness & info ─────────────────────────────────────────────────────

def test_ready(client):
    resp = client.get("/ready")
    assert resp.status_code == 200
    data = resp.json()
    assert data["is_ready"] is True
    assert "check_timestamp" in data


def test_model_info(client):
    data = client.get("/model/info").json()
    assert data["state"] == "ready"
    assert data["category_ready"] and data["sub_category_ready"]
    assert data["training_sample_count"] > 0
    assert data["model_version"]


def test_unready_service(unready_client):
    assert unready_client.get("/ready").json()["is_ready"] is False
    resp = unready_client.post("/analyze", json={"title": "Payment failed", "description": "card declined"})
    assert resp.status_code == 503
    assert resp.json()["detail"] == "AI service is not ready. Please try again later."
    assert unready_client.get("/model/info").json()["state"] == "uninitialized"


# ── Analysis ─────────────────────────────────────────────────────────────

def test_analyze_success(client):
    resp = client.post("/analyze", json={
        "ticket_id": "T-1",
        "title": "Refund not received",
        "description": "I want a refund for the duplicate charge",
    })
    assert resp.status_code == 200
    data = resp.json()
    assert data["ticket_id"] == "T-1"
    assert data["predicted_category"] == "Billing"
    assert 0.0 <= data["overall_confidence"] <= 1.0
    assert data["suggested_tags"][0] == "billing"
    assert sum(data["category_probabilities"].values()) == pytest.approx(1.0, abs=1e-6)


def test_analyze_blank_is_400(client, unready_client):
    for c in (client, unready_client):
        resp = c.post("/analyze", json={"title": " ", "description": ""})
        assert resp.status_code == 400


def test_analyze_batch(client):
    resp = client.post("/analyze/batch", json={"tickets": [
        {"ticket_id": "a", "title": "Cannot login", "description": "password rejected"},
        {"ticket_id": "b", "title": "", "description": ""},
        {"ticket_id": "c", "title": "URGENT outage", "description": "api returns 500 status"},
    ]})
    assert resp.status_code == 200
    data = resp.json()
    assert data["total_processed"] == 3
    assert data["success_count"] == 2
    assert data["failure_count"] == 1
    assert [r["ticket_id"] for r in data["results"]] == ["a", "c"]
    assert data["errors"][0]["ticket_id"] == "b"


def test_analyze_batch_rejects_empty_and_oversized(client):
    assert client.post("/analyze/batch", json={"tickets": []}).status_code == 400
    tickets = [{"title": f"t{i}", "description": "x"} for i in range(3)]
    resp = client.post("/analyze/batch", json={"tickets": tickets, "max_batch_size": 2})
    assert resp.status_code == 400


# ── Catalog & probabilities ──────────────────────────────────────────────

def test_categories(client):
    resp = client.get("/categories")
    assert resp.status_code == 200
    assert resp.json()[0] == "Technical"
    assert len(resp.json()) == 7


def test_sub_categories(client):
    assert client.get("/categories/billing/subcategories").json()[0] == "Payment"
    assert client.get("/categories/Feature Request/subcategories").json() == [
        "New Feature", "Enhancement", "Integration",
    ]
    assert client.get("/categories/whatever/subcategories").json() == ["General"]


def test_probability_endpoints(client):
    resp = client.post("/probabilities/categories", json={"text": "credit card payment failed"})
    assert resp.status_code == 200
    assert sum(resp.json().values()) == pytest.approx(1.0, abs=1e-6)

    resp = client.post("/probabilities/subcategories", json={"text": "refund please", "category": "Billing"})
    assert resp.status_code == 200
    assert set(resp.json()) <= {"Payment", "Refund", "Invoice", "Subscription", "Pricing"}

    assert client.post("/probabilities/categories", json={"text": "  "}).status_code == 400
    assert client.post("/probabilities/subcategories", json={"text": "x", "category": ""}).status_code == 400


# ── Lifecycle ────────────────────────────────────────────────────────────

def test_train_missing_file(client, tmp_path):
    resp = client.post("/train", json={"training_data_path": str(tmp_path / "nope.csv")})
    assert resp.status_code == 400
    assert resp.json()["detail"] == "Training data file not found"
    assert client.get("/ready").json()["is_ready"] is True


def test_train_from_unready(unready_client, dataset_path):
    resp = unready_client.post("/train", json={"training_data_path": str(dataset_path)})
    assert resp.status_code == 200
    assert resp.json()["message"] == "Model training completed successfully"
    assert unready_client.get("/ready").json()["is_ready"] is True


def test_train_failure_is_500(client, tmp_path):
    bad = tmp_path / "one_label.csv"
    bad.write_text("title,description,category,sub_category\nA,b,Billing,Refund\nC,d,Billing,Invoice\n")
    resp = client.post("/train", json={"training_data_path": str(bad)})
    assert resp.status_code == 500
    assert client.get("/ready").json()["is_ready"] is True


def test_update(client, model_dir_copy, tmp_path):
    assert client.post("/update", json={"new_model_path": str(tmp_path / "x.joblib")}).status_code == 400
    exported = shutil.copy(model_dir_copy / "category_model.joblib", tmp_path / "exported.joblib")
    resp = client.post("/update", json={"new_model_path": str(exported)})
    assert resp.status_code == 200
    garbage = tmp_path / "garbage.joblib"
    garbage.write_bytes(b"nope")
    assert client.post("/update", json={"new_model_path": str(garbage)}).status_code == 500


def test_evaluate(client, dataset_path, tmp_path):
    assert client.post("/evaluate", json={"test_data_path": str(tmp_path / "x.csv")}).status_code == 400
    resp = client.post("/evaluate", json={"test_data_path": str(dataset_path)})
    assert resp.status_code == 200
    data = resp.json()
    assert data["accuracy"] >= 0.9
    assert data["test_data_path"] == str(dataset_path)
    assert (tmp_path / "eval" / "metrics.json").is_file()


def test_evaluate_unready_returns_zero(unready_client, dataset_path):
    resp = unready_client.post("/evaluate", json={"test_data_path": str(dataset_path)})
    assert resp.status_code == 200
    assert resp.json()["accuracy"] == 0.0


def test_evaluate_empty_file_scores_zero(client, tmp_path):
    empty = tmp_path / "empty.csv"
    empty.write_text("")
    resp = client.post("/evaluate", json={"test_data_path": str(empty)})
    assert resp.status_code == 200
    assert resp.json()["accuracy"] == 0.0
