"""TF-IDF (body + title + metadata) → Logistic Regression ticket classifier.

One instance backs one classifier slot (category or sub-category).  The
persisted artifact is a self-describing joblib bundle: besides the fitted
pipeline it records which slot it targets and the label order of the
probability vector, so nothing downstream has to guess either.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Sequence

import joblib
import numpy as np
import pandas as pd
from sklearn.compose import ColumnTransformer
from sklearn.feature_extraction.text import TfidfVectorizer
from sklearn.linear_model import LogisticRegression
from sklearn.metrics import accuracy_score, classification_report, f1_score, recall_score
from sklearn.pipeline import Pipeline

from categorizer.config import CATEGORY_TARGET, MODEL_VERSION, SUB_CATEGORY_TARGET, TFIDF_LOGREG
from categorizer.features.builder import TicketFeatures, features_frame

logger = logging.getLogger(__name__)

BUNDLE_FORMAT = 1
TARGETS = (CATEGORY_TARGET, SUB_CATEGORY_TARGET)


def _as_frame(X) -> pd.DataFrame:
    if isinstance(X, pd.DataFrame):
        return X
    if isinstance(X, TicketFeatures):
        return features_frame([X])
    return features_frame(X)


def _build_pipeline(frame: pd.DataFrame) -> Pipeline:
    transformers = [
        ("text", TfidfVectorizer(
            ngram_range=TFIDF_LOGREG["ngram_range"],
            max_features=TFIDF_LOGREG["max_features"],
            min_df=TFIDF_LOGREG["min_df"],
            sublinear_tf=TFIDF_LOGREG["sublinear_tf"],
        ), "text"),
        ("meta", TfidfVectorizer(token_pattern=r"\S+", lowercase=False), "meta"),
    ]
    # An all-empty title column would give the vectorizer an empty vocabulary.
    if frame["title"].str.strip().astype(bool).any():
        transformers.insert(1, ("title", TfidfVectorizer(
            ngram_range=TFIDF_LOGREG["title_ngram_range"],
            max_features=TFIDF_LOGREG["title_max_features"],
            sublinear_tf=TFIDF_LOGREG["sublinear_tf"],
        ), "title"))

    return Pipeline([
        ("features", ColumnTransformer(transformers)),
        ("clf", LogisticRegression(
            max_iter=TFIDF_LOGREG["max_iter"],
            C=TFIDF_LOGREG["C"],
            solver=TFIDF_LOGREG["solver"],
            class_weight="balanced",
        )),
    ])


class TicketClassifier:
    """Scikit-learn pipeline wrapper for one classification target."""

    def __init__(self, target: str, version: str = MODEL_VERSION) -> None:
        if target not in TARGETS:
            raise ValueError(f"Unknown classifier target: {target!r}")
        self.target = target
        self.version = version
        self.pipeline: Pipeline | None = None
        self.labels: list[str] = []
        self.trained_at: datetime | None = None
        self.metrics: dict = {}

    @property
    def is_fitted(self) -> bool:
        return self.pipeline is not None and bool(self.labels)

    # ── Training ─────────────────────────────────────────────────────
    def fit(self, X, y: Sequence[str]) -> "TicketClassifier":
        frame = _as_frame(X)
        logger.info("Training %s classifier on %d samples …", self.target, len(frame))
        pipeline = _build_pipeline(frame)
        pipeline.fit(frame, list(y))
        self.pipeline = pipeline
        self.labels = [str(c) for c in pipeline.named_steps["clf"].classes_]
        self.trained_at = datetime.now(timezone.utc)
        return self

    # ── Inference ────────────────────────────────────────────────────
    def predict_proba(self, X) -> np.ndarray:
        """Probability matrix whose columns follow :attr:`labels`."""
        if self.pipeline is None:
            raise RuntimeError(f"{self.target} classifier is not fitted")
        return self.pipeline.predict_proba(_as_frame(X))

    def predict(self, X) -> list[str]:
        proba = self.predict_proba(X)
        return [self.labels[i] for i in np.argmax(proba, axis=1)]

    def predict_one(self, features: TicketFeatures) -> tuple[str, np.ndarray]:
        scores = self.predict_proba(features)[0]
        return self.labels[int(np.argmax(scores))], scores

    # ── Evaluation ───────────────────────────────────────────────────
    def evaluate(self, X_test, y_test: Sequence[str]) -> dict:
        y_true = [str(v) for v in y_test]
        y_pred = self.predict(X_test)
        present = sorted(set(y_true))
        per_label = recall_score(y_true, y_pred, labels=present, average=None, zero_division=0)
        metrics = {
            "accuracy": float(accuracy_score(y_true, y_pred)),
            "macro_f1": float(f1_score(y_true, y_pred, average="macro", zero_division=0)),
            "weighted_f1": float(f1_score(y_true, y_pred, average="weighted", zero_division=0)),
            "label_accuracies": {label: float(acc) for label, acc in zip(present, per_label)},
            "report": classification_report(y_true, y_pred, output_dict=True, zero_division=0),
        }
        logger.info(
            "%s evaluation — acc=%.4f  macro-F1=%.4f  weighted-F1=%.4f",
            self.target, metrics["accuracy"], metrics["macro_f1"], metrics["weighted_f1"],
        )
        return metrics

    # ── Persistence ──────────────────────────────────────────────────
    def to_bundle(self) -> dict:
        return {
            "format": BUNDLE_FORMAT,
            "target": self.target,
            "version": self.version,
            "labels": list(self.labels),
            "trained_at": self.trained_at,
            "metrics": self.metrics,
            "pipeline": self.pipeline,
        }

    def save(self, path: str | Path) -> Path:
        if not self.is_fitted:
            raise RuntimeError(f"Refusing to save an unfitted {self.target} classifier")
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        joblib.dump(self.to_bundle(), path)
        logger.info("Model saved → %s", path)
        return path

    @classmethod
    def from_bundle(cls, bundle: dict) -> "TicketClassifier":
        if not isinstance(bundle, dict) or "pipeline" not in bundle:
            raise ValueError("Not a ticket classifier artifact")
        target = bundle.get("target")
        if target not in TARGETS:
            raise ValueError(f"Artifact declares unknown target {target!r}")
        pipeline = bundle["pipeline"]
        if not callable(getattr(pipeline, "predict_proba", None)):
            raise ValueError(f"{target} artifact carries no fitted pipeline")
        clf = cls(target, version=str(bundle.get("version") or MODEL_VERSION))
        clf.pipeline = pipeline
        clf.labels = [str(label) for label in bundle.get("labels") or pipeline.classes_]
        clf.trained_at = bundle.get("trained_at")
        clf.metrics = dict(bundle.get("metrics") or {})
        return clf

    @classmethod
    def load(cls, path: str | Path) -> "TicketClassifier":
        clf = cls.from_bundle(joblib.load(path))
        logger.info("Model loaded ← %s (%s, %d labels)", path, clf.target, len(clf.labels))
        return clf
