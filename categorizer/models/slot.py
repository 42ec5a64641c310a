"""Classifier slot — one atomically swappable classification artifact.

A slot holds a single reference to an immutable :class:`_Binding` (artifact
plus its bound predict function).  ``replace`` builds the new binding first
and then swaps the reference under a lock, so readers see either the old
pair or the new pair, never a mix.  Callers that already took a snapshot
keep using it until their own call finishes.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from typing import Callable

import numpy as np

from categorizer.errors import ModelNotReady
from categorizer.features.builder import TicketFeatures
from categorizer.models.ticket_classifier import TicketClassifier

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Prediction:
    label: str
    scores: np.ndarray
    labels: tuple[str, ...]

    @property
    def confidence(self) -> float:
        if not len(self.scores):
            return 0.0
        return float(np.clip(np.max(self.scores), 0.0, 1.0))

    def distribution(self) -> dict[str, float]:
        """Label → probability, using the label order stored with the artifact."""
        return {label: float(score) for label, score in zip(self.labels, self.scores)}


@dataclass(frozen=True)
class _Binding:
    classifier: TicketClassifier
    predict_fn: Callable[[TicketFeatures], tuple[str, np.ndarray]]
    labels: tuple[str, ...]
    version: str

    def predict(self, features: TicketFeatures) -> Prediction:
        label, scores = self.predict_fn(features)
        return Prediction(label=label, scores=np.asarray(scores, dtype=float), labels=self.labels)


class ClassifierSlot:
    def __init__(self, name: str) -> None:
        self.name = name
        self._binding: _Binding | None = None
        self._lock = threading.Lock()

    def snapshot(self) -> _Binding | None:
        with self._lock:
            return self._binding

    def is_ready(self) -> bool:
        binding = self.snapshot()
        return binding is not None and binding.predict_fn is not None

    @property
    def version(self) -> str | None:
        binding = self.snapshot()
        return binding.version if binding else None

    @property
    def classifier(self) -> TicketClassifier | None:
        binding = self.snapshot()
        return binding.classifier if binding else None

    def predict(self, features: TicketFeatures) -> Prediction:
        binding = self.snapshot()
        if binding is None:
            raise ModelNotReady(f"{self.name} classifier is not loaded")
        return binding.predict(features)

    def bind(self, classifier: TicketClassifier) -> _Binding:
        """Build the binding for *classifier* without installing it."""
        if not classifier.is_fitted:
            raise ValueError(f"Cannot bind an unfitted classifier to the {self.name} slot")
        return _Binding(
            classifier=classifier,
            predict_fn=classifier.predict_one,
            labels=tuple(classifier.labels),
            version=classifier.version,
        )

    def install(self, binding: _Binding) -> None:
        with self._lock:
            self._binding = binding
        logger.info("%s slot bound (version=%s, %d labels)", self.name, binding.version, len(binding.labels))

    def replace(self, classifier: TicketClassifier) -> None:
        self.install(self.bind(classifier))

    def clear(self) -> None:
        with self._lock:
            self._binding = None
