"""Model lifecycle — load, train, hot-swap update and evaluate.

The manager owns both classifier slots and the artifact directory.  Its
state machine::

    UNINITIALIZED ──load/train──▶ READY
    UNINITIALIZED/READY ──train/update──▶ TRAINING ──ok──▶ READY
                                            └──error──▶ FAILED (this attempt only)

A failed attempt never touches the slots that were bound before it; the
manager settles back to whatever readiness it had and remembers the error
in ``last_error``.  ``train`` and ``update`` are serialized by one lock,
while ``analyze`` callers keep reading the slots concurrently.  Both slots
of a training run are installed under one swap lock, so a reader that takes
:meth:`bindings` never pairs a new category model with an old sub-category
model.
"""

from __future__ import annotations

import logging
import math
import threading
import time
from concurrent.futures import ThreadPoolExecutor
from concurrent.futures import TimeoutError as FutureTimeout
from enum import Enum
from pathlib import Path
from typing import Callable

import pandas as pd
from sklearn.model_selection import train_test_split

from categorizer.config import (
    ARTIFACT_NAMES,
    CATEGORY_TARGET,
    EVALUATE_TIMEOUT_SECONDS,
    HOLDOUT_FRACTION,
    HOLDOUT_MIN_SAMPLES,
    MODEL_DIR,
    MODEL_VERSION,
    RANDOM_STATE,
    SUB_CATEGORY_TARGET,
    TRAIN_TIMEOUT_SECONDS,
)
from categorizer.data.dataset_loader import load_labelled_tickets, to_features
from categorizer.errors import (
    ArtifactNotFound,
    CategorizerError,
    DatasetNotFound,
    FitFailure,
    OperationTimeout,
    PersistFailure,
    UnclassifiedFailure,
)
from categorizer.evaluation.evaluator import write_evaluation_report
from categorizer.features.builder import TicketFeatures
from categorizer.models.slot import ClassifierSlot
from categorizer.models.ticket_classifier import TicketClassifier
from categorizer.schemas import ModelInfo

logger = logging.getLogger(__name__)


class ModelState(Enum):
    UNINITIALIZED = "uninitialized"
    READY = "ready"
    TRAINING = "training"
    FAILED = "failed"


def _run_bounded(fn: Callable, *args, timeout: float | None, what: str):
    """Run *fn* on a worker thread and give up waiting after *timeout* seconds.

    A timed-out call is abandoned, not cancelled: its thread finishes on its
    own and the result is dropped.
    """
    if not timeout or timeout <= 0:
        return fn(*args)
    executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix=f"categorizer-{what}")
    try:
        future = executor.submit(fn, *args)
        try:
            return future.result(timeout=timeout)
        except FutureTimeout:
            raise OperationTimeout(f"{what} exceeded {timeout:g}s") from None
    finally:
        executor.shutdown(wait=False)


class ModelLifecycleManager:
    """Owns the category and sub-category :class:`ClassifierSlot` pair."""

    def __init__(
        self,
        model_dir: str | Path = MODEL_DIR,
        *,
        version: str = MODEL_VERSION,
        report_dir: str | Path | None = None,
        train_timeout: float | None = TRAIN_TIMEOUT_SECONDS,
        evaluate_timeout: float | None = EVALUATE_TIMEOUT_SECONDS,
    ) -> None:
        self.model_dir = Path(model_dir)
        self.version = version
        self.report_dir = Path(report_dir) if report_dir else None
        self.train_timeout = train_timeout
        self.evaluate_timeout = evaluate_timeout

        self.category_slot = ClassifierSlot(CATEGORY_TARGET)
        self.sub_category_slot = ClassifierSlot(SUB_CATEGORY_TARGET)
        self._slots = {
            CATEGORY_TARGET: self.category_slot,
            SUB_CATEGORY_TARGET: self.sub_category_slot,
        }

        self._lifecycle_lock = threading.Lock()
        self._swap_lock = threading.Lock()
        self._state_lock = threading.Lock()
        self._state = ModelState.UNINITIALIZED
        self._last_attempt: ModelState | None = None
        self._last_error: str | None = None

    # ── State ────────────────────────────────────────────────────────

    @property
    def state(self) -> ModelState:
        with self._state_lock:
            return self._state

    @property
    def last_attempt(self) -> ModelState | None:
        """Outcome of the most recent train/update: READY, FAILED or None."""
        return self._last_attempt

    @property
    def last_error(self) -> str | None:
        return self._last_error

    @property
    def model_version(self) -> str:
        return self.category_slot.version or self.version

    def is_ready(self) -> bool:
        return self.category_slot.is_ready() and self.sub_category_slot.is_ready()

    def artifact_path(self, target: str) -> Path:
        return self.model_dir / ARTIFACT_NAMES[target]

    def bindings(self):
        """Category and sub-category bindings taken together, never from two different swaps."""
        with self._swap_lock:
            return self.category_slot.snapshot(), self.sub_category_slot.snapshot()

    def _swap(self, classifiers: list[TicketClassifier]) -> None:
        staged = [(self._slots[clf.target], self._slots[clf.target].bind(clf)) for clf in classifiers]
        with self._swap_lock:
            for slot, binding in staged:
                slot.install(binding)

    def _settle(self) -> None:
        with self._state_lock:
            self._state = ModelState.READY if self.is_ready() else ModelState.UNINITIALIZED

    def _begin(self, operation: str) -> None:
        with self._state_lock:
            self._state = ModelState.TRAINING
        logger.info("Model %s started", operation)

    def _succeed(self, operation: str) -> None:
        self._last_attempt = ModelState.READY
        self._last_error = None
        self._settle()
        logger.info("Model %s completed — state=%s", operation, self.state.value)

    def _fail(self, operation: str, error: CategorizerError) -> None:
        with self._state_lock:
            self._state = ModelState.FAILED
        self._last_attempt = ModelState.FAILED
        self._last_error = error.message
        logger.error("Model %s failed: %s", operation, error.message, exc_info=True)
        self._settle()

    # ── Load ─────────────────────────────────────────────────────────

    def load(self) -> bool:
        """Bind whichever persisted artifacts exist; never raises."""
        for target in self._slots:
            path = self.artifact_path(target)
            if not path.is_file():
                logger.info("No saved %s model at %s", target, path)
                continue
            try:
                clf = TicketClassifier.load(path)
                if clf.target != target:
                    logger.warning("%s declares target %r, expected %r — skipped", path, clf.target, target)
                    continue
                self._swap([clf])
            except Exception:
                logger.warning("Could not load %s model from %s", target, path, exc_info=True)
        self._settle()
        logger.info("Model load finished — state=%s", self.state.value)
        return self.is_ready()

    # ── Train ────────────────────────────────────────────────────────

    def train(self, dataset_path: str | Path) -> bool:
        """Fit, persist and bind both classifiers; all-or-nothing.

        Raises :class:`DatasetNotFound` for a missing dataset; every other
        failure is logged and reported as ``False``.
        """
        path = Path(dataset_path)
        if not path.is_file():
            logger.error("Training data file not found: %s", path)
            raise DatasetNotFound(path)

        with self._lifecycle_lock:
            self._begin("training")
            try:
                fitted = _run_bounded(self._fit_both, path, timeout=self.train_timeout, what="training")
                self._persist(fitted)
                self._swap(fitted)
            except CategorizerError as exc:
                self._fail("training", exc)
                return False
            except Exception as exc:
                self._fail("training", UnclassifiedFailure("Unexpected error during training", exc))
                return False

            self._succeed("training")
            return True

    def _fit_both(self, path: Path) -> list[TicketClassifier]:
        started = time.perf_counter()
        df = load_labelled_tickets(path)
        features = to_features(df)
        fitted = [
            self._fit_one(CATEGORY_TARGET, features, df["category"]),
            self._fit_one(SUB_CATEGORY_TARGET, features, df["sub_category"]),
        ]
        elapsed = time.perf_counter() - started
        for clf in fitted:
            clf.metrics["training_seconds"] = round(elapsed, 3)
        logger.info("Fitted both classifiers in %.1f s", elapsed)
        return fitted

    def _fit_one(self, target: str, features: list[TicketFeatures], labels: pd.Series) -> TicketClassifier:
        keep = (labels != "").tolist()
        X = [f for f, k in zip(features, keep) if k]
        y = labels[labels != ""].tolist()
        if len(set(y)) < 2:
            raise FitFailure(f"{target} classifier needs at least two distinct labels, got {len(set(y))}")

        try:
            metrics = self._holdout_metrics(target, X, y)
            clf = TicketClassifier(target, version=self.version).fit(X, y)
            if metrics is None:
                metrics = dict(clf.evaluate(X, y), evaluation="training")
        except CategorizerError:
            raise
        except Exception as exc:
            raise FitFailure(f"Fitting the {target} classifier failed: {exc}") from exc

        clf.metrics = {
            "accuracy": metrics["accuracy"],
            "macro_f1": metrics["macro_f1"],
            "label_accuracies": metrics["label_accuracies"],
            "evaluation": metrics.get("evaluation", "holdout"),
            "training_samples": len(y),
        }
        return clf

    def _holdout_metrics(self, target: str, X: list[TicketFeatures], y: list[str]) -> dict | None:
        """Accuracy on a stratified hold-out split, or None when the data is too small."""
        n_classes = len(set(y))
        n_test = math.ceil(len(y) * HOLDOUT_FRACTION)
        min_count = pd.Series(y).value_counts().min()
        if len(y) < HOLDOUT_MIN_SAMPLES or min_count < 2 or n_test < n_classes or len(y) - n_test < n_classes:
            logger.info("%s: %d samples — scoring on the training set", target, len(y))
            return None

        X_tr, X_te, y_tr, y_te = train_test_split(
            X, y, test_size=HOLDOUT_FRACTION, stratify=y, random_state=RANDOM_STATE,
        )
        probe = TicketClassifier(target, version=self.version).fit(X_tr, y_tr)
        return dict(probe.evaluate(X_te, y_te), evaluation="holdout")

    def _persist(self, fitted: list[TicketClassifier]) -> None:
        """Write every bundle to a temp file, then rename them all into place."""
        staged: list[tuple[Path, Path]] = []
        try:
            self.model_dir.mkdir(parents=True, exist_ok=True)
            for clf in fitted:
                final = self.artifact_path(clf.target)
                tmp = final.with_name(final.name + ".tmp")
                clf.save(tmp)
                staged.append((tmp, final))
            for tmp, final in staged:
                tmp.replace(final)
        except Exception as exc:
            for tmp, _ in staged:
                tmp.unlink(missing_ok=True)
            raise PersistFailure(f"Could not persist model artifacts to {self.model_dir}: {exc}") from exc

    # ── Update ───────────────────────────────────────────────────────

    def update(self, artifact_path: str | Path) -> bool:
        """Hot-swap one slot with the artifact at *artifact_path*.

        The slot is chosen by the ``target`` recorded inside the artifact.
        """
        path = Path(artifact_path)
        if not path.is_file():
            logger.error("New model file not found: %s", path)
            raise ArtifactNotFound(path)

        with self._lifecycle_lock:
            self._begin("update")
            try:
                clf = TicketClassifier.load(path)
                self._swap([clf])
            except Exception as exc:
                self._fail("update", UnclassifiedFailure(f"Could not load artifact {path}", exc))
                return False
            self._succeed("update")
            return True

    # ── Evaluate ─────────────────────────────────────────────────────

    def evaluate(self, dataset_path: str | Path) -> float:
        """Exact-match accuracy of the category classifier on a labelled CSV.

        Returns ``0.0`` when the category slot is not bound.
        """
        path = Path(dataset_path)
        if not path.is_file():
            logger.error("Test data file not found: %s", path)
            raise DatasetNotFound(path)

        clf = self.category_slot.classifier
        if clf is None:
            logger.warning("Evaluation requested but the category model is not loaded")
            return 0.0

        try:
            return _run_bounded(self._score, clf, path, timeout=self.evaluate_timeout, what="evaluation")
        except CategorizerError:
            raise
        except Exception as exc:
            raise UnclassifiedFailure(f"Evaluating against {path} failed", exc) from exc

    def _score(self, clf: TicketClassifier, path: Path) -> float:
        df = load_labelled_tickets(path)
        labelled = df[df["category"] != ""]
        if labelled.empty:
            logger.warning("No labelled rows in %s", path)
            return 0.0

        y_true = labelled["category"].tolist()
        y_pred = clf.predict(to_features(labelled))
        accuracy = sum(p == t for p, t in zip(y_pred, y_true)) / len(y_true)
        logger.info("Evaluation on %s — %d rows, accuracy=%.4f", path, len(y_true), accuracy)

        if self.report_dir is not None:
            write_evaluation_report(y_true, y_pred, output_dir=self.report_dir, model_name=clf.target, dataset=path)
        return float(accuracy)

    # ── Info ─────────────────────────────────────────────────────────

    def info(self) -> ModelInfo:
        clf = self.category_slot.classifier
        metrics = clf.metrics if clf else {}
        return ModelInfo(
            model_version=self.model_version,
            state=self.state.value,
            model_path=str(self.model_dir),
            last_trained=clf.trained_at if clf else None,
            accuracy=metrics.get("accuracy"),
            training_sample_count=int(metrics.get("training_samples", 0)),
            training_time_seconds=metrics.get("training_seconds"),
            category_accuracies=dict(metrics.get("label_accuracies", {})),
            category_ready=self.category_slot.is_ready(),
            sub_category_ready=self.sub_category_slot.is_ready(),
            last_error=self._last_error,
        )
