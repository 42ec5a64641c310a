"""Evaluation report artifacts: metrics JSON + confusion-matrix PNG."""

from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from pathlib import Path

import matplotlib
matplotlib.use("Agg")  # non-interactive backend
import matplotlib.pyplot as plt
import seaborn as sns
from sklearn.metrics import accuracy_score, classification_report, confusion_matrix, f1_score

logger = logging.getLogger(__name__)


def write_evaluation_report(
    y_true,
    y_pred,
    *,
    output_dir: str | Path,
    model_name: str = "category",
    dataset: str | Path | None = None,
) -> dict:
    """Compute metrics for one evaluation run and save them under *output_dir*.

    Returns the metrics dict (also written as ``metrics.json``).
    """
    out = Path(output_dir)
    out.mkdir(parents=True, exist_ok=True)
    y_true = [str(v) for v in y_true]
    y_pred = [str(v) for v in y_pred]

    metrics = {
        "model": model_name,
        "dataset": str(dataset) if dataset else None,
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "samples": len(y_true),
        "accuracy": accuracy_score(y_true, y_pred) if y_true else 0.0,
        "macro_f1": f1_score(y_true, y_pred, average="macro", zero_division=0) if y_true else 0.0,
        "classification_report": (
            classification_report(y_true, y_pred, output_dict=True, zero_division=0) if y_true else {}
        ),
    }

    report_path = out / "metrics.json"
    with open(report_path, "w") as f:
        json.dump(metrics, f, indent=2, default=str)
    logger.info("Metrics saved → %s", report_path)

    if y_true:
        labels = sorted(set(y_true) | set(y_pred))
        cm = confusion_matrix(y_true, y_pred, labels=labels)
        size = max(5, len(labels))
        fig, ax = plt.subplots(figsize=(size + 1, size))
        sns.heatmap(cm, annot=True, fmt="d", xticklabels=labels, yticklabels=labels, ax=ax)
        ax.set_title(f"Confusion Matrix — {model_name}")
        ax.set_xlabel("Predicted")
        ax.set_ylabel("Actual")
        fig.tight_layout()
        cm_path = out / "confusion_matrix.png"
        fig.savefig(cm_path, dpi=120)
        plt.close(fig)
        logger.info("Confusion matrix saved → %s", cm_path)

    return metrics
