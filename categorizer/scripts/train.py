#!/usr/bin/env python
"""Model lifecycle from the command line.

Usage
-----
    # Fit both classifiers and write them to the model directory
    python -m categorizer.scripts.train train --data data/tickets.csv

    # Category accuracy on a labelled test CSV (+ report files)
    python -m categorizer.scripts.train evaluate --data data/test.csv --report-dir eval/

    # Metadata of the persisted models
    python -m categorizer.scripts.train info

    # Write a synthetic bootstrap dataset
    python -m categorizer.scripts.train generate --out data/synthetic.csv
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
import time

from categorizer.config import LOG_FORMAT, LOG_LEVEL, MODEL_DIR
from categorizer.errors import CategorizerError
from categorizer.lifecycle import ModelLifecycleManager

logger = logging.getLogger("train")


def _timer(label: str):
    """Context manager that logs elapsed time."""
    class _T:
        def __enter__(self):
            self.t0 = time.perf_counter()
            return self
        def __exit__(self, *_):
            logger.info("%s finished in %.1f s", label, time.perf_counter() - self.t0)
    return _T()


def cmd_train(args) -> int:
    manager = ModelLifecycleManager(args.model_dir)
    with _timer("Training"):
        ok = manager.train(args.data)
    if not ok:
        logger.error("Training failed: %s", manager.last_error)
        return 1
    info = manager.info()
    logger.info(
        "Trained on %d samples — accuracy=%.4f",
        info.training_sample_count, info.accuracy or 0.0,
    )
    return 0


def cmd_evaluate(args) -> int:
    manager = ModelLifecycleManager(args.model_dir, report_dir=args.report_dir)
    if not manager.load():
        logger.warning("Models are not fully loaded from %s", args.model_dir)
    with _timer("Evaluation"):
        accuracy = manager.evaluate(args.data)
    print(f"accuracy={accuracy:.4f}")
    return 0


def cmd_info(args) -> int:
    manager = ModelLifecycleManager(args.model_dir)
    manager.load()
    print(json.dumps(manager.info().model_dump(mode="json"), indent=2))
    return 0


def cmd_generate(args) -> int:
    from categorizer.data.synthetic_generator import write_dataset

    path = write_dataset(args.out, n_per_sub_category=args.per_sub_category, seed=args.seed)
    logger.info("Synthetic dataset written → %s", path)
    return 0


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Ticket categorizer model lifecycle")
    parser.add_argument("--model-dir", default=str(MODEL_DIR), help="Artifact directory (default: %(default)s)")
    sub = parser.add_subparsers(dest="command", required=True)

    p_train = sub.add_parser("train", help="Fit and persist both classifiers")
    p_train.add_argument("--data", "-d", required=True, help="Labelled training CSV")
    p_train.set_defaults(func=cmd_train)

    p_eval = sub.add_parser("evaluate", help="Category accuracy on a labelled CSV")
    p_eval.add_argument("--data", "-d", required=True, help="Labelled test CSV")
    p_eval.add_argument("--report-dir", default=None, help="Write metrics.json + confusion matrix here")
    p_eval.set_defaults(func=cmd_evaluate)

    p_info = sub.add_parser("info", help="Show metadata of the persisted models")
    p_info.set_defaults(func=cmd_info)

    p_gen = sub.add_parser("generate", help="Write a synthetic labelled dataset")
    p_gen.add_argument("--out", "-o", required=True)
    p_gen.add_argument("--per-sub-category", type=int, default=6)
    p_gen.add_argument("--seed", type=int, default=42)
    p_gen.set_defaults(func=cmd_generate)

    args = parser.parse_args(argv)
    logging.basicConfig(level=LOG_LEVEL, format=LOG_FORMAT)
    try:
        return args.func(args)
    except CategorizerError as exc:
        logger.error("%s", exc.message)
        return 1


if __name__ == "__main__":
    sys.exit(main())
