"""Centralised configuration — single source of truth for the categorizer."""

import os
from pathlib import Path

from dotenv import load_dotenv

load_dotenv()

# ── Paths ────────────────────────────────────────────────────────────────
_PACKAGE_DIR = Path(__file__).resolve().parent
ROOT_DIR = _PACKAGE_DIR.parent
MODEL_DIR = Path(os.getenv("CATEGORIZER_MODEL_DIR", ROOT_DIR / "saved_models"))
EVAL_DIR = Path(os.getenv("CATEGORIZER_EVAL_DIR", ROOT_DIR / "evaluation" / "artifacts"))

# ── Artifacts (one per classifier slot) ──────────────────────────────────
CATEGORY_TARGET = "category"
SUB_CATEGORY_TARGET = "sub_category"
ARTIFACT_NAMES: dict[str, str] = {
    CATEGORY_TARGET: "category_model.joblib",
    SUB_CATEGORY_TARGET: "subcategory_model.joblib",
}
MODEL_VERSION = os.getenv("CATEGORIZER_MODEL_VERSION", "1.0.0")

# ── Category catalog (category → ordered sub-categories) ─────────────────
CATEGORY_CATALOG: dict[str, list[str]] = {
    "Technical": ["Software", "Hardware", "Network", "Database", "API"],
    "Billing": ["Payment", "Refund", "Invoice", "Subscription", "Pricing"],
    "General": ["Information", "Question", "Feedback", "Other"],
    "Feature Request": ["New Feature", "Enhancement", "Integration"],
    "Bug Report": ["Critical", "Major", "Minor", "Cosmetic"],
    "Account": ["Login", "Registration", "Profile", "Permissions"],
    "Security": ["Vulnerability", "Access", "Privacy", "Compliance"],
}
DEFAULT_SUB_CATEGORIES = ["General"]

# ── Tag heuristics (keyword group → tag), checked in this order ─────────
TAG_KEYWORDS: list[tuple[tuple[str, ...], str]] = [
    (("urgent", "critical", "emergency"), "urgent"),
    (("bug", "error", "crash"), "bug"),
    (("feature", "request", "enhancement"), "feature-request"),
    (("billing", "payment", "invoice"), "billing"),
]
MAX_SUGGESTED_TAGS = 5
URGENT_TAG = "urgent"

# ── Dataset columns (CSV order; header row optional) ─────────────────────
DATASET_COLUMNS = [
    "title",
    "description",
    "customer_email",
    "category",
    "sub_category",
    "tags",
    "attachments",
]
COLUMN_ALIASES: dict[str, str] = {
    "subcategory": "sub_category",
    "subject": "title",
    "body": "description",
    "email": "customer_email",
}

# ── Training & evaluation ────────────────────────────────────────────────
RANDOM_STATE = 42
HOLDOUT_FRACTION = 0.2
HOLDOUT_MIN_SAMPLES = 50   # below this, metrics are computed on the training set
TRAIN_TIMEOUT_SECONDS = float(os.getenv("CATEGORIZER_TRAIN_TIMEOUT", "600"))
EVALUATE_TIMEOUT_SECONDS = float(os.getenv("CATEGORIZER_EVALUATE_TIMEOUT", "300"))

# ── Batch processing ─────────────────────────────────────────────────────
MAX_BATCH_SIZE = 100
BATCH_MAX_WORKERS = int(os.getenv("CATEGORIZER_BATCH_WORKERS", "8"))

# ── Ticket store sync ────────────────────────────────────────────────────
REANALYSIS_LIMIT = 100
REANALYSIS_MAX_AGE_HOURS = 24

# ── Logging ──────────────────────────────────────────────────────────────
LOG_LEVEL = os.getenv("CATEGORIZER_LOG_LEVEL", "INFO")
LOG_FORMAT = "%(asctime)s  %(levelname)-8s  %(name)s — %(message)s"

# ── Model hyper-parameters ───────────────────────────────────────────────
TFIDF_LOGREG = {
    # Body vocabulary
    "ngram_range": (1, 2),
    "max_features": 30_000,
    "min_df": 1,               # support datasets are small; keep rare terms
    "sublinear_tf": True,      # log(1+tf) dampens high-frequency terms
    # Title vocabulary (titles are short and keyword dense)
    "title_ngram_range": (1, 1),
    "title_max_features": 5_000,
    # Classifier
    "max_iter": 2_000,
    "C": 4.0,
    "solver": "lbfgs",
}
