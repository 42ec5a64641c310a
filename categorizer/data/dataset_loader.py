"""Load labelled ticket CSVs for training and evaluation.

Expected columns, in order: ``title``, ``description``, ``customer_email``,
``category``, ``sub_category``, ``tags``, ``attachments``.  A header row is
optional; when present, column names are matched case-insensitively and a
few common aliases (``subcategory``, ``subject``, ``body``) are accepted.
"""

from __future__ import annotations

import logging
from pathlib import Path

import pandas as pd

from categorizer.config import COLUMN_ALIASES, DATASET_COLUMNS
from categorizer.errors import DatasetNotFound
from categorizer.features.builder import TicketFeatures, build_features

logger = logging.getLogger(__name__)

_HEADER_MARKERS = {"title", "description", "subject", "body"}


def _normalise_header(name: object) -> str:
    key = str(name).strip().lower().replace(" ", "_").replace("-", "_")
    return COLUMN_ALIASES.get(key, key)


def _has_header(first_row: pd.Series) -> bool:
    return any(_normalise_header(v) in _HEADER_MARKERS for v in first_row)


def load_labelled_tickets(path: str | Path) -> pd.DataFrame:
    """Read *path* into a DataFrame with exactly the canonical columns.

    Missing columns are filled with empty strings; rows whose title and
    description are both blank are dropped.
    """
    path = Path(path)
    if not path.is_file():
        raise DatasetNotFound(path)

    try:
        raw = pd.read_csv(path, header=None, dtype=str, keep_default_na=False, skipinitialspace=True)
    except pd.errors.EmptyDataError:
        raw = pd.DataFrame()
    if raw.empty:
        logger.warning("Dataset %s is empty", path)
        return pd.DataFrame(columns=DATASET_COLUMNS)

    if _has_header(raw.iloc[0]):
        raw.columns = [_normalise_header(c) for c in raw.iloc[0]]
        raw = raw.iloc[1:]
    else:
        names = DATASET_COLUMNS + [f"extra_{i}" for i in range(len(raw.columns) - len(DATASET_COLUMNS))]
        raw.columns = names[: len(raw.columns)]

    df = pd.DataFrame({col: raw[col] if col in raw.columns else "" for col in DATASET_COLUMNS})
    df = df.fillna("").astype(str).apply(lambda s: s.str.strip())

    blank = (df["title"] == "") & (df["description"] == "")
    if blank.any():
        logger.warning("Dropping %d rows with no title or description from %s", int(blank.sum()), path)
    df = df[~blank].reset_index(drop=True)

    logger.info(
        "Dataset ready: %d tickets from %s -- category distribution:\n%s",
        len(df), path, df["category"].value_counts().to_string(),
    )
    return df


def to_features(df: pd.DataFrame) -> list[TicketFeatures]:
    """Build one feature record per dataset row."""
    return [
        build_features(
            row.title,
            row.description,
            category=row.category,
            sub_category=row.sub_category,
            tags=row.tags,
            attachments=row.attachments,
            customer_email=row.customer_email,
        )
        for row in df.itertuples(index=False)
    ]
