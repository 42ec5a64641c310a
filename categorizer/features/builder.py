"""Feature Builder — raw ticket fields → fixed-shape feature record.

Every record carries the same three model columns (``text``, ``title``,
``meta``) so that a single scikit-learn ``ColumnTransformer`` can consume
records built from training rows and from live requests alike.  Empty
strings are valid input; they produce a degenerate but well-formed record.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable

import pandas as pd

from categorizer.preprocessing.text_cleaner import clean, combine_fields, email_domain, split_refs

FEATURE_COLUMNS = ["text", "title", "meta"]


@dataclass(frozen=True)
class TicketFeatures:
    text: str
    title: str
    meta: str
    # Label hints travel with the record but are never vectorised.
    category_hint: str | None = None
    sub_category_hint: str | None = None


def _attachment_bucket(count: int) -> str:
    if count == 0:
        return "none"
    if count == 1:
        return "one"
    return "many"


def _meta_tokens(
    tags: str | None,
    attachments: str | None,
    customer_email: str | None,
) -> list[str]:
    tokens = [
        f"domain:{email_domain(customer_email) or 'none'}",
        f"attachments:{_attachment_bucket(len(split_refs(attachments)))}",
    ]
    tokens.extend(f"tag:{tag}" for tag in split_refs(tags))
    return tokens


def build_features(
    title: str | None,
    description: str | None,
    *,
    category: str | None = None,
    sub_category: str | None = None,
    tags: str | None = None,
    attachments: str | None = None,
    customer_email: str | None = None,
) -> TicketFeatures:
    return TicketFeatures(
        text=combine_fields(title, description),
        title=clean(title),
        meta=" ".join(_meta_tokens(tags, attachments, customer_email)),
        category_hint=category or None,
        sub_category_hint=sub_category or None,
    )


def build_features_from_request(request) -> TicketFeatures:
    """Adapter for :class:`~categorizer.schemas.AnalysisRequest`."""
    return build_features(
        request.title,
        request.description,
        category=request.category,
        sub_category=request.sub_category,
        tags=request.tags,
        attachments=request.attachments,
        customer_email=request.customer_email,
    )


def features_frame(records: Iterable[TicketFeatures]) -> pd.DataFrame:
    """Stack feature records into the DataFrame the classifier pipeline expects."""
    rows = [{col: getattr(r, col) for col in FEATURE_COLUMNS} for r in records]
    return pd.DataFrame(rows, columns=FEATURE_COLUMNS)
