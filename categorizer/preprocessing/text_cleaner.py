"""Text normalisation shared by training and inference."""

from __future__ import annotations

import re

# ── Compiled patterns ────────────────────────────────────────────────────────
_EMAIL   = re.compile(r"[\w.+-]+@([\w-]+(?:\.[\w-]+)*\.[a-z]{2,})", re.IGNORECASE)
_SPACES  = re.compile(r"\s+")
_REF_SEP = re.compile(r"[,;|\n]+")

# Applied in order to the raw text, before lower-casing.
_SCRUB: list[tuple[re.Pattern, str]] = [
    (re.compile(r"<[^>]+>"), " "),                                   # markup
    (re.compile(r"https?://\S+|www\.\S+", re.IGNORECASE), " __url__ "),
    (_EMAIL, " __email__ "),
    (re.compile(r"\b(?:ticket|case|ref|order)\s*[#:]\s*\w+", re.IGNORECASE), " "),
    (re.compile(r"\b\d{4,}\b"), " "),                                # order ids, phone numbers
    (re.compile(r"([!?.])[!?.]+"), r"\1"),                           # "!!!" → "!"
]


def clean(text: str | None) -> str:
    """Lower-cased *text* with markup, links, addresses and reference numbers scrubbed.

    Empty or ``None`` input yields ``""``.
    """
    if not text:
        return ""
    out = str(text)
    for pattern, replacement in _SCRUB:
        out = pattern.sub(replacement, out)
    return _SPACES.sub(" ", out.lower()).strip()


def combine_fields(title: str | None, description: str | None) -> str:
    """Cleaned ``"<title> <description>"``; either part may be missing."""
    return clean(" ".join(str(part) for part in (title, description) if part))


def split_refs(value: str | None) -> list[str]:
    """Split a comma/semicolon separated reference list into clean tokens."""
    if not value:
        return []
    parts = (_SPACES.sub("-", p.strip().lower()) for p in _REF_SEP.split(str(value)))
    return [p for p in parts if p]


def email_domain(address: str | None) -> str | None:
    match = _EMAIL.search(address or "")
    return match.group(1).lower() if match else None
