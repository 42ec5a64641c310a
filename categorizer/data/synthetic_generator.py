"""Synthetic labelled tickets covering every catalog category and sub-category.

Used to bootstrap a first model when no real export is available, and by
the test-suite.  Output follows the training CSV layout read by
:mod:`categorizer.data.dataset_loader`.
"""

from __future__ import annotations

import random
from pathlib import Path

import pandas as pd

from categorizer.config import DATASET_COLUMNS, RANDOM_STATE

# ── Corpus (category → sub-category → issue phrases) ─────────────────────
ISSUES: dict[str, dict[str, list[str]]] = {
    "Technical": {
        "Software": ["desktop software freezes after install", "software update fails to install"],
        "Hardware": ["laptop hardware overheating", "printer hardware jammed and broken"],
        "Network": ["vpn network connection drops", "wifi network unreachable in office"],
        "Database": ["database query timeout", "database replication lag on server"],
        "API": ["api returns 500 status", "rest api endpoint rejects token"],
    },
    "Billing": {
        "Payment": ["payment declined at checkout", "credit card payment failed"],
        "Refund": ["refund not received yet", "requesting refund for duplicate charge"],
        "Invoice": ["invoice shows wrong amount", "need a copy of last invoice"],
        "Subscription": ["subscription renewal charged early", "cancel my subscription plan"],
        "Pricing": ["pricing page shows different price", "question about enterprise pricing tiers"],
    },
    "General": {
        "Information": ["information about opening hours", "where can I find information on your office"],
        "Question": ["quick question about your services", "question about how support works"],
        "Feedback": ["feedback on the support experience", "positive feedback for the team"],
        "Other": ["other topic not listed here", "misc note for the team"],
    },
    "Feature Request": {
        "New Feature": ["please add dark mode as a new feature", "new feature idea for calendar export"],
        "Enhancement": ["enhancement to make search faster", "enhancement for bulk editing"],
        "Integration": ["integration with slack please", "integration with salesforce wanted"],
    },
    "Bug Report": {
        "Critical": ["app crash on startup for everyone", "crash loses all saved data"],
        "Major": ["bug breaks export for large files", "major bug in report totals"],
        "Minor": ["minor bug with tooltip position", "small glitch in date picker"],
        "Cosmetic": ["cosmetic issue with button colour", "typo in the footer text"],
    },
    "Account": {
        "Login": ["cannot login with my password", "login page rejects two factor code"],
        "Registration": ["registration email never arrives", "cannot complete account registration"],
        "Profile": ["update profile picture fails", "change name on my profile"],
        "Permissions": ["need admin permissions for project", "permissions denied on shared folder"],
    },
    "Security": {
        "Vulnerability": ["found a vulnerability in the upload form", "xss vulnerability report"],
        "Access": ["suspicious access from unknown location", "revoke access for former employee"],
        "Privacy": ["privacy request to delete my data", "privacy concern about tracking cookies"],
        "Compliance": ["gdpr compliance documentation request", "soc2 compliance report needed"],
    },
}

NOISE_WORDS = [
    "since yesterday", "after the update", "for multiple users",
    "this morning", "on the mobile app", "again today",
]

DOMAINS = ["example.com", "acme.io", "contoso.org", "globex.net"]
ATTACHMENTS = ["screenshot.png", "log.txt", "invoice.pdf"]


# ── Helpers ──────────────────────────────────────────────────────────────

def _generate_ticket(rng: random.Random, category: str, sub_category: str, phrase: str) -> dict:
    noise = rng.choice(NOISE_WORDS)
    n_attachments = rng.choice([0, 0, 1, 2])
    return {
        "title": phrase.capitalize(),
        "description": f"Hello, we have this problem: {phrase} {noise}.",
        "customer_email": f"user{rng.randint(1, 999)}@{rng.choice(DOMAINS)}",
        "category": category,
        "sub_category": sub_category,
        "tags": "",
        "attachments": ",".join(rng.sample(ATTACHMENTS, n_attachments)),
    }


# ── Public API ───────────────────────────────────────────────────────────

def generate_dataset(n_per_sub_category: int = 6, seed: int = RANDOM_STATE) -> pd.DataFrame:
    """Return a DataFrame with the canonical training columns.

    Parameters
    ----------
    n_per_sub_category:
        Number of tickets **per sub-category**.
    seed:
        Random seed for reproducibility.
    """
    rng = random.Random(seed)
    rows = []
    for category, subs in ISSUES.items():
        for sub_category, phrases in subs.items():
            for i in range(n_per_sub_category):
                rows.append(_generate_ticket(rng, category, sub_category, phrases[i % len(phrases)]))
    rng.shuffle(rows)
    return pd.DataFrame(rows, columns=DATASET_COLUMNS)


def write_dataset(path: str | Path, n_per_sub_category: int = 6, seed: int = RANDOM_STATE) -> Path:
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    generate_dataset(n_per_sub_category, seed).to_csv(path, index=False)
    return path
