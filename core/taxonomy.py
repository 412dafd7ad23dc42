"""
The fixed set of spending categories a transaction may be assigned to.
"""
from typing import FrozenSet, Tuple

FALLBACK_CATEGORY = "Other"

# Order matters: prompts list the labels in this order
CATEGORIES: Tuple[str, ...] = (
    "Groceries",
    "Dining & Takeout",
    "Transport",
    "Housing",
    "Utilities",
    "Banking & Fees",
    "Insurance",
    "Subscriptions",
    "Shopping",
    "Travel",
    "Healthcare",
    "Entertainment",
    "Education",
    "Pets",
    "Income",
    "Refunds",
    FALLBACK_CATEGORY,
)

VALID_CATEGORIES: FrozenSet[str] = frozenset(CATEGORIES)


def is_valid_category(label) -> bool:
    """Exact, case-sensitive taxonomy membership."""
    return isinstance(label, str) and label in VALID_CATEGORIES


def normalize_category(label) -> str:
    """Return the label itself when valid, otherwise the fallback category."""
    return label if is_valid_category(label) else FALLBACK_CATEGORY
