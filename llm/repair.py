"""
Turn a parsed model response into a valid CategorizationResult.

The model is untrusted even when its output parses: every category is
re-checked against the taxonomy, malformed entries are dropped, input
transactions come back exactly once each, and the insight list is
replaced wholesale when it is too short to use.
"""
from collections import defaultdict, deque
from typing import Any, Callable, Deque, Dict, Hashable, List, Optional, Sequence, Tuple

from pydantic import ValidationError

from core.exceptions import ExtractionError
from core.logger import setup_logger
from core.schema import MIN_INSIGHTS, CategorizationResult, CategorizedTransaction, Transaction
from core.taxonomy import FALLBACK_CATEGORY

logger = setup_logger(__name__)

GENERIC_INSIGHTS = (
    "Upload more months to see personalized spending insights",
    "Track your largest expense categories to identify savings opportunities",
    "Set a savings goal to reduce spending in specific categories",
)

TEXT_FALLBACK_INSIGHTS = (
    "Unable to generate AI insights at this time",
    "Your transactions have been categorized with default categories",
    "Please try uploading again for AI-powered categorization",
)

DOCUMENT_FALLBACK_INSIGHTS = (
    "Unable to extract transactions from PDF at this time",
    "Please ensure your PDF is a valid bank statement",
    "Try uploading a CSV file instead for better results",
)


def to_fallback_entry(transaction: Transaction) -> CategorizedTransaction:
    """Echo an input transaction under the fallback category."""
    return CategorizedTransaction(
        description=transaction.description,
        amount=transaction.amount,
        date=transaction.date,
        category=FALLBACK_CATEGORY,
    )


def text_fallback_result(transactions: Sequence[Transaction]) -> CategorizationResult:
    """Result used when a text mode response cannot be parsed at all."""
    return CategorizationResult(
        categories=[to_fallback_entry(txn) for txn in transactions],
        insights=list(TEXT_FALLBACK_INSIGHTS),
    )


def document_fallback_result() -> CategorizationResult:
    """Result used when a document mode response cannot be parsed at all."""
    return CategorizationResult(categories=[], insights=list(DOCUMENT_FALLBACK_INSIGHTS))


def repair_categories(raw_categories: List[Any]) -> List[CategorizedTransaction]:
    """
    Validate each categorized entry, coercing unknown labels to the fallback.

    Args:
        raw_categories: The "categories" list from the model

    Returns:
        Entries that carry a usable description and amount
    """
    repaired = []
    for index, entry in enumerate(raw_categories):
        if not isinstance(entry, dict):
            logger.warning(f"Dropping categories[{index}]: expected an object, got {type(entry).__name__}")
            continue
        try:
            item = CategorizedTransaction.model_validate(entry)
        except ValidationError as e:
            logger.warning(f"Dropping categories[{index}]: {e.error_count()} validation error(s)")
            continue
        if "category" in entry and entry["category"] != item.category:
            logger.debug(f"Unknown category {entry['category']!r} for {item.description!r}, using {FALLBACK_CATEGORY}")
        repaired.append(item)
    return repaired


def normalize_description(description: str) -> str:
    """Case- and whitespace-insensitive form of a description."""
    return " ".join(description.split()).casefold()


def amount_key(amount: float) -> float:
    return round(amount, 2)


# Pairing passes, strictest first
MATCH_KEYS: Tuple[Callable[[Any], Hashable], ...] = (
    lambda t: (t.description, amount_key(t.amount)),
    lambda t: t.description,
    lambda t: (normalize_description(t.description), amount_key(t.amount)),
)


def reconcile_with_input(
    categorized: List[CategorizedTransaction],
    transactions: Sequence[Transaction],
) -> List[CategorizedTransaction]:
    """
    Produce exactly one row per input transaction, in input order.

    Each input is paired with at most one model entry, trying exact
    description and amount first, then exact description, then a case- and
    whitespace-insensitive description with the same amount. A paired input
    takes the entry's category; an unpaired input gets the fallback category.
    Model entries left unpaired are dropped. Description, amount and date
    always come from the input.
    """
    pairs: List[Optional[CategorizedTransaction]] = [None] * len(transactions)
    used = [False] * len(categorized)

    for key in MATCH_KEYS:
        available: Dict[Hashable, Deque[int]] = defaultdict(deque)
        for index, item in enumerate(categorized):
            if not used[index]:
                available[key(item)].append(index)
        for position, txn in enumerate(transactions):
            if pairs[position] is not None:
                continue
            queue = available.get(key(txn))
            if queue:
                index = queue.popleft()
                used[index] = True
                pairs[position] = categorized[index]

    unmatched_entries = used.count(False)
    if unmatched_entries:
        logger.warning(f"Dropping {unmatched_entries} model entries that match no input transaction")

    missing = pairs.count(None)
    if missing:
        logger.warning(f"{missing} transaction(s) missing from model response, marking as {FALLBACK_CATEGORY}")

    return [
        to_fallback_entry(txn) if item is None else CategorizedTransaction(
            description=txn.description,
            amount=txn.amount,
            date=txn.date,
            category=item.category,
        )
        for txn, item in zip(transactions, pairs)
    ]


def repair_insights(raw_insights: Any) -> List[str]:
    """
    Keep the model's insights only if at least MIN_INSIGHTS of them are usable.

    A short list is replaced entirely rather than padded, so model-written and
    generic insights never appear side by side.
    """
    if isinstance(raw_insights, list):
        usable = [s for s in raw_insights if isinstance(s, str) and s.strip()]
        if len(usable) >= MIN_INSIGHTS:
            return usable
    logger.info("Model insights missing or too short, using generic insights")
    return list(GENERIC_INSIGHTS)


def repair_result(
    parsed: Dict[str, Any],
    transactions: Optional[Sequence[Transaction]] = None,
) -> CategorizationResult:
    """
    Repair a parsed model response into a valid result.

    Args:
        parsed: JSON object extracted from the model response
        transactions: Input transactions in text mode, None in document mode

    Returns:
        CategorizationResult satisfying the output contract

    Raises:
        ExtractionError: If the object has no "categories" list to work from
    """
    raw_categories = parsed.get("categories")
    if not isinstance(raw_categories, list):
        raise ExtractionError(
            "Response JSON has no categories list",
            details={"keys": sorted(parsed.keys())}
        )

    categories = repair_categories(raw_categories)
    if transactions is not None:
        categories = reconcile_with_input(categories, transactions)

    return CategorizationResult(
        categories=categories,
        insights=repair_insights(parsed.get("insights")),
    )
