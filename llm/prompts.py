"""
Prompt builders for transaction categorization.
Text mode embeds the caller's transactions; document mode asks the model
to extract them from an attached PDF statement first.
"""
import json
from typing import Any, Dict, List, Sequence, Union

from core.schema import Transaction
from core.taxonomy import CATEGORIES

PDF_MEDIA_TYPE = "application/pdf"

CATEGORIZATION_RULES = """1. Positive amounts (income):
   - "Income" for salary, wages, payroll
   - "Refunds" for returns, refunds, chargebacks
2. Negative amounts (expenses):
   - "Banking & Fees" for bank charges, ATM fees, overdraft fees
   - Match merchant/description to the most specific category
   - If unclear → "Other"
3. Always return a valid category from the list above"""

EXTRACTION_RULES = """1. Extract ALL transactions from ALL pages
2. For each transaction, extract:
   - Date (in DD-MM-YYYY format)
   - Description (merchant/transaction name - keep original)
   - Amount (use negative for debits/expenses, positive for credits/income)
3. Handle debit/credit columns:
   - If separate columns: use amount_debited (negative) or amount_credited (positive)
   - Combine into single amount field"""

OUTPUT_FORMAT = """Return JSON in this EXACT format:
{
  "categories": [
    {"description": "transaction description", "amount": -25.50, "category": "Groceries"}
  ],
  "insights": [
    "Insight 1 with specific amounts and actionable advice",
    "Insight 2 with specific amounts and actionable advice",
    "Insight 3 with specific amounts and actionable advice"
  ]
}"""

INSIGHTS_REQUIREMENTS = """INSIGHTS REQUIREMENTS:
- Provide 3-5 actionable insights about spending patterns
- Mention specific amounts and percentages
- Be concrete and helpful (e.g., "You spent {currency}450 on Dining & Takeout, which is 30% of your expenses. Consider meal prepping to reduce this.")
- Focus on: high spending categories, unusual patterns, savings opportunities"""

JSON_CONSTRAINTS = """CRITICAL: Return ONLY valid JSON. Ensure:
- All strings are properly quoted with double quotes
- All arrays have proper comma separation
- No trailing commas in arrays or objects
- All special characters in descriptions are properly escaped
- Test the JSON is valid before returning it
- Do not include any text before or after the JSON"""


def format_category_list() -> str:
    """Taxonomy labels in canonical order, comma separated."""
    return ", ".join(CATEGORIES)


def serialize_transactions(transactions: Sequence[Union[Transaction, Dict[str, Any]]]) -> str:
    """
    Serialize transactions for embedding in the prompt.

    Args:
        transactions: Transaction models or plain dictionaries

    Returns:
        Pretty-printed JSON array
    """
    payload = [
        txn.model_dump(exclude_none=True) if isinstance(txn, Transaction) else txn
        for txn in transactions
    ]
    return json.dumps(payload, indent=2, ensure_ascii=False)


def build_text_prompt(transactions: Sequence[Union[Transaction, Dict[str, Any]]]) -> str:
    """
    Build the categorization prompt for a list of transactions.

    Args:
        transactions: Transactions supplied by the caller

    Returns:
        Complete prompt string
    """
    return f"""You are a financial categorization expert. Categorize these bank transactions into ONE of these {len(CATEGORIES)} categories:

{format_category_list()}

RULES:
{CATEGORIZATION_RULES}

TRANSACTIONS:
{serialize_transactions(transactions)}

{OUTPUT_FORMAT}

{JSON_CONSTRAINTS}

{INSIGHTS_REQUIREMENTS.format(currency="$")}"""


def build_document_prompt() -> str:
    """
    Build the extraction and categorization prompt for a PDF statement.

    Returns:
        Complete prompt string
    """
    return f"""Extract all transactions from this bank statement PDF and categorize each into ONE of these {len(CATEGORIES)} categories:

{format_category_list()}

EXTRACTION RULES:
{EXTRACTION_RULES}

CATEGORIZATION RULES:
{CATEGORIZATION_RULES}

{OUTPUT_FORMAT}

{INSIGHTS_REQUIREMENTS.format(currency="€")}

{JSON_CONSTRAINTS}"""


def build_document_content(pdf_base64: str, prompt: str) -> List[Dict[str, Any]]:
    """
    Build message content with the statement attached ahead of the instructions.

    Args:
        pdf_base64: Base64 encoded PDF
        prompt: Instruction text

    Returns:
        Content blocks for a single user message
    """
    return [
        {
            "type": "document",
            "source": {
                "type": "base64",
                "media_type": PDF_MEDIA_TYPE,
                "data": pdf_base64,
            },
        },
        {"type": "text", "text": prompt},
    ]
