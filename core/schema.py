"""
Pydantic schemas for request/response validation.
"""
import re
from typing import Annotated, List, Optional

from pydantic import BaseModel, BeforeValidator, Field, field_validator

from core.taxonomy import FALLBACK_CATEGORY, normalize_category

BASE64_PATTERN = re.compile(r"[A-Za-z0-9+/=]+")

MIN_INSIGHTS = 3


def normalize_date(v):
    """Keep string dates, stringify numeric ones (LLM may return 20250103), drop anything else."""
    if isinstance(v, str):
        return v
    if isinstance(v, (int, float)) and not isinstance(v, bool):
        return str(v)
    return None


def reject_bool(v):
    """Booleans are not amounts, even though lax float parsing accepts them."""
    if isinstance(v, bool):
        raise ValueError("amount must be a number, not a boolean")
    return v


class Transaction(BaseModel):
    """Transaction supplied by the caller."""
    description: str = Field(..., min_length=1, description="Merchant or transaction name")
    amount: float = Field(..., strict=True, allow_inf_nan=False, description="Signed amount, negative for expenses")
    date: Optional[str] = None


class CategorizedTransaction(BaseModel):
    """
    Transaction with its assigned category.

    The category is coerced to the fallback label whenever it is not an exact
    taxonomy member, so an instance can never carry an unknown label.
    """
    description: str = Field(..., min_length=1)
    amount: Annotated[float, BeforeValidator(reject_bool)] = Field(..., allow_inf_nan=False)
    date: Annotated[Optional[str], BeforeValidator(normalize_date)] = None
    category: Annotated[str, BeforeValidator(normalize_category)] = Field(
        default=FALLBACK_CATEGORY, description="Taxonomy label"
    )


class CategorizationResult(BaseModel):
    """Categorized transactions and spending insights returned to the caller."""
    categories: List[CategorizedTransaction] = Field(default_factory=list)
    insights: List[str] = Field(..., min_length=MIN_INSIGHTS)


class CategorizeRequest(BaseModel):
    """Body of a text mode request."""
    transactions: List[Transaction] = Field(..., min_length=1)


class CategorizePdfRequest(BaseModel):
    """Body of a document mode request."""
    pdf: str = Field(..., min_length=1, description="Base64 encoded PDF statement")

    @field_validator("pdf")
    @classmethod
    def validate_base64(cls, v):
        """Reject characters outside the base64 alphabet."""
        if not BASE64_PATTERN.fullmatch(v):
            raise ValueError("pdf must be a valid base64 encoded string")
        return v
