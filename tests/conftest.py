"""
Shared fixtures: a fake model provider and sample transactions.
"""
import os

import pytest

os.environ.setdefault("ANTHROPIC_API_KEY", "test-key")

from core.config import Settings  # noqa: E402
from core.schema import Transaction  # noqa: E402


class FakeProvider:
    """Stands in for the Anthropic client; records every call."""

    def __init__(self, response="", error=None):
        self.response = response
        self.error = error
        self.calls = []

    def create_message(self, content, max_tokens):
        self.calls.append({"content": content, "max_tokens": max_tokens})
        if self.error is not None:
            raise self.error
        return self.response


@pytest.fixture
def fake_provider():
    """Factory for fake providers with a canned response or error."""
    return FakeProvider


@pytest.fixture
def settings():
    return Settings(ANTHROPIC_API_KEY="test-key", REQUEST_TIMEOUT=5)


@pytest.fixture
def transactions():
    return [
        Transaction(description="TESCO STORES 2231", amount=-42.18, date="03-02-2025"),
        Transaction(description="ACME LTD SALARY", amount=2500, date="28-02-2025"),
        Transaction(description="MONTHLY ACCOUNT FEE", amount=-5.0),
    ]
