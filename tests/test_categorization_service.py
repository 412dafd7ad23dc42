"""
Tests for the categorization pipeline and its failure classification.
"""
import asyncio
import json
import threading

import pytest
import requests

from core.config import Settings
from core.exceptions import ProviderError
from core.taxonomy import VALID_CATEGORIES
from llm.repair import DOCUMENT_FALLBACK_INSIGHTS, GENERIC_INSIGHTS, TEXT_FALLBACK_INSIGHTS
from services.categorization_service import (
    INVALID_DOCUMENT_MESSAGE,
    CategorizationService,
    is_invalid_document_error,
)

VALID_RESPONSE = json.dumps({
    "categories": [
        {"description": "TESCO STORES 2231", "amount": -42.18, "category": "Groceries"},
        {"description": "ACME LTD SALARY", "amount": 2500, "category": "Income"},
        {"description": "MONTHLY ACCOUNT FEE", "amount": -5.0, "category": "Bank Charges"},
    ],
    "insights": [
        "Groceries were $42.18, 89% of your expenses.",
        "Your salary of $2,500 was your only income.",
        "You paid $5.00 in bank fees this month.",
        "Switching to a fee-free account saves $60 a year.",
    ],
})


def run(coro):
    return asyncio.run(coro)


def test_text_mode_success(fake_provider, settings, transactions):
    provider = fake_provider(response=f"Here you go:\n{VALID_RESPONSE}\nLet me know!")
    service = CategorizationService(client=provider, settings=settings)

    result = run(service.categorize_transactions(transactions))

    assert [c.category for c in result.categories] == ["Groceries", "Income", "Other"]
    assert result.categories[0].date == "03-02-2025"
    assert len(result.insights) == 4
    assert len(provider.calls) == 1
    assert provider.calls[0]["max_tokens"] == 4096
    assert "TESCO STORES 2231" in provider.calls[0]["content"]


def test_text_mode_unparseable_response_falls_back(fake_provider, settings, transactions):
    provider = fake_provider(response="Sorry, I cannot help with that request.")
    service = CategorizationService(client=provider, settings=settings)

    result = run(service.categorize_transactions(transactions))

    assert [c.description for c in result.categories] == [t.description for t in transactions]
    assert all(c.category == "Other" for c in result.categories)
    assert result.insights == list(TEXT_FALLBACK_INSIGHTS)


def test_text_mode_truncated_response_falls_back(fake_provider, settings, transactions):
    provider = fake_provider(response=VALID_RESPONSE[:120])
    service = CategorizationService(client=provider, settings=settings)

    result = run(service.categorize_transactions(transactions))

    assert len(result.categories) == 3
    assert result.insights == list(TEXT_FALLBACK_INSIGHTS)


def test_text_mode_response_without_categories_falls_back(fake_provider, settings, transactions):
    provider = fake_provider(response='{"insights": ["a", "b", "c"]}')
    service = CategorizationService(client=provider, settings=settings)

    result = run(service.categorize_transactions(transactions))

    assert all(c.category == "Other" for c in result.categories)
    assert result.insights == list(TEXT_FALLBACK_INSIGHTS)


def test_short_insights_are_replaced(fake_provider, settings, transactions):
    response = json.dumps({
        "categories": [{"description": "TESCO STORES 2231", "amount": -42.18, "category": "Groceries"}],
        "insights": ["Only one insight"],
    })
    service = CategorizationService(client=fake_provider(response=response), settings=settings)

    result = run(service.categorize_transactions(transactions))

    assert result.insights == list(GENERIC_INSIGHTS)
    assert len(result.categories) == 3


def test_text_mode_provider_error_is_surfaced(fake_provider, settings, transactions):
    provider = fake_provider(error=ProviderError("Connection refused", details={"api_url": "x"}))
    service = CategorizationService(client=provider, settings=settings)

    with pytest.raises(ProviderError) as exc_info:
        run(service.categorize_transactions(transactions))

    assert exc_info.value.message == "Categorization failed: Connection refused"
    assert exc_info.value.details["cause"] == "Connection refused"


def test_unexpected_client_exception_becomes_provider_error(fake_provider, settings, transactions):
    provider = fake_provider(error=requests.exceptions.ConnectionError("network unreachable"))
    service = CategorizationService(client=provider, settings=settings)

    with pytest.raises(ProviderError) as exc_info:
        run(service.categorize_transactions(transactions))

    assert "network unreachable" in exc_info.value.message
    assert exc_info.value.message.startswith("Categorization failed: ")


def test_slow_provider_is_bounded(transactions):
    release = threading.Event()

    class SlowProvider:
        def create_message(self, content, max_tokens):
            release.wait(5)
            return VALID_RESPONSE

    settings = Settings(ANTHROPIC_API_KEY="test-key", REQUEST_TIMEOUT=1)
    service = CategorizationService(client=SlowProvider(), settings=settings)

    async def categorize():
        try:
            return await service.categorize_transactions(transactions)
        finally:
            release.set()

    with pytest.raises(ProviderError) as exc_info:
        run(categorize())
    assert "within 1s" in exc_info.value.message


def test_document_mode_success(fake_provider, settings):
    provider = fake_provider(response=VALID_RESPONSE)
    service = CategorizationService(client=provider, settings=settings)

    result = run(service.categorize_statement("JVBERi0xLjQK"))

    assert len(result.categories) == 3
    assert all(c.category in VALID_CATEGORIES for c in result.categories)
    call = provider.calls[0]
    assert call["max_tokens"] == 8192
    assert call["content"][0]["source"]["data"] == "JVBERi0xLjQK"
    assert call["content"][1]["type"] == "text"


def test_document_mode_keeps_entries_with_numeric_dates(fake_provider, settings):
    response = json.dumps({
        "categories": [
            {"description": "NETFLIX.COM", "amount": -9.99, "date": 20250103, "category": "Subscriptions"},
            {"description": "SHELL 0421", "amount": -61.2, "date": "04-01-2025", "category": "Transport"},
        ],
        "insights": ["a", "b", "c"],
    })
    service = CategorizationService(client=fake_provider(response=response), settings=settings)

    result = run(service.categorize_statement("JVBERi0xLjQK"))

    assert [(c.date, c.category) for c in result.categories] == [
        ("20250103", "Subscriptions"),
        ("04-01-2025", "Transport"),
    ]


def test_document_budget_exceeds_text_budget(fake_provider, settings, transactions):
    provider = fake_provider(response=VALID_RESPONSE)
    service = CategorizationService(client=provider, settings=settings)

    run(service.categorize_transactions(transactions))
    run(service.categorize_statement("JVBERi0xLjQK"))

    assert provider.calls[1]["max_tokens"] > provider.calls[0]["max_tokens"]


def test_document_mode_unparseable_response_falls_back(fake_provider, settings):
    service = CategorizationService(client=fake_provider(response="This does not look like a statement."), settings=settings)

    result = run(service.categorize_statement("JVBERi0xLjQK"))

    assert result.categories == []
    assert result.insights == list(DOCUMENT_FALLBACK_INSIGHTS)


def test_document_mode_provider_error_is_surfaced(fake_provider, settings):
    provider = fake_provider(error=ProviderError("Overloaded"))
    service = CategorizationService(client=provider, settings=settings)

    with pytest.raises(ProviderError) as exc_info:
        run(service.categorize_statement("JVBERi0xLjQK"))

    assert exc_info.value.message == "PDF processing failed: Overloaded"


def test_document_mode_rejected_pdf(fake_provider, settings):
    provider = fake_provider(error=ProviderError("The PDF specified was not valid."))
    service = CategorizationService(client=provider, settings=settings)

    with pytest.raises(ProviderError) as exc_info:
        run(service.categorize_statement("AAAA"))

    assert exc_info.value.message == INVALID_DOCUMENT_MESSAGE
    assert exc_info.value.details["cause"] == "The PDF specified was not valid."


def test_invalid_document_markers():
    assert is_invalid_document_error(ProviderError("invalid_pdf: could not read"))
    assert not is_invalid_document_error(ProviderError("rate_limit_error"))
