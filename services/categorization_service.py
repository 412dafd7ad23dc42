"""
Categorization service.
Runs a request through prompt -> model -> extraction -> repair and decides
whether a failure is surfaced to the caller or absorbed into a fallback.
"""
import asyncio
from typing import Optional, Sequence

from core.config import Settings, get_settings
from core.exceptions import ExtractionError, ProviderError
from core.logger import setup_logger
from core.schema import CategorizationResult, Transaction
from llm.client import MessageContent, get_client
from llm.extract import extract_json_object
from llm.prompts import build_document_content, build_document_prompt, build_text_prompt
from llm.repair import document_fallback_result, repair_result, text_fallback_result

logger = setup_logger(__name__)

# Provider messages that mean the attached document was rejected as a PDF
INVALID_DOCUMENT_MARKERS = ("invalid_pdf", "pdf specified was not valid")

INVALID_DOCUMENT_MESSAGE = "Invalid PDF file. Please upload a valid bank statement PDF."

RAW_RESPONSE_LOG_LIMIT = 500


class CategorizationService:
    """Service for categorizing transactions and bank statements with the model provider."""

    def __init__(self, client=None, settings: Optional[Settings] = None):
        """
        Initialize categorization service.

        Args:
            client: Object exposing create_message(content, max_tokens) -> str.
                Defaults to the shared Anthropic client.
            settings: Application settings
        """
        self.settings = settings or get_settings()
        self.client = client if client is not None else get_client()

    async def invoke_model(self, content: MessageContent, max_tokens: int) -> str:
        """
        Run the blocking provider call in the thread pool with an overall time limit.

        Raises:
            ProviderError: If the call fails or exceeds REQUEST_TIMEOUT
        """
        loop = asyncio.get_running_loop()
        try:
            return await asyncio.wait_for(
                loop.run_in_executor(None, self.client.create_message, content, max_tokens),
                timeout=self.settings.request_timeout,
            )
        except asyncio.TimeoutError:
            raise ProviderError(
                f"No response from model provider within {self.settings.request_timeout}s",
                details={"timeout": self.settings.request_timeout}
            )
        except ProviderError:
            raise
        except Exception as e:
            raise ProviderError(str(e) or type(e).__name__, details={"error_type": type(e).__name__})

    def build_result(
        self,
        raw_text: str,
        transactions: Optional[Sequence[Transaction]] = None,
    ) -> CategorizationResult:
        """
        Extract and repair the model output, falling back when it cannot be parsed.

        Args:
            raw_text: Model output
            transactions: Input transactions in text mode, None in document mode

        Returns:
            A valid CategorizationResult; never raises on bad model output
        """
        try:
            parsed = extract_json_object(raw_text)
            return repair_result(parsed, transactions)
        except ExtractionError as e:
            logger.error(f"JSON parse error: {e.message}")
            logger.error(f"Raw response: {str(raw_text)[:RAW_RESPONSE_LOG_LIMIT]}...")
            if transactions is None:
                return document_fallback_result()
            return text_fallback_result(transactions)

    async def categorize_transactions(self, transactions: Sequence[Transaction]) -> CategorizationResult:
        """
        Categorize caller-supplied transactions and generate insights.

        Args:
            transactions: Validated input transactions

        Returns:
            CategorizationResult

        Raises:
            ProviderError: If the model provider call fails
        """
        logger.info(f"Categorizing {len(transactions)} transactions")
        prompt = build_text_prompt(transactions)

        try:
            raw_text = await self.invoke_model(prompt, self.settings.max_tokens_text)
        except ProviderError as e:
            logger.error(f"Anthropic API error: {e.message}")
            raise ProviderError(
                f"Categorization failed: {e.message}",
                details={**e.details, "cause": e.message}
            )

        result = self.build_result(raw_text, transactions)
        logger.info(f"Categorized {len(result.categories)} transactions with {len(result.insights)} insights")
        return result

    async def categorize_statement(self, pdf_base64: str) -> CategorizationResult:
        """
        Extract and categorize transactions from a base64 PDF bank statement.

        Args:
            pdf_base64: Base64 encoded PDF

        Returns:
            CategorizationResult (categories may be empty)

        Raises:
            ProviderError: If the model provider call fails or rejects the document
        """
        logger.info(f"Categorizing PDF statement ({len(pdf_base64)} base64 characters)")
        content = build_document_content(pdf_base64, build_document_prompt())

        try:
            raw_text = await self.invoke_model(content, self.settings.max_tokens_document)
        except ProviderError as e:
            logger.error(f"Anthropic document API error: {e.message}")
            details = {**e.details, "cause": e.message}
            if is_invalid_document_error(e):
                raise ProviderError(INVALID_DOCUMENT_MESSAGE, details=details)
            raise ProviderError(f"PDF processing failed: {e.message}", details=details)

        result = self.build_result(raw_text)
        logger.info(f"Extracted {len(result.categories)} transactions from PDF statement")
        return result


def is_invalid_document_error(error: ProviderError) -> bool:
    """Whether the provider rejected the attached document format."""
    message = error.message.lower()
    return any(marker in message for marker in INVALID_DOCUMENT_MARKERS)
