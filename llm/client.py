"""
Anthropic Messages API client using direct REST calls.
One request per call; failures surface as ProviderError.
"""
import json
from typing import Any, Dict, List, Optional, Union

import requests

from core.config import Settings, get_settings
from core.exceptions import ConfigurationError, ProviderError
from core.logger import setup_logger

logger = setup_logger(__name__)

MessageContent = Union[str, List[Dict[str, Any]]]


class AnthropicClientWrapper:
    """Wrapper for the Anthropic Messages REST API."""

    def __init__(self, settings: Optional[Settings] = None):
        """
        Initialize REST API client.

        Args:
            settings: Application settings (defaults to the global settings)
        """
        settings = settings or get_settings()
        if not settings.anthropic_api_key:
            raise ConfigurationError(
                "ANTHROPIC_API_KEY environment variable not set",
                details={"required_key": "ANTHROPIC_API_KEY"}
            )

        self.api_url = settings.anthropic_api_url
        self.api_key = settings.anthropic_api_key
        self.api_version = settings.anthropic_version
        self.model = settings.anthropic_model
        self.timeout = settings.anthropic_timeout

        logger.info(f"Initialized Anthropic REST client with model: {self.model}")

    def create_message(self, content: MessageContent, max_tokens: int) -> str:
        """
        Send a single user message and return the model's text output.

        Args:
            content: Prompt string, or content blocks (document + text)
            max_tokens: Maximum output tokens

        Returns:
            Raw text of the response

        Raises:
            ProviderError: If the call fails or the response carries no text
        """
        payload = {
            "model": self.model,
            "max_tokens": max_tokens,
            "messages": [{"role": "user", "content": content}],
        }
        headers = {
            "content-type": "application/json",
            "x-api-key": self.api_key,
            "anthropic-version": self.api_version,
        }

        try:
            response = requests.post(
                self.api_url,
                headers=headers,
                data=json.dumps(payload),
                timeout=self.timeout
            )
            response.raise_for_status()
            message = response.json()

        except requests.exceptions.Timeout as e:
            logger.error(f"Anthropic request timeout after {self.timeout}s: {e}")
            raise ProviderError(
                f"Request timed out after {self.timeout}s",
                details={"timeout": self.timeout}
            )

        except requests.exceptions.HTTPError as e:
            error_type, error_message = parse_error_body(e.response)
            status_code = getattr(e.response, "status_code", None)
            logger.error(f"Anthropic HTTP error {status_code}: {error_type}: {error_message}")
            raise ProviderError(
                error_message or str(e),
                details={"status_code": status_code, "error_type": error_type}
            )

        except ValueError as e:
            logger.error(f"Anthropic returned a non-JSON body: {e}")
            raise ProviderError(
                "Anthropic API returned an invalid response body",
                details={"error": str(e)}
            )

        except requests.exceptions.RequestException as e:
            logger.error(f"Anthropic request failed: {e}")
            raise ProviderError(
                f"Failed to connect to Anthropic API: {e}",
                details={"api_url": self.api_url}
            )

        text = extract_text(message)
        if text is None:
            logger.error(f"Response keys: {list(message.keys()) if isinstance(message, dict) else type(message)}")
            raise ProviderError(
                "Unexpected response structure: no text content in response",
                details={"stop_reason": message.get("stop_reason") if isinstance(message, dict) else None}
            )

        usage = message.get("usage") or {}
        logger.debug(
            f"Token usage - Input: {usage.get('input_tokens', 'N/A')}, "
            f"Output: {usage.get('output_tokens', 'N/A')}"
        )
        if message.get("stop_reason") == "max_tokens":
            logger.warning(f"Response truncated at max_tokens={max_tokens}")

        return text


def extract_text(message: Any) -> Optional[str]:
    """
    Concatenate the text blocks of a Messages API response.

    Returns:
        The text, or None when the response has no text block
    """
    if not isinstance(message, dict):
        return None
    blocks = message.get("content")
    if not isinstance(blocks, list):
        return None
    texts = [
        block.get("text", "")
        for block in blocks
        if isinstance(block, dict) and block.get("type") == "text"
    ]
    if not texts:
        return None
    return "".join(texts)


def parse_error_body(response: Optional[requests.Response]):
    """
    Pull the error type and message out of an API error response.

    Returns:
        Tuple of (error_type, error_message), either may be None
    """
    if response is None:
        return None, None
    try:
        body = response.json()
    except ValueError:
        return None, (response.text or None)
    error = body.get("error") if isinstance(body, dict) else None
    if not isinstance(error, dict):
        return None, None
    return error.get("type"), error.get("message")


# Singleton client instance
_client: Optional[AnthropicClientWrapper] = None


def get_client() -> AnthropicClientWrapper:
    """
    Get or create Anthropic client singleton.

    Returns:
        Anthropic client wrapper instance
    """
    global _client
    if _client is None:
        _client = AnthropicClientWrapper()
    return _client
