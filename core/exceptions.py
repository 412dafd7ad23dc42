"""
Custom exceptions for better error handling.
"""
from typing import Any, Dict, Optional


class SpendBreakdownException(Exception):
    """Base exception for all spend breakdown errors."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        """
        Initialize exception.

        Args:
            message: Error message
            details: Additional error details
        """
        super().__init__(message)
        self.message = message
        self.details = details or {}


class ValidationError(SpendBreakdownException):
    """Raised when caller input is invalid."""
    pass


class ProviderError(SpendBreakdownException):
    """Raised when the model provider call fails."""
    pass


class ExtractionError(SpendBreakdownException):
    """Raised when no parseable JSON object is found in a model response."""
    pass


class ConfigurationError(SpendBreakdownException):
    """Raised when configuration is invalid."""
    pass
