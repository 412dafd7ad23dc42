"""
LLM integration for transaction categorization.

This package contains:
- client: Anthropic Messages API client wrapper
- prompts: Text and document prompt builders
- extract: JSON extraction from model output
- repair: Result validation, repair and fallbacks
"""
