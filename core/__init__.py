"""
Core modules for the spend breakdown service.

This package contains:
- config: Application configuration and settings
- exceptions: Custom exception classes
- logger: Logging configuration
- schema: Pydantic models for requests and results
- taxonomy: The fixed category labels
"""
