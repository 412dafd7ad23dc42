"""
Service layer for business logic.

This package contains the categorization service that runs a request
through prompt building, the model call, extraction and repair.
"""
