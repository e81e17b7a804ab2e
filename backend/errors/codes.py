"""
Error codes for the document chat backend.

Provides a standardized taxonomy of error codes organized by category.
Use these codes consistently across all error responses.
"""

from enum import Enum

class ErrorCode(str, Enum):
    """Standardized error codes.

    Categories:
    - FETCH_*: Document download errors
    - EXTRACTION_*: PDF text extraction errors
    - COMPLETION_*: Language model errors
    - CACHE_*: Context store errors (soft, never surfaced)
    - INTERNAL_*: Internal/unexpected errors
    """

    # Document fetch errors
    FETCH_FAILED = "FETCH_FAILED"
    FETCH_INVALID_CONTENT_TYPE = "FETCH_INVALID_CONTENT_TYPE"

    # Text extraction errors
    EXTRACTION_FAILED = "EXTRACTION_FAILED"

    # Completion errors (model interactions)
    COMPLETION_FAILED = "COMPLETION_FAILED"
    COMPLETION_TIMEOUT = "COMPLETION_TIMEOUT"
    COMPLETION_EMPTY = "COMPLETION_EMPTY"

    # Cache errors
    CACHE_UNAVAILABLE = "CACHE_UNAVAILABLE"

    # Internal errors (unexpected failures)
    INTERNAL_UNEXPECTED = "INTERNAL_UNEXPECTED"
