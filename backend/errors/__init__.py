"""
Document Chat Error Handling Module

Provides standardized error codes, exceptions, and failure renderers
for consistent error handling across the application.

Usage:
    from errors import (
        # Error codes
        ErrorCode,

        # Exceptions
        DocChatError,
        DocumentBuildError,
        CompletionError,
        CacheUnavailableError,

        # Response builders
        format_completion_error,
        format_document_unavailable,
        format_unexpected_error,

        # Decorators
        swallow_errors,
        log_error,
    )

Example:
    from errors import DocumentBuildError

    if "pdf" not in content_type.lower():
        raise DocumentBuildError(
            "Fetched resource is not a PDF",
            details=f"Content-Type: {content_type}",
            kind="content_type",
            url=url,
        )
"""

from .codes import ErrorCode
from .exceptions import (
    DocChatError,
    DocumentBuildError,
    CompletionError,
    CacheUnavailableError,
)
from .response import (
    format_completion_error,
    format_document_unavailable,
    format_unexpected_error,
    debug_payload,
)
from .handlers import (
    swallow_errors,
    log_error,
)

__all__ = [
    # Error codes
    "ErrorCode",
    # Exceptions
    "DocChatError",
    "DocumentBuildError",
    "CompletionError",
    "CacheUnavailableError",
    # Response builders
    "format_completion_error",
    "format_document_unavailable",
    "format_unexpected_error",
    "debug_payload",
    # Decorators
    "swallow_errors",
    "log_error",
]
