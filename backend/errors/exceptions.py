"""
Custom exception hierarchy for the document chat backend.

All exceptions inherit from DocChatError and include:
- code: ErrorCode for categorization
- message: Human-readable error message
- details: Optional additional context
- recoverable: Whether the user can retry/fix the issue
- context: Additional key-value pairs for debugging
"""

from typing import Any, Optional
from .codes import ErrorCode


class DocChatError(Exception):
    """Base exception for all document chat errors.

    Attributes:
        code: The ErrorCode categorizing this error
        message: Human-readable error message
        details: Optional additional context for the user
        recoverable: Whether the error can be resolved by user action
        context: Additional debugging information
    """

    code: ErrorCode = ErrorCode.INTERNAL_UNEXPECTED
    recoverable: bool = False

    def __init__(
        self,
        message: str,
        details: Optional[str] = None,
        code: Optional[ErrorCode] = None,
        recoverable: Optional[bool] = None,
        **context: Any,
    ):
        self.message = message
        self.details = details
        self.context = context if context else None

        # Allow overriding class defaults
        if code is not None:
            self.code = code
        if recoverable is not None:
            self.recoverable = recoverable

        super().__init__(message)

    def __str__(self) -> str:
        if self.details:
            return f"{self.message} - {self.details}"
        return self.message

    def to_dict(self) -> dict:
        """Convert exception to dictionary for JSON serialization."""
        return {
            "code": self.code.value,
            "message": self.message,
            "details": self.details,
            "recoverable": self.recoverable,
            "context": self.context,
        }


class DocumentBuildError(DocChatError):
    """The source document could not be turned into a context.

    ``kind`` is one of ``fetch``, ``content_type`` or ``extraction``.
    """

    code = ErrorCode.EXTRACTION_FAILED
    recoverable = True

    KINDS = ("fetch", "content_type", "extraction")

    def __init__(
        self,
        message: str,
        details: Optional[str] = None,
        kind: str = "extraction",
        url: Optional[str] = None,
        status_code: Optional[int] = None,
        cause: Optional[BaseException] = None,
        **context: Any,
    ):
        if kind == "fetch":
            code = ErrorCode.FETCH_FAILED
        elif kind == "content_type":
            code = ErrorCode.FETCH_INVALID_CONTENT_TYPE
        else:
            kind = "extraction"
            code = ErrorCode.EXTRACTION_FAILED

        self.kind = kind
        self.status_code = status_code
        self.cause = cause

        ctx = {**context}
        if url:
            ctx["url"] = url
        if status_code:
            ctx["status_code"] = status_code
        if cause is not None:
            ctx["cause"] = f"{type(cause).__name__}: {cause}"
        super().__init__(message, details, code=code, **ctx)


class CompletionError(DocChatError):
    """The completion backend failed or returned no usable answer."""

    code = ErrorCode.COMPLETION_FAILED
    recoverable = True

    def __init__(
        self,
        message: str,
        details: Optional[str] = None,
        status_code: Optional[int] = None,
        error_type: Optional[str] = None,
        upstream_type: Optional[str] = None,
        upstream_message: Optional[str] = None,
        upstream_code: Optional[str] = None,
        **context: Any,
    ):
        # Set appropriate code based on error type
        if error_type == "timeout":
            code = ErrorCode.COMPLETION_TIMEOUT
        elif error_type == "empty":
            code = ErrorCode.COMPLETION_EMPTY
        else:
            code = ErrorCode.COMPLETION_FAILED

        self.status_code = status_code
        self.error_type = error_type
        self.upstream_type = upstream_type
        self.upstream_message = upstream_message
        self.upstream_code = upstream_code

        ctx = {**context}
        if status_code:
            ctx["status_code"] = status_code
        if upstream_type:
            ctx["upstream_type"] = upstream_type
        if upstream_code:
            ctx["upstream_code"] = upstream_code
        super().__init__(message, details, code=code, **ctx)


class CacheUnavailableError(DocChatError):
    """The context cache backend could not be reached."""

    code = ErrorCode.CACHE_UNAVAILABLE
    recoverable = True

    def __init__(self, message: str, details: Optional[str] = None, operation: Optional[str] = None, **context: Any):
        ctx = {**context}
        if operation:
            ctx["operation"] = operation
        super().__init__(message, details, **ctx)
