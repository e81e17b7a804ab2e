"""
Error handling decorators and utilities.

Provides the decorator used for best-effort side channels and a
consistent error logging helper.
"""

import logging
from functools import wraps
from typing import Any, Callable, Optional, TypeVar

from .exceptions import DocChatError

# Type variable for decorated functions
F = TypeVar("F", bound=Callable[..., Any])


def swallow_errors(channel: str, logger: Optional[logging.Logger] = None):
    """Decorator for async side effects whose failures must never propagate.

    The wrapped coroutine returns ``None`` instead of raising. Failures are
    logged at WARNING with the channel name.

    Args:
        channel: Name of the side channel for log context
        logger: Optional logger instance (defaults to a channel logger)

    Example:
        >>> @swallow_errors("interaction_log")
        ... async def log(record):
        ...     await db.execute_in_transaction(...)
    """

    def decorator(func: F) -> F:
        log = logger or logging.getLogger(f"docchat.{channel}")

        @wraps(func)
        async def wrapper(*args: Any, **kwargs: Any) -> Any:
            try:
                return await func(*args, **kwargs)
            except Exception as e:
                log.warning(f"[{channel}] ignored failure: {type(e).__name__}: {e}")
                return None

        return wrapper  # type: ignore

    return decorator


def log_error(
    logger: logging.Logger, error: Exception, context: Optional[str] = None, include_traceback: bool = True
) -> None:
    """Log an error with consistent formatting.

    Args:
        logger: Logger instance to use
        error: The exception to log
        context: Optional context string to prefix the message
        include_traceback: Whether to include the full stack trace

    Example:
        >>> log_error(logger, err, context="Context build")
        # Logs: "[Context build] FETCH_FAILED: Document download failed"
    """
    if isinstance(error, DocChatError):
        message = f"{error.code.value}: {error}"
    else:
        message = str(error)

    if context:
        message = f"[{context}] {message}"

    logger.error(message, exc_info=include_traceback)
