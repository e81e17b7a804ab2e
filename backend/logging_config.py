"""
Document Chat Logging Configuration - Color-Coded Container Logs

Provides:
- ColorFormatter: ANSI color-coded log output
- Helper functions: log_question_in, log_answer_out, log_context, log_llm
- setup_logging(): Configure application logging

Usage:
    from logging_config import setup_logging, log_question_in, log_llm
    setup_logging()
    logger = logging.getLogger(__name__)
    log_question_in(logger, "¿Cuáles son los requisitos de inscripción?", session="session_ab12")
"""

import logging
import sys

# ANSI color codes
COLORS = {
    "RESET": "\033[0m",
    "BOLD": "\033[1m",
    "DIM": "\033[2m",
    # Event colors
    "MSG_IN": "\033[96m",  # Cyan - incoming question
    "MSG_OUT": "\033[92m",  # Green - outgoing answer
    "CONTEXT": "\033[95m",  # Magenta - context cache / build
    "LLM": "\033[94m",  # Blue - completion calls
    "ERROR": "\033[91m",  # Red - errors
    "WARN": "\033[33m",  # Orange/Yellow - warnings
    "DEBUG": "\033[90m",  # Gray - debug info
}


class ColorFormatter(logging.Formatter):
    """Custom formatter with colors for different log levels."""

    LEVEL_COLORS = {
        logging.DEBUG: COLORS["DEBUG"],
        logging.INFO: COLORS["RESET"],
        logging.WARNING: COLORS["WARN"],
        logging.ERROR: COLORS["ERROR"],
        logging.CRITICAL: COLORS["ERROR"] + COLORS["BOLD"],
    }

    def format(self, record: logging.LogRecord) -> str:
        # Apply level-based color
        color = self.LEVEL_COLORS.get(record.levelno, COLORS["RESET"])

        # Format: timestamp [LEVEL] message (no module name for compactness)
        timestamp = self.formatTime(record, "%H:%M:%S")
        level = record.levelname[:4]

        formatted = (
            f"{COLORS['DIM']}{timestamp}{COLORS['RESET']} "
            f"[{color}{level}{COLORS['RESET']}] "
            f"{record.getMessage()}"
        )

        if record.exc_info:
            formatted += "\n" + self.formatException(record.exc_info)

        return formatted


def setup_logging(level: int = logging.INFO) -> None:
    """Configure colored logging for the application."""
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(ColorFormatter())

    # Configure root logger
    root = logging.getLogger()
    root.setLevel(level)
    root.handlers = [handler]

    # Quiet noisy libraries
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("asyncpg").setLevel(logging.WARNING)


# =============================================================================
# COLORED LOG HELPER FUNCTIONS
# =============================================================================


def log_question_in(logger: logging.Logger, question: str, **context) -> None:
    """Log incoming user question.

    Args:
        logger: Logger instance
        question: User question text
        **context: Additional context (session, strategy, etc.)
    """
    preview = question[:80] + "..." if len(question) > 80 else question
    ctx = " ".join(f"{k}={v}" for k, v in context.items())
    logger.info(f"{COLORS['MSG_IN']}>>> QUESTION{COLORS['RESET']} {preview} [{ctx}]")


def log_answer_out(
    logger: logging.Logger,
    status: str,
    elapsed_ms: int = 0,
    context_loaded: bool = False,
) -> None:
    """Log outgoing answer.

    Args:
        logger: Logger instance
        status: 'success' or 'error'
        elapsed_ms: Total request time in milliseconds
        context_loaded: Whether the context was freshly built
    """
    logger.info(
        f"{COLORS['MSG_OUT']}<<< ANSWER{COLORS['RESET']} "
        f"status={status} elapsed={elapsed_ms}ms fresh_context={context_loaded}"
    )


def log_context(logger: logging.Logger, state: str, session_id: str, **context) -> None:
    """Log a context cache event.

    Args:
        logger: Logger instance
        state: 'hit', 'miss', 'built' or 'cleared'
        session_id: Session the context belongs to
        **context: Additional context (chars, url, etc.)
    """
    ctx = " ".join(f"{k}={v}" for k, v in context.items()) if context else ""
    logger.info(f"{COLORS['CONTEXT']}--- CONTEXT{COLORS['RESET']} {state} session={session_id} {ctx}".rstrip())


def log_llm(
    logger: logging.Logger,
    state: str,
    model: str = "",
    duration: float = 0,
) -> None:
    """Log completion call.

    Args:
        logger: Logger instance
        state: 'start' or 'end'
        model: Model name
        duration: Call duration in seconds (for end state)
    """
    if state == "start":
        logger.info(f"{COLORS['LLM']}>>> LLM{COLORS['RESET']} calling {model}")
    else:
        logger.info(f"{COLORS['LLM']}<<< LLM{COLORS['RESET']} " f"{model} completed in {duration:.1f}s")
