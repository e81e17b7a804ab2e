"""
Interaction Log - append-only audit trail of answered questions.

Pure observability: the answer path never reads from it, and a failing
database never affects an answer. Writes happen after the response has
been produced (FastAPI background task).

Tables (see migrations/init.sql):
    chat_sessions      one row per session, questions_count incremented per write
    chat_interactions  one row per question with status and latency
"""

import json
import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, Optional

from errors import swallow_errors

logger = logging.getLogger(__name__)

UPSERT_SESSION_SQL = """
INSERT INTO chat_sessions (
    session_id, document_url, document_length, document_processed_at,
    questions_count, last_activity_at
)
VALUES ($1, $2, $3, $4, 1, NOW())
ON CONFLICT (session_id) DO UPDATE SET
    questions_count = chat_sessions.questions_count + 1,
    last_activity_at = NOW(),
    document_url = COALESCE(EXCLUDED.document_url, chat_sessions.document_url),
    document_length = COALESCE(EXCLUDED.document_length, chat_sessions.document_length),
    document_processed_at = COALESCE(EXCLUDED.document_processed_at, chat_sessions.document_processed_at),
    updated_at = NOW()
"""

INSERT_INTERACTION_SQL = """
INSERT INTO chat_interactions (session_id, question, response, response_time_ms, status, metadata)
VALUES ($1, $2, $3, $4, $5, $6::jsonb)
"""


@dataclass
class InteractionRecord:
    """One question/answer exchange as written to the log."""

    session_id: str
    question: str
    response: str
    response_time_ms: int
    status: str = "success"  # success, error
    document_url: Optional[str] = None
    document_length: Optional[int] = None
    document_processed_at: Optional[datetime] = None
    metadata: Dict[str, Any] = field(default_factory=dict)


class InteractionLogger:
    """Best-effort writer for InteractionRecord rows."""

    def __init__(self, database=None):
        self._database = database

    async def _get_database(self):
        """Lazy load database manager."""
        if self._database is None:
            from .database import get_database
            self._database = await get_database()
        return self._database

    async def health(self) -> Dict[str, Any]:
        """Database health for diagnostics endpoints."""
        try:
            db = await self._get_database()
            return await db.health_check()
        except Exception as e:
            logger.warning(f"Interaction log health check failed: {e}")
            return {"status": "error", "mode": "none", "error": str(e)}

    @swallow_errors("interaction_log", logger=logger)
    async def log(self, record: InteractionRecord) -> None:
        """Write a record; never raises."""
        db = await self._get_database()
        if not db.available:
            logger.debug(f"Interaction log unavailable, dropping record for {record.session_id}")
            return

        await db.execute_in_transaction(
            (
                UPSERT_SESSION_SQL,
                (record.session_id, record.document_url, record.document_length, record.document_processed_at),
            ),
            (
                INSERT_INTERACTION_SQL,
                (
                    record.session_id,
                    record.question,
                    record.response,
                    record.response_time_ms,
                    record.status,
                    json.dumps(record.metadata, ensure_ascii=False, default=str),
                ),
            ),
        )
        logger.debug(f"Interaction logged: {record.session_id} status={record.status}")


# Singleton instance
_interaction_logger: Optional[InteractionLogger] = None


def get_interaction_logger() -> InteractionLogger:
    """Get interaction logger singleton."""
    global _interaction_logger
    if _interaction_logger is None:
        _interaction_logger = InteractionLogger()
    return _interaction_logger
