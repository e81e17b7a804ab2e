"""
Context Store - per-session cache of extracted document text.

Each session owns at most one DocumentContext, stored as a JSON string
under ``context:{session_id}`` with a fixed TTL counted from creation
(reads never extend it). Contexts are replaced wholesale, never patched,
so concurrent cold builds for one session simply overwrite each other.

Backend failures are soft:
- get() returns None (a miss) so the caller rebuilds from source
- put() returns False and the caller keeps using its in-memory context
- forget() never raises; forgetting an unknown session succeeds

Usage:
    from services.context_store import ContextStore, DocumentContext

    store = ContextStore(redis_manager, ttl_seconds=7200)
    context = await store.get(session_id)
    if context is None:
        context = DocumentContext.create(text, url)
        await store.put(session_id, context)
"""

import json
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from errors import CacheUnavailableError

logger = logging.getLogger(__name__)

# Key prefix for context data
CONTEXT_PREFIX = "context:"

# Two hours, fixed from creation
DEFAULT_CONTEXT_TTL = 7200


@dataclass(frozen=True)
class DocumentContext:
    """One cached extraction result for a session.

    Attributes:
        document_text: Plain text extracted from the source document
        document_url: Where the document was fetched from
        processed_at: When the extraction finished (UTC)
        total_length: Always ``len(document_text)``
    """

    document_text: str
    document_url: str
    processed_at: datetime
    total_length: int

    def __post_init__(self) -> None:
        if self.total_length != len(self.document_text):
            raise ValueError(
                f"total_length {self.total_length} does not match text length {len(self.document_text)}"
            )

    @classmethod
    def create(cls, document_text: str, document_url: str) -> "DocumentContext":
        """Build a fresh context stamped with the current time."""
        return cls(
            document_text=document_text,
            document_url=document_url,
            processed_at=datetime.now(timezone.utc),
            total_length=len(document_text),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "document_text": self.document_text,
            "document_url": self.document_url,
            "processed_at": self.processed_at.isoformat(),
            "total_length": self.total_length,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "DocumentContext":
        return cls(
            document_text=data["document_text"],
            document_url=data["document_url"],
            processed_at=datetime.fromisoformat(data["processed_at"]),
            total_length=int(data["total_length"]),
        )


def _absorb(error: CacheUnavailableError) -> None:
    """Log a cache failure that the pipeline treats as a miss."""
    logger.warning(f"{error.code.value}: {error}")


class ContextStore:
    """
    Key-value cache mapping session id to DocumentContext.

    Wraps a RedisManager (or anything exposing async get/set/delete/get_ttl)
    and absorbs its failures so the chat pipeline never aborts on cache
    trouble.
    """

    def __init__(self, redis=None, ttl_seconds: int = DEFAULT_CONTEXT_TTL):
        """
        Initialize context store.

        Args:
            redis: Backend manager; resolved lazily from get_redis() when None
            ttl_seconds: Context TTL in seconds (default 2 hours)
        """
        self.ttl_seconds = ttl_seconds
        self._redis = redis

    async def _get_redis(self):
        """Lazy load Redis manager."""
        if self._redis is None:
            from .redis_client import get_redis
            self._redis = await get_redis()
        return self._redis

    def _make_key(self, session_id: str) -> str:
        """Create cache key for a session."""
        return f"{CONTEXT_PREFIX}{session_id}"

    async def get(self, session_id: str) -> Optional[DocumentContext]:
        """
        Load the cached context for a session.

        Returns:
            DocumentContext if cached, None on miss or backend failure
        """
        key = self._make_key(session_id)

        try:
            redis = await self._get_redis()
            raw = await redis.get(key)
        except Exception as e:
            _absorb(
                CacheUnavailableError("Context cache unavailable", details=str(e), operation="get", session_id=session_id)
            )
            return None

        if not raw:
            return None

        try:
            return DocumentContext.from_dict(json.loads(raw))
        except (ValueError, KeyError, TypeError) as e:
            logger.warning(f"Discarding unreadable cached context for {session_id}: {e}")
            return None

    async def put(self, session_id: str, context: DocumentContext, ttl: Optional[int] = None) -> bool:
        """
        Store a context, replacing whatever the session had.

        Returns:
            True if persisted, False if the backend failed (the caller keeps
            its in-memory copy)
        """
        key = self._make_key(session_id)

        try:
            redis = await self._get_redis()
            await redis.set(key, json.dumps(context.to_dict(), ensure_ascii=False), ttl=ttl or self.ttl_seconds)
            logger.debug(f"Context cached: {session_id} ({context.total_length} chars)")
            return True
        except Exception as e:
            _absorb(
                CacheUnavailableError("Failed to cache context", details=str(e), operation="put", session_id=session_id)
            )
            return False

    async def forget(self, session_id: str) -> bool:
        """
        Drop a session's context. Idempotent.

        Returns:
            True if the backend accepted the delete
        """
        key = self._make_key(session_id)

        try:
            redis = await self._get_redis()
            await redis.delete(key)
            logger.debug(f"Context forgotten: {session_id}")
            return True
        except Exception as e:
            _absorb(
                CacheUnavailableError("Failed to forget context", details=str(e), operation="forget", session_id=session_id)
            )
            return False

    async def health(self) -> Dict[str, Any]:
        """Backend health (status + mode) for diagnostics endpoints."""
        try:
            redis = await self._get_redis()
            return await redis.health_check()
        except Exception as e:
            logger.warning(f"Context cache health check failed: {e}")
            return {"status": "error", "mode": "unknown", "error": str(e)}

    async def describe(self, session_id: str) -> Dict[str, Any]:
        """Summarize a session's cached context for diagnostics."""
        context = await self.get(session_id)
        if context is None:
            return {"session_id": session_id, "has_context": False}

        ttl = -1
        try:
            redis = await self._get_redis()
            ttl = await redis.get_ttl(self._make_key(session_id))
        except Exception as e:
            logger.debug(f"TTL lookup failed for {session_id}: {e}")

        return {
            "session_id": session_id,
            "has_context": True,
            "total_length": context.total_length,
            "document_url": context.document_url,
            "processed_at": context.processed_at.isoformat(),
            "ttl_seconds": ttl,
        }


# Singleton instance
_context_store: Optional[ContextStore] = None


def get_context_store() -> ContextStore:
    """Get context store singleton."""
    global _context_store
    if _context_store is None:
        from config import runtime_config
        _context_store = ContextStore(ttl_seconds=runtime_config.context_ttl_seconds)
    return _context_store
