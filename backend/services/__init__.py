"""
Document Chat Services - Shared infrastructure services.

- redis_client: Redis connection manager with health checks and fallback
- context_store: Per-session document context cache
- text_extractor / document_fetcher: PDF download and text extraction
- relevance: Keyword-scored excerpt selection
- completion_client: OpenAI-compatible completion calls
- database / interaction_log: PostgreSQL chat log
"""

from .redis_client import RedisManager, get_redis

__all__ = ["RedisManager", "get_redis"]
