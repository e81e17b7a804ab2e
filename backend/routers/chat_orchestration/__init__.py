"""
Document Chat Orchestration - per-question pipeline components

Components:
- session: session id resolution, AnswerResult / ChatOutcome
- chunk_scan: legacy sequential chunk strategy
- orchestrator: DocumentChatOrchestrator (context cache, relevance, completion)

Strategy selection (CONTEXT_STRATEGY):
    excerpt  keyword-scored excerpt of the document (default)
    full     whole document in the prompt
    chunked  chunk-by-chunk scan, first non-refusal answer wins
"""

from .session import AnswerResult, ChatOutcome, new_session_id, resolve_session_id
from .chunk_scan import ChunkScanResult, scan_chunks, split_text_into_chunks
from .orchestrator import DocumentChatOrchestrator, get_orchestrator

__all__ = [
    "AnswerResult",
    "ChatOutcome",
    "new_session_id",
    "resolve_session_id",
    "ChunkScanResult",
    "scan_chunks",
    "split_text_into_chunks",
    "DocumentChatOrchestrator",
    "get_orchestrator",
]
