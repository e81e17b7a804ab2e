"""
Document Chat Orchestrator - per-question control flow

    ResolveSession -> LoadOrBuildContext -> SelectRelevance -> Complete -> Respond

- LoadOrBuildContext: cache hit, or fetch + extract + best-effort put.
  A DocumentBuildError ends the request with the document-unavailable
  answer; the completion backend is never called.
- SelectRelevance: depends on the configured strategy
    excerpt  keyword-scored excerpt bounded by excerpt_budget (default)
    full     whole document text (long timeout)
    chunked  legacy sequential chunk scan
- Complete: one call; a CompletionError becomes a formatted answer.

Only unexpected faults escape answer(); the router turns them into a 500.
"""

import logging
import time
from typing import Optional, Tuple

from errors import (
    CompletionError,
    DocumentBuildError,
    format_completion_error,
    format_document_unavailable,
    log_error,
)
from logging_config import log_answer_out, log_context, log_question_in
from services.context_store import ContextStore, DocumentContext
from services.document_fetcher import DocumentFetcher
from services.relevance import RelevanceSelector

from ..chat_prompts import build_system_prompt, cleanup_response_text
from .chunk_scan import scan_chunks
from .session import AnswerResult, ChatOutcome, resolve_session_id

logger = logging.getLogger(__name__)


class DocumentChatOrchestrator:
    """Answers questions about the configured document, one session at a time.

    All collaborators are injectable; the defaults are the process-wide
    singletons built from runtime config.
    """

    def __init__(
        self,
        config=None,
        store: Optional[ContextStore] = None,
        fetcher: Optional[DocumentFetcher] = None,
        client=None,
        selector: Optional[RelevanceSelector] = None,
    ):
        if config is None:
            from config import runtime_config
            config = runtime_config
        self.config = config

        if store is None:
            from services.context_store import get_context_store
            store = get_context_store()
        self.store = store

        self.fetcher = fetcher or DocumentFetcher(timeout=config.document_fetch_timeout)
        self.selector = selector or RelevanceSelector()
        self._client = client

    @property
    def client(self):
        """Completion client, created on first use."""
        if self._client is None:
            from services.completion_client import get_completion_client
            self._client = get_completion_client()
        return self._client

    # === Context ===

    async def load_context(self, session_id: str) -> Tuple[DocumentContext, bool]:
        """Return the session's context and whether it was built just now.

        Raises:
            DocumentBuildError: the document could not be fetched or extracted
        """
        context = await self.store.get(session_id)
        if context is not None:
            log_context(logger, "hit", session_id, chars=context.total_length)
            return context, False

        log_context(logger, "miss", session_id)
        context = await self.fetcher.build_context(self.config.document_url)
        stored = await self.store.put(session_id, context, ttl=self.config.context_ttl_seconds)
        log_context(logger, "built", session_id, chars=context.total_length, cached=stored)
        return context, True

    async def clear_session(self, session_id: str) -> bool:
        """Forget the session's context. Clearing an unknown session succeeds."""
        forgotten = await self.store.forget(session_id)
        log_context(logger, "cleared", session_id)
        return forgotten

    # === Answering ===

    async def answer(self, question: str, session_id: Optional[str] = None) -> ChatOutcome:
        """Run the full pipeline for one question."""
        start = time.perf_counter()
        session_id = resolve_session_id(session_id)
        strategy = self.config.context_strategy
        outcome = ChatOutcome(
            session_id=session_id,
            answer=AnswerResult.success(""),
            strategy=strategy,
        )

        log_question_in(logger, question, session=session_id, strategy=strategy)

        try:
            context, outcome.context_loaded = await self.load_context(session_id)
        except DocumentBuildError as e:
            log_error(logger, e, context="Context build", include_traceback=False)
            outcome.answer = AnswerResult.error(format_document_unavailable(self.config.document_url), e.code)
            outcome.extra["build_failure"] = e.kind
            return self._finish(outcome, start)

        outcome.context = context

        if strategy == "chunked":
            scan = await scan_chunks(self.client, self.config, context.document_text, question)
            outcome.chunks_used = scan.chunks_tried
            outcome.answer = AnswerResult.success(scan.answer)
            return self._finish(outcome, start)

        if strategy == "full":
            prompt_text = context.document_text
            partial = False
        else:
            outcome.excerpt = self.selector.select(context.document_text, question, self.config.excerpt_budget)
            prompt_text = outcome.excerpt.text
            partial = outcome.excerpt.body != context.document_text

        system_prompt = build_system_prompt(self.config, prompt_text, partial=partial)
        try:
            completion = await self.client.complete(
                system_prompt,
                question,
                timeout=self.config.completion_timeout(strategy),
            )
        except CompletionError as e:
            log_error(logger, e, context="Completion", include_traceback=False)
            outcome.answer = AnswerResult.error(format_completion_error(e), e.code)
            return self._finish(outcome, start)

        outcome.answer = AnswerResult.success(cleanup_response_text(completion.content))
        return self._finish(outcome, start)

    def _finish(self, outcome: ChatOutcome, start: float) -> ChatOutcome:
        outcome.response_time_ms = int((time.perf_counter() - start) * 1000)
        log_answer_out(logger, outcome.answer.status, outcome.response_time_ms, outcome.context_loaded)
        return outcome


# Singleton instance
_orchestrator: Optional[DocumentChatOrchestrator] = None


def get_orchestrator() -> DocumentChatOrchestrator:
    """Get orchestrator singleton (FastAPI dependency)."""
    global _orchestrator
    if _orchestrator is None:
        _orchestrator = DocumentChatOrchestrator()
    return _orchestrator
