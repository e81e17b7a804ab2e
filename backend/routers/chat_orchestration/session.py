"""
Document Chat Session - session ids and per-request result types

Session ids are opaque cache-key components. A caller-supplied id is used
verbatim; a missing or blank one is replaced with ``session_`` followed by
ten random alphanumeric characters.
"""

import secrets
import string
from dataclasses import dataclass, field
from typing import Any, Dict, Optional

from errors import ErrorCode
from services.context_store import DocumentContext
from services.interaction_log import InteractionRecord
from services.relevance import RelevantExcerpt

SESSION_PREFIX = "session_"
SESSION_TOKEN_LENGTH = 10
_SESSION_ALPHABET = string.ascii_letters + string.digits


def new_session_id() -> str:
    """Generate a fresh opaque session id."""
    token = "".join(secrets.choice(_SESSION_ALPHABET) for _ in range(SESSION_TOKEN_LENGTH))
    return f"{SESSION_PREFIX}{token}"


def resolve_session_id(session_id: Optional[str] = None) -> str:
    """Use the caller's id when it has content, otherwise mint one."""
    if session_id and session_id.strip():
        return session_id
    return new_session_id()


@dataclass(frozen=True)
class AnswerResult:
    """Tagged answer: the status never depends on the rendered text.

    Attributes:
        status: 'success' or 'error'
        text: Markdown shown to the user (answer or formatted error)
        error_code: Set when status is 'error'
    """

    status: str
    text: str
    error_code: Optional[ErrorCode] = None

    @classmethod
    def success(cls, text: str) -> "AnswerResult":
        return cls(status="success", text=text)

    @classmethod
    def error(cls, text: str, code: ErrorCode) -> "AnswerResult":
        return cls(status="error", text=text, error_code=code)

    @property
    def ok(self) -> bool:
        return self.status == "success"


@dataclass
class ChatOutcome:
    """Everything one question produced.

    Attributes:
        session_id: Resolved session id (echoed to the caller)
        answer: Tagged answer
        context_loaded: True when the context was built for this request,
            False on a cache hit or when no context could be built
        response_time_ms: Wall time of the whole pipeline
        strategy: Context strategy used (excerpt, full, chunked)
        context: The document context, when one was available
        excerpt: Relevance excerpt (excerpt strategy only)
        chunks_used: Chunks sent to the model (chunked strategy only)
    """

    session_id: str
    answer: AnswerResult
    context_loaded: bool = False
    response_time_ms: int = 0
    strategy: str = "excerpt"
    context: Optional[DocumentContext] = None
    excerpt: Optional[RelevantExcerpt] = None
    chunks_used: int = 0
    extra: Dict[str, Any] = field(default_factory=dict)

    def to_response(self) -> Dict[str, Any]:
        """Body of the 200 response."""
        return {
            "response": self.answer.text,
            "session_id": self.session_id,
            "context_loaded": self.context_loaded,
            "response_time_ms": self.response_time_ms,
        }

    def log_metadata(self) -> Dict[str, Any]:
        metadata: Dict[str, Any] = {
            "context_loaded": self.context_loaded,
            "strategy": self.strategy,
            "error_code": self.answer.error_code.value if self.answer.error_code else None,
        }
        if self.excerpt is not None:
            metadata["excerpt_kind"] = self.excerpt.kind.value
            metadata["keywords"] = list(self.excerpt.keywords)
            metadata["matched_sections"] = self.excerpt.matched_sections
        if self.chunks_used:
            metadata["chunks_used"] = self.chunks_used
        metadata.update(self.extra)
        return metadata

    def to_record(self, question: str) -> InteractionRecord:
        """Interaction log row for this outcome."""
        return InteractionRecord(
            session_id=self.session_id,
            question=question,
            response=self.answer.text,
            response_time_ms=self.response_time_ms,
            status=self.answer.status,
            document_url=self.context.document_url if self.context else None,
            document_length=self.context.total_length if self.context else None,
            document_processed_at=self.context.processed_at if self.context else None,
            metadata=self.log_metadata(),
        )
