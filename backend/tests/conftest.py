"""
Shared pytest fixtures for the document chat tests.

Infrastructure is replaced with in-process stand-ins:
    - RedisManager(enabled=False) -> in-memory context cache
    - FakeFetcher / FakeCompletionClient -> call-counting collaborators
    - httpx.MockTransport -> canned HTTP responses for the real clients
"""

import asyncio
from typing import List, Optional

import httpx
import pytest

from config import RuntimeConfig
from services.completion_client import CompletionResult
from services.context_store import ContextStore, DocumentContext
from services.redis_client import RedisManager

DOCUMENT_URL = "https://example.edu/guia-estudiantil.pdf"

# Five paragraphs; only the third mentions "matrícula"
SAMPLE_PARAGRAPHS = [
    "Bienvenida a la Guía Estudiantil. Este documento reúne las normas de la institución.",
    "Horario de biblioteca: de lunes a viernes de 7:00 a 19:00 horas.",
    "La matrícula ordinaria se realiza durante la primera semana de enero en la oficina de registro.",
    "Las becas se asignan según el rendimiento académico y la situación económica.",
    "Contacto: escribe a la oficina de atención estudiantil para cualquier consulta.",
]
SAMPLE_TEXT = "\n\n".join(SAMPLE_PARAGRAPHS)


def run(coro):
    """Drive a coroutine to completion from a plain test function."""
    return asyncio.run(coro)


def make_config(**overrides) -> RuntimeConfig:
    """RuntimeConfig detached from the environment that matters for tests."""
    values = {
        "document_url": DOCUMENT_URL,
        "document_title": "Guía Estudiantil de Prueba",
        "institution_name": "ITCA-FEPADE",
        "completion_api_key": "test-key",
        "completion_base_url": "https://api.deepseek.com/v1",
        "completion_model": "deepseek-chat",
        "context_strategy": "excerpt",
        "excerpt_budget": 30000,
        "chunk_size": 12000,
        "max_chunks": 10,
        "cache_backend": "memory",
        "interaction_log_enabled": False,
        "app_env": "test",
    }
    values.update(overrides)
    return RuntimeConfig(**values)


def make_pdf_bytes(*pages: str) -> bytes:
    """Build a small text PDF with PyMuPDF, one string per page."""
    import fitz  # PyMuPDF

    doc = fitz.open()
    try:
        for text in pages:
            page = doc.new_page()
            page.insert_text((72, 72), text)
        return doc.tobytes()
    finally:
        doc.close()


def mock_transport(status_code: int = 200, content: bytes = b"", headers: Optional[dict] = None, calls: Optional[list] = None):
    """MockTransport answering every request with the same response."""

    def handler(request: httpx.Request) -> httpx.Response:
        if calls is not None:
            calls.append(request)
        return httpx.Response(status_code, content=content, headers=headers or {})

    return httpx.MockTransport(handler)


class FakeFetcher:
    """DocumentFetcher stand-in that counts builds."""

    def __init__(self, text: str = SAMPLE_TEXT, error: Optional[Exception] = None):
        self.text = text
        self.error = error
        self.calls: List[str] = []

    async def build_context(self, url: str) -> DocumentContext:
        self.calls.append(url)
        if self.error is not None:
            raise self.error
        return DocumentContext.create(self.text, url)


class FakeCompletionClient:
    """CompletionClient stand-in returning queued answers.

    Each queued item is either answer text or an exception to raise. The
    last item repeats once the queue runs out.
    """

    def __init__(self, *responses):
        self.responses = list(responses) or ["Respuesta de prueba"]
        self.calls: List[dict] = []

    async def complete(self, system_prompt, user_prompt, timeout=60.0, options=None):
        self.calls.append(
            {"system_prompt": system_prompt, "user_prompt": user_prompt, "timeout": timeout, "options": options}
        )
        item = self.responses.pop(0) if len(self.responses) > 1 else self.responses[0]
        if isinstance(item, Exception):
            raise item
        return CompletionResult(content=item, model="deepseek-chat", duration_s=0.01)


class BrokenBackend:
    """Cache backend whose every operation fails."""

    async def get(self, key):
        raise ConnectionError("redis down")

    async def set(self, key, value, ttl=None):
        raise ConnectionError("redis down")

    async def delete(self, key):
        raise ConnectionError("redis down")

    async def get_ttl(self, key):
        raise ConnectionError("redis down")

    async def health_check(self):
        raise ConnectionError("redis down")


@pytest.fixture
def config():
    return make_config()


@pytest.fixture
def memory_redis():
    """Connected RedisManager in in-memory mode."""
    manager = RedisManager(enabled=False)
    run(manager.connect())
    return manager


@pytest.fixture
def store(memory_redis):
    return ContextStore(memory_redis, ttl_seconds=7200)


@pytest.fixture
def fetcher():
    return FakeFetcher()


@pytest.fixture
def completion():
    return FakeCompletionClient()
