"""
Document Fetcher - builds a DocumentContext from the configured PDF URL.

Steps:
1. GET the URL with a bounded timeout (non-2xx -> fetch failure)
2. Require a Content-Type containing "pdf" (case-insensitive)
3. Extract text through a scoped temporary file
4. Wrap the text in a DocumentContext

Every failure surfaces as DocumentBuildError with kind ``fetch``,
``content_type`` or ``extraction``; nothing else escapes build_context().
"""

import asyncio
import logging
import time
from typing import Callable, Optional

import httpx

from errors import DocumentBuildError
from services.context_store import DocumentContext
from services.text_extractor import extract_pdf_text

logger = logging.getLogger(__name__)

Extractor = Callable[[bytes], str]


class DocumentFetcher:
    """Downloads the source document and turns it into a context."""

    def __init__(
        self,
        timeout: float = 30.0,
        extractor: Extractor = extract_pdf_text,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """
        Args:
            timeout: Download timeout in seconds
            extractor: ``bytes -> text`` function (PyMuPDF by default)
            transport: Optional httpx transport (tests inject MockTransport)
        """
        self.timeout = timeout
        self._extractor = extractor
        self._transport = transport

    async def fetch(self, url: str) -> bytes:
        """Download ``url`` and return the body of a PDF response."""
        try:
            async with httpx.AsyncClient(
                timeout=self.timeout,
                follow_redirects=True,
                transport=self._transport,
            ) as client:
                response = await client.get(url)
        except httpx.HTTPError as e:
            raise DocumentBuildError(
                "Document download failed",
                details=str(e) or type(e).__name__,
                kind="fetch",
                url=url,
                cause=e,
            ) from e

        if not response.is_success:
            raise DocumentBuildError(
                "Document download failed",
                details=f"HTTP {response.status_code}",
                kind="fetch",
                url=url,
                status_code=response.status_code,
            )

        content_type = response.headers.get("content-type", "")
        if "pdf" not in content_type.lower():
            raise DocumentBuildError(
                "Fetched resource is not a PDF",
                details=f"Content-Type: {content_type or 'missing'}",
                kind="content_type",
                url=url,
            )

        return response.content

    async def build_context(self, url: str) -> DocumentContext:
        """Fetch and extract ``url`` into a fresh DocumentContext."""
        start = time.perf_counter()
        try:
            data = await self.fetch(url)
            # PyMuPDF parsing is blocking
            text = await asyncio.to_thread(self._extractor, data)
        except DocumentBuildError:
            raise
        except Exception as e:
            raise DocumentBuildError(
                "Document text extraction failed",
                details=f"{type(e).__name__}: {e}",
                kind="extraction",
                url=url,
                cause=e,
            ) from e

        if not text or not text.strip():
            raise DocumentBuildError(
                "Document text extraction failed",
                details="No text could be extracted from the PDF",
                kind="extraction",
                url=url,
            )

        elapsed = time.perf_counter() - start
        logger.info(f"Document processed: {len(text)} chars in {elapsed:.1f}s")
        return DocumentContext.create(text, url)
