"""
Tests for the document download + extraction path.

HTTP is served by httpx.MockTransport; extraction is stubbed unless the
test is about PyMuPDF itself.
"""

from unittest.mock import MagicMock

import httpx
import pytest

from errors import DocumentBuildError, ErrorCode
from services.document_fetcher import DocumentFetcher

from conftest import DOCUMENT_URL, make_pdf_bytes, mock_transport, run

PDF_HEADERS = {"content-type": "application/pdf"}


def _fetcher(transport, extractor=None) -> DocumentFetcher:
    return DocumentFetcher(
        timeout=5.0,
        extractor=extractor or (lambda data: "Texto del documento"),
        transport=transport,
    )


class TestBuildContext:
    """Test the happy path."""

    def test_builds_context(self):
        calls = []
        fetcher = _fetcher(mock_transport(200, b"%PDF-1.4 fake", PDF_HEADERS, calls=calls))

        context = run(fetcher.build_context(DOCUMENT_URL))

        assert context.document_text == "Texto del documento"
        assert context.document_url == DOCUMENT_URL
        assert context.total_length == len("Texto del documento")
        assert str(calls[0].url) == DOCUMENT_URL
        assert calls[0].method == "GET"

    def test_content_type_match_is_case_insensitive(self):
        fetcher = _fetcher(mock_transport(200, b"%PDF", {"content-type": "Application/PDF; charset=binary"}))
        assert run(fetcher.build_context(DOCUMENT_URL)).document_text

    def test_real_pdf_extraction(self):
        data = make_pdf_bytes("Requisitos de inscripcion", "Calendario academico")
        fetcher = DocumentFetcher(transport=mock_transport(200, data, PDF_HEADERS))

        context = run(fetcher.build_context(DOCUMENT_URL))

        assert "Requisitos de inscripcion" in context.document_text
        assert "Calendario academico" in context.document_text


class TestBuildFailures:
    """Every failure is a DocumentBuildError with the right kind."""

    def test_http_error_status(self):
        fetcher = _fetcher(mock_transport(404, b"not found", {"content-type": "text/html"}))

        with pytest.raises(DocumentBuildError) as exc_info:
            run(fetcher.build_context(DOCUMENT_URL))

        assert exc_info.value.kind == "fetch"
        assert exc_info.value.status_code == 404
        assert exc_info.value.code == ErrorCode.FETCH_FAILED

    def test_network_error(self):
        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        fetcher = _fetcher(httpx.MockTransport(handler))

        with pytest.raises(DocumentBuildError) as exc_info:
            run(fetcher.build_context(DOCUMENT_URL))

        assert exc_info.value.kind == "fetch"
        assert isinstance(exc_info.value.cause, httpx.ConnectError)

    def test_html_is_rejected_before_extraction(self):
        extractor = MagicMock(return_value="never")
        fetcher = _fetcher(mock_transport(200, b"<html></html>", {"content-type": "text/html"}), extractor)

        with pytest.raises(DocumentBuildError) as exc_info:
            run(fetcher.build_context(DOCUMENT_URL))

        assert exc_info.value.kind == "content_type"
        assert exc_info.value.code == ErrorCode.FETCH_INVALID_CONTENT_TYPE
        extractor.assert_not_called()

    def test_missing_content_type_is_rejected(self):
        fetcher = _fetcher(mock_transport(200, b"%PDF", {}))
        with pytest.raises(DocumentBuildError) as exc_info:
            run(fetcher.build_context(DOCUMENT_URL))
        assert exc_info.value.kind == "content_type"

    def test_extractor_failure(self):
        def broken(data):
            raise RuntimeError("cannot parse")

        fetcher = _fetcher(mock_transport(200, b"%PDF", PDF_HEADERS), broken)

        with pytest.raises(DocumentBuildError) as exc_info:
            run(fetcher.build_context(DOCUMENT_URL))

        assert exc_info.value.kind == "extraction"
        assert exc_info.value.code == ErrorCode.EXTRACTION_FAILED
        assert isinstance(exc_info.value.cause, RuntimeError)

    def test_corrupt_pdf_is_extraction_error(self):
        fetcher = DocumentFetcher(transport=mock_transport(200, b"definitely not a pdf", PDF_HEADERS))
        with pytest.raises(DocumentBuildError) as exc_info:
            run(fetcher.build_context(DOCUMENT_URL))
        assert exc_info.value.kind == "extraction"

    def test_blank_text_is_extraction_error(self):
        fetcher = _fetcher(mock_transport(200, b"%PDF", PDF_HEADERS), lambda data: "  \n\n ")
        with pytest.raises(DocumentBuildError) as exc_info:
            run(fetcher.build_context(DOCUMENT_URL))
        assert exc_info.value.kind == "extraction"
