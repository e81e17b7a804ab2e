"""
Tests for the document chat error handling module.
"""

import logging

from errors import (
    CacheUnavailableError,
    CompletionError,
    DocChatError,
    DocumentBuildError,
    ErrorCode,
    debug_payload,
    format_completion_error,
    format_document_unavailable,
    format_unexpected_error,
    log_error,
    swallow_errors,
)

from conftest import run


def _raised(error):
    """Return ``error`` with a traceback attached."""
    try:
        raise error
    except Exception as e:
        return e


class TestErrorCodes:
    """Test error code enum."""

    def test_error_codes_are_strings(self):
        assert ErrorCode.FETCH_FAILED.value == "FETCH_FAILED"
        assert ErrorCode.COMPLETION_TIMEOUT == "COMPLETION_TIMEOUT"

    def test_error_codes_have_categories(self):
        completion_codes = [c for c in ErrorCode if c.value.startswith("COMPLETION_")]
        assert len(completion_codes) == 3

        fetch_codes = [c for c in ErrorCode if c.value.startswith("FETCH_")]
        assert len(fetch_codes) == 2


class TestDocChatError:
    """Test base DocChatError exception."""

    def test_basic_creation(self):
        err = DocChatError("Test error")
        assert err.message == "Test error"
        assert err.details is None
        assert err.code == ErrorCode.INTERNAL_UNEXPECTED
        assert err.recoverable is False
        assert err.context is None

    def test_with_details(self):
        err = DocChatError("Test error", details="More info")
        assert str(err) == "Test error - More info"

    def test_with_context(self):
        err = DocChatError("Test error", foo="bar", count=42)
        assert err.context == {"foo": "bar", "count": 42}

    def test_to_dict(self):
        err = DocChatError("Test error", details="More", recoverable=True)
        assert err.to_dict() == {
            "code": "INTERNAL_UNEXPECTED",
            "message": "Test error",
            "details": "More",
            "recoverable": True,
            "context": None,
        }


class TestDocumentBuildError:
    """Each build failure kind maps to its own code."""

    def test_fetch(self):
        cause = ConnectionError("refused")
        err = DocumentBuildError("Download failed", kind="fetch", url="https://x/doc.pdf", cause=cause)
        assert err.code == ErrorCode.FETCH_FAILED
        assert err.kind == "fetch"
        assert err.cause is cause
        assert err.context["url"] == "https://x/doc.pdf"
        assert err.context["cause"] == "ConnectionError: refused"

    def test_content_type(self):
        err = DocumentBuildError("Not a PDF", kind="content_type", status_code=200)
        assert err.code == ErrorCode.FETCH_INVALID_CONTENT_TYPE
        assert err.context["status_code"] == 200

    def test_extraction_is_default(self):
        err = DocumentBuildError("Broken PDF")
        assert err.code == ErrorCode.EXTRACTION_FAILED
        assert err.kind == "extraction"

    def test_unknown_kind_falls_back_to_extraction(self):
        assert DocumentBuildError("x", kind="weird").kind == "extraction"

    def test_recoverable(self):
        assert DocumentBuildError("x").recoverable is True


class TestCompletionError:
    """Test completion failure codes."""

    def test_default_code(self):
        err = CompletionError("Upstream failed", status_code=429, upstream_type="rate_limit_error")
        assert err.code == ErrorCode.COMPLETION_FAILED
        assert err.context == {"status_code": 429, "upstream_type": "rate_limit_error"}

    def test_timeout_code(self):
        assert CompletionError("slow", error_type="timeout").code == ErrorCode.COMPLETION_TIMEOUT

    def test_empty_code(self):
        assert CompletionError("nothing", error_type="empty").code == ErrorCode.COMPLETION_EMPTY


class TestCacheUnavailableError:
    def test_operation_in_context(self):
        err = CacheUnavailableError("cache read failed", operation="get", session_id="s1")
        assert err.code == ErrorCode.CACHE_UNAVAILABLE
        assert err.context == {"operation": "get", "session_id": "s1"}


class TestFormatters:
    """Markdown answers rendered from failures."""

    def test_document_unavailable(self):
        text = format_document_unavailable("https://x/doc.pdf")
        assert "Documento no disponible" in text
        assert "https://x/doc.pdf" in text

    def test_completion_error_with_upstream_details(self):
        err = CompletionError(
            "La API devolvió un error",
            status_code=429,
            upstream_type="rate_limit_error",
            upstream_message="Rate limit reached",
            upstream_code="rate_limit",
        )
        text = format_completion_error(err)
        assert text.startswith("❌ **Error de la API (429)**")
        assert "- **Tipo:** rate_limit_error" in text
        assert "- **Mensaje:** Rate limit reached" in text
        assert "- **Código:** rate_limit" in text

    def test_completion_timeout(self):
        text = format_completion_error(CompletionError("tardó", error_type="timeout"))
        assert "tiempo de espera agotado" in text
        assert "- **Tipo:**" not in text

    def test_unexpected_error(self):
        err = _raised(KeyError("field"))
        text = format_unexpected_error(err, session_id="s1")

        assert "Error interno" in text
        assert "- **Tipo:** KeyError" in text
        assert "- **Sesión:** s1" in text
        assert "test_errors.py" in text

    def test_unexpected_error_without_session(self):
        text = format_unexpected_error(RuntimeError("boom"))
        assert "- **Sesión:** N/A" in text
        assert "- **Ubicación:** desconocida" in text

    def test_debug_payload(self):
        err = _raised(CompletionError("fallo"))
        payload = debug_payload(err, session_id="s1", elapsed_ms=12)

        assert payload["exception"] == "CompletionError"
        assert payload["code"] == "COMPLETION_FAILED"
        assert payload["location"].startswith("test_errors.py:")
        assert payload["session_id"] == "s1"
        assert payload["elapsed_ms"] == 12


class TestSwallowErrors:
    """Test the side-channel decorator."""

    def test_returns_value_on_success(self):
        @swallow_errors("test")
        async def ok():
            return 7

        assert run(ok()) == 7

    def test_failure_returns_none_and_logs(self, caplog):
        @swallow_errors("test")
        async def broken():
            raise RuntimeError("db gone")

        with caplog.at_level(logging.WARNING):
            assert run(broken()) is None

        assert "[test] ignored failure: RuntimeError: db gone" in caplog.text

    def test_preserves_function_name(self):
        @swallow_errors("test")
        async def my_function():
            pass

        assert my_function.__name__ == "my_function"


class TestLogError:
    """Test log_error utility."""

    def test_docchat_error_prefixed_with_code(self, caplog):
        logger = logging.getLogger("test_log_error")
        with caplog.at_level(logging.ERROR):
            log_error(logger, DocumentBuildError("Download failed", kind="fetch"), context="Context build")

        assert "[Context build] FETCH_FAILED: Download failed" in caplog.text

    def test_generic_exception(self, caplog):
        logger = logging.getLogger("test_log_error")
        with caplog.at_level(logging.ERROR):
            log_error(logger, ValueError("bad"), include_traceback=False)

        assert "bad" in caplog.text
