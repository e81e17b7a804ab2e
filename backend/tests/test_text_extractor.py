"""
Tests for PyMuPDF text extraction and temporary file handling.
"""

import pytest

from services.text_extractor import extract_pdf_text, temporary_pdf

from conftest import make_pdf_bytes


class TestTemporaryPdf:
    """The temporary file never outlives the block."""

    def test_file_written_and_removed(self):
        with temporary_pdf(b"%PDF-1.4 data") as path:
            assert path.exists()
            assert path.suffix == ".pdf"
            assert path.name.startswith("temp_")
            assert path.read_bytes() == b"%PDF-1.4 data"
        assert not path.exists()

    def test_removed_when_block_raises(self):
        with pytest.raises(RuntimeError):
            with temporary_pdf(b"data") as path:
                raise RuntimeError("parse failed")
        assert not path.exists()


class TestExtractPdfText:
    """Test text extraction from generated PDFs."""

    def test_single_page(self):
        text = extract_pdf_text(make_pdf_bytes("Horario de biblioteca"))
        assert "Horario de biblioteca" in text

    def test_pages_in_order(self):
        text = extract_pdf_text(make_pdf_bytes("Primera pagina", "Segunda pagina"))
        assert text.index("Primera pagina") < text.index("Segunda pagina")
        assert "\n\n" in text

    def test_invalid_bytes_raise(self):
        with pytest.raises(Exception):
            extract_pdf_text(b"not a pdf at all")
