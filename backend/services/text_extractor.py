"""
PDF text extraction.

Thin wrapper around PyMuPDF. The downloaded bytes are written to a scoped
temporary file, parsed, and the file is removed whether parsing succeeded
or not.
"""

import logging
import os
import tempfile
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator

import fitz  # PyMuPDF

logger = logging.getLogger(__name__)


@contextmanager
def temporary_pdf(data: bytes) -> Iterator[Path]:
    """Write ``data`` to a temporary .pdf file and delete it on exit."""
    fd, name = tempfile.mkstemp(prefix="temp_", suffix=".pdf")
    path = Path(name)
    try:
        with os.fdopen(fd, "wb") as handle:
            handle.write(data)
        yield path
    finally:
        try:
            path.unlink()
        except FileNotFoundError:
            pass
        except OSError as e:
            logger.warning(f"Failed to remove temporary file {path.name}: {e}")


def extract_pdf_text(data: bytes) -> str:
    """Extract plain text from PDF bytes, one blank line between pages."""
    with temporary_pdf(data) as path:
        doc = fitz.open(str(path))
        try:
            text = "\n\n".join(page.get_text() for page in doc)
        finally:
            doc.close()

    logger.debug(f"Extracted {len(text)} chars from {len(data)} bytes of PDF")
    return text
