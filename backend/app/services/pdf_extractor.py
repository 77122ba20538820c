"""
PDF text extraction (PyMuPDF).

Used for uploaded documents and for PDF sources on trusted domains.
Text comes back raw; the caller normalizes it.
"""

import logging

import fitz

from app.services.errors import InvalidInputError

logger = logging.getLogger(__name__)


def extract_pdf_text(contents: bytes) -> str:
    """
    Return the concatenated text of every page.

    Raises:
        InvalidInputError: the bytes are not a readable PDF
    """
    if not contents:
        raise InvalidInputError("Empty PDF file")

    try:
        doc = fitz.open(stream=contents, filetype="pdf")
    except Exception as e:
        logger.warning(f"Could not open PDF ({len(contents)} bytes): {e}")
        raise InvalidInputError("File is not a readable PDF") from e

    try:
        # Pages are separated by a blank line so the segmenter sees paragraph breaks
        text = "\n\n".join(page.get_text() for page in doc)
    except Exception as e:
        logger.warning(f"Could not read PDF pages: {e}")
        raise InvalidInputError("File is not a readable PDF") from e
    finally:
        doc.close()

    logger.info(f"Extracted {len(text)} chars from PDF")
    return text
