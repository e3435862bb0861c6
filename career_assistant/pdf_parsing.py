"""
PDF text extraction (PyMuPDF).
"""

import logging
from typing import Optional

import fitz  # PyMuPDF

logger = logging.getLogger(__name__)

MIN_EXTRACTED_LENGTH = 10


def extract_pdf_text(pdf_bytes: bytes) -> Optional[str]:
    """
    Extracts the text of every page from an in-memory PDF.
    Returns None when the document cannot be opened or read.
    """
    logger.info(f"📄 Starting PDF parsing ({len(pdf_bytes)} bytes)")
    full_text = ""

    try:
        with fitz.open(stream=pdf_bytes, filetype="pdf") as doc:
            logger.info(f"✅ PDF opened successfully. Pages: {len(doc)}")
            for page_num in range(len(doc)):
                page_text = doc[page_num].get_text("text")
                full_text += page_text + "\n"
                logger.debug(f"  Page {page_num + 1}: Extracted {len(page_text)} characters")
    except Exception as e:
        logger.error(f"❌ Error parsing PDF: {e}", exc_info=True)
        return None

    logger.info(f"✅ PDF parsing complete. Total text length: {len(full_text.strip())} characters")
    return full_text.strip()


def has_readable_text(text: Optional[str]) -> bool:
    return bool(text) and len(text.strip()) >= MIN_EXTRACTED_LENGTH
