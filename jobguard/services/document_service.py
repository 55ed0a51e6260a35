"""
Text extraction for uploaded job postings.
Plain text is decoded, PDFs go through pypdf; Word documents are stored
but not parsed.
"""

from io import BytesIO

from pypdf import PdfReader

from jobguard.utils.logging_config import StructuredLogger

logger = StructuredLogger(__name__)


def extract_text_from_pdf(pdf_bytes: bytes) -> str:
    """Concatenate the text of every page; unreadable PDFs yield ''."""
    try:
        reader = PdfReader(BytesIO(pdf_bytes))
        text_parts = []
        for page in reader.pages:
            page_text = page.extract_text()
            if page_text:
                text_parts.append(page_text)
    except Exception as e:  # malformed PDFs can raise almost anything
        logger.warning("Could not parse PDF", error=str(e))
        return ""

    return "\n\n".join(text_parts)


def extract_text(data: bytes, mimetype: str) -> str:
    if mimetype == "text/plain":
        return data.decode("utf-8", errors="replace")
    if mimetype == "application/pdf":
        return extract_text_from_pdf(data)
    return ""
