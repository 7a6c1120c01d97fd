from io import BytesIO

from pypdf import PdfReader
from pypdf.errors import PyPdfError

from app.core.config import settings


def extract_text_from_pdf_bytes(data: bytes) -> tuple[str, int]:
    """Extract the text layer of a strategy PDF.

    Scanned (image-only) pages contribute nothing; the model still receives
    the original PDF, so an empty result is not an error.

    Args:
        data: Raw bytes of the PDF file.

    Returns:
        tuple: (text of all pages joined by newlines, page count).

    Raises:
        ValueError: If the PDF cannot be read or has too many pages.
    """
    try:
        reader = PdfReader(BytesIO(data))
        page_count = len(reader.pages)
    except PyPdfError as exc:
        raise ValueError(f"Unreadable PDF: {exc}") from exc

    max_pages = settings.app.max_pdf_pages
    if page_count > max_pages:
        raise ValueError(
            f"PDF has too many pages: {page_count} (max allowed: {max_pages})"
        )

    texts = [page.extract_text() or "" for page in reader.pages]
    return "\n".join(texts).strip(), page_count
