import io

import pdfplumber

from certdocs.pdf.base import BasePdfReader
from certdocs.pdf.exceptions import PdfReadError


class PdfPlumberAdapter(BasePdfReader):
    """Reads PDF text using pdfplumber."""

    def extract_last_page(self, pdf_bytes: bytes) -> str:
        try:
            with pdfplumber.open(io.BytesIO(pdf_bytes)) as pdf:
                if not pdf.pages:
                    raise PdfReadError("PDF has no pages")
                text = pdf.pages[-1].extract_text() or ""
            return text.strip()
        except PdfReadError:
            raise
        except Exception as exc:
            raise PdfReadError(f"pdfplumber extraction failed: {exc}") from exc
