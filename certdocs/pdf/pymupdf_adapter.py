import pymupdf

from certdocs.pdf.base import BasePdfReader
from certdocs.pdf.exceptions import PdfReadError


class PyMuPdfAdapter(BasePdfReader):
    """Reads PDF text using PyMuPDF."""

    def extract_last_page(self, pdf_bytes: bytes) -> str:
        try:
            with pymupdf.open(stream=pdf_bytes, filetype="pdf") as doc:  # type: ignore[no-untyped-call]
                if doc.page_count == 0:
                    raise PdfReadError("PDF has no pages")
                text = doc[doc.page_count - 1].get_text()
            return str(text).strip()
        except PdfReadError:
            raise
        except Exception as exc:
            raise PdfReadError(f"pymupdf extraction failed: {exc}") from exc
