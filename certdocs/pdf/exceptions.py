from certdocs.processor.exceptions import CertificationError


class PdfReadError(CertificationError):
    """Raised when a PDF cannot be opened or its text cannot be read."""

    code = "PDF_READ_FAILED"
    retryable = False
