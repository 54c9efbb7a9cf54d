import re
from abc import ABC, abstractmethod

_FINGERPRINT = re.compile(r"SHA-256:\s*([0-9a-f]{64})\b")
_VERIFY_QUERY = re.compile(r"[?&]hash=([0-9a-f]{64})\b")


class BasePdfReader(ABC):
    """Contract for all PDF text reading adapters."""

    @abstractmethod
    def extract_last_page(self, pdf_bytes: bytes) -> str:
        """Extract the text of the final page.

        Raises:
            PdfReadError: if the document cannot be read for any reason.
        """

    def read_embedded_hash(self, pdf_bytes: bytes) -> str | None:
        """Return the verification hash printed in the document, if any.

        The fingerprint line is authoritative; the verification link is only
        consulted when the line is missing.
        """
        text = self.extract_last_page(pdf_bytes)
        match = _FINGERPRINT.search(text) or _VERIFY_QUERY.search(text.replace("\n", ""))
        return match.group(1) if match else None
