import hashlib
from dataclasses import dataclass
from datetime import date

from certdocs.billing.models import Totals
from certdocs.storage.models import Lane

PLACEHOLDER_HASH = "0" * 64


def sha256_hex(data: bytes) -> str:
    return hashlib.sha256(data).hexdigest()


@dataclass(frozen=True)
class RenderInput:
    """Everything the renderer draws, apart from the embedded hash."""

    issuer_name: str
    issuer_slug: str
    lane: Lane
    category: str
    document_type: str
    issued_on: date
    totals: Totals
    title: str | None = None
    document_number: str | None = None
    recipient_name: str | None = None
    recipient_email: str | None = None
    due_on: date | None = None
    period_start: date | None = None
    period_end: date | None = None
    notes: str | None = None
    certified_on: date | None = None

    @property
    def certified(self) -> bool:
        return self.certified_on is not None


@dataclass(frozen=True)
class RenderedDocument:
    """Immutable rendered bytes for one input and one embedded-hash guess."""

    data: bytes
    embedded_hash: str

    @property
    def size(self) -> int:
        return len(self.data)

    @property
    def content_hash(self) -> str:
        return sha256_hex(self.data)


@dataclass(frozen=True)
class StabilizationResult:
    """Accepted document after fixed-point iteration.

    ``content_hash`` is always the SHA-256 of ``document.data``. ``converged``
    is true only when the hash printed in the document equals it.
    """

    document: RenderedDocument
    content_hash: str
    iterations: int
    converged: bool

    @property
    def embedded_hash(self) -> str:
        return self.document.embedded_hash
