from datetime import date
from decimal import Decimal

import pytest

from certdocs.billing.models import LineItem
from certdocs.billing.totals import TotalsNormalizer
from certdocs.config.settings import Settings
from certdocs.pdf.base import BasePdfReader
from certdocs.pdf.exceptions import PdfReadError
from certdocs.pdf.factory import PdfReaderFactory
from certdocs.pdf.pdfplumber_adapter import PdfPlumberAdapter
from certdocs.pdf.pymupdf_adapter import PyMuPdfAdapter
from certdocs.rendering.models import RenderInput
from certdocs.rendering.renderer import DocumentRenderer
from certdocs.storage.models import Lane

GUESS = "0123456789abcdef" * 4
READERS = [PdfPlumberAdapter, PyMuPdfAdapter]


@pytest.fixture()
def rendered_pdf(renderer: DocumentRenderer) -> bytes:
    items = [LineItem(description="Service A", amount=Decimal("100.00"))]
    render_input = RenderInput(
        issuer_name="Oasis International Holdings",
        issuer_slug="oasis-intl",
        lane=Lane.PRODUCTION,
        category="billing",
        document_type="invoice",
        issued_on=date(2024, 3, 15),
        totals=TotalsNormalizer().normalize(items, "USD"),
    )
    return renderer.render(render_input, GUESS).data


class _TextReader(BasePdfReader):
    def __init__(self, text: str) -> None:
        self._text = text

    def extract_last_page(self, pdf_bytes: bytes) -> str:
        return self._text


@pytest.mark.parametrize("reader_cls", READERS)
class TestAdapters:
    def test_extracts_text(self, reader_cls: type[BasePdfReader], sample_pdf_bytes: bytes) -> None:
        assert "Hello PDF World" in reader_cls().extract_last_page(sample_pdf_bytes)

    def test_reads_embedded_hash(self, reader_cls: type[BasePdfReader], rendered_pdf: bytes) -> None:
        assert reader_cls().read_embedded_hash(rendered_pdf) == GUESS

    def test_no_hash_in_plain_pdf(self, reader_cls: type[BasePdfReader], sample_pdf_bytes: bytes) -> None:
        assert reader_cls().read_embedded_hash(sample_pdf_bytes) is None

    def test_invalid_bytes_raise(self, reader_cls: type[BasePdfReader]) -> None:
        with pytest.raises(PdfReadError) as exc_info:
            reader_cls().extract_last_page(b"not a pdf")

        assert exc_info.value.code == "PDF_READ_FAILED"


class TestReadEmbeddedHash:
    def test_fingerprint_line_wins(self) -> None:
        text = f"SHA-256: {'a' * 64}\nhttps://x/verify?hash={'b' * 64}"

        assert _TextReader(text).read_embedded_hash(b"") == "a" * 64

    def test_falls_back_to_wrapped_link(self) -> None:
        text = f"https://x/verify?hash={'b' * 30}\n{'b' * 34}"

        assert _TextReader(text).read_embedded_hash(b"") == "b" * 64


class TestPdfReaderFactory:
    def test_creates_pdfplumber(self) -> None:
        reader = PdfReaderFactory.create(Settings(_env_file=None, pdf_engine="pdfplumber"))

        assert isinstance(reader, PdfPlumberAdapter)

    def test_creates_pymupdf(self) -> None:
        reader = PdfReaderFactory.create(Settings(_env_file=None, pdf_engine="PyMuPDF"))

        assert isinstance(reader, PyMuPdfAdapter)

    def test_unknown_engine_raises(self) -> None:
        with pytest.raises(ValueError, match="Unknown PDF engine"):
            PdfReaderFactory.create(Settings(_env_file=None, pdf_engine="poppler"))
