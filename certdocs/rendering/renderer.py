"""Deterministic single-page layout for billing artifacts.

Every position is derived from the constants below and from the measured
length of the content; nothing is laid out by trial. Together with
reportlab's invariant mode (fixed document id and timestamps) this makes the
output byte-identical for identical input and embedded hash.
"""

import io
import re
from decimal import Decimal

from reportlab.lib.colors import Color, black
from reportlab.lib.pagesizes import letter
from reportlab.lib.utils import ImageReader
from reportlab.pdfgen.canvas import Canvas

from certdocs.billing.models import NormalizedLineItem, format_minor
from certdocs.rendering.models import RenderedDocument, RenderInput
from certdocs.rendering.qr import SymbolRasterizer
from certdocs.rendering.text import fit_with_ellipsis, sanitize, text_width, wrap_text

PAGE_WIDTH, PAGE_HEIGHT = letter
MARGIN = 48.0
CONTENT_RIGHT = PAGE_WIDTH - MARGIN
CONTENT_WIDTH = CONTENT_RIGHT - MARGIN

FONT = "Helvetica"
FONT_BOLD = "Helvetica-Bold"
FONT_MONO = "Courier"

TABLE_TOP = 612.0
TABLE_HEADER_HEIGHT = 20.0
ROW_LINE_HEIGHT = 11.0
ROW_PADDING = 6.0
ROW_DESCRIPTION_LINES = 2
OVERFLOW_ROW_HEIGHT = 16.0

DESCRIPTION_WIDTH = 262.0
QTY_RIGHT = 380.0
UNIT_RIGHT = 470.0
AMOUNT_RIGHT = CONTENT_RIGHT

FOOTER_HEIGHT = 214.0
FOOTER_MIN_TOP = MARGIN + FOOTER_HEIGHT
FOOTER_GAP = 18.0
TABLE_CUTOFF = FOOTER_MIN_TOP + FOOTER_GAP

TOTALS_LEFT = CONTENT_RIGHT - 200.0
NOTES_WIDTH = TOTALS_LEFT - MARGIN - 24.0
NOTES_MAX_LINES = 3
PANEL_HEIGHT = 134.0
QR_SIZE = 110.0
PANEL_TEXT_LEFT = MARGIN + QR_SIZE + 22.0
PANEL_TEXT_WIDTH = CONTENT_RIGHT - PANEL_TEXT_LEFT - 8.0
URL_MAX_LINES = 3

_HEX64 = re.compile(r"^[0-9a-f]{64}$")
_MUTED = Color(0.4, 0.4, 0.4)
_RULE = Color(0.75, 0.75, 0.75)
_PANEL_FILL = Color(0.96, 0.96, 0.96)
_SANDBOX_ACCENT = Color(0.75, 0.2, 0.1)
_CERTIFIED_ACCENT = Color(0.1, 0.45, 0.2)

_DOCUMENT_TITLES = {
    "invoice": "INVOICE",
    "receipt": "RECEIPT",
    "credit_note": "CREDIT NOTE",
    "statement": "STATEMENT",
}


class DocumentRenderer:
    """Renders one :class:`RenderInput` plus one embedded-hash guess to PDF bytes."""

    def __init__(
        self,
        *,
        verify_base_url: str,
        rasterizer: SymbolRasterizer,
        qr_pixel_size: int = 256,
        qr_margin_modules: int = 2,
        qr_error_correction: str = "M",
    ) -> None:
        self._verify_base_url = verify_base_url
        self._rasterizer = rasterizer
        self._qr_pixel_size = qr_pixel_size
        self._qr_margin_modules = qr_margin_modules
        self._qr_error_correction = qr_error_correction

    def verification_url(self, embedded_hash: str) -> str:
        return f"{self._verify_base_url}?hash={embedded_hash}"

    def render(self, data: RenderInput, embedded_hash: str) -> RenderedDocument:
        if not _HEX64.match(embedded_hash):
            raise ValueError("embedded_hash must be 64 lowercase hex characters")

        buffer = io.BytesIO()
        canvas = Canvas(buffer, pagesize=letter, invariant=1, pageCompression=0)
        canvas.setTitle(sanitize(self._title(data)))
        canvas.setAuthor(sanitize(data.issuer_name))
        canvas.setCreator("certdocs")

        self._draw_header(canvas, data)
        table_bottom = self._draw_table(canvas, data)
        footer_top = max(FOOTER_MIN_TOP, table_bottom - FOOTER_GAP)
        self._draw_footer(canvas, data, footer_top, embedded_hash)

        canvas.showPage()
        canvas.save()
        return RenderedDocument(data=buffer.getvalue(), embedded_hash=embedded_hash)

    @staticmethod
    def _title(data: RenderInput) -> str:
        if data.title:
            return data.title
        return _DOCUMENT_TITLES.get(data.document_type, data.document_type.upper())

    def _draw_header(self, canvas: Canvas, data: RenderInput) -> None:
        top = PAGE_HEIGHT - MARGIN

        canvas.setFillColor(black)
        canvas.setFont(FONT_BOLD, 16)
        canvas.drawString(
            MARGIN, top - 16, fit_with_ellipsis(sanitize(data.issuer_name), 300, FONT_BOLD, 16)
        )

        title = sanitize(self._title(data)).upper()
        canvas.setFont(FONT_BOLD, 20)
        canvas.drawRightString(CONTENT_RIGHT, top - 18, fit_with_ellipsis(title, 200, FONT_BOLD, 20))

        canvas.setFont(FONT_BOLD, 9)
        if data.lane.is_test:
            canvas.setFillColor(_SANDBOX_ACCENT)
            canvas.drawRightString(CONTENT_RIGHT, top - 34, "SANDBOX - NOT A LEGAL DOCUMENT")
        else:
            canvas.setFillColor(_MUTED)
            canvas.drawRightString(CONTENT_RIGHT, top - 34, data.lane.label)

        if data.certified_on is not None:
            canvas.setFillColor(_CERTIFIED_ACCENT)
            canvas.setFont(FONT_BOLD, 10)
            canvas.drawRightString(
                CONTENT_RIGHT, top - 50, f"CERTIFIED COPY - {data.certified_on.isoformat()}"
            )

        canvas.setFillColor(black)
        canvas.setFont(FONT, 9)
        y = top - 38
        for line in self._meta_lines(data):
            canvas.drawString(MARGIN, y, fit_with_ellipsis(line, 300, FONT, 9))
            y -= 12

    @staticmethod
    def _meta_lines(data: RenderInput) -> list[str]:
        lines: list[str] = []
        if data.document_number:
            lines.append(f"No. {sanitize(data.document_number)}")
        lines.append(f"Issued: {data.issued_on.isoformat()}")
        if data.due_on:
            lines.append(f"Due: {data.due_on.isoformat()}")
        if data.period_start or data.period_end:
            start = data.period_start.isoformat() if data.period_start else "-"
            end = data.period_end.isoformat() if data.period_end else "-"
            lines.append(f"Period: {start} to {end}")
        if data.recipient_name:
            lines.append(f"Bill to: {sanitize(data.recipient_name)}")
        if data.recipient_email:
            lines.append(sanitize(data.recipient_email))
        return lines

    def _draw_table(self, canvas: Canvas, data: RenderInput) -> float:
        """Draw the line-item table and return the y of its lowest edge."""
        canvas.setFillColor(black)
        canvas.setFont(FONT_BOLD, 9)
        header_y = TABLE_TOP - 12
        canvas.drawString(MARGIN, header_y, "Description")
        canvas.drawRightString(QTY_RIGHT, header_y, "Qty")
        canvas.drawRightString(UNIT_RIGHT, header_y, "Unit price")
        canvas.drawRightString(AMOUNT_RIGHT, header_y, "Amount")
        canvas.setStrokeColor(_RULE)
        canvas.setLineWidth(0.75)
        canvas.line(MARGIN, TABLE_TOP - TABLE_HEADER_HEIGHT + 4, CONTENT_RIGHT, TABLE_TOP - TABLE_HEADER_HEIGHT + 4)

        y = TABLE_TOP - TABLE_HEADER_HEIGHT
        items = data.totals.items
        if not items:
            canvas.setFont(FONT, 9)
            canvas.setFillColor(_MUTED)
            canvas.drawString(MARGIN, y - ROW_LINE_HEIGHT, "No line items")
            return y - ROW_LINE_HEIGHT - ROW_PADDING

        for index, item in enumerate(items):
            description = wrap_text(
                item.description, DESCRIPTION_WIDTH, FONT, 9, ROW_DESCRIPTION_LINES
            ) or [""]
            row_height = len(description) * ROW_LINE_HEIGHT + ROW_PADDING
            remaining_after = len(items) - index - 1
            reserve = OVERFLOW_ROW_HEIGHT if remaining_after else 0.0
            if y - row_height - reserve < TABLE_CUTOFF:
                return self._draw_overflow(canvas, y, len(items) - index)
            self._draw_row(canvas, y, item, description, data.totals.currency)
            y -= row_height
        return y

    @staticmethod
    def _draw_row(
        canvas: Canvas,
        y: float,
        item: NormalizedLineItem,
        description: list[str],
        currency: str,
    ) -> None:
        canvas.setFillColor(black)
        canvas.setFont(FONT, 9)
        baseline = y - ROW_LINE_HEIGHT
        for offset, line in enumerate(description):
            canvas.drawString(MARGIN, baseline - offset * ROW_LINE_HEIGHT, line)
        canvas.drawRightString(QTY_RIGHT, baseline, _format_quantity(item.quantity))
        canvas.drawRightString(UNIT_RIGHT, baseline, format_minor(item.unit_price_cents))
        canvas.drawRightString(AMOUNT_RIGHT, baseline, f"{currency} {format_minor(item.amount_cents)}")

    @staticmethod
    def _draw_overflow(canvas: Canvas, y: float, hidden: int) -> float:
        canvas.setFillColor(_MUTED)
        canvas.setFont(FONT, 8)
        noun = "item" if hidden == 1 else "items"
        canvas.drawString(MARGIN, y - ROW_LINE_HEIGHT, f"... and {hidden} more line {noun}")
        return y - OVERFLOW_ROW_HEIGHT

    def _draw_footer(
        self, canvas: Canvas, data: RenderInput, footer_top: float, embedded_hash: str
    ) -> None:
        canvas.setStrokeColor(_RULE)
        canvas.setLineWidth(0.75)
        canvas.line(MARGIN, footer_top, CONTENT_RIGHT, footer_top)

        self._draw_totals(canvas, data, footer_top)
        self._draw_notes(canvas, data, footer_top)
        self._draw_verification_panel(canvas, data, footer_top, embedded_hash)

    @staticmethod
    def _draw_totals(canvas: Canvas, data: RenderInput, footer_top: float) -> None:
        totals = data.totals
        rows = (
            ("Subtotal", totals.subtotal_cents, FONT, 9, 16.0),
            ("Tax", totals.tax_cents, FONT, 9, 30.0),
            ("Total", totals.total_cents, FONT_BOLD, 11, 48.0),
        )
        canvas.setFillColor(black)
        for label, cents, font, size, drop in rows:
            canvas.setFont(font, size)
            canvas.drawString(TOTALS_LEFT, footer_top - drop, label)
            canvas.drawRightString(
                CONTENT_RIGHT, footer_top - drop, f"{totals.currency} {format_minor(cents)}"
            )

    @staticmethod
    def _draw_notes(canvas: Canvas, data: RenderInput, footer_top: float) -> None:
        lines = wrap_text(data.notes, NOTES_WIDTH, FONT, 8, NOTES_MAX_LINES)
        if not lines:
            return
        canvas.setFillColor(black)
        canvas.setFont(FONT_BOLD, 9)
        canvas.drawString(MARGIN, footer_top - 16, "Notes")
        canvas.setFont(FONT, 8)
        for offset, line in enumerate(lines):
            canvas.drawString(MARGIN, footer_top - 28 - offset * 10, line)

    def _draw_verification_panel(
        self, canvas: Canvas, data: RenderInput, footer_top: float, embedded_hash: str
    ) -> None:
        panel_top = footer_top - FOOTER_HEIGHT + PANEL_HEIGHT + 6
        panel_bottom = panel_top - PANEL_HEIGHT

        canvas.setFillColor(_PANEL_FILL)
        canvas.setStrokeColor(_RULE)
        canvas.rect(MARGIN, panel_bottom, CONTENT_WIDTH, PANEL_HEIGHT, stroke=1, fill=1)

        url = self.verification_url(embedded_hash)
        png = self._rasterizer.rasterize(
            url,
            pixel_size=self._qr_pixel_size,
            margin_modules=self._qr_margin_modules,
            error_correction=self._qr_error_correction,
        )
        canvas.drawImage(
            ImageReader(io.BytesIO(png)),
            MARGIN + 12,
            panel_bottom + (PANEL_HEIGHT - QR_SIZE) / 2,
            width=QR_SIZE,
            height=QR_SIZE,
        )

        y = panel_top - 20
        canvas.setFillColor(black)
        canvas.setFont(FONT_BOLD, 10)
        canvas.drawString(PANEL_TEXT_LEFT, y, "Verify this document")
        y -= 16
        canvas.setFont(FONT, 8)
        canvas.drawString(
            PANEL_TEXT_LEFT,
            y,
            "Scan the code or open the link below and compare the SHA-256 fingerprint.",
        )
        y -= 16
        canvas.setFont(FONT_MONO, 7.5)
        canvas.drawString(PANEL_TEXT_LEFT, y, f"SHA-256: {embedded_hash}")
        y -= 14
        canvas.setFillColor(_MUTED)
        canvas.setFont(FONT, 7)
        for line in wrap_text(url, PANEL_TEXT_WIDTH, FONT, 7, URL_MAX_LINES):
            canvas.drawString(PANEL_TEXT_LEFT, y, line)
            y -= 9

        canvas.setFont(FONT, 7)
        scope = f"{data.lane.label} | {sanitize(data.category)} | generated by certdocs"
        canvas.drawString(
            PANEL_TEXT_LEFT,
            panel_bottom + 8,
            fit_with_ellipsis(scope, PANEL_TEXT_WIDTH, FONT, 7),
        )


def _format_quantity(quantity: Decimal) -> str:
    text = format(quantity.normalize(), "f")
    return text if text_width(text, FONT, 9) <= 60 else fit_with_ellipsis(text, 60, FONT, 9)
