"""Builds renderer input from a generate request or from a stored registry row."""

from datetime import date

from certdocs.billing.models import Totals
from certdocs.billing.requests import GenerateRequest
from certdocs.database.models import Issuer, RegistryRecord
from certdocs.rendering.models import RenderInput
from certdocs.storage.models import Lane


def render_input_from_request(
    request: GenerateRequest,
    issuer: Issuer,
    totals: Totals,
    issued_on: date,
) -> RenderInput:
    return RenderInput(
        issuer_name=issuer.name,
        issuer_slug=issuer.slug,
        lane=Lane.from_is_test(request.is_test),
        category=request.category,
        document_type=request.document_type,
        issued_on=issued_on,
        totals=totals,
        title=request.title,
        document_number=request.natural_key,
        recipient_name=request.recipient_name,
        recipient_email=request.recipient_email,
        due_on=request.due_at,
        period_start=request.period_start,
        period_end=request.period_end,
        notes=request.notes,
    )


def render_input_from_record(
    record: RegistryRecord,
    issuer: Issuer,
    certified_on: date | None = None,
) -> RenderInput:
    """Rebuild the input of a registered document from its stored columns."""
    return RenderInput(
        issuer_name=issuer.name,
        issuer_slug=issuer.slug,
        lane=record.lane,
        category=record.category,
        document_type=record.document_type,
        issued_on=record.issued_at,
        totals=Totals(
            currency=record.currency,
            subtotal_cents=record.subtotal_cents,
            tax_cents=record.tax_cents,
            total_cents=record.total_cents,
            items=list(record.line_items),
        ),
        title=record.title,
        document_number=record.natural_key,
        recipient_name=record.recipient_name,
        recipient_email=record.recipient_email,
        due_on=record.due_at,
        period_start=record.period_start,
        period_end=record.period_end,
        notes=record.notes,
        certified_on=certified_on,
    )
