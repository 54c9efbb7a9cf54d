from certdocs.billing.totals import TotalsNormalizer
from certdocs.database.models import RegistryDraft
from certdocs.database.repositories.issuer_repository import IssuerRepository
from certdocs.database.repositories.registry_repository import RegistryRepository
from certdocs.logging.logger import Log
from certdocs.processor.documents import render_input_from_request
from certdocs.processor.pipeline import GenerationContext, PipelineStep
from certdocs.rendering.renderer import DocumentRenderer
from certdocs.rendering.stabilizer import HashStabilizer
from certdocs.storage.writer import ContentAddressedStoreWriter


class ResolveIssuerStep(PipelineStep):
    def __init__(self, issuer_repo: IssuerRepository) -> None:
        self._issuer_repo = issuer_repo

    def run(self, context: GenerationContext) -> GenerationContext:
        context.issuer = self._issuer_repo.find_by_id(context.request.entity_id)
        Log.info(f"Generating for issuer {context.issuer.slug} in {context.lane.value} lane")
        return context


class ComputeTotalsStep(PipelineStep):
    def __init__(self, normalizer: TotalsNormalizer) -> None:
        self._normalizer = normalizer

    def run(self, context: GenerationContext) -> GenerationContext:
        if context.issuer is None:
            raise ValueError("GenerationContext.issuer must be set before totals")
        totals = self._normalizer.normalize(
            context.request.line_item_models(), context.request.currency
        )
        context.totals = totals
        context.render_input = render_input_from_request(
            context.request, context.issuer, totals, context.issued_on
        )
        Log.info(
            f"Totals for {len(totals.items)} items: "
            f"{totals.currency} {totals.to_dict()['total']}"
        )
        return context


class StabilizeStep(PipelineStep):
    """Render and iterate until the printed hash settles."""

    def __init__(self, renderer: DocumentRenderer, stabilizer: HashStabilizer) -> None:
        self._renderer = renderer
        self._stabilizer = stabilizer

    def run(self, context: GenerationContext) -> GenerationContext:
        render_input = context.render_input
        if render_input is None:
            raise ValueError("GenerationContext.render_input must be set before rendering")
        result = self._stabilizer.stabilize(
            lambda guess: self._renderer.render(render_input, guess)
        )
        context.stabilization = result
        context.verify_url = self._renderer.verification_url(result.embedded_hash)
        Log.info(
            f"Rendered {result.document.size} bytes, hash {result.content_hash[:16]}, "
            f"{result.iterations} round(s), converged={result.converged}"
        )
        if not result.converged:
            Log.audit(
                "hash_not_stabilized",
                content_hash=result.content_hash,
                embedded_hash=result.embedded_hash,
                iterations=result.iterations,
                natural_key=context.request.natural_key,
            )
        return context


class StoreArtifactStep(PipelineStep):
    def __init__(self, writer: ContentAddressedStoreWriter) -> None:
        self._writer = writer

    def run(self, context: GenerationContext) -> GenerationContext:
        if context.issuer is None or context.stabilization is None:
            raise ValueError("GenerationContext must be rendered before storing")
        result = context.stabilization
        context.location = self._writer.locate(
            lane=context.lane,
            issuer_slug=context.issuer.slug,
            category=context.request.category,
            issued_on=context.issued_on,
            natural_key=context.request.natural_key,
            content_hash=result.content_hash,
        )
        context.stored = self._writer.write(context.location, result.document.data)
        return context


class RegisterStep(PipelineStep):
    """Record the stored artifact; runs only after the blob write succeeded."""

    def __init__(self, registry_repo: RegistryRepository) -> None:
        self._registry_repo = registry_repo

    def run(self, context: GenerationContext) -> GenerationContext:
        if context.stored is None or context.stabilization is None or context.totals is None:
            raise ValueError("GenerationContext must be stored before registering")
        request = context.request
        totals = context.totals
        result = context.stabilization
        draft = RegistryDraft(
            entity_id=request.entity_id,
            is_test=request.is_test,
            category=request.category,
            document_type=request.document_type,
            currency=totals.currency,
            subtotal_cents=totals.subtotal_cents,
            tax_cents=totals.tax_cents,
            total_cents=totals.total_cents,
            line_items=totals.items,
            issued_at=context.issued_on,
            storage_bucket=context.stored.bucket,
            storage_path=context.stored.path,
            file_size_bytes=context.stored.size,
            file_hash=result.content_hash,
            embedded_hash=result.embedded_hash,
            hash_stabilized=result.converged,
            verify_url=context.verify_url,
            invoice_number=request.invoice_number,
            document_number=request.document_number,
            title=request.title,
            recipient_name=request.recipient_name,
            recipient_email=request.recipient_email,
            due_at=request.due_at,
            period_start=request.period_start,
            period_end=request.period_end,
            notes=request.notes,
            reason=request.reason,
            source_record_id=request.source_record_id,
            metadata=request.metadata,
        )
        context.outcome = self._registry_repo.upsert(draft)
        action = "Created" if context.outcome.created else "Updated"
        Log.info(f"{action} registry row {context.outcome.record_id}")
        return context
