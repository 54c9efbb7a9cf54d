from datetime import UTC, datetime

from certdocs.billing.requests import GenerateRequest
from certdocs.billing.totals import TotalsNormalizer
from certdocs.database.repositories.issuer_repository import IssuerRepository
from certdocs.database.repositories.registry_repository import RegistryRepository
from certdocs.logging.logger import Log
from certdocs.processor.models import GenerationResult
from certdocs.processor.pipeline import GenerationContext, PipelineStep
from certdocs.processor.steps import (
    ComputeTotalsStep,
    RegisterStep,
    ResolveIssuerStep,
    StabilizeStep,
    StoreArtifactStep,
)
from certdocs.rendering.renderer import DocumentRenderer
from certdocs.rendering.stabilizer import HashStabilizer
from certdocs.storage.models import Lane
from certdocs.storage.writer import ContentAddressedStoreWriter


class DocumentGenerator:
    """Runs one generate request through the pipeline.

    Pipeline: issuer -> totals -> render/stabilize -> store -> register.
    The blob is written before the registry row, so a failed registration
    can orphan a blob but never leaves a row pointing at missing content.
    """

    def __init__(self, steps: list[PipelineStep]) -> None:
        self._steps = steps

    def generate(self, request: GenerateRequest) -> GenerationResult:
        context = GenerationContext(
            request=request,
            lane=Lane.from_is_test(request.is_test),
            issued_on=request.issued_at or datetime.now(UTC).date(),
        )
        for step in self._steps:
            context = step.run(context)

        if (
            context.outcome is None
            or context.stabilization is None
            or context.stored is None
            or context.totals is None
        ):
            raise RuntimeError("Generation pipeline finished without registering a document")

        Log.info(
            f"Generated document {context.outcome.record_id} at "
            f"{context.stored.bucket}/{context.stored.path}"
        )
        return GenerationResult(
            document_id=context.outcome.record_id,
            created=context.outcome.created,
            content_hash=context.stabilization.content_hash,
            embedded_hash=context.stabilization.embedded_hash,
            hash_stabilized=context.stabilization.converged,
            iterations=context.stabilization.iterations,
            storage=context.stored,
            totals=context.totals,
            verify_url=context.verify_url,
        )


def build_generation_steps(
    issuer_repo: IssuerRepository,
    registry_repo: RegistryRepository,
    normalizer: TotalsNormalizer,
    renderer: DocumentRenderer,
    stabilizer: HashStabilizer,
    writer: ContentAddressedStoreWriter,
) -> list[PipelineStep]:
    return [
        ResolveIssuerStep(issuer_repo),
        ComputeTotalsStep(normalizer),
        StabilizeStep(renderer, stabilizer),
        StoreArtifactStep(writer),
        RegisterStep(registry_repo),
    ]
