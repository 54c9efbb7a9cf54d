import io
from dataclasses import replace
from datetime import UTC, datetime
from uuid import uuid4

import pytest
from reportlab.lib.pagesizes import letter
from reportlab.pdfgen import canvas

from certdocs.billing.totals import TotalsNormalizer
from certdocs.config.settings import Settings
from certdocs.database.models import (
    CertifiedPointer,
    Issuer,
    RegistryDraft,
    RegistryRecord,
    UpsertOutcome,
    VerifiedArtifactRecord,
)
from certdocs.pdf.pdfplumber_adapter import PdfPlumberAdapter
from certdocs.processor.certifier import DocumentCertifier
from certdocs.processor.exceptions import DocumentNotFoundError, IssuerNotFoundError
from certdocs.processor.generator import DocumentGenerator, build_generation_steps
from certdocs.processor.handlers import DocumentHandlers
from certdocs.processor.verifier import DocumentVerifier
from certdocs.rendering.qr import SymbolRasterizer
from certdocs.rendering.renderer import DocumentRenderer
from certdocs.rendering.stabilizer import HashStabilizer
from certdocs.resolution.download import VerifiedArtifactDownloader
from certdocs.resolution.entries import DocumentEntryLoader
from certdocs.resolution.fallback import FallbackLocator
from certdocs.resolution.resolver import ArtifactResolver
from certdocs.storage.memory_adapter import MemoryStorageClient
from certdocs.storage.writer import ContentAddressedStoreWriter

ISSUER_ID = "7d0f3f4e-5a43-4d59-9c77-2f1b1c3e9a10"


class InMemoryIssuerRepository:
    def __init__(self, issuers: list[Issuer]) -> None:
        self._issuers = {issuer.id: issuer for issuer in issuers}

    def find_by_id(self, entity_id: str) -> Issuer:
        issuer = self._issuers.get(entity_id)
        if issuer is None:
            raise IssuerNotFoundError(f"Issuer {entity_id} not found")
        return issuer


class InMemoryRegistryRepository:
    """Mirrors the registry's two uniqueness rules without a database."""

    def __init__(self) -> None:
        self.records: dict[str, RegistryRecord] = {}

    def upsert(self, draft: RegistryDraft) -> UpsertOutcome:
        if draft.natural_key:
            for record in self.records.values():
                if (
                    record.entity_id == draft.entity_id
                    and record.is_test == draft.is_test
                    and record.natural_key == draft.natural_key
                ):
                    self.records[record.id] = self._from_draft(record.id, draft)
                    return UpsertOutcome(record_id=record.id, created=False)
        else:
            for record in self.records.values():
                if record.file_hash == draft.file_hash:
                    return UpsertOutcome(record_id=record.id, created=False)
        record_id = str(uuid4())
        self.records[record_id] = self._from_draft(record_id, draft)
        return UpsertOutcome(record_id=record_id, created=True)

    def find_by_id(self, record_id: str) -> RegistryRecord:
        record = self.records.get(record_id)
        if record is None:
            raise DocumentNotFoundError(f"Document {record_id} not found")
        return record

    def find_by_hash(self, content_hash: str, is_test: bool | None = None) -> RegistryRecord | None:
        for record in self.records.values():
            if is_test is not None and record.is_test != is_test:
                continue
            if content_hash in (
                record.file_hash,
                record.embedded_hash,
                record.certified_file_hash,
                record.certified_embedded_hash,
            ):
                return record
        return None

    def mark_certified(self, record_id: str, pointer: CertifiedPointer) -> None:
        record = self.find_by_id(record_id)
        self.records[record_id] = replace(
            record,
            certified_storage_bucket=pointer.bucket,
            certified_storage_path=pointer.path,
            certified_file_hash=pointer.file_hash,
            certified_embedded_hash=pointer.embedded_hash,
            certified_at=pointer.certified_at,
            verify_url=pointer.verify_url,
        )

    @staticmethod
    def _from_draft(record_id: str, draft: RegistryDraft) -> RegistryRecord:
        return RegistryRecord(
            id=record_id,
            entity_id=draft.entity_id,
            is_test=draft.is_test,
            category=draft.category,
            document_type=draft.document_type,
            currency=draft.currency,
            subtotal_cents=draft.subtotal_cents,
            tax_cents=draft.tax_cents,
            total_cents=draft.total_cents,
            issued_at=draft.issued_at,
            storage_bucket=draft.storage_bucket,
            storage_path=draft.storage_path,
            file_size_bytes=draft.file_size_bytes,
            file_hash=draft.file_hash,
            embedded_hash=draft.embedded_hash,
            hash_stabilized=draft.hash_stabilized,
            line_items=list(draft.line_items),
            invoice_number=draft.invoice_number,
            document_number=draft.document_number,
            title=draft.title,
            recipient_name=draft.recipient_name,
            recipient_email=draft.recipient_email,
            due_at=draft.due_at,
            period_start=draft.period_start,
            period_end=draft.period_end,
            notes=draft.notes,
            reason=draft.reason,
            verify_url=draft.verify_url,
            source_record_id=draft.source_record_id,
            metadata=dict(draft.metadata),
            updated_at=datetime.now(UTC),
        )


class InMemoryVerifiedRepository:
    def __init__(self, records: list[VerifiedArtifactRecord] | None = None) -> None:
        self.records = list(records or [])

    def find_for_source(self, entity_id: str, source_record_id: str) -> list[VerifiedArtifactRecord]:
        return [
            record
            for record in self.records
            if record.entity_id == entity_id and record.source_record_id == source_record_id
        ]

    def find_by_id(self, verified_id: str) -> VerifiedArtifactRecord | None:
        return next((record for record in self.records if record.id == verified_id), None)

    def find_by_hash(self, file_hash: str) -> VerifiedArtifactRecord | None:
        return next((record for record in self.records if record.file_hash == file_hash), None)


@pytest.fixture()
def settings() -> Settings:
    return Settings(_env_file=None, storage_backend="memory")


@pytest.fixture()
def issuer() -> Issuer:
    return Issuer(id=ISSUER_ID, slug="oasis-intl", name="Oasis International Holdings")


@pytest.fixture()
def issuer_repo(issuer: Issuer) -> InMemoryIssuerRepository:
    return InMemoryIssuerRepository([issuer])


@pytest.fixture()
def registry_repo() -> InMemoryRegistryRepository:
    return InMemoryRegistryRepository()


@pytest.fixture()
def verified_repo() -> InMemoryVerifiedRepository:
    return InMemoryVerifiedRepository()


@pytest.fixture()
def storage() -> MemoryStorageClient:
    return MemoryStorageClient()


@pytest.fixture()
def renderer(settings: Settings) -> DocumentRenderer:
    return DocumentRenderer(
        verify_base_url=settings.verify_base_url,
        rasterizer=SymbolRasterizer(),
        qr_pixel_size=settings.qr_pixel_size,
        qr_margin_modules=settings.qr_margin_modules,
        qr_error_correction=settings.qr_error_correction,
    )


@pytest.fixture()
def generate_payload() -> dict:
    return {
        "entity_id": ISSUER_ID,
        "is_test": True,
        "category": "billing",
        "invoice_number": "INV-2024-001",
        "currency": "usd",
        "issued_at": "2024-03-15",
        "recipient_name": "Acme Corp",
        "line_items": [
            {"description": "Service A", "amount": "100.00"},
            {"description": "Service B", "amount": "50.00"},
        ],
        "reason": "Monthly retainer",
    }


@pytest.fixture()
def sample_pdf_bytes() -> bytes:
    """Generate a minimal single-page PDF with known text content."""
    buf = io.BytesIO()
    c = canvas.Canvas(buf, pagesize=letter)
    c.drawString(72, 720, "Hello PDF World")
    c.save()
    return buf.getvalue()


@pytest.fixture()
def handlers(
    settings: Settings,
    storage: MemoryStorageClient,
    issuer_repo: InMemoryIssuerRepository,
    registry_repo: InMemoryRegistryRepository,
    verified_repo: InMemoryVerifiedRepository,
    renderer: DocumentRenderer,
) -> DocumentHandlers:
    """Handlers wired to in-memory storage and repositories."""
    stabilizer = HashStabilizer(settings.stabilization_max_iterations)
    writer = ContentAddressedStoreWriter(storage, settings)
    generator = DocumentGenerator(
        build_generation_steps(
            issuer_repo=issuer_repo,
            registry_repo=registry_repo,
            normalizer=TotalsNormalizer(settings.description_max_length),
            renderer=renderer,
            stabilizer=stabilizer,
            writer=writer,
        )
    )
    certifier = DocumentCertifier(
        registry_repo=registry_repo,
        issuer_repo=issuer_repo,
        renderer=renderer,
        stabilizer=stabilizer,
        writer=writer,
        settings=settings,
    )
    resolver = ArtifactResolver(
        storage, FallbackLocator(storage, categories=settings.document_categories), settings
    )
    return DocumentHandlers(
        generator=generator,
        certifier=certifier,
        verifier=DocumentVerifier(PdfPlumberAdapter(), registry_repo, verified_repo),
        resolver=resolver,
        loader=DocumentEntryLoader(registry_repo, verified_repo),
        downloader=VerifiedArtifactDownloader(storage, verified_repo),
        settings=settings,
    )
