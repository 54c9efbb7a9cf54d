from datetime import UTC, datetime

from certdocs.config.settings import Settings
from certdocs.database.models import CertifiedPointer, RegistryRecord
from certdocs.database.repositories.issuer_repository import IssuerRepository
from certdocs.database.repositories.registry_repository import RegistryRepository
from certdocs.logging.logger import Log
from certdocs.processor.documents import render_input_from_record
from certdocs.processor.models import CertificationResult
from certdocs.rendering.renderer import DocumentRenderer
from certdocs.rendering.stabilizer import HashStabilizer
from certdocs.storage.models import StorageLocation, StoredObject
from certdocs.storage.paths import bucket_for_lane, certified_path
from certdocs.storage.writer import ContentAddressedStoreWriter


class DocumentCertifier:
    """Produces the certified copy of a registered document.

    The copy is re-rendered from the registry row with a certified banner,
    stabilized like the original, and stored beside it as
    ``<stem>-certified.pdf`` in the same lane bucket.
    """

    def __init__(
        self,
        registry_repo: RegistryRepository,
        issuer_repo: IssuerRepository,
        renderer: DocumentRenderer,
        stabilizer: HashStabilizer,
        writer: ContentAddressedStoreWriter,
        settings: Settings,
    ) -> None:
        self._registry_repo = registry_repo
        self._issuer_repo = issuer_repo
        self._renderer = renderer
        self._stabilizer = stabilizer
        self._writer = writer
        self._settings = settings

    def certify(self, document_id: str, force: bool = False) -> CertificationResult:
        record = self._registry_repo.find_by_id(document_id)
        if record.is_certified and not force:
            Log.info(f"Document {document_id} already certified, returning existing artifact")
            return self._existing(record)

        issuer = self._issuer_repo.find_by_id(record.entity_id)
        certified_at = datetime.now(UTC)
        render_input = render_input_from_record(record, issuer, certified_on=certified_at.date())
        result = self._stabilizer.stabilize(
            lambda guess: self._renderer.render(render_input, guess)
        )
        if not result.converged:
            Log.audit(
                "certified_hash_not_stabilized",
                document_id=document_id,
                content_hash=result.content_hash,
                embedded_hash=result.embedded_hash,
                iterations=result.iterations,
            )

        location = StorageLocation(
            bucket=bucket_for_lane(record.lane, self._settings),
            path=certified_path(record.storage_path),
        )
        stored = self._writer.write(location, result.document.data)
        verify_url = self._renderer.verification_url(result.embedded_hash)
        self._registry_repo.mark_certified(
            record.id,
            CertifiedPointer(
                bucket=stored.bucket,
                path=stored.path,
                file_hash=result.content_hash,
                embedded_hash=result.embedded_hash,
                certified_at=certified_at,
                verify_url=verify_url,
            ),
        )
        Log.info(f"Certified document {document_id} at {stored.bucket}/{stored.path}")
        return CertificationResult(
            document_id=record.id,
            already_certified=False,
            certified_hash=result.content_hash,
            embedded_hash=result.embedded_hash,
            hash_stabilized=result.converged,
            storage=stored,
            verify_url=verify_url,
        )

    @staticmethod
    def _existing(record: RegistryRecord) -> CertificationResult:
        return CertificationResult(
            document_id=record.id,
            already_certified=True,
            certified_hash=record.certified_file_hash or "",
            embedded_hash=record.certified_embedded_hash or "",
            hash_stabilized=record.certified_file_hash == record.certified_embedded_hash,
            storage=StoredObject(
                bucket=str(record.certified_storage_bucket),
                path=str(record.certified_storage_path),
                size=0,
            ),
            verify_url=record.verify_url or "",
        )
