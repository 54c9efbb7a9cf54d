from certdocs.database.repositories.registry_repository import RegistryRepository
from certdocs.database.repositories.verified_documents_repository import (
    VerifiedDocumentsRepository,
)
from certdocs.logging.logger import Log
from certdocs.pdf.base import BasePdfReader
from certdocs.processor.models import VerificationResult
from certdocs.rendering.models import sha256_hex
from certdocs.resolution.models import AuthorityTier
from certdocs.storage.models import Lane


class DocumentVerifier:
    """Checks a presented PDF against the registry."""

    def __init__(
        self,
        reader: BasePdfReader,
        registry_repo: RegistryRepository,
        verified_repo: VerifiedDocumentsRepository,
    ) -> None:
        self._reader = reader
        self._registry_repo = registry_repo
        self._verified_repo = verified_repo

    def verify(self, pdf_bytes: bytes) -> VerificationResult:
        content_hash = sha256_hex(pdf_bytes)
        embedded_hash = self._reader.read_embedded_hash(pdf_bytes)
        claimed = (
            self._registry_repo.find_by_hash(embedded_hash) if embedded_hash is not None else None
        )
        claimed_id = claimed.id if claimed is not None else None

        record = self._registry_repo.find_by_hash(content_hash)
        if record is not None and content_hash in (record.file_hash, record.certified_file_hash):
            tier = (
                AuthorityTier.CERTIFIED
                if content_hash == record.certified_file_hash
                else AuthorityTier.UPLOADED
            )
            Log.info(f"Verified {content_hash[:16]} as {tier.name.lower()} of {record.id}")
            return VerificationResult(
                content_hash=content_hash,
                embedded_hash=embedded_hash,
                registered=True,
                tier=tier,
                document_id=record.id,
                lane=record.lane,
                claimed_document_id=claimed_id,
            )

        official = self._verified_repo.find_by_hash(content_hash)
        if official is not None:
            Log.info(f"Verified {content_hash[:16]} as official artifact {official.id}")
            return VerificationResult(
                content_hash=content_hash,
                embedded_hash=embedded_hash,
                registered=True,
                tier=AuthorityTier.OFFICIAL,
                document_id=official.id,
                lane=Lane.from_is_test(official.is_test),
                claimed_document_id=claimed_id,
            )

        Log.warning(
            f"Unregistered PDF {content_hash[:16]} "
            f"(embedded hash {embedded_hash[:16] if embedded_hash else 'absent'})"
        )
        return VerificationResult(
            content_hash=content_hash,
            embedded_hash=embedded_hash,
            registered=False,
            claimed_document_id=claimed_id,
        )
