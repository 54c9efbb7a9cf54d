from certdocs.database.repositories.registry_repository import RegistryRepository
from certdocs.database.repositories.verified_documents_repository import (
    VerifiedDocumentsRepository,
)
from certdocs.processor.exceptions import DocumentNotFoundError
from certdocs.resolution.models import DocumentEntry
from certdocs.storage.models import Lane


class DocumentEntryLoader:
    """Assembles a :class:`DocumentEntry` from the registry and the official tier."""

    def __init__(
        self,
        registry_repo: RegistryRepository,
        verified_repo: VerifiedDocumentsRepository,
    ) -> None:
        self._registry_repo = registry_repo
        self._verified_repo = verified_repo

    def load(self, entry_id: str) -> DocumentEntry:
        record = self._registry_repo.find_by_id(entry_id)
        verified = []
        if record.source_record_id:
            verified = self._verified_repo.find_for_source(record.entity_id, record.source_record_id)
        return DocumentEntry.from_records(record, verified)

    def load_by_hash(self, content_hash: str, lane: Lane) -> DocumentEntry:
        """Entry whose generated, embedded or certified hash matches, within ``lane``.

        Raises:
            DocumentNotFoundError: if no registry row in ``lane`` carries the hash.
        """
        record = self._registry_repo.find_by_hash(content_hash, is_test=lane.is_test)
        if record is None:
            raise DocumentNotFoundError(
                f"No {lane.value} document registered with hash {content_hash}"
            )
        verified = []
        if record.source_record_id:
            verified = self._verified_repo.find_for_source(record.entity_id, record.source_record_id)
        return DocumentEntry.from_records(record, verified)
