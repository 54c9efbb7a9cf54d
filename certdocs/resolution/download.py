"""Byte-level retrieval of official artifacts, for callers that cannot follow a signed link."""

from dataclasses import dataclass
from typing import Any

from certdocs.database.models import VerifiedArtifactRecord
from certdocs.database.repositories.verified_documents_repository import (
    VerifiedDocumentsRepository,
)
from certdocs.logging.logger import Log
from certdocs.processor.exceptions import (
    ArtifactNotFoundError,
    DocumentNotFoundError,
    DownloadFailedError,
)
from certdocs.rendering.models import sha256_hex
from certdocs.storage.base import BaseStorageClient
from certdocs.storage.exceptions import StorageError, StorageObjectNotFoundError
from certdocs.storage.paths import base_of

_DEFAULT_FILENAME = "verified.pdf"


@dataclass(frozen=True)
class DownloadedArtifact:
    verified_document_id: str
    filename: str
    data: bytes
    recorded_hash: str | None
    content_hash: str

    @property
    def intact(self) -> bool:
        """False when the stored bytes no longer match the recorded hash."""
        return self.recorded_hash is None or self.recorded_hash == self.content_hash

    def to_dict(self) -> dict[str, Any]:
        return {
            "ok": True,
            "verified_document_id": self.verified_document_id,
            "filename": self.filename,
            "content_type": "application/pdf",
            "file_hash": self.recorded_hash or "",
            "content_hash": self.content_hash,
            "intact": self.intact,
            "data": self.data,
        }


class VerifiedArtifactDownloader:
    """Reads official artifacts by verified document ID or file hash."""

    def __init__(
        self,
        storage: BaseStorageClient,
        verified_repo: VerifiedDocumentsRepository,
    ) -> None:
        self._storage = storage
        self._verified_repo = verified_repo

    def download(
        self, verified_document_id: str | None = None, file_hash: str | None = None
    ) -> DownloadedArtifact:
        """Fetch the stored bytes of one official artifact.

        Raises:
            DocumentNotFoundError: if no verified document matches.
            ArtifactNotFoundError: if the row exists but its object does not.
            DownloadFailedError: on any other storage failure.
        """
        record = self._find(verified_document_id, file_hash)
        try:
            data = self._storage.download(record.storage_bucket, record.storage_path)
        except StorageObjectNotFoundError as exc:
            raise ArtifactNotFoundError(
                f"Object not found for verified document {record.id}",
                bucket=record.storage_bucket,
                path=record.storage_path,
            ) from exc
        except StorageError as exc:
            raise DownloadFailedError(
                f"Download of {record.storage_bucket}/{record.storage_path} failed: {exc}"
            ) from exc

        artifact = DownloadedArtifact(
            verified_document_id=record.id,
            filename=base_of(record.storage_path).replace('"', "") or _DEFAULT_FILENAME,
            data=data,
            recorded_hash=record.file_hash,
            content_hash=sha256_hex(data),
        )
        if not artifact.intact:
            Log.audit(
                "verified_artifact_hash_mismatch",
                verified_document_id=record.id,
                recorded_hash=record.file_hash,
                content_hash=artifact.content_hash,
            )
        return artifact

    def _find(self, verified_document_id: str | None, file_hash: str | None) -> VerifiedArtifactRecord:
        if verified_document_id is not None:
            record = self._verified_repo.find_by_id(verified_document_id)
            missing = f"Verified document {verified_document_id} not found"
        elif file_hash is not None:
            record = self._verified_repo.find_by_hash(file_hash)
            missing = f"No verified document with hash {file_hash}"
        else:
            raise ValueError("verified_document_id or file_hash is required")
        if record is None:
            raise DocumentNotFoundError(missing)
        return record
