from datetime import date

from certdocs.config.settings import Settings
from certdocs.logging.logger import Log
from certdocs.processor.exceptions import UploadFailedError
from certdocs.storage.base import BaseStorageClient
from certdocs.storage.exceptions import StorageError
from certdocs.storage.models import Lane, StorageLocation, StoredObject
from certdocs.storage.paths import build_location, file_stem


class ContentAddressedStoreWriter:
    """Writes stabilized artifacts to the lane bucket at a deterministic path.

    Uploads overwrite: regenerating the same natural key rewrites the same
    path, and re-uploading identical bytes is a no-op in effect.
    """

    def __init__(self, storage: BaseStorageClient, settings: Settings) -> None:
        self._storage = storage
        self._settings = settings

    def locate(
        self,
        *,
        lane: Lane,
        issuer_slug: str,
        category: str,
        issued_on: date,
        natural_key: str | None,
        content_hash: str,
    ) -> StorageLocation:
        return build_location(
            lane,
            self._settings,
            issuer_slug,
            category,
            issued_on,
            file_stem(natural_key, content_hash),
        )

    def write(self, location: StorageLocation, data: bytes) -> StoredObject:
        """Upload bytes to ``location``.

        Raises:
            UploadFailedError: if the storage backend rejects the write.
        """
        try:
            stored = self._storage.upload(location.bucket, location.path, data)
        except StorageError as exc:
            raise UploadFailedError(
                f"Upload to {location.bucket}/{location.path} failed: {exc}"
            ) from exc
        Log.info(f"Stored {stored.size} bytes at {stored.bucket}/{stored.path}")
        return stored
