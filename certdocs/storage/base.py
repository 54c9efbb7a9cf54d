from abc import ABC, abstractmethod

from certdocs.storage.models import ListedObject, SignedUrl, StoredObject


class BaseStorageClient(ABC):
    """Contract for all object storage adapters."""

    @abstractmethod
    def upload(
        self,
        bucket: str,
        path: str,
        data: bytes,
        content_type: str = "application/pdf",
    ) -> StoredObject:
        """Write bytes to ``bucket/path``, overwriting any existing object.

        Raises:
            StorageError: if the write fails.
        """

    @abstractmethod
    def download(self, bucket: str, path: str) -> bytes:
        """Read an object's bytes.

        Raises:
            StorageObjectNotFoundError: if the object does not exist.
            StorageError: on any other failure.
        """

    @abstractmethod
    def create_signed_url(
        self,
        bucket: str,
        path: str,
        expires_in_seconds: int,
        download_name: str | None = None,
    ) -> SignedUrl:
        """Issue a time-boxed retrieval link.

        Raises:
            StorageObjectNotFoundError: if the object does not exist.
            StorageError: on any other failure.
        """

    @abstractmethod
    def list_directory(self, bucket: str, directory: str, limit: int) -> list[ListedObject]:
        """List objects directly under ``directory``, most recently updated first.

        Returned names are full paths within the bucket.

        Raises:
            StorageError: if the listing fails.
        """
