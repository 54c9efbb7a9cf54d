"""In-process object storage.

No network calls. Used for local development and tests, and as the reference
for the behaviour every real adapter must match (overwrite on upload,
not-found errors on sign and download, newest-first listings).
"""

import hashlib
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta

from certdocs.storage.base import BaseStorageClient
from certdocs.storage.exceptions import StorageObjectNotFoundError
from certdocs.storage.models import ListedObject, SignedUrl, StoredObject


@dataclass
class _MemoryObject:
    data: bytes
    content_type: str
    updated_at: datetime


class MemoryStorageClient(BaseStorageClient):
    """Dictionary-backed storage keyed by (bucket, path)."""

    def __init__(self) -> None:
        self._objects: dict[tuple[str, str], _MemoryObject] = {}
        self.upload_count = 0

    def upload(
        self,
        bucket: str,
        path: str,
        data: bytes,
        content_type: str = "application/pdf",
    ) -> StoredObject:
        self.put_object(bucket, path, data, content_type=content_type)
        self.upload_count += 1
        return StoredObject(bucket=bucket, path=path, size=len(data))

    def put_object(
        self,
        bucket: str,
        path: str,
        data: bytes,
        *,
        content_type: str = "application/pdf",
        updated_at: datetime | None = None,
    ) -> None:
        """Seed or overwrite an object directly; lets tests control timestamps."""
        self._objects[(bucket, path)] = _MemoryObject(
            data=data,
            content_type=content_type,
            updated_at=updated_at or datetime.now(UTC),
        )

    def download(self, bucket: str, path: str) -> bytes:
        obj = self._objects.get((bucket, path))
        if obj is None:
            raise StorageObjectNotFoundError(bucket, path)
        return obj.data

    def create_signed_url(
        self,
        bucket: str,
        path: str,
        expires_in_seconds: int,
        download_name: str | None = None,
    ) -> SignedUrl:
        if (bucket, path) not in self._objects:
            raise StorageObjectNotFoundError(bucket, path)
        expires_at = datetime.now(UTC) + timedelta(seconds=expires_in_seconds)
        token = hashlib.sha256(
            f"{bucket}/{path}@{expires_at.isoformat()}".encode()
        ).hexdigest()[:32]
        url = f"memory://{bucket}/{path}?token={token}&expires_in={expires_in_seconds}"
        if download_name:
            url += f"&download={download_name}"
        return SignedUrl(url=url, bucket=bucket, path=path, expires_at=expires_at)

    def list_directory(self, bucket: str, directory: str, limit: int) -> list[ListedObject]:
        prefix = f"{directory}/" if directory else ""
        listed = [
            ListedObject(name=path, updated_at=obj.updated_at)
            for (obj_bucket, path), obj in self._objects.items()
            if obj_bucket == bucket
            and path.startswith(prefix)
            and "/" not in path[len(prefix):]
        ]
        listed.sort(key=lambda item: item.updated_at or datetime.min.replace(tzinfo=UTC), reverse=True)
        return listed[:limit]
