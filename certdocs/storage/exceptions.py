class StorageError(Exception):
    """Raised when an object storage call fails."""


class StorageObjectNotFoundError(StorageError):
    """Raised when the requested object does not exist in the bucket."""

    def __init__(self, bucket: str, path: str) -> None:
        super().__init__(f"Object not found: {bucket}/{path}")
        self.bucket = bucket
        self.path = path
