from dataclasses import dataclass
from datetime import datetime
from enum import Enum


class Lane(str, Enum):
    """Data partition. Nothing stored in one lane is visible from the other."""

    SANDBOX = "sandbox"
    PRODUCTION = "production"

    @classmethod
    def from_is_test(cls, is_test: bool) -> "Lane":
        return cls.SANDBOX if is_test else cls.PRODUCTION

    @property
    def is_test(self) -> bool:
        return self is Lane.SANDBOX

    @property
    def label(self) -> str:
        return "SANDBOX" if self is Lane.SANDBOX else "PRODUCTION"


@dataclass(frozen=True)
class StorageLocation:
    """A (bucket, path) pair inside object storage."""

    bucket: str
    path: str


@dataclass(frozen=True)
class StoredObject:
    """Result of a successful upload."""

    bucket: str
    path: str
    size: int


@dataclass(frozen=True)
class ListedObject:
    """A directory listing entry; ``name`` is the full path within the bucket."""

    name: str
    updated_at: datetime | None = None


@dataclass(frozen=True)
class SignedUrl:
    """A time-boxed retrieval link for a storage object."""

    url: str
    bucket: str
    path: str
    expires_at: datetime
