from dataclasses import dataclass
from typing import Any

from certdocs.billing.models import Totals
from certdocs.resolution.models import AuthorityTier
from certdocs.storage.models import Lane, StoredObject


def _storage_dict(stored: StoredObject) -> dict[str, Any]:
    return {"bucket": stored.bucket, "path": stored.path, "size": stored.size}


@dataclass(frozen=True)
class GenerationResult:
    document_id: str
    created: bool
    content_hash: str
    embedded_hash: str
    hash_stabilized: bool
    iterations: int
    storage: StoredObject
    totals: Totals
    verify_url: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "ok": True,
            "document_id": self.document_id,
            "created": self.created,
            "content_hash": self.content_hash,
            "embedded_hash": self.embedded_hash,
            "hash_stabilized": self.hash_stabilized,
            "iterations": self.iterations,
            "storage": _storage_dict(self.storage),
            "totals": self.totals.to_dict(),
            "verify_url": self.verify_url,
        }


@dataclass(frozen=True)
class CertificationResult:
    document_id: str
    already_certified: bool
    certified_hash: str
    embedded_hash: str
    hash_stabilized: bool
    storage: StoredObject
    verify_url: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "ok": True,
            "document_id": self.document_id,
            "already_certified": self.already_certified,
            "certified_hash": self.certified_hash,
            "embedded_hash": self.embedded_hash,
            "hash_stabilized": self.hash_stabilized,
            "storage": _storage_dict(self.storage),
            "verify_url": self.verify_url,
        }


@dataclass(frozen=True)
class VerificationResult:
    """What is known about a presented PDF.

    ``registered`` is true when the exact bytes are a registered artifact.
    ``claimed_document_id`` is the document the printed hash points at, which
    may differ from a match on the bytes themselves.
    """

    content_hash: str
    embedded_hash: str | None
    registered: bool
    tier: AuthorityTier | None = None
    document_id: str | None = None
    lane: Lane | None = None
    claimed_document_id: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "ok": True,
            "content_hash": self.content_hash,
            "embedded_hash": self.embedded_hash,
            "registered": self.registered,
            "tier": self.tier.name.lower() if self.tier is not None else None,
            "document_id": self.document_id,
            "lane": self.lane.value if self.lane is not None else None,
            "claimed_document_id": self.claimed_document_id,
        }
