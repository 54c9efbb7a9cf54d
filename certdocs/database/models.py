from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Any

from certdocs.billing.models import NormalizedLineItem
from certdocs.storage.models import Lane, StorageLocation


@dataclass(frozen=True)
class Issuer:
    """Represents a row from the entities table."""

    id: str
    slug: str
    name: str


@dataclass(frozen=True)
class RegistryDraft:
    """Column values written by a generate call (everything but identity)."""

    entity_id: str
    is_test: bool
    category: str
    document_type: str
    currency: str
    subtotal_cents: int
    tax_cents: int
    total_cents: int
    line_items: list[NormalizedLineItem]
    issued_at: date
    storage_bucket: str
    storage_path: str
    file_size_bytes: int
    file_hash: str
    embedded_hash: str
    hash_stabilized: bool
    verify_url: str
    invoice_number: str | None = None
    document_number: str | None = None
    title: str | None = None
    recipient_name: str | None = None
    recipient_email: str | None = None
    due_at: date | None = None
    period_start: date | None = None
    period_end: date | None = None
    notes: str | None = None
    reason: str | None = None
    source_record_id: str | None = None
    metadata: dict[str, Any] = field(default_factory=dict)

    @property
    def natural_key(self) -> str | None:
        return self.invoice_number or self.document_number


@dataclass(frozen=True)
class UpsertOutcome:
    """Registry row id and whether the call created it."""

    record_id: str
    created: bool


@dataclass
class RegistryRecord:
    """Represents a row from the billing_documents table."""

    id: str
    entity_id: str
    is_test: bool
    category: str
    document_type: str
    currency: str
    subtotal_cents: int
    tax_cents: int
    total_cents: int
    issued_at: date
    storage_bucket: str
    storage_path: str
    file_size_bytes: int
    file_hash: str
    embedded_hash: str
    hash_stabilized: bool = True
    line_items: list[NormalizedLineItem] = field(default_factory=list)
    invoice_number: str | None = None
    document_number: str | None = None
    title: str | None = None
    recipient_name: str | None = None
    recipient_email: str | None = None
    due_at: date | None = None
    period_start: date | None = None
    period_end: date | None = None
    notes: str | None = None
    reason: str | None = None
    verify_url: str | None = None
    certified_storage_bucket: str | None = None
    certified_storage_path: str | None = None
    certified_file_hash: str | None = None
    certified_embedded_hash: str | None = None
    certified_at: datetime | None = None
    source_record_id: str | None = None
    metadata: dict[str, Any] = field(default_factory=dict)
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @property
    def lane(self) -> Lane:
        return Lane.from_is_test(self.is_test)

    @property
    def natural_key(self) -> str | None:
        return self.invoice_number or self.document_number

    @property
    def location(self) -> StorageLocation:
        return StorageLocation(bucket=self.storage_bucket, path=self.storage_path)

    @property
    def is_certified(self) -> bool:
        return bool(self.certified_storage_bucket and self.certified_storage_path)

    @property
    def certified_location(self) -> StorageLocation | None:
        if not self.is_certified:
            return None
        return StorageLocation(
            bucket=str(self.certified_storage_bucket),
            path=str(self.certified_storage_path),
        )


@dataclass(frozen=True)
class CertifiedPointer:
    """Columns recorded when a certified artifact is stored."""

    bucket: str
    path: str
    file_hash: str
    embedded_hash: str
    certified_at: datetime
    verify_url: str


@dataclass(frozen=True)
class VerifiedArtifactRecord:
    """Represents a row from the verified_documents table."""

    id: str
    entity_id: str
    is_test: bool
    source_record_id: str
    storage_bucket: str
    storage_path: str
    file_hash: str | None = None
    verified_at: datetime | None = None


@dataclass
class JobRecord:
    """Represents a row from the certification_jobs table."""

    id: int
    kind: str
    payload: dict[str, Any]
    status: str
    attempts: int
    result: dict[str, Any] | None = None
    error_code: str | None = None
    error_message: str | None = None
    locked_at: datetime | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None
