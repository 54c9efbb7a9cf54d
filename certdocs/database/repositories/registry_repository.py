from collections.abc import Generator
from contextlib import contextmanager
from typing import Any

import psycopg
from psycopg.rows import dict_row
from psycopg.types.json import Jsonb

from certdocs.billing.models import NormalizedLineItem
from certdocs.database.connection import get_connection
from certdocs.database.models import CertifiedPointer, RegistryDraft, RegistryRecord, UpsertOutcome
from certdocs.processor.exceptions import (
    DocumentNotFoundError,
    RegistryError,
    RegistryInsertError,
    RegistryLookupError,
    RegistryUpdateError,
    RegistryUpsertError,
)

_COLUMNS = (
    "id, entity_id, is_test, category, document_type, invoice_number, document_number, "
    "title, recipient_name, recipient_email, currency, subtotal_cents, tax_cents, "
    "total_cents, line_items, issued_at, due_at, period_start, period_end, notes, reason, "
    "storage_bucket, storage_path, file_size_bytes, file_hash, embedded_hash, "
    "hash_stabilized, verify_url, certified_storage_bucket, certified_storage_path, "
    "certified_file_hash, certified_embedded_hash, certified_at, source_record_id, "
    "metadata, created_at, updated_at"
)

_WRITE_COLUMNS = (
    "entity_id",
    "is_test",
    "category",
    "document_type",
    "invoice_number",
    "document_number",
    "title",
    "recipient_name",
    "recipient_email",
    "currency",
    "subtotal_cents",
    "tax_cents",
    "total_cents",
    "line_items",
    "issued_at",
    "due_at",
    "period_start",
    "period_end",
    "notes",
    "reason",
    "storage_bucket",
    "storage_path",
    "file_size_bytes",
    "file_hash",
    "embedded_hash",
    "hash_stabilized",
    "verify_url",
    "source_record_id",
    "metadata",
)

_INSERT_SQL = (
    f"INSERT INTO billing_documents ({', '.join(_WRITE_COLUMNS)}) "
    f"VALUES ({', '.join(['%s'] * len(_WRITE_COLUMNS))})"
)

# Regeneration replaces the content, so the certified pointer no longer applies.
_UPDATE_SQL = (
    "UPDATE billing_documents SET "
    + ", ".join(f"{column} = %s" for column in _WRITE_COLUMNS)
    + ", certified_storage_bucket = NULL, certified_storage_path = NULL, "
    "certified_file_hash = NULL, certified_embedded_hash = NULL, certified_at = NULL, "
    "updated_at = NOW() WHERE id = %s"
)


@contextmanager
def _step(error_cls: type[RegistryError], message: str) -> Generator[None, None, None]:
    """Map driver errors raised inside the block to ``error_cls``."""
    try:
        yield
    except psycopg.Error as exc:
        raise error_cls(f"{message}: {exc}") from exc


class RegistryRepository:
    """Database operations for the billing_documents registry.

    The natural-key rule is a partial unique index, which ``ON CONFLICT``
    cannot target for a conditional key, so natural-key writes use an
    explicit lookup-then-update-or-insert inside one transaction. An
    advisory lock on the key serializes concurrent writers for the same
    document. Rows without a natural key upsert on the full ``file_hash``
    unique index.
    """

    def __init__(self, advisory_locks: bool = True) -> None:
        self._advisory_locks = advisory_locks

    def upsert(self, draft: RegistryDraft) -> UpsertOutcome:
        if draft.natural_key:
            return self.upsert_by_natural_key(draft)
        return self.upsert_by_hash(draft)

    def upsert_by_natural_key(self, draft: RegistryDraft) -> UpsertOutcome:
        """Update the row for (issuer, lane, natural key) in place, or insert it.

        Raises:
            RegistryLookupError: if locking or looking up the existing row fails.
            RegistryUpdateError: if updating the existing row fails.
            RegistryInsertError: if inserting the new row fails.
        """
        natural_key = draft.natural_key
        if not natural_key:
            raise ValueError("upsert_by_natural_key requires a natural key")

        with get_connection() as conn:
            with _step(RegistryLookupError, f"Registry lookup failed for {natural_key}"):
                if self._advisory_locks:
                    conn.execute(
                        "SELECT pg_advisory_xact_lock(hashtextextended(%s, 0))",
                        (f"billing:{draft.entity_id}:{draft.is_test}:{natural_key}",),
                    )
                with conn.cursor() as cur:
                    cur.execute(
                        """
                        SELECT id FROM billing_documents
                        WHERE entity_id::text = %s
                          AND is_test = %s
                          AND natural_key = %s
                        """,
                        (draft.entity_id, draft.is_test, natural_key),
                    )
                    row = cur.fetchone()

            if row is not None:
                record_id = str(row[0])
                with _step(RegistryUpdateError, f"Registry update failed for {record_id}"):
                    conn.execute(_UPDATE_SQL, (*_write_values(draft), record_id))
                    conn.commit()
                return UpsertOutcome(record_id=record_id, created=False)

            with _step(RegistryInsertError, f"Registry insert failed for {natural_key}"):
                with conn.cursor() as cur:
                    cur.execute(f"{_INSERT_SQL} RETURNING id", _write_values(draft))
                    inserted = cur.fetchone()
                conn.commit()
            if inserted is None:
                raise RegistryInsertError(f"Registry insert returned no id for {natural_key}")
            return UpsertOutcome(record_id=str(inserted[0]), created=True)

    def upsert_by_hash(self, draft: RegistryDraft) -> UpsertOutcome:
        """Insert keyed by content hash; identical bytes collapse onto one row.

        Raises:
            RegistryUpsertError: if the statement fails.
        """
        with get_connection() as conn:
            with _step(RegistryUpsertError, f"Registry upsert failed for {draft.file_hash}"):
                with conn.cursor() as cur:
                    cur.execute(
                        f"""
                        {_INSERT_SQL}
                        ON CONFLICT (file_hash) DO UPDATE SET updated_at = NOW()
                        RETURNING id, (xmax = 0) AS inserted
                        """,
                        _write_values(draft),
                    )
                    row = cur.fetchone()
                conn.commit()
        if row is None:
            raise RegistryUpsertError(f"Registry upsert returned no id for {draft.file_hash}")
        return UpsertOutcome(record_id=str(row[0]), created=bool(row[1]))

    def find_by_id(self, record_id: str) -> RegistryRecord:
        """Find a registry row by ID.

        Raises:
            DocumentNotFoundError: if no row with this ID exists.
            RegistryLookupError: if the query fails.
        """
        with _step(RegistryLookupError, f"Registry lookup failed for {record_id}"):
            with get_connection() as conn:
                with conn.cursor(row_factory=dict_row) as cur:
                    cur.execute(
                        f"SELECT {_COLUMNS} FROM billing_documents WHERE id::text = %s",
                        (record_id,),
                    )
                    row = cur.fetchone()

        if row is None:
            raise DocumentNotFoundError(f"Document {record_id} not found")
        return _to_record(row)

    def find_by_hash(self, content_hash: str, is_test: bool | None = None) -> RegistryRecord | None:
        """Find the row whose generated, embedded or certified hash matches.

        ``is_test`` restricts the match to one lane when given.
        """
        lane_clause = "" if is_test is None else "AND is_test = %s"
        params: tuple[Any, ...] = (content_hash,) * 4
        if is_test is not None:
            params = (*params, is_test)
        with _step(RegistryLookupError, f"Registry hash lookup failed for {content_hash}"):
            with get_connection() as conn:
                with conn.cursor(row_factory=dict_row) as cur:
                    cur.execute(
                        f"""
                        SELECT {_COLUMNS} FROM billing_documents
                        WHERE (file_hash = %s OR embedded_hash = %s
                               OR certified_file_hash = %s OR certified_embedded_hash = %s)
                          {lane_clause}
                        ORDER BY updated_at DESC
                        LIMIT 1
                        """,
                        params,
                    )
                    row = cur.fetchone()
        return _to_record(row) if row is not None else None

    def mark_certified(self, record_id: str, pointer: CertifiedPointer) -> None:
        """Record the certified artifact on the row.

        Raises:
            DocumentNotFoundError: if no row with this ID exists.
            RegistryUpdateError: if the update fails.
        """
        with _step(RegistryUpdateError, f"Certified pointer update failed for {record_id}"):
            with get_connection() as conn:
                with conn.cursor() as cur:
                    cur.execute(
                        """
                        UPDATE billing_documents
                        SET certified_storage_bucket = %s,
                            certified_storage_path = %s,
                            certified_file_hash = %s,
                            certified_embedded_hash = %s,
                            certified_at = %s,
                            verify_url = %s,
                            updated_at = NOW()
                        WHERE id::text = %s
                        """,
                        (
                            pointer.bucket,
                            pointer.path,
                            pointer.file_hash,
                            pointer.embedded_hash,
                            pointer.certified_at,
                            pointer.verify_url,
                            record_id,
                        ),
                    )
                    updated = cur.rowcount
                conn.commit()
        if updated == 0:
            raise DocumentNotFoundError(f"Document {record_id} not found")


def _write_values(draft: RegistryDraft) -> tuple[Any, ...]:
    return (
        draft.entity_id,
        draft.is_test,
        draft.category,
        draft.document_type,
        draft.invoice_number,
        draft.document_number,
        draft.title,
        draft.recipient_name,
        draft.recipient_email,
        draft.currency,
        draft.subtotal_cents,
        draft.tax_cents,
        draft.total_cents,
        Jsonb([item.to_dict() for item in draft.line_items]),
        draft.issued_at,
        draft.due_at,
        draft.period_start,
        draft.period_end,
        draft.notes,
        draft.reason,
        draft.storage_bucket,
        draft.storage_path,
        draft.file_size_bytes,
        draft.file_hash,
        draft.embedded_hash,
        draft.hash_stabilized,
        draft.verify_url,
        draft.source_record_id,
        Jsonb(draft.metadata),
    )


def _to_record(row: dict[str, Any]) -> RegistryRecord:
    return RegistryRecord(
        id=str(row["id"]),
        entity_id=str(row["entity_id"]),
        is_test=row["is_test"],
        category=row["category"],
        document_type=row["document_type"],
        currency=row["currency"],
        subtotal_cents=row["subtotal_cents"],
        tax_cents=row["tax_cents"],
        total_cents=row["total_cents"],
        issued_at=row["issued_at"],
        storage_bucket=row["storage_bucket"],
        storage_path=row["storage_path"],
        file_size_bytes=row["file_size_bytes"],
        file_hash=row["file_hash"],
        embedded_hash=row["embedded_hash"],
        hash_stabilized=row["hash_stabilized"],
        line_items=[NormalizedLineItem.from_dict(item) for item in row["line_items"] or []],
        invoice_number=row["invoice_number"],
        document_number=row["document_number"],
        title=row["title"],
        recipient_name=row["recipient_name"],
        recipient_email=row["recipient_email"],
        due_at=row["due_at"],
        period_start=row["period_start"],
        period_end=row["period_end"],
        notes=row["notes"],
        reason=row["reason"],
        verify_url=row["verify_url"],
        certified_storage_bucket=row["certified_storage_bucket"],
        certified_storage_path=row["certified_storage_path"],
        certified_file_hash=row["certified_file_hash"],
        certified_embedded_hash=row["certified_embedded_hash"],
        certified_at=row["certified_at"],
        source_record_id=row["source_record_id"],
        metadata=row["metadata"] or {},
        created_at=row["created_at"],
        updated_at=row["updated_at"],
    )
