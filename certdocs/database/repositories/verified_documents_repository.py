from typing import Any

import psycopg
from psycopg.rows import dict_row

from certdocs.database.connection import get_connection
from certdocs.database.models import VerifiedArtifactRecord
from certdocs.processor.exceptions import RegistryLookupError

_COLUMNS = """id, entity_id, is_test, source_record_id, storage_bucket,
              storage_path, file_hash, verified_at"""


class VerifiedDocumentsRepository:
    """Database operations for the verified_documents table (official tier)."""

    def find_for_source(self, entity_id: str, source_record_id: str) -> list[VerifiedArtifactRecord]:
        """Official artifacts tied to an originating record, newest first."""
        try:
            with get_connection() as conn:
                with conn.cursor(row_factory=dict_row) as cur:
                    cur.execute(
                        f"""
                        SELECT {_COLUMNS}
                        FROM verified_documents
                        WHERE entity_id::text = %s
                          AND source_record_id = %s
                        ORDER BY verified_at DESC NULLS LAST, created_at DESC
                        """,
                        (entity_id, source_record_id),
                    )
                    rows = cur.fetchall()
        except psycopg.Error as exc:
            raise RegistryLookupError(
                f"Verified document lookup failed for {source_record_id}: {exc}"
            ) from exc

        return [_to_record(row) for row in rows]

    def find_by_id(self, verified_id: str) -> VerifiedArtifactRecord | None:
        try:
            with get_connection() as conn:
                with conn.cursor(row_factory=dict_row) as cur:
                    cur.execute(
                        f"SELECT {_COLUMNS} FROM verified_documents WHERE id::text = %s",
                        (verified_id,),
                    )
                    row = cur.fetchone()
        except psycopg.Error as exc:
            raise RegistryLookupError(f"Verified document lookup failed for {verified_id}: {exc}") from exc

        return _to_record(row) if row is not None else None

    def find_by_hash(self, file_hash: str) -> VerifiedArtifactRecord | None:
        try:
            with get_connection() as conn:
                with conn.cursor(row_factory=dict_row) as cur:
                    cur.execute(
                        f"""
                        SELECT {_COLUMNS}
                        FROM verified_documents
                        WHERE file_hash = %s
                        LIMIT 1
                        """,
                        (file_hash,),
                    )
                    row = cur.fetchone()
        except psycopg.Error as exc:
            raise RegistryLookupError(f"Verified document lookup failed for {file_hash}: {exc}") from exc

        return _to_record(row) if row is not None else None


def _to_record(row: dict[str, Any]) -> VerifiedArtifactRecord:
    return VerifiedArtifactRecord(
        id=str(row["id"]),
        entity_id=str(row["entity_id"]),
        is_test=row["is_test"],
        source_record_id=row["source_record_id"],
        storage_bucket=row["storage_bucket"],
        storage_path=row["storage_path"],
        file_hash=row["file_hash"],
        verified_at=row["verified_at"],
    )
