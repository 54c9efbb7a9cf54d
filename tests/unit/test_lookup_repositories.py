from datetime import UTC, datetime
from unittest.mock import MagicMock, patch

import psycopg
import pytest

from certdocs.database.models import Issuer
from certdocs.database.repositories.issuer_repository import IssuerRepository
from certdocs.database.repositories.verified_documents_repository import (
    VerifiedDocumentsRepository,
)
from certdocs.processor.exceptions import IssuerNotFoundError, RegistryLookupError


def _mock_connection(mock_get_conn: MagicMock) -> tuple[MagicMock, MagicMock]:
    """Wire up a mock connection + cursor and return (mock_conn, mock_cursor)."""
    mock_cursor = MagicMock()
    mock_conn = MagicMock()
    mock_conn.cursor.return_value.__enter__ = MagicMock(return_value=mock_cursor)
    mock_conn.cursor.return_value.__exit__ = MagicMock(return_value=False)
    mock_get_conn.return_value.__enter__ = MagicMock(return_value=mock_conn)
    mock_get_conn.return_value.__exit__ = MagicMock(return_value=False)
    return mock_conn, mock_cursor


def _verified_row(**overrides: object) -> dict:
    row = {
        "id": "v-1",
        "entity_id": "e-1",
        "is_test": False,
        "source_record_id": "doc-1",
        "storage_bucket": "billing_truth",
        "storage_path": "oasis-intl/billing/2024/03/inv-1-signed.pdf",
        "file_hash": "ef" * 32,
        "verified_at": datetime(2024, 4, 2, tzinfo=UTC),
    }
    row.update(overrides)
    return row


class TestIssuerRepository:
    @patch("certdocs.database.repositories.issuer_repository.get_connection")
    def test_returns_issuer(self, mock_get_conn: MagicMock) -> None:
        _conn, mock_cursor = _mock_connection(mock_get_conn)
        mock_cursor.fetchone.return_value = {"id": "e-1", "slug": "oasis-intl", "name": "Oasis"}

        assert IssuerRepository().find_by_id("e-1") == Issuer(id="e-1", slug="oasis-intl", name="Oasis")

    @patch("certdocs.database.repositories.issuer_repository.get_connection")
    def test_missing_issuer_raises(self, mock_get_conn: MagicMock) -> None:
        _conn, mock_cursor = _mock_connection(mock_get_conn)
        mock_cursor.fetchone.return_value = None

        with pytest.raises(IssuerNotFoundError, match="Issuer e-9 not found"):
            IssuerRepository().find_by_id("e-9")

    @patch("certdocs.database.repositories.issuer_repository.get_connection")
    def test_driver_error_raises_lookup_error(self, mock_get_conn: MagicMock) -> None:
        _conn, mock_cursor = _mock_connection(mock_get_conn)
        mock_cursor.execute.side_effect = psycopg.OperationalError("down")

        with pytest.raises(RegistryLookupError):
            IssuerRepository().find_by_id("e-1")


class TestVerifiedDocumentsRepository:
    @patch("certdocs.database.repositories.verified_documents_repository.get_connection")
    def test_find_for_source(self, mock_get_conn: MagicMock) -> None:
        _conn, mock_cursor = _mock_connection(mock_get_conn)
        mock_cursor.fetchall.return_value = [_verified_row(), _verified_row(id="v-2")]

        records = VerifiedDocumentsRepository().find_for_source("e-1", "doc-1")

        assert [record.id for record in records] == ["v-1", "v-2"]
        assert mock_cursor.execute.call_args.args[1] == ("e-1", "doc-1")

    @patch("certdocs.database.repositories.verified_documents_repository.get_connection")
    def test_find_by_hash_missing(self, mock_get_conn: MagicMock) -> None:
        _conn, mock_cursor = _mock_connection(mock_get_conn)
        mock_cursor.fetchone.return_value = None

        assert VerifiedDocumentsRepository().find_by_hash("ef" * 32) is None

    @patch("certdocs.database.repositories.verified_documents_repository.get_connection")
    def test_find_by_hash_found(self, mock_get_conn: MagicMock) -> None:
        _conn, mock_cursor = _mock_connection(mock_get_conn)
        mock_cursor.fetchone.return_value = _verified_row()

        record = VerifiedDocumentsRepository().find_by_hash("ef" * 32)

        assert record is not None
        assert record.storage_path.endswith("-signed.pdf")

    @patch("certdocs.database.repositories.verified_documents_repository.get_connection")
    def test_find_by_id(self, mock_get_conn: MagicMock) -> None:
        _conn, mock_cursor = _mock_connection(mock_get_conn)
        mock_cursor.fetchone.return_value = _verified_row()

        record = VerifiedDocumentsRepository().find_by_id("v-1")

        assert record is not None
        assert record.id == "v-1"
        assert mock_cursor.execute.call_args.args[1] == ("v-1",)

    @patch("certdocs.database.repositories.verified_documents_repository.get_connection")
    def test_find_by_id_driver_error(self, mock_get_conn: MagicMock) -> None:
        _conn, mock_cursor = _mock_connection(mock_get_conn)
        mock_cursor.execute.side_effect = psycopg.OperationalError("down")

        with pytest.raises(RegistryLookupError):
            VerifiedDocumentsRepository().find_by_id("v-1")
