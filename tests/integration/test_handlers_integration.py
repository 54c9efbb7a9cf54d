import hashlib

import pytest

from certdocs.config.settings import Settings
from certdocs.database.models import Issuer
from certdocs.processor.handlers import build_handlers
from certdocs.storage.memory_adapter import MemoryStorageClient


def _payload(issuer: Issuer, **overrides: object) -> dict:
    payload: dict = {
        "entity_id": issuer.id,
        "is_test": True,
        "category": "billing",
        "invoice_number": "INV-2024-001",
        "currency": "USD",
        "issued_at": "2024-03-15",
        "line_items": [
            {"description": "Service A", "amount": "100.00"},
            {"description": "Service B", "amount": "50.00"},
        ],
    }
    payload.update(overrides)
    return payload


@pytest.mark.integration
class TestGenerateCertifyResolve:
    def test_full_flow(self, test_settings: Settings, seed_issuer: Issuer, integration_pool) -> None:
        storage = MemoryStorageClient()
        handlers = build_handlers(test_settings, storage=storage)

        generated = handlers.generate(_payload(seed_issuer))
        again = handlers.generate(_payload(seed_issuer))

        assert generated["ok"] is True, generated
        assert again["document_id"] == generated["document_id"]
        assert again["created"] is False
        data = storage.download("billing_sandbox", generated["storage"]["path"])
        assert hashlib.sha256(data).hexdigest() == generated["content_hash"]

        certified = handlers.certify({"document_id": generated["document_id"]})
        assert certified["ok"] is True, certified

        resolved = handlers.resolve({"is_test": True, "entry_id": generated["document_id"]})
        assert resolved["tier"] == "certified"

        hidden = handlers.resolve({"is_test": False, "entry_id": generated["document_id"]})
        assert hidden["error"] == "ARTIFACT_NOT_FOUND"

        verified = handlers.verify(data)
        assert verified["registered"] is True
        assert verified["document_id"] == generated["document_id"]

    def test_unknown_issuer(self, test_settings: Settings, integration_pool) -> None:
        storage = MemoryStorageClient()
        handlers = build_handlers(test_settings, storage=storage)
        payload = _payload(Issuer(id="00000000-0000-0000-0000-000000000000", slug="x", name="x"))

        response = handlers.generate(payload)

        assert response["error"] == "ISSUER_NOT_FOUND"
        assert storage.upload_count == 0
